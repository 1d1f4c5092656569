"""Sums of operator strings acting on digit indices.

An :class:`OpSum` is a weighted list of terms, each term a product of named
single-digit operators. Nothing here touches torch: the operator alphabet is
plain numpy, so the carry automaton behind the shift operators can be
checked against dense matrices on its own.

All matrices are indexed ``M[out, in]``: applying an operator ``P`` to a
function gives ``(P f)(out) = sum_in M[out, in] * f(in)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Number
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np

from .exceptions import ConfigurationError
from .network.index import Index

OPERATOR_NAMES = ("I", "Step+", "Wrap+", "Step-", "Wrap-")


def op_matrix(name: str, base: int) -> np.ndarray:
    """Matrix of a named single-digit operator in base ``base``.

    ``Step+`` reads the next digit value (``M[d, d + 1] = 1``) and ``Wrap+``
    reads ``0`` where the output digit is ``base - 1``; together they realise
    ``f(x + delta)`` with a carry. ``Step-``/``Wrap-`` are their transposes.
    """
    m = np.zeros((base, base))
    if name == "I":
        return np.eye(base)
    if name == "Step+":
        m[np.arange(base - 1), np.arange(1, base)] = 1.0
    elif name == "Wrap+":
        m[base - 1, 0] = 1.0
    elif name == "Step-":
        m[np.arange(1, base), np.arange(base - 1)] = 1.0
    elif name == "Wrap-":
        m[0, base - 1] = 1.0
    else:
        raise ConfigurationError(f"Unknown operator {name!r}; expected one of {OPERATOR_NAMES}.")
    return m


@dataclass(frozen=True)
class OpTerm:
    """``coefficient`` times a product of operators, at most one per index."""

    coefficient: Number
    ops: Tuple[Tuple[str, Index], ...]

    def __post_init__(self):
        ops = tuple((name, ind) for name, ind in self.ops)
        object.__setattr__(self, "ops", ops)
        seen = [ind for _, ind in ops]
        if len(seen) != len(set(seen)):
            raise ConfigurationError(f"Operator string acts twice on one index: {ops}.")

    def op_on(self, ind: Index) -> str:
        for name, target in self.ops:
            if target == ind:
                return name
        return "I"

    def as_dict(self) -> Dict[Index, str]:
        return {ind: name for name, ind in self.ops}


class OpSum:
    """Ordered sum of :class:`OpTerm`; terms are never merged or reordered."""

    def __init__(self, terms: Sequence[OpTerm] = ()):
        self.terms: List[OpTerm] = list(terms)

    def add(self, coefficient: Number, *ops: Tuple[str, Index]) -> "OpSum":
        """Append ``coefficient * prod(ops)``; returns ``self`` for chaining."""
        self.terms.append(OpTerm(coefficient, tuple(ops)))
        return self

    def __iter__(self) -> Iterator[OpTerm]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def __add__(self, other: "OpSum") -> "OpSum":
        if not isinstance(other, OpSum):
            return NotImplemented
        return OpSum(self.terms + other.terms)

    def __mul__(self, factor):
        if not isinstance(factor, Number):
            return NotImplemented
        return OpSum([OpTerm(factor * t.coefficient, t.ops) for t in self.terms])

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"OpSum({len(self.terms)} terms)"


def shift_opsum(digit_inds: Sequence[Index], direction: int = 1) -> OpSum:
    """Carry automaton for ``f(x) -> f(x + direction * delta)``.

    ``digit_inds`` lists the digits of one coordinate, most significant
    first, and ``delta`` is one unit of the last of them. Term ``j`` covers
    inputs whose ``j`` least significant digits carry: those digits wrap
    and the next one steps. Shifts past either end of ``[0, 1)`` read zero.
    """
    if direction not in (1, -1):
        raise ConfigurationError(f"Shift direction must be +1 or -1, got {direction}.")
    if not digit_inds:
        raise ConfigurationError("Cannot shift a coordinate without digits.")
    step, wrap = ("Step+", "Wrap+") if direction == 1 else ("Step-", "Wrap-")
    inds = list(digit_inds)
    opsum = OpSum()
    for depth in range(len(inds)):
        carried = inds[len(inds) - depth:]
        ops = [(wrap, ind) for ind in reversed(carried)]
        ops.append((step, inds[len(inds) - 1 - depth]))
        opsum.add(1.0, *ops)
    return opsum


def identity_opsum(inds: Sequence[Index]) -> OpSum:
    return OpSum().add(1.0, *[("I", ind) for ind in inds])


def opsum_to_dense(opsum: OpSum, inds: Sequence[Index]) -> np.ndarray:
    """Dense matrix of ``opsum`` over ``inds`` (first index most significant)."""
    inds = list(inds)
    size = int(np.prod([ind.dim for ind in inds])) if inds else 1
    dtype = complex if any(isinstance(t.coefficient, complex) for t in opsum) else float
    total = np.zeros((size, size), dtype=dtype)
    for term in opsum:
        unknown = set(term.as_dict()) - set(inds)
        if unknown:
            raise ConfigurationError(f"Operator string acts on indices outside {inds}.")
        m = np.ones((1, 1))
        for ind in inds:
            m = np.kron(m, op_matrix(term.op_on(ind), ind.dim))
        total = total + term.coefficient * m
    return total
