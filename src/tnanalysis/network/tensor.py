"""Tensors with named indices and their elementary operations.

A :class:`Tensor` pairs a torch array with a tuple of :class:`Index` objects,
one per axis. Contraction matches axes by index rather than by position:
shared indices are summed over, all others are kept. Everything here is
dense and float64/complex128.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from numbers import Number
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import torch

from ..exceptions import IndexMismatchError
from .index import Index, link_index

REAL_DTYPE = torch.float64
COMPLEX_DTYPE = torch.complex128

_LABELS = string.ascii_letters


def dtype_for(*values) -> torch.dtype:
    """Smallest of float64/complex128 able to hold all of ``values``."""
    for value in values:
        if isinstance(value, torch.Tensor):
            if value.is_complex():
                return COMPLEX_DTYPE
        elif isinstance(value, complex):
            return COMPLEX_DTYPE
        elif hasattr(value, "dtype") and hasattr(value.dtype, "kind"):
            if value.dtype.kind == "c":
                return COMPLEX_DTYPE
        elif isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
            if dtype_for(*value) == COMPLEX_DTYPE:
                return COMPLEX_DTYPE
    return REAL_DTYPE


def promote(*dtypes: torch.dtype) -> torch.dtype:
    return COMPLEX_DTYPE if any(d.is_complex for d in dtypes) else REAL_DTYPE


@dataclass(frozen=True)
class Tensor:
    """Dense tensor labelled by indices."""

    inds: Tuple[Index, ...]
    values: torch.Tensor

    def __post_init__(self):
        inds = tuple(self.inds)
        object.__setattr__(self, "inds", inds)
        if len(set(inds)) != len(inds):
            raise IndexMismatchError(f"Duplicate indices in tensor: {inds}.")
        if self.values.ndim != len(inds):
            raise IndexMismatchError(
                f"Tensor has {self.values.ndim} axes but {len(inds)} indices."
            )
        for ind, size in zip(inds, self.values.shape):
            if ind.dim != size:
                raise IndexMismatchError(f"Axis of size {size} labelled by {ind}.")

    @property
    def dtype(self) -> torch.dtype:
        return self.values.dtype

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.values.shape)

    @property
    def ndim(self) -> int:
        return len(self.inds)

    def has_ind(self, ind: Index) -> bool:
        return ind in self.inds

    def astype(self, dtype: torch.dtype) -> "Tensor":
        if self.values.dtype == dtype:
            return self
        return Tensor(self.inds, self.values.to(dtype))

    def permute(self, inds: Sequence[Index]) -> "Tensor":
        inds = tuple(inds)
        if set(inds) != set(self.inds) or len(inds) != len(self.inds):
            raise IndexMismatchError(f"Cannot permute {self.inds} into {inds}.")
        perm = [self.inds.index(i) for i in inds]
        if perm == list(range(len(perm))):
            return self
        return Tensor(inds, self.values.permute(perm))

    def replace_inds(self, mapping: Dict[Index, Index]) -> "Tensor":
        new_inds = tuple(mapping.get(i, i) for i in self.inds)
        return Tensor(new_inds, self.values)

    def prime(self, inds: Optional[Iterable[Index]] = None, n: int = 1) -> "Tensor":
        targets = self.inds if inds is None else tuple(inds)
        return self.replace_inds({i: i.prime(n) for i in targets if i in self.inds})

    def noprime(self) -> "Tensor":
        return self.replace_inds({i: i.noprime() for i in self.inds if i.plev != 0})

    def project(self, assignment: Dict[Index, int]) -> "Tensor":
        """Fix the indices present in ``assignment`` to the given values."""
        selector = []
        kept = []
        for ind in self.inds:
            if ind in assignment:
                selector.append(int(assignment[ind]))
            else:
                selector.append(slice(None))
                kept.append(ind)
        return Tensor(tuple(kept), self.values[tuple(selector)])

    def scalar(self) -> Number:
        if self.ndim != 0:
            raise IndexMismatchError(f"Tensor with indices {self.inds} is not a scalar.")
        return self.values.item()

    def conj(self) -> "Tensor":
        return Tensor(self.inds, self.values.conj()) if self.values.is_complex() else self

    def __add__(self, other: "Tensor") -> "Tensor":
        other = other.permute(self.inds)
        dtype = promote(self.dtype, other.dtype)
        return Tensor(self.inds, self.values.to(dtype) + other.values.to(dtype))

    def __sub__(self, other: "Tensor") -> "Tensor":
        return self + (-1.0) * other

    def __mul__(self, other):
        if isinstance(other, Tensor):
            return contract(self, other)
        if isinstance(other, Number):
            values = self.values
            if isinstance(other, complex) and not values.is_complex():
                values = values.to(COMPLEX_DTYPE)
            return Tensor(self.inds, values * other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self.__mul__(other)
        return NotImplemented

    def __neg__(self) -> "Tensor":
        return self * -1.0

    def __repr__(self) -> str:
        return f"Tensor(inds={self.inds}, dtype={self.dtype})"


def einsum(
    tensors: Sequence[Tensor], out_inds: Optional[Sequence[Index]] = None
) -> Tensor:
    """Contract tensors by index.

    Indices listed in ``out_inds`` are kept even when shared (a shared kept
    index multiplies elementwise); every other index shared by two or more
    tensors is summed. With ``out_inds=None`` the output keeps each index that
    appears exactly once, in order of first appearance.
    """
    counts: Dict[Index, int] = {}
    for tensor in tensors:
        for ind in tensor.inds:
            counts[ind] = counts.get(ind, 0) + 1
    if out_inds is None:
        out_inds = [ind for ind, count in counts.items() if count == 1]
    out_inds = tuple(out_inds)
    missing = [i for i in out_inds if i not in counts]
    if missing:
        raise IndexMismatchError(f"Output indices {missing} do not appear in the inputs.")
    if len(counts) > len(_LABELS):
        raise IndexMismatchError(
            f"Cannot contract {len(counts)} distinct indices in one einsum call."
        )
    sizes: Dict[Index, int] = {}
    for tensor in tensors:
        for ind in tensor.inds:
            if sizes.setdefault(ind, ind.dim) != ind.dim:
                raise IndexMismatchError(f"Inconsistent sizes for index {ind}.")
    labels = {ind: _LABELS[n] for n, ind in enumerate(counts)}
    dtype = promote(*(t.dtype for t in tensors))
    subscripts = ",".join("".join(labels[i] for i in t.inds) for t in tensors)
    subscripts += "->" + "".join(labels[i] for i in out_inds)
    values = torch.einsum(subscripts, *[t.values.to(dtype) for t in tensors])
    return Tensor(out_inds, values)


def contract(a: Tensor, b: Tensor) -> Tensor:
    """Binary contraction over the indices ``a`` and ``b`` share."""
    shared = set(a.inds) & set(b.inds)
    out = [i for i in a.inds if i not in shared] + [i for i in b.inds if i not in shared]
    return einsum([a, b], out)


def from_array(data, inds: Sequence[Index], dtype: Optional[torch.dtype] = None) -> Tensor:
    if dtype is None:
        dtype = dtype_for(data)
    values = torch.as_tensor(data, dtype=dtype)
    return Tensor(tuple(inds), values.reshape(tuple(i.dim for i in inds)))


def ones(inds: Sequence[Index], dtype: torch.dtype = REAL_DTYPE) -> Tensor:
    inds = tuple(inds)
    return Tensor(inds, torch.ones(tuple(i.dim for i in inds), dtype=dtype))


def delta(inds: Sequence[Index], dtype: torch.dtype = REAL_DTYPE) -> Tensor:
    """Generalised Kronecker delta: one where all index values coincide."""
    inds = tuple(inds)
    if not inds:
        return Tensor((), torch.ones((), dtype=dtype))
    n = inds[0].dim
    if any(i.dim != n for i in inds):
        raise IndexMismatchError(f"delta requires equal index sizes, got {inds}.")
    values = torch.zeros((n,) * len(inds), dtype=dtype)
    diag = torch.arange(n)
    values[(diag,) * len(inds)] = 1
    return Tensor(inds, values)


def onehot(ind: Index, value: int, dtype: torch.dtype = REAL_DTYPE) -> Tensor:
    values = torch.zeros((ind.dim,), dtype=dtype)
    values[value] = 1
    return Tensor((ind,), values)


def random_tensor(
    inds: Sequence[Index],
    generator: Optional[torch.Generator] = None,
    dtype: torch.dtype = REAL_DTYPE,
) -> Tensor:
    inds = tuple(inds)
    shape = tuple(i.dim for i in inds)
    return Tensor(inds, torch.randn(shape, generator=generator, dtype=dtype))


def outer(tensors: Sequence[Tensor]) -> Tensor:
    """Tensor product of tensors with pairwise disjoint indices."""
    if not tensors:
        return Tensor((), torch.ones((), dtype=REAL_DTYPE))
    inds: List[Index] = []
    for tensor in tensors:
        inds.extend(tensor.inds)
    return einsum(tensors, inds)


def combine_inds(tensor: Tensor, inds: Sequence[Index], combined: Index) -> Tensor:
    """Fuse ``inds`` (row-major, in the given order) into the single index ``combined``."""
    inds = tuple(inds)
    size = 1
    for ind in inds:
        size *= ind.dim
    if combined.dim != size:
        raise IndexMismatchError(f"Combined index {combined} must have size {size}.")
    rest = tuple(i for i in tensor.inds if i not in inds)
    permuted = tensor.permute(rest + inds)
    values = permuted.values.reshape(tuple(i.dim for i in rest) + (size,))
    return Tensor(rest + (combined,), values)


def _matricize(tensor: Tensor, left_inds: Sequence[Index]):
    left = tuple(left_inds)
    right = tuple(i for i in tensor.inds if i not in left)
    permuted = tensor.permute(left + right)
    m = 1
    for ind in left:
        m *= ind.dim
    n = 1
    for ind in right:
        n *= ind.dim
    return left, right, permuted.values.reshape(m, n)


def qr(tensor: Tensor, left_inds: Sequence[Index], tags: Tuple[str, ...] = ("Link",)):
    """Thin QR split ``tensor = Q * R`` with ``Q`` carrying ``left_inds``."""
    left, right, matrix = _matricize(tensor, left_inds)
    q, r = torch.linalg.qr(matrix, mode="reduced")
    bond = Index(q.shape[1], tags)
    Q = Tensor(left + (bond,), q.reshape(tuple(i.dim for i in left) + (bond.dim,)))
    R = Tensor((bond,) + right, r.reshape((bond.dim,) + tuple(i.dim for i in right)))
    return Q, R


def truncation_rank(
    singular_values: torch.Tensor, cutoff: Optional[float], maxdim: Optional[int]
) -> int:
    """Number of singular values kept under a relative discarded-weight budget."""
    k = int(singular_values.shape[0])
    weights = singular_values.abs() ** 2
    total = float(weights.sum())
    if cutoff is not None and total > 0:
        # tail[i] = weight discarded when keeping the first i values
        tail = torch.flip(torch.cumsum(torch.flip(weights, [0]), 0), [0])
        tail = torch.cat([tail, tail.new_zeros(1)])
        keep = k
        while keep > 1 and float(tail[keep - 1]) <= cutoff * total:
            keep -= 1
        k = keep
    elif total == 0:
        k = 1
    if maxdim is not None:
        k = min(k, maxdim)
    return max(k, 1)


def svd(
    tensor: Tensor,
    left_inds: Sequence[Index],
    cutoff: Optional[float] = None,
    maxdim: Optional[int] = None,
    tags: Tuple[str, ...] = ("Link",),
):
    """Truncated SVD split ``tensor ~ U * SV``.

    Returns ``(U, SV, spectrum)`` where ``U`` carries ``left_inds`` plus the
    new bond, ``SV`` carries the bond plus the remaining indices, and
    ``spectrum`` holds the kept singular values.
    """
    left, right, matrix = _matricize(tensor, left_inds)
    u, s, vh = torch.linalg.svd(matrix, full_matrices=False)
    k = truncation_rank(s, cutoff, maxdim)
    u, s, vh = u[:, :k], s[:k], vh[:k, :]
    bond = link_index(k) if tags == ("Link",) else Index(k, tags)
    U = Tensor(left + (bond,), u.reshape(tuple(i.dim for i in left) + (k,)))
    sv = s.to(vh.dtype).unsqueeze(1) * vh
    SV = Tensor((bond,) + right, sv.reshape((k,) + tuple(i.dim for i in right)))
    return U, SV, s
