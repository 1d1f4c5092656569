"""Parameter records passed into the function and operator builders."""

from __future__ import annotations

from dataclasses import dataclass, replace
from numbers import Number
from typing import Optional


@dataclass(frozen=True)
class FunctionParams:
    """Parameters of an elementary function ``c * f(k * x + a)``.

    Attributes:
        a: Additive shift of the argument.
        c: Output scale, applied exactly once at the leading vertex.
        k: Multiplicative factor of the argument.
        nterms: Number of series terms (only used by ``tanh``).
        dimension: Coordinate axis (1-based) the function depends on.
    """

    a: Number = 0.0
    c: Number = 1.0
    k: Number = 1.0
    nterms: int = 20
    dimension: int = 1


@dataclass(frozen=True)
class TruncationConfig:
    """SVD truncation budget.

    ``cutoff`` bounds the discarded weight relative to the total (sum of
    discarded squared singular values over the sum of all of them);
    ``maxdim`` caps the bond dimension. ``cutoff=0`` with ``maxdim=None``
    only removes exactly vanishing singular values.
    """

    cutoff: Optional[float] = 1e-15
    maxdim: Optional[int] = None


DEFAULT_PARAMS = FunctionParams()
DEFAULT_TRUNCATION = TruncationConfig()


def resolve_params(params: Optional[FunctionParams] = None, **overrides) -> FunctionParams:
    """Merge keyword overrides into a parameter record."""
    params = params if params is not None else DEFAULT_PARAMS
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return replace(params, **overrides) if overrides else params


def resolve_truncation(config: Optional[TruncationConfig] = None, **overrides) -> TruncationConfig:
    config = config if config is not None else DEFAULT_TRUNCATION
    if overrides:
        config = replace(config, **overrides)
    return config
