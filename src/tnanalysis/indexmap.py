"""Maps between discrete digit indices and continuous coordinates.

Each site index encodes one positional digit of one coordinate. An index map
records, for every index, which coordinate (``dimension``, 1-based) it
belongs to and its significance (``digit``, 1 = most significant). Setting
index ``i`` to value ``v`` contributes ``v * w(i)`` to its coordinate, where
the weight ``w(i)`` is the reciprocal of the product of the sizes of all
digits of that coordinate up to and including ``i``. With a uniform base
``b`` this is ``v / b**digit`` and the digits of a coordinate span ``[0, 1)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from numbers import Number
from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Union

import torch

from .exceptions import ConfigurationError
from .network.index import Index
from .network.tensor import COMPLEX_DTYPE, REAL_DTYPE

# Relative slack in the greedy digit comparison; absorbs rounding in the running residual.
GREEDY_TOLERANCE = 1e-12

Assignment = Dict[Index, int]


class AbstractIndexMap(ABC):
    """Interface shared by real and complex index maps.

    Subclasses provide the digit/dimension tables, the per-index scalar
    contribution and the greedy decomposition; everything else is derived.
    """

    @property
    @abstractmethod
    def index_digit(self) -> Mapping[Index, int]:
        ...

    @property
    @abstractmethod
    def index_dimension(self) -> Mapping[Index, int]:
        ...

    @property
    @abstractmethod
    def scalartype(self) -> type:
        ...

    @abstractmethod
    def index_value_to_scalar(self, ind: Index, value: int) -> Number:
        ...

    @abstractmethod
    def copy(self) -> "AbstractIndexMap":
        ...

    @abstractmethod
    def _calculate_ind_values(self, xs: List[Number], dims: List[int]) -> Assignment:
        ...

    @property
    def dtype(self) -> torch.dtype:
        return COMPLEX_DTYPE if self.scalartype is complex else REAL_DTYPE

    def is_real(self) -> bool:
        return self.scalartype is float

    def inds(self) -> List[Index]:
        return list(self.index_dimension.keys())

    def dimension(self, ind: Optional[Index] = None) -> int:
        """Number of coordinates, or the coordinate of ``ind``."""
        if ind is not None:
            return self.index_dimension[ind]
        return max(self.index_dimension.values())

    def dimensions(self) -> List[int]:
        return sorted(set(self.index_dimension.values()))

    def digit(self, ind: Index) -> int:
        return self.index_digit[ind]

    def dimension_inds(self, d: int) -> List[Index]:
        """Indices of coordinate ``d``, most significant first."""
        inds = [i for i, dim in self.index_dimension.items() if dim == d]
        return sorted(inds, key=lambda i: (self.index_digit[i], i.id))

    def require_dimension(self, d: int) -> List[Index]:
        inds = self.dimension_inds(d)
        if not inds:
            raise ConfigurationError(f"No indices are assigned to dimension {d}.")
        return inds

    def real_dimension_inds(self, d: int) -> List[Index]:
        """Indices of coordinate ``d`` that encode its real part."""
        return [i for i in self.require_dimension(d) if self._is_real_digit(i)]

    def base(self, d: int = 1) -> int:
        sizes = {i.dim for i in self.require_dimension(d)}
        if len(sizes) != 1:
            raise ConfigurationError(f"Dimension {d} mixes digit sizes {sorted(sizes)}.")
        return sizes.pop()

    def index_values_to_scalars(self, ind: Index) -> List[Number]:
        return [self.index_value_to_scalar(ind, i) for i in range(ind.dim)]

    def calculate_ind_values(
        self,
        xs: Union[Number, Sequence[Number]],
        dims: Union[int, Sequence[int], None] = None,
    ) -> Assignment:
        """Greedy digit decomposition of the coordinates ``xs`` along ``dims``.

        For each coordinate the digits are visited most significant first and
        each takes the largest value whose contribution does not exceed the
        remaining residual. Coordinates that are not exactly representable
        are truncated to the grid below them, with an error of at most one
        unit of the least significant digit.

        Raises:
            ConfigurationError: If a requested dimension has no indices.
        """
        if isinstance(xs, Number):
            xs = [xs]
        xs = list(xs)
        if dims is None:
            dims = list(range(1, len(xs) + 1))
        elif isinstance(dims, int):
            dims = [dims]
        dims = list(dims)
        if len(dims) != len(xs):
            raise ConfigurationError(f"Got {len(xs)} coordinates for {len(dims)} dimensions.")
        for d in dims:
            self.require_dimension(d)
        return self._calculate_ind_values(xs, dims)

    def calculate_p(
        self,
        assignment: Mapping[Index, int],
        dims: Union[int, Sequence[int], None] = None,
    ):
        """Coordinates encoded by a digit assignment, one per dimension.

        Returns a scalar when a single dimension is requested.
        """
        if dims is None:
            dims = self.dimensions()
        elif isinstance(dims, int):
            dims = [dims]
        out = []
        for d in dims:
            total = self.scalartype(0)
            for ind, value in assignment.items():
                if self.index_dimension.get(ind) == d:
                    total += self.index_value_to_scalar(ind, value)
            out.append(total)
        if len(out) == 1:
            return out[0]
        return out

    def grid_points(self, d: int = 1, count: Optional[int] = None) -> List[float]:
        """Evenly spaced representable points of coordinate ``d`` in ``[0, 1)``.

        ``count=None`` enumerates every representable point. Requires all
        real digits of the coordinate to have the same size and
        ``1 <= count <= base**L``.
        """
        inds = self.real_dimension_inds(d)
        sizes = {i.dim for i in inds}
        if len(sizes) != 1:
            raise ConfigurationError(
                f"grid_points needs a uniform digit size on dimension {d}, got {sorted(sizes)}."
            )
        base = sizes.pop()
        resolution = base ** len(inds)
        if count is None:
            count = resolution
        if not 1 <= count <= resolution:
            raise ConfigurationError(
                f"Dimension {d} has {resolution} representable points, cannot pick {count}."
            )
        step = resolution // count
        return [i * step / resolution for i in range(count)]

    def _is_real_digit(self, ind: Index) -> bool:
        return True


def _digit_weights(
    index_digit: Mapping[Index, int], groups: Mapping[Index, Hashable]
) -> Dict[Index, float]:
    """Weight of every digit, checking each group forms a gap-free expansion."""
    by_group: Dict[Hashable, List[Index]] = {}
    for ind, group in groups.items():
        by_group.setdefault(group, []).append(ind)
    weights: Dict[Index, float] = {}
    for group, inds in by_group.items():
        inds = sorted(inds, key=lambda i: index_digit[i])
        digits = [index_digit[i] for i in inds]
        if digits != list(range(1, len(inds) + 1)):
            raise ConfigurationError(
                f"Digits of {group} must be exactly 1..{len(inds)}, got {digits}."
            )
        scale = 1
        for ind in inds:
            scale *= ind.dim
            weights[ind] = 1.0 / scale
    return weights


def _set_ind_values(
    assignment: Assignment, imap: AbstractIndexMap, sorted_inds: Sequence[Index], x: float
) -> None:
    residual = x
    for ind in sorted_inds:
        for value in range(ind.dim - 1, -1, -1):
            contribution = abs(imap.index_value_to_scalar(ind, value))
            if residual >= contribution * (1 - GREEDY_TOLERANCE):
                assignment[ind] = value
                residual -= contribution
                break


class RealIndexMap(AbstractIndexMap):
    """Index map for real coordinates in ``[0, 1)``.

    Args:
        index_dimension: Coordinate (1-based) of every index.
        index_digit: Significance of every index within its coordinate.
    """

    def __init__(self, index_dimension: Mapping[Index, int], index_digit: Mapping[Index, int]):
        if set(index_dimension) != set(index_digit):
            raise ConfigurationError("index_dimension and index_digit must cover the same indices.")
        self._index_dimension = dict(index_dimension)
        self._index_digit = dict(index_digit)
        self._weights = _digit_weights(self._index_digit, self._index_dimension)

    @classmethod
    def from_dimension_inds(cls, dimension_inds: Sequence[Sequence[Index]]) -> "RealIndexMap":
        """Build a map from per-dimension index lists, most significant first."""
        index_dimension = {}
        index_digit = {}
        for d, inds in enumerate(dimension_inds, start=1):
            for digit, ind in enumerate(inds, start=1):
                index_dimension[ind] = d
                index_digit[ind] = digit
        return cls(index_dimension, index_digit)

    @property
    def index_digit(self) -> Mapping[Index, int]:
        return self._index_digit

    @property
    def index_dimension(self) -> Mapping[Index, int]:
        return self._index_dimension

    @property
    def scalartype(self) -> type:
        return float

    def index_value_to_scalar(self, ind: Index, value: int) -> float:
        return value * self._weights[ind]

    def copy(self) -> "RealIndexMap":
        return RealIndexMap(self._index_dimension, self._index_digit)

    def _calculate_ind_values(self, xs, dims) -> Assignment:
        assignment: Assignment = {}
        for x, d in zip(xs, dims):
            _set_ind_values(assignment, self, self.dimension_inds(d), float(x))
        return assignment


class ComplexIndexMap(AbstractIndexMap):
    """Index map for complex coordinates in ``[0, 1) + i[0, 1)``.

    Every coordinate has two digit expansions: one for the real part and one
    for the imaginary part, the latter contributing ``1j * value * weight``.

    Args:
        index_dimension: Coordinate (1-based) of every index.
        index_digit: Significance of every index within its part.
        imaginary: Indices that encode imaginary-part digits.
    """

    def __init__(
        self,
        index_dimension: Mapping[Index, int],
        index_digit: Mapping[Index, int],
        imaginary: Sequence[Index],
    ):
        if set(index_dimension) != set(index_digit):
            raise ConfigurationError("index_dimension and index_digit must cover the same indices.")
        self._index_dimension = dict(index_dimension)
        self._index_digit = dict(index_digit)
        self._imaginary = frozenset(imaginary)
        unknown = self._imaginary - set(self._index_dimension)
        if unknown:
            raise ConfigurationError(f"Imaginary indices {sorted(unknown, key=repr)} are not mapped.")
        groups = {
            ind: (d, "imag" if ind in self._imaginary else "real")
            for ind, d in self._index_dimension.items()
        }
        self._weights = _digit_weights(self._index_digit, groups)

    @property
    def index_digit(self) -> Mapping[Index, int]:
        return self._index_digit

    @property
    def index_dimension(self) -> Mapping[Index, int]:
        return self._index_dimension

    @property
    def scalartype(self) -> type:
        return complex

    def is_imaginary(self, ind: Index) -> bool:
        return ind in self._imaginary

    def _is_real_digit(self, ind: Index) -> bool:
        return ind not in self._imaginary

    def index_value_to_scalar(self, ind: Index, value: int) -> complex:
        scalar = value * self._weights[ind]
        return 1j * scalar if ind in self._imaginary else complex(scalar)

    def copy(self) -> "ComplexIndexMap":
        return ComplexIndexMap(self._index_dimension, self._index_digit, self._imaginary)

    def dimension_inds_part(self, d: int, imaginary: bool) -> List[Index]:
        return [i for i in self.dimension_inds(d) if (i in self._imaginary) == imaginary]

    def _calculate_ind_values(self, xs, dims) -> Assignment:
        assignment: Assignment = {}
        for x, d in zip(xs, dims):
            z = complex(x)
            _set_ind_values(assignment, self, self.dimension_inds_part(d, False), z.real)
            _set_ind_values(assignment, self, self.dimension_inds_part(d, True), z.imag)
        return assignment
