"""Tensor networks read as functions of continuous coordinates."""

from __future__ import annotations

from numbers import Number
from typing import Hashable, List, Mapping, Optional, Sequence, Union

import networkx as nx

from .exceptions import ConfigurationError
from .indsnetworkmap import IndsNetworkMap, indsnetworkmap_from_siteinds
from .network.index import Index
from .network.tensor import Tensor
from .network.tensornetwork import TensorNetwork, add


class FunctionNetwork:
    """A tensor network paired with the map reading its site indices.

    Fixing every site index to the digits of a coordinate tuple ``x`` and
    contracting the network yields ``f(x)``.

    Args:
        network: One tensor per vertex of ``s.graph``.
        s: Site indices and digit map.
    """

    def __init__(self, network: TensorNetwork, s: IndsNetworkMap):
        if set(network.vertices) != set(s.vertices):
            raise ConfigurationError("Network and index map have different vertices.")
        self.network = network
        self.indsnetworkmap = s

    @classmethod
    def from_tensornetwork(
        cls,
        network: TensorNetwork,
        dimension_vertices: Optional[Sequence[Sequence[Hashable]]] = None,
    ) -> "FunctionNetwork":
        """View an existing network as a function, one digit per site index."""
        site_inds = {v: network.siteinds(v) for v in network.vertices}
        s = indsnetworkmap_from_siteinds(network.graph, site_inds, dimension_vertices)
        return cls(network, s)

    @property
    def graph(self) -> nx.Graph:
        return self.network.graph

    @property
    def indexmap(self):
        return self.indsnetworkmap.indexmap

    @property
    def vertices(self) -> List[Hashable]:
        return self.network.vertices

    def __getitem__(self, v: Hashable) -> Tensor:
        return self.network[v]

    def __setitem__(self, v: Hashable, tensor: Tensor) -> None:
        self.network[v] = tensor

    def copy(self) -> "FunctionNetwork":
        return FunctionNetwork(self.network.copy(), self.indsnetworkmap)

    def dimension(self) -> int:
        return self.indsnetworkmap.dimension()

    def base(self, d: int = 1) -> int:
        return self.indsnetworkmap.base(d)

    def dimension_vertices(self, d: int = 1) -> List[Hashable]:
        return self.indsnetworkmap.dimension_vertices(d)

    def bond_dims(self):
        return self.network.bond_dims()

    def max_bond_dim(self) -> int:
        return self.network.max_bond_dim()

    def calculate_ind_values(self, xs, dims=None):
        return self.indsnetworkmap.calculate_ind_values(xs, dims)

    def evaluate_assignment(self, assignment: Mapping[Index, int]) -> Number:
        """Contract the network with every site index fixed by ``assignment``."""
        sites = [i for v in self.vertices for i in self.indsnetworkmap.inds(v)]
        missing = [i for i in sites if i not in assignment]
        if missing:
            dims = sorted({self.indexmap.dimension(i) for i in missing})
            raise ConfigurationError(f"No coordinate given for dimensions {dims}.")
        return self.network.project(assignment).scalar()

    def calculate_fxyz(
        self, xs: Sequence[Number], dims: Union[int, Sequence[int], None] = None
    ) -> Number:
        """Evaluate the function at the coordinates ``xs`` of dimensions ``dims``."""
        return self.evaluate_assignment(self.calculate_ind_values(xs, dims))

    def calculate_fx(self, x: Number) -> Number:
        if self.dimension() != 1:
            raise ConfigurationError("calculate_fx needs a one-dimensional function; use calculate_fxyz.")
        return self.calculate_fxyz([x], [1])

    def truncate(self, config=None, **kwargs) -> "FunctionNetwork":
        return FunctionNetwork(self.network.truncate(config, **kwargs), self.indsnetworkmap)

    def _check_same_map(self, other: "FunctionNetwork") -> None:
        if set(self.indexmap.inds()) != set(other.indexmap.inds()):
            raise ConfigurationError("Functions are defined over different site indices.")

    def __add__(self, other: "FunctionNetwork") -> "FunctionNetwork":
        if not isinstance(other, FunctionNetwork):
            return NotImplemented
        self._check_same_map(other)
        return FunctionNetwork(add(self.network, other.network), self.indsnetworkmap)

    def __sub__(self, other: "FunctionNetwork") -> "FunctionNetwork":
        if not isinstance(other, FunctionNetwork):
            return NotImplemented
        return self + (-other)

    def __neg__(self) -> "FunctionNetwork":
        return self * -1.0

    def __mul__(self, other):
        if isinstance(other, Number):
            return FunctionNetwork(self.network * other, self.indsnetworkmap)
        if isinstance(other, FunctionNetwork):
            from .elementary_operators import multiply

            return multiply(self, other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self.__mul__(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"FunctionNetwork({self.network!r}, {self.indsnetworkmap!r})"
