"""A graph decorated with site indices plus the index map that reads them."""

from __future__ import annotations

from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

import networkx as nx

from .exceptions import ConfigurationError
from .indexmap import AbstractIndexMap, ComplexIndexMap, RealIndexMap
from .network.graphs import is_tree, spanning_tree
from .network.index import Index, site_index


class IndsNetworkMap:
    """Site indices laid out on the vertices of a graph.

    Every index known to ``indexmap`` lives at exactly one vertex. Vertices
    may carry several indices, possibly of different coordinates, and the
    vertices of one coordinate need not form a connected subgraph.

    Args:
        graph: Network geometry. The graph is copied.
        site_inds: Indices at every vertex.
        indexmap: Digit/dimension map covering exactly these indices.
    """

    def __init__(
        self,
        graph: nx.Graph,
        site_inds: Mapping[Hashable, Sequence[Index]],
        indexmap: AbstractIndexMap,
    ):
        self.graph = nx.Graph(graph)
        self._site_inds: Dict[Hashable, Tuple[Index, ...]] = {
            v: tuple(site_inds.get(v, ())) for v in self.graph.nodes
        }
        extra = set(site_inds) - set(self.graph.nodes)
        if extra:
            raise ConfigurationError(f"Site indices given for unknown vertices {sorted(extra, key=repr)}.")
        owner: Dict[Index, Hashable] = {}
        for v, inds in self._site_inds.items():
            for ind in inds:
                if ind in owner:
                    raise ConfigurationError(f"Index {ind} appears at {owner[ind]!r} and {v!r}.")
                owner[ind] = v
        if set(owner) != set(indexmap.inds()):
            raise ConfigurationError("The index map and the site indices cover different indices.")
        self._owner = owner
        self.indexmap = indexmap

    @property
    def vertices(self) -> List[Hashable]:
        return list(self.graph.nodes)

    @property
    def edges(self) -> list:
        return list(self.graph.edges)

    def nv(self) -> int:
        return self.graph.number_of_nodes()

    def inds(self, v: Hashable) -> Tuple[Index, ...]:
        return self._site_inds[v]

    def __getitem__(self, v: Hashable) -> Tuple[Index, ...]:
        return self._site_inds[v]

    def site_inds(self) -> Dict[Hashable, Tuple[Index, ...]]:
        return dict(self._site_inds)

    def vertex_of(self, ind: Index) -> Hashable:
        return self._owner[ind]

    def is_tree(self) -> bool:
        return is_tree(self.graph)

    def is_real(self) -> bool:
        return self.indexmap.is_real()

    def dimension(self) -> int:
        return self.indexmap.dimension()

    def base(self, d: int = 1) -> int:
        return self.indexmap.base(d)

    def dimension_inds(self, d: int) -> List[Index]:
        return self.indexmap.dimension_inds(d)

    def real_dimension_inds(self, d: int) -> List[Index]:
        return self.indexmap.real_dimension_inds(d)

    def dimension_vertices(self, d: int) -> List[Hashable]:
        """Vertices carrying digits of coordinate ``d``, most significant first.

        Raises:
            ConfigurationError: If no index belongs to ``d``.
        """
        vertices: List[Hashable] = []
        for ind in self.indexmap.require_dimension(d):
            v = self._owner[ind]
            if v not in vertices:
                vertices.append(v)
        return vertices

    def vertex(self, d: int, digit: int) -> Hashable:
        """Vertex holding the digit of significance ``digit`` of coordinate ``d``."""
        for ind in self.dimension_inds(d):
            if self.indexmap.digit(ind) == digit:
                return self._owner[ind]
        raise ConfigurationError(f"Dimension {d} has no digit {digit}.")

    def index_values_to_scalars(self, ind: Index) -> list:
        return self.indexmap.index_values_to_scalars(ind)

    def calculate_ind_values(self, xs, dims=None):
        return self.indexmap.calculate_ind_values(xs, dims)

    def calculate_p(self, assignment, dims=None):
        return self.indexmap.calculate_p(assignment, dims)

    def grid_points(self, d: int = 1, count: Optional[int] = None) -> List[float]:
        return self.indexmap.grid_points(d, count)

    def with_graph(self, graph: nx.Graph) -> "IndsNetworkMap":
        """Same indices on a different graph over the same vertices."""
        if set(graph.nodes) != set(self.graph.nodes):
            raise ConfigurationError("Restructured graph must keep the vertex set.")
        return IndsNetworkMap(graph, self._site_inds, self.indexmap.copy())

    def spanning_tree(self, root: Optional[Hashable] = None) -> "IndsNetworkMap":
        """Restructure onto a breadth-first spanning tree, dropping loop edges."""
        if self.is_tree():
            return self
        return self.with_graph(spanning_tree(self.graph, root))

    def __repr__(self) -> str:
        return (
            f"IndsNetworkMap(nv={self.nv()}, ne={self.graph.number_of_edges()}, "
            f"dimensions={self.dimension()}, real={self.is_real()})"
        )


def _dimension_vertex_lists(
    graph: nx.Graph, map_dimension: int, dimension_vertices: Optional[Sequence[Sequence[Hashable]]]
) -> List[List[Hashable]]:
    if dimension_vertices is not None:
        lists = [list(vs) for vs in dimension_vertices]
        seen = [v for vs in lists for v in vs]
        if len(seen) != len(set(seen)) or set(seen) != set(graph.nodes):
            raise ConfigurationError("dimension_vertices must partition the vertices of the graph.")
        return lists
    if map_dimension < 1:
        raise ConfigurationError(f"map_dimension must be positive, got {map_dimension}.")
    lists: List[List[Hashable]] = [[] for _ in range(map_dimension)]
    for n, v in enumerate(graph.nodes):
        lists[n % map_dimension].append(v)
    if any(not vs for vs in lists):
        raise ConfigurationError(
            f"Graph with {graph.number_of_nodes()} vertices cannot host {map_dimension} dimensions."
        )
    return lists


def continuous_siteinds(
    graph: nx.Graph,
    map_dimension: int = 1,
    base: int = 2,
    dimension_vertices: Optional[Sequence[Sequence[Hashable]]] = None,
) -> IndsNetworkMap:
    """One base-``base`` digit per vertex, for real coordinates.

    By default vertices are dealt round-robin (in graph order) to the
    ``map_dimension`` coordinates, so the ``n``-th vertex of a coordinate
    holds its ``n``-th most significant digit. ``dimension_vertices`` gives
    the per-coordinate vertex lists explicitly instead.
    """
    lists = _dimension_vertex_lists(graph, map_dimension, dimension_vertices)
    site_inds = {}
    dimension_inds = []
    for d, vertices in enumerate(lists, start=1):
        inds = []
        for digit, v in enumerate(vertices, start=1):
            ind = site_index(base, f"dim={d}", f"digit={digit}")
            site_inds[v] = (ind,)
            inds.append(ind)
        dimension_inds.append(inds)
    return IndsNetworkMap(graph, site_inds, RealIndexMap.from_dimension_inds(dimension_inds))


def complex_continuous_siteinds(
    graph: nx.Graph,
    map_dimension: int = 1,
    base: int = 2,
    dimension_vertices: Optional[Sequence[Sequence[Hashable]]] = None,
) -> IndsNetworkMap:
    """Like :func:`continuous_siteinds` for complex coordinates.

    Every vertex carries a real-part and an imaginary-part digit of equal
    significance.
    """
    lists = _dimension_vertex_lists(graph, map_dimension, dimension_vertices)
    site_inds = {}
    index_dimension = {}
    index_digit = {}
    imaginary = []
    for d, vertices in enumerate(lists, start=1):
        for digit, v in enumerate(vertices, start=1):
            re = site_index(base, f"dim={d}", f"digit={digit}", "real")
            im = site_index(base, f"dim={d}", f"digit={digit}", "imag")
            site_inds[v] = (re, im)
            for ind in (re, im):
                index_dimension[ind] = d
                index_digit[ind] = digit
            imaginary.append(im)
    imap = ComplexIndexMap(index_dimension, index_digit, imaginary)
    return IndsNetworkMap(graph, site_inds, imap)


def indsnetworkmap_from_siteinds(
    graph: nx.Graph,
    site_inds: Mapping[Hashable, Sequence[Index]],
    dimension_vertices: Optional[Sequence[Sequence[Hashable]]] = None,
) -> IndsNetworkMap:
    """Read existing site indices as digits.

    Without ``dimension_vertices`` all indices form one coordinate, with
    digits following the graph's vertex order.
    """
    lists = dimension_vertices if dimension_vertices is not None else [list(graph.nodes)]
    lists = _dimension_vertex_lists(graph, len(lists), lists)
    dimension_inds = [[ind for v in vertices for ind in site_inds.get(v, ())] for vertices in lists]
    return IndsNetworkMap(graph, site_inds, RealIndexMap.from_dimension_inds(dimension_inds))
