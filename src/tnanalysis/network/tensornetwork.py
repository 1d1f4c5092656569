"""Vertex-keyed tensor networks on arbitrary graphs."""

from __future__ import annotations

from numbers import Number
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

import networkx as nx
import torch

from ..exceptions import ConfigurationError
from .contraction import contract_tensors
from .graphs import is_tree, same_structure
from .index import Index, link_index
from .tensor import REAL_DTYPE, Tensor, combine_inds, einsum, promote, random_tensor


class TensorNetwork:
    """One tensor per vertex of a graph, neighbours joined by link indices.

    Link indices are not stored separately: the links along an edge are the
    indices the two end tensors share. Site indices are those a tensor shares
    with none of its neighbours.

    Args:
        graph: Network geometry. The graph is copied.
        tensors: Mapping from every vertex of ``graph`` to its tensor.
    """

    def __init__(self, graph: nx.Graph, tensors: Mapping[Hashable, Tensor]):
        self.graph = nx.Graph(graph)
        missing = [v for v in self.graph.nodes if v not in tensors]
        if missing:
            raise ConfigurationError(f"No tensor given for vertices {missing}.")
        self.tensors: Dict[Hashable, Tensor] = {v: tensors[v] for v in self.graph.nodes}

    @property
    def vertices(self) -> List[Hashable]:
        return list(self.graph.nodes)

    @property
    def edges(self) -> List[Tuple[Hashable, Hashable]]:
        return list(self.graph.edges)

    def __getitem__(self, v: Hashable) -> Tensor:
        return self.tensors[v]

    def __setitem__(self, v: Hashable, tensor: Tensor) -> None:
        if v not in self.tensors:
            raise KeyError(v)
        self.tensors[v] = tensor

    def __len__(self) -> int:
        return len(self.tensors)

    def copy(self) -> "TensorNetwork":
        return TensorNetwork(self.graph, dict(self.tensors))

    @property
    def dtype(self) -> torch.dtype:
        return promote(*(t.dtype for t in self.tensors.values()))

    def neighbors(self, v: Hashable) -> List[Hashable]:
        return list(self.graph.neighbors(v))

    def linkinds(self, u: Hashable, v: Hashable) -> Tuple[Index, ...]:
        others = set(self.tensors[v].inds)
        return tuple(i for i in self.tensors[u].inds if i in others)

    def linkind(self, u: Hashable, v: Hashable) -> Index:
        links = self.linkinds(u, v)
        if len(links) != 1:
            raise ConfigurationError(
                f"Expected one link index on edge {(u, v)}, found {len(links)}."
            )
        return links[0]

    def siteinds(self, v: Hashable) -> Tuple[Index, ...]:
        shared = set()
        for n in self.graph.neighbors(v):
            shared.update(self.tensors[n].inds)
        return tuple(i for i in self.tensors[v].inds if i not in shared)

    def all_siteinds(self) -> List[Index]:
        out: List[Index] = []
        for v in self.vertices:
            out.extend(self.siteinds(v))
        return out

    def bond_dims(self) -> Dict[Tuple[Hashable, Hashable], int]:
        out = {}
        for u, v in self.edges:
            size = 1
            for ind in self.linkinds(u, v):
                size *= ind.dim
            out[(u, v)] = size
        return out

    def max_bond_dim(self) -> int:
        dims = self.bond_dims()
        return max(dims.values()) if dims else 1

    def is_tree(self) -> bool:
        return is_tree(self.graph)

    def project(self, assignment: Mapping[Index, int]) -> "TensorNetwork":
        """Fix site index values; indices absent from ``assignment`` stay open."""
        return TensorNetwork(
            self.graph, {v: t.project(assignment) for v, t in self.tensors.items()}
        )

    def contract(self, out_inds: Optional[Sequence[Index]] = None) -> Tensor:
        return contract_tensors(list(self.tensors.values()), out_inds)

    def scalar(self) -> Number:
        return self.contract(()).scalar()

    def scale_vertex(self, v: Hashable, factor: Number) -> None:
        self.tensors[v] = factor * self.tensors[v]

    def __mul__(self, other):
        if isinstance(other, Number):
            out = self.copy()
            out.scale_vertex(self.vertices[0], other)
            return out
        return NotImplemented

    def __rmul__(self, other):
        return self.__mul__(other)

    def __neg__(self) -> "TensorNetwork":
        return self * -1.0

    def __add__(self, other: "TensorNetwork") -> "TensorNetwork":
        if not isinstance(other, TensorNetwork):
            return NotImplemented
        return add(self, other)

    def __sub__(self, other: "TensorNetwork") -> "TensorNetwork":
        return add(self, -other)

    def sim_linkinds(self) -> "TensorNetwork":
        """Copy with every link index replaced by a fresh identity."""
        out = self.copy()
        for u, v in self.edges:
            mapping = {ind: ind.sim() for ind in self.linkinds(u, v)}
            out.tensors[u] = out.tensors[u].replace_inds(mapping)
            out.tensors[v] = out.tensors[v].replace_inds(mapping)
        return out

    def combine_linkinds(self) -> "TensorNetwork":
        """Fuse parallel link indices so that every edge carries exactly one."""
        out = self.copy()
        for u, v in self.edges:
            links = out.linkinds(u, v)
            if len(links) == 1:
                continue
            links = tuple(sorted(links, key=lambda i: (i.id, i.plev)))
            size = 1
            for ind in links:
                size *= ind.dim
            combined = link_index(size)
            if not links:
                # an edge without a link joins through a trivial bond
                out.tensors[u] = _append_trivial(out.tensors[u], combined)
                out.tensors[v] = _append_trivial(out.tensors[v], combined)
                continue
            out.tensors[u] = combine_inds(out.tensors[u], links, combined)
            out.tensors[v] = combine_inds(out.tensors[v], links, combined)
        return out

    def truncate(self, config=None, root: Optional[Hashable] = None, **kwargs) -> "TensorNetwork":
        from .truncation import truncate_tree

        return truncate_tree(self, config, root=root, **kwargs)

    def __repr__(self) -> str:
        return (
            f"TensorNetwork(nv={len(self.tensors)}, ne={self.graph.number_of_edges()}, "
            f"maxdim={self.max_bond_dim()}, dtype={self.dtype})"
        )


def _append_trivial(tensor: Tensor, ind: Index) -> Tensor:
    return Tensor(tensor.inds + (ind,), tensor.values.unsqueeze(-1))


def _check_same_layout(a: TensorNetwork, b: TensorNetwork, what: str) -> None:
    if not same_structure(a.graph, b.graph):
        raise ConfigurationError(f"Cannot {what} networks on different graphs.")
    for v in a.vertices:
        if set(a.siteinds(v)) != set(b.siteinds(v)):
            raise ConfigurationError(f"Cannot {what} networks with different site indices at {v!r}.")


def add(a: TensorNetwork, b: TensorNetwork) -> TensorNetwork:
    """Network sum as a direct sum of link spaces.

    Every vertex tensor becomes block diagonal over its links: the first
    block holds ``a`` and the second ``b``, so that contracting the sum gives
    the sum of the two contractions. The bond dimension on every edge is the
    sum of the summands' bond dimensions.
    """
    _check_same_layout(a, b, "add")
    if a.graph.number_of_nodes() > 1 and not nx.is_connected(a.graph):
        raise ConfigurationError("Network addition requires a connected graph.")
    a = a.combine_linkinds()
    b = b.combine_linkinds()
    dtype = promote(a.dtype, b.dtype)

    if not a.edges:
        return TensorNetwork(a.graph, {v: a[v] + b[v] for v in a.vertices})

    new_links = {}
    for u, v in a.edges:
        da, db = a.linkind(u, v).dim, b.linkind(u, v).dim
        new_links[frozenset((u, v))] = link_index(da + db)

    tensors = {}
    for v in a.vertices:
        sites = a.siteinds(v)
        nbrs = a.neighbors(v)
        links_a = [a.linkind(v, n) for n in nbrs]
        links_b = [b.linkind(v, n) for n in nbrs]
        links = [new_links[frozenset((v, n))] for n in nbrs]
        ta = a[v].permute(tuple(sites) + tuple(links_a)).values.to(dtype)
        tb = b[v].permute(tuple(sites) + tuple(links_b)).values.to(dtype)
        values = torch.zeros(
            tuple(i.dim for i in sites) + tuple(i.dim for i in links), dtype=dtype
        )
        head = (slice(None),) * len(sites)
        values[head + tuple(slice(0, i.dim) for i in links_a)] = ta
        values[head + tuple(slice(i.dim, None) for i in links_a)] = tb
        tensors[v] = Tensor(tuple(sites) + tuple(links), values)
    return TensorNetwork(a.graph, tensors)


def sum_networks(networks: Iterable[TensorNetwork]) -> TensorNetwork:
    """Left-to-right sum, so repeated calls reproduce the same rounding."""
    networks = list(networks)
    if not networks:
        raise ValueError("Cannot sum an empty list of networks.")
    total = networks[0]
    for network in networks[1:]:
        total = add(total, network)
    return total


def hadamard(a: TensorNetwork, b: TensorNetwork) -> TensorNetwork:
    """Pointwise product over shared site indices.

    Site indices are kept (not summed), so each vertex tensor holds the
    product of the two operands' entries for every site configuration. The
    two link spaces on every edge are fused into their tensor product.
    """
    _check_same_layout(a, b, "multiply")
    b = b.sim_linkinds()
    tensors = {}
    for v in a.vertices:
        sites = a.siteinds(v)
        links_a = [i for i in a[v].inds if i not in sites]
        links_b = [i for i in b[v].inds if i not in sites]
        tensors[v] = einsum([a[v], b[v]], tuple(sites) + tuple(links_a) + tuple(links_b))
    return TensorNetwork(a.graph, tensors).combine_linkinds()


def link_indices(graph: nx.Graph, dim: int = 1) -> Dict[frozenset, Index]:
    return {frozenset((u, v)): link_index(dim) for u, v in graph.edges}


def vertex_links(graph: nx.Graph, links: Mapping[frozenset, Index], v: Hashable) -> List[Index]:
    return [links[frozenset((v, n))] for n in graph.neighbors(v)]


def random_tensornetwork(
    graph: nx.Graph,
    site_inds: Mapping[Hashable, Sequence[Index]],
    link_space: int = 1,
    seed: Optional[int] = None,
    dtype: torch.dtype = REAL_DTYPE,
) -> TensorNetwork:
    """Network with normally distributed entries, reproducible from ``seed``."""
    generator = torch.Generator()
    if seed is not None:
        generator.manual_seed(seed)
    links = link_indices(graph, link_space)
    tensors = {}
    for v in graph.nodes:
        inds = tuple(site_inds.get(v, ())) + tuple(vertex_links(graph, links, v))
        tensors[v] = random_tensor(inds, generator=generator, dtype=dtype)
    return TensorNetwork(graph, tensors)
