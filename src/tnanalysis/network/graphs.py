"""Graph constructors and queries used to lay out networks."""

from __future__ import annotations

import random
from typing import Hashable, Optional, Tuple

import networkx as nx


def path_graph(n: int) -> nx.Graph:
    """Chain of ``n`` vertices labelled ``1..n``."""
    g = nx.Graph()
    g.add_nodes_from(range(1, n + 1))
    g.add_edges_from((i, i + 1) for i in range(1, n))
    return g


def grid_graph(dims: Tuple[int, int]) -> nx.Graph:
    """Rectangular grid with vertices ``(i, j)``, 1-based, row-major order."""
    nx_, ny = dims
    g = nx.Graph()
    g.add_nodes_from((i, j) for j in range(1, ny + 1) for i in range(1, nx_ + 1))
    for j in range(1, ny + 1):
        for i in range(1, nx_ + 1):
            if i < nx_:
                g.add_edge((i, j), (i + 1, j))
            if j < ny:
                g.add_edge((i, j), (i, j + 1))
    return g


def comb_tree_graph(dims: Tuple[int, int]) -> nx.Graph:
    """Comb: a backbone ``(i, 1)`` with a tooth ``(i, 1..ny)`` hanging off each vertex."""
    nx_, ny = dims
    g = nx.Graph()
    g.add_nodes_from((i, j) for j in range(1, ny + 1) for i in range(1, nx_ + 1))
    for i in range(1, nx_):
        g.add_edge((i, 1), (i + 1, 1))
    for i in range(1, nx_ + 1):
        for j in range(1, ny):
            g.add_edge((i, j), (i, j + 1))
    return g


def random_tree_graph(n: int, seed: Optional[int] = None) -> nx.Graph:
    """Uniformly random labelled tree on vertices ``0..n-1``."""
    if n <= 2:
        return nx.path_graph(n)
    rng = random.Random(seed)
    sequence = [rng.randrange(n) for _ in range(n - 2)]
    tree = nx.from_prufer_sequence(sequence)
    g = nx.Graph()
    g.add_nodes_from(range(n))
    g.add_edges_from(tree.edges())
    return g


def is_tree(g: nx.Graph) -> bool:
    return g.number_of_nodes() > 0 and nx.is_tree(g)


def spanning_tree(g: nx.Graph, root: Optional[Hashable] = None) -> nx.Graph:
    """Breadth-first spanning tree of ``g``; vertex order is preserved."""
    if root is None:
        root = next(iter(g.nodes))
    tree = nx.Graph()
    tree.add_nodes_from(g.nodes)
    tree.add_edges_from(nx.bfs_edges(g, root))
    return tree


def edge_toward_vertex(tree: nx.Graph, v: Hashable, target: Hashable) -> Tuple[Hashable, Hashable]:
    """First edge on the path from ``v`` to ``target``."""
    path = nx.shortest_path(tree, v, target)
    if len(path) < 2:
        raise ValueError(f"Vertex {v!r} is the target itself.")
    return (path[0], path[1])


def same_structure(g1: nx.Graph, g2: nx.Graph) -> bool:
    if set(g1.nodes) != set(g2.nodes):
        return False
    edges1 = {frozenset(e) for e in g1.edges}
    edges2 = {frozenset(e) for e in g2.edges}
    return edges1 == edges2
