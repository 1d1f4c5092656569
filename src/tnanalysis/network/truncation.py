"""SVD truncation of tree tensor networks.

The sweep follows the usual two-stage scheme:

1. Orthogonalise every tensor toward the root with QR decompositions, so
   that the root carries the whole norm (orthogonality centre).
2. Walk the tree depth first. Before descending an edge, split the centre
   tensor with an SVD across that edge, truncate, and push the singular
   values into the child, which becomes the new centre. On the way back the
   child is QR-decomposed toward its parent so that the centre returns.

Every bond is therefore truncated while the centre sits next to it, which
makes each local truncation optimal in the Frobenius norm.
"""

from __future__ import annotations

import logging
from typing import Hashable, Optional

import networkx as nx

from ..config import TruncationConfig, resolve_truncation
from ..exceptions import ConfigurationError
from .tensor import contract, qr, svd
from .tensornetwork import TensorNetwork

logger = logging.getLogger(__name__)


def orthogonalize(network: TensorNetwork, root: Hashable) -> TensorNetwork:
    """Move the orthogonality centre of a tree network to ``root``."""
    tn = network.combine_linkinds()
    parents = {}
    for parent, child in nx.dfs_edges(tn.graph, root):
        parents[child] = parent
    for v in nx.dfs_postorder_nodes(tn.graph, root):
        if v == root:
            continue
        p = parents[v]
        link = tn.linkind(v, p)
        left = [i for i in tn[v].inds if i != link]
        Q, R = qr(tn[v], left)
        tn[v] = Q
        tn[p] = contract(R, tn[p])
    return tn


def truncate_tree(
    network: TensorNetwork,
    config: Optional[TruncationConfig] = None,
    root: Optional[Hashable] = None,
    **kwargs,
) -> TensorNetwork:
    """Truncate every bond of a tree network to the given budget.

    Args:
        network: Tree-shaped network. Not modified.
        config: Cutoff and maximal bond dimension.
        root: Vertex used as orthogonality centre; the first vertex if None.
        **kwargs: ``cutoff``/``maxdim`` overrides of ``config``.

    Returns:
        A new network evaluating to the truncated approximation.
    """
    if not network.is_tree():
        raise ConfigurationError("Truncation requires a tree-shaped network.")
    config = resolve_truncation(config, **kwargs)
    if root is None:
        root = network.vertices[0]
    before = network.max_bond_dim()
    tn = orthogonalize(network, root)

    def sweep(v: Hashable, parent: Optional[Hashable]) -> None:
        for child in tn.neighbors(v):
            if child == parent:
                continue
            link = tn.linkind(v, child)
            left = [i for i in tn[v].inds if i != link]
            U, SV, _ = svd(tn[v], left, cutoff=config.cutoff, maxdim=config.maxdim)
            tn[v] = U
            tn[child] = contract(SV, tn[child])
            sweep(child, v)
            back = tn.linkind(child, v)
            child_left = [i for i in tn[child].inds if i != back]
            Q, R = qr(tn[child], child_left)
            tn[child] = Q
            tn[v] = contract(R, tn[v])

    sweep(root, None)
    logger.debug(
        "truncated tree network (cutoff=%s, maxdim=%s): max bond dim %d -> %d",
        config.cutoff,
        config.maxdim,
        before,
        tn.max_bond_dim(),
    )
    return tn