"""
Dense tensor and tensor-network layer built on PyTorch.
"""

from .index import Index, link_index, site_index
from .tensor import (
    COMPLEX_DTYPE,
    REAL_DTYPE,
    Tensor,
    combine_inds,
    contract,
    delta,
    einsum,
    from_array,
    onehot,
    ones,
    outer,
    qr,
    random_tensor,
    svd,
)
from .contraction import contract_tensors, get_omeco_tree
from .graphs import (
    comb_tree_graph,
    edge_toward_vertex,
    grid_graph,
    is_tree,
    path_graph,
    random_tree_graph,
    spanning_tree,
)
from .tensornetwork import (
    TensorNetwork,
    add,
    hadamard,
    link_indices,
    random_tensornetwork,
    sum_networks,
    vertex_links,
)
from .truncation import orthogonalize, truncate_tree

__all__ = [
    # Indices and tensors
    'Index',
    'link_index',
    'site_index',
    'Tensor',
    'REAL_DTYPE',
    'COMPLEX_DTYPE',
    'combine_inds',
    'contract',
    'delta',
    'einsum',
    'from_array',
    'onehot',
    'ones',
    'outer',
    'qr',
    'random_tensor',
    'svd',
    # Contraction
    'contract_tensors',
    'get_omeco_tree',
    # Graphs
    'comb_tree_graph',
    'edge_toward_vertex',
    'grid_graph',
    'is_tree',
    'path_graph',
    'random_tree_graph',
    'spanning_tree',
    # Networks
    'TensorNetwork',
    'add',
    'hadamard',
    'link_indices',
    'random_tensornetwork',
    'sum_networks',
    'vertex_links',
    'orthogonalize',
    'truncate_tree',
]
