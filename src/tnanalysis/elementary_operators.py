"""Finite-difference operators as tree operator networks, and their application.

Operator networks are plain :class:`TensorNetwork` objects whose vertex
tensors carry every site index twice: unprimed (input) and primed (output).
"""

from __future__ import annotations

import logging
from numbers import Number
from typing import Hashable, Optional, Sequence, Union

from .config import TruncationConfig, resolve_truncation
from .exceptions import ConfigurationError
from .function_network import FunctionNetwork
from .indsnetworkmap import IndsNetworkMap
from .network.graphs import same_structure
from .network.tensor import contract, delta, dtype_for, einsum, from_array, outer
from .network.tensornetwork import TensorNetwork, hadamard, link_indices, sum_networks, vertex_links
from .network.truncation import truncate_tree
from .opsum import OpSum, OpTerm, identity_opsum, op_matrix, shift_opsum

logger = logging.getLogger(__name__)


def _require_tree(s: IndsNetworkMap, what: str) -> None:
    if not s.is_tree():
        raise ConfigurationError(f"{what} requires a tree-shaped index network.")


def _term_network(term: OpTerm, s: IndsNetworkMap, first: Hashable) -> TensorNetwork:
    """Bond dimension 1 operator network of a single operator string."""
    dtype = dtype_for(term.coefficient)
    links = link_indices(s.graph, 1)
    tensors = {}
    for v in s.vertices:
        factors = []
        for ind in s.inds(v):
            factors.append(from_array(op_matrix(term.op_on(ind), ind.dim), [ind.prime(), ind], dtype))
        factors.append(delta(vertex_links(s.graph, links, v), dtype))
        tensors[v] = outer(factors)
    tensors[first] = term.coefficient * tensors[first]
    return TensorNetwork(s.graph, tensors)


def ttn_from_opsum(
    opsum: OpSum,
    s: IndsNetworkMap,
    config: Optional[TruncationConfig] = None,
    **kwargs,
) -> TensorNetwork:
    """Compile an operator sum into a compressed tree operator network.

    Each term becomes a product operator network; the terms are added in
    order (direct sum of link spaces) and the sum is SVD-truncated.
    """
    _require_tree(s, "Operator compilation")
    if not len(opsum):
        raise ConfigurationError("Cannot compile an empty operator sum.")
    config = resolve_truncation(config, **kwargs)
    known = {ind for v in s.vertices for ind in s.inds(v)}
    for term in opsum:
        unknown = set(term.as_dict()) - known
        if unknown:
            raise ConfigurationError(f"Operator string acts on unknown indices {sorted(unknown, key=repr)}.")
    first = s.vertices[0]
    total = sum_networks(_term_network(term, s, first) for term in opsum)
    logger.debug("compiled %d operator strings, bond dim %d before truncation", len(opsum), total.max_bond_dim())
    return truncate_tree(total, config)


def plus_shift_ttn(
    s: IndsNetworkMap,
    dimension: int = 1,
    config: Optional[TruncationConfig] = None,
    **kwargs,
) -> TensorNetwork:
    """Operator ``(P f)(x) = f(x + delta)`` along ``dimension``."""
    _require_tree(s, "plus_shift_ttn")
    return ttn_from_opsum(shift_opsum(s.real_dimension_inds(dimension), 1), s, config, **kwargs)


def minus_shift_ttn(
    s: IndsNetworkMap,
    dimension: int = 1,
    config: Optional[TruncationConfig] = None,
    **kwargs,
) -> TensorNetwork:
    """Operator ``(M f)(x) = f(x - delta)`` along ``dimension``."""
    _require_tree(s, "minus_shift_ttn")
    return ttn_from_opsum(shift_opsum(s.real_dimension_inds(dimension), -1), s, config, **kwargs)


def no_shift_ttn(
    s: IndsNetworkMap, config: Optional[TruncationConfig] = None, **kwargs
) -> TensorNetwork:
    _require_tree(s, "no_shift_ttn")
    inds = [ind for v in s.vertices for ind in s.inds(v)]
    return ttn_from_opsum(identity_opsum(inds), s, config, **kwargs)


def stencil(
    s: IndsNetworkMap,
    shifts: Sequence[Number],
    delta_power: int,
    dimension: int = 1,
    config: Optional[TruncationConfig] = None,
    **kwargs,
) -> TensorNetwork:
    """Three-point stencil ``(s+ P + s0 I + s- M) / delta**delta_power``.

    ``shifts`` holds ``[s+, s0, s-]``. The factor ``1 / delta`` is spread
    over the vertices of ``dimension``: each digit of size ``b`` contributes
    ``b**delta_power``.
    """
    _require_tree(s, "stencil")
    if len(shifts) != 3:
        raise ConfigurationError(f"stencil needs exactly 3 shift weights, got {len(shifts)}.")
    config = resolve_truncation(config, **kwargs)
    plus = shifts[0] * plus_shift_ttn(s, dimension, config)
    minus = shifts[2] * minus_shift_ttn(s, dimension, config)
    no_shift = shifts[1] * no_shift_ttn(s, config)

    op = truncate_tree(plus + minus + no_shift, config)
    for ind in s.real_dimension_inds(dimension):
        op.scale_vertex(s.vertex_of(ind), ind.dim**delta_power)
    return truncate_tree(op, config)


def laplacian_operator(
    s: IndsNetworkMap, dimension: int = 1, config: Optional[TruncationConfig] = None, **kwargs
) -> TensorNetwork:
    return stencil(s, [1.0, -2.0, 1.0], 2, dimension, config, **kwargs)


def derivative_operator(
    s: IndsNetworkMap, dimension: int = 1, config: Optional[TruncationConfig] = None, **kwargs
) -> TensorNetwork:
    """Centered first derivative ``(f(x + delta) - f(x - delta)) / (2 delta)``."""
    return 0.5 * stencil(s, [1.0, 0.0, -1.0], 1, dimension, config, **kwargs)


def function_operator(g: FunctionNetwork) -> TensorNetwork:
    """Diagonal operator network multiplying its argument by ``g``."""
    tensors = {}
    for v in g.vertices:
        tensor = g[v]
        for ind in g.indsnetworkmap.inds(v):
            tensor = einsum([tensor, delta([ind, ind.prime()], tensor.dtype)], tensor.inds + (ind.prime(),))
        tensors[v] = tensor
    return TensorNetwork(g.graph, tensors)


def _maybe_truncate(network: TensorNetwork, config: TruncationConfig) -> TensorNetwork:
    if network.is_tree():
        return truncate_tree(network, config)
    logger.debug("skipping truncation on a graph with loops (max bond dim %d)", network.max_bond_dim())
    return network


def multiply(
    f: FunctionNetwork,
    g: FunctionNetwork,
    *more: FunctionNetwork,
    config: Optional[TruncationConfig] = None,
    **kwargs,
) -> FunctionNetwork:
    """Pointwise product ``f(x) * g(x) * ...``, evaluated left to right.

    The bond dimension of each product is the product of its factors'; on
    tree graphs every intermediate result is truncated.
    """
    config = resolve_truncation(config, **kwargs)
    result = f
    for other in (g,) + more:
        if not same_structure(result.graph, other.graph):
            raise ConfigurationError("Cannot multiply functions on different graphs.")
        result._check_same_map(other)
        network = _maybe_truncate(hadamard(result.network, other.network), config)
        result = FunctionNetwork(network, result.indsnetworkmap)
    return result


def _apply(operator: TensorNetwork, f: FunctionNetwork, config: TruncationConfig) -> FunctionNetwork:
    s = f.indsnetworkmap
    _require_tree(s, "Operator application")
    if not same_structure(operator.graph, f.graph):
        raise ConfigurationError("Operator and function live on different graphs.")
    operator = operator.sim_linkinds()
    tensors = {}
    for v in f.vertices:
        sites = set(s.inds(v))
        expected = sites | {ind.prime() for ind in sites}
        if set(operator.siteinds(v)) != expected:
            raise ConfigurationError(f"Operator site indices at {v!r} do not match the function.")
        tensors[v] = contract(operator[v], f[v]).noprime()
    network = TensorNetwork(f.graph, tensors).combine_linkinds()
    before = network.max_bond_dim()
    network = truncate_tree(network, config)
    logger.debug("applied operator: max bond dim %d -> %d", before, network.max_bond_dim())
    return FunctionNetwork(network, s)


def operate(
    operator: Union[TensorNetwork, Sequence[TensorNetwork]],
    f: FunctionNetwork,
    config: Optional[TruncationConfig] = None,
    **kwargs,
) -> FunctionNetwork:
    """Apply an operator network, or a list of them in order, to ``f``."""
    config = resolve_truncation(config, **kwargs)
    if isinstance(operator, TensorNetwork):
        return _apply(operator, f, config)
    for op in operator:
        f = _apply(op, f, config)
    return f
