"""Analytic tensor network constructions of elementary functions.

Every builder takes an :class:`IndsNetworkMap` and returns a
:class:`FunctionNetwork` for ``c * f(k * x + a)``, where ``x`` is the
coordinate selected by ``dimension``. Parameters come from a
:class:`FunctionParams` record, overridable by keyword.

The global scale ``c`` is always applied exactly once, at the vertex that
holds the most significant digit of the target coordinate.
"""

from __future__ import annotations

import cmath
import logging
import math
from numbers import Number
from typing import Dict, Hashable, List, Optional, Sequence

import torch

from .config import FunctionParams, resolve_params
from .exceptions import ConfigurationError
from .function_network import FunctionNetwork
from .indsnetworkmap import IndsNetworkMap
from .network.graphs import edge_toward_vertex
from .network.index import Index
from .network.tensor import (
    COMPLEX_DTYPE,
    REAL_DTYPE,
    Tensor,
    delta,
    dtype_for,
    from_array,
    onehot,
    ones,
    outer,
)
from .network.tensornetwork import (
    TensorNetwork,
    link_indices,
    random_tensornetwork,
    vertex_links,
)

logger = logging.getLogger(__name__)


def _exp(z: Number) -> Number:
    return cmath.exp(z) if isinstance(z, complex) else math.exp(z)


def _scale_vertex(psi: FunctionNetwork, v: Hashable, factor: Number) -> None:
    psi[v] = factor * psi[v]


def c_tensor(sites: Sequence[Index], links: Sequence[Index], dtype: torch.dtype = REAL_DTYPE) -> Tensor:
    """Tensor independent of the site values and diagonal over the links."""
    return outer([ones(sites, dtype), delta(links, dtype)])


def const_network(
    s: IndsNetworkMap,
    params: Optional[FunctionParams] = None,
    *,
    c: Optional[Number] = None,
    linkdim: int = 1,
) -> FunctionNetwork:
    """Build ``f(x, y, ...) = c`` with link dimension ``linkdim``.

    Every vertex holds ``(c / linkdim) ** (1 / nv)`` times a delta over its
    links, so the ``linkdim`` consistent link configurations add up to
    ``c``. Negative real ``c`` is promoted to complex before the root is
    taken (principal branch).
    """
    p = resolve_params(params, c=c)
    nv = s.nv()
    value = p.c / linkdim
    if not isinstance(value, complex) and value < 0:
        value = complex(value)
    root = value ** (1.0 / nv)
    dtype = COMPLEX_DTYPE if isinstance(root, complex) else REAL_DTYPE

    links = link_indices(s.graph, linkdim)
    tensors = {}
    for v in s.vertices:
        tensors[v] = root * c_tensor(s.inds(v), vertex_links(s.graph, links, v), dtype)
    return FunctionNetwork(TensorNetwork(s.graph, tensors), s)


def exp_network(
    s: IndsNetworkMap, params: Optional[FunctionParams] = None, **kwargs
) -> FunctionNetwork:
    """Product-state (bond dimension 1) representation of ``c * exp(k * x + a)``.

    Since ``x`` is a sum of digit contributions, ``exp(k * x)`` factorises
    into one vector per digit; ``exp(a)`` is spread evenly over the vertices
    of the coordinate.
    """
    p = resolve_params(params, **kwargs)
    psi = const_network(s)
    dim_vertices = s.dimension_vertices(p.dimension)
    shift = _exp(p.a / len(dim_vertices))
    for v in dim_vertices:
        sites = s.inds(v)
        links = [i for i in psi[v].inds if i not in sites]
        factors = []
        for ind in sites:
            if s.indexmap.dimension(ind) == p.dimension:
                values = [_exp(p.k * xi) for xi in s.index_values_to_scalars(ind)]
                factors.append(from_array(values, [ind]))
            else:
                factors.append(ones([ind]))
        factors.append(delta(links))
        psi[v] = shift * outer(factors)

    _scale_vertex(psi, dim_vertices[0], p.c)
    return psi


def cosh_network(
    s: IndsNetworkMap, params: Optional[FunctionParams] = None, **kwargs
) -> FunctionNetwork:
    """Bond dimension 2 representation of ``c * cosh(k * x + a)``."""
    p = resolve_params(params, **kwargs)
    psi1 = exp_network(s, p, c=0.5 * p.c)
    psi2 = exp_network(s, p, a=-p.a, k=-p.k, c=0.5 * p.c)
    return psi1 + psi2


def sinh_network(
    s: IndsNetworkMap, params: Optional[FunctionParams] = None, **kwargs
) -> FunctionNetwork:
    """Bond dimension 2 representation of ``c * sinh(k * x + a)``."""
    p = resolve_params(params, **kwargs)
    psi1 = exp_network(s, p, c=0.5 * p.c)
    psi2 = exp_network(s, p, a=-p.a, k=-p.k, c=-0.5 * p.c)
    return psi1 + psi2


def cos_network(
    s: IndsNetworkMap, params: Optional[FunctionParams] = None, **kwargs
) -> FunctionNetwork:
    """Bond dimension 2 representation of ``c * cos(k * x + a)`` (complex valued)."""
    p = resolve_params(params, **kwargs)
    psi1 = exp_network(s, p, a=p.a * 1j, k=p.k * 1j, c=0.5 * p.c)
    psi2 = exp_network(s, p, a=-p.a * 1j, k=-p.k * 1j, c=0.5 * p.c)
    return psi1 + psi2


def sin_network(
    s: IndsNetworkMap, params: Optional[FunctionParams] = None, **kwargs
) -> FunctionNetwork:
    """Bond dimension 2 representation of ``c * sin(k * x + a)`` (complex valued)."""
    p = resolve_params(params, **kwargs)
    psi1 = exp_network(s, p, a=p.a * 1j, k=p.k * 1j, c=-0.5j * p.c)
    psi2 = exp_network(s, p, a=-p.a * 1j, k=-p.k * 1j, c=0.5j * p.c)
    return psi1 + psi2


def tanh_network(
    s: IndsNetworkMap, params: Optional[FunctionParams] = None, **kwargs
) -> FunctionNetwork:
    """Series approximation of ``c * tanh(k * x + a)``.

    Uses ``tanh(y) = 1 + 2 * sum_n (-1)**n * exp(-2 n y)``, valid for
    ``y > 0``, cut after ``nterms`` terms. The error decays like
    ``exp(-2 * nterms * y)``; the bond dimension is ``nterms + 1``. Terms are
    added left to right.
    """
    p = resolve_params(params, **kwargs)
    psi = const_network(s)
    first = s.dimension_vertices(p.dimension)[0]
    for n in range(1, p.nterms + 1):
        term = exp_network(s, p, a=-2 * p.a * n, k=-2 * p.k * n, c=2 * (-1) ** n)
        psi = psi + term
    logger.debug("tanh series with %d terms, max bond dim %d", p.nterms, psi.max_bond_dim())

    _scale_vertex(psi, first, p.c)
    return psi


def carrier_tensor(
    sites: Sequence[Index],
    site_scalars: Sequence[Sequence[Number]],
    alphas: Sequence[Index],
    beta: Index,
    dtype: torch.dtype = REAL_DTYPE,
) -> Tensor:
    """Vertex tensor propagating scaled powers of the coordinate along a tree.

    With ``x`` the sum of this vertex's digit contributions and the incoming
    links ``alphas`` carrying ``X_i**alpha_i / alpha_i!`` from the subtrees
    below, the entry is ``x**(beta - sum(alpha)) / (beta - sum(alpha))!``
    (zero when the exponent is negative). Contracting the subtree therefore
    gives ``(x + sum_i X_i)**beta / beta!`` on the outgoing link ``beta``.
    A vertex without digits of the coordinate (``x = 0``) passes the carrier
    through.
    """
    n = beta.dim
    site_shape = tuple(i.dim for i in sites)
    x = torch.zeros(site_shape, dtype=dtype)
    for axis, scalars in enumerate(site_scalars):
        shape = [1] * len(sites)
        shape[axis] = sites[axis].dim
        x = x + torch.as_tensor(scalars, dtype=dtype).reshape(shape)

    terms = [torch.ones_like(x)]
    for j in range(1, n):
        terms.append(terms[-1] * x / j)
    powers = torch.stack(terms, dim=-1)

    m = len(alphas)
    alpha_sum = torch.zeros((n,) * m, dtype=torch.long)
    for axis in range(m):
        shape = [1] * m
        shape[axis] = n
        alpha_sum = alpha_sum + torch.arange(n).reshape(shape)

    values = torch.zeros(site_shape + (n,) * m + (n,), dtype=dtype)
    for b in range(n):
        exponent = b - alpha_sum
        mask = (exponent >= 0).to(dtype)
        values[..., b] = powers[..., exponent.clamp(min=0)] * mask
    return Tensor(tuple(sites) + tuple(alphas) + (beta,), values)


def poly_network(
    s: IndsNetworkMap,
    coeffs: Sequence[Number],
    params: Optional[FunctionParams] = None,
    **kwargs,
) -> FunctionNetwork:
    """Build ``c * sum_i coeffs[i] * (k * x)**i`` with bond dimension ``len(coeffs)``.

    The graph is first reduced to a breadth-first spanning tree (loop edges
    dropped); the returned function lives on the restructured map. A carrier
    index of size ``len(coeffs)`` runs along every tree edge toward the
    source vertex (most significant digit of the coordinate), where it is
    contracted against the coefficients.
    """
    p = resolve_params(params, **kwargs)
    coeffs = list(coeffs)
    n = len(coeffs)
    if n == 0:
        raise ConfigurationError("poly_network needs at least one coefficient.")
    if n == 1:
        return const_network(s, c=p.c * coeffs[0])

    coeffs = [coef * (p.k**i) for i, coef in enumerate(coeffs)]
    tree = s.spanning_tree()
    dim_vertices = tree.dimension_vertices(p.dimension)
    source = dim_vertices[0]
    if tree.is_real() and dtype_for(coeffs, p.c) == REAL_DTYPE:
        dtype = REAL_DTYPE
    else:
        dtype = COMPLEX_DTYPE

    links = link_indices(tree.graph, n)
    tensors: Dict[Hashable, Tensor] = {}
    for v in tree.vertices:
        sites = tree.inds(v)
        site_scalars: List[List[Number]] = []
        for ind in sites:
            if tree.indexmap.dimension(ind) == p.dimension:
                site_scalars.append(tree.index_values_to_scalars(ind))
            else:
                site_scalars.append([0.0] * ind.dim)
        if v == source:
            beta = Index(n, ("Carrier",))
            alphas = vertex_links(tree.graph, links, v)
        else:
            _, parent = edge_toward_vertex(tree.graph, v, source)
            beta = links[frozenset((v, parent))]
            alphas = [links[frozenset((v, u))] for u in tree.graph.neighbors(v) if u != parent]
        tensor = carrier_tensor(sites, site_scalars, alphas, beta, dtype)
        if v == source:
            weights = [coef * math.factorial(j) for j, coef in enumerate(coeffs)]
            tensor = tensor * from_array(weights, [beta], dtype)
        tensors[v] = tensor

    psi = FunctionNetwork(TensorNetwork(tree.graph, tensors), tree)
    _scale_vertex(psi, source, p.c)
    return psi


def random_network(
    s: IndsNetworkMap, link_space: int = 1, seed: Optional[int] = None
) -> FunctionNetwork:
    """Function with normally distributed tensor entries, reproducible from ``seed``."""
    tn = random_tensornetwork(s.graph, s.site_inds(), link_space, seed, dtype=s.indexmap.dtype)
    return FunctionNetwork(tn, s)


def delta_xyz(
    s: IndsNetworkMap, xs: Sequence[Number], dims: Optional[Sequence[int]] = None
) -> FunctionNetwork:
    """Product state equal to one on the digit configuration of ``xs`` and zero elsewhere."""
    assignment = s.calculate_ind_values(xs, dims)
    missing = [i for v in s.vertices for i in s.inds(v) if i not in assignment]
    if missing:
        dims_missing = sorted({s.indexmap.dimension(i) for i in missing})
        raise ConfigurationError(f"No coordinate given for dimensions {dims_missing}.")
    links = link_indices(s.graph, 1)
    tensors = {}
    for v in s.vertices:
        factors = [onehot(ind, assignment[ind]) for ind in s.inds(v)]
        factors.append(delta(vertex_links(s.graph, links, v)))
        tensors[v] = outer(factors)
    return FunctionNetwork(TensorNetwork(s.graph, tensors), s)


def delta_x(s: IndsNetworkMap, x: Number) -> FunctionNetwork:
    if s.dimension() != 1:
        raise ConfigurationError("delta_x needs a one-dimensional map; use delta_xyz.")
    return delta_xyz(s, [x], [1])


ELEMENTARY_FUNCTIONS = {
    "const": const_network,
    "exp": exp_network,
    "cosh": cosh_network,
    "sinh": sinh_network,
    "cos": cos_network,
    "sin": sin_network,
    "tanh": tanh_network,
}

const_itn = const_network
exp_itn = exp_network
cosh_itn = cosh_network
sinh_itn = sinh_network
cos_itn = cos_network
sin_itn = sin_network
tanh_itn = tanh_network
poly_itn = poly_network
rand_itn = random_network
