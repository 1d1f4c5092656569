"""Tests for stencil operators, operator application and pointwise products."""

from __future__ import annotations

import math

import numpy as np
import pytest

from tnanalysis import (
    ConfigurationError,
    OpSum,
    TruncationConfig,
    const_network,
    continuous_siteinds,
    cosh_network,
    derivative_operator,
    exp_network,
    function_operator,
    laplacian_operator,
    minus_shift_ttn,
    multiply,
    no_shift_ttn,
    operate,
    plus_shift_ttn,
    poly_network,
    sin_network,
    stencil,
    ttn_from_opsum,
)
from tnanalysis.network import comb_tree_graph, grid_graph, path_graph

EXACT = TruncationConfig(cutoff=1e-20)


def _dense(operator, s):
    inds = s.dimension_inds(1)
    out = [i.prime() for i in inds] + list(inds)
    size = int(np.prod([i.dim for i in inds]))
    return operator.contract(out).values.reshape(size, size).numpy()


class TestShiftOperators:
    """Compiled shift networks against dense shift matrices."""

    @pytest.mark.parametrize("base", [2, 3])
    def test_plus_shift(self, base):
        """Plus shift compiles to the superdiagonal."""
        s = continuous_siteinds(path_graph(3), base=base)
        dense = _dense(plus_shift_ttn(s), s)
        np.testing.assert_allclose(dense, np.eye(base**3, k=1), atol=1e-12)

    def test_minus_shift_on_comb(self):
        """Minus shift on a comb compiles to the subdiagonal."""
        s = continuous_siteinds(comb_tree_graph((2, 2)))
        dense = _dense(minus_shift_ttn(s), s)
        np.testing.assert_allclose(dense, np.eye(16, k=-1), atol=1e-12)

    def test_no_shift(self):
        """The identity operator is a product of identities."""
        s = continuous_siteinds(path_graph(3))
        op = no_shift_ttn(s)
        assert op.max_bond_dim() == 1
        np.testing.assert_allclose(_dense(op, s), np.eye(8), atol=1e-12)

    def test_compiled_bond_dimension_is_small(self):
        """The carry automaton compresses to bond dimension 2."""
        s = continuous_siteinds(path_graph(8))
        assert plus_shift_ttn(s).max_bond_dim() <= 2

    def test_empty_opsum(self):
        """An empty operator sum has nothing to compile."""
        s = continuous_siteinds(path_graph(3))
        with pytest.raises(ConfigurationError):
            ttn_from_opsum(OpSum(), s)

    def test_unknown_index(self):
        """Operators on indices outside the map are rejected."""
        s = continuous_siteinds(path_graph(3))
        other = continuous_siteinds(path_graph(3))
        opsum = OpSum().add(1.0, ("Step+", other.dimension_inds(1)[0]))
        with pytest.raises(ConfigurationError):
            ttn_from_opsum(opsum, s)


class TestStencil:
    """Stencil operators and their preconditions."""

    def test_requires_tree(self):
        """Operators are only built on trees."""
        s = continuous_siteinds(grid_graph((2, 2)))
        with pytest.raises(ConfigurationError):
            stencil(s, [1.0, -2.0, 1.0], 2)
        with pytest.raises(ConfigurationError):
            plus_shift_ttn(s)

    def test_requires_three_shifts(self):
        """Stencils take exactly three coefficients."""
        s = continuous_siteinds(path_graph(4))
        with pytest.raises(ConfigurationError):
            stencil(s, [1.0, -1.0], 1)

    def test_dense_laplacian(self):
        """Laplacian matches the dense second-difference matrix."""
        s = continuous_siteinds(path_graph(3))
        dense = _dense(laplacian_operator(s, config=EXACT), s)
        expected = 64.0 * (np.eye(8, k=1) - 2.0 * np.eye(8) + np.eye(8, k=-1))
        np.testing.assert_allclose(dense, expected, atol=1e-9)

    def test_derivative_of_exp(self):
        """Derivative of exp is the centered difference."""
        s = continuous_siteinds(path_graph(8))
        f = exp_network(s, k=1.0)
        df = operate(derivative_operator(s, config=EXACT), f, EXACT)
        x, delta = 0.5, 1 / 256
        centered = (math.exp(x + delta) - math.exp(x - delta)) / (2 * delta)
        assert df.calculate_fx(x) == pytest.approx(centered, rel=1e-8)
        assert df.calculate_fx(x) == pytest.approx(math.exp(x), rel=1e-4)

    @pytest.mark.parametrize("x", [0.25, 0.5, 0.75])
    def test_derivative_of_square_is_exact(self, x):
        """Centered differences are exact on quadratics."""
        s = continuous_siteinds(path_graph(6))
        f = poly_network(s, [0.0, 0.0, 1.0])
        df = operate(derivative_operator(s, cutoff=1e-20), f, cutoff=1e-20)
        assert df.calculate_fx(x) == pytest.approx(2 * x, rel=1e-9)

    def test_laplacian_of_square(self):
        """Laplacian of x**2 is 2 away from the boundary."""
        s = continuous_siteinds(path_graph(6))
        f = poly_network(s, [0.0, 0.0, 1.0])
        lf = operate(laplacian_operator(s, config=EXACT), f, EXACT)
        assert lf.calculate_fx(0.5) == pytest.approx(2.0, rel=1e-6)

    def test_derivative_along_second_dimension(self):
        """Derivative acts only on the chosen coordinate."""
        s = continuous_siteinds(path_graph(8), map_dimension=2)
        f = exp_network(s, k=1.0, dimension=2) + exp_network(s, k=3.0, dimension=1)
        df = operate(derivative_operator(s, dimension=2, config=EXACT), f, EXACT)
        y, delta = 0.5, 1 / 16
        centered = (math.exp(y + delta) - math.exp(y - delta)) / (2 * delta)
        assert df.calculate_fxyz([0.25, y]) == pytest.approx(centered, rel=1e-8)

    def test_ternary_derivative(self):
        """Derivative with base-3 digits."""
        s = continuous_siteinds(path_graph(4), base=3)
        f = poly_network(s, [1.0, 2.0, 3.0])
        df = operate(derivative_operator(s, config=EXACT), f, EXACT)
        x = 40 / 81
        assert df.calculate_fx(x) == pytest.approx(2.0 + 6.0 * x, rel=1e-9)


class TestOperate:
    """Operator application."""

    def test_shift_reads_neighbour(self):
        """Shifted function reads its right neighbour."""
        s = continuous_siteinds(path_graph(5))
        f = exp_network(s, k=1.0)
        shifted = operate(plus_shift_ttn(s), f)
        x = 0.5
        assert shifted.calculate_fx(x) == pytest.approx(math.exp(x + 1 / 32))

    def test_shift_past_boundary_is_zero(self):
        """Open boundary: shifts past either end read zero."""
        s = continuous_siteinds(path_graph(4))
        f = const_network(s, c=1.0)
        assert operate(plus_shift_ttn(s), f).calculate_fx(15 / 16) == pytest.approx(0.0, abs=1e-12)
        assert operate(minus_shift_ttn(s), f).calculate_fx(0.0) == pytest.approx(0.0, abs=1e-12)

    def test_sequence_applies_in_order(self):
        """Plus then minus shift restores the function."""
        s = continuous_siteinds(path_graph(5))
        f = exp_network(s, k=1.0)
        back = operate([plus_shift_ttn(s), minus_shift_ttn(s)], f)
        assert back.calculate_fx(0.5) == pytest.approx(math.exp(0.5))

    def test_function_operator(self):
        """Diagonal operator of g multiplies by g."""
        s = continuous_siteinds(comb_tree_graph((2, 3)))
        f = exp_network(s, k=0.5)
        g = cosh_network(s, k=1.5)
        product = operate(function_operator(g), f)
        x = 0.375
        assert product.calculate_fx(x) == pytest.approx(math.exp(0.5 * x) * math.cosh(1.5 * x))

    def test_requires_tree(self):
        """Operating on a graph with loops is rejected."""
        s = continuous_siteinds(grid_graph((2, 2)))
        f = exp_network(s)
        tree = continuous_siteinds(path_graph(4))
        with pytest.raises(ConfigurationError):
            operate(no_shift_ttn(tree), f)

    def test_requires_matching_structure(self):
        """Operator and function must share indices and graph."""
        s = continuous_siteinds(path_graph(4))
        other = continuous_siteinds(path_graph(4))
        f = exp_network(s)
        with pytest.raises(ConfigurationError):
            operate(no_shift_ttn(other), f)
        with pytest.raises(ConfigurationError):
            operate(no_shift_ttn(continuous_siteinds(path_graph(5))), f)


class TestMultiply:
    """Pointwise products."""

    def test_two_factors(self):
        """Product of exp and sin."""
        s = continuous_siteinds(path_graph(6))
        f = exp_network(s, k=0.5)
        g = sin_network(s, k=2.0, a=0.1)
        product = multiply(f, g)
        x = 0.6875
        assert product.calculate_fx(x) == pytest.approx(math.exp(0.5 * x) * math.sin(2 * x + 0.1))

    def test_three_factors_left_to_right(self):
        """Three factors multiply pairwise from the left."""
        s = continuous_siteinds(path_graph(6))
        f = exp_network(s, k=0.5)
        g = cosh_network(s, k=1.0)
        h = poly_network(s, [1.0, -1.0])
        product = multiply(f, g, h)
        x = 0.25
        expected = math.exp(0.5 * x) * math.cosh(x) * (1 - x)
        assert product.calculate_fx(x) == pytest.approx(expected)

    def test_bond_dimension_stays_small(self):
        """Product of two exponentials stays a product state."""
        s = continuous_siteinds(path_graph(6))
        product = multiply(exp_network(s, k=0.5), exp_network(s, k=1.5))
        assert product.max_bond_dim() == 1

    def test_on_graph_with_loops(self):
        """Products work without truncation on loopy graphs."""
        s = continuous_siteinds(grid_graph((2, 2)))
        f = exp_network(s, k=1.0)
        g = exp_network(s, k=-1.0)
        assert multiply(f, g).calculate_fx(0.75) == pytest.approx(1.0)

    def test_different_maps(self):
        """Factors must share one map."""
        f = exp_network(continuous_siteinds(path_graph(4)))
        g = exp_network(continuous_siteinds(path_graph(4)))
        with pytest.raises(ConfigurationError):
            multiply(f, g)
