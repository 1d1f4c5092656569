"""Tests for operator sums and the shift carry automaton."""

from __future__ import annotations

import numpy as np
import pytest

from tnanalysis import ConfigurationError, OpSum, OpTerm, opsum_to_dense, shift_opsum
from tnanalysis.network import site_index
from tnanalysis.opsum import identity_opsum, op_matrix


class TestOperatorAlphabet:
    """Tests for the single-digit operator matrices."""

    def test_step_plus(self):
        """Step+ moves digit d+1 to d."""
        expected = np.array([[0, 1, 0], [0, 0, 1], [0, 0, 0]], dtype=float)
        np.testing.assert_array_equal(op_matrix("Step+", 3), expected)

    def test_minus_ops_are_transposes(self):
        """Lowering ops are transposes of raising ops."""
        for base in (2, 3, 4):
            np.testing.assert_array_equal(op_matrix("Step-", base), op_matrix("Step+", base).T)
            np.testing.assert_array_equal(op_matrix("Wrap-", base), op_matrix("Wrap+", base).T)

    def test_wrap_plus(self):
        """Wrap+ takes the top digit back to zero."""
        m = op_matrix("Wrap+", 3)
        assert m[2, 0] == 1.0
        assert m.sum() == 1.0

    def test_unknown_operator(self):
        """Unknown operator names are rejected."""
        with pytest.raises(ConfigurationError):
            op_matrix("Sz", 2)


class TestShiftOpSum:
    """The carry automaton against dense shift matrices."""

    @pytest.mark.parametrize("base,length", [(2, 3), (2, 5), (3, 2), (4, 3)])
    def test_plus_shift(self, base, length):
        """Plus shift against the dense superdiagonal."""
        inds = [site_index(base) for _ in range(length)]
        dense = opsum_to_dense(shift_opsum(inds, 1), inds)
        np.testing.assert_array_equal(dense, np.eye(base**length, k=1))

    @pytest.mark.parametrize("base,length", [(2, 3), (3, 2)])
    def test_minus_shift(self, base, length):
        """Minus shift against the dense subdiagonal."""
        inds = [site_index(base) for _ in range(length)]
        dense = opsum_to_dense(shift_opsum(inds, -1), inds)
        np.testing.assert_array_equal(dense, np.eye(base**length, k=-1))

    def test_mixed_radix(self):
        """Carries across digits of different sizes."""
        inds = [site_index(2), site_index(3)]
        dense = opsum_to_dense(shift_opsum(inds, 1), inds)
        np.testing.assert_array_equal(dense, np.eye(6, k=1))

    def test_one_term_per_digit(self):
        """Term j wraps j low digits and steps the next one."""
        inds = [site_index(2) for _ in range(4)]
        opsum = shift_opsum(inds, 1)
        assert len(opsum) == 4
        assert opsum.terms[0].ops == (("Step+", inds[3]),)
        assert opsum.terms[2].as_dict() == {inds[3]: "Wrap+", inds[2]: "Wrap+", inds[1]: "Step+"}

    def test_invalid_direction(self):
        """Direction must be +1 or -1 over a non-empty chain."""
        with pytest.raises(ConfigurationError):
            shift_opsum([site_index(2)], 2)
        with pytest.raises(ConfigurationError):
            shift_opsum([], 1)


class TestOpSum:
    """Tests for operator sum bookkeeping."""

    def test_identity(self):
        """The identity sum materialises to the identity matrix."""
        inds = [site_index(2), site_index(3)]
        np.testing.assert_array_equal(opsum_to_dense(identity_opsum(inds), inds), np.eye(6))

    def test_linear_combination(self):
        """Scaled sums concatenate terms."""
        inds = [site_index(3) for _ in range(2)]
        opsum = 2.0 * shift_opsum(inds, 1) + shift_opsum(inds, -1) * -1.0
        assert len(opsum) == 4
        dense = opsum_to_dense(opsum, inds)
        np.testing.assert_allclose(dense, 2.0 * np.eye(9, k=1) - np.eye(9, k=-1))

    def test_repeated_index(self):
        """A term acts on each index at most once."""
        i = site_index(2)
        with pytest.raises(ConfigurationError):
            OpTerm(1.0, (("Step+", i), ("Wrap+", i)))

    def test_unknown_index(self):
        """Dense materialisation needs every index."""
        i, j = site_index(2), site_index(2)
        opsum = OpSum().add(1.0, ("Step+", j))
        with pytest.raises(ConfigurationError):
            opsum_to_dense(opsum, [i])
