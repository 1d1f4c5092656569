"""Tests for indexed tensors and their factorisations."""

from __future__ import annotations

import pytest
import torch

from tnanalysis import IndexMismatchError
from tnanalysis.network import (
    Index,
    Tensor,
    combine_inds,
    contract,
    delta,
    einsum,
    from_array,
    onehot,
    qr,
    random_tensor,
    svd,
)
from tnanalysis.network.tensor import truncation_rank


@pytest.fixture
def generator():
    g = torch.Generator()
    g.manual_seed(7)
    return g


class TestIndex:
    """Tests for index identity."""

    def test_prime_changes_identity(self):
        """Priming makes a distinct index of the same size."""
        i = Index(3)
        assert i.prime() != i
        assert i.prime().noprime() == i
        assert i.prime(2).plev == 2

    def test_sim(self):
        i = Index(3, ("Site",))
        j = i.sim()
        assert j != i
        assert j.dim == 3 and j.has_tag("Site")

    def test_invalid_dim(self):
        """Index sizes must be positive."""
        with pytest.raises(ValueError):
            Index(0)


class TestTensor:
    """Tests for tensor construction and arithmetic."""

    def test_rejects_wrong_shape(self):
        """Values must match the index sizes."""
        i, j = Index(2), Index(3)
        with pytest.raises(IndexMismatchError):
            Tensor((i, j), torch.zeros(3, 2))

    def test_rejects_duplicates(self):
        """An index appears at most once per tensor."""
        i = Index(2)
        with pytest.raises(IndexMismatchError):
            Tensor((i, i), torch.zeros(2, 2))

    def test_contract_matches_einsum(self, generator):
        """Label-aligned contraction against plain einsum."""
        i, j, k = Index(2), Index(3), Index(4)
        a = random_tensor((i, j), generator)
        b = random_tensor((j, k), generator)

        c = a * b
        assert c.inds == (i, k)
        torch.testing.assert_close(c.values, a.values @ b.values)

    def test_add_is_order_independent(self, generator):
        """Addition aligns indices before adding."""
        i, j = Index(2), Index(3)
        a = random_tensor((i, j), generator)
        b = random_tensor((j, i), generator)

        total = a + b
        torch.testing.assert_close(total.values, a.values + b.values.T)

    def test_add_different_indices(self):
        """Tensors with different index sets cannot be added."""
        with pytest.raises(IndexMismatchError):
            from_array([1.0, 2.0], [Index(2)]) + from_array([1.0, 2.0], [Index(2)])

    def test_complex_scaling_promotes(self):
        """Complex scalars promote real tensors."""
        t = from_array([1.0, 2.0], [Index(2)])
        scaled = 1j * t
        assert scaled.values.is_complex()
        torch.testing.assert_close(scaled.values, torch.tensor([1j, 2j], dtype=torch.complex128))

    def test_project(self, generator):
        """Projection fixes an index to one value."""
        i, j = Index(2), Index(3)
        t = random_tensor((i, j), generator)
        p = t.project({j: 2})
        assert p.inds == (i,)
        torch.testing.assert_close(p.values, t.values[:, 2])
        assert t.project({i: 1, j: 0}).scalar() == pytest.approx(float(t.values[1, 0]))

    def test_delta_and_onehot(self):
        """delta is diagonal, onehot has one nonzero entry."""
        i, j, k = Index(3), Index(3), Index(3)
        d = delta([i, j, k])
        assert float(d.values.sum()) == 3.0
        assert float(d.values[1, 1, 1]) == 1.0
        assert float(d.values[1, 1, 0]) == 0.0

        e = onehot(i, 2)
        assert e.values.tolist() == [0.0, 0.0, 1.0]

    def test_shared_kept_index_is_elementwise(self):
        """An index kept on both sides is multiplied elementwise."""
        i = Index(3)
        a = from_array([1.0, 2.0, 3.0], [i])
        b = from_array([4.0, 5.0, 6.0], [i])
        assert einsum([a, b], [i]).values.tolist() == [4.0, 10.0, 18.0]
        assert contract(a, b).scalar() == pytest.approx(32.0)

    def test_combine_inds(self, generator):
        """Fusing indices reshapes and splits back."""
        i, j, k = Index(2), Index(3), Index(4)
        t = random_tensor((i, j, k), generator)
        combined = Index(6)
        c = combine_inds(t, [i, j], combined)
        assert c.inds == (k, combined)
        torch.testing.assert_close(c.values, t.values.permute(2, 0, 1).reshape(4, 6))


class TestFactorisations:
    """Tests for QR and truncated SVD."""

    def test_qr_reconstructs(self, generator):
        i, j, k = Index(2), Index(3), Index(4)
        t = random_tensor((i, j, k), generator)
        Q, R = qr(t, [i, j])
        torch.testing.assert_close((Q * R).permute(t.inds).values, t.values)

    def test_svd_reconstructs(self, generator):
        i, j, k = Index(2), Index(3), Index(4)
        t = random_tensor((i, j, k), generator)
        U, SV, s = svd(t, [i], cutoff=0.0)
        assert s.shape[0] == 2
        torch.testing.assert_close((U * SV).permute(t.inds).values, t.values)

    def test_svd_truncates_rank(self, generator):
        """Cutoff and maxdim bound the kept rank."""
        i, j = Index(5), Index(5)
        u = torch.randn(5, 1, generator=generator, dtype=torch.float64)
        v = torch.randn(1, 5, generator=generator, dtype=torch.float64)
        t = Tensor((i, j), u @ v)
        U, SV, s = svd(t, [i], cutoff=1e-14)
        assert s.shape[0] == 1
        torch.testing.assert_close((U * SV).values, t.values)

    def test_truncation_rank(self):
        """Kept rank under the discarded-weight rule."""
        s = torch.tensor([1.0, 0.1, 1e-9], dtype=torch.float64)
        assert truncation_rank(s, cutoff=1e-12, maxdim=None) == 2
        assert truncation_rank(s, cutoff=0.0, maxdim=None) == 3
        assert truncation_rank(s, cutoff=None, maxdim=1) == 1
        assert truncation_rank(torch.zeros(3, dtype=torch.float64), 1e-12, None) == 1
