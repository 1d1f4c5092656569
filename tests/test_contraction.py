import pytest
import torch

from tnanalysis.network import Index, contract_tensors, einsum, get_omeco_tree, random_tensor
from tnanalysis.network.contraction import _find_connected_components, _label_indices


@pytest.fixture
def generator():
    g = torch.Generator()
    g.manual_seed(11)
    return g


def _leaf_positions(tree):
    if "tensor_index" in tree:
        return [tree["tensor_index"]]
    out = []
    for arg in tree.get("args", []):
        out.extend(_leaf_positions(arg))
    return out


def test_find_connected_components():
    components = _find_connected_components([[0, 1], [1, 2], [3], [3, 4], [5]])
    assert sorted(sorted(c) for c in components) == [[0, 1], [2, 3], [4]]


def test_omeco_tree_covers_every_tensor(generator):
    i, j, k, l = Index(2), Index(3), Index(2), Index(4)
    tensors = [
        random_tensor((i, j), generator),
        random_tensor((j, k), generator),
        random_tensor((k, l), generator),
        random_tensor((l, i), generator),
    ]
    tree = get_omeco_tree(tensors, _label_indices(tensors))
    assert sorted(_leaf_positions(tree)) == [0, 1, 2, 3]


def test_ring_contracts_to_trace(generator):
    i, j, k = Index(2), Index(3), Index(4)
    a = random_tensor((i, j), generator)
    b = random_tensor((j, k), generator)
    c = random_tensor((k, i), generator)

    result = contract_tensors([a, b, c])
    expected = torch.trace(a.values @ b.values @ c.values)
    assert result.inds == ()
    assert result.scalar() == pytest.approx(float(expected))


def test_open_indices_follow_out_inds(generator):
    i, j, k, l = Index(2), Index(3), Index(4), Index(5)
    a = random_tensor((i, j), generator)
    b = random_tensor((j, k), generator)
    c = random_tensor((k, l), generator)

    result = contract_tensors([a, b, c], [l, i])
    expected = (a.values @ b.values @ c.values).T
    assert result.inds == (l, i)
    torch.testing.assert_close(result.values, expected)


def test_disconnected_components_multiply(generator):
    i, j = Index(2), Index(3)
    a = random_tensor((i,), generator)
    b = random_tensor((i,), generator)
    c = random_tensor((j,), generator)
    d = random_tensor((j,), generator)

    result = contract_tensors([a, b, c, d])
    expected = (a.values @ b.values) * (c.values @ d.values)
    assert result.scalar() == pytest.approx(float(expected))


def test_matches_single_einsum(generator):
    i, j, k, l, m = Index(2), Index(2), Index(3), Index(2), Index(3)
    tensors = [
        random_tensor((i, j, k), generator),
        random_tensor((k, l), generator),
        random_tensor((l, m, i), generator),
        random_tensor((m, j), generator),
    ]
    result = contract_tensors(tensors)
    expected = einsum(tensors, [])
    assert result.scalar() == pytest.approx(expected.scalar())


def test_empty_list_rejected():
    with pytest.raises(ValueError):
        contract_tensors([])
