"""Contraction ordering and execution for closed or partially open networks."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import omeco

from .index import Index
from .tensor import Tensor, einsum


def _label_indices(tensors: Sequence[Tensor]) -> Dict[Index, int]:
    labels: Dict[Index, int] = {}
    for tensor in tensors:
        for ind in tensor.inds:
            if ind not in labels:
                labels[ind] = len(labels)
    return labels


def _infer_var_sizes(tensors: Sequence[Tensor], labels: Dict[Index, int]) -> dict[int, int]:
    return {labels[ind]: int(ind.dim) for tensor in tensors for ind in tensor.inds}


def _find_connected_components(ixs: list[list[int]]) -> list[list[int]]:
    """Group tensor positions whose index labels are linked by shared labels."""
    n = len(ixs)
    if n == 0:
        return []

    var_to_tensors: dict[int, list[int]] = {}
    for i, vars in enumerate(ixs):
        for v in vars:
            var_to_tensors.setdefault(v, []).append(i)

    parent = list(range(n))

    def find(x):
        if parent[x] != x:
            parent[x] = find(parent[x])
        return parent[x]

    def union(x, y):
        px, py = find(x), find(y)
        if px != py:
            parent[px] = py

    for members in var_to_tensors.values():
        for i in range(1, len(members)):
            union(members[0], members[i])

    components: dict[int, list[int]] = {}
    for i in range(n):
        components.setdefault(find(i), []).append(i)
    return list(components.values())


def get_omeco_tree(tensors: Sequence[Tensor], labels: Dict[Index, int]) -> dict:
    """Optimised binary contraction tree from omeco.

    Disconnected components are optimised separately and joined pairwise
    (outer products) at the top of the tree.

    Returns:
        The tree as a dictionary:
        - Leaf: {"tensor_index": int}
        - Node: {"args": [...], "eins": {"ixs": [[...], ...], "iy": [...]}}
    """
    if not tensors:
        raise ValueError("Cannot contract empty list of tensors")

    ixs = [[labels[i] for i in tensor.inds] for tensor in tensors]
    sizes = _infer_var_sizes(tensors, labels)
    components = _find_connected_components(ixs)

    component_trees = []
    for comp_indices in components:
        if len(comp_indices) == 1:
            component_trees.append({"tensor_index": comp_indices[0]})
            continue
        comp_ixs = [ixs[i] for i in comp_indices]
        comp_sizes = {v: sizes[v] for i in comp_indices for v in ixs[i]}
        tree = omeco.optimize_code(comp_ixs, [], comp_sizes, omeco.GreedyMethod())

        def remap_indices(node, comp_indices=comp_indices):
            if "tensor_index" in node:
                return {"tensor_index": comp_indices[node["tensor_index"]]}
            args = node.get("args", node.get("children", []))
            return {"args": [remap_indices(a) for a in args], "eins": node.get("eins", {})}

        component_trees.append(remap_indices(tree.to_dict()))

    def output_vars(tree):
        if "tensor_index" in tree:
            return list(ixs[tree["tensor_index"]])
        return list(tree.get("eins", {}).get("iy", []))

    def combine_trees(trees):
        if len(trees) == 1:
            return trees[0]
        mid = len(trees) // 2
        left = combine_trees(trees[:mid])
        right = combine_trees(trees[mid:])
        out0, out1 = output_vars(left), output_vars(right)
        return {
            "args": [left, right],
            "eins": {"ixs": [out0, out1], "iy": list(dict.fromkeys(out0 + out1))},
        }

    return combine_trees(component_trees)


def contract_omeco_tree(
    tree_dict: dict,
    tensors: Sequence[Tensor],
    open_inds: Sequence[Index],
) -> Tensor:
    """Contract tensors following the tree from :func:`get_omeco_tree`.

    The tree is built for a closed contraction, so the label lists it
    carries are not trusted for open indices: at every node the kept indices
    are those still needed outside the subtree, i.e. open indices and indices
    shared with tensors not yet visited.
    """
    open_set = set(open_inds)
    total: Dict[Index, int] = {}
    for tensor in tensors:
        for ind in tensor.inds:
            total[ind] = total.get(ind, 0) + 1

    def leaves(node: dict) -> List[int]:
        if "tensor_index" in node:
            return [node["tensor_index"]]
        out: List[int] = []
        for arg in node.get("args", node.get("children", [])):
            out.extend(leaves(arg))
        return out

    def recurse(node: dict) -> Tensor:
        if "tensor_index" in node:
            return tensors[node["tensor_index"]]
        args = node.get("args", node.get("children", []))
        children = [recurse(arg) for arg in args]

        inside: Dict[Index, int] = {}
        for position in leaves(node):
            for ind in tensors[position].inds:
                inside[ind] = inside.get(ind, 0) + 1
        kept = []
        for child in children:
            for ind in child.inds:
                if ind in kept:
                    continue
                if ind in open_set or inside[ind] < total[ind]:
                    kept.append(ind)
        return einsum(children, kept)

    return recurse(tree_dict)


def contract_tensors(
    tensors: Sequence[Tensor], out_inds: Optional[Sequence[Index]] = None
) -> Tensor:
    """Contract a list of tensors with an omeco-optimised order.

    Args:
        tensors: Tensors to contract; indices shared by two tensors are summed.
        out_inds: Order of the open indices in the result. Defaults to the
            indices appearing exactly once, in order of first appearance.

    Returns:
        The contracted tensor.
    """
    tensors = list(tensors)
    if not tensors:
        raise ValueError("Cannot contract empty list of tensors")
    counts: Dict[Index, int] = {}
    for tensor in tensors:
        for ind in tensor.inds:
            counts[ind] = counts.get(ind, 0) + 1
    if out_inds is None:
        out_inds = [ind for ind, count in counts.items() if count == 1]
    out_inds = tuple(out_inds)

    if len(tensors) == 1:
        return einsum(tensors, out_inds)

    labels = _label_indices(tensors)
    tree_dict = get_omeco_tree(tensors, labels)
    result = contract_omeco_tree(tree_dict, tensors, out_inds)
    return result.permute(out_inds)
