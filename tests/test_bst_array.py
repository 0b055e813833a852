import numpy as np
import pytest

from BalancedBST.BSTArray import (
    NIL,
    build_balanced,
    check_balanced,
    in_order,
    insert,
    level_order,
    node_depth,
    post_order,
    pre_order,
    remove,
    search_bulk,
    search_single,
    subtree_height,
)


def make_arena(data, capacity=16):
    data   = np.asarray(data, dtype=np.int64)
    values = np.zeros(capacity + 1, dtype=np.int64)
    left   = np.zeros(capacity + 1, dtype=np.int64)
    right  = np.zeros(capacity + 1, dtype=np.int64)
    root   = build_balanced(data, values, left, right)
    return values, left, right, root


def test_build_balanced_seven():
    r"""
            4
         /     \
        2       6
       / \     / \
      1   3   5   7
    Slot i holds the i-th smallest value.
    """
    values, left, right, root = make_arena([1, 2, 3, 4, 5, 6, 7])

    assert root == 4
    assert values[root] == 4
    assert (left[4], right[4]) == (2, 6)
    assert (left[2], right[2]) == (1, 3)
    assert (left[6], right[6]) == (5, 7)
    for leaf in (1, 3, 5, 7):
        assert left[leaf] == NIL and right[leaf] == NIL


def test_build_balanced_lower_midpoint():
    values, left, right, root = make_arena([1, 3, 5, 8])

    assert values[root] == 3
    assert values[left[root]] == 1
    assert values[right[root]] == 5
    assert values[right[right[root]]] == 8
    assert left[right[root]] == NIL


def test_build_balanced_empty():
    values, left, right, root = make_arena([])
    assert root == NIL


def test_traversal_orders():
    values, left, right, root = make_arena([1, 2, 3, 4, 5, 6, 7])

    assert values[level_order(left, right, root, 7)].tolist() == [4, 2, 6, 1, 3, 5, 7]
    assert values[in_order(left, right, root, 7)].tolist() == [1, 2, 3, 4, 5, 6, 7]
    assert values[pre_order(left, right, root, 7)].tolist() == [4, 2, 1, 3, 6, 5, 7]
    assert values[post_order(left, right, root, 7)].tolist() == [1, 3, 2, 5, 7, 6, 4]


def test_traversal_orders_empty():
    left  = np.zeros(4, dtype=np.int64)
    right = np.zeros(4, dtype=np.int64)

    for ordering in (level_order, in_order, pre_order, post_order):
        assert ordering(left, right, NIL, 0).size == 0


def test_search_single_and_bulk():
    values, left, right, root = make_arena([10, 20, 30, 40, 50])

    assert values[search_single(values, left, right, root, 40)] == 40
    assert search_single(values, left, right, root, 35) == NIL

    found = search_bulk(values, left, right, root, np.array([10, 11, 50, 60], dtype=np.int64))
    assert values[found[0]] == 10
    assert found[1] == NIL
    assert values[found[2]] == 50
    assert found[3] == NIL


def test_insert_appends_leaf_and_ignores_duplicates():
    values, left, right, root = make_arena([1, 2, 3])
    free_list = np.zeros(values.size, dtype=np.int64)

    root, free, free_list_top, inserted = insert(values, left, right, root, 4, free_list, 0, np.int64(4))
    assert inserted
    assert free == 5
    assert right[3] == 4 and values[4] == 4

    root, free, free_list_top, inserted = insert(values, left, right, root, free, free_list, free_list_top, np.int64(2))
    assert not inserted
    assert free == 5
    assert values[in_order(left, right, root, 4)].tolist() == [1, 2, 3, 4]


def test_insert_into_empty_arena():
    values    = np.zeros(4, dtype=np.float64)
    left      = np.zeros(4, dtype=np.int64)
    right     = np.zeros(4, dtype=np.int64)
    free_list = np.zeros(4, dtype=np.int64)

    root, free, free_list_top, inserted = insert(values, left, right, NIL, 1, free_list, 0, 2.5)
    assert inserted
    assert root == 1
    assert values[root] == 2.5


def test_remove_two_children_uses_successor():
    values, left, right, root = make_arena([1, 2, 3, 4, 5, 6, 7])
    free_list = np.zeros(values.size, dtype=np.int64)

    removed, root, free_list_top = remove(values, left, right, root, free_list, 0, np.int64(4))

    assert removed
    assert root == 4
    assert values[root] == 5
    # the successor's slot is the one recycled
    assert free_list_top == 1
    assert free_list[0] == 5
    assert left[6] == NIL
    assert values[in_order(left, right, root, 6)].tolist() == [1, 2, 3, 5, 6, 7]


def test_remove_root_with_single_child():
    values, left, right, root = make_arena([1, 2])
    free_list = np.zeros(values.size, dtype=np.int64)

    assert values[root] == 1
    removed, root, free_list_top = remove(values, left, right, root, free_list, 0, np.int64(1))

    assert removed
    assert values[root] == 2
    assert left[root] == NIL and right[root] == NIL


def test_remove_missing_value():
    values, left, right, root = make_arena([1, 2, 3])
    free_list = np.zeros(values.size, dtype=np.int64)

    removed, new_root, free_list_top = remove(values, left, right, root, free_list, 0, np.int64(9))

    assert not removed
    assert new_root == root
    assert free_list_top == 0


def test_subtree_height_and_depth():
    values, left, right, root = make_arena([1, 2, 3, 4, 5, 6, 7])

    assert subtree_height(left, right, root) == 2
    assert subtree_height(left, right, 2) == 1
    assert subtree_height(left, right, 1) == 0
    assert subtree_height(left, right, NIL) == -1

    assert node_depth(values, left, right, root, np.int64(4)) == 0
    assert node_depth(values, left, right, root, np.int64(7)) == 2
    assert node_depth(values, left, right, root, np.int64(8)) == -1


@pytest.mark.parametrize("n", [0, 1, 2, 3, 10, 31, 32, 100])
def test_check_balanced_after_build(n):
    values, left, right, root = make_arena(np.arange(n), capacity=max(n, 1))
    assert check_balanced(left, right, root, n)


def test_check_balanced_detects_chain():
    values    = np.zeros(8, dtype=np.int64)
    left      = np.zeros(8, dtype=np.int64)
    right     = np.zeros(8, dtype=np.int64)
    free_list = np.zeros(8, dtype=np.int64)
    root, free, top = NIL, 1, 0

    for value in range(3):
        root, free, top, _ = insert(values, left, right, root, free, free_list, top, np.int64(value))

    assert not check_balanced(left, right, root, 3)
