import numpy as np
from numba import njit, prange
from typing import Tuple



# Arena layout:
#     values[i] : node value
#     left[i]   : index of the left child  (0 if absent)
#     right[i]  : index of the right child (0 if absent)
#     Slot 0 is never used for a node; it is the "absent" sentinel.
NIL   = np.int64(0)
LEFT  = np.int8(0)
RIGHT = np.int8(1)



# ---------- JIT-Compiled Slot Allocation ----------
@njit(inline="always")
def _allocate(
    free:          np.int64,
    free_list:     np.ndarray,
    free_list_top: np.int64

) -> Tuple[np.int64, np.int64, np.int64]:

    """
    Take a slot from the free-list if one is available, otherwise bump `free`.

    Returns (slot, free, free_list_top).
    """

    if free_list_top > 0:
        free_list_top -= 1
        return np.int64(free_list[free_list_top]), np.int64(free), np.int64(free_list_top)

    return np.int64(free), np.int64(free + 1), np.int64(free_list_top)



# ---------- JIT-Compiled BST Core Operations ----------
@njit
def build_balanced(
    data:   np.ndarray,
    values: np.ndarray,
    left:   np.ndarray,
    right:  np.ndarray

) -> np.int64:

    """
    Lay out a sorted, duplicate-free array as a height-balanced BST.

    Each slice [start, end] of `data` becomes a subtree whose root is the
    lower midpoint `start + (end - start) // 2`; the slices before and after
    it become the left and right subtrees. The node for `data[mid]` is stored
    in slot `mid + 1`, so slots 1..n are used and slot 0 stays the sentinel.

    Every non-empty slice is pushed exactly once, so a work stack of `n`
    entries is always enough.

    :param data: Sorted unique values
    :type data: np.ndarray
    :param values: Arena value array, at least n + 1 slots
    :type values: np.ndarray
    :param left: Arena left-link array
    :type left: np.ndarray
    :param right: Arena right-link array
    :type right: np.ndarray
    :return: Index of the root slot (0 for empty input)
    :rtype: np.int64
    """

    n = data.size
    if n == 0:
        return NIL

    starts  = np.empty(n, dtype=np.int64)
    ends    = np.empty(n, dtype=np.int64)
    parents = np.empty(n, dtype=np.int64)
    sides   = np.empty(n, dtype=np.int8)

    starts[0]  = 0
    ends[0]    = n - 1
    parents[0] = NIL
    sides[0]   = LEFT
    top        = 1
    root       = NIL

    while top > 0:
        top -= 1
        start  = starts[top]
        end    = ends[top]
        parent = parents[top]
        side   = sides[top]

        mid   = start + (end - start) // 2
        index = np.int64(mid + 1)

        values[index] = data[mid]
        left[index]   = NIL
        right[index]  = NIL

        if parent == NIL:
            root = index
        elif side == LEFT:
            left[parent] = index
        else:
            right[parent] = index

        if mid + 1 <= end:
            starts[top]  = mid + 1
            ends[top]    = end
            parents[top] = index
            sides[top]   = RIGHT
            top += 1

        if start <= mid - 1:
            starts[top]  = start
            ends[top]    = mid - 1
            parents[top] = index
            sides[top]   = LEFT
            top += 1

    return np.int64(root)

@njit(boundscheck=False)
def insert(
    values:        np.ndarray,
    left:          np.ndarray,
    right:         np.ndarray,
    root:          np.int64,
    free:          np.int64,
    free_list:     np.ndarray,
    free_list_top: np.int64,
    value

) -> Tuple[np.int64, np.int64, np.int64, np.bool_]:

    """
    Insert a value as a new leaf without rebalancing.

    The caller guarantees there is at least one free slot (either on the
    free-list or at `free`).

    Parameters
    ----------
    values, left, right : np.ndarray
        Arena arrays.
    root : np.int64
        Index of the current root (0 if the tree is empty).
    free : np.int64
        Next never-used slot.
    free_list : np.ndarray
        Stack of recycled slots.
    free_list_top : np.int64
        Number of entries on the free-list.
    value
        Value to insert, already cast to the arena dtype.

    Returns
    -------
    Tuple[np.int64, np.int64, np.int64, np.bool_]
        Updated (root, free, free_list_top, inserted).
    """

    if root == NIL:
        slot, free, free_list_top = _allocate(free, free_list, free_list_top)
        values[slot] = value
        left[slot]   = NIL
        right[slot]  = NIL
        return slot, free, free_list_top, True

    current = root
    while True:
        current_value = values[current]

        if value == current_value:
            return np.int64(root), np.int64(free), np.int64(free_list_top), False

        elif value > current_value: # Right
            if right[current] == NIL:
                slot, free, free_list_top = _allocate(free, free_list, free_list_top)
                values[slot]   = value
                left[slot]     = NIL
                right[slot]    = NIL
                right[current] = slot
                break

            current = right[current]

        else: # Left
            if left[current] == NIL:
                slot, free, free_list_top = _allocate(free, free_list, free_list_top)
                values[slot]  = value
                left[slot]    = NIL
                right[slot]   = NIL
                left[current] = slot
                break

            current = left[current]

    return np.int64(root), np.int64(free), np.int64(free_list_top), True

@njit(boundscheck=False)
def remove(
    values:        np.ndarray,
    left:          np.ndarray,
    right:         np.ndarray,
    root:          np.int64,
    free_list:     np.ndarray,
    free_list_top: np.int64,
    value

) -> Tuple[np.bool_, np.int64, np.int64]:

    """
    Remove a value from the tree without rebalancing.

    1. Search: walk to the target, remembering its parent and which link of
    the parent points to it.
    2. Two children: copy the in-order successor's value into the target and
    make the successor the node that is physically unlinked. The successor
    is the leftmost node of the right subtree, so it never has a left child.
    3. Unlink: the removed node is replaced by its right child when it has no
    left child, otherwise by its left child.
    4. Recycle: the unlinked slot goes onto the free-list.

    Args:
        values, left, right (np.ndarray): Arena arrays.
        root (np.int64): Index of the current root.
        free_list (np.ndarray): Stack of recycled slots.
        free_list_top (np.int64): Number of entries on the free-list.
        value: The value to remove.

    Returns:
        Tuple[np.bool_, np.int64, np.int64]:
            - removed flag (False if the value was not present).
            - new root index.
            - updated free_list_top.
    """

    parent  = NIL
    side    = LEFT
    current = root

    while current != NIL:
        current_value = values[current]

        if value == current_value:
            break

        parent = current
        if value < current_value:
            side    = LEFT
            current = left[current]
        else:
            side    = RIGHT
            current = right[current]

    if current == NIL:
        return False, np.int64(root), np.int64(free_list_top)

    target = current

    if left[target] != NIL and right[target] != NIL:
        parent    = target
        side      = RIGHT
        successor = right[target]
        while left[successor] != NIL:
            parent    = successor
            side      = LEFT
            successor = left[successor]

        values[target] = values[successor]
        target         = successor

    if left[target] == NIL:
        replacement = right[target]
    else:
        replacement = left[target]

    if parent == NIL:
        root = replacement
    elif side == LEFT:
        left[parent] = replacement
    else:
        right[parent] = replacement

    left[target]  = NIL
    right[target] = NIL

    free_list[free_list_top] = target
    free_list_top += 1

    return True, np.int64(root), np.int64(free_list_top)

@njit(inline="always")
def search_single(
    values: np.ndarray,
    left:   np.ndarray,
    right:  np.ndarray,
    root:   np.int64,
    value

) -> np.int64:

    """
    Iterative binary search. Returns the slot holding `value`, or 0.
    """

    current = root
    while current != NIL:
        current_value = values[current]

        if value == current_value:
            return np.int64(current)

        elif value < current_value:
            current = left[current]

        else:
            current = right[current]

    return NIL

@njit(parallel=True)
def search_bulk(
    values:  np.ndarray,
    left:    np.ndarray,
    right:   np.ndarray,
    root:    np.int64,
    queries: np.ndarray

) -> np.ndarray:

    """
    Search many values at once, spreading the queries over all CPU cores.

    Lookups only read the arena, so every `prange` iteration is independent.

    Returns:
        np.ndarray: int64 slot for each query, 0 where the value is absent.
    """

    size    = queries.size
    results = np.zeros(size, dtype=np.int64)
    for i in prange(size):
        results[i] = search_single(values, left, right, root, queries[i])

    return results

@njit
def subtree_height(
    left:  np.ndarray,
    right: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Number of edges on the longest downward path from `index` to a leaf.

    Counted level by level with a FIFO queue; a leaf has height 0 and an
    absent subtree (index 0) reports -1.
    """

    if index == NIL:
        return np.int64(-1)

    queue  = np.empty(left.size, dtype=np.int64)
    head   = 0
    tail   = 1
    height = -1
    queue[0] = index

    while head < tail:
        level_end = tail
        while head < level_end:
            node  = queue[head]
            head += 1
            if left[node] != NIL:
                queue[tail] = left[node]
                tail += 1
            if right[node] != NIL:
                queue[tail] = right[node]
                tail += 1
        height += 1

    return np.int64(height)

@njit
def node_depth(
    values: np.ndarray,
    left:   np.ndarray,
    right:  np.ndarray,
    root:   np.int64,
    value

) -> np.int64:

    """
    Number of edges from the root down to the node holding `value`, or -1.
    """

    depth   = 0
    current = root
    while current != NIL:
        current_value = values[current]

        if value == current_value:
            return np.int64(depth)

        elif value < current_value:
            current = left[current]

        else:
            current = right[current]

        depth += 1

    return np.int64(-1)

@njit
def check_balanced(
    left:  np.ndarray,
    right: np.ndarray,
    root:  np.int64,
    count: np.int64

) -> bool:

    """
    True when every node's subtree heights differ by at most one.

    Heights are filled in post-order so each node is measured once.
    """

    if root == NIL:
        return True

    order   = post_order(left, right, root, count)
    heights = np.full(left.size, -1, dtype=np.int64)

    for i in range(order.size):
        node = order[i]
        h_l  = heights[left[node]] if left[node] != NIL else -1
        h_r  = heights[right[node]] if right[node] != NIL else -1

        if abs(h_l - h_r) > 1:
            return False

        heights[node] = max(h_l, h_r) + 1

    return True



# ---------- JIT-Compiled Traversal Orders ----------
@njit
def level_order( # BFS
    left:  np.ndarray,
    right: np.ndarray,
    root:  np.int64,
    count: np.int64

) -> np.ndarray:

    """
    Slots in breadth-first order, left to right within a level.

    The result array doubles as the FIFO queue.
    """

    order = np.zeros(count, dtype=np.int64)
    if root == NIL:
        return order

    head     = 0
    tail     = 1
    order[0] = root

    while head < tail:
        node  = order[head]
        head += 1
        if left[node] != NIL:
            order[tail] = left[node]
            tail += 1
        if right[node] != NIL:
            order[tail] = right[node]
            tail += 1

    return order

@njit
def in_order( # LVR
    left:  np.ndarray,
    right: np.ndarray,
    root:  np.int64,
    count: np.int64

) -> np.ndarray:

    """
    Slots in ascending value order.

    The stack is sized by `count` because the shape is only balanced right
    after construction; later inserts may leave a path as long as the tree.
    """

    order = np.zeros(count, dtype=np.int64)
    stack = np.zeros(count + 1, dtype=np.int64)

    current   = root
    stack_idx = 0
    order_idx = 0

    while order_idx < count:

        while current != NIL:
            stack[stack_idx] = current
            stack_idx += 1
            current = left[current]

        if stack_idx > 0:
            stack_idx -= 1
            current = stack[stack_idx]

            order[order_idx] = current
            order_idx += 1

            current = right[current]

        else:
            break

    return order

@njit
def pre_order( # VLR
    left:  np.ndarray,
    right: np.ndarray,
    root:  np.int64,
    count: np.int64

) -> np.ndarray:

    """
    Slots as node, left subtree, right subtree.
    """

    order = np.zeros(count, dtype=np.int64)
    if root == NIL:
        return order

    stack     = np.zeros(count + 1, dtype=np.int64)
    stack[0]  = root
    stack_idx = 1
    order_idx = 0

    while stack_idx > 0:
        stack_idx -= 1
        node = stack[stack_idx]

        order[order_idx] = node
        order_idx += 1

        # Right is pushed first so the left subtree is popped first
        if right[node] != NIL:
            stack[stack_idx] = right[node]
            stack_idx += 1
        if left[node] != NIL:
            stack[stack_idx] = left[node]
            stack_idx += 1

    return order

@njit
def post_order( # LRV
    left:  np.ndarray,
    right: np.ndarray,
    root:  np.int64,
    count: np.int64

) -> np.ndarray:

    """
    Slots as left subtree, right subtree, node.

    Built as the reverse of a node-right-left walk.
    """

    order = np.zeros(count, dtype=np.int64)
    if root == NIL:
        return order

    stack     = np.zeros(count + 1, dtype=np.int64)
    stack[0]  = root
    stack_idx = 1
    order_idx = count - 1

    while stack_idx > 0:
        stack_idx -= 1
        node = stack[stack_idx]

        order[order_idx] = node
        order_idx -= 1

        if left[node] != NIL:
            stack[stack_idx] = left[node]
            stack_idx += 1
        if right[node] != NIL:
            stack[stack_idx] = right[node]
            stack_idx += 1

    return order
