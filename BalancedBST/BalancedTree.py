import logging
import sys
from typing import Any, Callable, Iterable, Iterator, Optional, TextIO, Tuple

import numpy as np

from .BSTArray import (
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
from .config import TreeConfig
from .errors import InvalidArgumentError, StaleNodeError


logger = logging.getLogger(__name__)



# --------- Input Coercion ---------
INT64_MAX = np.iinfo(np.int64).max


def _as_numeric_array(
    values: Iterable[Any]

) -> np.ndarray:

    """
    Convert input values to a flat int64 or float64 array.

    Integral input (bool, unsigned, signed) becomes int64, anything with a
    float in it becomes float64. An empty input is int64. Values the arena
    cannot hold exactly or order (unsigned values above the int64 range,
    NaN) are rejected.
    """

    if not isinstance(values, np.ndarray):
        values = list(values)

    try:
        array = np.asarray(values).ravel()
    except OverflowError as e:
        raise InvalidArgumentError(f"Tree values must fit in float64: {e}") from e

    if array.size == 0:
        return np.zeros(0, dtype=np.int64)

    if array.dtype.kind == "u" and array.max() > INT64_MAX:
        raise InvalidArgumentError(
            f"Tree values must fit in int64, got {array.max()}"
        )

    if array.dtype.kind in "biu":
        return array.astype(np.int64)

    if array.dtype.kind == "f":
        if np.isnan(array).any():
            raise InvalidArgumentError("Tree values must be ordered, got NaN")

        # Python ints mixed in with floats are rounded by np.asarray
        if isinstance(values, list):
            for value in values:
                if isinstance(value, (int, np.integer)) and float(value) != int(value):
                    raise InvalidArgumentError(
                        f"{value} cannot be stored exactly alongside float values"
                    )

        return array.astype(np.float64)

    raise InvalidArgumentError(
        f"Tree values must be numeric, got an array of dtype {array.dtype}"
    )

def _as_numeric_scalar(
    value: Any

) -> np.generic:

    """
    Convert a single value to an int64 or float64 NumPy scalar.
    """

    scalar = np.asarray(value)

    if scalar.ndim != 0 or scalar.dtype.kind not in "biuf":
        raise InvalidArgumentError(
            f"Tree values must be numeric scalars, not {type(value).__name__}"
        )

    if scalar.dtype.kind == "f":
        if np.isnan(scalar):
            raise InvalidArgumentError("Tree values must be ordered, got NaN")

        return np.float64(scalar)

    if scalar.dtype.kind == "u" and scalar > INT64_MAX:
        raise InvalidArgumentError(f"Tree values must fit in int64, got {value}")

    return np.int64(scalar)

def _cast_exact(
    array: np.ndarray,
    dtype: np.dtype

) -> Tuple[np.ndarray, np.ndarray]:

    """
    Cast an int64 or float64 array to the arena dtype.

    Returns the cast array and a mask of the elements whose value survived
    the cast unchanged: floats that are not whole numbers or lie outside
    int64 do not fit an int64 arena, and integers beyond 2**53 may not fit a
    float64 one. Going float to int, masked-out elements are cast from 0.
    """

    if array.dtype == dtype:
        return array, np.ones(array.size, dtype=np.bool_)

    if dtype.kind == "i": # float64 -> int64
        exact = np.isfinite(array) & (np.floor(array) == array) & (array >= -2.0**63) & (array < 2.0**63)
        return np.where(exact, array, 0).astype(dtype), exact

    # int64 -> float64
    cast     = array.astype(dtype)
    in_range = cast < 2.0**63
    back     = np.where(in_range, cast, 0).astype(array.dtype)

    return cast, in_range & (back == array)



# --------- Node View ---------
class Node:
    """
    Reference to one node of a Tree.

    A Node is a view on the tree's arena, not a copy: it reads the current
    value and links of its slot. It remembers the tree's version when it was
    made; once `insert` or `delete` changes the tree, its slot may have been
    recycled for another value, so reading through it raises StaleNodeError.
    """

    __slots__ = ("_tree", "_index", "_version")

    def __init__(
        self,
        tree:  "Tree",
        index: int

    ) -> None:

        self._tree    = tree
        self._index   = int(index)
        self._version = tree._version

    def _check(self) -> "Tree":
        if self._version != self._tree._version:
            raise StaleNodeError(
                f"Node at slot {self._index} was taken before the tree was modified"
            )

        return self._tree

    @property
    def index(self) -> int:
        """Arena slot of this node."""
        return self._index

    @property
    def is_stale(self) -> bool:
        return self._version != self._tree._version

    @property
    def data(self) -> Any:
        return self._check()._values[self._index].item()

    @property
    def left(self) -> Optional["Node"]:
        tree = self._check()
        return tree._node(tree._left[self._index])

    @property
    def right(self) -> Optional["Node"]:
        tree = self._check()
        return tree._node(tree._right[self._index])

    @property
    def is_leaf(self) -> bool:
        tree = self._check()
        return bool(tree._left[self._index] == NIL and tree._right[self._index] == NIL)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented

        return self._tree is other._tree and self._index == other._index

    def __hash__(self) -> int:
        return hash((id(self._tree), self._index))

    def __repr__(self) -> str:
        if self.is_stale:
            return f"Node(<stale slot {self._index}>)"

        return f"Node({self.data})"



# --------- Tree API ---------
class Tree:
    """
    Binary search tree of unique numeric values, balanced when built.

    Nodes live in NumPy arrays (values, left links, right links) and the hot
    operations run as Numba kernels over them; slot 0 means "no child".
    `build` lays the sorted unique input out with minimal height. Later
    `insert` and `delete` calls keep the BST order but do not rebalance.

    Attributes:
        config (TreeConfig): Arena sizing.
    """

    def __init__(
        self,
        config: Optional[TreeConfig] = None

    ) -> None:

        self.config   = config if config is not None else TreeConfig()
        self._version = 0
        self._allocate(self.config.initial_capacity, np.int64)

    def _allocate(
        self,
        capacity: int,
        dtype

    ) -> None:

        self._values        = np.zeros(capacity + 1, dtype=dtype)
        self._left          = np.zeros(capacity + 1, dtype=np.int64)
        self._right         = np.zeros(capacity + 1, dtype=np.int64)
        self._free_list     = np.zeros(capacity + 1, dtype=np.int64)
        self._free_list_top = 0
        self._free          = 1
        self._root          = 0
        self._count         = 0

    @classmethod
    def build(
        cls,
        values: Iterable[Any],
        config: Optional[TreeConfig] = None

    ) -> "Tree":

        """
        Build a balanced tree from any collection of numeric values.

        Duplicates are dropped and the values sorted; the sorted sequence is
        then split recursively at its lower midpoint, giving a tree of height
        ceil(log2(n + 1)) - 1 for n distinct values. Empty input gives an
        empty tree.

        Args:
            values (Iterable): Numeric values in any order, duplicates allowed.
            config (Optional[TreeConfig]): Arena sizing, defaults to TreeConfig().

        Returns:
            Tree: The new tree.

        Raises:
            InvalidArgumentError: If the values are not numeric.
        """

        data = np.unique(_as_numeric_array(values))
        tree = cls(config)

        tree._allocate(max(tree.config.initial_capacity, data.size), data.dtype)
        tree._root  = int(build_balanced(data, tree._values, tree._left, tree._right))
        tree._count = int(data.size)
        tree._free  = int(data.size) + 1

        logger.debug("Built tree of %d unique values (height %s)", tree._count, tree._root_height())
        return tree

    @property
    def root(self) -> Optional[Node]:
        return self._node(self._root)

    @property
    def capacity(self) -> int:
        return int(self._values.size - 1)

    def _node(
        self,
        index: int

    ) -> Optional[Node]:

        if index == NIL:
            return None

        return Node(self, index)

    def _key(
        self,
        value: Any

    ) -> Optional[np.generic]:

        """
        `value` in the arena dtype, or None when the arena cannot hold it
        exactly (such a value cannot be in the tree).
        """

        cast, exact = _cast_exact(np.array([_as_numeric_scalar(value)]), self._values.dtype)
        return cast[0] if exact[0] else None

    def _root_height(self) -> Optional[int]:
        if self._root == NIL:
            return None

        return int(subtree_height(self._left, self._right, self._root))

    def _reserve(self) -> None:
        """Grow the arena when no slot is free for one more node."""

        if self._free_list_top > 0 or self._free < self._values.size:
            return

        old_capacity = self.capacity
        new_capacity = old_capacity * self.config.growth_factor
        extra        = new_capacity - old_capacity

        self._values    = np.concatenate((self._values, np.zeros(extra, dtype=self._values.dtype)))
        self._left      = np.concatenate((self._left, np.zeros(extra, dtype=np.int64)))
        self._right     = np.concatenate((self._right, np.zeros(extra, dtype=np.int64)))
        self._free_list = np.concatenate((self._free_list, np.zeros(extra, dtype=np.int64)))

        logger.debug("Grew arena from %d to %d slots", old_capacity, new_capacity)

    def insert(
        self,
        value: Any

    ) -> bool:

        """
        Insert a value as a new leaf. Inserting a value already present
        leaves the tree unchanged. The tree is not rebalanced.

        Returns:
            bool: True if a node was added, False for a duplicate.
        """

        scalar = _as_numeric_scalar(value)
        dtype  = np.result_type(self._values.dtype, scalar.dtype)

        cast, exact = _cast_exact(np.array([scalar]), dtype)
        if not exact[0]:
            raise InvalidArgumentError(f"{value!r} cannot be stored exactly as {dtype}")

        if dtype != self._values.dtype:
            live     = self._values[in_order(self._left, self._right, self._root, self._count)]
            _, exact = _cast_exact(live, dtype)
            if not exact.all():
                raise InvalidArgumentError(
                    f"Cannot insert {value!r}: stored integers {live[~exact][:3].tolist()} "
                    f"would lose precision as {dtype}"
                )

            logger.debug("Promoting tree values from %s to %s", self._values.dtype, dtype)
            self._values = self._values.astype(dtype)

        self._reserve()

        root, free, free_list_top, inserted = insert(
            self._values,
            self._left,
            self._right,
            self._root,
            self._free,
            self._free_list,
            self._free_list_top,
            cast[0]
        )

        self._root          = int(root)
        self._free          = int(free)
        self._free_list_top = int(free_list_top)

        if inserted:
            self._count   += 1
            self._version += 1
            logger.debug("Inserted %s", scalar)

        return bool(inserted)

    def delete(
        self,
        value: Any

    ) -> bool:

        """
        Remove a value. A node with two children takes its in-order
        successor's value, and the successor's node is unlinked instead.
        Deleting a missing value, or deleting from an empty tree, does nothing.

        Returns:
            bool: True if the value was present and removed.
        """

        key = self._key(value)

        if key is None or self._count == 0:
            return False

        removed, root, free_list_top = remove(
            self._values,
            self._left,
            self._right,
            self._root,
            self._free_list,
            self._free_list_top,
            key
        )

        if removed:
            self._root          = int(root)
            self._free_list_top = int(free_list_top)
            self._count   -= 1
            self._version += 1
            logger.debug("Deleted %s", key)

        return bool(removed)

    def find_value(
        self,
        value: Any

    ) -> Optional[Node]:

        """Binary search for a value. Returns its Node, or None if absent."""

        key = self._key(value)

        if key is None or self._root == NIL:
            return None

        return self._node(search_single(self._values, self._left, self._right, self._root, key))

    def find_values(
        self,
        values: Iterable[Any]

    ) -> np.ndarray:

        """
        Membership test for many values at once, run in parallel.

        Returns:
            np.ndarray: Boolean array, True where the value is in the tree.
        """

        queries     = _as_numeric_array(values)
        keys, exact = _cast_exact(queries, self._values.dtype)

        if self._root == NIL:
            return np.zeros(queries.size, dtype=np.bool_)

        return exact & (search_bulk(self._values, self._left, self._right, self._root, keys) != NIL)

    def height(
        self,
        value: Any

    ) -> Optional[int]:

        """
        Height of the node holding `value`: the number of edges on the longest
        path down to a leaf, 0 for a leaf. None when the value is not in the
        tree (which includes every value of an empty tree).
        """

        node = self.find_value(value)
        if node is None:
            return None

        return int(subtree_height(self._left, self._right, node.index))

    def depth(
        self,
        value: Any

    ) -> Optional[int]:

        """Number of edges from the root to the node holding `value`, or None."""

        key = self._key(value)
        if key is None:
            return None

        depth = node_depth(self._values, self._left, self._right, self._root, key)

        return None if depth < 0 else int(depth)

    def is_balanced(self) -> bool:
        """True when no node's subtree heights differ by more than one."""
        return bool(check_balanced(self._left, self._right, self._root, self._count))

    def min(self) -> Any:
        if self._root == NIL:
            return None

        current = self._root
        while self._left[current] != NIL:
            current = self._left[current]

        return self._values[current].item()

    def max(self) -> Any:
        if self._root == NIL:
            return None

        current = self._root
        while self._right[current] != NIL:
            current = self._right[current]

        return self._values[current].item()

    def to_array(self) -> np.ndarray:
        """Values in ascending order, as a new array."""
        return self._values[in_order(self._left, self._right, self._root, self._count)]



    # --------- Traversals ---------
    def _for_each(
        self,
        name:     str,
        ordering: Callable[..., np.ndarray],
        callback: Callable[[Node], Any]

    ) -> None:

        """
        Call `callback` on every node in the order given by `ordering`.

        Each call is isolated: an exception raised by the callback is logged
        with the offending node and the walk moves on to the next node.
        """

        if not callable(callback):
            raise InvalidArgumentError(
                f"{name} traversal needs a callable, not {type(callback).__name__}"
            )

        if self._root == NIL:
            return

        order = ordering(self._left, self._right, self._root, self._count)

        for index in order:
            node = Node(self, index)
            try:
                callback(node)
            except Exception:
                logger.warning(
                    "%s callback failed on node %r (slot %d); continuing",
                    name, self._values[index].item(), node.index, exc_info=True
                )

    def level_order_for_each(
        self,
        callback: Callable[[Node], Any]

    ) -> None:

        """Breadth-first: level by level from the root, left to right."""

        self._for_each("level-order", level_order, callback)

    def in_order_for_each(
        self,
        callback: Callable[[Node], Any]

    ) -> None:

        """Left subtree, node, right subtree: ascending value order."""

        self._for_each("in-order", in_order, callback)

    def pre_order_for_each(
        self,
        callback: Callable[[Node], Any]

    ) -> None:

        """Node, left subtree, right subtree."""

        self._for_each("pre-order", pre_order, callback)

    def post_order_for_each(
        self,
        callback: Callable[[Node], Any]

    ) -> None:

        """Left subtree, right subtree, node."""

        self._for_each("post-order", post_order, callback)



    # --------- Debug Output ---------
    def render(self) -> str:
        """
        Draw the tree sideways: right subtree above each node, left subtree
        below it, with branch characters marking depth and side.

        Walks with an explicit stack so trees left list-shaped by many
        inserts do not hit the interpreter's recursion limit.
        """

        lines = []
        stack = [(self._root, "", True, False)] if self._root != NIL else []

        while stack:
            index, prefix, is_left, emit = stack.pop()

            if emit:
                branch = "└── " if is_left else "┌── "
                lines.append(f"{prefix}{branch}{self._values[index].item()}")
                continue

            left  = int(self._left[index])
            right = int(self._right[index])

            if left != NIL:
                stack.append((left, prefix + ("    " if is_left else "│   "), True, False))

            stack.append((index, prefix, is_left, True))

            if right != NIL:
                stack.append((right, prefix + ("│   " if is_left else "    "), False, False))

        return "".join(line + "\n" for line in lines)

    def pretty_print(
        self,
        stream: Optional[TextIO] = None

    ) -> None:

        """Write `render()` to `stream` (stdout by default)."""

        stream = stream if stream is not None else sys.stdout
        stream.write(self.render())

    def __len__(self) -> int:
        return int(self._count)

    def __contains__(self, value: Any) -> bool:
        return self.find_value(value) is not None

    def __iter__(self) -> Iterator[Any]:
        return iter(self.to_array().tolist())

    def __str__(self) -> str:
        root = self._values[self._root].item() if self._root != NIL else None
        return "Tree(size=" + str(self._count) + ", root=" + str(root) + ", height=" + str(self._root_height()) + ")"



# --------- Utils ---------
def warmup() -> bool:
    """
    Trigger JIT compilation of every kernel for int64 and float64 trees.
    """

    for data in ([30, 20, 10, 40, 50, 25], [3.5, 1.25, 7.0]):
        tree = Tree.build(data)
        tree.insert(data[0] + 1)
        tree.find_value(data[1])
        tree.find_values(data)
        tree.height(data[0])
        tree.depth(data[0])
        tree.is_balanced()
        tree.to_array()

        for traverse in (
            tree.level_order_for_each,
            tree.in_order_for_each,
            tree.pre_order_for_each,
            tree.post_order_for_each,
        ):
            traverse(lambda node: None)

        tree.delete(data[0])

    return True
