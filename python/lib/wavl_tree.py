#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
wavl_tree.py
------------

An ordered key -> value container backed by a **WAVL** (weak AVL) tree, the
rank-balanced search tree of Haeupler, Sen & Tarjan.  Every node carries an
integer *rank*; the gap between a node's rank and each child's rank must be
1 or 2, and every leaf has rank 0.  Insertion repairs the tree with promotions
and at most two rotations, deletion with demotions and at most two rotations.

Each node also stores the size of its subtree, which gives O(log n)
order-statistic selection.

Features
~~~~~~~~
* `tree.insert(key, value)`  - returns the rebalancing count, or
  ``DUPLICATE_KEY`` if the key is already present
* `tree.delete(key)`         - returns the rebalancing count, or ``NOT_FOUND``
* `tree.search(key)`         - value or ``None``
* `tree.min()`, `tree.max()` - O(1) through cached extreme nodes
* `tree.select(i)`           - value of the i-th smallest key (1-based)
* `tree.keys_to_array()`, `tree.values_to_array()` - in-order export
* dict-like protocol: ``tree[key]``, ``tree[key] = value``, ``del tree[key]``,
  ``key in tree``, ``len(tree)``, iteration in ascending key order
* `tree.validate()` - check every WAVL invariant (useful for debugging)

As in our red-black tree, a **single shared sentinel** (``self._nil``, rank -1,
size 0) stands in for every missing child, so rank arithmetic never needs a
``None`` check.

Typical usage
~~~~~~~~~~~~~
>>> from wavl_tree import WAVLTree
>>> t = WAVLTree()
>>> t.insert(10, "ten")
0
>>> t.insert(20, "twenty")
1
>>> t.insert(5, "five")
0
>>> t.keys_to_array()
[5, 10, 20]
>>> t.select(2)
'ten'
>>> t.delete(99)
-1
"""

from __future__ import annotations

import logging
import os
import sys
from enum import Enum, IntEnum
from typing import (
    Generator,
    Generic,
    Iterable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

# ----------------------------------------------------------------------
#  Logging - level comes from WAVL_LOG_LEVEL (default WARNING)
# ----------------------------------------------------------------------
logger = logging.getLogger(__name__)
if not logger.handlers:
    _handler = logging.StreamHandler(stream=sys.stderr)
    _handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(_handler)
logger.setLevel(os.getenv("WAVL_LOG_LEVEL", "WARNING").upper())

# ----------------------------------------------------------------------
#  Type variables (keys must be comparable, values may be anything)
# ----------------------------------------------------------------------
K = TypeVar("K")
V = TypeVar("V")

# ----------------------------------------------------------------------
#  Status results of insert / delete (never a valid rebalancing count)
# ----------------------------------------------------------------------
DUPLICATE_KEY = -1
NOT_FOUND = -1

# Rebalancing cost reported for each structural response.
INSERT_SINGLE_ROTATION_COST = 2
INSERT_DOUBLE_ROTATION_COST = 5


class Direction(Enum):
    """Side of a child link, also used as the direction of a rotation."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "Direction":
        return Direction.RIGHT if self is Direction.LEFT else Direction.LEFT


class _DeleteCase(IntEnum):
    """Shape of a node visited by the post-deletion walk."""

    NONE = 0
    DEMOTE = 1
    DOUBLE_DEMOTE = 2
    SINGLE_ROTATION = 3
    DOUBLE_ROTATION = 4


_DELETE_CASE_COST = {
    _DeleteCase.DEMOTE: 1,
    _DeleteCase.DOUBLE_DEMOTE: 2,
    _DeleteCase.SINGLE_ROTATION: 3,
    _DeleteCase.DOUBLE_ROTATION: 5,
}


class WAVLNode(Generic[K, V]):
    """A tree node.  Handed out by ``WAVLTree.root()``; treat it as read-only."""

    __slots__ = ("key", "value", "rank", "size", "left", "right", "parent")

    def __init__(
        self,
        key: Optional[K] = None,
        value: Optional[V] = None,
        rank: int = 0,
        size: int = 1,
        left: Optional["WAVLNode[K, V]"] = None,
        right: Optional["WAVLNode[K, V]"] = None,
        parent: Optional["WAVLNode[K, V]"] = None,
    ) -> None:
        self.key = key
        self.value = value
        self.rank = rank
        self.size = size
        self.left = left
        self.right = right
        self.parent = parent

    def is_inner_node(self) -> bool:
        """True for a real node, False for the sentinel."""
        return self.rank >= 0

    def __repr__(self) -> str:
        return f"<r{self.rank} {self.key!r}:{self.value!r} n={self.size}>"


class WAVLTree(Generic[K, V]):
    """
    A mutable ordered mapping implemented with a WAVL tree.

    ``insert`` and ``delete`` follow the status-code contract (a non-negative
    rebalancing count, or ``DUPLICATE_KEY`` / ``NOT_FOUND``).  The dict-style
    protocol (``__setitem__``, ``__getitem__``, ``__delitem__``) raises
    ``KeyError`` instead, like the built-in ``dict``.
    """

    __slots__ = ("_root", "_nil", "_min", "_max")

    # ------------------------------------------------------------------
    #   Construction / basic container protocol
    # ------------------------------------------------------------------
    def __init__(self, items: Optional[Iterable[Tuple[K, V]]] = None) -> None:
        """
        Create an empty tree or optionally initialise it from an iterable of
        ``(key, value)`` pairs.  A later pair replaces the value of an earlier
        pair with the same key.
        """
        # The sentinel - shared by every missing child and by the root's parent.
        self._nil: WAVLNode[K, V] = WAVLNode(rank=-1, size=0)
        self._nil.left = self._nil.right = self._nil.parent = self._nil

        self._root: WAVLNode[K, V] = self._nil
        self._min: Optional[WAVLNode[K, V]] = None
        self._max: Optional[WAVLNode[K, V]] = None

        if items is not None:
            for key, value in items:
                self[key] = value

    def is_empty(self) -> bool:
        return self._root is self._nil

    def size(self) -> int:
        """Number of stored keys, read from the root's subtree size."""
        return self._root.size

    def root(self) -> Optional[WAVLNode[K, V]]:
        """Return the root node, or ``None`` for an empty tree."""
        if self._root is self._nil:
            return None
        return self._root

    # ------------------------------------------------------------------
    #   Search / navigation (internal)
    # ------------------------------------------------------------------
    def _search_node(self, key: K) -> WAVLNode[K, V]:
        """Return the node that holds *key* or the sentinel `_nil` if not found."""
        cur = self._root
        while cur is not self._nil:
            if key == cur.key:
                return cur
            elif key < cur.key:
                cur = cur.left
            else:
                cur = cur.right
        return self._nil

    def _successor(self, node: WAVLNode[K, V]) -> Optional[WAVLNode[K, V]]:
        """In-order successor of *node*, or ``None`` if it holds the largest key."""
        if node.right is not self._nil:
            node = node.right
            while node.left is not self._nil:
                node = node.left
            return node

        parent = node.parent
        while parent is not self._nil and node is parent.right:
            node = parent
            parent = parent.parent
        return parent if parent is not self._nil else None

    def _predecessor(
        self, node: WAVLNode[K, V], shrink_sizes: bool = False
    ) -> Optional[WAVLNode[K, V]]:
        """
        In-order predecessor of *node*, or ``None`` if it holds the smallest key.

        With ``shrink_sizes`` every node passed on the way down from
        ``node.left`` has its subtree size decremented; the predecessor itself
        is left alone.  Binary deletion uses this to fix the sizes along the
        path to the node it is about to remove.
        """
        if node.left is not self._nil:
            node = node.left
            while node.right is not self._nil:
                if shrink_sizes:
                    node.size -= 1
                node = node.right
            return node

        parent = node.parent
        while parent is not self._nil and node is parent.left:
            node = parent
            parent = parent.parent
        return parent if parent is not self._nil else None

    def _iter_nodes(self) -> Generator[WAVLNode[K, V], None, None]:
        """Yield nodes in key order by successor-stepping from the cached min."""
        node = self._min
        while node is not None:
            yield node
            node = self._successor(node)

    # ------------------------------------------------------------------
    #   Public lookup API
    # ------------------------------------------------------------------
    def search(self, key: K) -> Optional[V]:
        """Return the value stored under *key*, or ``None`` if it is absent."""
        node = self._search_node(key)
        if node is self._nil:
            return None
        return node.value

    def min(self) -> Optional[V]:
        """Value of the smallest key, or ``None`` when the tree is empty."""
        return self._min.value if self._min is not None else None

    def max(self) -> Optional[V]:
        """Value of the largest key, or ``None`` when the tree is empty."""
        return self._max.value if self._max is not None else None

    def min_key(self) -> K:
        """Return the smallest key stored in the tree."""
        if self._min is None:
            raise ValueError("Tree is empty")
        return self._min.key  # type: ignore[return-value]

    def max_key(self) -> K:
        """Return the largest key stored in the tree."""
        if self._max is None:
            raise ValueError("Tree is empty")
        return self._max.key  # type: ignore[return-value]

    def successor(self, key: K) -> K:
        """Return the smallest key greater than *key*; raise KeyError if none."""
        node = self._search_node(key)
        if node is self._nil:
            raise KeyError(key)
        nxt = self._successor(node)
        if nxt is None:
            raise KeyError(f"No successor for {key}")
        return nxt.key  # type: ignore[return-value]

    def predecessor(self, key: K) -> K:
        """Return the greatest key smaller than *key*; raise KeyError if none."""
        node = self._search_node(key)
        if node is self._nil:
            raise KeyError(key)
        prev = self._predecessor(node)
        if prev is None:
            raise KeyError(f"No predecessor for {key}")
        return prev.key  # type: ignore[return-value]

    # ------------------------------------------------------------------
    #   Order statistics / export
    # ------------------------------------------------------------------
    def select(self, i: int) -> Optional[V]:
        """
        Return the value of the *i*-th smallest key (1-based).

        ``select(1)`` is the value of the minimum and ``select(size())`` that
        of the maximum.  Out-of-range ranks give ``None``.
        """
        if i < 1 or i > self.size():
            return None

        cur = self._root
        while True:
            left_size = cur.left.size
            if i == left_size + 1:
                return cur.value
            if i <= left_size:
                cur = cur.left
            else:
                i -= left_size + 1
                cur = cur.right

    def keys_to_array(self) -> List[K]:
        """Return all keys in ascending order ([] for an empty tree)."""
        return [node.key for node in self._iter_nodes()]  # type: ignore[misc]

    def values_to_array(self) -> List[V]:
        """Return all values, ordered by their keys."""
        return [node.value for node in self._iter_nodes()]  # type: ignore[misc]

    # ------------------------------------------------------------------
    #   Dict-style protocol
    # ------------------------------------------------------------------
    def __contains__(self, key: object) -> bool:
        return self._search_node(key) is not self._nil  # type: ignore[arg-type]

    def __len__(self) -> int:
        return self._root.size

    def __getitem__(self, key: K) -> V:
        node = self._search_node(key)
        if node is self._nil:
            raise KeyError(key)
        return node.value  # type: ignore[return-value]

    def __setitem__(self, key: K, value: V) -> None:
        """Insert *key* with *value* or replace the value of an existing key."""
        node = self._search_node(key)
        if node is not self._nil:
            node.value = value
            return
        self.insert(key, value)

    def __delitem__(self, key: K) -> None:
        if self.delete(key) == NOT_FOUND:
            raise KeyError(key)

    def __iter__(self) -> Generator[K, None, None]:
        """Yield keys in ascending order."""
        for node in self._iter_nodes():
            yield node.key  # type: ignore[misc]

    def keys(self) -> List[K]:
        return self.keys_to_array()

    def values(self) -> List[V]:
        return self.values_to_array()

    def items(self) -> List[Tuple[K, V]]:
        """Return a list of ``(key, value)`` pairs in sorted order."""
        return [(node.key, node.value) for node in self._iter_nodes()]  # type: ignore[misc]

    # ------------------------------------------------------------------
    #   Structural helpers
    # ------------------------------------------------------------------
    def _transplant(self, u: WAVLNode[K, V], v: WAVLNode[K, V]) -> None:
        """Hang `v` where `u` hangs now.  The sentinel's links are never written."""
        if u.parent is self._nil:
            self._root = v
        elif u is u.parent.left:
            u.parent.left = v
        else:
            u.parent.right = v
        if v is not self._nil:
            v.parent = u.parent

    def _side_of(self, node: WAVLNode[K, V]) -> Direction:
        return Direction.LEFT if node is node.parent.left else Direction.RIGHT

    def _rotate(self, x: WAVLNode[K, V], direction: Direction) -> WAVLNode[K, V]:
        """
        Move `x` above its parent `z` and return `z`.

        A LEFT rotation needs `x` to be the right child of `z`: afterwards `z`
        is the left child of `x` and adopts the old left subtree of `x` as its
        right subtree.  RIGHT is the mirror image.

        Sizes of the pair are recomputed locally.  `z` has lost a level, so its
        rank drops by one, or is reset to 0 if it ended up a leaf.
        """
        z = x.parent
        inner = getattr(x, direction.value)

        self._transplant(z, x)
        setattr(z, direction.opposite.value, inner)
        if inner is not self._nil:
            inner.parent = z
        setattr(x, direction.value, z)
        z.parent = x

        x.size = z.size
        z.size = 1 + z.left.size + z.right.size

        if z.left is self._nil and z.right is self._nil:
            z.rank = 0
        else:
            z.rank -= 1
        logger.debug("rotate %s: %r above %r", direction.value, x.key, z.key)
        return z

    # ------------------------------------------------------------------
    #   Insertion
    # ------------------------------------------------------------------
    def insert(self, key: K, value: V) -> int:
        """
        Insert *key* with *value*.

        Returns the number of rebalancing operations performed (0 when none
        were needed), or ``DUPLICATE_KEY`` if *key* is already present; in
        that case the tree is left untouched.
        """
        parent = self._nil
        cur = self._root
        while cur is not self._nil:
            if key == cur.key:
                return DUPLICATE_KEY
            parent = cur
            cur = cur.left if key < cur.key else cur.right

        node: WAVLNode[K, V] = WAVLNode(
            key=key, value=value, left=self._nil, right=self._nil, parent=parent
        )

        if parent is self._nil:
            self._root = self._min = self._max = node
            return 0

        parent_was_leaf = parent.left is self._nil and parent.right is self._nil
        if key < parent.key:
            parent.left = node
        else:
            parent.right = node

        if key < self._min.key:  # type: ignore[union-attr]
            self._min = node
        if key > self._max.key:  # type: ignore[union-attr]
            self._max = node

        anc = parent
        while anc is not self._nil:
            anc.size += 1
            anc = anc.parent

        # A former unary parent is now (1,1) or (1,2): still valid.
        if not parent_was_leaf:
            return 0
        return self._rebalance_after_insert(parent)

    def _rebalance_after_insert(self, node: WAVLNode[K, V]) -> int:
        """Promote the former leaf `node` and walk up resolving 0-gaps."""
        node.rank += 1
        count = 1
        parent = node.parent

        while parent is not self._nil and parent.rank == node.rank:
            side = self._side_of(node)
            sibling = getattr(parent, side.opposite.value)

            if parent.rank - sibling.rank == 1:
                parent.rank += 1
                count += 1
                logger.debug("insert: promote %r to rank %d", parent.key, parent.rank)
                node = parent
                parent = node.parent
                continue

            # parent is (0,2): promoting it would open a 3-gap, rotate instead.
            rotation = side.opposite
            inner = getattr(node, rotation.value)
            if node.rank - inner.rank == 2:
                self._rotate(node, rotation)
                return count + INSERT_SINGLE_ROTATION_COST

            self._rotate(inner, side)
            self._rotate(inner, rotation)
            inner.rank += 1
            return count + INSERT_DOUBLE_ROTATION_COST

        return count

    # ------------------------------------------------------------------
    #   Deletion
    # ------------------------------------------------------------------
    def delete(self, key: K) -> int:
        """
        Remove *key* from the tree.

        Returns the number of rebalancing operations performed, or
        ``NOT_FOUND`` if *key* is absent (the tree is then unchanged).
        """
        node = self._search_node(key)
        if node is self._nil:
            return NOT_FOUND

        if node is self._root and node.left is self._nil and node.right is self._nil:
            self._root = self._nil
            self._min = self._max = None
            return 0

        anc = node.parent
        while anc is not self._nil:
            anc.size -= 1
            anc = anc.parent

        if node is self._min:
            self._min = self._successor(node)
        if node is self._max:
            self._max = self._predecessor(node)

        if node.left is not self._nil and node.right is not self._nil:
            # Keep the node, take over its predecessor's payload and remove
            # the predecessor (a leaf or unary node) instead.
            node.size -= 1
            pred = self._predecessor(node, shrink_sizes=True)
            node.key, node.value = pred.key, pred.value  # type: ignore[union-attr]
            if pred is self._min:
                self._min = node
            node = pred  # type: ignore[assignment]

        count, start = self._remove(node)
        return count + self._rebalance_after_delete(start)

    def _remove(self, node: WAVLNode[K, V]) -> Tuple[int, WAVLNode[K, V]]:
        """
        Unlink a leaf or unary `node`.

        Returns the rebalancing count spent here and the node where the
        upward walk has to start.
        """
        parent = node.parent

        if node.left is self._nil and node.right is self._nil:
            self._transplant(node, self._nil)
            if parent.left is self._nil and parent.right is self._nil:
                # The unary parent collapsed into a leaf; its own gap to its
                # parent grows, so the walk starts one level higher.
                parent.rank = 0
                logger.debug("delete: %r collapsed into a leaf", parent.key)
                return 1, parent.parent
            return 0, parent

        child = node.left if node.left is not self._nil else node.right
        self._transplant(node, child)
        return 0, parent

    def _classify(self, node: WAVLNode[K, V]) -> Tuple[_DeleteCase, Direction]:
        """Classify `node` by its rank gaps; the direction is the 3-child's side."""
        left_gap = node.rank - node.left.rank
        right_gap = node.rank - node.right.rank
        if left_gap < 3 and right_gap < 3:
            return _DeleteCase.NONE, Direction.LEFT

        short = Direction.LEFT if left_gap >= 3 else Direction.RIGHT
        sibling = getattr(node, short.opposite.value)
        if node.rank - sibling.rank == 2:
            return _DeleteCase.DEMOTE, short

        if sibling.rank - sibling.left.rank == 2 and sibling.rank - sibling.right.rank == 2:
            return _DeleteCase.DOUBLE_DEMOTE, short

        outer = getattr(sibling, short.opposite.value)
        if sibling.rank - outer.rank == 1:
            return _DeleteCase.SINGLE_ROTATION, short
        return _DeleteCase.DOUBLE_ROTATION, short

    def _rebalance_after_delete(self, node: WAVLNode[K, V]) -> int:
        """Walk up from `node` repairing 3-gaps until a node is valid."""
        count = 0
        while node is not self._nil:
            case, short = self._classify(node)
            if case is _DeleteCase.NONE:
                break
            logger.debug("delete: case %d at %r", int(case), node.key)

            sibling = getattr(node, short.opposite.value)
            if case is _DeleteCase.DEMOTE:
                node.rank -= 1
                node = node.parent
            elif case is _DeleteCase.DOUBLE_DEMOTE:
                node.rank -= 1
                sibling.rank -= 1
                node = node.parent
            elif case is _DeleteCase.SINGLE_ROTATION:
                sibling.rank += 1
                self._rotate(sibling, short)
                node = sibling
            else:
                inner = getattr(sibling, short.value)
                inner.rank += 1
                self._rotate(inner, short.opposite)
                inner.rank += 1
                self._rotate(inner, short)
                # `node` must end two ranks lower; the rotation took one.
                if node.left is not self._nil or node.right is not self._nil:
                    node.rank -= 1
                node = inner

            count += _DELETE_CASE_COST[case]
        return count

    # ------------------------------------------------------------------
    #   Validation/checking utilities - useful for debugging
    # ------------------------------------------------------------------
    def validate(self) -> int:
        """
        Verify that the tree satisfies all WAVL invariants and return the
        number of nodes.  Raises ``AssertionError`` with a descriptive message
        if something is broken.
        """
        nil = self._nil
        assert nil.rank == -1 and nil.size == 0, "Sentinel was modified"
        assert nil.left is nil and nil.right is nil, "Sentinel grew children"

        def dfs(
            node: WAVLNode[K, V], low: Optional[WAVLNode[K, V]], high: Optional[WAVLNode[K, V]]
        ) -> int:
            if node is nil:
                return 0

            # BST ordering against the tightest ancestor bounds
            if low is not None:
                assert node.key > low.key, "BST property violated (key too small)"
            if high is not None:
                assert node.key < high.key, "BST property violated (key too large)"

            for child in (node.left, node.right):
                gap = node.rank - child.rank
                assert gap in (1, 2), f"Rank gap {gap} under {node.key!r}"
                if child is not nil:
                    assert child.parent is node, f"Broken parent link at {child.key!r}"

            if node.left is nil and node.right is nil:
                assert node.rank == 0, f"Leaf {node.key!r} has rank {node.rank}"

            count = 1 + dfs(node.left, low, node) + dfs(node.right, node, high)
            assert node.size == count, f"Subtree size of {node.key!r} is {node.size}, expected {count}"
            return count

        if self._root is nil:
            assert self._min is None and self._max is None, "Stale min/max on empty tree"
            return 0

        assert self._root.parent is nil, "Root has a parent"
        total = dfs(self._root, None, None)

        lowest = highest = self._root
        while lowest.left is not nil:
            lowest = lowest.left
        while highest.right is not nil:
            highest = highest.right
        assert self._min is lowest, "Cached min is stale"
        assert self._max is highest, "Cached max is stale"
        return total

    # ------------------------------------------------------------------
    #   Convenience string representation (for debugging)
    # ------------------------------------------------------------------
    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {v!r}" for k, v in self.items())
        return f"WAVLTree({{{items}}})"
