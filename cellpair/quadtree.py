"""Bounding-box quadtree used to find candidate whole-cell regions.

Entries are routed to the deepest quadrant that fully contains their
envelope; envelopes straddling a quadrant centre stay on the parent node.
The root grows outward when an entry falls outside it, so no extent has to
be known up front. Each node also tracks the union envelope of everything
stored beneath it and queries prune on that, which keeps results free of
false negatives regardless of floating-point rounding in quadrant bounds.

There is no removal: callers keep their own record of consumed entries.
"""

import logging
from typing import Any, List, Optional

from cellpair.region import Envelope

logger = logging.getLogger(__name__)

MAX_DEPTH = 24
_MIN_EXTENT = 1.0


def _union(a: Optional[Envelope], b: Envelope) -> Envelope:
    if a is None:
        return b
    return Envelope(
        min(a.min_x, b.min_x),
        min(a.min_y, b.min_y),
        max(a.max_x, b.max_x),
        max(a.max_y, b.max_y),
    )


class _Node:
    __slots__ = ("bounds", "items", "children", "extent")

    def __init__(self, bounds: Envelope):
        self.bounds = bounds
        self.items = []
        self.children = [None, None, None, None]
        self.extent = None

    def quadrant_for(self, env: Envelope) -> Optional[int]:
        """Index of the child quadrant holding ``env``, or None if it straddles."""
        cx = (self.bounds.min_x + self.bounds.max_x) / 2.0
        cy = (self.bounds.min_y + self.bounds.max_y) / 2.0
        if env.min_x >= cx:
            col = 1
        elif env.max_x <= cx:
            col = 0
        else:
            return None
        if env.min_y >= cy:
            row = 1
        elif env.max_y <= cy:
            row = 0
        else:
            return None
        return col + 2 * row

    def child_bounds(self, quadrant: int) -> Envelope:
        cx = (self.bounds.min_x + self.bounds.max_x) / 2.0
        cy = (self.bounds.min_y + self.bounds.max_y) / 2.0
        if quadrant % 2:
            min_x, max_x = cx, self.bounds.max_x
        else:
            min_x, max_x = self.bounds.min_x, cx
        if quadrant // 2:
            min_y, max_y = cy, self.bounds.max_y
        else:
            min_y, max_y = self.bounds.min_y, cy
        return Envelope(min_x, min_y, max_x, max_y)


class Quadtree:
    """Quadtree index over envelopes with an approximate window query.

    ``query`` returns every item whose envelope intersects the query
    envelope. Results come back in a deterministic order: a pre-order walk
    of the tree, node items in insertion order, children in quadrant order
    (lower-left, lower-right, upper-left, upper-right).

    Example:
        >>> tree = Quadtree()
        >>> tree.insert(Envelope(0, 0, 10, 10), 0)
        >>> tree.query(Envelope(5, 5, 6, 6))
        [0]
    """

    def __init__(self, max_depth: int = MAX_DEPTH):
        self.max_depth = max_depth
        self._root: Optional[_Node] = None
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def size(self) -> int:
        return self._size

    @property
    def depth(self) -> int:
        if self._root is None:
            return 0
        return self._depth(self._root)

    def _depth(self, node: _Node) -> int:
        child_depths = [self._depth(child) for child in node.children if child is not None]
        return 1 + max(child_depths, default=0)

    def insert(self, env: Envelope, item: Any) -> None:
        env = Envelope(*env)
        if self._root is None:
            self._root = _Node(self._initial_bounds(env))
        self._ensure_root_covers(env)

        node = self._root
        node.extent = _union(node.extent, env)
        for _ in range(self.max_depth):
            quadrant = node.quadrant_for(env)
            if quadrant is None:
                break
            child = node.children[quadrant]
            if child is None:
                bounds = node.child_bounds(quadrant)
                if bounds.width <= 0 or bounds.height <= 0:
                    break
                child = _Node(bounds)
                node.children[quadrant] = child
            elif not child.bounds.contains(env):
                break
            node = child
            node.extent = _union(node.extent, env)
        node.items.append((env, item))
        self._size += 1

    def query(self, env: Envelope) -> List[Any]:
        env = Envelope(*env)
        found = []
        if self._root is not None:
            self._query(self._root, env, found)
        return found

    def _query(self, node: _Node, env: Envelope, found: List[Any]) -> None:
        if node.extent is None or not node.extent.intersects(env):
            return
        for item_env, item in node.items:
            if item_env.intersects(env):
                found.append(item)
        for child in node.children:
            if child is not None:
                self._query(child, env, found)

    @staticmethod
    def _initial_bounds(env: Envelope) -> Envelope:
        width = max(env.width, _MIN_EXTENT)
        height = max(env.height, _MIN_EXTENT)
        return Envelope(env.min_x, env.min_y, env.min_x + width, env.min_y + height)

    def _ensure_root_covers(self, env: Envelope) -> None:
        """Double the root toward ``env`` until it fits; the old root becomes a quadrant."""
        while not self._root.bounds.contains(env):
            old = self._root
            b = old.bounds
            grow_left = env.min_x < b.min_x
            grow_down = env.min_y < b.min_y
            min_x = b.min_x - b.width if grow_left else b.min_x
            min_y = b.min_y - b.height if grow_down else b.min_y
            new_root = _Node(Envelope(min_x, min_y, min_x + 2 * b.width, min_y + 2 * b.height))
            quadrant = (1 if grow_left else 0) + (2 if grow_down else 0)
            new_root.children[quadrant] = old
            new_root.extent = old.extent
            self._root = new_root
            logger.debug(f"Quadtree root expanded to {new_root.bounds}")
