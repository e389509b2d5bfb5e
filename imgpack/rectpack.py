"""Skyline bottom-left rectangle packing.

Rectangles are placed inside a fixed target area. The packer keeps a
"skyline" of horizontal segments and places each rectangle at the lowest
position available, optionally choosing the placement that wastes the
least area underneath it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional

MAX_VALUE = 0x7FFFFFFF
"""Largest supported coordinate; also marks rectangles that did not fit."""

_SENTINEL_Y = 1 << 30


class Heuristic(IntEnum):
    """Placement heuristic used by :class:`RectPacker`."""

    SKYLINE_BL_SORT_HEIGHT = 0
    SKYLINE_BF_SORT_HEIGHT = 1
    SKYLINE_DEFAULT = 0


@dataclass
class Rect:
    """A rectangle to pack; ``x``, ``y`` and ``was_packed`` are outputs."""

    id: int
    w: int
    h: int
    x: int = 0
    y: int = 0
    was_packed: bool = False


class _Node:
    __slots__ = ("x", "y", "next")

    def __init__(self, x: int = 0, y: int = 0, next: Optional["_Node"] = None):
        self.x = x
        self.y = y
        self.next = next


@dataclass
class _Placement:
    prev: _Node
    x: int
    y: int


class RectPacker:
    """Packs rectangles into a ``width`` x ``height`` target.

    ``num_nodes`` bounds the number of skyline segments that can exist at
    once. Unless out-of-memory is allowed, widths are rounded up so that
    this many nodes always suffice.
    """

    def __init__(self, width: int, height: int, num_nodes: int):
        if num_nodes < 1:
            raise ValueError("num_nodes must be at least 1")
        self.width = width
        self.height = height
        self.num_nodes = num_nodes
        self.heuristic = Heuristic.SKYLINE_DEFAULT

        self._free_head: Optional[_Node] = None
        for _ in range(num_nodes):
            self._free_head = _Node(next=self._free_head)

        # The root is a fixed holder whose ``next`` is the head of the skyline,
        # so every insertion point can be expressed as "the node before".
        sentinel = _Node(width, _SENTINEL_Y)
        self._root = _Node(next=_Node(0, 0, sentinel))
        self.align = 1
        self.setup_allow_out_of_mem(False)

    def setup_allow_out_of_mem(self, allow_out_of_mem: bool) -> None:
        """Choose between exact widths (may run out of nodes) and quantized widths."""
        if allow_out_of_mem:
            self.align = 1
        else:
            self.align = (self.width + self.num_nodes - 1) // self.num_nodes

    def setup_heuristic(self, heuristic: int) -> None:
        """Select the placement heuristic; raises ValueError for unknown values."""
        self.heuristic = Heuristic(heuristic)

    def _find_min_y(self, first: _Node, x0: int, width: int) -> tuple[int, int]:
        node = first
        x1 = x0 + width
        min_y = 0
        waste_area = 0
        visited_width = 0
        while node.x < x1:
            if node.y > min_y:
                waste_area += visited_width * (node.y - min_y)
                min_y = node.y
                if node.x < x0:
                    visited_width += node.next.x - x0
                else:
                    visited_width += node.next.x - node.x
            else:
                under_width = node.next.x - node.x
                if under_width + visited_width > width:
                    under_width = width - visited_width
                waste_area += under_width * (min_y - node.y)
                visited_width += under_width
            node = node.next
        return min_y, waste_area

    def _find_best_pos(self, width: int, height: int) -> Optional[_Placement]:
        width += self.align - 1
        width -= width % self.align

        if width > self.width or height > self.height:
            return None

        best: Optional[_Node] = None
        best_y = _SENTINEL_Y
        best_waste = _SENTINEL_Y
        bottom_left = self.heuristic == Heuristic.SKYLINE_BL_SORT_HEIGHT

        prev = self._root
        node = prev.next
        while node.x + width <= self.width:
            y, waste = self._find_min_y(node, node.x, width)
            if bottom_left:
                if y < best_y:
                    best_y = y
                    best = prev
            elif y + height <= self.height:
                if y < best_y or (y == best_y and waste < best_waste):
                    best_y = y
                    best_waste = waste
                    best = prev
            prev = node
            node = node.next

        best_x = 0 if best is None else best.next.x

        if self.heuristic == Heuristic.SKYLINE_BF_SORT_HEIGHT:
            prev = self._root
            node = prev.next
            tail = prev.next
            while tail.x < width:
                tail = tail.next
            while tail is not None:
                xpos = tail.x - width
                while node.next.x <= xpos:
                    prev = node
                    node = node.next
                y, waste = self._find_min_y(node, xpos, width)
                if y + height <= self.height and y <= best_y:
                    if (
                        y < best_y
                        or waste < best_waste
                        or (waste == best_waste and xpos < best_x)
                    ):
                        best_x = xpos
                        best_y = y
                        best_waste = waste
                        best = prev
                tail = tail.next

        if best is None:
            return None
        return _Placement(best, best_x, best_y)

    def _pack_rectangle(self, width: int, height: int) -> Optional[_Placement]:
        res = self._find_best_pos(width, height)
        if res is None or res.y + height > self.height or self._free_head is None:
            return None

        node = self._free_head
        node.x = res.x
        node.y = res.y + height
        self._free_head = node.next

        cur = res.prev.next
        if cur.x < res.x:
            following = cur.next
            cur.next = node
            cur = following
        else:
            res.prev.next = node

        while cur.next is not None and cur.next.x <= res.x + width:
            following = cur.next
            cur.next = self._free_head
            self._free_head = cur
            cur = following

        node.next = cur
        if cur.x < res.x + width:
            cur.x = res.x + width
        return res

    def pack_rects(self, rects: Iterable[Rect]) -> bool:
        """Place the rectangles in place; return True if all of them fit.

        Rectangles are packed tallest first (then widest). Empty rectangles
        are placed at the origin. Rectangles that do not fit get
        ``x == y == MAX_VALUE`` and ``was_packed`` False.
        """
        rects = list(rects)
        for rect in sorted(rects, key=lambda r: (-r.h, -r.w)):
            if rect.w == 0 or rect.h == 0:
                rect.x = rect.y = 0
                continue
            placement = self._pack_rectangle(rect.w, rect.h)
            if placement is None:
                rect.x = rect.y = MAX_VALUE
            else:
                rect.x = placement.x
                rect.y = placement.y

        for rect in rects:
            rect.was_packed = not (rect.x == MAX_VALUE and rect.y == MAX_VALUE)
        return all(rect.was_packed for rect in rects)