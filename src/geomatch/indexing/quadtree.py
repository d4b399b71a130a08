"""Lock-protected point quadtree over a fixed planar region.

Coordinates are treated as planar (Euclidean distance on raw degrees), which
is an accepted approximation for small search regions.
"""

import logging
import threading
from dataclasses import dataclass, field
from math import hypot
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 4
DEFAULT_MAX_DEPTH = 24


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    data: Any = field(default=None, compare=False)

    def distance_to(self, other: "Point") -> float:
        return hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def contains(self, point: Point) -> bool:
        return self.min_x <= point.x <= self.max_x and self.min_y <= point.y <= self.max_y

    def intersects_circle(self, center: Point, radius: float) -> bool:
        """True if the closest point of the rectangle to ``center`` is within ``radius``."""
        closest_x = max(self.min_x, min(center.x, self.max_x))
        closest_y = max(self.min_y, min(center.y, self.max_y))
        dx = closest_x - center.x
        dy = closest_y - center.y
        return dx * dx + dy * dy <= radius * radius

    def quadrants(self) -> tuple["Bounds", "Bounds", "Bounds", "Bounds"]:
        """Split at the midpoint into NE, NW, SW, SE."""
        mid_x = (self.min_x + self.max_x) / 2
        mid_y = (self.min_y + self.max_y) / 2
        return (
            Bounds(mid_x, mid_y, self.max_x, self.max_y),
            Bounds(self.min_x, mid_y, mid_x, self.max_y),
            Bounds(self.min_x, self.min_y, mid_x, mid_y),
            Bounds(mid_x, self.min_y, self.max_x, mid_y),
        )


class QuadtreeNode:
    """A leaf holding points, or an internal node with exactly four children.

    The leaf -> internal transition happens once, when an insert would exceed
    capacity, and is never undone. Internal nodes hold no points.
    """

    __slots__ = ("bounds", "depth", "points", "children")

    def __init__(self, bounds: Bounds, depth: int = 0):
        self.bounds = bounds
        self.depth = depth
        self.points: list[Point] = []
        self.children: tuple[QuadtreeNode, ...] | None = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def insert(self, point: Point, capacity: int, max_depth: int) -> bool:
        if not self.bounds.contains(point):
            return False

        if self.children is None:
            # At max depth coincident points would otherwise subdivide forever
            if len(self.points) < capacity or self.depth >= max_depth:
                self.points.append(point)
                return True
            self._subdivide(capacity, max_depth)

        return self._insert_into_child(point, capacity, max_depth)

    def _insert_into_child(self, point: Point, capacity: int, max_depth: int) -> bool:
        assert self.children is not None
        # Closed bounds overlap on midpoint lines; first match wins so a
        # point is stored exactly once.
        for child in self.children:
            if child.bounds.contains(point):
                return child.insert(point, capacity, max_depth)
        return False

    def _subdivide(self, capacity: int, max_depth: int) -> None:
        self.children = tuple(
            QuadtreeNode(quadrant, self.depth + 1) for quadrant in self.bounds.quadrants()
        )
        existing, self.points = self.points, []
        for point in existing:
            self._insert_into_child(point, capacity, max_depth)

    def search(self, center: Point, radius: float, out: list[Point]) -> None:
        if not self.bounds.intersects_circle(center, radius):
            return
        for point in self.points:
            if point.distance_to(center) <= radius:
                out.append(point)
        if self.children is not None:
            for child in self.children:
                child.search(center, radius, out)


class Quadtree:
    """Thread-safe quadtree. Insert and search serialize on one lock."""

    def __init__(
        self,
        bounds: Bounds,
        capacity: int = DEFAULT_CAPACITY,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        if capacity < 1:
            raise ValueError(f"Quadtree capacity must be positive, got {capacity}")
        self._bounds = bounds
        self._capacity = capacity
        self._max_depth = max_depth
        self._root = QuadtreeNode(bounds)
        self._size = 0
        self._lock = threading.Lock()

    @property
    def bounds(self) -> Bounds:
        return self._bounds

    @property
    def root(self) -> QuadtreeNode:
        return self._root

    def insert(self, point: Point) -> bool:
        """Insert a point; points outside the root bounds are silently dropped."""
        with self._lock:
            inserted = self._root.insert(point, self._capacity, self._max_depth)
            if inserted:
                self._size += 1
            else:
                logger.debug(f"Dropped point ({point.x}, {point.y}) outside quadtree bounds")
            return inserted

    def search_nearby(self, center: Point, radius: float) -> list[Point]:
        """Return every stored point within Euclidean ``radius`` of ``center``."""
        if radius < 0:
            return []
        with self._lock:
            results: list[Point] = []
            self._root.search(center, radius, results)
            return results

    def nodes(self) -> list[QuadtreeNode]:
        """Snapshot of all nodes, depth-first."""
        with self._lock:
            collected: list[QuadtreeNode] = []
            stack = [self._root]
            while stack:
                node = stack.pop()
                collected.append(node)
                if node.children is not None:
                    stack.extend(reversed(node.children))
            return collected

    def depth(self) -> int:
        return max(node.depth for node in self.nodes())

    def clear(self) -> None:
        with self._lock:
            self._root = QuadtreeNode(self._bounds)
            self._size = 0

    def __len__(self) -> int:
        with self._lock:
            return self._size
