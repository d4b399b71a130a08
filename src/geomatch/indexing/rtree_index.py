import itertools
import threading
from typing import Any

from rtree import index

DEFAULT_POINT_HALF_WIDTH = 0.0001


class RTreeIndex:
    """Bounding-rectangle index over points, backed by libspatialindex.

    Each point is stored as a tiny square of ``point_half_width`` around it.
    Searches return everything intersecting the square query box, which is a
    superset of the true search circle; results are not post-filtered.
    """

    def __init__(self, point_half_width: float = DEFAULT_POINT_HALF_WIDTH):
        self._point_half_width = point_half_width
        self._index = index.Index()
        self._ids = itertools.count()
        self._size = 0
        self._lock = threading.Lock()  # libspatialindex handles are not thread-safe

    def insert(self, lat: float, lon: float, item: Any = None) -> int:
        """Store a point; ``item`` defaults to the ``(lat, lon)`` tuple itself."""
        payload = (lat, lon) if item is None else item
        with self._lock:
            entry_id = next(self._ids)
            self._index.insert(entry_id, self._box(lat, lon, self._point_half_width), obj=payload)
            self._size += 1
            return entry_id

    def search_nearby(self, lat: float, lon: float, radius: float) -> list[Any]:
        with self._lock:
            if self._size == 0:
                return []
            hits = self._index.intersection(self._box(lat, lon, radius), objects=True)
            return [hit.object for hit in hits]

    @staticmethod
    def _box(lat: float, lon: float, half_width: float) -> tuple[float, float, float, float]:
        # (minx, miny, maxx, maxy) with x = longitude
        return (lon - half_width, lat - half_width, lon + half_width, lat + half_width)

    def __len__(self) -> int:
        with self._lock:
            return self._size
