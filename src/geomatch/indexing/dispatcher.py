"""Point search across interchangeable geo-indexing techniques.

One technique is used per call. Between empty attempts the search radius
grows geometrically; the technique never changes mid-search.

Radius is expressed in coordinate units (degrees), not meters. The geohash
technique ignores radius entirely, so it either finds neighbor cells on the
first attempt or not at all.

Both tree techniques return the payloads given to ``insert_point``, or a
``(lat, lon)`` tuple for points inserted without one. The geohash technique
returns neighbor cell strings.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any

from geomatch.core.exceptions import NoResultsFoundError, SearchCancelledError
from geomatch.geo import geohash

from .quadtree import Point, Quadtree
from .rtree_index import RTreeIndex
from .technique import GeoIndexTechnique

logger = logging.getLogger(__name__)


@dataclass
class SearchConfig:
    default_technique: GeoIndexTechnique = GeoIndexTechnique.GEOHASH
    max_retries: int = 3
    initial_radius: float = 1.0
    radius_multiplier: float = 2.0
    point_precision: int = geohash.MAX_PRECISION


class GeoIndexDispatcher:
    """Routes nearby-point searches to the geohash, quadtree or R-tree technique.

    Index handles are injected; a technique whose index is missing simply
    contributes no results.
    """

    def __init__(
        self,
        config: SearchConfig | None = None,
        quadtree: Quadtree | None = None,
        rtree: RTreeIndex | None = None,
    ):
        self.config = config or SearchConfig()
        self._quadtree = quadtree
        self._rtree = rtree

    def insert_point(self, lat: float, lon: float, item: Any = None) -> None:
        """Feed a point into every tree index so both techniques see the same set."""
        if self._quadtree is not None:
            self._quadtree.insert(Point(x=lon, y=lat, data=item))
        if self._rtree is not None:
            self._rtree.insert(lat, lon, item)

    def search_nearby_with_retries(
        self,
        lat: float,
        lon: float,
        technique: GeoIndexTechnique | str | None = None,
        max_retries: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[Any]:
        """Search with an exponentially widening radius until something is found.

        Raises:
            UnsupportedTechniqueError: technique is not geohash, quadtree or rtree.
            NoResultsFoundError: every attempt came back empty.
            SearchCancelledError: ``cancel_event`` was set between attempts.
        """
        resolved = GeoIndexTechnique.parse(technique) if technique else self.config.default_technique
        attempts = self.config.max_retries if max_retries is None else max_retries

        radius = self.config.initial_radius
        results: list[Any] = []

        for attempt in range(attempts):
            if cancel_event is not None and cancel_event.is_set():
                raise SearchCancelledError(
                    f"Search cancelled before attempt {attempt + 1}/{attempts}",
                    details={"technique": resolved.value, "radius": radius},
                )

            results.extend(self._search_once(resolved, lat, lon, radius))
            if results:
                logger.debug(
                    f"{resolved.value} search found {len(results)} results "
                    f"on attempt {attempt + 1} (radius={radius})"
                )
                break

            logger.debug(
                f"{resolved.value} search empty (attempt {attempt + 1}/{attempts}, radius={radius})"
            )
            radius *= self.config.radius_multiplier

        if not results:
            raise NoResultsFoundError(
                f"No nearby points found after {attempts} attempts",
                details={"technique": resolved.value, "lat": lat, "lon": lon},
            )

        return results

    def _search_once(
        self, technique: GeoIndexTechnique, lat: float, lon: float, radius: float
    ) -> list[Any]:
        if technique is GeoIndexTechnique.GEOHASH:
            cell = geohash.encode(lat, lon, self.config.point_precision)
            return list(geohash.neighbors(cell))

        if technique is GeoIndexTechnique.QUADTREE:
            if self._quadtree is None:
                logger.warning("Quadtree search requested but no quadtree is configured")
                return []
            hits = self._quadtree.search_nearby(Point(x=lon, y=lat), radius)
            return [(hit.y, hit.x) if hit.data is None else hit.data for hit in hits]

        if technique is GeoIndexTechnique.RTREE:
            if self._rtree is None:
                logger.warning("R-tree search requested but no R-tree is configured")
                return []
            return list(self._rtree.search_nearby(lat, lon, radius))

        raise AssertionError(f"Unhandled technique {technique!r}")
