"""Closed set of point-search techniques."""

from enum import Enum

from geomatch.core.exceptions import UnsupportedTechniqueError


class GeoIndexTechnique(str, Enum):
    """Point-search techniques understood by the dispatcher."""

    GEOHASH = "geohash"
    QUADTREE = "quadtree"
    RTREE = "rtree"

    @classmethod
    def _missing_(cls, value: object) -> "GeoIndexTechnique | None":
        if isinstance(value, str):
            normalized = value.strip().lower()
            # Older clients send "geohashing"
            if normalized == "geohashing":
                return cls.GEOHASH
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value: "str | GeoIndexTechnique") -> "GeoIndexTechnique":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedTechniqueError(
                f"Unsupported geo-indexing technique: {value!r}",
                details={
                    "technique": str(value),
                    "supported": [member.value for member in cls],
                },
            ) from None
