"""Geohash encoding, decoding and cell adjacency.

A geohash interleaves longitude and latitude bisection bits (longitude first)
and packs them five at a time into a base-32 alphabet. Cells sharing a prefix
are spatially nested, so a longer hash is a smaller cell.

Coordinates are expected in range (latitude in [-90, 90], longitude in
[-180, 180]); out-of-range input is a caller precondition and is not checked.
"""

from dataclasses import dataclass
from math import ceil, floor

from geomatch.core.exceptions import InvalidGeohashError

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
_BASE32_INDEX = {char: index for index, char in enumerate(BASE32)}

MAX_PRECISION = 12
DRIVER_PRECISION = 5

# (lat step, lon step) in cell units: N, NE, E, SE, S, SW, W, NW
_NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (1, 0),
    (1, 1),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (-1, -1),
    (0, -1),
    (1, -1),
)


@dataclass(frozen=True)
class GeohashBounds:
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_lat + self.max_lat) / 2, (self.min_lon + self.max_lon) / 2

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


def encode(lat: float, lon: float, precision: int = MAX_PRECISION) -> str:
    """Encode a coordinate into a geohash of ``precision`` characters."""
    if not 1 <= precision <= MAX_PRECISION:
        raise ValueError(f"Geohash precision must be between 1 and {MAX_PRECISION}, got {precision}")

    lat_lo, lat_hi = -90.0, 90.0
    lon_lo, lon_hi = -180.0, 180.0
    chars: list[str] = []
    is_lon = True

    while len(chars) < precision:
        value = 0
        for bit in range(5):
            if is_lon:
                mid = (lon_lo + lon_hi) / 2
                if lon >= mid:
                    value |= 1 << (4 - bit)
                    lon_lo = mid
                else:
                    lon_hi = mid
            else:
                mid = (lat_lo + lat_hi) / 2
                if lat >= mid:
                    value |= 1 << (4 - bit)
                    lat_lo = mid
                else:
                    lat_hi = mid
            is_lon = not is_lon
        chars.append(BASE32[value])

    return "".join(chars)


def bounding_box(cell: str) -> GeohashBounds:
    """Return the rectangle covered by a geohash cell."""
    if not cell:
        raise InvalidGeohashError("Geohash must not be empty")

    lat_lo, lat_hi = -90.0, 90.0
    lon_lo, lon_hi = -180.0, 180.0
    is_lon = True

    for char in cell.lower():
        index = _BASE32_INDEX.get(char)
        if index is None:
            raise InvalidGeohashError(
                f"Invalid geohash character {char!r} in {cell!r}",
                details={"geohash": cell},
            )
        for bit in range(5):
            on = bool(index & (1 << (4 - bit)))
            if is_lon:
                mid = (lon_lo + lon_hi) / 2
                if on:
                    lon_lo = mid
                else:
                    lon_hi = mid
            else:
                mid = (lat_lo + lat_hi) / 2
                if on:
                    lat_lo = mid
                else:
                    lat_hi = mid
            is_lon = not is_lon

    return GeohashBounds(min_lat=lat_lo, min_lon=lon_lo, max_lat=lat_hi, max_lon=lon_hi)


def decode(cell: str) -> tuple[float, float]:
    """Return the center ``(lat, lon)`` of a geohash cell.

    Decoding is lossy: the original coordinate is anywhere inside the cell.
    """
    return bounding_box(cell).center


def cell_size(precision: int) -> tuple[float, float]:
    """Return ``(lat_height, lon_width)`` in degrees of a cell at ``precision``."""
    total_bits = 5 * precision
    lon_bits = ceil(total_bits / 2)
    lat_bits = floor(total_bits / 2)
    return 180.0 / (2**lat_bits), 360.0 / (2**lon_bits)


def _wrap_longitude(lon: float) -> float:
    return ((lon + 180.0) % 360.0) - 180.0


def neighbors(cell: str) -> list[str]:
    """Return the cells adjacent to ``cell`` at the same precision.

    Order is N, NE, E, SE, S, SW, W, NW. Longitude wraps across the
    antimeridian; rows that would lie beyond a pole are omitted, so cells
    touching a pole have five neighbors instead of eight.
    """
    box = bounding_box(cell)
    center_lat, center_lon = box.center
    lat_step = box.max_lat - box.min_lat
    lon_step = box.max_lon - box.min_lon
    precision = len(cell)

    result: list[str] = []
    for dlat, dlon in _NEIGHBOR_OFFSETS:
        lat = center_lat + dlat * lat_step
        if lat > 90.0 or lat < -90.0:
            continue
        lon = _wrap_longitude(center_lon + dlon * lon_step)
        result.append(encode(lat, lon, precision))
    return result
