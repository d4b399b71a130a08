"""Great-circle distances between coordinates and between geohash cells.

Cell distances are measured between decoded centers, so their error is
bounded by the cell size of the inputs. Road distance is not computed here.
"""

from math import asin, cos, radians, sin, sqrt

from .geohash import decode

EARTH_RADIUS_M = 6_371_000
METERS_PER_KM = 1000.0


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in meters between two ``(lat, lon)`` points in degrees."""
    phi1, phi2 = radians(lat1), radians(lat2)
    half_dphi = (phi2 - phi1) / 2
    half_dlambda = radians(lon2 - lon1) / 2

    h = sin(half_dphi) ** 2 + cos(phi1) * cos(phi2) * sin(half_dlambda) ** 2
    # Rounding can push h a hair above 1 for antipodal points
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_distance_m(lat1, lon1, lat2, lon2) / METERS_PER_KM


def geohash_distance_km(cell_a: str, cell_b: str) -> float:
    """Kilometers between the centers of two cells; 0 for the same cell.

    Raises:
        InvalidGeohashError: either cell is empty or not base-32.
    """
    return haversine_distance_km(*decode(cell_a), *decode(cell_b))
