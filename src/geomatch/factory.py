"""Builds the matching and point-search object graph from settings."""

import logging
from dataclasses import dataclass

from geomatch.db.database import init_database
from geomatch.indexing.dispatcher import GeoIndexDispatcher, SearchConfig
from geomatch.indexing.quadtree import Bounds, Quadtree
from geomatch.indexing.rtree_index import RTreeIndex
from geomatch.matching.availability_pool import DriverAvailabilityPool, InMemorySetStore, SetStore
from geomatch.matching.matcher import NearestDriverMatcher
from geomatch.matching.redis_store import RedisSetStore
from geomatch.matching.ride_service import RideService
from geomatch.settings import GeoIndexSettings, Settings

logger = logging.getLogger(__name__)


@dataclass
class Components:
    dispatcher: GeoIndexDispatcher
    pool: DriverAvailabilityPool
    matcher: NearestDriverMatcher
    rides: RideService


def build_dispatcher(settings: GeoIndexSettings) -> GeoIndexDispatcher:
    config = SearchConfig(
        default_technique=settings.default_technique,
        max_retries=settings.max_retries,
        initial_radius=settings.initial_radius,
        radius_multiplier=settings.radius_multiplier,
        point_precision=settings.point_precision,
    )
    quadtree = Quadtree(
        Bounds(
            min_x=settings.quadtree_min_x,
            min_y=settings.quadtree_min_y,
            max_x=settings.quadtree_max_x,
            max_y=settings.quadtree_max_y,
        ),
        capacity=settings.quadtree_capacity,
        max_depth=settings.quadtree_max_depth,
    )
    rtree = RTreeIndex(point_half_width=settings.rtree_point_half_width)
    return GeoIndexDispatcher(config, quadtree=quadtree, rtree=rtree)


def build_components(settings: Settings, store: SetStore | None = None) -> Components:
    """Wire every component. ``store`` defaults to Redis from ``settings.redis``."""
    if store is None:
        store = RedisSetStore.from_settings(settings.redis)
        logger.info(f"Using Redis set store at {settings.redis.host}:{settings.redis.port}")
    elif isinstance(store, InMemorySetStore):
        logger.info("Using in-memory set store")

    precision = settings.matching.driver_geohash_precision
    pool = DriverAvailabilityPool(store, key_prefix=settings.matching.pool_key_prefix)
    matcher = NearestDriverMatcher(pool, precision=precision)
    session_maker = init_database(settings.database.path)
    rides = RideService(
        session_maker,
        pool,
        matcher,
        precision=precision,
        claim_attempts=settings.matching.claim_attempts,
    )
    return Components(
        dispatcher=build_dispatcher(settings.geoindex),
        pool=pool,
        matcher=matcher,
        rides=rides,
    )
