from typing import Literal

from pydantic import Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from geomatch.core.exceptions import ConfigurationError
from geomatch.indexing.technique import GeoIndexTechnique


class GeoIndexSettings(BaseSettings):
    """Point-search dispatcher and tree index configuration."""

    default_technique: GeoIndexTechnique = Field(
        default=GeoIndexTechnique.GEOHASH,
        description="Technique used when a search request does not name one",
    )
    max_retries: int = Field(default=3, ge=1, le=20)
    initial_radius: float = Field(
        default=1.0,
        gt=0.0,
        description="First search radius, in coordinate units (degrees), not meters",
    )
    radius_multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    point_precision: int = Field(
        default=12,
        ge=1,
        le=12,
        description="Geohash precision used by the geohash point-search technique",
    )

    quadtree_min_x: float = Field(default=-180.0, ge=-180.0, le=180.0)
    quadtree_min_y: float = Field(default=-90.0, ge=-90.0, le=90.0)
    quadtree_max_x: float = Field(default=180.0, ge=-180.0, le=180.0)
    quadtree_max_y: float = Field(default=90.0, ge=-90.0, le=90.0)
    quadtree_capacity: int = Field(default=4, ge=1, le=64)
    quadtree_max_depth: int = Field(default=24, ge=1, le=48)

    rtree_point_half_width: float = Field(
        default=0.0001,
        gt=0.0,
        description="Half-width of the degenerate rectangle stored for each R-tree point",
    )

    model_config = SettingsConfigDict(env_prefix="GEOINDEX_")

    @model_validator(mode="after")
    def validate_quadtree_bounds(self) -> "GeoIndexSettings":
        if self.quadtree_min_x >= self.quadtree_max_x:
            raise ValueError(
                f"Quadtree min_x ({self.quadtree_min_x}) must be below max_x ({self.quadtree_max_x})"
            )
        if self.quadtree_min_y >= self.quadtree_max_y:
            raise ValueError(
                f"Quadtree min_y ({self.quadtree_min_y}) must be below max_y ({self.quadtree_max_y})"
            )
        return self


class MatchingSettings(BaseSettings):
    """Driver availability pool and ride matching configuration."""

    driver_geohash_precision: int = Field(default=5, ge=1, le=12)
    pool_key_prefix: str = Field(default="drivers", min_length=1)
    claim_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Matching rounds before giving up when another request claims the driver first",
    )

    model_config = SettingsConfigDict(env_prefix="MATCHING_")


class RedisSettings(BaseSettings):
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str = ""
    ssl: bool = False

    model_config = SettingsConfigDict(env_prefix="REDIS_")


class DatabaseSettings(BaseSettings):
    path: str = "data/geomatch.db"

    model_config = SettingsConfigDict(env_prefix="DATABASE_")


class LoggingSettings(BaseSettings):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["text", "json"] = "text"
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    geoindex: GeoIndexSettings = Field(default_factory=GeoIndexSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        ConfigurationError: a variable is missing a valid value, e.g. an
            unknown GEOINDEX_DEFAULT_TECHNIQUE.
    """
    try:
        return Settings()
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            details={"errors": [str(err["loc"]) + ": " + err["msg"] for err in e.errors()]},
        ) from e
