from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from geofence import Region


class DatabaseSettings(BaseSettings):
    url: Optional[str] = None
    name: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="DATABASE_")


class RegionSettings(BaseSettings):
    """Serviced metro bounding box. Defaults cover central Bengaluru."""

    min_lat: float = Field(default=12.876, ge=-90, le=90)
    max_lat: float = Field(default=13.035, ge=-90, le=90)
    min_lng: float = Field(default=77.515, ge=-180, le=180)
    max_lng: float = Field(default=77.685, ge=-180, le=180)

    model_config = SettingsConfigDict(env_prefix="REGION_")

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min_lat > self.max_lat:
            raise ValueError("REGION_MIN_LAT must not exceed REGION_MAX_LAT")
        if self.min_lng > self.max_lng:
            raise ValueError("REGION_MIN_LNG must not exceed REGION_MAX_LNG")
        return self

    def to_region(self) -> Region:
        return Region(self.min_lat, self.max_lat, self.min_lng, self.max_lng)


class FareSettings(BaseSettings):
    allow_placeholder_distance: bool = True
    placeholder_distance_km: float = Field(default=10.0, ge=0)

    model_config = SettingsConfigDict(env_prefix="FARE_")


class LogSettings(BaseSettings):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["text", "json"] = "text"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class CORSSettings(BaseSettings):
    origins: str = "*"

    model_config = SettingsConfigDict(env_prefix="CORS_")

    def origin_list(self) -> List[str]:
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class GeocoderSettings(BaseSettings):
    url: str = "https://nominatim.openstreetmap.org/search"
    user_agent: str = "MonacoCabs/1.0"
    timeout: float = Field(default=10.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="GEOCODER_")


class Settings(BaseSettings):
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    region: RegionSettings = Field(default_factory=RegionSettings)
    fare: FareSettings = Field(default_factory=FareSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    geocoder: GeocoderSettings = Field(default_factory=GeocoderSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings from environment variables once per process."""
    return Settings()
