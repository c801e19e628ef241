"""
Coordinates, service regions and the geofence check.

A region is an axis-aligned lat/lng box. Boundary points count as inside.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping

from errors import InvalidCoordinate


def _as_degrees(value: Any, name: str, limit: float) -> float:
    # bool is an int subclass but never a valid coordinate
    if value is None:
        raise InvalidCoordinate(f"{name} is required")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCoordinate(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidCoordinate(f"{name} must be finite, got {value}")
    if not -limit <= value <= limit:
        raise InvalidCoordinate(f"{name} must be between -{limit:g} and {limit:g}, got {value}")
    return value


@dataclass(frozen=True)
class Coordinate:
    """Immutable, validated latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        object.__setattr__(self, "latitude", _as_degrees(self.latitude, "latitude", 90))
        object.__setattr__(self, "longitude", _as_degrees(self.longitude, "longitude", 180))

    @classmethod
    def parse(cls, value: Any) -> "Coordinate":
        """Build a Coordinate from a mapping or any object with latitude/longitude."""
        if isinstance(value, Coordinate):
            return value
        if value is None:
            raise InvalidCoordinate("coordinate is required")
        if isinstance(value, Mapping):
            return cls(value.get("latitude"), value.get("longitude"))
        if hasattr(value, "latitude") and hasattr(value, "longitude"):
            return cls(value.latitude, value.longitude)
        raise InvalidCoordinate(f"cannot read a coordinate from {type(value).__name__}")

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Region:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def __post_init__(self):
        if self.min_lat > self.max_lat:
            raise ValueError(f"min_lat {self.min_lat} is greater than max_lat {self.max_lat}")
        if self.min_lng > self.max_lng:
            raise ValueError(f"min_lng {self.min_lng} is greater than max_lng {self.max_lng}")
        # corners must themselves be valid coordinates
        Coordinate(self.min_lat, self.min_lng)
        Coordinate(self.max_lat, self.max_lng)

    def viewbox(self) -> str:
        """Nominatim viewbox string: left,top,right,bottom."""
        return f"{self.min_lng},{self.max_lat},{self.max_lng},{self.min_lat}"


def is_within_region(coord: Any, region: Region) -> bool:
    """True iff coord lies inside region, edges included.

    Raises InvalidCoordinate for a missing or malformed coordinate.
    """
    point = Coordinate.parse(coord)
    return (
        region.min_lat <= point.latitude <= region.max_lat
        and region.min_lng <= point.longitude <= region.max_lng
    )


class GeofenceValidator:
    """Geofence check bound to one configured service region."""

    def __init__(self, region: Region):
        self.region = region

    def is_within_region(self, coord: Any) -> bool:
        return is_within_region(coord, self.region)
