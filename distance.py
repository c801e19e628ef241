"""
Distance metrics used for fare estimation.

A metric measures the trip between two location references in kilometers.
A location reference is either a Coordinate or a free-text place label.
"""

import logging
from math import asin, cos, radians, sin, sqrt
from typing import Protocol, Union

from errors import InvalidCoordinate
from geofence import Coordinate

logger = logging.getLogger(__name__)

LocationRef = Union[Coordinate, str]

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in kilometers between two coordinates."""
    lat1 = radians(a.latitude)
    lon1 = radians(a.longitude)
    lat2 = radians(b.latitude)
    lon2 = radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # rounding can push h a hair above 1 for antipodal points
    return 2 * EARTH_RADIUS_KM * asin(sqrt(min(h, 1.0)))


class DistanceMetric(Protocol):
    name: str

    def supports(self, pickup: LocationRef, dropoff: LocationRef) -> bool:
        ...

    def distance(self, pickup: LocationRef, dropoff: LocationRef) -> float:
        ...


class HaversineDistance:
    """Straight-line distance between two coordinates."""

    name = "haversine"

    def supports(self, pickup: LocationRef, dropoff: LocationRef) -> bool:
        return isinstance(pickup, Coordinate) and isinstance(dropoff, Coordinate)

    def distance(self, pickup: LocationRef, dropoff: LocationRef) -> float:
        if not self.supports(pickup, dropoff):
            raise InvalidCoordinate("haversine distance needs coordinates for both endpoints")
        return haversine_km(pickup, dropoff)


class PlaceholderDistance:
    """Stand-in that returns a fixed distance regardless of the endpoints.

    Only meant for bookings made with place labels and no coordinates. Its
    result carries no information about the trip, so every use is logged.
    """

    name = "placeholder"

    def __init__(self, km: float = 10.0):
        if km < 0:
            raise ValueError("Placeholder distance must be non-negative")
        self.km = km

    def supports(self, pickup: LocationRef, dropoff: LocationRef) -> bool:
        return True

    def distance(self, pickup: LocationRef, dropoff: LocationRef) -> float:
        logger.warning(
            "Using placeholder distance of %s km for %r -> %r", self.km, pickup, dropoff
        )
        return self.km
