import math
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from distance import DistanceMetric, HaversineDistance, LocationRef
from errors import InvalidCoordinate, InvalidDistance
from geofence import Region, is_within_region

LOCAL_BASE_FARE = 18
LOCAL_STEP_KM = 2
LOCAL_STEP_RATE = 0.5

OUTSTATION_BASE_FARE = 25
OUTSTATION_FLAT_KM = 6
OUTSTATION_STEP_KM = 2
OUTSTATION_STEP_RATE = 1


class FareQuote(BaseModel):
    """Fare together with the inputs that produced it."""

    fare: float = Field(ge=0)
    distance_km: float = Field(ge=0)
    in_region: bool
    tier: Literal["local", "outstation"]
    distance_source: str


def _checked_distance(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidDistance(f"Distance must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise InvalidDistance(f"Distance must be finite, got {value}")
    if value < 0:
        raise InvalidDistance(f"Distance must be non-negative, got {value}")
    return float(value)


def fare_for_distance(distance_km: float, in_region: bool) -> float:
    """Apply the two-tier fare model to an already measured distance.

    Local trips pay 18 plus 0.5 per started 2 km. Outstation trips pay 25 plus
    the distance up to 6 km, then 1 per started 2 km beyond that.
    """
    distance_km = _checked_distance(distance_km)
    if in_region:
        return LOCAL_BASE_FARE + math.ceil(distance_km / LOCAL_STEP_KM) * LOCAL_STEP_RATE
    if distance_km <= OUTSTATION_FLAT_KM:
        return OUTSTATION_BASE_FARE + distance_km
    extra = math.ceil((distance_km - OUTSTATION_FLAT_KM) / OUTSTATION_STEP_KM)
    return OUTSTATION_BASE_FARE + OUTSTATION_FLAT_KM + extra * OUTSTATION_STEP_RATE


def estimate_fare(
    pickup: LocationRef,
    dropoff: LocationRef,
    rider_coord: Any,
    region: Region,
    metric: Optional[DistanceMetric] = None,
) -> float:
    return FareEstimator(region, metric).estimate(pickup, dropoff, rider_coord)


class FareEstimator:
    """Authoritative fare computation for one service region.

    The primary metric is used whenever it can measure both endpoints. The
    fallback, if configured, covers the rest and is reported on the quote.
    """

    def __init__(
        self,
        region: Region,
        metric: Optional[DistanceMetric] = None,
        fallback: Optional[DistanceMetric] = None,
    ):
        self.region = region
        self.metric = metric or HaversineDistance()
        self.fallback = fallback

    def select_metric(self, pickup: LocationRef, dropoff: LocationRef) -> DistanceMetric:
        if self.metric.supports(pickup, dropoff):
            return self.metric
        if self.fallback is not None and self.fallback.supports(pickup, dropoff):
            return self.fallback
        raise InvalidCoordinate("pickup and dropoff coordinates are required to measure the trip")

    def quote(self, pickup: LocationRef, dropoff: LocationRef, rider_coord: Any) -> FareQuote:
        # geofence first so a bad rider coordinate fails before any measuring
        in_region = is_within_region(rider_coord, self.region)
        metric = self.select_metric(pickup, dropoff)
        distance_km = _checked_distance(metric.distance(pickup, dropoff))
        return FareQuote(
            fare=fare_for_distance(distance_km, in_region),
            distance_km=distance_km,
            in_region=in_region,
            tier="local" if in_region else "outstation",
            distance_source=metric.name,
        )

    def estimate(self, pickup: LocationRef, dropoff: LocationRef, rider_coord: Any) -> float:
        return self.quote(pickup, dropoff, rider_coord).fare
