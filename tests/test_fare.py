import logging
import math

import pytest

from distance import HaversineDistance, PlaceholderDistance
from errors import InvalidCoordinate, InvalidDistance
from fare import FareEstimator, estimate_fare, fare_for_distance
from geofence import Coordinate, Region

INSIDE = Coordinate(12.9716, 77.5946)
OUTSIDE = Coordinate(13.5, 77.5946)


class FixedDistance:
    """Test metric returning whatever distance it was built with."""

    name = "fixed"

    def __init__(self, km):
        self.km = km

    def supports(self, pickup, dropoff):
        return True

    def distance(self, pickup, dropoff):
        return self.km


@pytest.fixture
def region():
    return Region(min_lat=12.876, max_lat=13.035, min_lng=77.515, max_lng=77.685)


class TestFareForDistance:
    def test_local_ten_km(self):
        assert fare_for_distance(10, True) == 20.5

    def test_outstation_ten_km(self):
        assert fare_for_distance(10, False) == 33

    def test_local_zero_distance(self):
        assert fare_for_distance(0, True) == 18

    def test_outstation_zero_distance(self):
        assert fare_for_distance(0, False) == 25

    def test_outstation_within_flat_band(self):
        assert fare_for_distance(4, False) == 29
        assert fare_for_distance(6, False) == 31
        assert fare_for_distance(4.5, False) == pytest.approx(29.5)

    def test_local_rounds_up_to_next_step(self):
        assert fare_for_distance(3, True) == 19
        assert fare_for_distance(0.1, True) == 18.5

    def test_outstation_rounds_up_beyond_flat_band(self):
        assert fare_for_distance(6.1, False) == 32
        assert fare_for_distance(8, False) == 32
        assert fare_for_distance(8.5, False) == 33

    @pytest.mark.parametrize("in_region", [True, False])
    def test_monotonic_in_distance(self, in_region):
        distances = [i * 0.25 for i in range(0, 120)]
        fares = [fare_for_distance(d, in_region) for d in distances]
        assert fares == sorted(fares)

    @pytest.mark.parametrize("bad", [-0.01, math.nan, math.inf, "10", None])
    def test_invalid_distance(self, bad):
        with pytest.raises(InvalidDistance):
            fare_for_distance(bad, True)


class TestEstimateFare:
    def test_scenario_inside_region(self, region):
        assert estimate_fare("A", "B", INSIDE, region, FixedDistance(10)) == 20.5

    def test_scenario_outside_region(self, region):
        assert estimate_fare("A", "B", OUTSIDE, region, FixedDistance(10)) == 33

    def test_scenario_zero_distance_inside(self, region):
        assert estimate_fare("A", "B", INSIDE, region, FixedDistance(0)) == 18

    def test_scenario_short_trip_outside(self, region):
        assert estimate_fare("A", "B", OUTSIDE, region, FixedDistance(4)) == 29

    def test_invalid_rider_coordinate(self, region):
        with pytest.raises(InvalidCoordinate):
            estimate_fare("A", "B", {"latitude": 200, "longitude": 77.6}, region, FixedDistance(4))

    def test_negative_metric_result(self, region):
        with pytest.raises(InvalidDistance):
            estimate_fare("A", "B", INSIDE, region, FixedDistance(-2))

    def test_defaults_to_haversine(self, region):
        pickup = Coordinate(12.9716, 77.5946)
        dropoff = Coordinate(13.0166, 77.5946)
        # ~5 km -> ceil(2.5) = 3 steps
        assert estimate_fare(pickup, dropoff, INSIDE, region) == 19.5

    def test_labels_with_default_metric(self, region):
        with pytest.raises(InvalidCoordinate):
            estimate_fare("MG Road", "Hebbal", {"latitude": 12.97, "longitude": 77.59}, region)

    def test_checks_rider_coordinate_before_measuring(self, region):
        with pytest.raises(InvalidCoordinate, match="latitude"):
            estimate_fare("A", "B", {"latitude": 200, "longitude": 77.6}, region, FixedDistance(-1))

    def test_idempotent(self, region):
        pickup = Coordinate(12.90, 77.55)
        dropoff = Coordinate(13.02, 77.66)
        first = estimate_fare(pickup, dropoff, OUTSIDE, region)
        second = estimate_fare(pickup, dropoff, OUTSIDE, region)
        assert first == second


class TestFareEstimator:
    def test_quote_with_coordinates(self, region):
        estimator = FareEstimator(region, HaversineDistance(), PlaceholderDistance())
        quote = estimator.quote(Coordinate(12.9716, 77.5946), Coordinate(13.0166, 77.5946), INSIDE)
        assert quote.distance_source == "haversine"
        assert quote.tier == "local"
        assert quote.in_region is True
        assert quote.fare == 19.5
        assert quote.distance_km == pytest.approx(5.0, abs=0.1)

    def test_labels_fall_back_to_placeholder(self, region):
        estimator = FareEstimator(region, HaversineDistance(), PlaceholderDistance())
        quote = estimator.quote("MG Road", "Whitefield", OUTSIDE)
        assert quote.distance_source == "placeholder"
        assert quote.tier == "outstation"
        assert quote.distance_km == 10.0
        assert quote.fare == 33

    def test_labels_without_fallback_are_rejected(self, region):
        estimator = FareEstimator(region)
        with pytest.raises(InvalidCoordinate):
            estimator.quote("MG Road", Coordinate(13.0, 77.6), INSIDE)

    def test_custom_metric_is_used(self, region):
        estimator = FareEstimator(region, FixedDistance(10))
        assert estimator.estimate("MG Road", "Whitefield", INSIDE) == 20.5

    def test_bad_rider_coordinate_fails_before_measuring(self, region):
        estimator = FareEstimator(region, FixedDistance(-1))
        with pytest.raises(InvalidCoordinate):
            estimator.quote("A", "B", {"latitude": 12.9})

    def test_non_finite_metric_result(self, region):
        estimator = FareEstimator(region, FixedDistance(math.inf))
        with pytest.raises(InvalidDistance):
            estimator.estimate("A", "B", INSIDE)

    def test_placeholder_use_logs_one_warning(self, region, caplog):
        estimator = FareEstimator(region, HaversineDistance(), PlaceholderDistance())
        with caplog.at_level(logging.WARNING):
            estimator.quote("MG Road", "Whitefield", INSIDE)
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "placeholder distance" in warnings[0].getMessage()
