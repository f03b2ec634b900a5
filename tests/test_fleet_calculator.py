import math

import pytest

from route_console.errors import FleetSizingError
from route_console.models.domain import MAX_DAILY_PASSENGERS
from route_console.services.fleet import build_departure_schedule, compute_fleet_recommendation
from route_console.services.fleet.calculator import round1


def test_low_demand_fits_one_vehicle() -> None:
    rec = compute_fleet_recommendation(500, 45)

    assert rec is not None
    assert rec.round_trip_min == 100
    assert rec.trips_needed == 8
    assert rec.trips_per_vehicle_per_day == 9
    assert rec.vehicles_needed == 1
    assert rec.frequency_min == 100
    assert rec.total_trips_per_day == 9
    assert rec.total_daily_capacity == 630
    assert rec.utilization_percent == 79.4


def test_high_demand_scales_vehicles_and_frequency() -> None:
    rec = compute_fleet_recommendation(2000, 45)

    assert rec is not None
    assert rec.trips_needed == 29
    assert rec.vehicles_needed == 4
    assert rec.frequency_min == 25
    assert rec.total_trips_per_day == 36
    assert rec.total_daily_capacity == 2520
    assert rec.utilization_percent == 79.4


@pytest.mark.parametrize("demand", [0, None])
def test_missing_demand_yields_no_recommendation(demand) -> None:
    assert compute_fleet_recommendation(demand, 45) is None


def test_round_trip_longer_than_window_is_rejected() -> None:
    with pytest.raises(FleetSizingError):
        compute_fleet_recommendation(500, 500)


@pytest.mark.parametrize("duration", [0, -5, math.nan, math.inf])
def test_invalid_duration_is_rejected(duration) -> None:
    with pytest.raises(FleetSizingError):
        compute_fleet_recommendation(500, duration)


def test_invalid_capacity_and_layover_are_rejected() -> None:
    with pytest.raises(FleetSizingError):
        compute_fleet_recommendation(500, 45, vehicle_capacity=0)
    with pytest.raises(FleetSizingError):
        compute_fleet_recommendation(500, 45, layover_min=-1)
    with pytest.raises(FleetSizingError):
        compute_fleet_recommendation(-10, 45)


def test_same_inputs_give_identical_recommendations() -> None:
    assert compute_fleet_recommendation(1234, 37.5) == compute_fleet_recommendation(1234, 37.5)


def test_frequency_never_exceeds_round_trip() -> None:
    for demand in (70, 700, 7000):
        rec = compute_fleet_recommendation(demand, 30)
        assert rec.frequency_min <= rec.round_trip_min
        assert rec.total_daily_capacity >= demand


def test_round1_rounds_half_up() -> None:
    assert round1(79.36507936507937) == 79.4
    assert round1(0.25) == 0.3
    assert round1(12.0) == 12.0


def test_departure_schedule_spaces_trips_by_frequency() -> None:
    rec = compute_fleet_recommendation(2000, 45)
    schedule = build_departure_schedule(rec, "06:00")

    assert schedule.total_trips == 36
    assert schedule.first_departure == "06:00"
    assert schedule.departure_times[1] == "06:25"
    assert schedule.last_departure == "20:35"


def test_departure_schedule_for_single_vehicle() -> None:
    rec = compute_fleet_recommendation(500, 45)
    schedule = build_departure_schedule(rec, "05:30")

    assert schedule.departure_times == (
        "05:30", "07:10", "08:50", "10:30", "12:10", "13:50", "15:30", "17:10", "18:50",
    )


def test_high_demand_schedule_stays_inside_operating_window() -> None:
    rec = compute_fleet_recommendation(100_000, 45)
    assert rec.frequency_min == 0
    assert rec.total_trips_per_day == 1431

    schedule = build_departure_schedule(rec, "06:00")

    assert schedule.truncated
    assert schedule.first_departure == "06:00"
    assert schedule.last_departure == "21:59"
    assert schedule.total_trips == 960
    assert list(schedule.departure_times) == sorted(set(schedule.departure_times))


def test_late_start_schedule_does_not_wrap_past_midnight() -> None:
    rec = compute_fleet_recommendation(500, 45)
    schedule = build_departure_schedule(rec, "20:00")

    assert schedule.departure_times == ("20:00", "21:40", "23:20")
    assert schedule.truncated


def test_schedule_within_window_is_not_truncated() -> None:
    schedule = build_departure_schedule(compute_fleet_recommendation(2000, 45), "06:00")

    assert not schedule.truncated


def test_demand_above_cap_is_rejected() -> None:
    with pytest.raises(FleetSizingError):
        compute_fleet_recommendation(MAX_DAILY_PASSENGERS + 1, 45)
