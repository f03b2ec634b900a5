"""Fleet sizing and departure cadence from expected daily demand.

Each derivation rounds before feeding the next one; the order below must be
kept for results to match previously issued recommendations:

1. round trip = one-way duration * 2 + layover
2. trips needed = ceil(demand / capacity)
3. trips per vehicle = floor(operating window / round trip)
4. vehicles needed = ceil(trips needed / trips per vehicle)
5. frequency = floor(round trip / vehicles needed)
6. total trips = trips per vehicle * vehicles needed; capacity = total trips * capacity
7. utilization = demand / capacity * 100, one decimal, half-up
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ...errors import FleetSizingError
from ...models.domain import MAX_DAILY_PASSENGERS, DepartureSchedule, FleetRecommendation

VEHICLE_CAPACITY = 70
OPERATING_WINDOW_MINUTES = 16 * 60
LAYOVER_MINUTES = 10
MINUTES_PER_DAY = 24 * 60


def round1(value: float) -> float:
    """Round to one decimal, half away from zero, on the exact binary value of ``value``."""
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_fleet_recommendation(
    daily_passengers: int | None,
    one_way_duration_min: float,
    *,
    vehicle_capacity: int = VEHICLE_CAPACITY,
    operating_window_min: int = OPERATING_WINDOW_MINUTES,
    layover_min: int = LAYOVER_MINUTES,
) -> FleetRecommendation | None:
    """Return the fleet recommendation, or ``None`` when no demand was given."""
    if not daily_passengers:
        return None
    if daily_passengers < 0:
        raise FleetSizingError(f"Daily passengers cannot be negative, got {daily_passengers}.")
    if daily_passengers > MAX_DAILY_PASSENGERS:
        raise FleetSizingError(f"Daily passengers cannot exceed {MAX_DAILY_PASSENGERS}, got {daily_passengers}.")
    if vehicle_capacity <= 0:
        raise FleetSizingError(f"Vehicle capacity must be positive, got {vehicle_capacity}.")
    if not math.isfinite(one_way_duration_min) or one_way_duration_min <= 0:
        raise FleetSizingError(f"One-way duration must be a positive number of minutes, got {one_way_duration_min}.")
    if layover_min < 0:
        raise FleetSizingError(f"Layover cannot be negative, got {layover_min}.")

    round_trip_min = one_way_duration_min * 2 + layover_min
    trips_needed = math.ceil(daily_passengers / vehicle_capacity)
    trips_per_vehicle = math.floor(operating_window_min / round_trip_min)
    if trips_per_vehicle < 1:
        raise FleetSizingError(
            f"A {round_trip_min:g} minute round trip does not fit in a {operating_window_min} minute operating window."
        )

    vehicles_needed = math.ceil(trips_needed / trips_per_vehicle)
    frequency_min = math.floor(round_trip_min / vehicles_needed)
    total_trips = trips_per_vehicle * vehicles_needed
    total_capacity = total_trips * vehicle_capacity
    utilization = round1(daily_passengers / total_capacity * 100)

    return FleetRecommendation(
        daily_passengers=daily_passengers,
        one_way_duration_min=one_way_duration_min,
        vehicle_capacity=vehicle_capacity,
        operating_window_min=operating_window_min,
        layover_min=layover_min,
        round_trip_min=round_trip_min,
        trips_needed=trips_needed,
        trips_per_vehicle_per_day=trips_per_vehicle,
        vehicles_needed=vehicles_needed,
        frequency_min=frequency_min,
        total_trips_per_day=total_trips,
        total_daily_capacity=total_capacity,
        utilization_percent=utilization,
    )


def build_departure_schedule(recommendation: FleetRecommendation, service_start: str = "06:00") -> DepartureSchedule:
    """Space every daily trip ``frequency_min`` apart from ``service_start`` (HH:MM).

    Departures stop at the end of the operating window or at midnight,
    whichever comes first; ``truncated`` is set when trips were dropped.
    """
    start = datetime.strptime(service_start, "%H:%M")
    step_min = max(recommendation.frequency_min, 1)
    limit_min = min(recommendation.operating_window_min, MINUTES_PER_DAY - (start.hour * 60 + start.minute))
    count = min(recommendation.total_trips_per_day, max(math.ceil(limit_min / step_min), 1))
    times = tuple((start + timedelta(minutes=step_min * trip)).strftime("%H:%M") for trip in range(count))
    return DepartureSchedule(
        first_departure=times[0],
        last_departure=times[-1],
        departure_times=times,
        total_trips=len(times),
        truncated=count < recommendation.total_trips_per_day,
    )
