"""Domain models for planned vehicles, route alternatives and fleet sizing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

PeakHour = Literal["morning", "evening", "off-peak"]
PEAK_HOURS: tuple[str, ...] = ("morning", "evening", "off-peak")
MAX_DAILY_PASSENGERS = 1_000_000


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float

    def as_pair(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(slots=True)
class PlannedVehicle:
    """One vehicle row the operator is configuring before submission."""

    vehicle_id: str
    label: str
    color: str
    source: str = ""
    destination: str = ""
    peak_hour: PeakHour = "morning"
    expected_passengers: int = 0
    source_coords: Optional[Coordinate] = None
    dest_coords: Optional[Coordinate] = None

    @property
    def is_resolved(self) -> bool:
        return self.source_coords is not None and self.dest_coords is not None


@dataclass(frozen=True, slots=True)
class RouteAlternative:
    """A ranked candidate path returned by the external scorer."""

    route_index: int
    distance_km: float
    duration_min: float
    waypoints: tuple[tuple[float, float], ...]
    gemini_score: float
    traffic_score: float
    rank: int
    reasoning: str = ""


@dataclass(frozen=True, slots=True)
class PlanningResult:
    """Alternatives for one resolved vehicle plus the currently selected array index.

    ``selected_index`` addresses ``alternatives`` by position. It defaults to 0,
    which is not necessarily the alternative ranked 1.
    """

    vehicle_id: str
    label: str
    source_name: str
    dest_name: str
    source: Coordinate
    destination: Coordinate
    peak_hour: str
    total_routes: int
    alternatives: tuple[RouteAlternative, ...]
    selected_index: int = 0

    @property
    def selected(self) -> RouteAlternative:
        return self.alternatives[self.selected_index]


@dataclass(frozen=True, slots=True)
class FleetRecommendation:
    daily_passengers: int
    one_way_duration_min: float
    vehicle_capacity: int
    operating_window_min: int
    layover_min: int
    round_trip_min: float
    trips_needed: int
    trips_per_vehicle_per_day: int
    vehicles_needed: int
    frequency_min: int
    total_trips_per_day: int
    total_daily_capacity: int
    utilization_percent: float


@dataclass(frozen=True, slots=True)
class DepartureSchedule:
    first_departure: str
    last_departure: str
    departure_times: tuple[str, ...]
    total_trips: int
    truncated: bool = False


@dataclass(slots=True)
class BatchOutcome:
    """Result of one planning run over a roster."""

    results: tuple[PlanningResult, ...]
    requested: int
    resolved: int
    vehicles: tuple[PlannedVehicle, ...] = ()
    unresolved_ids: list[str] = field(default_factory=list)
    unplanned_ids: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return f"{self.resolved} of {self.requested} resolved"
