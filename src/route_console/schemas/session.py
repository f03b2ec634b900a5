"""Request/response schemas for planning session endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import MAX_DAILY_PASSENGERS, DepartureSchedule, FleetRecommendation, PlannedVehicle, PlanningResult
from .planner import LatLng, SaveRouteResponse


class VehicleCreate(BaseModel):
    label: Optional[str] = Field(default=None, description="Display label; defaults to 'Bus N'.")
    source: Optional[str] = None
    destination: Optional[str] = None
    peak_hour: Optional[Literal["morning", "evening", "off-peak"]] = None
    expected_passengers: Optional[int] = Field(default=None, ge=0, le=MAX_DAILY_PASSENGERS, description="Forecast daily passengers.")


class VehicleUpdate(VehicleCreate):
    pass


class VehicleModel(BaseModel):
    vehicle_id: str
    label: str
    color: str
    source: str
    destination: str
    peak_hour: str
    expected_passengers: int
    source_coords: Optional[LatLng] = None
    dest_coords: Optional[LatLng] = None

    @classmethod
    def from_domain(cls, vehicle: PlannedVehicle) -> "VehicleModel":
        return cls(
            vehicle_id=vehicle.vehicle_id,
            label=vehicle.label,
            color=vehicle.color,
            source=vehicle.source,
            destination=vehicle.destination,
            peak_hour=vehicle.peak_hour,
            expected_passengers=vehicle.expected_passengers,
            source_coords=LatLng(**asdict(vehicle.source_coords)) if vehicle.source_coords else None,
            dest_coords=LatLng(**asdict(vehicle.dest_coords)) if vehicle.dest_coords else None,
        )


class RouteAlternativeModel(BaseModel):
    route_index: int
    distance_km: float
    duration_min: float
    waypoints: List[tuple[float, float]]
    gemini_score: float
    traffic_score: float
    rank: int
    reasoning: str


class PlanningResultModel(BaseModel):
    vehicle_id: str
    label: str
    source_name: str
    dest_name: str
    source: LatLng
    destination: LatLng
    peak_hour: str
    total_routes: int
    selected_index: int
    alternatives: List[RouteAlternativeModel]

    @classmethod
    def from_domain(cls, result: PlanningResult) -> "PlanningResultModel":
        return cls(
            vehicle_id=result.vehicle_id,
            label=result.label,
            source_name=result.source_name,
            dest_name=result.dest_name,
            source=LatLng(**asdict(result.source)),
            destination=LatLng(**asdict(result.destination)),
            peak_hour=result.peak_hour,
            total_routes=result.total_routes,
            selected_index=result.selected_index,
            alternatives=[
                RouteAlternativeModel(**{**asdict(alternative), "waypoints": list(alternative.waypoints)})
                for alternative in result.alternatives
            ],
        )


class FleetRecommendationModel(BaseModel):
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

    @classmethod
    def from_domain(cls, recommendation: FleetRecommendation | None) -> Optional["FleetRecommendationModel"]:
        return cls(**asdict(recommendation)) if recommendation is not None else None


class DepartureScheduleModel(BaseModel):
    first_departure: str
    last_departure: str
    departure_times: List[str]
    total_trips: int
    truncated: bool = False

    @classmethod
    def from_domain(cls, schedule: DepartureSchedule | None) -> Optional["DepartureScheduleModel"]:
        if schedule is None:
            return None
        return cls(
            first_departure=schedule.first_departure,
            last_departure=schedule.last_departure,
            departure_times=list(schedule.departure_times),
            total_trips=schedule.total_trips,
            truncated=schedule.truncated,
        )


class FleetCalculationRequest(BaseModel):
    daily_passengers: int = Field(..., ge=0, le=MAX_DAILY_PASSENGERS)
    one_way_duration_min: float = Field(..., gt=0)


class FleetCalculationResponse(BaseModel):
    recommendation: Optional[FleetRecommendationModel] = None
    schedule: Optional[DepartureScheduleModel] = None
    error: Optional[str] = None


class SelectRequest(BaseModel):
    alternative_index: int = Field(..., ge=0)


class SelectionResponse(FleetCalculationResponse):
    vehicle_index: int
    result: PlanningResultModel
    drawn_routes: int


class PlanRunRequest(BaseModel):
    persist: bool = Field(default=False, description="Write summary.json and alternatives.csv for this run.")


class PlanRunResponse(BaseModel):
    summary: str
    requested: int
    resolved: int
    unresolved_vehicle_ids: List[str]
    unplanned_vehicle_ids: List[str]
    results: List[PlanningResultModel]
    drawn_routes: int
    persisted_to: Optional[str] = None


class SessionResponse(BaseModel):
    session_id: str
    planning: bool
    max_vehicles: int
    vehicles: List[VehicleModel]
    results: List[PlanningResultModel]
    committed: dict[str, SaveRouteResponse] = Field(default_factory=dict)


class MapInitRequest(BaseModel):
    center: Optional[tuple[float, float]] = None
    zoom: Optional[int] = Field(default=None, ge=0, le=22)


class OverlayResponse(BaseModel):
    initialized: bool
    view: Optional[dict] = None
    routes: List[dict] = Field(default_factory=list)


class CommitResponse(BaseModel):
    vehicle_id: str
    acknowledgment: SaveRouteResponse
