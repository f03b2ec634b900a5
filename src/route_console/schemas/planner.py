"""Wire models for the route-planning backend."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LatLng(BaseModel):
    lat: float
    lng: float


class RoutePlanRequest(BaseModel):
    source_lat: float
    source_lng: float
    dest_lat: float
    dest_lng: float
    peak_hour: Literal["morning", "evening", "off-peak"] = "morning"


class BatchPlanRequest(BaseModel):
    routes: List[RoutePlanRequest]


class RouteOptionModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    route_index: int
    distance_km: float
    duration_min: float
    waypoints: List[tuple[float, float]] = Field(default_factory=list)
    gemini_score: float
    traffic_score: float
    reasoning: str = ""
    rank: int


class VehiclePlanModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    source: LatLng
    destination: LatLng
    peak_hour: str
    total_routes: int
    routes: List[RouteOptionModel]


class BatchPlanResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    routes: List[VehiclePlanModel]


class SaveRouteRequest(BaseModel):
    bus_id: str
    bus_number: str
    route_index: int
    source_name: str
    dest_name: str
    source_lat: float
    source_lng: float
    dest_lat: float
    dest_lng: float
    waypoints: List[tuple[float, float]]
    distance_km: float
    duration_min: float
    gemini_score: float
    traffic_score: float
    reasoning: str
    peak_hour: str
    expected_passengers_daily: int = Field(default=0, ge=0)


class FrequencyRecommendationModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    buses_needed: int
    frequency_min: float
    expected_passengers_daily: Optional[int] = None


class ScheduleSummaryModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    first_departure: str
    last_departure: str
    total_trips: int


class SaveRouteResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    route_id: str
    frequency_recommendation: Optional[FrequencyRecommendationModel] = None
    schedule: Optional[ScheduleSummaryModel] = None

    @field_validator("route_id", mode="before")
    @classmethod
    def _stringify_route_id(cls, value):
        return value if isinstance(value, str) else str(value)
