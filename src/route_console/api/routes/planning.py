"""Route planning session endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status

from ...config import settings
from ...errors import (
    AlignmentError,
    CommitError,
    FleetSizingError,
    NothingToPlanError,
    PlanningInProgressError,
    PlanningServiceError,
)
from ...schemas.session import (
    CommitResponse,
    DepartureScheduleModel,
    FleetCalculationRequest,
    FleetCalculationResponse,
    FleetRecommendationModel,
    MapInitRequest,
    OverlayResponse,
    PlanningResultModel,
    PlanRunRequest,
    PlanRunResponse,
    SelectionResponse,
    SelectRequest,
    SessionResponse,
    VehicleCreate,
    VehicleModel,
    VehicleUpdate,
)
from ...services.fleet.calculator import build_departure_schedule, compute_fleet_recommendation
from ...services.session import PlanningSession, SelectionView, registry
from ...services.visualization.surface import OverlaySurface

router = APIRouter(prefix="/planning", tags=["planning"])

logger = logging.getLogger(__name__)


def _session(session_id: str) -> PlanningSession:
    try:
        return registry.get(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc.args[0])) from exc


def _session_response(session: PlanningSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        planning=session.planning,
        max_vehicles=session.roster.max_vehicles,
        vehicles=[VehicleModel.from_domain(vehicle) for vehicle in session.roster],
        results=[PlanningResultModel.from_domain(result) for result in session.store.snapshot()],
        committed=dict(session.commits),
    )


def _selection_response(view: SelectionView, drawn: int) -> SelectionResponse:
    return SelectionResponse(
        vehicle_index=view.vehicle_index,
        result=PlanningResultModel.from_domain(view.result),
        recommendation=FleetRecommendationModel.from_domain(view.recommendation),
        schedule=DepartureScheduleModel.from_domain(view.schedule),
        error=view.fleet_error,
        drawn_routes=drawn,
    )


@router.post("/fleet/calculate", response_model=FleetCalculationResponse, status_code=status.HTTP_200_OK)
def calculate_fleet(payload: FleetCalculationRequest) -> FleetCalculationResponse:
    """Fleet size and departure cadence for a demand and one-way duration."""
    try:
        recommendation = compute_fleet_recommendation(
            payload.daily_passengers,
            payload.one_way_duration_min,
            vehicle_capacity=settings.vehicle_capacity,
            operating_window_min=settings.operating_window_minutes,
            layover_min=settings.layover_minutes,
        )
    except FleetSizingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    schedule = build_departure_schedule(recommendation, settings.service_start_time) if recommendation else None
    return FleetCalculationResponse(
        recommendation=FleetRecommendationModel.from_domain(recommendation),
        schedule=DepartureScheduleModel.from_domain(schedule),
    )


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session() -> SessionResponse:
    return _session_response(registry.create())


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str) -> SessionResponse:
    return _session_response(_session(session_id))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str) -> Response:
    try:
        await registry.discard(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc.args[0])) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sessions/{session_id}/vehicles", response_model=VehicleModel, status_code=status.HTTP_201_CREATED)
async def add_vehicle(session_id: str, payload: VehicleCreate) -> VehicleModel:
    session = _session(session_id)
    try:
        vehicle = session.roster.add(**payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return VehicleModel.from_domain(vehicle)


@router.patch("/sessions/{session_id}/vehicles/{vehicle_id}", response_model=VehicleModel)
async def update_vehicle(session_id: str, vehicle_id: str, payload: VehicleUpdate) -> VehicleModel:
    session = _session(session_id)
    try:
        vehicle = session.roster.update(vehicle_id, **payload.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return VehicleModel.from_domain(vehicle)


@router.delete("/sessions/{session_id}/vehicles/{vehicle_id}", response_model=SessionResponse)
async def remove_vehicle(session_id: str, vehicle_id: str) -> SessionResponse:
    session = _session(session_id)
    try:
        session.roster.remove(vehicle_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _session_response(session)


@router.post("/sessions/{session_id}/plan", response_model=PlanRunResponse)
async def plan_routes(session_id: str, payload: PlanRunRequest | None = None) -> PlanRunResponse:
    session = _session(session_id)
    persist = payload.persist if payload is not None else False
    try:
        outcome = await session.plan(persist=persist)
    except PlanningInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except NothingToPlanError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PlanningServiceError as exc:
        logger.error(f"Planning service failed for session {session_id}: {exc.detail}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.detail) from exc
    except AlignmentError as exc:
        logger.exception(f"Planner response misaligned for session {session_id}: {exc}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return PlanRunResponse(
        summary=outcome.summary,
        requested=outcome.requested,
        resolved=outcome.resolved,
        unresolved_vehicle_ids=list(outcome.unresolved_ids),
        unplanned_vehicle_ids=list(outcome.unplanned_ids),
        results=[PlanningResultModel.from_domain(result) for result in outcome.results],
        drawn_routes=session.map.drawn_count,
        persisted_to=str(session.last_run_dir) if session.last_run_dir else None,
    )


@router.post("/sessions/{session_id}/results/{vehicle_index}/select", response_model=SelectionResponse)
async def select_alternative(session_id: str, vehicle_index: int, payload: SelectRequest) -> SelectionResponse:
    session = _session(session_id)
    try:
        view = session.select(vehicle_index, payload.alternative_index)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _selection_response(view, session.map.drawn_count)


@router.get("/sessions/{session_id}/results/{vehicle_index}/fleet", response_model=SelectionResponse)
async def fleet_for_selection(session_id: str, vehicle_index: int) -> SelectionResponse:
    session = _session(session_id)
    try:
        view = session.fleet_view(vehicle_index)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _selection_response(view, session.map.drawn_count)


@router.post("/sessions/{session_id}/vehicles/{vehicle_id}/commit", response_model=CommitResponse)
async def commit_selection(session_id: str, vehicle_id: str) -> CommitResponse:
    session = _session(session_id)
    try:
        acknowledgment = await session.commit(vehicle_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except CommitError as exc:
        logger.warning(f"Commit failed for vehicle {vehicle_id} in session {session_id}: {exc.detail}")
        code = status.HTTP_409_CONFLICT if exc.status_code == 409 else status.HTTP_502_BAD_GATEWAY
        raise HTTPException(status_code=code, detail=exc.detail) from exc
    return CommitResponse(vehicle_id=vehicle_id, acknowledgment=acknowledgment)


@router.post("/sessions/{session_id}/map", response_model=OverlayResponse)
async def initialize_map(session_id: str, payload: MapInitRequest | None = None) -> OverlayResponse:
    session = _session(session_id)
    payload = payload or MapInitRequest()
    session.initialize_map(payload.center, payload.zoom)
    return _overlays(session)


@router.get("/sessions/{session_id}/overlays", response_model=OverlayResponse)
async def get_overlays(session_id: str) -> OverlayResponse:
    return _overlays(_session(session_id))


def _overlays(session: PlanningSession) -> OverlayResponse:
    surface = session.map.surface
    if not session.map.ready or not isinstance(surface, OverlaySurface):
        return OverlayResponse(initialized=session.map.ready)
    overlays = surface.to_overlays()
    return OverlayResponse(initialized=True, view=overlays["view"], routes=overlays["routes"])
