"""Operator planning sessions: roster, planning runs, selection, fleet sizing and commits."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from ..config import settings
from ..errors import CommitError, FleetSizingError, PlanningInProgressError
from ..models.domain import BatchOutcome, DepartureSchedule, FleetRecommendation, PlanningResult
from ..persistence.filesystem import FileStorage
from ..schemas.planner import SaveRouteRequest, SaveRouteResponse
from .fleet.calculator import build_departure_schedule, compute_fleet_recommendation
from .geocoding.resolver import AddressResolver
from .outputs.formatter import alternatives_to_csv, batch_outcome_to_json
from .planning.batch import BatchRoutePlanner
from .planning.client import PlannerClient
from .planning.roster import VehicleRoster
from .selection.store import SelectionStore
from .visualization.surface import MapSurface, OverlaySurface
from .visualization.synchronizer import RouteMapSynchronizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SelectionView:
    """A vehicle's current selection with the fleet sizing derived from it."""

    vehicle_index: int
    result: PlanningResult
    recommendation: Optional[FleetRecommendation]
    schedule: Optional[DepartureSchedule]
    fleet_error: Optional[str] = None


class PlanningSession:
    """All state one operator works on between planning runs.

    Mutating methods are synchronous and never await, so on a single event
    loop a selection and the redraw it triggers always see the same snapshot.
    """

    def __init__(
        self,
        session_id: str,
        planner: BatchRoutePlanner,
        surface: MapSurface | None = None,
        roster: VehicleRoster | None = None,
    ) -> None:
        self.session_id = session_id
        self.planner = planner
        self.roster = roster or VehicleRoster()
        self.store = SelectionStore()
        self.map = RouteMapSynchronizer(surface or OverlaySurface())
        self.last_outcome: BatchOutcome | None = None
        self.last_run_dir: Path | None = None
        self.commits: dict[str, SaveRouteResponse] = {}
        self._planning = False
        self._saving: set[str] = set()
        self._run = 0

    @property
    def planning(self) -> bool:
        return self._planning

    def colors(self) -> dict[str, str]:
        return {vehicle.vehicle_id: vehicle.color for vehicle in self.roster}

    def redraw(self) -> int:
        return self.map.draw_all(self.store.snapshot(), self.colors())

    def initialize_map(self, center: tuple[float, float] | None = None, zoom: int | None = None) -> int:
        self.map.initialize(center, zoom)
        return self.redraw()

    async def plan(self, persist: bool = False) -> BatchOutcome:
        """Run one planning batch over the current roster.

        The store and map are only replaced once the planner has answered;
        any failure leaves the previous run in place.
        """
        if self._planning:
            raise PlanningInProgressError("A planning run is already in progress for this session.")

        self._planning = True
        try:
            vehicles = [replace(vehicle) for vehicle in self.roster]
            logger.info(f"Session {self.session_id}: planning {len(vehicles)} vehicle(s)")
            outcome = await self.planner.run(vehicles)
            self.roster.apply_resolution(outcome.vehicles)

            self.store.replace(outcome.results)
            self._run += 1
            self.last_outcome = outcome
            self.commits.clear()
            drawn = self.redraw()
            logger.info(
                f"Session {self.session_id}: {outcome.summary}, {len(outcome.results)} planned, {drawn} route(s) drawn"
            )
        finally:
            self._planning = False

        self.last_run_dir = self._persist(outcome) if persist else None
        return outcome

    def _persist(self, outcome: BatchOutcome) -> Path | None:
        try:
            storage = FileStorage()
            return storage.write_run(
                f"plan_{self.session_id[:8]}",
                {
                    "summary.json": batch_outcome_to_json(outcome),
                    "alternatives.csv": alternatives_to_csv(outcome.results),
                },
            )
        except OSError as exc:
            logger.warning(f"Failed to persist planning run for session {self.session_id}: {exc}")
            return None

    def fleet_view(self, vehicle_index: int) -> SelectionView:
        """Fleet sizing for the vehicle's currently selected alternative, computed fresh."""
        result = self.store.get(vehicle_index)
        vehicle = self.roster.find(result.vehicle_id)
        passengers = vehicle.expected_passengers if vehicle is not None else 0

        recommendation = None
        schedule = None
        fleet_error = None
        try:
            recommendation = compute_fleet_recommendation(
                passengers,
                result.selected.duration_min,
                vehicle_capacity=settings.vehicle_capacity,
                operating_window_min=settings.operating_window_minutes,
                layover_min=settings.layover_minutes,
            )
        except FleetSizingError as exc:
            logger.warning(f"{result.label}: fleet sizing unavailable: {exc}")
            fleet_error = str(exc)
        if recommendation is not None:
            schedule = build_departure_schedule(recommendation, settings.service_start_time)

        return SelectionView(
            vehicle_index=vehicle_index,
            result=result,
            recommendation=recommendation,
            schedule=schedule,
            fleet_error=fleet_error,
        )

    def select(self, vehicle_index: int, alternative_index: int) -> SelectionView:
        self.store.select(vehicle_index, alternative_index)
        view = self.fleet_view(vehicle_index)
        self.redraw()
        return view

    def select_vehicle(self, vehicle_id: str, alternative_index: int) -> SelectionView:
        return self.select(self.store.index_of(vehicle_id), alternative_index)

    def build_save_request(self, vehicle_id: str) -> SaveRouteRequest:
        result = self.store.get(self.store.index_of(vehicle_id))
        vehicle = self.roster.get(vehicle_id)
        alternative = result.selected
        return SaveRouteRequest(
            bus_id=vehicle.vehicle_id,
            bus_number=vehicle.label,
            route_index=result.selected_index,
            source_name=result.source_name,
            dest_name=result.dest_name,
            source_lat=result.source.lat,
            source_lng=result.source.lng,
            dest_lat=result.destination.lat,
            dest_lng=result.destination.lng,
            waypoints=list(alternative.waypoints),
            distance_km=alternative.distance_km,
            duration_min=alternative.duration_min,
            gemini_score=alternative.gemini_score,
            traffic_score=alternative.traffic_score,
            reasoning=alternative.reasoning,
            peak_hour=result.peak_hour,
            expected_passengers_daily=vehicle.expected_passengers,
        )

    async def commit(self, vehicle_id: str) -> SaveRouteResponse:
        """Save the vehicle's current selection; other vehicles' saved state is unaffected."""
        if vehicle_id in self._saving:
            raise CommitError(f"Vehicle '{vehicle_id}' is already being saved.", status_code=409)

        request = self.build_save_request(vehicle_id)
        run = self._run
        self._saving.add(vehicle_id)
        try:
            acknowledgment = await self.planner.client.save_selection(request)
        finally:
            self._saving.discard(vehicle_id)

        if run != self._run:
            logger.warning(
                f"Session {self.session_id}: route {acknowledgment.route_id} for {request.bus_number} was saved "
                "from a planning run that has since been replaced; not recording it"
            )
            raise CommitError(
                f"Route {acknowledgment.route_id} was saved for the previous planning run of {request.bus_number}; "
                "review the current selection and commit again.",
                status_code=409,
            )

        self.commits[vehicle_id] = acknowledgment
        logger.info(
            f"Session {self.session_id}: saved route {acknowledgment.route_id} for {request.bus_number} "
            f"(alternative {request.route_index})"
        )
        return acknowledgment

    async def aclose(self) -> None:
        self.map.dispose_all()
        await self.planner.resolver.aclose()
        await self.planner.client.aclose()


def build_session(session_id: str) -> PlanningSession:
    planner = BatchRoutePlanner(AddressResolver(), PlannerClient())
    return PlanningSession(session_id, planner, surface=OverlaySurface())


class SessionRegistry:
    """In-memory sessions keyed by id."""

    def __init__(self) -> None:
        self._sessions: dict[str, PlanningSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> PlanningSession:
        session = build_session(uuid.uuid4().hex)
        self._sessions[session.session_id] = session
        logger.info(f"Created planning session {session.session_id}")
        return session

    def get(self, session_id: str) -> PlanningSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise KeyError(f"Planning session '{session_id}' not found") from None

    async def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise KeyError(f"Planning session '{session_id}' not found")
        await session.aclose()

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.discard(session_id)


registry = SessionRegistry()
