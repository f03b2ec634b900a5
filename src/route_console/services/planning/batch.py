"""Batch route planning: address resolution, one batched planner call, re-association."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Sequence

from ...config import settings
from ...errors import AlignmentError, NothingToPlanError
from ...models.domain import BatchOutcome, Coordinate, PlannedVehicle, PlanningResult, RouteAlternative
from ...schemas.planner import BatchPlanRequest, RouteOptionModel, RoutePlanRequest, VehiclePlanModel
from ..geocoding.resolver import AddressResolver
from .client import PlannerClient

Resolution = tuple[Coordinate | None, Coordinate | None]

logger = logging.getLogger(__name__)


def filter_resolved(vehicles: Sequence[PlannedVehicle]) -> list[PlannedVehicle]:
    """Vehicles resolved on both ends, in their original order."""
    return [vehicle for vehicle in vehicles if vehicle.is_resolved]


def build_batch_request(vehicles: Sequence[PlannedVehicle]) -> tuple[BatchPlanRequest, list[str]]:
    """Build the planner request and the position -> vehicle id map that answers it."""
    routes: list[RoutePlanRequest] = []
    vehicle_ids: list[str] = []
    for vehicle in vehicles:
        if vehicle.source_coords is None or vehicle.dest_coords is None:
            raise ValueError(f"Vehicle {vehicle.vehicle_id} is not resolved on both ends.")
        routes.append(
            RoutePlanRequest(
                source_lat=vehicle.source_coords.lat,
                source_lng=vehicle.source_coords.lng,
                dest_lat=vehicle.dest_coords.lat,
                dest_lng=vehicle.dest_coords.lng,
                peak_hour=vehicle.peak_hour,
            )
        )
        vehicle_ids.append(vehicle.vehicle_id)
    return BatchPlanRequest(routes=routes), vehicle_ids


def _to_alternative(option: RouteOptionModel) -> RouteAlternative:
    return RouteAlternative(
        route_index=option.route_index,
        distance_km=option.distance_km,
        duration_min=option.duration_min,
        waypoints=tuple((float(lat), float(lng)) for lat, lng in option.waypoints),
        gemini_score=option.gemini_score,
        traffic_score=option.traffic_score,
        rank=option.rank,
        reasoning=option.reasoning,
    )


class BatchRoutePlanner:
    def __init__(
        self,
        resolver: AddressResolver,
        client: PlannerClient,
        alternatives_per_vehicle: int | None = None,
    ) -> None:
        self.resolver = resolver
        self.client = client
        self.alternatives_per_vehicle = (
            alternatives_per_vehicle if alternatives_per_vehicle is not None else settings.alternatives_per_vehicle
        )

    async def resolve_vehicles(self, vehicles: Sequence[PlannedVehicle]) -> dict[str, Resolution]:
        """Resolve every vehicle's endpoints concurrently; waits until all lookups settle."""
        pairs = await asyncio.gather(
            *(self.resolver.resolve_pair(vehicle.source, vehicle.destination) for vehicle in vehicles)
        )
        resolutions = {vehicle.vehicle_id: pair for vehicle, pair in zip(vehicles, pairs)}
        for vehicle, (source, destination) in zip(vehicles, pairs):
            if source is None or destination is None:
                logger.warning(
                    f"Could not resolve {vehicle.label}: source={'ok' if source else 'unresolved'}, "
                    f"destination={'ok' if destination else 'unresolved'}"
                )
        return resolutions

    async def plan_resolved(self, resolved: Sequence[PlannedVehicle]) -> tuple[list[PlanningResult], list[str]]:
        """Plan vehicles already resolved on both ends.

        Returns the planning results and the ids of vehicles the planner
        answered with no alternatives.
        """
        if not resolved:
            raise NothingToPlanError("Could not geocode any of the addresses. Please check the location names.")

        request, vehicle_ids = build_batch_request(resolved)
        logger.info(f"Requesting route alternatives for {len(vehicle_ids)} vehicle(s)")
        response = await self.client.plan_batch(request)

        if len(response.routes) != len(vehicle_ids):
            raise AlignmentError(
                f"Planner answered {len(response.routes)} vehicle(s) for a request of {len(vehicle_ids)}; "
                "refusing to attribute routes by position."
            )

        by_id = {vehicle.vehicle_id: vehicle for vehicle in resolved}
        results: list[PlanningResult] = []
        unplanned: list[str] = []
        for vehicle_id, plan in zip(vehicle_ids, response.routes):
            result = self._to_result(by_id[vehicle_id], plan)
            if result is None:
                unplanned.append(vehicle_id)
            else:
                results.append(result)
        return results, unplanned

    def _to_result(self, vehicle: PlannedVehicle, plan: VehiclePlanModel) -> PlanningResult | None:
        options = plan.routes
        expected = self.alternatives_per_vehicle
        if len(options) != expected:
            logger.warning(f"Planner returned {len(options)} alternative(s) for {vehicle.label}, expected {expected}")
        if not options:
            return None

        return PlanningResult(
            vehicle_id=vehicle.vehicle_id,
            label=vehicle.label,
            source_name=vehicle.source,
            dest_name=vehicle.destination,
            source=Coordinate(lat=plan.source.lat, lng=plan.source.lng),
            destination=Coordinate(lat=plan.destination.lat, lng=plan.destination.lng),
            peak_hour=plan.peak_hour,
            total_routes=plan.total_routes,
            alternatives=tuple(_to_alternative(option) for option in options[:expected]),
            selected_index=0,
        )

    async def run(self, vehicles: Sequence[PlannedVehicle]) -> BatchOutcome:
        """Resolve, filter and plan ``vehicles`` without touching the caller's objects."""
        resolutions = await self.resolve_vehicles(vehicles)
        resolved = [
            replace(
                vehicle,
                source_coords=resolutions[vehicle.vehicle_id][0],
                dest_coords=resolutions[vehicle.vehicle_id][1],
            )
            for vehicle in vehicles
        ]
        return await self.plan_vehicles(resolved)

    async def plan_vehicles(self, vehicles: Sequence[PlannedVehicle]) -> BatchOutcome:
        """Filter ``vehicles`` (already carrying resolution results) and plan the resolved ones."""
        resolved = filter_resolved(vehicles)
        logger.info(f"Successfully geocoded {len(resolved)} out of {len(vehicles)} routes")
        results, unplanned = await self.plan_resolved(resolved)
        resolved_ids = {vehicle.vehicle_id for vehicle in resolved}
        return BatchOutcome(
            results=tuple(results),
            requested=len(vehicles),
            resolved=len(resolved),
            vehicles=tuple(vehicles),
            unresolved_ids=[vehicle.vehicle_id for vehicle in vehicles if vehicle.vehicle_id not in resolved_ids],
            unplanned_ids=unplanned,
        )
