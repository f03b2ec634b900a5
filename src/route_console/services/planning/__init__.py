"""Batch route planning services."""

from .batch import BatchRoutePlanner, build_batch_request, filter_resolved
from .client import PlannerClient
from .roster import VEHICLE_COLORS, VehicleRoster

__all__ = [
    "BatchRoutePlanner",
    "PlannerClient",
    "VEHICLE_COLORS",
    "VehicleRoster",
    "build_batch_request",
    "filter_resolved",
]
