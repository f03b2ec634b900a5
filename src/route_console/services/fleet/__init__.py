"""Fleet sizing services."""

from .calculator import build_departure_schedule, compute_fleet_recommendation

__all__ = ["build_departure_schedule", "compute_fleet_recommendation"]
