"""Exception types raised by the planning core."""

from __future__ import annotations


class RosterError(ValueError):
    """Invalid change to the set of planned vehicles."""


class NothingToPlanError(ValueError):
    """No vehicle resolved on both ends, so there is nothing to send to the planner."""


class SelectionError(ValueError):
    """Selection addressed a vehicle or alternative that does not exist."""


class FleetSizingError(ValueError):
    """Fleet-sizing inputs that would divide by zero or produce non-finite numbers."""


class PlanningServiceError(RuntimeError):
    """The route-planning backend failed or returned an unusable response."""

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class AlignmentError(RuntimeError):
    """Planner response does not line up with the request it answers."""


class CommitError(RuntimeError):
    """Saving a selected route was rejected."""

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class PlanningInProgressError(RuntimeError):
    """A planning run is already in flight for this session."""
