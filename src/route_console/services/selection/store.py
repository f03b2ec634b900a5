"""Per-vehicle selection state over the current planning run."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

from ...errors import SelectionError
from ...models.domain import PlanningResult

logger = logging.getLogger(__name__)


class SelectionStore:
    """Holds the planning results of the current run and which alternative each vehicle uses.

    Results are immutable; every mutation swaps in a new tuple, so a snapshot
    taken at any point is never partially updated.
    """

    def __init__(self) -> None:
        self._results: tuple[PlanningResult, ...] = ()
        self._version = 0

    def __len__(self) -> int:
        return len(self._results)

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> tuple[PlanningResult, ...]:
        return self._results

    def replace(self, results: Sequence[PlanningResult]) -> None:
        """Discard the previous run and start a new one with every selection at index 0."""
        self._results = tuple(replace(result, selected_index=0) for result in results)
        self._version += 1

    def clear(self) -> None:
        self.replace(())

    def index_of(self, vehicle_id: str) -> int:
        for index, result in enumerate(self._results):
            if result.vehicle_id == vehicle_id:
                return index
        raise SelectionError(f"Vehicle '{vehicle_id}' has no planning result in the current run.")

    def get(self, vehicle_index: int) -> PlanningResult:
        if isinstance(vehicle_index, bool) or not isinstance(vehicle_index, int):
            raise SelectionError(f"Vehicle index must be an integer, got {vehicle_index!r}")
        if not 0 <= vehicle_index < len(self._results):
            raise SelectionError(f"Vehicle index {vehicle_index} is out of range (0..{len(self._results) - 1}).")
        return self._results[vehicle_index]

    def select(self, vehicle_index: int, alternative_index: int) -> PlanningResult:
        """Select ``alternative_index`` for one vehicle; every other vehicle keeps its selection."""
        current = self.get(vehicle_index)
        if isinstance(alternative_index, bool) or not isinstance(alternative_index, int):
            raise SelectionError(f"Alternative index must be an integer, got {alternative_index!r}")
        if not 0 <= alternative_index < len(current.alternatives):
            raise SelectionError(
                f"Alternative index {alternative_index} is out of range for {current.label} "
                f"({len(current.alternatives)} alternative(s))."
            )

        updated = replace(current, selected_index=alternative_index)
        results = list(self._results)
        results[vehicle_index] = updated
        self._results = tuple(results)
        self._version += 1
        logger.info(f"{current.label}: selected alternative {alternative_index} (rank {updated.selected.rank})")
        return updated

    def select_vehicle(self, vehicle_id: str, alternative_index: int) -> PlanningResult:
        return self.select(self.index_of(vehicle_id), alternative_index)
