"""The set of vehicles an operator is configuring for one planning batch."""

from __future__ import annotations

import itertools
import logging
from typing import Collection, Iterator, Sequence

from ...config import settings
from ...errors import RosterError
from ...models.domain import MAX_DAILY_PASSENGERS, PEAK_HOURS, PlannedVehicle

VEHICLE_COLORS: tuple[str, ...] = (
    "#FF0000", "#00FF00", "#0000FF", "#FFFF00", "#FF00FF", "#00FFFF",
    "#FFA500", "#800080", "#008000", "#FFC0CB", "#A52A2A", "#808080",
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#FFA07A", "#98D8C8", "#F7DC6F",
    "#BB8FCE", "#85C1E2", "#F8B739", "#52B788",
)

EDITABLE_FIELDS = frozenset({"label", "source", "destination", "peak_hour", "expected_passengers"})

logger = logging.getLogger(__name__)


def color_for(count: int, palette: Sequence[str] = VEHICLE_COLORS, in_use: Collection[str] = ()) -> str:
    """Color for the vehicle inserted when ``count`` vehicles already exist.

    The first palette color no live vehicle holds; cycles by count once every
    color is taken.
    """
    for color in palette:
        if color not in in_use:
            return color
    return palette[count % len(palette)]


class VehicleRoster:
    """Ordered collection of planned vehicles, never empty and capped at ``max_vehicles``."""

    def __init__(self, max_vehicles: int | None = None, palette: Sequence[str] = VEHICLE_COLORS) -> None:
        if not palette:
            raise ValueError("Vehicle palette must not be empty.")
        self.max_vehicles = max_vehicles if max_vehicles is not None else settings.max_vehicles_per_batch
        self.palette = tuple(palette)
        self._ids = itertools.count(1)
        self._vehicles: list[PlannedVehicle] = []
        self.add()

    def __len__(self) -> int:
        return len(self._vehicles)

    def __iter__(self) -> Iterator[PlannedVehicle]:
        return iter(tuple(self._vehicles))

    @property
    def vehicles(self) -> tuple[PlannedVehicle, ...]:
        return tuple(self._vehicles)

    @property
    def is_full(self) -> bool:
        return len(self._vehicles) >= self.max_vehicles

    def get(self, vehicle_id: str) -> PlannedVehicle:
        for vehicle in self._vehicles:
            if vehicle.vehicle_id == vehicle_id:
                return vehicle
        raise RosterError(f"Vehicle '{vehicle_id}' is not part of this batch.")

    def find(self, vehicle_id: str) -> PlannedVehicle | None:
        return next((vehicle for vehicle in self._vehicles if vehicle.vehicle_id == vehicle_id), None)

    def add(self, **fields) -> PlannedVehicle:
        if self.is_full:
            raise RosterError(f"A planning batch holds at most {self.max_vehicles} vehicles.")

        count = len(self._vehicles)
        vehicle = PlannedVehicle(
            vehicle_id=str(next(self._ids)),
            label=f"Bus {count + 1}",
            color=color_for(count, self.palette, {vehicle.color for vehicle in self._vehicles}),
        )
        self._apply(vehicle, fields)
        self._vehicles.append(vehicle)
        logger.debug(f"Added vehicle {vehicle.vehicle_id} ({vehicle.label}), roster size {len(self._vehicles)}")
        return vehicle

    def update(self, vehicle_id: str, **changes) -> PlannedVehicle:
        vehicle = self.get(vehicle_id)
        self._apply(vehicle, changes)
        return vehicle

    def remove(self, vehicle_id: str) -> PlannedVehicle:
        vehicle = self.get(vehicle_id)
        if len(self._vehicles) == 1:
            raise RosterError("The last remaining vehicle cannot be removed.")
        self._vehicles.remove(vehicle)
        logger.debug(f"Removed vehicle {vehicle_id}, roster size {len(self._vehicles)}")
        return vehicle

    def apply_resolution(self, resolved: Sequence[PlannedVehicle]) -> None:
        """Copy coordinates from resolved snapshots onto the live vehicles.

        An end is only updated while its address text still matches the text
        that was resolved; vehicles removed in the meantime are ignored.
        """
        for snapshot in resolved:
            vehicle = self.find(snapshot.vehicle_id)
            if vehicle is None:
                continue
            if vehicle.source == snapshot.source:
                vehicle.source_coords = snapshot.source_coords
            if vehicle.destination == snapshot.destination:
                vehicle.dest_coords = snapshot.dest_coords

    @staticmethod
    def _apply(vehicle: PlannedVehicle, changes: dict) -> None:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise RosterError(f"Unknown vehicle field(s): {', '.join(sorted(unknown))}")

        peak_hour = changes.get("peak_hour")
        if peak_hour is not None and peak_hour not in PEAK_HOURS:
            raise RosterError(f"peak_hour must be one of {', '.join(PEAK_HOURS)}, got '{peak_hour}'")

        passengers = changes.get("expected_passengers")
        if passengers is not None:
            passengers = int(passengers)
            if passengers < 0:
                raise RosterError("expected_passengers cannot be negative.")
            if passengers > MAX_DAILY_PASSENGERS:
                raise RosterError(f"expected_passengers cannot exceed {MAX_DAILY_PASSENGERS}.")
            changes = {**changes, "expected_passengers": passengers}

        for name, value in changes.items():
            if value is None:
                continue
            if name == "source" and value != vehicle.source:
                vehicle.source_coords = None
            if name == "destination" and value != vehicle.destination:
                vehicle.dest_coords = None
            setattr(vehicle, name, value)
