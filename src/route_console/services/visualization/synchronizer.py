"""Keeps the map in step with the current selection state."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from ...config import settings
from ...models.domain import PlanningResult
from .surface import MapSurface

# Per-position line styles; index 0 boldest. Positions past the end reuse the last style.
STROKE_STYLES: tuple[dict, ...] = (
    {"weight": 6, "opacity": 0.8},
    {"weight": 5, "opacity": 0.6},
    {"weight": 4, "opacity": 0.5},
)
SELECTED_OPACITY = 1.0
SELECTED_EXTRA_WEIGHT = 2
SELECTED_Z_INDEX = 1000
BASE_Z_INDEX = 100
DEFAULT_COLOR = "#808080"

logger = logging.getLogger(__name__)


def stroke_for(route_index: int, is_selected: bool) -> tuple[int, float, int]:
    """Return (weight, opacity, z_index) for an alternative at array position ``route_index``."""
    style = STROKE_STYLES[min(route_index, len(STROKE_STYLES) - 1)]
    if is_selected:
        return style["weight"] + SELECTED_EXTRA_WEIGHT, SELECTED_OPACITY, SELECTED_Z_INDEX
    return style["weight"], style["opacity"], BASE_Z_INDEX + route_index


class RouteMapSynchronizer:
    """Owns the drawn elements on one map surface for one planning session.

    Every redraw clears the surface and draws the whole snapshot again, so a
    redraw never leaves elements from an earlier selection behind.
    """

    def __init__(self, surface: MapSurface) -> None:
        self.surface = surface
        self._ready = False
        self._drawn: list[object] = []

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def drawn_count(self) -> int:
        return len(self._drawn)

    def initialize(self, center: Sequence[float] | None = None, zoom: int | None = None) -> None:
        center = tuple(center) if center is not None else settings.map_center
        zoom = zoom if zoom is not None else settings.map_zoom
        self.surface.initialize((center[0], center[1]), zoom)
        self._ready = True
        logger.info(f"Map surface initialized at ({center[0]:.4f}, {center[1]:.4f}) zoom {zoom}")

    def draw_all(self, snapshot: Sequence[PlanningResult], colors: Mapping[str, str]) -> int:
        """Redraw every alternative of every vehicle; returns the number of drawn elements."""
        if not self._ready:
            logger.debug("Map surface not initialized; skipping redraw")
            return 0

        self.dispose_all()
        for result in snapshot:
            color = colors.get(result.vehicle_id, DEFAULT_COLOR)
            for route_index, alternative in enumerate(result.alternatives):
                weight, opacity, z_index = stroke_for(route_index, route_index == result.selected_index)
                handle = self.surface.draw_polyline(
                    alternative.waypoints,
                    color=color,
                    weight=weight,
                    opacity=opacity,
                    z_index=z_index,
                )
                self._drawn.append(handle)
        return len(self._drawn)

    def dispose_all(self) -> None:
        if self._ready:
            self.surface.clear_all()
        self._drawn.clear()
