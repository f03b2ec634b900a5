"""Map surfaces the route synchronizer can draw on."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Protocol, Sequence


class MapSurface(Protocol):
    def initialize(self, center: tuple[float, float], zoom: int) -> None: ...

    def draw_polyline(
        self,
        path: Sequence[tuple[float, float]],
        color: str,
        weight: int,
        opacity: float,
        z_index: int,
    ) -> object: ...

    def clear_all(self) -> None: ...


@dataclass(frozen=True, slots=True)
class Polyline:
    coordinates: tuple[tuple[float, float], ...]
    color: str
    weight: int
    opacity: float
    z_index: int


class OverlaySurface:
    """Records drawn polylines as map overlays for a browser map client to render."""

    def __init__(self) -> None:
        self.center: tuple[float, float] | None = None
        self.zoom: int | None = None
        self._polylines: list[Polyline] = []

    @property
    def polylines(self) -> tuple[Polyline, ...]:
        return tuple(self._polylines)

    def initialize(self, center: tuple[float, float], zoom: int) -> None:
        self.center = (float(center[0]), float(center[1]))
        self.zoom = int(zoom)

    def draw_polyline(
        self,
        path: Sequence[tuple[float, float]],
        color: str,
        weight: int,
        opacity: float,
        z_index: int,
    ) -> Polyline:
        polyline = Polyline(
            coordinates=tuple((float(lat), float(lng)) for lat, lng in path),
            color=color,
            weight=weight,
            opacity=opacity,
            z_index=z_index,
        )
        self._polylines.append(polyline)
        return polyline

    def clear_all(self) -> None:
        self._polylines.clear()

    def to_overlays(self) -> dict:
        """Serialize in ``map_overlays`` form, lowest z-index first."""
        routes = []
        for polyline in sorted(self._polylines, key=lambda item: item.z_index):
            record = asdict(polyline)
            record["coordinates"] = [list(point) for point in polyline.coordinates]
            routes.append(record)
        view = {"center": list(self.center), "zoom": self.zoom} if self.center is not None else None
        return {"view": view, "routes": routes}
