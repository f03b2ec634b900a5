"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import Point, box

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def point_in_bounds(lat: float, lng: float, bounds: Sequence[float]) -> bool:
    """Return True if the point lies inside (or on the edge of) a (south, west, north, east) rectangle."""

    south, west, north, east = bounds
    return box(west, south, east, north).covers(Point(lng, lat))


def bounds_to_param(bounds: Sequence[float]) -> str:
    """Format a (south, west, north, east) rectangle as a geocoder ``bounds`` query value."""

    south, west, north, east = bounds
    return f"{south},{west}|{north},{east}"

