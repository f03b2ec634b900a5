"""Serializers for planning run outputs."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict
from typing import Sequence

from ...models.domain import BatchOutcome, PlanningResult
from ..geospatial import haversine_km


def planning_result_to_json(result: PlanningResult) -> dict:
    return {
        "vehicle_id": result.vehicle_id,
        "label": result.label,
        "source_name": result.source_name,
        "dest_name": result.dest_name,
        "source": asdict(result.source),
        "destination": asdict(result.destination),
        "peak_hour": result.peak_hour,
        "total_routes": result.total_routes,
        "selected_index": result.selected_index,
        "alternatives": [
            {**asdict(alternative), "waypoints": [list(point) for point in alternative.waypoints]}
            for alternative in result.alternatives
        ],
    }


def batch_outcome_to_json(outcome: BatchOutcome) -> dict:
    return {
        "summary": outcome.summary,
        "requested": outcome.requested,
        "resolved": outcome.resolved,
        "unresolved_ids": list(outcome.unresolved_ids),
        "unplanned_ids": list(outcome.unplanned_ids),
        "results": [planning_result_to_json(result) for result in outcome.results],
    }


def alternatives_to_csv(results: Sequence[PlanningResult]) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "vehicle_id",
        "label",
        "peak_hour",
        "route_index",
        "rank",
        "selected",
        "distance_km",
        "duration_min",
        "direct_distance_km",
        "gemini_score",
        "traffic_score",
        "waypoint_count",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for result in results:
        direct_km = haversine_km(result.source.lat, result.source.lng, result.destination.lat, result.destination.lng)
        for position, alternative in enumerate(result.alternatives):
            writer.writerow(
                {
                    "vehicle_id": result.vehicle_id,
                    "label": result.label,
                    "peak_hour": result.peak_hour,
                    "route_index": alternative.route_index,
                    "rank": alternative.rank,
                    "selected": position == result.selected_index,
                    "distance_km": alternative.distance_km,
                    "duration_min": alternative.duration_min,
                    "direct_distance_km": round(direct_km, 3),
                    "gemini_score": alternative.gemini_score,
                    "traffic_score": alternative.traffic_score,
                    "waypoint_count": len(alternative.waypoints),
                }
            )
    return buffer.getvalue()
