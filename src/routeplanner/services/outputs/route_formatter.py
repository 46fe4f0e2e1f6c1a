"""Serializers and display helpers for optimization results."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from ...models.domain import OptimizationResult


def format_duration(seconds: float) -> str:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m"


def format_distance(kilometers: float) -> str:
    return f"{kilometers:.2f} km"


def format_fuel(litres: float) -> str:
    return f"{litres:.2f}L"


def result_summary(result: OptimizationResult) -> dict:
    route = result.optimized_route
    metrics = result.optimization_metrics
    return {
        "total_duration": format_duration(route.total_duration),
        "total_distance": format_distance(route.total_distance),
        "waypoints": len(route.waypoints),
        "time_saved": format_duration(metrics.time_saved),
        "distance_saved": format_distance(metrics.distance_saved),
        "fuel_saved": format_fuel(metrics.fuel_saved),
    }


def result_to_json(result: OptimizationResult) -> dict:
    route = result.optimized_route
    return {
        "request_id": result.request_id,
        "total_distance": route.total_distance,
        "total_duration": route.total_duration,
        "metrics": asdict(result.optimization_metrics),
        "waypoints": [
            {"sequence": index + 1, **asdict(waypoint)} for index, waypoint in enumerate(route.waypoints)
        ],
    }


def result_to_csv(result: OptimizationResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "request_id",
        "sequence",
        "address",
        "latitude",
        "longitude",
        "estimated_arrival",
        "total_distance",
        "total_duration",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    route = result.optimized_route
    for index, waypoint in enumerate(route.waypoints, start=1):
        writer.writerow(
            {
                "request_id": result.request_id or "",
                "sequence": index,
                "address": waypoint.address,
                "latitude": waypoint.latitude,
                "longitude": waypoint.longitude,
                "estimated_arrival": waypoint.estimated_arrival or "",
                "total_distance": route.total_distance,
                "total_duration": route.total_duration,
            }
        )
    return buffer.getvalue()
