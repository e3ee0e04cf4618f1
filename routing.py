# Pickup route planning for a school run.
#
# optimize() builds a visiting order with the greedy nearest-neighbour
# heuristic: from the current stop, always go to the closest unvisited
# waypoint. It is O(n^2) in the number of waypoints, which is fine for the
# handful of pickups a single route carries, and it makes no claim of global
# optimality. Ties go to the waypoint that appears first in the input, so the
# result is deterministic for a given input order.

import math
from collections import namedtuple
from dataclasses import dataclass, replace
from typing import List, Optional

from utils import distance_km

AVERAGE_SPEED_KMH = 40

OptimizedRoute = namedtuple("OptimizedRoute", ["waypoints", "total_distance_km", "total_duration_minutes"])

@dataclass(frozen=True)
class Waypoint:
    latitude: float
    longitude: float
    address: Optional[str] = None
    order: Optional[int] = None

    def to_dict(self):
        data = {"latitude": self.latitude, "longitude": self.longitude}
        if self.address is not None:
            data["address"] = self.address
        if self.order is not None:
            data["order"] = self.order
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            address=data.get("address"),
            order=data.get("order"),
        )

def total_distance(waypoints: List[Waypoint]) -> float:
    """Sum of the legs between consecutive waypoints, in km"""
    if len(waypoints) < 2:
        return 0.0
    return sum(distance_km(a, b) for a, b in zip(waypoints, waypoints[1:]))

def estimate_travel_time(distance: float, average_speed_kmh: float = AVERAGE_SPEED_KMH) -> int:
    """Minutes needed to cover distance km at the average urban speed, rounded half up"""
    return int(math.floor(distance / average_speed_kmh * 60 + 0.5))

def nearest_neighbour_order(waypoints: List[Waypoint], start: Waypoint) -> List[Waypoint]:
    remaining = list(waypoints)
    ordered = []
    current = start

    while remaining:
        nearest_index = 0
        nearest_distance = distance_km(current, remaining[0])
        for index in range(1, len(remaining)):
            candidate = distance_km(current, remaining[index])
            # Strictly less: the first of equally distant waypoints wins
            if candidate < nearest_distance:
                nearest_distance = candidate
                nearest_index = index
        current = remaining.pop(nearest_index)
        ordered.append(current)

    return ordered

def optimize(waypoints: List[Waypoint], start: Waypoint, end: Waypoint,
             average_speed_kmh: float = AVERAGE_SPEED_KMH) -> OptimizedRoute:
    """Order waypoints between start and end and estimate distance and duration.

    The returned list is [start, *waypoints in visiting order, end] with
    order indices 0..n+1.
    """
    visiting = [start] + nearest_neighbour_order(waypoints, start) + [end]
    ordered = [replace(point, order=index) for index, point in enumerate(visiting)]

    distance = total_distance(ordered)
    return OptimizedRoute(ordered, distance, estimate_travel_time(distance, average_speed_kmh))
