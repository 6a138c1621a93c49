"""
Kinematic state of each simulated bus and the time-proportional stepping
along its route polyline.
"""
from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional, Tuple

from .geometry import LatLng, Route


@dataclass
class EntityState:
    route: Optional[Route] = None
    progress: float = 0.0  # fractional index into route.points
    last_update: Optional[float] = None
    window: Deque[Tuple[LatLng, float]] = field(default_factory=deque)


class PositionSimulator:
    """
    Moves a bus ``speed_factor`` route points per second of wall-clock time
    and returns the point linearly interpolated between its two neighbouring
    vertices. Motion is a closed loop: progress wraps at the route length.
    """

    def __init__(self, speed_factor: float):
        self.speed_factor = speed_factor

    def advance(self, state: EntityState, route: Route, now: float) -> LatLng:
        if state.route is not route:
            state.route = route
            state.progress = 0.0
            state.last_update = None

        elapsed = 0.0 if state.last_update is None else max(now - state.last_update, 0.0)
        state.last_update = now

        length = len(route)
        if length == 1:
            state.progress = 0.0
            return route[0]

        state.progress = math.fmod(state.progress + self.speed_factor * elapsed, length)
        if state.progress < 0 or state.progress >= length:
            state.progress = 0.0
        return interpolate(route, state.progress)


def interpolate(route: Route, progress: float) -> LatLng:
    i = int(math.floor(progress))
    j = (i + 1) % len(route)
    frac = progress - i
    start, end = route[i], route[j]
    return LatLng(
        start.lat + frac * (end.lat - start.lat),
        start.lng + frac * (end.lng - start.lng),
    )
