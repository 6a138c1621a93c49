from __future__ import annotations

from collections import deque
from typing import Iterable, Optional

from .geometry import LatLng
from .simulation import EntityState


class SmoothingFilter:
    """
    Unweighted moving average over the most recent interpolated points.

    A sample is kept while it is younger than ``horizon`` seconds and among the
    last ``max_samples`` pushed. The horizon is applied before the count bound.
    """

    def __init__(self, max_samples: int = 5, horizon: float = 1.0):
        self.max_samples = max_samples
        self.horizon = horizon

    def push(self, state: EntityState, point: LatLng, now: float) -> Optional[LatLng]:
        state.window.append((point, now))
        state.window = deque(
            (sample, ts) for sample, ts in state.window if now - ts < self.horizon
        )
        while len(state.window) > self.max_samples:
            state.window.popleft()
        return average(sample for sample, _ in state.window)


def average(points: Iterable[LatLng]) -> Optional[LatLng]:
    points = list(points)
    if not points:
        return None
    # Offsets from the first sample keep a window of identical points exact.
    base = points[0]
    count = len(points)
    return LatLng(
        base.lat + sum(point.lat - base.lat for point in points) / count,
        base.lng + sum(point.lng - base.lng for point in points) / count,
    )
