"""
Tuning constants for the position simulation, read from ``settings.BUS_SIMULATION``.

All time values are in seconds. ``speed_factor`` is expressed in route points
per second: a bus advances ``speed_factor * elapsed`` positions along its
polyline each tick.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class SimulationConfig:
    tick_interval: float = 0.1
    speed_factor: float = 0.02
    smoothing_window: int = 5
    smoothing_horizon: float = 1.0
    resnapshot_interval: float = 5.0
    subscriber_queue_size: int = 16
    route_retry_seconds: float = 1.0

    def with_overrides(self, **overrides: Any) -> "SimulationConfig":
        config = replace(self, **overrides)
        config.validate()
        return config

    def validate(self) -> None:
        for name in (
            "tick_interval",
            "speed_factor",
            "smoothing_window",
            "smoothing_horizon",
            "resnapshot_interval",
            "subscriber_queue_size",
        ):
            if getattr(self, name) <= 0:
                raise ImproperlyConfigured(f"BUS_SIMULATION['{name}'] must be positive.")
        if self.route_retry_seconds < 0:
            raise ImproperlyConfigured("BUS_SIMULATION['route_retry_seconds'] must not be negative.")


def get_simulation_config() -> SimulationConfig:
    overrides: Dict[str, Any] = dict(getattr(settings, "BUS_SIMULATION", {}) or {})
    known = {field.name for field in fields(SimulationConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ImproperlyConfigured(
            f"Unknown BUS_SIMULATION keys: {', '.join(sorted(unknown))}"
        )
    return SimulationConfig().with_overrides(**overrides)


def get_route_provider_config() -> Dict[str, Any]:
    return dict(getattr(settings, "ROUTE_PROVIDER", {}) or {})
