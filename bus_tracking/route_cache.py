"""
Per-direction cache of resolved route geometry.

``resolve`` never blocks the tick: on a miss it starts one background fetch
per direction key and answers ``PENDING`` until that fetch lands. Successful
routes are kept for the life of the process; failures are not cached, so the
next tick after the retry delay tries again.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

from asgiref.sync import sync_to_async

from .geometry import DIRECTIONS, Route, RouteProvider, build_route
from .exceptions import RouteFetchFailed, RouteUnresolved

LOGGER = logging.getLogger(__name__)


class RouteStatus(enum.Enum):
    PENDING = "pending"
    FAILED = "failed"


PENDING = RouteStatus.PENDING
FAILED = RouteStatus.FAILED

Resolution = Union[Route, RouteStatus]


class RouteCache:
    def __init__(
        self,
        provider: RouteProvider,
        directions: Mapping[str, Mapping[str, object]] = DIRECTIONS,
        retry_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.directions = directions
        self.retry_seconds = retry_seconds
        self._clock = clock
        self._routes: Dict[str, Route] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._failed_at: Dict[str, float] = {}

    def get(self, direction_key: str) -> Optional[Route]:
        return self._routes.get(direction_key)

    def resolve(self, entity_id: object, direction_key: str) -> Resolution:
        route = self._routes.get(direction_key)
        if route is not None:
            return route

        if direction_key not in self.directions:
            raise RouteUnresolved(f"Unknown direction {direction_key!r} for bus {entity_id}")

        if direction_key in self._inflight:
            return PENDING

        failed_at = self._failed_at.get(direction_key)
        if failed_at is not None and self._clock() - failed_at < self.retry_seconds:
            return FAILED

        LOGGER.debug("Fetching route %s (requested by bus %s)", direction_key, entity_id)
        self._start_fetch(direction_key)
        return PENDING if failed_at is None else FAILED

    def prefetch(self, direction_keys: Optional[Iterable[str]] = None) -> None:
        for key in direction_keys if direction_keys is not None else self.directions:
            if key not in self._routes and key not in self._inflight:
                self._start_fetch(key)

    async def wait(self, direction_key: str) -> Optional[Route]:
        task = self._inflight.get(direction_key)
        if task is not None:
            await asyncio.shield(task)
        return self._routes.get(direction_key)

    async def close(self) -> None:
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    def _start_fetch(self, direction_key: str) -> None:
        task = asyncio.get_running_loop().create_task(self._fetch(direction_key))
        self._inflight[direction_key] = task

    async def _fetch(self, direction_key: str) -> None:
        definition = self.directions[direction_key]
        try:
            points = await sync_to_async(self.provider.fetch, thread_sensitive=False)(
                definition["start"], definition["end"]
            )
            route = build_route(direction_key, points, definition)
        except (RouteFetchFailed, ValueError) as error:
            self._failed_at[direction_key] = self._clock()
            LOGGER.warning("Route %s unavailable: %s", direction_key, error)
            return
        except Exception:
            self._failed_at[direction_key] = self._clock()
            LOGGER.exception("Route provider %s crashed for %s", self.provider.name, direction_key)
            return
        finally:
            self._inflight.pop(direction_key, None)

        self._routes[direction_key] = route
        self._failed_at.pop(direction_key, None)
        LOGGER.info("Fetched route %s: %d points", direction_key, len(route))
