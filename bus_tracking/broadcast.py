"""
The simulation clock and the fan-out of bus positions to live subscribers.

A single tick task recomputes every active bus at ``tick_interval`` and
publishes the buses it moved as one batch. Each subscriber additionally
receives a full snapshot when it attaches and again every
``resnapshot_interval`` seconds from its own task, so a client that missed
batches still converges.
"""
from __future__ import annotations

import asyncio
import logging
import math
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

from .conf import SimulationConfig, get_simulation_config
from .exceptions import PersistenceWriteFailed, RouteUnresolved, SubscriberDeliveryFailed
from .geometry import LatLng, Route, build_route_provider
from .route_cache import RouteCache
from .simulation import EntityState, PositionSimulator
from .smoothing import SmoothingFilter
from .store import ActiveBus, BusStore, snapshot_entry

LOGGER = logging.getLogger(__name__)

_CLOSED = object()


def build_message(kind: str, buses: List[Dict]) -> Dict:
    return {
        "event": "busUpdate",
        "kind": kind,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "buses": buses,
    }


class Subscription:
    """
    A subscriber's bounded mailbox. When full, the oldest message is dropped
    to make room, so delivery never waits on the reader.
    """

    def __init__(self, maxsize: int):
        self.id = uuid.uuid4().hex[:12]
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max(maxsize, 1))
        self.dropped = 0
        self.closed = False
        self.resnapshot_task: Optional[asyncio.Task] = None

    def deliver(self, message: Dict) -> None:
        if self.closed:
            raise SubscriberDeliveryFailed(f"Subscriber {self.id} is closed")
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
            LOGGER.debug("Subscriber %s is lagging; dropped oldest message (%d total)", self.id, self.dropped)
        self.queue.put_nowait(message)

    async def get(self) -> Optional[Dict]:
        """Next message, or ``None`` once the subscription is closed."""
        if self.closed and self.queue.empty():
            return None
        message = await self.queue.get()
        if message is _CLOSED:
            return None
        return message

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.resnapshot_task is not None:
            self.resnapshot_task.cancel()
        while not self.queue.empty():
            self.queue.get_nowait()
        # Wake a reader blocked in get().
        self.queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Dict:
        message = await self.get()
        if message is None:
            raise StopAsyncIteration
        return message


class BroadcastHub:
    def __init__(
        self,
        store: BusStore,
        route_cache: RouteCache,
        config: Optional[SimulationConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or SimulationConfig()
        self.store = store
        self.route_cache = route_cache
        self.simulator = PositionSimulator(self.config.speed_factor)
        self.smoother = SmoothingFilter(self.config.smoothing_window, self.config.smoothing_horizon)
        self.states: Dict[int, EntityState] = {}
        self.subscribers: Dict[str, Subscription] = {}
        self.tick_count = 0
        self._clock = clock
        self._tick_lock = asyncio.Lock()
        self._tick_task: Optional[asyncio.Task] = None
        # One writer per bus; ticks that land while it is busy only replace the point it writes next.
        self._writers: Dict[int, asyncio.Task] = {}
        self._unwritten: Dict[int, LatLng] = {}
        self._unresolved_logged: Set[Tuple[int, str]] = set()

    @classmethod
    def from_settings(cls) -> "BroadcastHub":
        config = get_simulation_config()
        cache = RouteCache(build_route_provider(), retry_seconds=config.route_retry_seconds)
        return cls(BusStore(), cache, config)

    @property
    def running(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._tick_task = asyncio.get_running_loop().create_task(self._run())
        LOGGER.info("Bus simulation started (tick every %.3fs)", self.config.tick_interval)

    async def stop(self) -> None:
        task, self._tick_task = self._tick_task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        for subscription in list(self.subscribers.values()):
            self.detach(subscription)
        await self.drain()
        await self.route_cache.close()
        LOGGER.info("Bus simulation stopped after %d ticks", self.tick_count)

    async def drain(self) -> None:
        """Wait for outstanding position writes."""
        if self._writers:
            await asyncio.gather(*list(self._writers.values()), return_exceptions=True)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.tick_interval
        next_tick = loop.time()
        while True:
            try:
                await self.tick()
            except Exception:
                LOGGER.exception("Tick %d failed", self.tick_count)
            next_tick += interval
            now = loop.time()
            if now > next_tick:
                # Overran: skip the missed slots instead of ticking back-to-back.
                overrun = now - next_tick
                missed = math.ceil(overrun / interval)
                next_tick += missed * interval
                LOGGER.debug("Tick overran by %.3fs; skipping %d slot(s)", overrun, missed)
            await asyncio.sleep(next_tick - now)

    async def tick(self) -> List[Dict]:
        """Advance every active bus once and publish the moved ones. Ticks never overlap."""
        async with self._tick_lock:
            return await self._tick()

    async def _tick(self) -> List[Dict]:
        try:
            buses = await self.store.list_active()
        except Exception:
            LOGGER.warning("Could not list active buses; skipping tick", exc_info=True)
            return []

        now = self._clock()
        active_ids = {bus.id for bus in buses}
        for stale_id in set(self.states) - active_ids:
            del self.states[stale_id]
        self._unresolved_logged = {
            logged for logged in self._unresolved_logged if logged[0] in active_ids
        }

        results = await asyncio.gather(
            *(self._advance_bus(bus, now) for bus in buses), return_exceptions=True
        )

        batch: List[Dict] = []
        for bus, result in zip(buses, results):
            if isinstance(result, RouteUnresolved):
                self._log_unresolved(bus, result)
                continue
            if isinstance(result, BaseException):
                LOGGER.error("Bus %s skipped this tick", bus.bus_number, exc_info=result)
                continue
            if result is None:
                continue
            self._queue_write(bus.id, result)
            batch.append(snapshot_entry(bus.id, bus.bus_number, result.lat, result.lng))

        self.tick_count += 1
        if batch:
            self.publish(build_message("tick", batch))
        return batch

    async def _advance_bus(self, bus: ActiveBus, now: float) -> Optional[LatLng]:
        state = self.states.setdefault(bus.id, EntityState())
        route = self.route_cache.resolve(bus.id, bus.direction)
        if not isinstance(route, Route):
            return None
        point = self.simulator.advance(state, route, now)
        return self.smoother.push(state, point, now)

    def _log_unresolved(self, bus: ActiveBus, error: RouteUnresolved) -> None:
        key = (bus.id, bus.direction)
        if key in self._unresolved_logged:
            LOGGER.debug("Bus %s skipped: %s", bus.bus_number, error)
            return
        self._unresolved_logged.add(key)
        LOGGER.warning("Bus %s skipped: %s", bus.bus_number, error)

    def _queue_write(self, bus_id: int, point: LatLng) -> None:
        self._unwritten[bus_id] = point
        if bus_id not in self._writers:
            self._writers[bus_id] = asyncio.ensure_future(self._flush_position(bus_id))

    async def _flush_position(self, bus_id: int) -> None:
        try:
            while bus_id in self._unwritten:
                point = self._unwritten.pop(bus_id)
                await self._write_position(bus_id, point)
        finally:
            self._writers.pop(bus_id, None)

    async def _write_position(self, bus_id: int, point: LatLng) -> None:
        try:
            await self.store.update_position(bus_id, point.lat, point.lng)
        except PersistenceWriteFailed as error:
            LOGGER.warning("%s", error)
        except Exception:
            LOGGER.exception("Unexpected error storing position of bus %s", bus_id)

    def publish(self, message: Dict) -> None:
        for subscription in list(self.subscribers.values()):
            try:
                subscription.deliver(message)
            except SubscriberDeliveryFailed as error:
                LOGGER.info("Dropping subscriber: %s", error)
                self.detach(subscription)

    async def attach(self, queue_size: Optional[int] = None) -> Subscription:
        subscription = Subscription(queue_size or self.config.subscriber_queue_size)
        await self._send_snapshot(subscription)
        self.subscribers[subscription.id] = subscription
        subscription.resnapshot_task = asyncio.get_running_loop().create_task(
            self._resnapshot_loop(subscription)
        )
        LOGGER.info("Subscriber %s attached (%d live)", subscription.id, len(self.subscribers))
        return subscription

    def detach(self, subscription: Subscription) -> None:
        removed = self.subscribers.pop(subscription.id, None)
        subscription.close()
        if removed is not None:
            LOGGER.info(
                "Subscriber %s detached (%d live, %d dropped)",
                subscription.id,
                len(self.subscribers),
                subscription.dropped,
            )

    async def _resnapshot_loop(self, subscription: Subscription) -> None:
        while not subscription.closed:
            await asyncio.sleep(self.config.resnapshot_interval)
            await self._send_snapshot(subscription)

    async def _send_snapshot(self, subscription: Subscription) -> None:
        try:
            entries = await self.store.snapshot()
        except Exception:
            LOGGER.warning("Snapshot for subscriber %s failed", subscription.id, exc_info=True)
            return
        try:
            subscription.deliver(build_message("snapshot", entries))
        except SubscriberDeliveryFailed as error:
            LOGGER.info("Dropping subscriber: %s", error)
            self.detach(subscription)
