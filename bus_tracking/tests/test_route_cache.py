import asyncio

from django.test import SimpleTestCase

from bus_tracking.exceptions import RouteUnresolved
from bus_tracking.geometry import LatLng, Route
from bus_tracking.route_cache import FAILED, PENDING, RouteCache

from .fakes import FakeClock, StubProvider


class RouteCacheTests(SimpleTestCase):
    async def test_concurrent_misses_share_one_fetch(self):
        provider = StubProvider(delay=0.05)
        cache = RouteCache(provider, retry_seconds=0)

        results = [cache.resolve(bus_id, "Juja-Nairobi") for bus_id in (1, 2, 3)]
        self.assertEqual(results, [PENDING, PENDING, PENDING])

        route = await cache.wait("Juja-Nairobi")

        self.assertIsInstance(route, Route)
        self.assertIs(cache.resolve(4, "Juja-Nairobi"), route)
        self.assertEqual(provider.calls, 1)
        await cache.close()

    async def test_failure_is_not_cached(self):
        provider = StubProvider(failures=1)
        cache = RouteCache(provider, retry_seconds=0)

        self.assertEqual(cache.resolve(1, "Nairobi-Juja"), PENDING)
        with self.assertLogs("bus_tracking.route_cache", "WARNING"):
            self.assertIsNone(await cache.wait("Nairobi-Juja"))

        self.assertEqual(cache.resolve(1, "Nairobi-Juja"), FAILED)
        route = await cache.wait("Nairobi-Juja")

        self.assertIsInstance(route, Route)
        self.assertEqual(provider.calls, 2)
        self.assertIs(cache.get("Nairobi-Juja"), route)

    async def test_retry_waits_for_backoff(self):
        clock = FakeClock(100.0)
        provider = StubProvider(failures=1)
        cache = RouteCache(provider, retry_seconds=10, clock=clock)

        cache.resolve(1, "Juja-Nairobi")
        with self.assertLogs("bus_tracking.route_cache", "WARNING"):
            await cache.wait("Juja-Nairobi")

        clock.advance(5)
        self.assertEqual(cache.resolve(1, "Juja-Nairobi"), FAILED)
        await asyncio.sleep(0)
        self.assertEqual(provider.calls, 1)

        clock.advance(6)
        self.assertEqual(cache.resolve(1, "Juja-Nairobi"), FAILED)
        self.assertIsInstance(await cache.wait("Juja-Nairobi"), Route)
        self.assertEqual(provider.calls, 2)

    async def test_empty_geometry_counts_as_failure(self):
        cache = RouteCache(StubProvider(points=[]), retry_seconds=0)

        cache.resolve(1, "Juja-Nairobi")
        with self.assertLogs("bus_tracking.route_cache", "WARNING"):
            self.assertIsNone(await cache.wait("Juja-Nairobi"))

    async def test_prefetch_all_directions(self):
        provider = StubProvider()
        cache = RouteCache(provider)

        cache.prefetch()
        routes = [await cache.wait(key) for key in ("Juja-Nairobi", "Nairobi-Juja")]

        self.assertTrue(all(isinstance(route, Route) for route in routes))
        self.assertEqual(provider.calls, 2)

    def test_unknown_direction(self):
        cache = RouteCache(StubProvider())

        with self.assertRaises(RouteUnresolved):
            cache.resolve(1, "Mombasa-Kisumu")

    async def test_custom_directions_supply_route_labels(self):
        directions = {
            "Thika-Ruiru": {
                "start": LatLng(-1.0333, 37.0693),
                "end": LatLng(-1.1466, 36.9609),
                "origin_label": "Thika Town",
                "destination_label": "Ruiru Bypass",
            },
        }
        cache = RouteCache(StubProvider(), directions=directions, retry_seconds=0)

        self.assertEqual(cache.resolve(1, "Thika-Ruiru"), PENDING)
        route = await cache.wait("Thika-Ruiru")

        self.assertEqual(route.key, "Thika-Ruiru")
        self.assertEqual(route.origin_label, "Thika Town")
        self.assertEqual(route.destination_label, "Ruiru Bypass")
