from django.test import SimpleTestCase

from bus_tracking.geometry import LatLng, Route
from bus_tracking.simulation import EntityState, PositionSimulator, interpolate


def make_route(*points, key="Juja-Nairobi"):
    return Route(key=key, points=tuple(LatLng(lat, lng) for lat, lng in points))


class PositionSimulatorTests(SimpleTestCase):
    def test_two_ticks_along_two_point_route(self):
        route = make_route((0, 0), (0, 10))
        state = EntityState(route=route, progress=0.0, last_update=0.0)
        simulator = PositionSimulator(speed_factor=0.5)

        self.assertEqual(simulator.advance(state, route, 1.0), LatLng(0.0, 5.0))
        self.assertEqual(state.progress, 0.5)

        # progress 1.0 sits on the last vertex; the next one wraps to the start
        self.assertEqual(simulator.advance(state, route, 2.0), LatLng(0.0, 10.0))
        self.assertEqual(state.progress, 1.0)

    def test_first_advance_does_not_jump(self):
        route = make_route((-1.1016, 37.0144), (-1.2, 36.9), (-1.286389, 36.817223))
        state = EntityState()
        simulator = PositionSimulator(speed_factor=100.0)

        point = simulator.advance(state, route, 1_700_000_000.0)

        self.assertEqual(point, route[0])
        self.assertEqual(state.progress, 0.0)
        self.assertEqual(state.last_update, 1_700_000_000.0)

    def test_progress_wraps_after_whole_laps(self):
        route = make_route((0, 0), (1, 1), (2, 0), (1, -1))
        state = EntityState(route=route, progress=0.25, last_update=0.0)
        simulator = PositionSimulator(speed_factor=1.0)

        now = 0.0
        for delta in (0.7, 1.3, 2.5, 3.5):  # two laps of a 4 point route
            now += delta
            simulator.advance(state, route, now)
            self.assertGreaterEqual(state.progress, 0.0)
            self.assertLess(state.progress, len(route))

        self.assertAlmostEqual(state.progress, 0.25, places=9)

    def test_single_point_route_stays_put(self):
        route = make_route((-1.1016, 37.0144))
        state = EntityState(route=route, last_update=0.0)
        simulator = PositionSimulator(speed_factor=3.0)

        for now in (1.0, 2.5, 10.0):
            self.assertEqual(simulator.advance(state, route, now), LatLng(-1.1016, 37.0144))
            self.assertEqual(state.progress, 0.0)

    def test_route_swap_restarts_from_first_point(self):
        old_route = make_route((0, 0), (0, 10), (0, 20))
        new_route = make_route((5, 5), (6, 6), key="Nairobi-Juja")
        state = EntityState(route=old_route, progress=1.5, last_update=0.0)
        simulator = PositionSimulator(speed_factor=1.0)

        point = simulator.advance(state, new_route, 30.0)

        self.assertEqual(point, LatLng(5.0, 5.0))
        self.assertIs(state.route, new_route)
        self.assertEqual(state.progress, 0.0)

    def test_clock_going_backwards_does_not_reverse(self):
        route = make_route((0, 0), (0, 10))
        state = EntityState(route=route, progress=0.5, last_update=10.0)
        simulator = PositionSimulator(speed_factor=1.0)

        simulator.advance(state, route, 9.0)

        self.assertEqual(state.progress, 0.5)

    def test_same_inputs_give_same_point(self):
        route = make_route((0.1, 0.2), (0.3, 0.7), (0.9, 0.4))
        simulator = PositionSimulator(speed_factor=0.37)
        first = EntityState(route=route, progress=1.3, last_update=4.0)
        second = EntityState(route=route, progress=1.3, last_update=4.0)

        self.assertEqual(
            simulator.advance(first, route, 6.1),
            simulator.advance(second, route, 6.1),
        )

    def test_interpolate_closing_segment(self):
        route = make_route((0, 0), (0, 10), (10, 10))

        self.assertEqual(interpolate(route, 2.5), LatLng(5.0, 5.0))
