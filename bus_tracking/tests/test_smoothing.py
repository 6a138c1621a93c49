from django.test import SimpleTestCase

from bus_tracking.geometry import LatLng
from bus_tracking.simulation import EntityState
from bus_tracking.smoothing import SmoothingFilter, average


class SmoothingFilterTests(SimpleTestCase):
    def test_constant_input_converges_exactly(self):
        smoother = SmoothingFilter(max_samples=5, horizon=1.0)
        state = EntityState()
        point = LatLng(-1.1016, 37.0144)

        result = None
        for step in range(8):
            result = smoother.push(state, point, step * 0.1)

        self.assertEqual(result, point)
        self.assertEqual(len(state.window), 5)

    def test_stale_sample_is_excluded_below_max_count(self):
        smoother = SmoothingFilter(max_samples=5, horizon=1.0)
        state = EntityState()

        smoother.push(state, LatLng(0.0, 0.0), 0.0)
        result = smoother.push(state, LatLng(2.0, 4.0), 1.2)

        self.assertEqual(result, LatLng(2.0, 4.0))
        self.assertEqual(len(state.window), 1)

    def test_sample_exactly_at_horizon_is_evicted(self):
        smoother = SmoothingFilter(max_samples=5, horizon=1.0)
        state = EntityState()

        smoother.push(state, LatLng(0.0, 0.0), 0.0)

        self.assertEqual(smoother.push(state, LatLng(0.0, 6.0), 1.0), LatLng(0.0, 6.0))

    def test_window_keeps_most_recent_samples(self):
        smoother = SmoothingFilter(max_samples=3, horizon=10.0)
        state = EntityState()

        result = None
        for step in range(5):
            result = smoother.push(state, LatLng(0.0, float(step)), step * 0.1)

        self.assertEqual([sample.lng for sample, _ in state.window], [2.0, 3.0, 4.0])
        self.assertEqual(result, LatLng(0.0, 3.0))

    def test_average_is_unweighted(self):
        points = [LatLng(0.0, 0.0), LatLng(1.0, 3.0), LatLng(2.0, 6.0), LatLng(5.0, 3.0)]

        result = average(points)

        self.assertAlmostEqual(result.lat, 2.0)
        self.assertAlmostEqual(result.lng, 3.0)

    def test_average_of_nothing(self):
        self.assertIsNone(average([]))
