"""Tests for vehicle position estimation."""

import sys
import unittest
from pathlib import Path

# Add src to path so we can import transitmap
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transitmap.models import ActiveTrip, ShapePoint, StopTimeEntry, TrainPosition
from transitmap.position_engine import positions_at, trip_distance_at
from transitmap.shape_geometry import ShapeGeometry


def make_trip(trip_id, timings, shape_id="S", route_id="R"):
    stop_times = tuple(
        StopTimeEntry(trip_id=trip_id, stop_id=f"STOP{i}", time=time, sequence=i + 1, distance=dist)
        for i, (time, dist) in enumerate(timings)
    )
    return ActiveTrip(trip_id=trip_id, shape_id=shape_id, route_id=route_id, headsign="Somewhere",
                      stop_times=stop_times)


def make_geometry(shape_id, coords_and_distances):
    points = [
        ShapePoint(shape_id=shape_id, latitude=lat, longitude=lon, sequence=i + 1, distance=dist)
        for i, (lon, lat, dist) in enumerate(coords_and_distances)
    ]
    return ShapeGeometry.from_points(shape_id, points)


class TestTripDistance(unittest.TestCase):
    """Test time to along-shape distance interpolation."""

    def setUp(self):
        self.trip = make_trip("T", [(0, 0.0), (300, 300.0)])

    def test_halfway_in_time_is_halfway_in_distance(self):
        self.assertEqual(trip_distance_at(self.trip, 150), 150.0)

    def test_outside_service_window(self):
        self.assertIsNone(trip_distance_at(self.trip, -1))
        self.assertIsNone(trip_distance_at(self.trip, 301))

    def test_last_stop_has_no_following_segment(self):
        self.assertIsNone(trip_distance_at(self.trip, 300))

    def test_at_stop_time_progress_is_zero(self):
        trip = make_trip("T", [(0, 0.0), (100, 400.0), (200, 1000.0)])
        self.assertEqual(trip_distance_at(trip, 100), 400.0)

    def test_dwell_at_repeated_time(self):
        """Two stops at the same time: the vehicle moves on from the second."""
        trip = make_trip("T", [(0, 0.0), (100, 500.0), (100, 600.0), (200, 1000.0)])
        self.assertEqual(trip_distance_at(trip, 100), 600.0)

    def test_distance_never_decreases_over_time(self):
        trip = make_trip("T", [(0, 0.0), (120, 250.0), (300, 900.0), (420, 1000.0)])
        previous = -1.0
        for t in range(0, 420):
            distance = trip_distance_at(trip, t)
            self.assertIsNotNone(distance)
            self.assertGreaterEqual(distance, previous)
            previous = distance


class TestPositionsAt(unittest.TestCase):
    """Test vehicle positions for a render tick."""

    def setUp(self):
        self.geometries = {
            "S": make_geometry("S", [(0.0, 0.0, 0.0), (1.0, 0.0, 100.0), (5.0, 0.0, 300.0)]),
        }

    def test_position_interpolated_along_shape(self):
        """At 150s the trip is at distance 150, a quarter of the way along [100, 300]."""
        trip = make_trip("T", [(0, 0.0), (300, 300.0)])

        positions = positions_at([trip], self.geometries, 150)

        self.assertEqual(len(positions), 1)
        self.assertEqual(positions[0].trip_id, "T")
        self.assertEqual(positions[0].route_id, "R")
        self.assertAlmostEqual(positions[0].x, 2.0)
        self.assertAlmostEqual(positions[0].y, 0.0)

    def test_position_at_stop_matches_stop_on_shape(self):
        trip = make_trip("T", [(0, 0.0), (100, 100.0), (300, 300.0)])

        positions = positions_at([trip], self.geometries, 100)

        self.assertEqual(positions, [TrainPosition(trip_id="T", route_id="R", x=1.0, y=0.0)])

    def test_approaching_next_stop_does_not_reach_it(self):
        trip = make_trip("T", [(0, 0.0), (300, 300.0)])

        position = positions_at([trip], self.geometries, 299.9)[0]

        self.assertLess(position.x, 5.0)
        self.assertAlmostEqual(position.x, 5.0, delta=0.01)

    def test_idempotent(self):
        trips = [make_trip("T1", [(0, 0.0), (300, 300.0)]), make_trip("T2", [(60, 0.0), (200, 300.0)])]

        self.assertEqual(positions_at(trips, self.geometries, 123), positions_at(trips, self.geometries, 123))

    def test_trips_not_running_are_excluded(self):
        trips = [
            make_trip("EARLY", [(0, 0.0), (50, 300.0)]),
            make_trip("LATE", [(500, 0.0), (800, 300.0)]),
            make_trip("NOW", [(0, 0.0), (300, 300.0)]),
        ]

        positions = positions_at(trips, self.geometries, 100)

        self.assertEqual([p.trip_id for p in positions], ["NOW"])

    def test_unknown_shape_excluded(self):
        trip = make_trip("T", [(0, 0.0), (300, 300.0)], shape_id="MISSING")
        self.assertEqual(positions_at([trip], self.geometries, 150), [])

    def test_distance_beyond_shape_excluded(self):
        trip = make_trip("T", [(0, 0.0), (300, 900.0)])
        self.assertEqual(positions_at([trip], self.geometries, 150), [])

    def test_single_stop_trip_excluded(self):
        trip = make_trip("T", [(100, 0.0)])
        self.assertEqual(positions_at([trip], self.geometries, 100), [])


if __name__ == "__main__":
    unittest.main()
