"""Tests for TransitTracker."""

import sys
import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path
from unittest.mock import patch

# Add src to path so we can import transitmap
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transitmap.exceptions import ScheduleLoadError
from transitmap.gtfs_loader import GTFS_TABLES, GTFSLoader
from transitmap.models import DEFAULT_ROUTE_SHORT_NAME
from transitmap.schedule_index import build_index
from transitmap.shape_geometry import geographic_projection
from transitmap.transit_tracker import TransitTracker

from gtfs_fixtures import sample_tables, to_csv

TUESDAY = date(2024, 1, 2)
EXCEPTION_WEDNESDAY = date(2024, 1, 3)


class TestTransitTracker(unittest.TestCase):
    """Test the main TransitTracker class."""

    def setUp(self):
        """Set up test fixtures."""
        self.tracker = TransitTracker(build_index(sample_tables()), projection=geographic_projection)
        self.tracker.refresh(TUESDAY)

    def test_refresh_builds_active_trips(self):
        self.assertEqual(self.tracker.service_date, TUESDAY)
        self.assertEqual({trip.trip_id for trip in self.tracker.active_trips}, {"T1", "T2", "T4"})

    def test_refresh_only_when_date_changes(self):
        self.assertFalse(self.tracker.refresh(TUESDAY))

        self.assertTrue(self.tracker.refresh(EXCEPTION_WEDNESDAY))
        self.assertEqual({trip.trip_id for trip in self.tracker.active_trips}, {"T3"})

    def test_vehicle_positions(self):
        # 08:02:30 - T1 is halfway between A and B, T4 has just left A
        positions = {p.trip_id: p for p in self.tracker.get_vehicle_positions(8 * 3600 + 150)}

        self.assertEqual(set(positions), {"T1", "T4"})
        self.assertEqual(positions["T1"].route_id, "R1")
        self.assertAlmostEqual(positions["T1"].x, 0.005)
        self.assertAlmostEqual(positions["T1"].y, 0.0)
        self.assertAlmostEqual(positions["T4"].x, 0.001)

    def test_vehicle_positions_empty_outside_service(self):
        self.assertEqual(self.tracker.get_vehicle_positions(3 * 3600), [])

    def test_upcoming_departures(self):
        departures = self.tracker.get_upcoming_departures("B", 8 * 3600)

        self.assertEqual([d.trip_id for d in departures], ["T1", "T4", "T2"])
        self.assertEqual([d.time for d in departures], [29100, 29220, 32700])
        self.assertEqual(departures[0].route_short_name, "1")
        self.assertEqual(departures[0].headsign, "Harbor")
        # T4 belongs to a route that is not in routes.txt
        self.assertEqual(departures[1].route_short_name, DEFAULT_ROUTE_SHORT_NAME)

    def test_upcoming_departures_limit(self):
        departures = self.tracker.get_upcoming_departures("B", 8 * 3600, limit=1)
        self.assertEqual(len(departures), 1)

    def test_get_stop_by_id(self):
        stop = self.tracker.get_stop("B")
        self.assertEqual(stop.name, "Market Street")

    def test_get_stop_by_name(self):
        stop = self.tracker.get_stop("market")
        self.assertEqual(stop.stop_id, "B")

    def test_get_stop_not_found(self):
        with self.assertRaises(ValueError):
            self.tracker.get_stop("NONEXISTENT")

    def test_find_stops_by_name(self):
        self.assertEqual([s.stop_id for s in self.tracker.find_stops_by_name("ar")], [])
        self.assertEqual([s.stop_id for s in self.tracker.find_stops_by_name("Str")], ["B"])
        self.assertEqual(len(self.tracker.find_stops_by_name("station", limit=0)), 0)

    def test_seconds_since_midnight(self):
        self.assertEqual(TransitTracker.seconds_since_midnight(datetime(2024, 1, 2, 8, 2, 30)), 28950)


class TestTrackerLoading(unittest.TestCase):
    """Test feed loading through the tracker."""

    def test_queries_require_a_schedule(self):
        tracker = TransitTracker()
        with self.assertRaises(RuntimeError):
            tracker.refresh(TUESDAY)
        with self.assertRaises(RuntimeError):
            tracker.get_vehicle_positions(8 * 3600)
        with self.assertRaises(RuntimeError):
            tracker.get_upcoming_departures("A", 8 * 3600)

    def test_default_projection_fits_shapes(self):
        tracker = TransitTracker(build_index(sample_tables()))
        tracker.refresh(TUESDAY)

        positions = {p.trip_id: p for p in tracker.get_vehicle_positions(8 * 3600 + 150)}

        # Shape spans 0.02 degrees of longitude on a 1000 wide canvas at 90%
        self.assertAlmostEqual(positions["T1"].x, 225.0)
        self.assertAlmostEqual(positions["T1"].y, 0.0)

    def test_load_feed_from_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            for name in GTFS_TABLES:
                (Path(tmp) / f"{name}.txt").write_text(to_csv(name), encoding="utf-8")

            tracker = TransitTracker(projection=geographic_projection)
            tracker.load_feed(tmp)

        tracker.refresh(TUESDAY)
        self.assertEqual(len(tracker.get_vehicle_positions(8 * 3600 + 150)), 2)

    @patch.object(GTFSLoader, "load_from_url")
    def test_load_feed_from_url(self, mock_load):
        mock_load.return_value = sample_tables()

        tracker = TransitTracker()
        tracker.load_feed("https://example.com/gtfs.zip")

        mock_load.assert_called_once_with("https://example.com/gtfs.zip")
        self.assertIsInstance(tracker.geometries["SH1"].points[0].x, float)
        self.assertIsNotNone(tracker.index.trip("T1"))

    @patch.object(GTFSLoader, "load_from_url")
    def test_malformed_feed_rejected(self, mock_load):
        tables = sample_tables()
        tables["stop_times"][0]["arrival_time"] = "soon"
        mock_load.return_value = tables

        tracker = TransitTracker()
        with self.assertRaises(ScheduleLoadError):
            tracker.load_feed("https://example.com/gtfs.zip")
        self.assertIsNone(tracker.index)

    def test_new_schedule_resets_service_day(self):
        tracker = TransitTracker(build_index(sample_tables()))
        tracker.refresh(TUESDAY)

        tracker.set_index(build_index(sample_tables()))

        self.assertIsNone(tracker.service_date)
        self.assertEqual(tracker.active_trips, [])
        self.assertTrue(tracker.refresh(TUESDAY))


if __name__ == "__main__":
    unittest.main()
