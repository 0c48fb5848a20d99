"""Main TransitMap tracker class."""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from .departure_query import DEFAULT_DEPARTURE_LIMIT, upcoming_departures
from .gtfs_loader import GTFSLoader
from .models import ActiveTrip, Departure, Stop, TrainPosition
from .position_engine import positions_at
from .schedule_index import ScheduleIndex, build_index
from .service_calendar import ServiceCalendar
from .shape_geometry import BoundsProjection, Projection, ShapeGeometry, build_geometries, geographic_projection
from .trip_scheduler import active_trips

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 3
MAX_SEARCH_RESULTS = 50


class TransitTracker:
    """
    Serves live-map queries for a loaded GTFS schedule.

    This class provides methods to:
    - Load a feed and build its schedule index
    - Keep the set of trips running today up to date
    - Get estimated vehicle positions for a render tick
    - Get upcoming departures for a stop
    - Find stops by ID or name
    """

    def __init__(self, index: Optional[ScheduleIndex] = None, projection: Optional[Projection] = None):
        """
        Initialize the tracker.

        Args:
            index: Already built schedule index. If None, call load_feed() first.
            projection: Maps (longitude, latitude) to map coordinates. If None, a
                        BoundsProjection fitted to the feed's shapes is used.
        """
        self.gtfs_loader = GTFSLoader()
        self._projection = projection
        self.index: Optional[ScheduleIndex] = None
        self.calendar: Optional[ServiceCalendar] = None
        self.geometries: Dict[str, ShapeGeometry] = {}
        self.active_trips: List[ActiveTrip] = []
        self.service_date: Optional[date] = None

        if index is not None:
            self.set_index(index)

    def load_feed(self, source: Union[str, Path]) -> None:
        """
        Load a GTFS feed from a URL, a zip file or a directory.

        Raises:
            ScheduleLoadError: If the feed is malformed.
        """
        source_str = str(source)
        if source_str.startswith(("http://", "https://")):
            tables = self.gtfs_loader.load_from_url(source_str)
        elif Path(source_str).is_dir():
            tables = self.gtfs_loader.load_from_directory(source_str)
        else:
            tables = self.gtfs_loader.load_from_zip(source_str)

        self.set_index(build_index(tables))

    def set_index(self, index: ScheduleIndex) -> None:
        """Replace the schedule and drop everything derived from the previous one."""
        self.index = index
        self.calendar = ServiceCalendar.from_index(index)

        projection = self._projection
        if projection is None:
            all_points = [point for points in index.shapes.values() for point in points]
            projection = BoundsProjection.fit(all_points) if all_points else geographic_projection
        self.geometries = build_geometries(index.shapes, projection)

        self.active_trips = []
        self.service_date = None

    def refresh(self, today: Optional[date] = None) -> bool:
        """
        Rebuild the active trips if the service date changed.

        Args:
            today: Local calendar date. Defaults to the current date.

        Returns:
            True if the active trips were rebuilt.
        """
        self._require_index()
        today = today or date.today()
        if today == self.service_date:
            return False

        services = self.calendar.active_services(today)
        self.active_trips = active_trips(self.index, services)
        self.service_date = today
        logger.info(f"Found {len(self.active_trips)} active trips for {today.isoformat()}")
        return True

    def get_vehicle_positions(self, now_seconds: float) -> List[TrainPosition]:
        """
        Get estimated positions of all vehicles in service.

        Args:
            now_seconds: Seconds since local midnight.

        Returns:
            List of TrainPosition objects.
        """
        self._require_index()
        return positions_at(self.active_trips, self.geometries, now_seconds)

    def get_upcoming_departures(
        self, stop_id: str, now_seconds: float, limit: int = DEFAULT_DEPARTURE_LIMIT
    ) -> List[Departure]:
        """
        Get the next departures from a stop.

        Args:
            stop_id: Stop ID.
            now_seconds: Seconds since local midnight.
            limit: Maximum number of departures.

        Returns:
            List of Departure objects sorted by time.
        """
        self._require_index()
        return upcoming_departures(self.active_trips, self.index.routes, stop_id, now_seconds, limit)

    def get_stop(self, stop_input: str) -> Stop:
        """
        Get a stop by ID or name.

        Args:
            stop_input: Either a stop ID or (part of) a stop name.

        Returns:
            Stop object.

        Raises:
            ValueError: If no stop matches.
        """
        self._require_index()
        stop = self.index.stop(stop_input)
        if stop is not None:
            return stop

        stops = self.find_stops_by_name(stop_input)
        if not stops:
            raise ValueError(f"No stop found matching '{stop_input}'")
        return stops[0]

    def find_stops_by_name(self, query: str, limit: int = MAX_SEARCH_RESULTS) -> List[Stop]:
        """
        Find stops whose name contains the query (case-insensitive).

        Queries shorter than MIN_SEARCH_LENGTH characters return nothing.
        """
        self._require_index()
        query = query.strip().lower()
        if len(query) < MIN_SEARCH_LENGTH:
            return []

        matches = [stop for stop in self.index.stops.values() if query in stop.name.lower()]
        return matches[:limit]

    @staticmethod
    def seconds_since_midnight(now: datetime) -> int:
        """Convert a local datetime to seconds since midnight."""
        return now.hour * 3600 + now.minute * 60 + now.second

    def _require_index(self) -> None:
        if self.index is None:
            raise RuntimeError("No schedule loaded; call load_feed() first")
