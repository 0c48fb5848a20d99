"""Indexes raw GTFS tables into id-keyed schedule records."""

import logging
import math
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .exceptions import ScheduleLoadError
from .models import (
    WEEKDAYS,
    CalendarEntry,
    CalendarException,
    ExceptionType,
    Route,
    ShapePoint,
    Stop,
    StopTimeEntry,
    Trip,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0

REQUIRED_TABLES = ("stops", "routes", "trips", "stop_times")
OPTIONAL_TABLES = ("shapes", "calendar", "calendar_dates")

REQUIRED_COLUMNS = {
    "stops": ("stop_id", "stop_name", "stop_lat", "stop_lon"),
    "routes": ("route_id", "route_short_name", "route_color"),
    "trips": ("trip_id", "route_id", "service_id", "shape_id", "trip_headsign"),
    "stop_times": ("trip_id", "stop_id", "arrival_time", "stop_sequence"),
    "shapes": ("shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence"),
    "calendar": ("service_id",) + WEEKDAYS + ("start_date", "end_date"),
    "calendar_dates": ("service_id", "date", "exception_type"),
}

_TIME_PATTERN = re.compile(r"^(\d{1,3}):([0-5]\d):([0-5]\d)$")

Row = Mapping[str, str]


def parse_gtfs_time(value: str) -> int:
    """
    Convert a GTFS "HH:MM:SS" time to seconds since local midnight.

    Hours may exceed 23 for trips running past midnight.

    Raises:
        ValueError: If the value is not a valid time.
    """
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid GTFS time '{value}'")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def parse_gtfs_date(value: str) -> date:
    """Convert a GTFS "YYYYMMDD" date string to a date."""
    try:
        return datetime.strptime(value.strip(), "%Y%m%d").date()
    except ValueError:
        raise ValueError(f"Invalid GTFS date '{value}'") from None


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two coordinates."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


@dataclass(frozen=True)
class ScheduleIndex:
    """
    Immutable, id-keyed view of a static schedule.

    Lookups return None (or an empty tuple) for unknown identifiers so callers
    can skip entities with dangling references.
    """
    stops: Dict[str, Stop]
    routes: Dict[str, Route]
    trips: Dict[str, Trip]
    stop_times: Dict[str, Tuple[StopTimeEntry, ...]]
    shapes: Dict[str, Tuple[ShapePoint, ...]]
    calendar: Tuple[CalendarEntry, ...]
    calendar_dates: Tuple[CalendarException, ...]

    def stop(self, stop_id: str) -> Optional[Stop]:
        return self.stops.get(stop_id)

    def route(self, route_id: str) -> Optional[Route]:
        return self.routes.get(route_id)

    def trip(self, trip_id: str) -> Optional[Trip]:
        return self.trips.get(trip_id)

    def shape(self, shape_id: str) -> Optional[Tuple[ShapePoint, ...]]:
        return self.shapes.get(shape_id)

    def stop_times_for(self, trip_id: str) -> Tuple[StopTimeEntry, ...]:
        return self.stop_times.get(trip_id, ())


def build_index(tables: Mapping[str, Iterable[Row]]) -> ScheduleIndex:
    """
    Build a ScheduleIndex from raw GTFS tables.

    Args:
        tables: Mapping of table name (e.g. "stops") to rows, each row a mapping
                of column name to string value.

    Returns:
        ScheduleIndex.

    Raises:
        ScheduleLoadError: If any table is missing or malformed. All problems
                           found are reported together.
    """
    builder = _IndexBuilder()
    index = builder.build(tables)
    if builder.problems:
        logger.error(f"Rejected schedule with {len(builder.problems)} problems")
        raise ScheduleLoadError(builder.problems)

    logger.info(
        f"Indexed {len(index.stops)} stops, {len(index.routes)} routes, "
        f"{len(index.trips)} trips and {len(index.shapes)} shapes"
    )
    return index


def _value(row: Row, column: str) -> str:
    value = row.get(column)
    return "" if value is None else str(value).strip()


class _IndexBuilder:
    """Collects problems while converting raw rows into records."""

    def __init__(self):
        self.problems: List[str] = []

    def build(self, tables: Mapping[str, Iterable[Row]]) -> ScheduleIndex:
        rows: Dict[str, List[Row]] = {}
        for name in REQUIRED_TABLES + OPTIONAL_TABLES:
            if name not in tables or tables[name] is None:
                if name in REQUIRED_TABLES:
                    self.problems.append(f"{name}: table is missing")
                rows[name] = []
                continue
            rows[name] = list(tables[name])
            self._check_columns(name, rows[name])

        return ScheduleIndex(
            stops=self._stops(rows["stops"]),
            routes=self._routes(rows["routes"]),
            trips=self._trips(rows["trips"]),
            stop_times=self._stop_times(rows["stop_times"]),
            shapes=self._shapes(rows["shapes"]),
            calendar=self._calendar(rows["calendar"]),
            calendar_dates=self._calendar_dates(rows["calendar_dates"]),
        )

    def _check_columns(self, name: str, rows: List[Row]) -> None:
        if not rows:
            return
        missing = [column for column in REQUIRED_COLUMNS[name] if column not in rows[0]]
        if missing:
            self.problems.append(f"{name}: missing columns {', '.join(missing)}")
            # Skip row-level checks; every row would report the same thing
            rows.clear()

    def _number(self, table: str, line: int, row: Row, column: str, cast=float, default=None):
        raw = _value(row, column)
        if not raw and default is not None:
            return default
        try:
            return cast(raw)
        except ValueError:
            self.problems.append(f"{table} row {line}: invalid {column} '{raw}'")
            return None

    def _stops(self, rows: List[Row]) -> Dict[str, Stop]:
        stops = {}
        for line, row in enumerate(rows, start=1):
            latitude = self._number("stops", line, row, "stop_lat")
            longitude = self._number("stops", line, row, "stop_lon")
            if latitude is None or longitude is None:
                continue
            stop_id = _value(row, "stop_id")
            stops[stop_id] = Stop(
                stop_id=stop_id,
                name=_value(row, "stop_name"),
                latitude=latitude,
                longitude=longitude,
            )
        return stops

    def _routes(self, rows: List[Row]) -> Dict[str, Route]:
        routes = {}
        for row in rows:
            route_id = _value(row, "route_id")
            routes[route_id] = Route(
                route_id=route_id,
                short_name=_value(row, "route_short_name"),
                color=_value(row, "route_color").lstrip("#"),
            )
        return routes

    def _trips(self, rows: List[Row]) -> Dict[str, Trip]:
        trips = {}
        for row in rows:
            trip_id = _value(row, "trip_id")
            trips[trip_id] = Trip(
                trip_id=trip_id,
                route_id=_value(row, "route_id"),
                shape_id=_value(row, "shape_id"),
                headsign=_value(row, "trip_headsign"),
                service_id=_value(row, "service_id"),
            )
        return trips

    def _stop_times(self, rows: List[Row]) -> Dict[str, Tuple[StopTimeEntry, ...]]:
        by_trip: Dict[str, List[StopTimeEntry]] = defaultdict(list)

        for line, row in enumerate(rows, start=1):
            trip_id = _value(row, "trip_id")
            raw_time = _value(row, "arrival_time") or _value(row, "departure_time")
            try:
                seconds = parse_gtfs_time(raw_time)
            except ValueError:
                self.problems.append(f"stop_times row {line}: trip {trip_id} has malformed arrival_time '{raw_time}'")
                seconds = None
            sequence = self._number("stop_times", line, row, "stop_sequence", cast=int)
            distance = self._number("stop_times", line, row, "shape_dist_traveled", default=0.0)
            if seconds is None or sequence is None or distance is None:
                continue

            by_trip[trip_id].append(StopTimeEntry(
                trip_id=trip_id,
                stop_id=_value(row, "stop_id"),
                time=seconds,
                sequence=sequence,
                distance=distance,
            ))

        result = {}
        for trip_id, entries in by_trip.items():
            entries.sort(key=lambda entry: entry.sequence)
            for prev, curr in zip(entries, entries[1:]):
                if curr.sequence == prev.sequence:
                    self.problems.append(f"stop_times: trip {trip_id} repeats stop_sequence {curr.sequence}")
                elif curr.time < prev.time:
                    self.problems.append(
                        f"stop_times: trip {trip_id} goes back in time at stop_sequence {curr.sequence}"
                    )
            result[trip_id] = tuple(entries)
        return result

    def _shapes(self, rows: List[Row]) -> Dict[str, Tuple[ShapePoint, ...]]:
        by_shape: Dict[str, List[ShapePoint]] = defaultdict(list)

        for line, row in enumerate(rows, start=1):
            latitude = self._number("shapes", line, row, "shape_pt_lat")
            longitude = self._number("shapes", line, row, "shape_pt_lon")
            sequence = self._number("shapes", line, row, "shape_pt_sequence", cast=int)
            distance = self._number("shapes", line, row, "shape_dist_traveled", default=0.0)
            if latitude is None or longitude is None or sequence is None or distance is None:
                continue

            shape_id = _value(row, "shape_id")
            by_shape[shape_id].append(ShapePoint(
                shape_id=shape_id,
                latitude=latitude,
                longitude=longitude,
                sequence=sequence,
                distance=distance,
            ))

        result = {}
        for shape_id, points in by_shape.items():
            points.sort(key=lambda point: point.sequence)
            for prev, curr in zip(points, points[1:]):
                if curr.sequence == prev.sequence:
                    self.problems.append(f"shapes: shape {shape_id} repeats shape_pt_sequence {curr.sequence}")
                elif curr.distance < prev.distance:
                    self.problems.append(
                        f"shapes: shape {shape_id} has decreasing shape_dist_traveled at shape_pt_sequence {curr.sequence}"
                    )
            if all(point.distance == 0 for point in points):
                points = _with_haversine_distances(points)
            result[shape_id] = tuple(points)
        return result

    def _calendar(self, rows: List[Row]) -> Tuple[CalendarEntry, ...]:
        entries = []
        for line, row in enumerate(rows, start=1):
            flags = [_value(row, day) for day in WEEKDAYS]
            bad_flags = [flag for flag in flags if flag not in ("0", "1")]
            if bad_flags:
                self.problems.append(f"calendar row {line}: invalid weekday flag '{bad_flags[0]}'")
                continue
            try:
                start_date = parse_gtfs_date(_value(row, "start_date"))
                end_date = parse_gtfs_date(_value(row, "end_date"))
            except ValueError as e:
                self.problems.append(f"calendar row {line}: {e}")
                continue

            entries.append(CalendarEntry(
                service_id=_value(row, "service_id"),
                days=tuple(flag == "1" for flag in flags),
                start_date=start_date,
                end_date=end_date,
            ))
        return tuple(entries)

    def _calendar_dates(self, rows: List[Row]) -> Tuple[CalendarException, ...]:
        exceptions = []
        for line, row in enumerate(rows, start=1):
            try:
                exception_date = parse_gtfs_date(_value(row, "date"))
                exception_type = ExceptionType(_value(row, "exception_type"))
            except ValueError as e:
                self.problems.append(f"calendar_dates row {line}: {e}")
                continue

            exceptions.append(CalendarException(
                service_id=_value(row, "service_id"),
                date=exception_date,
                exception_type=exception_type,
            ))
        return tuple(exceptions)


def _with_haversine_distances(points: List[ShapePoint]) -> List[ShapePoint]:
    """Return copies of the points with cumulative haversine distances."""
    if not points:
        return points

    result = [points[0]]
    cumulative = 0.0
    for prev, curr in zip(points, points[1:]):
        cumulative += haversine_distance(prev.latitude, prev.longitude, curr.latitude, curr.longitude)
        result.append(ShapePoint(
            shape_id=curr.shape_id,
            latitude=curr.latitude,
            longitude=curr.longitude,
            sequence=curr.sequence,
            distance=cumulative,
        ))
    return result
