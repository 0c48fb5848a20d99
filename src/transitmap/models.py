"""Data models for the TransitMap schedule engine."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Tuple

# Fallbacks used when a departure refers to a route that is missing or has no color
DEFAULT_ROUTE_SHORT_NAME = "N/A"
DEFAULT_ROUTE_COLOR = "808080"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ExceptionType(Enum):
    """calendar_dates.txt exception_type values."""
    ADDED = "1"
    REMOVED = "2"


@dataclass(frozen=True)
class Stop:
    """Represents a stop or station."""
    stop_id: str
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Route:
    """Represents a route as shown to riders."""
    route_id: str
    short_name: str
    color: str  # Hex without leading '#', may be empty


@dataclass(frozen=True)
class Trip:
    """Represents a scheduled trip."""
    trip_id: str
    route_id: str
    shape_id: str
    headsign: str
    service_id: str


@dataclass(frozen=True)
class CalendarEntry:
    """Weekly service pattern for a service_id."""
    service_id: str
    days: Tuple[bool, bool, bool, bool, bool, bool, bool]  # Monday first
    start_date: date
    end_date: date

    def runs_on(self, day: date) -> bool:
        """Return True if the weekly pattern covers the given date."""
        return self.start_date <= day <= self.end_date and self.days[day.weekday()]


@dataclass(frozen=True)
class CalendarException:
    """A single added or removed service date."""
    service_id: str
    date: date
    exception_type: ExceptionType


@dataclass(frozen=True)
class ShapePoint:
    """A point of a shape polyline."""
    shape_id: str
    latitude: float
    longitude: float
    sequence: int
    distance: float  # Cumulative meters (or feed units) from the first point


@dataclass(frozen=True)
class StopTimeEntry:
    """A scheduled arrival of a trip at a stop."""
    trip_id: str
    stop_id: str
    time: int  # Seconds since local midnight, may exceed 86400
    sequence: int
    distance: float = 0.0  # 0.0 means unknown


@dataclass(frozen=True)
class ActiveTrip:
    """A trip running on the current service day with its ordered stop times."""
    trip_id: str
    shape_id: str
    route_id: str
    headsign: str
    stop_times: Tuple[StopTimeEntry, ...]

    @property
    def start_time(self) -> int:
        return self.stop_times[0].time

    @property
    def end_time(self) -> int:
        return self.stop_times[-1].time


@dataclass(frozen=True)
class Point:
    """A projected map coordinate."""
    x: float
    y: float


@dataclass(frozen=True)
class TrainPosition:
    """Estimated position of a vehicle at a given instant."""
    trip_id: str
    route_id: str
    x: float
    y: float


@dataclass(frozen=True)
class Departure:
    """A scheduled departure from a stop."""
    time: int  # Seconds since local midnight
    headsign: str
    route_short_name: str
    route_color: str
    trip_id: str
    route_id: str
    stop_id: str
