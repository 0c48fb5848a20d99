"""TransitMap - Live transit map engine driven by a static GTFS schedule."""

__version__ = "0.1.0"

from .models import (
    ActiveTrip,
    Departure,
    Point,
    Route,
    Stop,
    StopTimeEntry,
    TrainPosition,
    Trip,
)
from .exceptions import ScheduleLoadError
from .gtfs_loader import GTFSLoader
from .schedule_index import ScheduleIndex, build_index
from .service_calendar import ServiceCalendar
from .shape_geometry import BoundsProjection, ShapeGeometry
from .transit_tracker import TransitTracker

__all__ = [
    "TransitTracker",
    "GTFSLoader",
    "ScheduleIndex",
    "build_index",
    "ServiceCalendar",
    "ShapeGeometry",
    "BoundsProjection",
    "ScheduleLoadError",
    "Stop",
    "Route",
    "Trip",
    "StopTimeEntry",
    "ActiveTrip",
    "Point",
    "TrainPosition",
    "Departure",
]
