"""Builds the list of trips running on a service day."""

import logging
from dataclasses import replace
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from .models import ActiveTrip, ShapePoint, Stop
from .schedule_index import ScheduleIndex, haversine_distance

logger = logging.getLogger(__name__)


def active_trips(index: ScheduleIndex, active_service_ids: Collection[str]) -> List[ActiveTrip]:
    """
    Get every trip whose service runs, with its stop times in sequence order.

    Trips without stop times are skipped. When a trip's stop times carry no
    shape distances, distances are inferred from the nearest shape points.

    Args:
        index: Loaded schedule.
        active_service_ids: Services running on the day (see ServiceCalendar).

    Returns:
        List of ActiveTrip objects in no particular order.
    """
    result: List[ActiveTrip] = []
    inferred: Dict[Tuple[str, Tuple[str, ...]], Optional[Tuple[float, ...]]] = {}
    skipped = 0

    for trip in index.trips.values():
        if trip.service_id not in active_service_ids:
            continue

        stop_times = index.stop_times_for(trip.trip_id)
        if not stop_times:
            skipped += 1
            continue

        if len(stop_times) > 1 and all(entry.distance == 0 for entry in stop_times):
            # Trips sharing a shape and stop pattern share the inferred distances
            key = (trip.shape_id, tuple(entry.stop_id for entry in stop_times))
            if key not in inferred:
                inferred[key] = _infer_distances(index, *key)
            if inferred[key] is not None:
                stop_times = [replace(entry, distance=d) for entry, d in zip(stop_times, inferred[key])]

        result.append(ActiveTrip(
            trip_id=trip.trip_id,
            shape_id=trip.shape_id,
            route_id=trip.route_id,
            headsign=trip.headsign,
            stop_times=tuple(stop_times),
        ))

    if skipped:
        logger.debug(f"Skipped {skipped} active trips without stop times")
    return result


def _infer_distances(index: ScheduleIndex, shape_id: str, stop_ids: Sequence[str]) -> Optional[Tuple[float, ...]]:
    """
    Assign each stop the distance of its nearest shape point.

    The search for each stop starts at the previous stop's match so distances
    never decrease along the trip. Each stop leaves one vertex at the end of the
    shape for every stop after it. Returns None if the shape or a stop is unknown.
    """
    shape = index.shape(shape_id)
    if not shape or len(shape) < 2:
        return None

    stops = [index.stop(stop_id) for stop_id in stop_ids]
    if any(stop is None for stop in stops):
        return None

    distances = []
    start = 0
    for i, stop in enumerate(stops):
        end = max(len(shape) - (len(stops) - i), start)
        start = _nearest_point(shape, stop, start, end)
        distances.append(shape[start].distance)
    return tuple(distances)


def _nearest_point(shape: Sequence[ShapePoint], stop: Stop, start: int, end: int) -> int:
    """Index of the shape point in [start, end] closest to the stop."""
    best = start
    best_distance = None
    for i in range(start, end + 1):
        point = shape[i]
        d = haversine_distance(stop.latitude, stop.longitude, point.latitude, point.longitude)
        if best_distance is None or d < best_distance:
            best, best_distance = i, d
    return best
