"""Estimates vehicle positions from the static schedule."""

import logging
from typing import Iterable, List, Mapping, Optional

from .models import ActiveTrip, TrainPosition
from .shape_geometry import ShapeGeometry

logger = logging.getLogger(__name__)


def trip_distance_at(trip: ActiveTrip, time_of_day: float) -> Optional[float]:
    """
    Get how far along its shape a trip is at a time of day.

    The trip is interpolated linearly in time between the two stops it is
    travelling between.

    Args:
        trip: Active trip with ordered stop times.
        time_of_day: Seconds since local midnight.

    Returns:
        Distance along the shape, or None if the trip is not running at that time.
    """
    stop_times = trip.stop_times
    if not stop_times or not trip.start_time <= time_of_day <= trip.end_time:
        return None

    for prev, nxt in zip(stop_times, stop_times[1:]):
        if prev.time <= time_of_day < nxt.time:
            duration = nxt.time - prev.time
            progress = (time_of_day - prev.time) / duration if duration > 0 else 0.0
            return prev.distance + (nxt.distance - prev.distance) * progress

    return None


def positions_at(
    trips: Iterable[ActiveTrip],
    geometries: Mapping[str, ShapeGeometry],
    time_of_day: float,
) -> List[TrainPosition]:
    """
    Get the position of every vehicle in service at a time of day.

    Trips that are not running, have an unknown shape or fall outside their
    shape are left out of the result.

    Args:
        trips: Trips active on the current service day.
        geometries: Shape geometries keyed by shape ID.
        time_of_day: Seconds since local midnight.

    Returns:
        List of TrainPosition objects.
    """
    positions: List[TrainPosition] = []

    for trip in trips:
        distance = trip_distance_at(trip, time_of_day)
        if distance is None:
            continue

        geometry = geometries.get(trip.shape_id)
        if geometry is None:
            continue

        point = geometry.position_at_distance(distance)
        if point is None:
            continue

        positions.append(TrainPosition(trip_id=trip.trip_id, route_id=trip.route_id, x=point.x, y=point.y))

    logger.debug(f"{len(positions)} vehicles in service at {time_of_day}")
    return positions
