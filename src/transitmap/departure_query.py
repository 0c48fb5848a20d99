"""Upcoming scheduled departures at a stop."""

from typing import Iterable, List, Mapping

from .models import DEFAULT_ROUTE_COLOR, DEFAULT_ROUTE_SHORT_NAME, ActiveTrip, Departure, Route

DEFAULT_DEPARTURE_LIMIT = 10


def upcoming_departures(
    trips: Iterable[ActiveTrip],
    routes: Mapping[str, Route],
    stop_id: str,
    time_of_day: float,
    limit: int = DEFAULT_DEPARTURE_LIMIT,
) -> List[Departure]:
    """
    Get the next scheduled departures from a stop.

    Args:
        trips: Trips active on the current service day.
        routes: Routes keyed by route ID.
        stop_id: Stop to query.
        time_of_day: Seconds since local midnight. Only later departures are returned.
        limit: Maximum number of departures.

    Returns:
        Departures sorted by time, soonest first.
    """
    departures: List[Departure] = []

    for trip in trips:
        route = routes.get(trip.route_id)
        for entry in trip.stop_times:
            if entry.stop_id != stop_id or entry.time <= time_of_day:
                continue
            departures.append(Departure(
                time=entry.time,
                headsign=trip.headsign,
                route_short_name=route.short_name if route else DEFAULT_ROUTE_SHORT_NAME,
                route_color=(route.color if route else "") or DEFAULT_ROUTE_COLOR,
                trip_id=trip.trip_id,
                route_id=trip.route_id,
                stop_id=stop_id,
            ))

    departures.sort(key=lambda d: (d.time, d.route_short_name, d.trip_id))
    return departures[:max(limit, 0)]


def format_clock(seconds: int) -> str:
    """Format seconds since midnight as HH:MM, wrapping times past midnight."""
    hours, remainder = divmod(int(seconds), 3600)
    return f"{hours % 24:02d}:{remainder // 60:02d}"
