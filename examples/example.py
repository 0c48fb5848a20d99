"""Example usage of TransitTracker."""

import logging
import sys
from datetime import datetime
from pathlib import Path

# Add src to path so we can import transitmap
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transitmap.departure_query import format_clock
from transitmap.transit_tracker import TransitTracker

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_live_map(feed: str, station_input: str):
    """
    Load a feed and print vehicle positions plus departures for a stop.

    Args:
        feed: GTFS directory, zip file or URL.
        station_input: Stop name or stop ID (e.g., "Sol" or "par_4_1")
    """
    tracker = TransitTracker()
    tracker.load_feed(feed)

    now = datetime.now()
    tracker.refresh(now.date())
    now_seconds = TransitTracker.seconds_since_midnight(now)

    positions = tracker.get_vehicle_positions(now_seconds)
    print(f"\n{'='*70}")
    print(f"{len(positions)} vehicles in service at {now.strftime('%H:%M:%S')}")
    print(f"{'='*70}")
    for position in positions[:20]:
        print(f"  {position.route_id:>6}  {position.trip_id:<30} ({position.x:8.1f}, {position.y:8.1f})")

    stop = tracker.get_stop(station_input)
    print(f"\nDepartures from {stop.name} ({stop.stop_id}):")
    print("-" * 70)
    departures = tracker.get_upcoming_departures(stop.stop_id, now_seconds)
    if not departures:
        print("  No upcoming departures")
    for departure in departures:
        print(f"  {format_clock(departure.time)}  Line {departure.route_short_name}: {departure.headsign}")


def main():
    """Main entry point."""
    if len(sys.argv) < 3:
        print("Usage: python example.py <gtfs feed> <stop name or ID>")
        sys.exit(1)

    try:
        print_live_map(sys.argv[1], " ".join(sys.argv[2:]))
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
