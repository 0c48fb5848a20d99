"""Shape polylines and map projection."""

import logging
from bisect import bisect_left
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .models import Point, ShapePoint

logger = logging.getLogger(__name__)

# Default drawing canvas used when fitting a projection to a feed
DEFAULT_CANVAS_WIDTH = 1000
DEFAULT_CANVAS_HEIGHT = 1000
DEFAULT_FILL = 0.9

Projection = Callable[[float, float], Point]


def geographic_projection(longitude: float, latitude: float) -> Point:
    """Identity projection: x is longitude, y is latitude."""
    return Point(x=longitude, y=latitude)


@dataclass(frozen=True)
class BoundsProjection:
    """
    Equirectangular projection scaled to a canvas.

    x grows eastward from the westernmost point, y grows southward from the
    northernmost point.
    """
    min_lon: float
    max_lat: float
    scale: float

    @classmethod
    def fit(
        cls,
        points: Iterable[ShapePoint],
        width: float = DEFAULT_CANVAS_WIDTH,
        height: float = DEFAULT_CANVAS_HEIGHT,
        fill: float = DEFAULT_FILL,
    ) -> "BoundsProjection":
        """
        Fit the bounding box of the given points into a width x height canvas.

        Args:
            points: Shape points to cover.
            width: Canvas width.
            height: Canvas height.
            fill: Fraction of the canvas the bounding box should occupy.

        Raises:
            ValueError: If no points are given.
        """
        points = list(points)
        if not points:
            raise ValueError("Cannot fit a projection to an empty set of points")

        lons = [p.longitude for p in points]
        lats = [p.latitude for p in points]
        lon_span = max(lons) - min(lons)
        lat_span = max(lats) - min(lats)

        scales = []
        if lon_span > 0:
            scales.append(width / lon_span)
        if lat_span > 0:
            scales.append(height / lat_span)
        scale = min(scales) * fill if scales else 1.0

        return cls(min_lon=min(lons), max_lat=max(lats), scale=scale)

    def __call__(self, longitude: float, latitude: float) -> Point:
        return Point(
            x=(longitude - self.min_lon) * self.scale,
            y=(self.max_lat - latitude) * self.scale,
        )


class ShapeGeometry:
    """A projected polyline annotated with cumulative distances."""

    def __init__(self, shape_id: str, distances: Sequence[float], points: Sequence[Point]):
        if len(distances) != len(points):
            raise ValueError("distances and points must have the same length")
        self.shape_id = shape_id
        self.distances: List[float] = list(distances)
        self.points: List[Point] = list(points)

    @classmethod
    def from_points(
        cls, shape_id: str, shape_points: Sequence[ShapePoint], projection: Projection = geographic_projection
    ) -> "ShapeGeometry":
        """Project sequence-ordered shape points once and keep their distances."""
        return cls(
            shape_id,
            [p.distance for p in shape_points],
            [projection(p.longitude, p.latitude) for p in shape_points],
        )

    @property
    def total_length(self) -> float:
        return self.distances[-1] if self.distances else 0.0

    def position_at_distance(self, distance: float) -> Optional[Point]:
        """
        Interpolate the point at a cumulative distance along the shape.

        Args:
            distance: Distance from the first point, in the shape's units.

        Returns:
            Projected Point, or None if the shape has fewer than two points or
            the distance lies beyond its end.
        """
        if len(self.points) < 2:
            return None

        # First point from index 1 onward whose distance reaches the target
        i = bisect_left(self.distances, distance, lo=1)
        if i >= len(self.distances):
            return None

        prev_dist, next_dist = self.distances[i - 1], self.distances[i]
        prev_point, next_point = self.points[i - 1], self.points[i]

        segment = next_dist - prev_dist
        fraction = (distance - prev_dist) / segment if segment > 0 else 0.0

        return Point(
            x=prev_point.x + (next_point.x - prev_point.x) * fraction,
            y=prev_point.y + (next_point.y - prev_point.y) * fraction,
        )


def build_geometries(shapes: Dict[str, Sequence[ShapePoint]], projection: Projection = geographic_projection) -> Dict[str, ShapeGeometry]:
    """Build one ShapeGeometry per shape ID."""
    geometries = {
        shape_id: ShapeGeometry.from_points(shape_id, points, projection)
        for shape_id, points in shapes.items()
    }
    logger.debug(f"Built {len(geometries)} shape geometries")
    return geometries
