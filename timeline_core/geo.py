import math
from typing import Iterable, List, Optional, Tuple

from .models import GeoPoint, PhotoRecord

EARTH_RADIUS_METERS = 6371000.0


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def compute_centroid(points: Iterable[GeoPoint]) -> Optional[GeoPoint]:
    """Arithmetic mean of a collection of points, or None when empty."""
    pts = list(points)
    if not pts:
        return None
    if len(pts) == 1:
        return pts[0]
    lat_sum = 0.0
    lon_sum = 0.0
    for point in pts:
        lat_sum += point.latitude
        lon_sum += point.longitude
    return GeoPoint(latitude=lat_sum / len(pts), longitude=lon_sum / len(pts))


def bounding_box(points: Iterable[GeoPoint]) -> Optional[Tuple[float, float, float, float]]:
    """Return (north, south, east, west) of the points, or None when empty."""
    pts = list(points)
    if not pts:
        return None
    lats = [p.latitude for p in pts]
    lons = [p.longitude for p in pts]
    return max(lats), min(lats), max(lons), min(lons)


def event_track(photos: List[PhotoRecord]) -> Optional[List[List[float]]]:
    """
    Generates a GPS track (list of [lat, lon] coordinates) for an event.

    Args:
        photos: Photos of one event, in timeline order.

    Returns:
        A list of [latitude, longitude] coordinates, or None if no GPS data.
    """
    track_points = [photo.location.as_pair() for photo in photos if photo.location is not None]
    return track_points if track_points else None
