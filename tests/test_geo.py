import pytest
from datetime import datetime, timezone

from timeline_core.geo import bounding_box, compute_centroid, event_track, haversine_meters
from timeline_core.models import GeoPoint, PhotoRecord


class TestGeo:
    def test_haversine_seoul_busan(self):
        """Seoul to Busan is roughly 325 km."""
        seoul = GeoPoint(latitude=37.5665, longitude=126.9780)
        busan = GeoPoint(latitude=35.1796, longitude=129.0756)
        assert haversine_meters(seoul, busan) == pytest.approx(325_000, rel=0.02)

    def test_haversine_same_point(self):
        p = GeoPoint(latitude=1.0, longitude=2.0)
        assert haversine_meters(p, p) == 0.0

    def test_centroid(self):
        points = [GeoPoint(latitude=0.0, longitude=0.0), GeoPoint(latitude=2.0, longitude=2.0)]
        assert compute_centroid(points) == GeoPoint(latitude=1.0, longitude=1.0)
        assert compute_centroid([]) is None

    def test_bounding_box(self):
        points = [GeoPoint(latitude=1.0, longitude=5.0), GeoPoint(latitude=-2.0, longitude=7.0)]
        assert bounding_box(points) == (1.0, -2.0, 7.0, 5.0)
        assert bounding_box([]) is None

    def test_event_track(self):
        """Track skips photos without GPS."""
        t = datetime(2025, 6, 10, tzinfo=timezone.utc)
        photos = [
            PhotoRecord(id="a", captured_at=t, location=GeoPoint(latitude=37.5, longitude=127.0)),
            PhotoRecord(id="b", captured_at=t),
            PhotoRecord(id="c", captured_at=t, location=GeoPoint(latitude=37.6, longitude=127.1)),
        ]

        assert event_track(photos) == [[37.5, 127.0], [37.6, 127.1]]
        assert event_track(photos[1:2]) is None
