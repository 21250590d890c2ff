"""Tests for activity and track Pydantic models."""
import pytest
from pydantic import TypeAdapter, ValidationError


class TestGeoPoint:
    def test_valid_point(self):
        from track_terrain.models import GeoPoint
        p = GeoPoint(lat=47.6, lng=-122.3)
        assert p.altitude is None

    @pytest.mark.parametrize("lat,lng", [(91.0, 0.0), (-91.0, 0.0), (0.0, 181.0), (0.0, -181.0)])
    def test_out_of_range(self, lat, lng):
        from track_terrain.models import GeoPoint
        with pytest.raises(ValidationError):
            GeoPoint(lat=lat, lng=lng)

    def test_frozen(self):
        from track_terrain.models import GeoPoint
        p = GeoPoint(lat=1.0, lng=2.0)
        with pytest.raises(ValidationError):
            p.lat = 3.0


class TestActivityRecords:
    def test_numeric_id_coerced_to_string(self):
        from track_terrain.models import BasicActivity
        assert BasicActivity(id=12345).id == "12345"

    def test_negative_elevation_gain_rejected(self):
        from track_terrain.models import BasicActivity
        with pytest.raises(ValidationError):
            BasicActivity(id="a", total_elevation_gain=-5)

    def test_discriminated_union(self):
        from track_terrain.models import ActivityRecord, BasicActivity, DetailedActivity
        adapter = TypeAdapter(ActivityRecord)
        basic = adapter.validate_python({"kind": "basic", "id": "a", "map": {"summary_polyline": "??"}})
        detailed = adapter.validate_python({
            "kind": "detailed", "id": "b",
            "streams": {"latlng": [[1.0, 2.0]], "altitude": [10.0]},
        })
        assert isinstance(basic, BasicActivity)
        assert isinstance(detailed, DetailedActivity)
        assert detailed.streams.latlng == [(1.0, 2.0)]

    def test_unknown_kind_rejected(self):
        from track_terrain.models import ActivityRecord
        with pytest.raises(ValidationError):
            TypeAdapter(ActivityRecord).validate_python({"kind": "summary", "id": "a"})

    def test_mismatched_stream_lengths_rejected(self):
        from track_terrain.models import DetailedActivity
        with pytest.raises(ValidationError, match="altitude"):
            DetailedActivity(id="a", streams={"latlng": [[1.0, 2.0], [1.1, 2.1]], "altitude": [10.0]})


class TestTrack:
    def test_renderable_needs_two_points(self):
        from track_terrain.models import GeoPoint, Track
        assert not Track(id="a").is_renderable
        assert not Track(id="a", points=[GeoPoint(lat=0, lng=0)]).is_renderable
        assert Track(id="a", points=[GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1)]).is_renderable

    def test_has_altitude(self):
        from track_terrain.models import GeoPoint, Track
        flat = Track(id="a", points=[GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1)])
        hilly = Track(id="b", points=[GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1, altitude=5.0)])
        assert not flat.has_altitude
        assert hilly.has_altitude
