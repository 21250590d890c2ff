"""Tests for activity record parsing and normalization."""
import json

import pytest
from pydantic import ValidationError

ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"  # (38.5,-120.2) (40.7,-120.95) (43.252,-126.453)


def test_basic_activity_uses_polyline():
    from track_terrain.core.activities import normalize_activity
    from track_terrain.models import BasicActivity

    record = BasicActivity(id="1", name="Morning Ride", map={"polyline": ENCODED},
                           total_elevation_gain=120.0)
    track = normalize_activity(record)
    assert track.id == "1"
    assert track.name == "Morning Ride"
    assert len(track.points) == 3
    assert track.total_elevation_gain == 120.0
    assert not track.has_altitude


def test_full_polyline_preferred_over_summary():
    from track_terrain.core.activities import normalize_activity
    from track_terrain.core.polyline_codec import encode
    from track_terrain.models import BasicActivity

    summary = encode([(38.5, -120.2), (40.7, -120.95)])
    record = BasicActivity(id="1", map={"polyline": ENCODED, "summary_polyline": summary})
    assert len(normalize_activity(record).points) == 3


def test_summary_polyline_used_when_no_full_polyline():
    from track_terrain.core.activities import normalize_activity
    from track_terrain.models import BasicActivity

    record = BasicActivity(id="1", map={"summary_polyline": ENCODED})
    assert len(normalize_activity(record).points) == 3


def test_latlng_stream_supersedes_polyline():
    from track_terrain.core.activities import normalize_activity
    from track_terrain.models import DetailedActivity

    record = DetailedActivity(
        id="2",
        map={"polyline": ENCODED},
        streams={"latlng": [[40.0, -105.0], [40.001, -105.001]], "altitude": [1600.0, 1610.0]},
    )
    track = normalize_activity(record)
    assert [(p.lat, p.lng, p.altitude) for p in track.points] == [
        (40.0, -105.0, 1600.0), (40.001, -105.001, 1610.0),
    ]
    assert track.has_altitude


def test_altitude_stream_merged_onto_polyline_when_lengths_match():
    from track_terrain.core.activities import normalize_activity
    from track_terrain.models import DetailedActivity

    record = DetailedActivity(id="3", map={"polyline": ENCODED},
                              streams={"altitude": [10.0, 20.0, 30.0]})
    track = normalize_activity(record)
    assert [p.altitude for p in track.points] == [10.0, 20.0, 30.0]
    assert track.points[0].lat == pytest.approx(38.5)


def test_altitude_stream_ignored_when_lengths_differ():
    from track_terrain.core.activities import normalize_activity
    from track_terrain.models import DetailedActivity

    record = DetailedActivity(id="3", map={"polyline": ENCODED},
                              streams={"altitude": [10.0, 20.0]})
    track = normalize_activity(record)
    assert len(track.points) == 3
    assert not track.has_altitude


def test_mismatched_stream_lengths_rejected():
    from track_terrain.models import DetailedActivity
    with pytest.raises(ValidationError):
        DetailedActivity(id="4", streams={"latlng": [[40.0, -105.0]], "altitude": [1.0, 2.0]})


def test_malformed_polyline_gives_routeless_track():
    from track_terrain.core.activities import normalize_activity
    from track_terrain.models import BasicActivity

    track = normalize_activity(BasicActivity(id="5", map={"polyline": "not a polyline!"}))
    assert track.points == []
    assert not track.is_renderable


def test_parse_activities_infers_kind_and_coerces_ids():
    from track_terrain.core.activities import parse_activities

    tracks = parse_activities([
        {"id": 101, "name": "Basic", "map": {"summary_polyline": ENCODED}},
        {"id": 102, "name": "Detailed",
         "streams": {"latlng": [[40.0, -105.0], [40.01, -105.01]]}},
    ])
    assert [t.id for t in tracks] == ["101", "102"]
    assert len(tracks[0].points) == 3
    assert len(tracks[1].points) == 2


def test_parse_activities_rejects_unknown_kind():
    from track_terrain.core.activities import parse_activities
    with pytest.raises(ValidationError):
        parse_activities([{"kind": "summary", "id": "1"}])


def test_load_activities_file(tmp_path):
    from track_terrain.core.activities import load_activities_file

    path = tmp_path / "activities.json"
    path.write_text(json.dumps([{"id": "a", "map": {"polyline": ENCODED}}]))
    tracks = load_activities_file(str(path))
    assert len(tracks) == 1
    assert tracks[0].id == "a"


def test_load_activities_file_requires_array(tmp_path):
    from track_terrain.core.activities import load_activities_file

    path = tmp_path / "activities.json"
    path.write_text(json.dumps({"id": "a"}))
    with pytest.raises(ValueError, match="JSON array"):
        load_activities_file(str(path))
