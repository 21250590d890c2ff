"""Tests for track projection and display elevation."""
import numpy as np
import pytest


def _track(track_id, coords, altitudes=None, gain=None):
    from track_terrain.models import GeoPoint, Track
    altitudes = altitudes or [None] * len(coords)
    return Track(
        id=track_id,
        points=[GeoPoint(lat=lat, lng=lng, altitude=a) for (lat, lng), a in zip(coords, altitudes)],
        total_elevation_gain=gain,
    )


LINE = [(40.00, -105.30), (40.02, -105.28), (40.04, -105.26), (40.06, -105.24), (40.08, -105.22)]


def _project(tracks):
    from track_terrain.core.projection import fit_projection
    from track_terrain.core.tracks import project_tracks
    return project_tracks(tracks, fit_projection(tracks, 800, 600))


def test_palette_cycles_every_ten_tracks():
    from track_terrain.core.tracks import CATEGORY10, track_color
    assert track_color(0) == CATEGORY10[0] == "#1f77b4"
    assert track_color(10) == track_color(0)
    assert track_color(13) == CATEGORY10[3]


def test_altitude_bounds():
    from track_terrain.core.tracks import calculate_altitude_bounds
    bounds = calculate_altitude_bounds([
        _track("a", LINE[:2], [1500.0, None]),
        _track("b", LINE[2:4], [1700.0, 1600.0]),
    ])
    assert bounds.has_altitude_data
    assert bounds.min_altitude == 1500.0
    assert bounds.max_altitude == 1700.0
    assert bounds.altitude_range == 200.0


def test_altitude_bounds_without_data():
    from track_terrain.core.tracks import calculate_altitude_bounds
    bounds = calculate_altitude_bounds([_track("a", LINE)])
    assert (bounds.min_altitude, bounds.max_altitude, bounds.has_altitude_data) == (0.0, 0.0, False)


def test_normalize_altitude():
    from track_terrain.core.models import AltitudeBounds
    from track_terrain.core.tracks import normalize_altitude
    bounds = AltitudeBounds(min_altitude=100.0, max_altitude=300.0, has_altitude_data=True)
    assert normalize_altitude(100.0, bounds) == 0.0
    assert normalize_altitude(200.0, bounds) == pytest.approx(50.0)
    assert normalize_altitude(300.0, bounds) == pytest.approx(100.0)
    assert normalize_altitude(None, bounds) == 0.0


def test_flat_altitude_range_normalizes_to_zero():
    from track_terrain.core.models import AltitudeBounds
    from track_terrain.core.tracks import normalize_altitude
    bounds = AltitudeBounds(min_altitude=250.0, max_altitude=250.0, has_altitude_data=True)
    assert normalize_altitude(250.0, bounds) == 0.0


def test_project_tracks_normalizes_measured_altitude():
    result = _project([_track("a", LINE, [1000.0, 1050.0, 1100.0, 1150.0, 1200.0])])
    track = result.tracks[0]
    assert result.has_altitude_data
    assert not track.synthetic_elevation
    assert [p.z for p in track.points] == pytest.approx([0.0, 25.0, 50.0, 75.0, 100.0])
    assert [p.altitude for p in track.points] == [1000.0, 1050.0, 1100.0, 1150.0, 1200.0]
    assert all(0 <= p.x <= 800 and 0 <= p.y <= 600 for p in track.points)


def test_missing_altitude_in_mixed_data_is_zero():
    result = _project([
        _track("a", LINE[:3], [1000.0, 1100.0, 1200.0]),
        _track("b", LINE[3:]),
    ])
    assert result.tracks[1].points[0].altitude is None
    assert result.tracks[1].points[0].z == 0.0
    assert not result.tracks[1].synthetic_elevation


def test_synthetic_elevation_without_any_altitude():
    result = _project([_track("a", LINE, gain=300.0), _track("b", LINE[:3], gain=150.0)])
    a, b = result.tracks
    assert not result.has_altitude_data
    assert a.synthetic_elevation and b.synthetic_elevation
    # Half-sine peaks mid-track; the tallest profile is scaled to 100
    assert a.points[2].z == pytest.approx(100.0)
    assert a.points[0].z == pytest.approx(0.0)
    assert a.points[-1].z == pytest.approx(0.0, abs=1e-9)
    assert b.points[1].z == pytest.approx(50.0)
    assert all(p.altitude is None for p in a.points)


def test_synthetic_profile():
    from track_terrain.core.tracks import synthetic_profile
    profile = synthetic_profile(3, 100.0)
    assert profile == pytest.approx(np.array([0.0, 100.0, 0.0]), abs=1e-9)
    assert synthetic_profile(4, None).tolist() == [0.0, 0.0, 0.0, 0.0]
    assert synthetic_profile(0, 10.0).size == 0


def test_tracks_without_points_dropped_and_colors_follow_retained_index():
    from track_terrain.core.tracks import CATEGORY10
    result = _project([_track("empty", []), _track("a", LINE), _track("b", LINE[:2])])
    assert [t.id for t in result.tracks] == ["a", "b"]
    assert [t.color for t in result.tracks] == CATEGORY10[:2]


def test_projected_bounds_with_padding():
    from track_terrain.core.models import ProjectedPoint, ProjectedTrack
    from track_terrain.core.tracks import projected_bounds
    tracks = [ProjectedTrack(id="a", color="#000000", points=[
        ProjectedPoint(x=10, y=20), ProjectedPoint(x=30, y=5),
    ])]
    bounds = projected_bounds(tracks, padding=50)
    assert (bounds.min_x, bounds.max_x, bounds.min_y, bounds.max_y) == (-40, 80, -45, 70)
    assert projected_bounds([]).is_empty
