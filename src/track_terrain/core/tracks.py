"""Projection of normalized tracks into pixel space with display elevation."""

import logging

import numpy as np

from track_terrain.models import Track
from .models import (
    AltitudeBounds,
    PlanarBounds,
    ProjectedPoint,
    ProjectedTrack,
    ProjectionResult,
)
from .projection import Projection

logger = logging.getLogger(__name__)

# d3 schemeCategory10
CATEGORY10 = [
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
]

Z_SCALE = 100.0


def track_color(index: int) -> str:
    return CATEGORY10[index % len(CATEGORY10)]


def calculate_altitude_bounds(tracks: list[Track]) -> AltitudeBounds:
    """Min/max over every measured altitude; (0, 0, False) when there are none."""
    altitudes = [p.altitude for t in tracks for p in t.points if p.altitude is not None]
    if not altitudes:
        return AltitudeBounds()
    return AltitudeBounds(
        min_altitude=min(altitudes),
        max_altitude=max(altitudes),
        has_altitude_data=True,
    )


def normalize_altitude(altitude: float | None, bounds: AltitudeBounds) -> float:
    """Scale a measured altitude onto 0-100. Missing values and a flat range give 0."""
    if altitude is None or not bounds.has_altitude_data or bounds.altitude_range <= 0:
        return 0.0
    return (altitude - bounds.min_altitude) / bounds.altitude_range * Z_SCALE


def synthetic_profile(n_points: int, elevation_gain: float | None) -> np.ndarray:
    """Half-sine elevation over the point index peaking at the total gain.

    This is an approximation for display only, not measured data.
    """
    if n_points == 0:
        return np.empty(0)
    if n_points == 1 or not elevation_gain:
        return np.zeros(n_points)
    t = np.arange(n_points) / (n_points - 1)
    return elevation_gain * np.sin(np.pi * t)


def project_tracks(tracks: list[Track], projection: Projection) -> ProjectionResult:
    """Project every track, dropping those without route data.

    Colors cycle through a 10-color palette by retained-track index. When no
    track carries altitude at all, display elevation is synthesized from each
    track's total elevation gain and the tracks are flagged as synthetic.
    """
    retained = [t for t in tracks if t.points]
    dropped = len(tracks) - len(retained)
    if dropped:
        logger.info("Dropped %d track(s) with no route data", dropped)

    bounds = calculate_altitude_bounds(retained)
    synthetic = not bounds.has_altitude_data

    profiles: list[np.ndarray] = []
    peak = 0.0
    if synthetic:
        profiles = [synthetic_profile(len(t.points), t.total_elevation_gain) for t in retained]
        peak = max((float(p.max()) for p in profiles if p.size), default=0.0)

    projected = []
    for i, track in enumerate(retained):
        lngs = [p.lng for p in track.points]
        lats = [p.lat for p in track.points]
        xs, ys = projection.project_array(lngs, lats)

        if synthetic:
            zs = profiles[i] / peak * Z_SCALE if peak > 0 else np.zeros(len(track.points))
        else:
            zs = [normalize_altitude(p.altitude, bounds) for p in track.points]

        points = [
            ProjectedPoint(x=float(x), y=float(y), altitude=p.altitude, z=float(z))
            for x, y, z, p in zip(xs, ys, zs, track.points)
            if np.isfinite(x) and np.isfinite(y)
        ]
        if len(points) < len(track.points):
            logger.warning(
                "Track %s: %d point(s) could not be projected",
                track.id, len(track.points) - len(points),
            )
        projected.append(ProjectedTrack(
            id=track.id,
            name=track.name,
            color=track_color(i),
            points=points,
            synthetic_elevation=synthetic,
        ))

    return ProjectionResult(tracks=projected, altitude_bounds=bounds)


def projected_bounds(tracks: list[ProjectedTrack], padding: float = 0.0) -> PlanarBounds:
    """Pixel extent of all projected points, grown by ``padding`` on every side."""
    xs = [p.x for t in tracks for p in t.points]
    ys = [p.y for t in tracks for p in t.points]
    if not xs:
        return PlanarBounds()
    return PlanarBounds(
        min_x=min(xs) - padding,
        max_x=max(xs) + padding,
        min_y=min(ys) - padding,
        max_y=max(ys) + padding,
    )
