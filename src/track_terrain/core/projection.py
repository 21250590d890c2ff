"""Geographic bounding box and viewport-fitted equal-area projections."""

import logging
import math
from functools import reduce

import numpy as np
from pyproj import CRS, Transformer

from track_terrain.models import Track
from .models import BoundingBox, PlanarBounds

logger = logging.getLogger(__name__)

WGS84 = CRS.from_epsg(4326)
EARTH_RADIUS_M = 6_378_137.0

BOX_PADDING = 0.1
FIT_FRACTION = 0.95
# Pixels per radian for the degenerate-box fallback
FALLBACK_SCALE = 100.0
METERS_PER_MILE = 1609.344


class Projection:
    """Maps geographic (lng, lat) to pixel (x, y).

    Pixel coordinates are ``translate + scale * (X, -Y)`` where (X, Y) are
    the projected CRS coordinates in meters, so y grows downward as on screen.
    """

    def __init__(self, crs: CRS, scale: float = 1.0, translate: tuple[float, float] = (0.0, 0.0)):
        self.crs = crs
        self.scale = scale
        self.translate = translate
        self._forward = Transformer.from_crs(WGS84, crs, always_xy=True)
        self._inverse = Transformer.from_crs(crs, WGS84, always_xy=True)

    def with_fit(self, scale: float, translate: tuple[float, float]) -> "Projection":
        return Projection(self.crs, scale=scale, translate=translate)

    def project_array(self, lngs, lats) -> tuple[np.ndarray, np.ndarray]:
        """Project arrays of longitudes/latitudes. Unprojectable inputs give NaN."""
        lngs = np.asarray(lngs, dtype=float)
        lats = np.asarray(lats, dtype=float)
        if lngs.size == 0:
            return np.empty(0), np.empty(0)
        mx, my = self._forward.transform(lngs, lats)
        mx = np.asarray(mx, dtype=float)
        my = np.asarray(my, dtype=float)
        bad = ~(np.isfinite(mx) & np.isfinite(my))
        tx, ty = self.translate
        xs = tx + self.scale * mx
        ys = ty - self.scale * my
        xs[bad] = np.nan
        ys[bad] = np.nan
        return xs, ys

    def __call__(self, lng: float, lat: float) -> tuple[float, float] | None:
        xs, ys = self.project_array([lng], [lat])
        if not np.isfinite(xs[0]):
            return None
        return float(xs[0]), float(ys[0])

    def invert_array(self, xs, ys) -> tuple[np.ndarray, np.ndarray]:
        """Best-effort inverse. Non-finite results are reported as (0, 0)."""
        xs = np.asarray(xs, dtype=float)
        ys = np.asarray(ys, dtype=float)
        if xs.size == 0 or self.scale == 0:
            return np.zeros_like(xs), np.zeros_like(ys)
        tx, ty = self.translate
        mx = (xs - tx) / self.scale
        my = (ty - ys) / self.scale
        lngs, lats = self._inverse.transform(mx, my)
        lngs = np.asarray(lngs, dtype=float)
        lats = np.asarray(lats, dtype=float)
        bad = ~(np.isfinite(lngs) & np.isfinite(lats))
        lngs[bad] = 0.0
        lats[bad] = 0.0
        return lngs, lats

    def invert(self, x: float, y: float) -> tuple[float, float]:
        lngs, lats = self.invert_array([x], [y])
        return float(lngs[0]), float(lats[0])

    def __repr__(self) -> str:
        return f"Projection({self.crs.srs!r}, scale={self.scale:.6g}, translate={self.translate})"


def compute_bounding_box(tracks: list[Track], padding: float = BOX_PADDING) -> BoundingBox:
    """Bounding box across all track points, padded by a fraction of each span.

    Falls back to the whole lat/lng domain when there are no points.
    """
    def extend(acc, p):
        min_lat, max_lat, min_lng, max_lng = acc
        return (min(min_lat, p.lat), max(max_lat, p.lat), min(min_lng, p.lng), max(max_lng, p.lng))

    points = (p for t in tracks for p in t.points)
    min_lat, max_lat, min_lng, max_lng = reduce(
        extend, points, (math.inf, -math.inf, math.inf, -math.inf)
    )
    if not math.isfinite(min_lat):
        logger.warning("No valid coordinates found, using whole-globe bounding box")
        return BoundingBox()

    lat_pad = (max_lat - min_lat) * padding
    lng_pad = (max_lng - min_lng) * padding
    return BoundingBox(
        min_lat=max(-90.0, min_lat - lat_pad),
        max_lat=min(90.0, max_lat + lat_pad),
        min_lng=max(-180.0, min_lng - lng_pad),
        max_lng=min(180.0, max_lng + lng_pad),
    )


def _conic_crs(bbox: BoundingBox) -> CRS:
    return CRS.from_proj4(
        f"+proj=aea +lat_1={bbox.min_lat} +lat_2={bbox.max_lat} "
        f"+lat_0={bbox.center_lat} +lon_0={bbox.center_lng} "
        "+ellps=WGS84 +units=m +no_defs"
    )


def _azimuthal_crs(lat: float, lng: float) -> CRS:
    return CRS.from_proj4(
        f"+proj=laea +lat_0={lat} +lon_0={lng} +ellps=WGS84 +units=m +no_defs"
    )


def fallback_projection(bbox: BoundingBox, width: float, height: float) -> Projection:
    """Fixed small-scale projection centred on the box, for degenerate extents."""
    crs = _azimuthal_crs(bbox.center_lat, bbox.center_lng)
    return Projection(crs, scale=FALLBACK_SCALE / EARTH_RADIUS_M, translate=(width / 2, height / 2))


def _boundary_ring(bbox: BoundingBox, samples_per_edge: int = 16) -> tuple[np.ndarray, np.ndarray]:
    """Densified outline of the box; conic projections bend its edges."""
    t = np.linspace(0.0, 1.0, samples_per_edge, endpoint=False)
    lng_span = bbox.lng_span
    lat_span = bbox.lat_span
    lngs = np.concatenate([
        bbox.min_lng + t * lng_span,
        np.full_like(t, bbox.max_lng),
        bbox.max_lng - t * lng_span,
        np.full_like(t, bbox.min_lng),
    ])
    lats = np.concatenate([
        np.full_like(t, bbox.min_lat),
        bbox.min_lat + t * lat_span,
        np.full_like(t, bbox.max_lat),
        bbox.max_lat - t * lat_span,
    ])
    return lngs, lats


def fit_bounding_box(bbox: BoundingBox, width: float, height: float) -> Projection:
    """Fit an equal-area conic projection of ``bbox`` into the viewport.

    The pixel extent of a conic projection of a box has no closed form, so a
    unit-scale projection is built first, the box outline measured through
    it, and the final scale/translate derived from that measurement.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Viewport must be positive, got {width}x{height}")

    # Albers is undefined when the standard parallels are symmetric about the equator
    if bbox.is_degenerate or abs(bbox.min_lat + bbox.max_lat) < 1e-9:
        logger.warning("Degenerate bounding box %s, using fallback projection", bbox)
        return fallback_projection(bbox, width, height)

    provisional = Projection(_conic_crs(bbox))
    xs, ys = provisional.project_array(*_boundary_ring(bbox))
    finite = np.isfinite(xs) & np.isfinite(ys)
    if not finite.any():
        logger.warning("Bounding box outline is unprojectable, using fallback projection")
        return fallback_projection(bbox, width, height)

    x0, x1 = float(xs[finite].min()), float(xs[finite].max())
    y0, y1 = float(ys[finite].min()), float(ys[finite].max())
    dx, dy = x1 - x0, y1 - y0
    if dx <= 0 or dy <= 0:
        return fallback_projection(bbox, width, height)

    k = FIT_FRACTION / max(dx / width, dy / height)
    tx = width / 2 - k * (x0 + x1) / 2
    ty = height / 2 - k * (y0 + y1) / 2
    return provisional.with_fit(k, (tx, ty))


def fit_projection(tracks: list[Track], width: float, height: float) -> Projection:
    """Projection fitting the padded bounding box of all tracks to the viewport."""
    return fit_bounding_box(compute_bounding_box(tracks), width, height)


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def miles_per_degree(latitude_deg: float) -> tuple[float, float]:
    """Rough (lat, lng) miles per degree: ~69 and ~69 * cos(latitude)."""
    per_lat = 69.0
    per_lng = max(1e-6, 69.0 * math.cos(math.radians(latitude_deg)))
    return per_lat, per_lng


def estimate_units_per_mile(projection: Projection, center_lng: float, center_lat: float) -> float | None:
    """Projected units spanned by one mile around a point, or None if unknown."""
    per_lat, per_lng = miles_per_degree(center_lat)
    base = projection(center_lng, center_lat)
    lng_shift = projection(center_lng + 1 / per_lng, center_lat)
    lat_shift = projection(center_lng, center_lat + 1 / per_lat)
    if base is None or lng_shift is None or lat_shift is None:
        return None
    avg = (abs(lng_shift[0] - base[0]) + abs(lat_shift[1] - base[1])) / 2
    if not math.isfinite(avg) or avg <= 0:
        return None
    return avg


def derive_grid_spacings(
    projection: Projection, center_lng: float, center_lat: float, bounds: PlanarBounds,
) -> tuple[float, float]:
    """Ground grid (cell, section) spacing: a quarter mile and a mile.

    Sections are clamped to half the larger extent, scaling cells alike.
    """
    cell_size, section_size = 50.0, 200.0
    units_per_mile = estimate_units_per_mile(projection, center_lng, center_lat)
    if units_per_mile:
        cell_size = max(1.0, units_per_mile * 0.25)
        section_size = max(1.0, units_per_mile)
        max_extent = max(bounds.width, bounds.height)
        max_major = max(10.0, max_extent / 2) if math.isfinite(max_extent) else 10.0
        if section_size > max_major:
            ratio = max_major / section_size
            section_size *= ratio
            cell_size *= ratio
    return cell_size, section_size
