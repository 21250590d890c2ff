"""Terrain surface mesh from densified points."""

import colorsys
import logging
import math
import time
from typing import Optional, Union

import numpy as np
from scipy.spatial import Delaunay, QhullError

from .models import DensificationResult, PlanarBounds, ProjectedTrack, TerrainMesh
from .spatial_index import SegmentIndex, near_any_segment_brute

logger = logging.getLogger(__name__)

DEFAULT_TERRAIN_COLOR = "#4ADE80"
TRAIL_COLOR = "#A0522D"
EDGE_LENGTH_FACTOR = 6.0
TRAIL_RADIUS_FACTOR = 0.075
TRAIL_BLEND = 0.4


def hex_to_rgb(hex_color: str) -> np.ndarray:
    """'#RRGGBB' to an RGB triple in 0-1."""
    h = hex_color.strip().lstrip("#")
    return np.array([int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)], dtype=float) / 255.0


def _hue_to_channel(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.mod(t, 1.0)
    return np.select(
        [t < 1 / 6, t < 1 / 2, t < 2 / 3],
        [p + (q - p) * 6 * t, q, p + (q - p) * (2 / 3 - t) * 6],
        default=p,
    )


def hsl_to_rgb(h: float, s: np.ndarray, l: np.ndarray) -> np.ndarray:
    """Vectorized HSL to RGB, all components in 0-1. Returns (N, 3)."""
    s = np.asarray(s, dtype=float)
    l = np.asarray(l, dtype=float)
    q = np.where(l < 0.5, l * (1 + s), l + s - l * s)
    p = 2 * l - q
    hue = np.full_like(l, h)
    return np.column_stack([
        _hue_to_channel(p, q, hue + 1 / 3),
        _hue_to_channel(p, q, hue),
        _hue_to_channel(p, q, hue - 1 / 3),
    ])


def estimate_max_edge_length(xy: np.ndarray) -> float:
    """Mean point spacing over the extent, times six."""
    if len(xy) == 0:
        return EDGE_LENGTH_FACTOR
    width = float(xy[:, 0].max() - xy[:, 0].min())
    height = float(xy[:, 1].max() - xy[:, 1].min())
    area = max(1.0, width * height)
    return math.sqrt(area / max(1, len(xy))) * EDGE_LENGTH_FACTOR


def rim_points(bounds: PlanarBounds, spacing: float) -> np.ndarray:
    """Zero-altitude points along the four edges of ``bounds``, corners included."""
    if bounds.is_empty or not (math.isfinite(spacing) and spacing > 0):
        return np.empty((0, 3))
    xs = np.append(np.arange(bounds.min_x, bounds.max_x, spacing), bounds.max_x)
    ys = np.append(np.arange(bounds.min_y, bounds.max_y, spacing), bounds.max_y)
    edges = np.concatenate([
        np.column_stack([xs, np.full_like(xs, bounds.min_y)]),
        np.column_stack([xs, np.full_like(xs, bounds.max_y)]),
        np.column_stack([np.full_like(ys, bounds.min_x), ys]),
        np.column_stack([np.full_like(ys, bounds.max_x), ys]),
    ])
    edges = np.unique(edges, axis=0)
    return np.column_stack([edges, np.zeros(len(edges))])


def filter_long_edges(xy: np.ndarray, triangles: np.ndarray, max_edge: float) -> np.ndarray:
    """Drop triangles with any edge longer than ``max_edge`` in the xy plane."""
    if len(triangles) == 0:
        return triangles
    a, b, c = xy[triangles[:, 0]], xy[triangles[:, 1]], xy[triangles[:, 2]]
    longest = np.maximum.reduce([
        np.linalg.norm(b - a, axis=1),
        np.linalg.norm(c - b, axis=1),
        np.linalg.norm(a - c, axis=1),
    ])
    return triangles[longest <= max_edge]


def vertex_normals(positions: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """Area-weighted vertex normals with faces oriented upward (+z).

    Vertices not referenced by any triangle get (0, 0, 1).
    """
    normals = np.zeros_like(positions)
    if len(triangles):
        a = positions[triangles[:, 0]]
        b = positions[triangles[:, 1]]
        c = positions[triangles[:, 2]]
        face = np.cross(b - a, c - a)
        face[face[:, 2] < 0] *= -1
        for k in range(3):
            np.add.at(normals, triangles[:, k], face)
    length = np.linalg.norm(normals, axis=1)
    unset = length <= 0
    normals[unset] = (0.0, 0.0, 1.0)
    length[unset] = 1.0
    return normals / length[:, None]


def shade_vertices(
    z: np.ndarray, normals: np.ndarray, base_color: str, z_range: tuple[float, float],
) -> np.ndarray:
    """Per-vertex color from the base hue: lighter when higher, darker and more saturated when steep."""
    h, l, s = colorsys.rgb_to_hls(*hex_to_rgb(base_color))
    min_z, max_z = z_range
    denom = max(1e-6, max_z - min_z)
    t_alt = np.clip((z - min_z) / denom, 0.0, 1.0)
    slope = 1.0 - np.clip(normals[:, 2], 0.0, 1.0)
    lightness = np.clip(l * 0.85 + t_alt * 0.15 - slope * 0.1, 0.0, 1.0)
    saturation = np.clip(s * 0.95 + slope * 0.12, 0.0, 1.0)
    return hsl_to_rgb(h, saturation, lightness)


def trail_mask(
    xy: np.ndarray,
    radius: float,
    segment_index: Optional[SegmentIndex] = None,
    projected_tracks: Optional[list[ProjectedTrack]] = None,
) -> np.ndarray:
    """Vertices within ``radius`` of any track segment."""
    if segment_index is not None:
        return segment_index.near_mask(xy[:, 0], xy[:, 1], radius)
    if projected_tracks:
        return near_any_segment_brute(projected_tracks, xy[:, 0], xy[:, 1], radius)
    return np.zeros(len(xy), dtype=bool)


def build_mesh(
    dense_points: Union[DensificationResult, np.ndarray],
    projected_tracks: Optional[list[ProjectedTrack]] = None,
    segment_index: Optional[SegmentIndex] = None,
    map_bounds: Optional[PlanarBounds] = None,
    max_edge_length: Optional[float] = None,
    trail_radius: Optional[float] = None,
    base_color: str = DEFAULT_TERRAIN_COLOR,
    trail_color: str = TRAIL_COLOR,
    trail_highlight: bool = True,
) -> TerrainMesh:
    """Triangulate dense (x, y, z) points into a colored surface.

    Args:
        dense_points: Densification result or an (N, 3) array.
        projected_tracks: Original tracks, for brute-force trail highlighting.
        segment_index: Preferred over ``projected_tracks`` for trail checks.
        map_bounds: When given, a zero-altitude rim along its edges is added.
        max_edge_length: Triangles with a longer xy edge are dropped.
            Estimated from point spacing when omitted.
        trail_radius: Highlight distance; 7.5% of the max edge when omitted.
        base_color: Terrain hue source, '#RRGGBB'.
        trail_color: Highlight color, '#RRGGBB'.
        trail_highlight: Set False to skip trail coloring.

    Returns:
        TerrainMesh. Empty when fewer than 3 points are given or the
        points admit no triangulation.
    """
    start = time.perf_counter()
    points = dense_points.points if isinstance(dense_points, DensificationResult) else dense_points
    points = np.asarray(points, dtype=float).reshape(-1, 3)
    if len(points) < 3:
        return TerrainMesh()

    max_edge = max_edge_length if max_edge_length else estimate_max_edge_length(points[:, :2])
    z_range = (float(points[:, 2].min()), float(points[:, 2].max()))

    if map_bounds is not None:
        rim = rim_points(map_bounds, max_edge / 2)
        if len(rim):
            points = np.vstack([points, rim])

    xy = points[:, :2]
    try:
        tri = Delaunay(xy)
    except QhullError as e:
        logger.warning("Cannot triangulate %d points: %s", len(points), e)
        return TerrainMesh()

    triangles = filter_long_edges(xy, tri.simplices.astype(np.int64), max_edge)
    normals = vertex_normals(points, triangles)
    colors = shade_vertices(points[:, 2], normals, base_color, z_range)

    if trail_highlight and (segment_index is not None or projected_tracks):
        radius = trail_radius if trail_radius else max_edge * TRAIL_RADIUS_FACTOR
        on_trail = trail_mask(xy, radius, segment_index, projected_tracks)
        colors[on_trail] = (1 - TRAIL_BLEND) * colors[on_trail] + TRAIL_BLEND * hex_to_rgb(trail_color)

    logger.debug(
        "Terrain mesh: %d vertices, %d triangles in %.1fms",
        len(points), len(triangles), (time.perf_counter() - start) * 1000,
    )
    return TerrainMesh(
        positions=points,
        colors=colors,
        normals=normals,
        triangles=triangles,
        max_edge_length=max_edge,
    )
