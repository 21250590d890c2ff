"""Densification of sparse track samples into a regular altitude grid.

Three interchangeable strategies share one adaptive grid step:
- interpolation: nearest sample within a search radius
- mls: Gaussian-weighted average of samples within a search radius
- delaunay: barycentric interpolation inside a triangulation of the samples
"""

import logging
import math
import time
from typing import Callable, Literal, NamedTuple, Optional

import numpy as np
from scipy.spatial import Delaunay

from .models import DenseBounds, DensificationResult, ProjectedTrack
from .projection import Projection
from .spatial_index import PointIndex

logger = logging.getLogger(__name__)

MethodKey = Literal["mls", "interpolation", "delaunay"]
AltitudeSource = Literal["altitude", "z"]

MAX_SAMPLES = 200_000
INTERPOLATION_PADDING = 10.0
MIN_SEARCH_RADIUS = 3.0
BARYCENTRIC_TOLERANCE = 1e-6


class _Samples(NamedTuple):
    xy: np.ndarray
    z: np.ndarray


def compute_adaptive_step(
    density: float, width: float, height: float, max_samples: int = MAX_SAMPLES,
) -> float:
    """Grid step honoring the requested density unless that would exceed max_samples.

    The coarser of 1/density and sqrt(area / max_samples) wins.
    """
    density_step = 1.0 / density if density > 0 else 1.0
    area = max(1.0, width * height)
    step_from_cap = math.sqrt(area / max(1, max_samples))
    return max(density_step, step_from_cap)


def _collect_samples(tracks: list[ProjectedTrack], source: AltitudeSource) -> _Samples:
    """Altitude-bearing points only. Synthetic elevation has no altitude and is skipped."""
    xy, z = [], []
    for track in tracks:
        for p in track.points:
            if p.altitude is None:
                continue
            xy.append((p.x, p.y))
            z.append(p.altitude if source == "altitude" else p.z)
    return _Samples(np.array(xy, dtype=float).reshape(-1, 2), np.array(z, dtype=float))


def _sample_bounds(samples: _Samples) -> DenseBounds:
    if len(samples.z) == 0:
        return DenseBounds()
    return DenseBounds(
        min_x=float(samples.xy[:, 0].min()), max_x=float(samples.xy[:, 0].max()),
        min_y=float(samples.xy[:, 1].min()), max_y=float(samples.xy[:, 1].max()),
        min_z=float(samples.z.min()), max_z=float(samples.z.max()),
    )


def _grid_axis(lo: float, hi: float, step: float) -> np.ndarray:
    count = int(math.floor((hi - lo) / step + 1e-9)) + 1
    return lo + np.arange(max(count, 1)) * step


def _grid(bounds: DenseBounds, step: float) -> np.ndarray:
    """Regular grid over the bounds, x-major, as an (N, 2) array."""
    gx, gy = np.meshgrid(
        _grid_axis(bounds.min_x, bounds.max_x, step),
        _grid_axis(bounds.min_y, bounds.max_y, step),
        indexing="ij",
    )
    return np.column_stack([gx.ravel(), gy.ravel()])


def _result(points_xy: np.ndarray, z: np.ndarray, bounds: DenseBounds, method: str) -> DensificationResult:
    points = np.column_stack([points_xy.reshape(-1, 2), z.reshape(-1)])
    return DensificationResult(
        points=points,
        lat_lng=np.zeros((len(points), 2)),
        bounds=bounds,
        method=method,
    )


def _empty(bounds: DenseBounds, method: str) -> DensificationResult:
    return _result(np.empty((0, 2)), np.empty(0), bounds, method)


def interpolate_dense_points(
    tracks: list[ProjectedTrack],
    density: float = 10,
    max_samples: int = MAX_SAMPLES,
    altitude_source: AltitudeSource = "altitude",
) -> DensificationResult:
    """Nearest-sample interpolation over the padded extent of all points.

    Cells without a sample inside the search radius are skipped. Without
    any altitude data the result is empty.
    """
    all_xy = np.array([(p.x, p.y) for t in tracks for p in t.points], dtype=float).reshape(-1, 2)
    samples = _collect_samples(tracks, altitude_source)
    bounds = DenseBounds(
        min_x=float(all_xy[:, 0].min()) - INTERPOLATION_PADDING if len(all_xy) else math.inf,
        max_x=float(all_xy[:, 0].max()) + INTERPOLATION_PADDING if len(all_xy) else -math.inf,
        min_y=float(all_xy[:, 1].min()) - INTERPOLATION_PADDING if len(all_xy) else math.inf,
        max_y=float(all_xy[:, 1].max()) + INTERPOLATION_PADDING if len(all_xy) else -math.inf,
        min_z=float(samples.z.min()) if len(samples.z) else math.inf,
        max_z=float(samples.z.max()) if len(samples.z) else -math.inf,
    )
    if len(samples.z) == 0:
        return _empty(bounds, "interpolation")

    index = PointIndex(samples.xy)
    step = compute_adaptive_step(
        density, bounds.max_x - bounds.min_x, bounds.max_y - bounds.min_y, max_samples,
    )
    search_radius = max(MIN_SEARCH_RADIUS, step * 2)
    grid = _grid(bounds, step)

    dist, ids = index.nearest_within(grid, search_radius)
    hit = np.isfinite(dist)
    return _result(grid[hit], samples.z[ids[hit]], bounds, "interpolation")


def mls_densification(
    tracks: list[ProjectedTrack],
    density: float = 10,
    max_samples: int = MAX_SAMPLES,
    altitude_source: AltitudeSource = "altitude",
) -> DensificationResult:
    """Moving-least-squares style smoothing with a Gaussian kernel.

    Each grid cell takes the exp(-d^2 / 2 sigma^2) weighted mean of samples
    within the search radius; cells with zero total weight are skipped.
    """
    samples = _collect_samples(tracks, altitude_source)
    bounds = _sample_bounds(samples)
    if len(samples.z) == 0:
        return _empty(bounds, "mls")

    index = PointIndex(samples.xy)
    step = compute_adaptive_step(
        density, bounds.max_x - bounds.min_x, bounds.max_y - bounds.min_y, max_samples,
    )
    search_radius = max(MIN_SEARCH_RADIUS, step * 2)
    two_sigma2 = 2 * (search_radius * 0.6) ** 2
    grid = _grid(bounds, step)

    rows, cols, dist = index.pairs_within(grid, search_radius)
    weights = np.exp(-(dist ** 2) / max(1e-6, two_sigma2))
    wsum = np.bincount(rows, weights=weights, minlength=len(grid))
    zsum = np.bincount(rows, weights=weights * samples.z[cols], minlength=len(grid))
    keep = wsum > 0
    return _result(grid[keep], zsum[keep] / wsum[keep], bounds, "mls")


def delaunay_densification(
    tracks: list[ProjectedTrack],
    density: float = 10,
    max_samples: int = MAX_SAMPLES,
    altitude_source: AltitudeSource = "altitude",
) -> DensificationResult:
    """Barycentric interpolation over a Delaunay triangulation of the samples.

    Grid cells are quantized from the sample extent, so a cell shared by
    adjacent triangles is emitted once. Barycentric coordinates down to
    -1e-6 count as inside to tolerate rounding on shared edges.
    """
    samples = _collect_samples(tracks, altitude_source)
    bounds = _sample_bounds(samples)
    if len(samples.z) < 3:
        return _empty(bounds, "delaunay")

    step = compute_adaptive_step(
        density, bounds.max_x - bounds.min_x, bounds.max_y - bounds.min_y, max_samples,
    )
    tri = Delaunay(samples.xy)

    nx = int(math.ceil((bounds.max_x - bounds.min_x) / step)) + 1
    ny = int(math.ceil((bounds.max_y - bounds.min_y) / step)) + 1
    gi, gj = np.meshgrid(np.arange(nx), np.arange(ny), indexing="ij")
    grid = np.column_stack([
        bounds.min_x + gi.ravel() * step,
        bounds.min_y + gj.ravel() * step,
    ])

    simplex = tri.find_simplex(grid, tol=BARYCENTRIC_TOLERANCE)
    inside = simplex >= 0
    if not inside.any():
        return _empty(bounds, "delaunay")

    cells = grid[inside]
    s = simplex[inside]
    transform = tri.transform[s]
    bary = np.einsum("nij,nj->ni", transform[:, :2, :], cells - transform[:, 2, :])
    w_last = 1.0 - bary.sum(axis=1)
    verts = tri.simplices[s]
    z = (
        bary[:, 0] * samples.z[verts[:, 0]]
        + bary[:, 1] * samples.z[verts[:, 1]]
        + w_last * samples.z[verts[:, 2]]
    )
    return _result(cells, z, bounds, "delaunay")


class DensifyMethod(NamedTuple):
    name: str
    description: str
    run: Callable[..., DensificationResult]


METHODS: dict[str, DensifyMethod] = {
    "mls": DensifyMethod(
        "MLS (Gaussian)",
        "MLS-style smoothing on a grid with spatial index",
        mls_densification,
    ),
    "interpolation": DensifyMethod(
        "Interpolation",
        "Simple grid-based interpolation using nearest neighbor",
        interpolate_dense_points,
    ),
    "delaunay": DensifyMethod(
        "Delaunay",
        "Delaunay triangulation with barycentric interpolation",
        delaunay_densification,
    ),
}


def available_methods() -> list[dict[str, str]]:
    return [
        {"method": key, "name": m.name, "description": m.description}
        for key, m in METHODS.items()
    ]


def resolve_method(method: str) -> str:
    """'auto' currently always picks MLS."""
    return "mls" if method == "auto" else method


def densify(
    tracks: list[ProjectedTrack],
    method: str = "auto",
    density: float = 10,
    debug: bool = False,
    max_samples: int = MAX_SAMPLES,
    altitude_source: AltitudeSource = "altitude",
    projection: Optional[Projection] = None,
) -> DensificationResult:
    """Densify projected tracks with the selected method.

    Never raises for bad geometry: any failure in the selected method is
    logged and the interpolation method is used instead. When a projection
    is given, dense points get lat/lng from its inverse.
    """
    diagnostics = []

    def note(message: str) -> None:
        if debug:
            logger.info(message)
            diagnostics.append(message)

    key = resolve_method(method)
    note(f"Method: {method}" + (f" (auto-selected {key})" if method == "auto" else ""))
    note(f"Density: {density}")
    note(f"Input tracks: {len(tracks)}")
    note(f"Input points: {sum(len(t.points) for t in tracks)}")

    start = time.perf_counter()
    try:
        impl = METHODS[key]
        result = impl.run(tracks, density, max_samples, altitude_source)
        note(f"{impl.name} completed: {result.point_count} points in "
             f"{(time.perf_counter() - start) * 1000:.1f}ms")
    except Exception as e:
        logger.warning("Densification failed (%s), falling back to interpolation: %s", method, e)
        diagnostics.append(f"Densification failed ({method}): {e}; fell back to interpolation")
        start = time.perf_counter()
        result = interpolate_dense_points(tracks, density, max_samples, altitude_source)
        note(f"Fallback interpolation completed: {result.point_count} points in "
             f"{(time.perf_counter() - start) * 1000:.1f}ms")

    if projection is not None and result.point_count:
        lngs, lats = projection.invert_array(result.points[:, 0], result.points[:, 1])
        result.lat_lng = np.column_stack([lats, lngs])

    result.diagnostics = diagnostics
    return result
