"""Static spatial indices over projected track points and segments.

Both indices are immutable snapshots: a change in the track selection
means building new ones, never updating in place.
"""

import math
from typing import Optional

import numpy as np
import shapely
from scipy.spatial import cKDTree
from shapely.strtree import STRtree

from .models import IndexedPoint, PlanarBounds, ProjectedTrack, SegmentRecord

DEFAULT_MAX_ENTRIES = 9
KD_LEAF_SIZE = 16
# Relative tolerance so tree queries never miss points exactly on the boundary
_SLACK = 1e-12
# Vertex/segment pairs evaluated per chunk in brute-force distance checks
_BRUTE_FORCE_CHUNK = 2_000_000


def _valid_radius(radius: float) -> bool:
    return math.isfinite(radius) and radius > 0


def _bounds_of(xy: np.ndarray) -> PlanarBounds:
    return PlanarBounds(
        min_x=float(xy[:, 0].min()), max_x=float(xy[:, 0].max()),
        min_y=float(xy[:, 1].min()), max_y=float(xy[:, 1].max()),
    )


class PointIndex:
    """KD-tree over a flat array of points tagged with owning track and index."""

    def __init__(
        self,
        xy: np.ndarray,
        track_ids: Optional[list[Optional[str]]] = None,
        point_indices: Optional[np.ndarray] = None,
    ):
        self.xy = np.asarray(xy, dtype=float).reshape(-1, 2)
        n = len(self.xy)
        self.track_ids = track_ids if track_ids is not None else [None] * n
        self.point_indices = (
            np.asarray(point_indices, dtype=np.int64) if point_indices is not None
            else np.arange(n, dtype=np.int64)
        )
        self.tree = cKDTree(self.xy, leafsize=KD_LEAF_SIZE)
        self.bounds = _bounds_of(self.xy)

    def __len__(self) -> int:
        return len(self.xy)

    def point(self, i: int) -> IndexedPoint:
        return IndexedPoint(
            x=float(self.xy[i, 0]),
            y=float(self.xy[i, 1]),
            track_id=self.track_ids[i],
            point_index=int(self.point_indices[i]),
        )

    def range(self, min_x: float, min_y: float, max_x: float, max_y: float) -> list[int]:
        """Ids of points inside the axis-aligned rectangle (inclusive)."""
        if max_x < min_x or max_y < min_y:
            return []
        cx, cy = (min_x + max_x) / 2, (min_y + max_y) / 2
        half = max(max_x - min_x, max_y - min_y) / 2
        # Chebyshev ball is the bounding square of the rectangle; exact test follows
        ids = np.asarray(
            self.tree.query_ball_point([cx, cy], half * (1 + _SLACK) + _SLACK, p=np.inf),
            dtype=np.int64,
        )
        if ids.size == 0:
            return []
        pts = self.xy[ids]
        inside = (
            (pts[:, 0] >= min_x) & (pts[:, 0] <= max_x)
            & (pts[:, 1] >= min_y) & (pts[:, 1] <= max_y)
        )
        return sorted(ids[inside].tolist())

    def query_radius(self, x: float, y: float, radius: float) -> list[IndexedPoint]:
        """Points with Euclidean distance <= radius: box prefilter, then squared distance."""
        if not _valid_radius(radius):
            return []
        ids = self.range(x - radius, y - radius, x + radius, y + radius)
        if not ids:
            return []
        pts = self.xy[ids]
        d2 = (pts[:, 0] - x) ** 2 + (pts[:, 1] - y) ** 2
        return [self.point(i) for i, keep in zip(ids, d2 <= radius * radius) if keep]

    def nearest_within(self, query_xy: np.ndarray, radius: float) -> tuple[np.ndarray, np.ndarray]:
        """Nearest point to each query within radius.

        Returns (distances, ids); queries with no match get an infinite
        distance and an id equal to ``len(self)``.
        """
        dist, ids = self.tree.query(query_xy, k=1, distance_upper_bound=radius * (1 + _SLACK))
        miss = dist > radius
        dist[miss] = np.inf
        ids[miss] = len(self)
        return dist, ids

    def pairs_within(self, query_xy: np.ndarray, radius: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """All (query id, point id, distance) pairs with distance <= radius."""
        query_tree = cKDTree(np.asarray(query_xy, dtype=float).reshape(-1, 2), leafsize=KD_LEAF_SIZE)
        # Structured output keeps zero-distance pairs that sparse formats would drop
        pairs = query_tree.sparse_distance_matrix(self.tree, radius * (1 + _SLACK), output_type="ndarray")
        pairs = pairs[pairs["v"] <= radius]
        return pairs["i"].astype(np.int64), pairs["j"].astype(np.int64), pairs["v"]


def build_point_index(tracks: list[ProjectedTrack]) -> Optional[PointIndex]:
    """Point index over every projected point, or None when there are none."""
    xy, track_ids, point_indices = [], [], []
    for track in tracks:
        for i, p in enumerate(track.points):
            xy.append((p.x, p.y))
            track_ids.append(track.id)
            point_indices.append(i)
    if not xy:
        return None
    return PointIndex(np.array(xy), track_ids, np.array(point_indices))


def query_radius(index: Optional[PointIndex], x: float, y: float, radius: float) -> list[IndexedPoint]:
    if index is None:
        return []
    return index.query_radius(x, y, radius)


def _segment_distance_sq(px: np.ndarray, py: np.ndarray, seg: np.ndarray) -> np.ndarray:
    """Squared distance from points to segments (x0, y0, x1, y1), broadcasting.

    t = clamp(((q - p0) . (p1 - p0)) / |p1 - p0|^2, 0, 1), closest = p0 + t (p1 - p0)
    """
    x0, y0, x1, y1 = seg[..., 0], seg[..., 1], seg[..., 2], seg[..., 3]
    sx = x1 - x0
    sy = y1 - y0
    ss = sx * sx + sy * sy
    ss = np.where(ss > 0, ss, 1e-9)
    t = np.clip(((px - x0) * sx + (py - y0) * sy) / ss, 0.0, 1.0)
    dx = px - (x0 + t * sx)
    dy = py - (y0 + t * sy)
    return dx * dx + dy * dy


def _track_segments(tracks: list[ProjectedTrack]) -> tuple[np.ndarray, list[Optional[str]], np.ndarray]:
    segs, track_ids, starts = [], [], []
    for track in tracks:
        pts = track.points
        for i in range(len(pts) - 1):
            a, b = pts[i], pts[i + 1]
            segs.append((a.x, a.y, b.x, b.y))
            track_ids.append(track.id)
            starts.append(i)
    return np.array(segs, dtype=float).reshape(-1, 4), track_ids, np.array(starts, dtype=np.int64)


class SegmentIndex:
    """Bulk-loaded R-tree over the bounding rectangles of track segments."""

    def __init__(
        self,
        segments: np.ndarray,
        track_ids: list[Optional[str]],
        start_indices: np.ndarray,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.segments = np.asarray(segments, dtype=float).reshape(-1, 4)
        self.track_ids = track_ids
        self.start_indices = np.asarray(start_indices, dtype=np.int64)
        self.lengths = np.hypot(
            self.segments[:, 2] - self.segments[:, 0],
            self.segments[:, 3] - self.segments[:, 1],
        )
        self.rects = np.column_stack([
            np.minimum(self.segments[:, 0], self.segments[:, 2]),
            np.minimum(self.segments[:, 1], self.segments[:, 3]),
            np.maximum(self.segments[:, 0], self.segments[:, 2]),
            np.maximum(self.segments[:, 1], self.segments[:, 3]),
        ])
        lines = shapely.linestrings(self.segments.reshape(-1, 2, 2))
        self.tree = STRtree(lines, node_capacity=max_entries)
        self.bounds = PlanarBounds(
            min_x=float(self.rects[:, 0].min()), max_x=float(self.rects[:, 2].max()),
            min_y=float(self.rects[:, 1].min()), max_y=float(self.rects[:, 3].max()),
        )

    def __len__(self) -> int:
        return len(self.segments)

    def record(self, i: int) -> SegmentRecord:
        x0, y0, x1, y1 = self.segments[i].tolist()
        min_x, min_y, max_x, max_y = self.rects[i].tolist()
        start = int(self.start_indices[i])
        return SegmentRecord(
            x0=x0, y0=y0, x1=x1, y1=y1,
            track_id=self.track_ids[i],
            point_start_index=start,
            point_end_index=start + 1,
            min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y,
            length=float(self.lengths[i]),
        )

    def _candidates(self, x: float, y: float, radius: float) -> np.ndarray:
        query = shapely.box(x - radius, y - radius, x + radius, y + radius)
        return np.sort(self.tree.query(query))

    def query_segments_near(self, x: float, y: float, radius: float) -> list[SegmentRecord]:
        """Segments whose bounding rectangle overlaps the (x +- r, y +- r) box."""
        if not _valid_radius(radius):
            return []
        return [self.record(int(i)) for i in self._candidates(x, y, radius)]

    def is_near_any_segment(self, x: float, y: float, radius: float) -> bool:
        if not _valid_radius(radius):
            return False
        ids = self._candidates(x, y, radius)
        if ids.size == 0:
            return False
        d2 = _segment_distance_sq(x, y, self.segments[ids])
        return bool((d2 <= radius * radius).any())

    def near_mask(self, xs: np.ndarray, ys: np.ndarray, radius: float) -> np.ndarray:
        """Vectorized is_near_any_segment for many query points."""
        xs = np.asarray(xs, dtype=float)
        ys = np.asarray(ys, dtype=float)
        mask = np.zeros(len(xs), dtype=bool)
        if not _valid_radius(radius) or len(xs) == 0:
            return mask
        boxes = shapely.box(xs - radius, ys - radius, xs + radius, ys + radius)
        query_ids, seg_ids = self.tree.query(boxes)
        if query_ids.size == 0:
            return mask
        d2 = _segment_distance_sq(xs[query_ids], ys[query_ids], self.segments[seg_ids])
        mask[query_ids[d2 <= radius * radius]] = True
        return mask


def build_segment_index(
    tracks: list[ProjectedTrack], max_entries: int = DEFAULT_MAX_ENTRIES,
) -> Optional[SegmentIndex]:
    """Segment index over consecutive point pairs, or None when there are none."""
    segments, track_ids, starts = _track_segments(tracks)
    if len(segments) == 0:
        return None
    return SegmentIndex(segments, track_ids, starts, max_entries=max_entries)


def query_segments_near(
    index: Optional[SegmentIndex], x: float, y: float, radius: float,
) -> list[SegmentRecord]:
    if index is None:
        return []
    return index.query_segments_near(x, y, radius)


def is_near_any_segment(index: Optional[SegmentIndex], x: float, y: float, radius: float) -> bool:
    if index is None:
        return False
    return index.is_near_any_segment(x, y, radius)


def near_any_segment_brute(
    tracks: list[ProjectedTrack], xs: np.ndarray, ys: np.ndarray, radius: float,
) -> np.ndarray:
    """Index-free proximity check against every segment of every track."""
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    mask = np.zeros(len(xs), dtype=bool)
    segments, _, _ = _track_segments(tracks)
    if not _valid_radius(radius) or len(segments) == 0 or len(xs) == 0:
        return mask
    r2 = radius * radius
    chunk = max(1, _BRUTE_FORCE_CHUNK // len(segments))
    for start in range(0, len(xs), chunk):
        px = xs[start:start + chunk, None]
        py = ys[start:start + chunk, None]
        d2 = _segment_distance_sq(px, py, segments[None, :, :])
        mask[start:start + chunk] = (d2 <= r2).any(axis=1)
    return mask
