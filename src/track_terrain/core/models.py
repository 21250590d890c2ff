"""Pydantic return models for core computation functions."""

import math
from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BoundingBox(BaseModel):
    """Geographic extent of a set of tracks, padding already applied."""
    min_lat: float = -90.0
    max_lat: float = 90.0
    min_lng: float = -180.0
    max_lng: float = 180.0

    @model_validator(mode="after")
    def check_ordering(self) -> "BoundingBox":
        if self.min_lat > self.max_lat:
            raise ValueError(f"min_lat ({self.min_lat}) must not exceed max_lat ({self.max_lat})")
        if self.min_lng > self.max_lng:
            raise ValueError(f"min_lng ({self.min_lng}) must not exceed max_lng ({self.max_lng})")
        return self

    @property
    def lat_span(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def lng_span(self) -> float:
        return self.max_lng - self.min_lng

    @property
    def center_lat(self) -> float:
        return (self.min_lat + self.max_lat) / 2

    @property
    def center_lng(self) -> float:
        return (self.min_lng + self.max_lng) / 2

    @property
    def is_degenerate(self) -> bool:
        return self.lat_span <= 0 or self.lng_span <= 0


class AltitudeBounds(BaseModel):
    min_altitude: float = 0.0
    max_altitude: float = 0.0
    has_altitude_data: bool = False

    @property
    def altitude_range(self) -> float:
        return self.max_altitude - self.min_altitude


class ProjectedPoint(BaseModel):
    """A pixel-space sample.

    ``altitude`` is the measured value carried through unchanged; ``z`` is
    the 0-100 display elevation (synthetic when the owning track says so).
    """
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    altitude: Optional[float] = None
    z: float = 0.0


class ProjectedTrack(BaseModel):
    id: str
    name: str = ""
    color: str
    points: list[ProjectedPoint] = Field(default_factory=list)
    synthetic_elevation: bool = False

    @property
    def is_renderable(self) -> bool:
        return len(self.points) >= 2


class ProjectionResult(BaseModel):
    tracks: list[ProjectedTrack] = Field(default_factory=list)
    altitude_bounds: AltitudeBounds = Field(default_factory=AltitudeBounds)

    @property
    def has_altitude_data(self) -> bool:
        return self.altitude_bounds.has_altitude_data

    @property
    def point_count(self) -> int:
        return sum(len(t.points) for t in self.tracks)


class PlanarBounds(BaseModel):
    min_x: float = math.inf
    max_x: float = -math.inf
    min_y: float = math.inf
    max_y: float = -math.inf

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def is_empty(self) -> bool:
        return not (math.isfinite(self.width) and math.isfinite(self.height))


class IndexedPoint(BaseModel):
    x: float
    y: float
    track_id: Optional[str] = None
    point_index: int


class SegmentRecord(BaseModel):
    x0: float
    y0: float
    x1: float
    y1: float
    track_id: Optional[str] = None
    point_start_index: int
    point_end_index: int
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    length: float


class DensePoint(BaseModel):
    x: float
    y: float
    z: float
    lat: float = 0.0
    lng: float = 0.0


class DenseBounds(BaseModel):
    """Extent of a densification pass. Infinite sentinels mean no samples."""
    min_x: float = math.inf
    max_x: float = -math.inf
    min_y: float = math.inf
    max_y: float = -math.inf
    min_z: float = math.inf
    max_z: float = -math.inf


class DensificationResult(BaseModel):
    """Return type for densify.

    ``points`` is an (N, 3) array of x, y, z; ``lat_lng`` an (N, 2) array of
    best-effort geographic coordinates, zeros when no inverse is available.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    points: np.ndarray = Field(default_factory=lambda: np.empty((0, 3)))
    lat_lng: np.ndarray = Field(default_factory=lambda: np.empty((0, 2)))
    bounds: DenseBounds = Field(default_factory=DenseBounds)
    method: str = ""
    diagnostics: list[str] = Field(default_factory=list)

    @field_validator("points")
    @classmethod
    def points_must_be_n_by_3(cls, v: np.ndarray) -> np.ndarray:
        if v.ndim != 2 or v.shape[1] != 3:
            raise ValueError(f"points must have shape (N, 3), got {v.shape}")
        return v

    @model_validator(mode="after")
    def lat_lng_matches_points(self) -> "DensificationResult":
        if self.lat_lng.shape != (len(self.points), 2):
            raise ValueError(
                f"lat_lng must have shape ({len(self.points)}, 2), got {self.lat_lng.shape}"
            )
        return self

    @property
    def point_count(self) -> int:
        return len(self.points)

    @property
    def dense_points(self) -> list[DensePoint]:
        return [
            DensePoint(x=x, y=y, z=z, lat=lat, lng=lng)
            for (x, y, z), (lat, lng) in zip(self.points.tolist(), self.lat_lng.tolist())
        ]


class TerrainMesh(BaseModel):
    """Return type for build_mesh. Positions are (x, y, z) with z up."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    positions: np.ndarray = Field(default_factory=lambda: np.empty((0, 3)))
    colors: np.ndarray = Field(default_factory=lambda: np.empty((0, 3)))
    normals: np.ndarray = Field(default_factory=lambda: np.empty((0, 3)))
    triangles: np.ndarray = Field(default_factory=lambda: np.empty((0, 3), dtype=np.int64))
    max_edge_length: float = 0.0

    @field_validator("positions", "colors", "normals")
    @classmethod
    def must_be_n_by_3(cls, v: np.ndarray) -> np.ndarray:
        if v.ndim != 2 or v.shape[1] != 3:
            raise ValueError(f"Vertex attribute must have shape (N, 3), got {v.shape}")
        return v

    @field_validator("triangles")
    @classmethod
    def triangles_must_be_non_negative_triples(cls, v: np.ndarray) -> np.ndarray:
        if v.ndim != 2 or v.shape[1] != 3:
            raise ValueError(f"Triangles must have shape (M, 3), got {v.shape}")
        if v.size and v.min() < 0:
            raise ValueError(f"Triangle has negative index {int(v.min())}")
        return v

    @model_validator(mode="after")
    def attributes_and_indices_must_agree(self) -> "TerrainMesh":
        n_verts = len(self.positions)
        if len(self.colors) != n_verts or len(self.normals) != n_verts:
            raise ValueError(
                f"colors ({len(self.colors)}) and normals ({len(self.normals)}) "
                f"must match vertex count {n_verts}"
            )
        if self.triangles.size and self.triangles.max() >= n_verts:
            raise ValueError(
                f"Triangle references vertex {int(self.triangles.max())} "
                f"but only {n_verts} vertices exist"
            )
        return self

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)
