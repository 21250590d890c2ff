"""Session state for the track-terrain MCP server.

Holds all data for the current terrain: loaded activities, selection,
viewport, projection, projected tracks, spatial indices, densified points,
the terrain mesh and the terrain cache.
"""

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from track_terrain.core.cache import TerrainCache, TerrainCacheKey
from track_terrain.core.models import DensificationResult, ProjectionResult, TerrainMesh
from track_terrain.core.projection import Projection
from track_terrain.core.spatial_index import PointIndex, SegmentIndex
from track_terrain.models import Track


class Viewport(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    width: float = Field(default=800.0, gt=0)
    height: float = Field(default=600.0, gt=0)

    def as_tuple(self) -> tuple[float, float]:
        return (self.width, self.height)


class DensifyParams(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    method: Literal["auto", "mls", "interpolation", "delaunay"] = "auto"
    density: float = Field(default=10.0, gt=0)
    max_samples: int = Field(default=200_000, gt=0)
    debug: bool = False


class MeshParams(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    max_edge_length: Optional[float] = Field(default=None, gt=0)
    trail_radius: Optional[float] = Field(default=None, gt=0)
    rim: bool = True
    trail_highlight: bool = True


class Colors(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    terrain: str = "#4ADE80"
    trail: str = "#A0522D"

    @field_validator("terrain", "trail", mode="before")
    @classmethod
    def validate_and_normalize_hex(cls, v: str) -> str:
        if not isinstance(v, str):
            raise ValueError("Color must be a string")
        v = v.strip()
        if not re.match(r'^#[0-9A-Fa-f]{6}$', v):
            raise ValueError(f"Invalid hex color '{v}'. Must be #RRGGBB format.")
        return f"#{v[1:].upper()}"

    def as_dict(self) -> dict[str, str]:
        return {"terrain": self.terrain, "trail": self.trail}


class SessionState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    activities: list[Track] = []
    selected_ids: list[str] = []
    viewport: Viewport = Field(default_factory=Viewport)
    densify_params: DensifyParams = Field(default_factory=DensifyParams)
    mesh_params: MeshParams = Field(default_factory=MeshParams)
    colors: Colors = Field(default_factory=Colors)
    projection: Optional[Projection] = None
    projected: Optional[ProjectionResult] = None
    point_index: Optional[PointIndex] = None
    segment_index: Optional[SegmentIndex] = None
    densified: Optional[DensificationResult] = None
    mesh: Optional[TerrainMesh] = None
    cache: TerrainCache = Field(default_factory=TerrainCache)

    def set_activities(self, activities: list[Track]) -> None:
        """Replace the activity list, select all of it and drop everything derived."""
        self.activities = activities
        self.selected_ids = [a.id for a in activities]
        self.cache.clear()
        self.invalidate_downstream()

    def selected_tracks(self) -> list[Track]:
        selected = set(self.selected_ids)
        return [a for a in self.activities if a.id in selected]

    def invalidate_downstream(self) -> None:
        """Projection, indices, dense points and mesh are rebuilt wholesale."""
        self.projection = None
        self.projected = None
        self.point_index = None
        self.segment_index = None
        self.densified = None
        self.mesh = None

    def cache_key(self, method: str, density: float) -> TerrainCacheKey:
        return TerrainCacheKey.create(
            self.selected_ids, method, density,
            self.densify_params.max_samples, self.viewport.as_tuple(),
        )

    def summary(self) -> dict:
        return {
            "activities": {
                "loaded": len(self.activities),
                "selected": len(self.selected_ids),
                "selected_ids": self.selected_ids,
            },
            "viewport": {"width": self.viewport.width, "height": self.viewport.height},
            "projection": {
                "fitted": self.projection is not None,
                "crs": self.projection.crs.srs if self.projection is not None else None,
                "tracks": len(self.projected.tracks) if self.projected else 0,
                "points": self.projected.point_count if self.projected else 0,
                "has_altitude_data": self.projected.has_altitude_data if self.projected else False,
            },
            "densify": {
                "method": self.densify_params.method,
                "density": self.densify_params.density,
                "max_samples": self.densify_params.max_samples,
                "debug": self.densify_params.debug,
                "dense_points": self.densified.point_count if self.densified else None,
                "last_method": self.densified.method if self.densified else None,
            },
            "mesh": {
                "generated": self.mesh is not None,
                "vertices": self.mesh.vertex_count if self.mesh else 0,
                "triangles": self.mesh.triangle_count if self.mesh else 0,
                "max_edge_length": self.mesh_params.max_edge_length,
                "trail_radius": self.mesh_params.trail_radius,
                "rim": self.mesh_params.rim,
                "trail_highlight": self.mesh_params.trail_highlight,
            },
            "colors": self.colors.as_dict(),
            "cache": {"entries": len(self.cache), "max_entries": self.cache.maxsize},
        }


# Global session state, one per MCP server process
state = SessionState()
