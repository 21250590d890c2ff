"""Pydantic domain models for activities and geographic track data."""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    altitude: Optional[float] = None


class ActivityMap(BaseModel):
    polyline: Optional[str] = None
    summary_polyline: Optional[str] = None


class ActivityStreams(BaseModel):
    """High-fidelity sample streams for one activity.

    ``latlng`` and ``altitude`` are parallel arrays when both are present.
    ``resolution`` is informational ("low", "medium", "high").
    """
    latlng: Optional[list[tuple[float, float]]] = None
    altitude: Optional[list[float]] = None
    resolution: str = "high"


class BasicActivity(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    kind: Literal["basic"] = "basic"
    id: str
    name: str = ""
    map: ActivityMap = Field(default_factory=ActivityMap)
    total_elevation_gain: Optional[float] = Field(default=None, ge=0)


class DetailedActivity(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    kind: Literal["detailed"] = "detailed"
    id: str
    name: str = ""
    map: ActivityMap = Field(default_factory=ActivityMap)
    streams: ActivityStreams = Field(default_factory=ActivityStreams)
    total_elevation_gain: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_stream_lengths(self) -> "DetailedActivity":
        s = self.streams
        if s.latlng is not None and s.altitude is not None and len(s.latlng) != len(s.altitude):
            raise ValueError(
                f"latlng stream has {len(s.latlng)} samples but altitude has {len(s.altitude)}"
            )
        return self


ActivityRecord = Annotated[
    Union[BasicActivity, DetailedActivity], Field(discriminator="kind")
]


class Track(BaseModel):
    """Normalized track consumed by the core pipeline.

    ``points`` is in recorded order; consecutive pairs define segments.
    """
    id: str
    name: str = ""
    points: list[GeoPoint] = Field(default_factory=list)
    color: str = ""
    total_elevation_gain: Optional[float] = None

    @property
    def is_renderable(self) -> bool:
        return len(self.points) >= 2

    @property
    def has_altitude(self) -> bool:
        return any(p.altitude is not None for p in self.points)
