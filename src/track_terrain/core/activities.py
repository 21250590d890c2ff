"""Activity record parsing and normalization into core Track records."""

import json
import logging

from pydantic import TypeAdapter

from track_terrain.models import (
    ActivityRecord,
    BasicActivity,
    DetailedActivity,
    GeoPoint,
    Track,
)
from .polyline_codec import decode

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(list[ActivityRecord])


def _polyline_points(record: BasicActivity | DetailedActivity) -> list[GeoPoint]:
    encoded = record.map.polyline or record.map.summary_polyline
    return decode(encoded)


def _stream_points(record: DetailedActivity) -> list[GeoPoint] | None:
    """Points from the detailed streams, or None when they don't define a route.

    A latlng stream replaces the polyline entirely. An altitude-only stream is
    merged onto the decoded polyline by index, and only when lengths agree.
    """
    streams = record.streams
    if streams.latlng:
        altitudes = streams.altitude or [None] * len(streams.latlng)
        points = []
        for (lat, lng), alt in zip(streams.latlng, altitudes):
            try:
                points.append(GeoPoint(lat=lat, lng=lng, altitude=alt))
            except ValueError:
                logger.warning("Dropping out-of-range stream sample (%s, %s) in %s", lat, lng, record.id)
        return points

    if streams.altitude:
        decoded = _polyline_points(record)
        if len(decoded) == len(streams.altitude):
            return [
                GeoPoint(lat=p.lat, lng=p.lng, altitude=alt)
                for p, alt in zip(decoded, streams.altitude)
            ]
        logger.debug(
            "Altitude stream length %d does not match polyline length %d for %s",
            len(streams.altitude), len(decoded), record.id,
        )
    return None


def normalize_activity(record: BasicActivity | DetailedActivity) -> Track:
    """Produce the uniform Track record for either activity variant."""
    points = None
    if isinstance(record, DetailedActivity):
        points = _stream_points(record)
    if points is None:
        points = _polyline_points(record)
    return Track(
        id=record.id,
        name=record.name,
        points=points,
        total_elevation_gain=record.total_elevation_gain,
    )


def parse_activities(data: list[dict]) -> list[Track]:
    """Validate raw activity dicts and normalize them.

    Records without a ``kind`` are classified by whether they carry streams.
    """
    tagged = []
    for item in data:
        if "kind" not in item:
            item = {**item, "kind": "detailed" if item.get("streams") else "basic"}
        tagged.append(item)
    records = _records_adapter.validate_python(tagged)
    return [normalize_activity(r) for r in records]


def load_activities_file(filepath: str) -> list[Track]:
    """Load a JSON array of activity records from disk."""
    with open(filepath, "r") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Activity file must contain a JSON array of activity records")
    tracks = parse_activities(data)
    logger.info("Loaded %d activities from %s", len(tracks), filepath)
    return tracks
