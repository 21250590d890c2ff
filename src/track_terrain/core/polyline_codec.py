"""Encoded polyline decoding (precision 1e-5 degrees)."""

import logging

import polyline

from track_terrain.models import GeoPoint

logger = logging.getLogger(__name__)

PRECISION = 5

# Every encoded chunk is offset by 63, so valid characters are '?' (63) to '~' (126)
_MIN_CHAR = 63
_MAX_CHAR = 126


def decode(encoded: str | None) -> list[GeoPoint]:
    """Decode an encoded polyline into points in traversal order.

    Malformed input never raises: it yields an empty list and the caller
    treats the track as routeless.
    """
    if not encoded:
        return []
    if any(not (_MIN_CHAR <= ord(c) <= _MAX_CHAR) for c in encoded):
        logger.warning("Polyline contains characters outside the encoding alphabet")
        return []
    try:
        pairs = polyline.decode(encoded, PRECISION)
        return [GeoPoint(lat=lat, lng=lng) for lat, lng in pairs]
    except (IndexError, ValueError, TypeError) as e:
        logger.warning("Failed to decode polyline (%d chars): %s", len(encoded), e)
        return []


def encode(points: list[tuple[float, float]]) -> str:
    """Encode (lat, lng) pairs. Used to build fixtures and round-trip checks."""
    return polyline.encode(points, PRECISION)
