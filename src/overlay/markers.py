from __future__ import annotations

import uuid
from typing import Iterable

from src.models import Category, Detection, Marker, ScorerResult

REFERENCE_WIDTH = 640
REFERENCE_HEIGHT = 480
MIN_MARKER_SIZE = 40.0
MARKER_DURATION_SECONDS = 3.0


def synthesize_marker(
    detection: Detection,
    category: Category,
    timestamp: float,
    *,
    reference_width: float = REFERENCE_WIDTH,
    reference_height: float = REFERENCE_HEIGHT,
    min_size: float = MIN_MARKER_SIZE,
    duration: float = MARKER_DURATION_SECONDS,
) -> Marker:
    """Turn a contributing detection into a timed overlay marker.

    Position is the box center as a percentage of the reference frame, which
    defaults to 640x480 regardless of the source resolution.
    """

    box = detection.box
    center_x, center_y = box.center
    return Marker(
        id=f"{category}-{uuid.uuid4().hex[:12]}",
        category=category,
        x=center_x / reference_width * 100,
        y=center_y / reference_height * 100,
        size=max(min_size, min(box.width, box.height)),
        timestamp=timestamp,
        duration=duration,
    )


def markers_for_frame(
    results: dict[Category, ScorerResult],
    timestamp: float,
    **marker_options: float,
) -> list[Marker]:
    """Create at most one marker per category from its leading contributing detection."""

    return [
        synthesize_marker(result.contributing[0], category, timestamp, **marker_options)
        for category, result in results.items()
        if result.contributing
    ]


def visible_markers(markers: Iterable[Marker], current_time: float) -> list[Marker]:
    return [marker for marker in markers if marker.is_visible(current_time)]
