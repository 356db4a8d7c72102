from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from src.models import Category, Marker
from src.overlay.markers import visible_markers

# BGR
MARKER_COLORS: dict[Category, tuple[int, int, int]] = {
    "eye-contact": (246, 130, 59),
    "repetitive-movement": (11, 158, 245),
    "social-reciprocity": (129, 185, 16),
}
MARKER_THICKNESS = 2


def draw_markers(frame: Any, markers: Sequence[Marker], cv2_module: Any | None = None) -> Any:
    """Draw visible markers as circles onto a BGR frame in place and return it."""

    if not markers:
        return frame

    if cv2_module is None:
        import cv2 as cv2_module

    height, width = frame.shape[:2]
    for marker in markers:
        center = (int(round(marker.x / 100 * width)), int(round(marker.y / 100 * height)))
        radius = max(int(round(marker.size / 2)), 1)
        cv2_module.circle(frame, center, radius, MARKER_COLORS[marker.category], MARKER_THICKNESS)
    return frame


def export_annotated_video(
    source: Any,
    markers: Sequence[Marker],
    output_path: str | Path,
    cv2_module: Any | None = None,
) -> Path:
    """Write a copy of the source video with time-visible markers drawn on each frame."""

    if cv2_module is None:
        import cv2 as cv2_module

    destination = Path(output_path).expanduser().resolve()
    destination.parent.mkdir(parents=True, exist_ok=True)

    metadata = source.metadata
    writer = cv2_module.VideoWriter(
        str(destination),
        cv2_module.VideoWriter_fourcc(*"mp4v"),
        metadata.fps,
        (metadata.width, metadata.height),
    )
    if not writer.isOpened():
        raise RuntimeError(f"Unable to open video writer for: {destination}")

    try:
        for timestamp, frame in source.iter_frames():
            draw_markers(frame, visible_markers(markers, timestamp), cv2_module=cv2_module)
            writer.write(frame)
    finally:
        writer.release()

    return destination
