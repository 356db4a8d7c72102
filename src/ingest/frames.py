from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterator

from src.models import FrameSnapshot

logger = logging.getLogger(__name__)


class FrameCaptureError(RuntimeError):
    """Raised when a still cannot be captured at the requested playback position."""


@dataclass(slots=True)
class VideoMetadata:
    video_path: str
    width: int
    height: int
    fps: float
    frame_count: int
    duration_seconds: float


class VideoFrameSource:
    """Random-access frame capture over a video file backed by OpenCV."""

    def __init__(self, video_path: str | Path, cv2_module: Any | None = None) -> None:
        source_path = Path(video_path).expanduser().resolve()
        if not source_path.exists():
            raise FileNotFoundError(f"Video file not found: {source_path}")

        if cv2_module is None:
            import cv2 as cv2_module

        self._cv2 = cv2_module
        self._capture = cv2_module.VideoCapture(str(source_path))
        if not self._capture.isOpened():
            raise RuntimeError(f"Unable to open video: {source_path}")

        self.metadata = _read_metadata(self._capture, cv2_module, source_path)

    def capture(self, timestamp_seconds: float) -> FrameSnapshot:
        """Grab the frame at ``timestamp_seconds`` as an RGB PIL image."""

        self._capture.set(self._cv2.CAP_PROP_POS_MSEC, max(timestamp_seconds, 0.0) * 1000.0)
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise FrameCaptureError(f"No frame available at {timestamp_seconds:.3f}s")

        from PIL import Image

        rgb = self._cv2.cvtColor(frame, self._cv2.COLOR_BGR2RGB)
        height, width = frame.shape[:2]
        return FrameSnapshot(
            image=Image.fromarray(rgb),
            width=int(width),
            height=int(height),
            timestamp_seconds=timestamp_seconds,
        )

    def iter_frames(self) -> Iterator[tuple[float, Any]]:
        """Yield ``(timestamp_seconds, bgr_frame)`` for every frame from the start."""

        self._capture.set(self._cv2.CAP_PROP_POS_FRAMES, 0)
        fps = self.metadata.fps
        frame_index = 0
        while True:
            ok, frame = self._capture.read()
            if not ok:
                break
            yield frame_index / fps, frame
            frame_index += 1

    def close(self) -> None:
        self._capture.release()

    def __enter__(self) -> VideoFrameSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def probe_video(video_path: str | Path, cv2_module: Any | None = None) -> dict[str, Any]:
    """Read basic stream metadata without decoding frames."""

    with VideoFrameSource(video_path, cv2_module=cv2_module) as source:
        return {"status": "ok", **asdict(source.metadata)}


def playback_ticks(duration_seconds: float, tick_seconds: float) -> Iterator[float]:
    """Clock positions a player would report while playing through the video."""

    if tick_seconds <= 0:
        raise ValueError("tick_seconds must be positive.")

    index = 0
    while True:
        position = round(index * tick_seconds, 6)
        if position >= duration_seconds:
            break
        yield position
        index += 1
    yield duration_seconds


def _read_metadata(capture: Any, cv2_module: Any, source_path: Path) -> VideoMetadata:
    fps = float(capture.get(cv2_module.CAP_PROP_FPS) or 0.0)
    if fps <= 0:
        logger.warning("Video %s reports no frame rate; assuming 30 fps.", source_path)
        fps = 30.0
    frame_count = int(capture.get(cv2_module.CAP_PROP_FRAME_COUNT) or 0)

    return VideoMetadata(
        video_path=str(source_path),
        width=int(capture.get(cv2_module.CAP_PROP_FRAME_WIDTH) or 0),
        height=int(capture.get(cv2_module.CAP_PROP_FRAME_HEIGHT) or 0),
        fps=round(fps, 3),
        frame_count=frame_count,
        duration_seconds=round(frame_count / fps, 3),
    )
