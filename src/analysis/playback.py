from __future__ import annotations

import asyncio
import logging

from src.analysis.notifications import NotificationSink, log_notification
from src.analysis.session import AnalysisSession
from src.config import Settings
from src.detection.adapter import DetectorAdapter
from src.ingest.frames import VideoFrameSource, playback_ticks
from src.models import AnalysisReport

logger = logging.getLogger(__name__)


async def play_through(
    session: AnalysisSession,
    duration_seconds: float,
    tick_seconds: float = 0.25,
) -> AnalysisReport | None:
    """Feed a session the clock ticks of one uninterrupted playback."""

    await session.initialize()
    session.play()
    for position in playback_ticks(duration_seconds, tick_seconds):
        await session.on_time_update(position, duration_seconds)
    session.ended(duration_seconds)
    return session.report


def analyze_video(
    source: VideoFrameSource,
    settings: Settings,
    *,
    tick_seconds: float | None = None,
    face_detector: DetectorAdapter | None = None,
    pose_detector: DetectorAdapter | None = None,
    notify: NotificationSink | None = log_notification,
) -> AnalysisSession:
    """Run a full analysis session over a video file and return the finished session."""

    duration_seconds = source.metadata.duration_seconds
    if duration_seconds <= 0:
        raise ValueError(f"Video has no playable duration: {source.metadata.video_path}")

    session = AnalysisSession.from_settings(
        settings,
        capture_frame=source.capture,
        face_detector=face_detector,
        pose_detector=pose_detector,
        notify=notify,
    )
    resolved_tick = tick_seconds if tick_seconds is not None else settings.sampling.tick_seconds
    logger.info(
        "Playing %s (%.1fs) with %.2fs clock ticks",
        source.metadata.video_path,
        duration_seconds,
        resolved_tick,
    )
    asyncio.run(play_through(session, duration_seconds, resolved_tick))

    if session.report is None:
        logger.warning("Playback finished without any analyzed frames.")
    return session
