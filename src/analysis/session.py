"""Frame sampling loop for one video playback session.

The session is driven by the player: ``play``/``pause``/``ended`` signals and
``on_time_update`` clock ticks. Everything runs on one event loop; detector
inference is the only suspension point and is pushed to a worker thread so the
loop keeps receiving ticks. A single in-flight flag gates sampling, and ticks
that arrive while a sample is pending are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import deque
from enum import Enum
from typing import Any, Callable

from src.analysis.notifications import NotificationSink, dispatch, log_notification
from src.config import Settings
from src.detection.adapter import DetectorAdapter, DetectorUnavailableError
from src.models import AnalysisReport, Category, Detection, FrameSnapshot, Marker, ScorerResult
from src.overlay.markers import markers_for_frame, visible_markers
from src.scoring.aggregate import aggregate_scores
from src.scoring.heuristics import (
    MIN_CONFIDENCE,
    PERSON_LABELS,
    PROXIMITY_SCALE,
    REPETITIVE_HISTORY_FRAMES,
    filter_detections,
    score_eye_contact,
    score_repetitive_movement,
    score_social_reciprocity,
)
from src.scoring.risk import LOW_RISK_THRESHOLD, MODERATE_RISK_THRESHOLD

logger = logging.getLogger(__name__)

FrameCapture = Callable[[float], FrameSnapshot]
ReportCallback = Callable[[AnalysisReport], Any]


class SessionState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    ARMED = "armed"
    SAMPLING = "sampling"
    COMPLETED = "completed"


class AnalysisSession:
    """Accumulates per-frame scores and markers and emits one report per video."""

    def __init__(
        self,
        *,
        face_detector: DetectorAdapter,
        pose_detector: DetectorAdapter,
        capture_frame: FrameCapture,
        on_report_ready: ReportCallback | None = None,
        notify: NotificationSink | None = log_notification,
        sampling_interval_seconds: int = 1,
        completion_ratio: float = 0.9,
        history_size: int = 3,
        min_confidence: float = MIN_CONFIDENCE,
        proximity_scale: float = PROXIMITY_SCALE,
        low_risk_threshold: float = LOW_RISK_THRESHOLD,
        moderate_risk_threshold: float = MODERATE_RISK_THRESHOLD,
        marker_options: dict[str, float] | None = None,
    ) -> None:
        if sampling_interval_seconds <= 0:
            raise ValueError("sampling_interval_seconds must be positive.")
        if history_size < REPETITIVE_HISTORY_FRAMES:
            raise ValueError(f"history_size must be at least {REPETITIVE_HISTORY_FRAMES}.")

        self._face_detector = face_detector
        self._pose_detector = pose_detector
        self._capture_frame = capture_frame
        self._on_report_ready = on_report_ready
        self._notify = notify
        self.sampling_interval_seconds = sampling_interval_seconds
        self.completion_ratio = completion_ratio
        self.history_size = history_size
        self.min_confidence = min_confidence
        self.proximity_scale = proximity_scale
        self.low_risk_threshold = low_risk_threshold
        self.moderate_risk_threshold = moderate_risk_threshold
        self.marker_options = dict(marker_options or {})

        self._generation = 0
        self._reset_buffers()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        capture_frame: FrameCapture,
        face_detector: DetectorAdapter | None = None,
        pose_detector: DetectorAdapter | None = None,
        on_report_ready: ReportCallback | None = None,
        notify: NotificationSink | None = log_notification,
    ) -> AnalysisSession:
        detector_settings = settings.detector
        return cls(
            face_detector=face_detector
            or DetectorAdapter(detector_settings.face_model, device=detector_settings.device),
            pose_detector=pose_detector
            or DetectorAdapter(detector_settings.pose_model, device=detector_settings.device),
            capture_frame=capture_frame,
            on_report_ready=on_report_ready,
            notify=notify,
            sampling_interval_seconds=settings.sampling.interval_seconds,
            completion_ratio=settings.sampling.completion_ratio,
            history_size=settings.sampling.history_size,
            min_confidence=detector_settings.min_confidence,
            proximity_scale=settings.scoring.proximity_scale,
            low_risk_threshold=settings.scoring.low_risk_threshold,
            moderate_risk_threshold=settings.scoring.moderate_risk_threshold,
            marker_options={
                "reference_width": settings.markers.reference_width,
                "reference_height": settings.markers.reference_height,
                "min_size": settings.markers.min_size,
                "duration": settings.markers.duration_seconds,
            },
        )

    @property
    def sample_in_flight(self) -> bool:
        return self._in_flight

    @property
    def sample_count(self) -> int:
        return len(self.eye_contact_scores)

    async def initialize(self) -> None:
        """Load both detectors; a failed load leaves the session armed but degraded."""

        if self.state is not SessionState.IDLE:
            logger.debug("Ignoring initialize request in state %s", self.state.value)
            return

        self.state = SessionState.LOADING
        generation = self._generation
        failures: list[str] = []
        for detector in (self._face_detector, self._pose_detector):
            try:
                await asyncio.to_thread(detector.load)
            except DetectorUnavailableError as exc:
                logger.warning("%s", exc)
                failures.append(detector.model_id)

        if generation != self._generation:
            return

        self.degraded = bool(failures)
        self.state = SessionState.ARMED
        if failures:
            dispatch(
                self._notify,
                "error",
                f"Detector unavailable ({', '.join(failures)}); analysis will continue with reduced accuracy.",
            )
        else:
            dispatch(self._notify, "model-loaded", "Object-detection models loaded.")

    def play(self) -> None:
        self.playing = True
        if self.state is SessionState.ARMED:
            self.state = SessionState.SAMPLING
            dispatch(self._notify, "analysis-started", "Analyzing video frames for behavioral markers.")

    def pause(self) -> None:
        self.playing = False

    def ended(self, duration: float) -> None:
        self.playing = False
        self._maybe_complete(duration, duration)

    async def on_time_update(self, current_time: float, duration: float) -> None:
        """Handle one playback clock tick."""

        if self.state is not SessionState.SAMPLING:
            return

        generation = self._generation
        if self.playing and not self._in_flight and self._is_sampling_tick(current_time):
            await self._sample(current_time, generation)

        if generation == self._generation:
            self._maybe_complete(current_time, duration)

    def visible_markers(self, current_time: float) -> list[Marker]:
        return visible_markers(self.markers, current_time)

    def reset(self) -> None:
        """Start over for a newly selected video; pending inference results are discarded."""

        self._generation += 1
        self._reset_buffers()

    def _reset_buffers(self) -> None:
        self.state = SessionState.IDLE
        self.playing = False
        self.degraded = False
        self.report: AnalysisReport | None = None
        self.eye_contact_scores: list[float] = []
        self.repetitive_movement_scores: list[float] = []
        self.social_reciprocity_scores: list[float] = []
        self.markers: list[Marker] = []
        self._pose_history: deque[Detection] = deque(maxlen=self.history_size)
        self._in_flight = False

    def _is_sampling_tick(self, current_time: float) -> bool:
        return math.floor(current_time) % self.sampling_interval_seconds == 0

    async def _sample(self, current_time: float, generation: int) -> None:
        self._in_flight = True
        try:
            try:
                snapshot = self._capture_frame(current_time)
            except Exception as exc:
                logger.warning("Skipping sample at %.2fs: %s", current_time, exc)
                return

            face_detections = await self._detect(self._face_detector, snapshot)
            pose_detections = await self._detect(self._pose_detector, snapshot)
        finally:
            if generation == self._generation:
                self._in_flight = False

        if generation != self._generation or self.state is not SessionState.SAMPLING:
            logger.debug("Discarding stale sample at %.2fs", current_time)
            return

        results = self._score_frame(snapshot, face_detections, pose_detections)
        self.eye_contact_scores.append(results["eye-contact"].score)
        self.repetitive_movement_scores.append(results["repetitive-movement"].score)
        self.social_reciprocity_scores.append(results["social-reciprocity"].score)
        self.markers.extend(markers_for_frame(results, current_time, **self.marker_options))

        persons = filter_detections(pose_detections, PERSON_LABELS, self.min_confidence)
        if persons:
            self._pose_history.append(persons[0])

        logger.debug(
            "Sample %d at %.2fs: eye=%.1f repetitive=%.1f social=%.1f",
            self.sample_count,
            current_time,
            results["eye-contact"].score,
            results["repetitive-movement"].score,
            results["social-reciprocity"].score,
        )

    @staticmethod
    async def _detect(detector: DetectorAdapter, snapshot: FrameSnapshot) -> list[Detection]:
        try:
            return await asyncio.to_thread(detector.detect, snapshot.image)
        except Exception as exc:
            model_id = getattr(detector, "model_id", type(detector).__name__)
            logger.warning(
                "Detector '%s' failed at %.2fs, counting no detections: %s",
                model_id,
                snapshot.timestamp_seconds,
                exc,
            )
            return []

    def _score_frame(
        self,
        snapshot: FrameSnapshot,
        face_detections: list[Detection],
        pose_detections: list[Detection],
    ) -> dict[Category, ScorerResult]:
        return {
            "eye-contact": score_eye_contact(
                face_detections,
                frame_width=snapshot.width,
                frame_height=snapshot.height,
                min_confidence=self.min_confidence,
            ),
            "repetitive-movement": score_repetitive_movement(
                pose_detections,
                list(self._pose_history),
                min_confidence=self.min_confidence,
            ),
            "social-reciprocity": score_social_reciprocity(
                pose_detections,
                min_confidence=self.min_confidence,
                proximity_scale=self.proximity_scale,
            ),
        }

    def _maybe_complete(self, current_time: float, duration: float) -> None:
        if self.state is not SessionState.SAMPLING:
            return
        if duration <= 0 or self.sample_count == 0:
            return
        if current_time < self.completion_ratio * duration:
            return

        self.report = aggregate_scores(
            self.eye_contact_scores,
            self.repetitive_movement_scores,
            self.social_reciprocity_scores,
            self.markers,
            low_threshold=self.low_risk_threshold,
            moderate_threshold=self.moderate_risk_threshold,
        )
        self.state = SessionState.COMPLETED
        logger.info(
            "Analysis complete after %d samples: overall risk %s",
            self.sample_count,
            self.report.overall_risk,
        )
        dispatch(self._notify, "analysis-complete", f"Overall risk: {self.report.overall_risk}.")
        if self._on_report_ready is not None:
            self._on_report_ready(self.report)
