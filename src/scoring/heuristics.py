from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

from src.models import Detection, ScorerResult

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.7
REFERENCE_FRAME_SIZE = (640, 480)
EYE_CONTACT_LABELS = frozenset({"person", "face"})
PERSON_LABELS = frozenset({"person"})

REPETITIVE_SCORE = 70.0
NON_REPETITIVE_SCORE = 30.0
REPETITIVE_HISTORY_FRAMES = 3
REPETITION_TOLERANCE = 10.0
MIN_MOVEMENT = 5.0

SINGLE_PERSON_SCORE = 50.0
PROXIMITY_SCALE = 500.0


def score_eye_contact(
    detections: Sequence[Detection],
    *,
    frame_width: float | None = None,
    frame_height: float | None = None,
    min_confidence: float = MIN_CONFIDENCE,
) -> ScorerResult:
    """Score how close the leading face/person box sits to the frame center.

    A centered subject is a crude proxy for looking at the camera: distance 0
    from the center scores 100 and a normalized distance of 1 or more scores 0.
    """

    return _fail_soft(
        "eye-contact",
        lambda: _eye_contact(detections, frame_width, frame_height, min_confidence),
    )


def score_repetitive_movement(
    detections: Sequence[Detection],
    history: Sequence[Detection],
    *,
    min_confidence: float = MIN_CONFIDENCE,
) -> ScorerResult:
    """Flag patterned movement from the person boxes of the last three frames."""

    return _fail_soft(
        "repetitive-movement",
        lambda: _repetitive_movement(detections, history, min_confidence),
    )


def score_social_reciprocity(
    detections: Sequence[Detection],
    *,
    min_confidence: float = MIN_CONFIDENCE,
    proximity_scale: float = PROXIMITY_SCALE,
) -> ScorerResult:
    """Score proximity between the two leading persons in the frame."""

    return _fail_soft(
        "social-reciprocity",
        lambda: _social_reciprocity(detections, min_confidence, proximity_scale),
    )


def filter_detections(
    detections: Sequence[Detection],
    labels: frozenset[str],
    min_confidence: float = MIN_CONFIDENCE,
) -> list[Detection]:
    """Keep detections above the confidence floor whose label is in ``labels``, in detector order."""

    return [
        detection
        for detection in detections
        if detection.confidence > min_confidence and detection.label.lower() in labels
    ]


def movement_displacements(history: Sequence[Detection]) -> list[float]:
    """L1 displacement of the top-left corner between consecutive retained boxes."""

    recent = [detection.box for detection in history[-REPETITIVE_HISTORY_FRAMES:]]
    return [
        abs(current.xmin - previous.xmin) + abs(current.ymin - previous.ymin)
        for previous, current in zip(recent, recent[1:])
    ]


def _eye_contact(
    detections: Sequence[Detection],
    frame_width: float | None,
    frame_height: float | None,
    min_confidence: float,
) -> ScorerResult:
    faces = filter_detections(detections, EYE_CONTACT_LABELS, min_confidence)
    if not faces:
        return ScorerResult(score=0.0)

    width = frame_width or REFERENCE_FRAME_SIZE[0]
    height = frame_height or REFERENCE_FRAME_SIZE[1]
    center_x, center_y = faces[0].box.center
    distance = math.hypot(
        (center_x - width / 2) / (width / 2),
        (center_y - height / 2) / (height / 2),
    )
    return ScorerResult(score=_clamp(100.0 * (1.0 - distance)), contributing=faces)


def _repetitive_movement(
    detections: Sequence[Detection],
    history: Sequence[Detection],
    min_confidence: float,
) -> ScorerResult:
    persons = filter_detections(detections, PERSON_LABELS, min_confidence)
    if not persons:
        return ScorerResult(score=0.0)
    if len(history) < REPETITIVE_HISTORY_FRAMES:
        return ScorerResult(score=0.0)

    movements = movement_displacements(history)
    is_repetitive = (
        len(movements) >= 2
        and abs(movements[-1] - movements[-2]) < REPETITION_TOLERANCE
        and movements[-2] > MIN_MOVEMENT
    )
    score = REPETITIVE_SCORE if is_repetitive else NON_REPETITIVE_SCORE
    return ScorerResult(score=score, contributing=persons)


def _social_reciprocity(
    detections: Sequence[Detection],
    min_confidence: float,
    proximity_scale: float,
) -> ScorerResult:
    persons = filter_detections(detections, PERSON_LABELS, min_confidence)
    if not persons:
        return ScorerResult(score=0.0)
    if len(persons) == 1:
        return ScorerResult(score=SINGLE_PERSON_SCORE, contributing=persons)

    first_x, first_y = persons[0].box.center
    second_x, second_y = persons[1].box.center
    distance = math.hypot(first_x - second_x, first_y - second_y)
    return ScorerResult(score=_clamp(100.0 * (1.0 - distance / proximity_scale)), contributing=persons)


def _fail_soft(category: str, work: Callable[[], ScorerResult]) -> ScorerResult:
    try:
        return work()
    except Exception as exc:
        logger.warning("%s scorer failed; scoring frame as 0: %s", category, exc)
        return ScorerResult(score=0.0)


def _clamp(value: float, minimum: float = 0.0, maximum: float = 100.0) -> float:
    return max(minimum, min(maximum, value))
