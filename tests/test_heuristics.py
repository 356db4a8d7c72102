from __future__ import annotations

import pytest

from src.models import BoundingBox, Detection
from src.scoring.heuristics import (
    movement_displacements,
    score_eye_contact,
    score_repetitive_movement,
    score_social_reciprocity,
)


def _detection(
    xmin: float,
    ymin: float,
    xmax: float,
    ymax: float,
    label: str = "person",
    confidence: float = 0.9,
) -> Detection:
    return Detection(label=label, confidence=confidence, box=BoundingBox(xmin, ymin, xmax, ymax))


class _ExplodingBox:
    @property
    def center(self) -> tuple[float, float]:
        raise ZeroDivisionError("broken box")

    @property
    def xmin(self) -> float:
        raise ZeroDivisionError("broken box")


def test_eye_contact_centered_face_scores_100() -> None:
    result = score_eye_contact([_detection(270, 190, 370, 290, label="face")])

    assert result.score == pytest.approx(100.0)
    assert len(result.contributing) == 1


def test_eye_contact_uses_frame_dimensions_when_given() -> None:
    face = _detection(590, 310, 690, 410, label="Face")

    result = score_eye_contact([face], frame_width=1280, frame_height=720)

    assert result.score == pytest.approx(100.0)


def test_eye_contact_corner_face_clamps_to_zero() -> None:
    result = score_eye_contact([_detection(0, 0, 20, 20)])

    assert result.score == 0.0


def test_eye_contact_scales_linearly_with_distance() -> None:
    # Center at (480, 240): half a half-width to the right of the frame center.
    result = score_eye_contact([_detection(430, 190, 530, 290)])

    assert result.score == pytest.approx(50.0)


def test_eye_contact_ignores_low_confidence_and_other_labels() -> None:
    detections = [
        _detection(270, 190, 370, 290, label="face", confidence=0.7),
        _detection(270, 190, 370, 290, label="dog", confidence=0.99),
    ]

    result = score_eye_contact(detections)

    assert result.score == 0.0
    assert result.contributing == []


def test_eye_contact_takes_first_candidate_in_detector_order() -> None:
    off_center = _detection(0, 0, 20, 20, confidence=0.75)
    centered = _detection(270, 190, 370, 290, confidence=0.99)

    result = score_eye_contact([off_center, centered])

    assert result.score == 0.0
    assert result.contributing == [off_center, centered]


def test_repetitive_movement_needs_three_history_frames() -> None:
    current = [_detection(100, 100, 200, 300)]
    history = [_detection(100, 100, 200, 300), _detection(110, 100, 210, 300)]

    result = score_repetitive_movement(current, history)

    assert result.score == 0.0
    assert result.contributing == []


def test_repetitive_movement_without_persons_scores_zero() -> None:
    history = [_detection(100, 100, 200, 300)] * 3

    result = score_repetitive_movement([_detection(1, 1, 2, 2, label="chair")], history)

    assert result.score == 0.0
    assert result.contributing == []


def test_repetitive_movement_detects_patterned_motion() -> None:
    history = [
        _detection(100, 100, 200, 300),
        _detection(120, 100, 220, 300),
        _detection(100, 105, 200, 305),
    ]

    result = score_repetitive_movement([_detection(120, 100, 220, 300)], history)

    assert movement_displacements(history) == [20.0, 25.0]
    assert result.score == 70.0


def test_repetitive_movement_still_subject_is_not_repetitive() -> None:
    history = [_detection(100, 100, 200, 300)] * 3

    result = score_repetitive_movement([_detection(100, 100, 200, 300)], history)

    assert result.score == 30.0


def test_repetitive_movement_irregular_motion_is_not_repetitive() -> None:
    history = [
        _detection(100, 100, 200, 300),
        _detection(110, 100, 210, 300),
        _detection(160, 100, 260, 300),
    ]

    result = score_repetitive_movement([_detection(160, 100, 260, 300)], history)

    assert result.score == 30.0


def test_repetitive_movement_only_uses_last_three_history_frames() -> None:
    history = [
        _detection(0, 0, 100, 100),
        _detection(100, 100, 200, 300),
        _detection(120, 100, 220, 300),
        _detection(100, 105, 200, 305),
    ]

    assert movement_displacements(history) == [20.0, 25.0]


def test_social_reciprocity_two_people_side_by_side() -> None:
    persons = [_detection(0, 0, 100, 100), _detection(250, 0, 350, 100)]

    result = score_social_reciprocity(persons)

    assert result.score == pytest.approx(50.0)
    assert result.contributing == persons


def test_social_reciprocity_far_apart_clamps_to_zero() -> None:
    persons = [_detection(0, 0, 10, 10), _detection(600, 400, 610, 410)]

    assert score_social_reciprocity(persons).score == 0.0


def test_social_reciprocity_single_person_is_neutral() -> None:
    result = score_social_reciprocity([_detection(0, 0, 100, 100)])

    assert result.score == 50.0


def test_social_reciprocity_without_persons_scores_zero() -> None:
    result = score_social_reciprocity([])

    assert result.score == 0.0
    assert result.contributing == []


def test_scorers_fail_soft_on_internal_errors() -> None:
    broken = Detection(label="person", confidence=0.9, box=_ExplodingBox())  # type: ignore[arg-type]
    history = [broken, broken, broken]

    for result in (
        score_eye_contact([broken]),
        score_repetitive_movement([broken], history),
        score_social_reciprocity([broken, broken]),
    ):
        assert result.score == 0.0
        assert result.contributing == []
