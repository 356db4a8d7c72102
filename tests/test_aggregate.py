from __future__ import annotations

from src.models import CategoryResult, Marker
from src.scoring.aggregate import aggregate_scores


def test_aggregate_scores_end_to_end_scenario() -> None:
    report = aggregate_scores([80, 90], [20, 30], [60, 55])

    assert report.eye_contact == CategoryResult(score=85, risk="low")
    assert report.repetitive_movements == CategoryResult(score=25, risk="high")
    assert report.social_reciprocity == CategoryResult(score=58, risk="moderate")
    assert report.overall_risk == "high"


def test_aggregate_scores_defaults_empty_sequences_to_neutral() -> None:
    report = aggregate_scores([], [], [])

    assert report.eye_contact == CategoryResult(score=50, risk="moderate")
    assert report.repetitive_movements.score == 50
    assert report.social_reciprocity.score == 50
    # Three moderate categories combine into a moderate overall tier.
    assert report.overall_risk == "moderate"
    assert report.detected_markers == ()


def test_aggregate_scores_rounds_half_up() -> None:
    report = aggregate_scores([84, 85], [100], [100])

    assert report.eye_contact.score == 85


def test_aggregate_scores_classifies_unrounded_mean() -> None:
    report = aggregate_scores([69, 70], [100], [100])

    assert report.eye_contact == CategoryResult(score=70, risk="moderate")


def test_aggregate_scores_keeps_markers_and_serializes() -> None:
    marker = Marker(
        id="eye-contact-1",
        category="eye-contact",
        x=50.0,
        y=50.0,
        size=40.0,
        timestamp=2.0,
        duration=3.0,
    )

    report = aggregate_scores([90], [90], [90], [marker])
    payload = report.to_dict()

    assert report.overall_risk == "low"
    assert report.detected_markers == (marker,)
    assert payload["overall_risk"] == "low"
    assert payload["eye_contact"] == {"score": 90, "risk": "low"}
    assert payload["detected_markers"][0]["id"] == "eye-contact-1"
