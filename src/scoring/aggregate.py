from __future__ import annotations

import math
from typing import Sequence

from src.models import AnalysisReport, CategoryResult, Marker
from src.scoring.risk import LOW_RISK_THRESHOLD, MODERATE_RISK_THRESHOLD, classify_risk, overall_risk

EMPTY_SEQUENCE_SCORE = 50.0


def aggregate_scores(
    eye_contact_scores: Sequence[float],
    repetitive_movement_scores: Sequence[float],
    social_reciprocity_scores: Sequence[float],
    markers: Sequence[Marker] = (),
    *,
    low_threshold: float = LOW_RISK_THRESHOLD,
    moderate_threshold: float = MODERATE_RISK_THRESHOLD,
) -> AnalysisReport:
    """Reduce per-frame score history into the final categorical report.

    Tiers are classified on the unrounded mean; only the reported score is
    rounded.
    """

    results = [
        _category_result(scores, low_threshold=low_threshold, moderate_threshold=moderate_threshold)
        for scores in (eye_contact_scores, repetitive_movement_scores, social_reciprocity_scores)
    ]
    eye_contact, repetitive_movements, social_reciprocity = results

    return AnalysisReport(
        eye_contact=eye_contact,
        repetitive_movements=repetitive_movements,
        social_reciprocity=social_reciprocity,
        overall_risk=overall_risk(result.risk for result in results),
        detected_markers=tuple(markers),
    )


def _category_result(
    scores: Sequence[float],
    *,
    low_threshold: float,
    moderate_threshold: float,
) -> CategoryResult:
    mean = sum(scores) / len(scores) if scores else EMPTY_SEQUENCE_SCORE
    return CategoryResult(
        score=_round_half_up(mean),
        risk=classify_risk(mean, low_threshold=low_threshold, moderate_threshold=moderate_threshold),
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
