from __future__ import annotations

from collections import Counter
from typing import Iterable

from src.models import RiskTier

LOW_RISK_THRESHOLD = 70.0
MODERATE_RISK_THRESHOLD = 40.0


def classify_risk(
    score: float,
    *,
    low_threshold: float = LOW_RISK_THRESHOLD,
    moderate_threshold: float = MODERATE_RISK_THRESHOLD,
) -> RiskTier:
    """Map a heuristic score to a risk tier. Higher scores mean lower risk."""

    if score >= low_threshold:
        return "low"
    if score >= moderate_threshold:
        return "moderate"
    return "high"


def overall_risk(tiers: Iterable[RiskTier]) -> RiskTier:
    """Combine per-category tiers into one overall tier."""

    counts = Counter(tiers)
    if counts["high"] >= 1:
        return "high"
    if counts["moderate"] >= 2:
        return "moderate"
    if counts["moderate"] == 1 and counts["low"] == 2:
        return "moderate"
    return "low"
