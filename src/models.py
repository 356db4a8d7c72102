from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

Category = Literal["eye-contact", "repetitive-movement", "social-reciprocity"]
RiskTier = Literal["low", "moderate", "high"]

CATEGORIES: tuple[Category, ...] = ("eye-contact", "repetitive-movement", "social-reciprocity")


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box in source-frame pixel coordinates."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def center(self) -> tuple[float, float]:
        return (self.xmin + self.width / 2, self.ymin + self.height / 2)


@dataclass(frozen=True, slots=True)
class Detection:
    """One labeled box produced by the object detector for a single frame."""

    label: str
    confidence: float
    box: BoundingBox


@dataclass(slots=True)
class ScorerResult:
    """Heuristic score in [0, 100] plus the detections that produced it."""

    score: float
    contributing: list[Detection] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Marker:
    """Timed, positioned overlay annotation derived from a detection."""

    id: str
    category: Category
    x: float
    y: float
    size: float
    timestamp: float
    duration: float

    def is_visible(self, current_time: float) -> bool:
        return self.timestamp <= current_time <= self.timestamp + self.duration


@dataclass(frozen=True, slots=True)
class CategoryResult:
    score: int
    risk: RiskTier


@dataclass(frozen=True, slots=True)
class AnalysisReport:
    """Final categorical report for one playback session."""

    eye_contact: CategoryResult
    repetitive_movements: CategoryResult
    social_reciprocity: CategoryResult
    overall_risk: RiskTier
    detected_markers: tuple[Marker, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class FrameSnapshot:
    """A still captured from the video at a playback position."""

    image: Any
    width: int
    height: int
    timestamp_seconds: float
