from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
ENV_PREFIX = "MARKER_ANALYSIS_"


class SamplingSettings(BaseModel):
    interval_seconds: int = 1
    completion_ratio: float = 0.9
    history_size: int = 3
    tick_seconds: float = 0.25


class DetectorSettings(BaseModel):
    face_model: str = "hustvl/yolos-tiny"
    pose_model: str = "facebook/detr-resnet-50"
    device: str = "auto"
    min_confidence: float = 0.7


class ScoringSettings(BaseModel):
    low_risk_threshold: float = 70.0
    moderate_risk_threshold: float = 40.0
    proximity_scale: float = 500.0


class MarkerSettings(BaseModel):
    reference_width: int = 640
    reference_height: int = 480
    min_size: float = 40.0
    duration_seconds: float = 3.0


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseModel):
    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    detector: DetectorSettings = Field(default_factory=DetectorSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    markers: MarkerSettings = Field(default_factory=MarkerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load typed settings from YAML with environment-variable overrides."""

    resolved_path = Path(
        config_path
        or os.getenv(f"{ENV_PREFIX}CONFIG")
        or DEFAULT_CONFIG_PATH
    )
    raw_config = yaml.safe_load(resolved_path.read_text(encoding="utf-8")) or {}
    data = Settings.model_validate(raw_config).model_dump(mode="python")

    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        suffix = key[len(ENV_PREFIX) :]
        if suffix == "CONFIG":
            continue

        path = [part.lower() for part in suffix.split("__")]
        _apply_override(data, path, raw_value)

    return Settings.model_validate(data)


def _apply_override(data: dict[str, Any], path: list[str], raw_value: str) -> None:
    current: Any = data
    for segment in path[:-1]:
        if not isinstance(current, dict) or segment not in current:
            return
        current = current[segment]

    if not isinstance(current, dict):
        return

    final_key = path[-1]
    if final_key not in current:
        return

    current[final_key] = _coerce_value(raw_value, current[final_key])


def _coerce_value(raw_value: str, existing_value: Any) -> Any:
    if isinstance(existing_value, bool):
        return raw_value.lower() in {"1", "true", "yes", "on"}
    if isinstance(existing_value, int) and not isinstance(existing_value, bool):
        return int(raw_value)
    if isinstance(existing_value, float):
        return float(raw_value)
    return raw_value
