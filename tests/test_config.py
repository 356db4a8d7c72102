from __future__ import annotations

import logging
from pathlib import Path

import pytest

from src.config import LoggingSettings, load_settings
from src.logging_config import configure_logging


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "sampling:\n"
        "  interval_seconds: 2\n"
        "markers:\n"
        "  reference_width: 1280\n",
        encoding="utf-8",
    )
    return path


def test_load_settings_merges_yaml_with_defaults(config_file: Path) -> None:
    settings = load_settings(config_file)

    assert settings.sampling.interval_seconds == 2
    assert settings.sampling.completion_ratio == 0.9
    assert settings.markers.reference_width == 1280
    assert settings.markers.reference_height == 480
    assert settings.detector.min_confidence == 0.7


def test_load_settings_applies_typed_env_overrides(config_file: Path, monkeypatch) -> None:
    monkeypatch.setenv("MARKER_ANALYSIS_SAMPLING__COMPLETION_RATIO", "0.75")
    monkeypatch.setenv("MARKER_ANALYSIS_DETECTOR__DEVICE", "cpu")
    monkeypatch.setenv("MARKER_ANALYSIS_MARKERS__MIN_SIZE", "24")
    monkeypatch.setenv("MARKER_ANALYSIS_UNKNOWN__KEY", "ignored")

    settings = load_settings(config_file)

    assert settings.sampling.completion_ratio == 0.75
    assert settings.detector.device == "cpu"
    assert settings.markers.min_size == 24.0


def test_load_settings_reads_path_from_environment(config_file: Path, monkeypatch) -> None:
    monkeypatch.setenv("MARKER_ANALYSIS_CONFIG", str(config_file))

    assert load_settings().sampling.interval_seconds == 2


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    settings = load_settings(path)

    assert settings.sampling.interval_seconds == 1
    assert settings.detector.face_model == "hustvl/yolos-tiny"


def test_configure_logging_quiets_third_party_loggers() -> None:
    configure_logging(LoggingSettings(level="INFO"))

    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("transformers").level == logging.WARNING

    configure_logging(LoggingSettings(level="debug"))

    assert logging.getLogger("transformers").level == logging.DEBUG


def test_env_overrides_keep_integer_and_string_settings(config_file: Path, monkeypatch) -> None:
    monkeypatch.setenv("MARKER_ANALYSIS_SAMPLING__INTERVAL_SECONDS", "3")
    monkeypatch.setenv("MARKER_ANALYSIS_LOGGING__LEVEL", "debug")

    settings = load_settings(config_file)

    assert settings.sampling.interval_seconds == 3
    assert isinstance(settings.sampling.interval_seconds, int)
    assert settings.logging.level == "debug"
