from __future__ import annotations

import json
import logging
from pathlib import Path
from time import perf_counter
from typing import Callable, TypeVar

import typer

from src.analysis.playback import analyze_video
from src.config import Settings, load_settings
from src.ingest.frames import VideoFrameSource, probe_video
from src.logging_config import configure_logging
from src.overlay.render import export_annotated_video

app = typer.Typer(help="Behavioral marker analysis over video playback.")
config_app = typer.Typer(help="Configuration commands.")

app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIG_OPTION_HELP = "Path to YAML configuration file."


def _run_with_progress(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    typer.echo(f"[{step_index}/{total_steps}] {label}...", err=True)
    started_at = perf_counter()
    try:
        result = work()
    except Exception:
        elapsed = perf_counter() - started_at
        typer.echo(f"[{step_index}/{total_steps}] {label} failed after {elapsed:.1f}s", err=True)
        raise
    elapsed = perf_counter() - started_at
    typer.echo(f"[{step_index}/{total_steps}] {label} done in {elapsed:.1f}s", err=True)
    return result


def _bootstrap(config_path: Path) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging)
    logger.debug("Loaded runtime settings from %s", config_path)
    return settings


@config_app.command("show")
def show_config(
    config_path: Path = typer.Option(
        Path("configs/default.yaml"),
        "--config",
        "-c",
        envvar="MARKER_ANALYSIS_CONFIG",
        help=CONFIG_OPTION_HELP,
    )
) -> None:
    """Print resolved runtime configuration."""

    settings = _bootstrap(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@app.command()
def probe(
    video_path: str,
    config_path: Path = typer.Option(
        Path("configs/default.yaml"),
        "--config",
        "-c",
        envvar="MARKER_ANALYSIS_CONFIG",
        help=CONFIG_OPTION_HELP,
    ),
) -> None:
    """Print frame size, frame rate, and duration of a video."""

    _bootstrap(config_path)
    try:
        result = probe_video(video_path)
    except (FileNotFoundError, RuntimeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    logger.info("Probe completed for %s", video_path)
    typer.echo(json.dumps(result, indent=2))


@app.command()
def analyze(
    video_path: str,
    config_path: Path = typer.Option(
        Path("configs/default.yaml"),
        "--config",
        "-c",
        envvar="MARKER_ANALYSIS_CONFIG",
        help=CONFIG_OPTION_HELP,
    ),
    tick_seconds: float | None = typer.Option(
        None,
        help="Playback clock tick interval in seconds. Defaults to sampling.tick_seconds.",
    ),
    annotated_output: Path | None = typer.Option(
        None,
        "--annotated-output",
        "-o",
        help="Optional path for a copy of the video with markers drawn on it.",
    ),
) -> None:
    """Play a video through the analysis session and print the final report."""

    settings = _bootstrap(config_path)
    total_steps = 3 if annotated_output else 2

    try:
        source = _run_with_progress(1, total_steps, "Open video", lambda: VideoFrameSource(video_path))
        with source:
            session = _run_with_progress(
                2,
                total_steps,
                "Analyze playback",
                lambda: analyze_video(source, settings, tick_seconds=tick_seconds),
            )
            annotated_path = None
            if annotated_output:
                annotated_path = _run_with_progress(
                    3,
                    total_steps,
                    "Export annotated video",
                    lambda: export_annotated_video(source, session.markers, annotated_output),
                )
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        logger.error("Analysis failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    report = session.report
    typer.echo(
        json.dumps(
            {
                "status": "ok" if report is not None else "incomplete",
                "video_path": source.metadata.video_path,
                "degraded": session.degraded,
                "sample_count": session.sample_count,
                "marker_count": len(session.markers),
                "report": report.to_dict() if report is not None else None,
                "annotated_video_path": str(annotated_path) if annotated_path else None,
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    app()
