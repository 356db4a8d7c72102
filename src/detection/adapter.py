from __future__ import annotations

import logging
from typing import Any, Callable

from src.models import BoundingBox, Detection

logger = logging.getLogger(__name__)

PipelineFactory = Callable[..., Any]


class DetectorUnavailableError(RuntimeError):
    """Raised when the object-detection model cannot be initialized."""


class DetectorAdapter:
    """Owns one object-detection model for the lifetime of an analysis session.

    ``detect`` never raises: an unloaded model or a failed inference yields no
    detections so the caller can keep sampling in degraded mode.
    """

    def __init__(
        self,
        model_id: str,
        *,
        device: str = "auto",
        pipeline_factory: PipelineFactory | None = None,
    ) -> None:
        self.model_id = model_id
        self.device = device
        self._pipeline_factory = pipeline_factory
        self._pipeline: Any = None

    @property
    def available(self) -> bool:
        return self._pipeline is not None

    def load(self) -> None:
        if self._pipeline is not None:
            return

        factory = self._pipeline_factory or _transformers_pipeline_factory
        try:
            self._pipeline = factory(
                "object-detection",
                model=self.model_id,
                device=_resolve_torch_device(self.device),
            )
        except Exception as exc:
            raise DetectorUnavailableError(
                f"Unable to load object-detection model '{self.model_id}': {exc}"
            ) from exc
        logger.info("Loaded object-detection model %s", self.model_id)

    def detect(self, image: Any) -> list[Detection]:
        if self._pipeline is None:
            return []

        try:
            raw_results = self._pipeline(image)
        except Exception as exc:
            logger.warning("Object detection failed with %s: %s", self.model_id, exc)
            return []
        return parse_detections(raw_results)

    def close(self) -> None:
        self._pipeline = None


def parse_detections(raw_results: Any) -> list[Detection]:
    """Convert ``transformers`` object-detection output into typed detections.

    Entries missing a label, score, or box are skipped.
    """

    if not isinstance(raw_results, list):
        return []

    detections: list[Detection] = []
    for item in raw_results:
        if not isinstance(item, dict):
            continue
        box = item.get("box") or {}
        try:
            detections.append(
                Detection(
                    label=str(item["label"]),
                    confidence=float(item["score"]),
                    box=BoundingBox(
                        xmin=float(box["xmin"]),
                        ymin=float(box["ymin"]),
                        xmax=float(box["xmax"]),
                        ymax=float(box["ymax"]),
                    ),
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed detection entry: %r", item)
    return detections


def _transformers_pipeline_factory(task: str, **kwargs: Any) -> Any:
    from transformers import pipeline

    return pipeline(task, **kwargs)


def _resolve_torch_device(device: str) -> Any:
    import torch

    normalized = device.strip().lower()
    if normalized == "auto":
        normalized = "cuda" if torch.cuda.is_available() else "cpu"

    return torch.device(normalized)
