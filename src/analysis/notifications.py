from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

NotificationKind = Literal["model-loaded", "analysis-started", "analysis-complete", "error"]


@dataclass(frozen=True, slots=True)
class Notification:
    kind: NotificationKind
    message: str


class NotificationSink(Protocol):
    def __call__(self, notification: Notification) -> None: ...


def log_notification(notification: Notification) -> None:
    """Default sink: write status messages to the log."""

    level = logging.WARNING if notification.kind == "error" else logging.INFO
    logger.log(level, "[%s] %s", notification.kind, notification.message)


def dispatch(sink: NotificationSink | None, kind: NotificationKind, message: str) -> None:
    """Deliver a status message without letting the sink affect the caller."""

    if sink is None:
        return
    try:
        sink(Notification(kind=kind, message=message))
    except Exception:
        logger.exception("Notification sink failed for %s message", kind)
