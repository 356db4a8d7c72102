from __future__ import annotations

import logging

from src.config import LoggingSettings

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
THIRD_PARTY_LOGGERS = ("PIL", "urllib3", "filelock", "transformers")


def configure_logging(settings: LoggingSettings) -> None:
    """Configure process-wide logging once at startup.

    Model-download and image-decoding libraries are held at WARNING unless the
    configured level is more verbose than INFO.
    """

    level = getattr(logging, settings.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=DEFAULT_LOG_FORMAT, force=True)

    third_party_level = level if level < logging.INFO else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
