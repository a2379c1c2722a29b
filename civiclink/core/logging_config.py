"""Logging setup shared by the API and the standalone scripts."""

import logging

from civiclink.core.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Failures of fire-and-forget side effects (audit log, notifications) land here.
EFFECTS_LOGGER_NAME = "civiclink.effects"


def configure_logging(level: str = None) -> None:
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
