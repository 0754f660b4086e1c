# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Centralized configuration for environment variables."""

import logging
import os

logger = logging.getLogger(__name__)

AUTO_COMMIT_TICKS_ENV = "SCORING_AUTO_COMMIT_TICKS"
TICK_SECONDS_ENV = "SCORING_TICK_SECONDS"
REFRESH_SECONDS_ENV = "SCORING_REFRESH_SECONDS"
RECENT_PLAYS_ENV = "SCORING_RECENT_PLAYS"
LOG_LEVEL_ENV = "SCORING_LOG_LEVEL"

DEFAULT_AUTO_COMMIT_TICKS = 5
DEFAULT_TICK_SECONDS = 1.0
DEFAULT_REFRESH_SECONDS = 5.0
DEFAULT_RECENT_PLAYS = 5
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _read_number(name: str, default, cast, minimum):
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%r: below %s, using %s", name, raw, minimum, default)
        return default
    return value


def get_auto_commit_ticks() -> int:
    """Return the auto-commit countdown length in ticks."""
    return _read_number(AUTO_COMMIT_TICKS_ENV, DEFAULT_AUTO_COMMIT_TICKS, int, 1)


def get_tick_seconds() -> float:
    """Return the wall-clock length of one countdown tick."""
    return _read_number(TICK_SECONDS_ENV, DEFAULT_TICK_SECONDS, float, 0.01)


def get_refresh_seconds() -> float:
    """Return the background refresh interval."""
    return _read_number(REFRESH_SECONDS_ENV, DEFAULT_REFRESH_SECONDS, float, 0.1)


def get_recent_plays() -> int:
    """Return how many plays the live feed shows."""
    return _read_number(RECENT_PLAYS_ENV, DEFAULT_RECENT_PLAYS, int, 1)


def get_log_level() -> str:
    """Return the configured log level name, or INFO if unrecognised."""
    level = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    if level not in logging.getLevelNamesMapping():
        logger.warning("Ignoring %s=%r: unknown level", LOG_LEVEL_ENV, level)
        return DEFAULT_LOG_LEVEL
    return level


def configure_logging() -> None:
    """Configure root logging for an entry point."""
    logging.basicConfig(level=get_log_level(), format=LOG_FORMAT)
