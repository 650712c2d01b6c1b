"""
Loguru setup for the CLI and for apps embedding bolta.

Library modules only do ``from loguru import logger``.  Sinks are
configured once per process, here.
"""

import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = "<level>[{level.name}]</level> {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{line} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    console: bool = True,
) -> list[int]:
    """
    Replace loguru's sinks with a stderr sink and an optional rotating file.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to a log file. If None, nothing is written to disk.
        rotation: Size at which the log file is rotated.
        retention: How long rotated files are kept.
        console: Whether to log to stderr at all.

    Returns:
        The loguru sink ids that were added.
    """
    level = level.upper()
    logger.remove()
    sink_ids = []
    if console:
        sink_ids.append(logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT))
    if log_file:
        sink_ids.append(
            logger.add(log_file, level=level, format=FILE_FORMAT, rotation=rotation, retention=retention)
        )
    return sink_ids


def setup_logging_from_config(config: Any) -> list[int]:
    """Apply the ``logging`` section of a :class:`~bolta.core.config.Config`."""
    return setup_logging(
        level=config.get("logging.level") or "WARNING",
        log_file=config.get("logging.file"),
    )
