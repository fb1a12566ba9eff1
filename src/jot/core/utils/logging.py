"""
Logging setup for jot.

Library code only ever calls ``from loguru import logger``; applications call
:func:`setup_logging` (or :func:`setup_logging_from_config`) once at startup
to decide where those messages go.
"""

import logging
import sys

from loguru import logger

CONSOLE_FORMAT = "<level>[{level.name}]</level> {message}"
# Watcher and fetch threads log too, so the file sink records the thread.
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {thread.name} | {name}:{line} | {message}"

# Third-party loggers that use the stdlib logging module and get chatty at DEBUG.
NOISY_LIBRARIES = ("watchdog", "googleapiclient.discovery", "urllib3")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    library_level: str = "WARNING",
) -> None:
    """
    Send jot's log output to stderr and, optionally, a rotating file.

    Args:
        level: Minimum level for jot messages (DEBUG, INFO, WARNING, ERROR).
        log_file: Log file path. None logs to stderr only.
        rotation: Size at which the log file rotates.
        retention: How long rotated files are kept.
        library_level: Level applied to the stdlib loggers in ``NOISY_LIBRARIES``.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            enqueue=True,
        )

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


def setup_logging_from_config(config) -> None:
    """Configure logging from the ``logging`` section of a :class:`~jot.core.config.Config`."""
    setup_logging(
        level=str(config.get("logging.level", "WARNING")).upper(),
        log_file=config.get("logging.file"),
    )
