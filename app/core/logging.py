"""
app/core/logging.py: loguru setup

Every module logs through `from loguru import logger`; this only swaps the
default handler for one that honours LOG_LEVEL and, outside development,
emits JSON lines to stdout.
"""
import sys

from loguru import logger


def setup_logging(log_level: str = "INFO", serialize: bool = False) -> None:
    logger.remove()
    logger.add(
        sys.stdout,
        level=log_level.upper(),
        serialize=serialize,
        backtrace=True,
        diagnose=False,
        colorize=not serialize,
    )
