import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = "{time} | {level} | {module}:{function}:{line} | {message} | {extra}"


def setup_logging(level: str, log_path: Optional[str]) -> None:
    """Send logs to stderr, plus a rotating file when ``log_path`` is set.

    Bound context (draw code, seed, client) is printed in the ``{extra}`` column.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    if not log_path:
        return
    logger.add(
        log_path,
        level="DEBUG",
        format=LOG_FORMAT,
        rotation="100 KB",
        compression="zip",
    )
