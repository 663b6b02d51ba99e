"""
Logging configuration for the Redis HA entrypoints.

Every record carries the entrypoint tag so the container log reads like the
``logger -s -t <tag>`` output operators already grep for. Output goes to
stderr, next to redis-server's own log once the entrypoint has exec'd.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    component_name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the root logger for one entrypoint run.

    Args:
        component_name: Tag printed on every line (e.g. 'redis-ha-entrypoint')
        level: Root level; the entrypoints pass DEBUG when DEBUG_MODE is on
        log_file: Optional file that receives a copy of every record
    """
    formatter = logging.Formatter(
        f'[%(asctime)s] [{component_name}] %(levelname)s %(name)s - %(message)s',
        datefmt=DATE_FORMAT
    )

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers)
    logging.getLogger().setLevel(level)

    logger = logging.getLogger(component_name)
    logger.debug(f"Logging initialized at {logging.getLevelName(level)}")
    return logger


def flush_logging() -> None:
    """Flush every root handler; the entrypoints exec right after logging."""
    for handler in logging.getLogger().handlers:
        handler.flush()
