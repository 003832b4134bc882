"""Logging configuration"""

import sys
from pathlib import Path
from typing import Optional, Union
from loguru import logger


def setup_logging(level: str = 'INFO', log_dir: Optional[Union[str, Path]] = None,
                  rotation: str = '1 day', retention: str = '7 days') -> None:
    """
    Configure loguru sinks

    Args:
        level: Console log level
        log_dir: Directory for rotating log files (no file logging if None)
        rotation: When to start a new log file
        retention: How long to keep old log files
    """
    logger.remove()  # Remove default handler

    # Console logging
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
    )

    # File logging
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "clipstore_{time:YYYY-MM-DD}.log",
            rotation=rotation,
            retention=retention,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
        )
