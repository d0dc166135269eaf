"""Logging setup for filerouter, driven by the ``logging`` config section."""

import sys
from typing import Optional

from loguru import logger

from filerouter.config.schema import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Optional[LoggingConfig] = None, verbose: bool = False) -> None:
    """
    Replace loguru's default sink with a console sink and a rotating file sink.

    Args:
        settings: The ``logging`` config section (defaults when omitted)
        verbose: Force DEBUG on the console regardless of ``settings.level``
    """
    settings = settings or LoggingConfig()
    logger.remove()

    console_level = "DEBUG" if verbose or settings.verbose else settings.level.upper()
    logger.add(sys.stderr, level=console_level, format=CONSOLE_FORMAT, backtrace=True, diagnose=False)

    log_file = settings.log_path
    log_file.parent.mkdir(parents=True, exist_ok=True)
    # Per-signal DEBUG decisions always reach the file
    logger.add(
        str(log_file),
        level=settings.file_level.upper(),
        format=FILE_FORMAT,
        rotation=settings.rotation,
        retention=settings.retention,
        compression="zip",
        enqueue=True,
    )

    logger.debug(f"Logging to stderr ({console_level}) and {log_file} ({settings.file_level.upper()})")
