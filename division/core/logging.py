"""Loguru setup shared by the CLI and the API server."""

import sys
from pathlib import Path

from loguru import logger

from division.core.config import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings | None = None) -> None:
    """Configure loguru based on settings.

    Replaces the default handler with a console sink and, when a log
    directory is configured, a daily-rotated file sink.

    Args:
        settings: Optional settings override.
    """
    settings = settings or get_settings()
    logger.remove()

    level = "DEBUG" if settings.division_debug else settings.division_log_level

    logger.add(
        sys.stderr,
        level=level,
        format=LOG_FORMAT,
        colorize=True,
    )

    if settings.division_log_dir:
        logs_dir = Path(settings.division_log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            str(logs_dir / "division_{time:YYYY-MM-DD}.log"),
            rotation="1 day",
            retention="7 days",
            level=settings.division_log_level,
            format=LOG_FORMAT,
        )
