# Logging: one stderr sink, level from settings.

import sys

from loguru import logger

from .settings import settings

_configured = False

def setup_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with one honoring AA_LOG_LEVEL."""
    global _configured
    if _configured:
        return
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.AA_LOG_LEVEL).upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}",
    )
    _configured = True
