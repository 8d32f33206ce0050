"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from pulse_fetch.config import settings

# Remove default handler
logger.remove()

# Add console handler with color
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=settings.app_log_level.upper(),
    colorize=True,
)

if settings.log_file_enabled:
    LOG_DIR = Path(settings.log_dir)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.add(
        LOG_DIR / "pulse_fetch_{time:YYYY-MM-DD}.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG",
        rotation="00:00",  # New file at midnight
        retention="7 days",
        compression="zip",
    )

# Reduce noise from network libraries
for logger_name in ("httpx", "httpcore", "hpack", "asyncio"):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_scrape_attempt(
    strategy: str,
    url: str,
    status: str,
    duration_ms: int = 0,
    error: Optional[str] = None,
) -> None:
    """Log one backend attempt inside the fallback chain."""
    attempt = {
        "timestamp": _now(),
        "strategy": strategy,
        "url": url,
        "status": status,
        "duration_ms": duration_ms,
        "error": error,
    }
    if error:
        logger.debug(f"SCRAPE_ATTEMPT_FAILED: {attempt}")
    else:
        logger.info(f"SCRAPE_ATTEMPT: {attempt}")


def log_store_operation(
    operation: str,
    store: str,
    status: str,
    details: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Log a strategy-config or resource-store operation."""
    op_data = {
        "timestamp": _now(),
        "operation": operation,
        "store": store,
        "status": status,
        "details": details,
        "error": error,
    }
    if error:
        logger.warning(f"STORE_OPERATION_FAILED: {op_data}")
    else:
        logger.debug(f"STORE_OPERATION: {op_data}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": _now(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {event_data}")
