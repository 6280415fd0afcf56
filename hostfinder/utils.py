"""
Utility functions for logging, timing and naming.
"""
import asyncio
import logging
import random
import re
from datetime import datetime, timezone
from typing import Optional, Tuple


def init_logger(
    name: str = "hostfinder",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "hostfinder.log"
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:  # Create file handler only if log_file is provided
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


async def polite_sleep(delay_range: Tuple[float, float]) -> None:
    """Sleep a random duration within delay_range (seconds)."""
    low, high = delay_range
    if high <= 0:
        return
    await asyncio.sleep(random.uniform(low, high))


def safe_location_name(location_query: str) -> str:
    """
    Turn a location query into a file-name stem.

    Only the part before the first comma is used: "Gdansk, Poland" -> "gdansk".
    """
    head = location_query.split(",")[0].strip()
    return re.sub(r"[^a-z0-9]", "_", head, flags=re.I).lower() or "location"


def mask_key(key: str) -> str:
    """Shorten an access key for log output."""
    return f"{key[:10]}..."
