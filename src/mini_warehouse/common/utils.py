import logging
import os
import sys
from datetime import UTC, datetime


def setup_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        stream=sys.stdout,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _curr_date() -> str:
    return _utc_now().replace(microsecond=0).isoformat()


def parse_name_or_id(value: str) -> str | int:
    """
    Path segments made only of digits address a warehouse by id,
    anything else by name.
    """
    value = value.strip()
    if value.isdigit():
        return int(value)
    return value


def capped_timeout(default_seconds: float, cap_seconds: float | None) -> float:
    """
    Request timeout no longer than the caller's remaining deadline.
    `requests` rejects a zero timeout, so the result stays strictly positive.
    """
    if cap_seconds is None:
        return default_seconds
    return max(min(default_seconds, cap_seconds), 0.001)
