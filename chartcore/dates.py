from __future__ import annotations

from datetime import date, datetime, timezone
import logging
from typing import Any

import numpy as np


LOGGER = logging.getLogger(__name__)


def parse_date(value: Any, fmt: str) -> datetime | None:
    """Parse a raw x value for a time-series axis; ``None`` when it cannot be read.

    Numbers are epoch milliseconds. Naive results are pinned to UTC.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, np.datetime64):
        return datetime.fromtimestamp(value.astype("datetime64[ms]").astype(np.int64) / 1000.0, tz=timezone.utc)
    if isinstance(value, (int, float, np.integer, np.floating)):
        try:
            return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                LOGGER.debug("unparseable date %r for format %r", value, fmt)
                return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    return None


def x_number(x: Any) -> float | None:
    """Numeric identity of an x value (timestamps for dates), used for matching and sorting."""
    if isinstance(x, datetime):
        return x.timestamp()
    if isinstance(x, bool) or x is None:
        return None
    if isinstance(x, (int, float, np.integer, np.floating)):
        return float(x)
    return None
