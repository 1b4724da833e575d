from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
import math
from typing import Any, TypeAlias

import numpy as np

from chartcore.types import RANGE_TYPES


@dataclass(frozen=True)
class RangeValue:
    """Area-range value: the line is drawn through ``mid``, the band spans ``low``..``high``."""

    high: float | None
    mid: float | None
    low: float | None

    def member(self, name: str) -> float | None:
        if name not in ("high", "mid", "low"):
            return None
        return getattr(self, name)

    def as_list(self) -> list[float | None]:
        return [self.high, self.mid, self.low]


@dataclass(frozen=True)
class BubbleValue:
    """Bubble value with a plotted ``y`` and a size dimension ``z``."""

    y: float | None
    z: float | None


PointValue: TypeAlias = float | RangeValue | BubbleValue | None


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, np.integer, np.floating)):
        return math.isfinite(float(value))
    return False


def coerce_number(raw: Any) -> float | None:
    """Numeric coercion where anything unusable becomes a gap (``None``)."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        raw = float(raw)
    if isinstance(raw, (int, float, np.integer, np.floating)):
        out = float(raw)
        return out if math.isfinite(out) else None
    if isinstance(raw, str):
        try:
            out = float(raw.strip())
        except ValueError:
            return None
        return out if math.isfinite(out) else None
    return None


def coerce_value(raw: Any, *, chart_type: str) -> PointValue:
    if isinstance(raw, (RangeValue, BubbleValue)):
        return raw
    if chart_type in RANGE_TYPES:
        if isinstance(raw, Mapping) and "high" in raw:
            return RangeValue(
                high=coerce_number(raw.get("high")),
                mid=coerce_number(raw.get("mid")),
                low=coerce_number(raw.get("low")),
            )
        if _is_list_like(raw) and len(raw) == 3:
            high, mid, low = raw
            return RangeValue(high=coerce_number(high), mid=coerce_number(mid), low=coerce_number(low))
    if chart_type == "bubble":
        if isinstance(raw, Mapping) and ("y" in raw or "z" in raw):
            return BubbleValue(y=coerce_number(raw.get("y")), z=coerce_number(raw.get("z")))
        if _is_list_like(raw) and len(raw) == 2:
            y, z = raw
            return BubbleValue(y=coerce_number(y), z=coerce_number(z))
    return coerce_number(raw)


def base_value(value: PointValue) -> float | None:
    if isinstance(value, RangeValue):
        return value.mid
    if isinstance(value, BubbleValue):
        return value.y
    return value


def numeric_or_zero(value: PointValue) -> float:
    base = base_value(value)
    return float(base) if is_number(base) else 0.0


def flatten_value(value: PointValue) -> list[float | None]:
    if isinstance(value, RangeValue):
        return value.as_list()
    if isinstance(value, BubbleValue):
        return [value.y]
    return [value]


def _is_list_like(raw: Any) -> bool:
    if isinstance(raw, np.ndarray):
        return raw.ndim == 1
    return isinstance(raw, Sequence) and not isinstance(raw, (str, bytes, bytearray))
