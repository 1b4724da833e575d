from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeAlias

from chartcore.values import PointValue, base_value


XValue: TypeAlias = float | int | datetime | str


@dataclass
class DataPoint:
    x: XValue
    value: PointValue
    id: str
    index: int
    name: str | None = None
    ratio: float | None = None

    @property
    def base(self) -> float | None:
        return base_value(self.value)


@dataclass
class Series:
    id: str
    id_org: str
    values: list[DataPoint] = field(default_factory=list)


@dataclass(frozen=True)
class XSlot:
    """A position on the shared x domain."""

    x: XValue
    index: int


@dataclass
class ArcSlice:
    """A rendered pie/donut/gauge slice; angles are in radians."""

    id: str
    value: float | None
    start_angle: float
    end_angle: float
    index: int = 0
    ratio: float | None = None
