from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from chartcore.config import ChartConfig
from chartcore.dates import x_number
from chartcore.series import Series
from chartcore.values import base_value, is_number


class AxisCapabilities(Protocol):
    def is_time_series(self) -> bool:
        ...

    def is_categorized(self) -> bool:
        ...

    def is_custom_x(self) -> bool:
        ...


class ScaleSet(Protocol):
    def x(self, value: Any) -> float:
        ...

    def y(self, series_id: str, value: float) -> float:
        ...

    def y_domain(self, series_id: str) -> tuple[float, float]:
        ...


@dataclass(frozen=True)
class ConfiguredAxis:
    kind: str = "indexed"
    has_x_key: bool = False

    def is_time_series(self) -> bool:
        return self.kind == "timeseries"

    def is_categorized(self) -> bool:
        return self.kind == "category"

    def is_custom_x(self) -> bool:
        return not self.is_time_series() and self.has_x_key


def axis_from_config(config: ChartConfig) -> ConfiguredAxis:
    return ConfiguredAxis(kind=config.axis_x_type, has_x_key=bool(config.data_x or config.data_xs))


@dataclass(frozen=True)
class DataLimits:
    xmin: float
    xmax: float
    ymin: float
    ymax: float


@dataclass(frozen=True)
class PlotTransform:
    sx: float
    tx: float
    sy: float
    ty: float


def build_transform(limits: DataLimits, width: int, height: int) -> PlotTransform:
    if width <= 1 or height <= 1:
        raise ValueError("plot viewport width/height must be > 1")
    sx = (width - 1) / (limits.xmax - limits.xmin)
    tx = -limits.xmin * sx
    sy = (height - 1) / (limits.ymax - limits.ymin)
    ty = -limits.ymin * sy
    return PlotTransform(sx=sx, tx=tx, sy=sy, ty=ty)


def compute_limits(targets: Iterable[Series]) -> DataLimits:
    xs: list[float] = []
    ys: list[float] = []
    for target in targets:
        for point in target.values:
            xn = x_number(point.x)
            if xn is not None:
                xs.append(xn)
            base = base_value(point.value)
            if is_number(base):
                ys.append(float(base))
    xmin, xmax = (min(xs), max(xs)) if xs else (0.0, 1.0)
    ymin, ymax = (min(ys), max(ys)) if ys else (0.0, 1.0)
    if xmin == xmax:
        xmin -= 1.0
        xmax += 1.0
    if ymin == ymax:
        ymin -= 1.0
        ymax += 1.0
    return DataLimits(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)


@dataclass
class LinearScales:
    """Linear pixel scales shared by every series; y grows downwards like screen space."""

    limits: DataLimits
    width: int
    height: int
    y_domains: dict[str, tuple[float, float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._transform = build_transform(self.limits, self.width, self.height)

    @classmethod
    def from_targets(cls, targets: Iterable[Series], width: int, height: int) -> "LinearScales":
        return cls(limits=compute_limits(targets), width=width, height=height)

    def x(self, value: Any) -> float:
        xn = x_number(value)
        if xn is None:
            return float("nan")
        return xn * self._transform.sx + self._transform.tx

    def y(self, series_id: str, value: float) -> float:
        if not is_number(value):
            return float("nan")
        return (self.height - 1) - (float(value) * self._transform.sy + self._transform.ty)

    def y_domain(self, series_id: str) -> tuple[float, float]:
        return self.y_domains.get(series_id, (self.limits.ymin, self.limits.ymax))
