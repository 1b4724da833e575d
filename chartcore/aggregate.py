from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Literal, Sequence

import numpy as np

from chartcore.axis import ScaleSet
from chartcore.cache import CacheKey, DerivedCache
from chartcore.model import DataModel
from chartcore.series import ArcSlice, DataPoint
from chartcore.values import base_value, is_number, numeric_or_zero


RatioKind = Literal["arc", "index", "radar", "bar"]


@dataclass(frozen=True)
class MinMax:
    """Extremes of the numeric base values; both are None when nothing is numeric."""

    min: float | None
    max: float | None


@dataclass(frozen=True)
class MinMaxData:
    min: list[DataPoint] = field(default_factory=list)
    max: list[DataPoint] = field(default_factory=list)


def filter_by_value(values: Sequence[DataPoint], target: float | None) -> list[DataPoint]:
    return [v for v in values if base_value(v.value) == target]


def extremum(series_values: Sequence[Sequence[DataPoint]]) -> MinMax:
    lo = math.inf
    hi = -math.inf
    for values in series_values:
        numeric = [float(b) for b in (base_value(v.value) for v in values) if is_number(b)]
        # The first series seeds the fold; later series can only extend it.
        lo = min([lo, *numeric])
        hi = max([hi, *numeric])
    if lo == math.inf:
        return MinMax(min=None, max=None)
    return MinMax(min=lo, max=hi)


class Aggregator:
    """Cached aggregates and display ratios over a :class:`DataModel`."""

    def __init__(self, model: DataModel, *, scales: ScaleSet | None = None, cache: DerivedCache | None = None) -> None:
        self.model = model
        self.scales = scales
        self.cache = cache or DerivedCache(generation=lambda: model.generation)
        self.current_data_max: float | None = None

    def extremum(self, series_values: Sequence[Sequence[DataPoint]] | None = None) -> MinMax:
        if series_values is None:
            series_values = [t.values for t in self.model.targets]
        return extremum(series_values)

    def min_max_data_points(self) -> MinMaxData:
        return self.cache.get_or_build(CacheKey.MIN_MAX, self._build_min_max_data)

    def _build_min_max_data(self) -> MinMaxData:
        data = [t.values for t in self.model.targets]
        bounds = extremum(data)
        if bounds.min is None:
            return MinMaxData()
        lows: list[DataPoint] = []
        highs: list[DataPoint] = []
        for values in data:
            lows.extend(filter_by_value(values, bounds.min))
            highs.extend(filter_by_value(values, bounds.max))
        return MinMaxData(min=lows, max=highs)

    def per_index_stack_total(self) -> list[float] | None:
        """Per-index sums over every series; only defined while stacks are normalized."""
        if not self.model.is_stack_normalized():
            return None
        return self.cache.get_or_build(CacheKey.TOTAL_PER_INDEX, self._build_per_index_total)

    def _build_per_index_total(self) -> list[float]:
        return self._sum_per_index(self.model.targets).tolist()

    def _sum_per_index(self, targets, size: int | None = None) -> np.ndarray:
        if size is None:
            size = 1 + max((v.index for t in targets for v in t.values), default=-1)
        totals = np.zeros(max(size, 0), dtype=np.float64)
        for target in targets:
            for point in target.values:
                if 0 <= point.index < totals.size:
                    totals[point.index] += numeric_or_zero(point.value)
        return totals

    def total_sum(self, subtract_hidden: bool = False) -> float:
        total = self.cache.get_or_build(CacheKey.TOTAL_SUM, self._build_total_sum)
        if subtract_hidden:
            total -= self.hidden_total_sum()
        return total

    def _build_total_sum(self) -> float:
        return float(sum(numeric_or_zero(v.value) for t in self.model.targets for v in t.values))

    def hidden_total_sum(self) -> float:
        hidden = self.model.hidden_target_ids
        if not hidden:
            return 0.0
        return float(sum(numeric_or_zero(v) for v in self.model.data_values(hidden)))

    def hidden_totals_per_index(self, size: int) -> np.ndarray:
        """Hidden-series contribution per index, aligned by each point's own index.

        Hidden series of different lengths only contribute where they have points.
        """
        hidden = [t for t in self.model.targets if not self.model.is_visible(t.id)]
        return self._sum_per_index(hidden, size=size)

    def ratio(self, kind: RatioKind, point: DataPoint | ArcSlice | None, as_percent: bool = False) -> float:
        ratio = 0.0
        if point is not None and self.model.visible_series():
            value = base_value(point.value) if isinstance(point, DataPoint) else point.value
            ratio = point.ratio or (float(value) if is_number(value) else 0.0)

            if kind == "arc":
                ratio = self._arc_ratio(point, value)
            elif kind == "index":
                ratio = self._index_ratio(point, value)
            elif kind == "radar":
                ratio = self._radar_ratio(value)
            elif kind == "bar":
                ratio = self._bar_ratio(point, value)

        return ratio * 100 if as_percent and ratio else ratio

    def _arc_ratio(self, point: DataPoint | ArcSlice, value: float | None) -> float:
        config = self.model.config
        if config.pie_pad_angle:
            total = self.total_sum(subtract_hidden=True)
            return float(value) / total if is_number(value) and total else 0.0
        if not isinstance(point, ArcSlice):
            return 0.0
        half_gauge = self.model.has_type("gauge") and not config.gauge_full_circle
        return (point.end_angle - point.start_angle) / (math.pi * (1 if half_gauge else 2))

    def _index_ratio(self, point: DataPoint | ArcSlice, value: float | None) -> float:
        total = self.per_index_stack_total()
        ratio = 0.0
        if total is not None and 0 <= point.index < len(total):
            totals = np.asarray(total, dtype=np.float64)
            if self.model.hidden_target_ids:
                totals = totals - self.hidden_totals_per_index(totals.size)
            if is_number(value) and totals[point.index] > 0:
                ratio = float(value) / float(totals[point.index])
        point.ratio = ratio
        return ratio

    def _radar_ratio(self, value: float | None) -> float:
        data_max = self.current_data_max
        if data_max is None:
            data_max = self.extremum([t.values for t in self.model.visible_series()]).max
        if not is_number(value) or not data_max:
            return 0.0
        return (max(float(value), 0.0) / data_max) * self.model.config.radar_size_ratio

    def _bar_ratio(self, point: DataPoint | ArcSlice, value: float | None) -> float:
        if self.scales is None or not is_number(value):
            return 0.0
        lo, hi = self.scales.y_domain(point.id)
        span = hi - lo
        return abs(float(value)) / span if span else 0.0
