from __future__ import annotations

from functools import cmp_to_key
import logging
from typing import Any, Iterable, Mapping, Sequence

from chartcore.adapters.steps import convert_values_to_step
from chartcore.axis import AxisCapabilities, axis_from_config
from chartcore.config import ChartConfig
from chartcore.dates import parse_date, x_number
from chartcore.series import DataPoint, Series, XSlot, XValue
from chartcore.types import ARC_TYPES, RANGE_TYPES, TYPE_FAMILIES
from chartcore.values import (
    BubbleValue,
    RangeValue,
    base_value,
    coerce_value,
    flatten_value,
    is_number,
    numeric_or_zero,
)

LOGGER = logging.getLogger(__name__)


def _is_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and value != value:
        return False
    return True


def _x_sort_key(x: Any) -> tuple[int, float | str]:
    xn = x_number(x)
    if xn is not None:
        return (0, xn)
    return (1, str(x))


def _same_x(a: Any, b: Any) -> bool:
    an = x_number(a)
    bn = x_number(b)
    if an is not None and bn is not None:
        return an == bn
    return a == b


class DataModel:
    """Normalized series storage with x resolution and visibility bookkeeping.

    Every mutation of the series collection or the visibility sets bumps
    ``generation`` so derived-value caches can detect staleness.
    """

    def __init__(self, config: ChartConfig | None = None, axis: AxisCapabilities | None = None) -> None:
        self.config = config or ChartConfig()
        self.axis = axis or axis_from_config(self.config)
        self.targets: list[Series] = []
        self.xs: dict[str, list[Any]] = {}
        self.axis_xs: list[XValue] = []
        self.hidden_target_ids: list[str] = []
        self.hidden_legend_ids: list[str] = []
        self._shown_once: set[str] = set()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def touch(self) -> None:
        self._generation += 1

    # -- x keys ---------------------------------------------------------------

    def is_x(self, key: str) -> bool:
        config = self.config
        data_key = bool(config.data_x) and key == config.data_x
        exist_value = bool(config.data_xs) and key in config.data_xs.values()
        return data_key or exist_value

    def is_not_x(self, key: str) -> bool:
        return not self.is_x(key)

    def x_key(self, series_id: str) -> str | None:
        if self.config.data_x:
            return self.config.data_x
        if self.config.data_xs:
            return self.config.data_xs.get(series_id)
        return None

    def x_values_of_key(self, key: str, targets: Sequence[Series] | None) -> list[Any] | None:
        x_values = None
        for series_id in self.map_to_ids(targets or []):
            if self.x_key(series_id) == key:
                x_values = self.xs.get(series_id)
        return x_values

    def x_value_at(self, series_id: str, index: int) -> Any:
        raw = self.xs.get(series_id)
        if raw and 0 <= index < len(raw) and _is_value(raw[index]):
            return raw[index]
        return index

    def other_target_xs(self) -> list[Any] | None:
        for series_id in self.xs:
            return self.xs[series_id]
        return None

    def other_target_x(self, index: int) -> Any:
        xs = self.other_target_xs()
        return xs[index] if xs and 0 <= index < len(xs) else None

    def add_xs(self, xs: Mapping[str, str]) -> None:
        for series_id, key in xs.items():
            self.config.data_xs[series_id] = key

    def is_multiple_x(self) -> bool:
        return (
            bool(self.config.data_xs)
            or not self.config.data_x_sort
            or self.has_type("bubble")
            or self.has_type("scatter")
        )

    def generate_target_x(self, raw_x: Any, series_id: str, index: int) -> XValue:
        axis = self.axis
        if axis.is_categorized():
            x: Any = index
        else:
            x = raw_x if _is_value(raw_x) else index

        if axis.is_time_series():
            source = raw_x if _is_value(raw_x) else self.x_value_at(series_id, index)
            parsed = parse_date(source, self.config.data_x_format)
            if parsed is None:
                parsed = parse_date(index, self.config.data_x_format)
            x = parsed
        elif axis.is_custom_x() and not axis.is_categorized():
            number = x_number(raw_x) if not isinstance(raw_x, str) else _float_or_none(raw_x)
            x = number if number is not None else index
        return x

    def update_target_x(self, targets: Iterable[Series], x: Sequence[Any]) -> None:
        for target in targets:
            for i, point in enumerate(target.values):
                raw = x[i] if i < len(x) else None
                point.x = self.generate_target_x(raw, target.id, i)
            self.xs[target.id] = list(x)
        self.touch()

    def update_target_xs(self, targets: Iterable[Series], xs: Mapping[str, Sequence[Any]]) -> None:
        for target in targets:
            if xs.get(target.id):
                self.update_target_x([target], xs[target.id])

    def update_xs(self, values: Sequence[DataPoint | XSlot]) -> None:
        if values:
            self.axis_xs = [v.x for v in values]

    def prev_x(self, index: int) -> XValue | None:
        return self.axis_xs[index - 1] if 0 <= index - 1 < len(self.axis_xs) else None

    def next_x(self, index: int) -> XValue | None:
        return self.axis_xs[index + 1] if 0 <= index + 1 < len(self.axis_xs) else None

    # -- loading ------------------------------------------------------------------

    def convert_columns_to_targets(self, columns: Mapping[str, Sequence[Any]]) -> list[Series]:
        """Build series from named columns; x columns are consumed, every other column is a series."""
        config = self.config
        ids = [key for key in columns if self.is_not_x(key)]
        xs: dict[str, list[Any]] = {}
        for series_id in ids:
            key = self.x_key(series_id)
            if key is None:
                continue
            if key not in columns:
                # Points of this series fall back to their ordinal index.
                LOGGER.warning("x column %r not found for %s", key, series_id)
                continue
            xs[series_id] = list(columns[key])
        self.xs.update(xs)

        targets: list[Series] = []
        for series_id in ids:
            converted_id = config.data_id_converter(series_id) if config.data_id_converter else series_id
            chart_type = self.type_of(converted_id)
            raw_values = list(columns[series_id])
            if converted_id != series_id and series_id in self.xs:
                self.xs[converted_id] = self.xs[series_id]
            values = [
                DataPoint(
                    x=self.generate_target_x(self._raw_x(series_id, i), converted_id, i),
                    value=coerce_value(raw, chart_type=chart_type),
                    id=converted_id,
                    index=i,
                )
                for i, raw in enumerate(raw_values)
            ]
            targets.append(Series(id=converted_id, id_org=series_id, values=values))

        if config.data_x_sort and not self.axis.is_categorized():
            for target in targets:
                target.values.sort(key=lambda v: _x_sort_key(v.x))
                for i, point in enumerate(target.values):
                    point.index = i
        LOGGER.debug("converted %d columns into %d series", len(columns), len(targets))
        return targets

    def _raw_x(self, series_id: str, index: int) -> Any:
        raw = self.xs.get(series_id)
        if raw is None or index >= len(raw):
            return None
        return raw[index]

    def replace_targets(self, targets: Sequence[Series]) -> None:
        ids = {t.id for t in targets}
        self.targets = list(targets)
        self.xs = {series_id: x for series_id, x in self.xs.items() if series_id in ids}
        self._shown_once &= ids
        self.touch()
        LOGGER.debug("series collection replaced: %s", [t.id for t in targets])

    def load_targets(self, targets: Sequence[Series]) -> None:
        """Merge series by id: existing ids are replaced in place, new ids are appended."""
        by_id = {t.id: t for t in targets}
        merged = [by_id.pop(t.id, t) for t in self.targets]
        merged.extend(t for t in targets if t.id in by_id)
        for target in targets:
            self._shown_once.discard(target.id)
        self.targets = merged
        self.touch()
        LOGGER.debug("loaded series: %s", [t.id for t in targets])

    def remove_targets(self, ids: str | Sequence[str] | None = None) -> list[str]:
        removed = self.map_to_target_ids(ids)
        self.targets = [t for t in self.targets if t.id not in removed]
        for series_id in removed:
            self.xs.pop(series_id, None)
            self._shown_once.discard(series_id)
        self.hidden_target_ids = [i for i in self.hidden_target_ids if i not in removed]
        self.hidden_legend_ids = [i for i in self.hidden_legend_ids if i not in removed]
        self.touch()
        return removed

    # -- types --------------------------------------------------------------------

    def type_of(self, series_id: str) -> str:
        return self.config.data_types.get(series_id, self.config.data_type)

    def _types_in(self, targets: Sequence[Series] | None) -> set[str]:
        targets = self.targets if targets is None else targets
        if targets:
            return {self.type_of(t.id) for t in targets}
        if self.config.data_types:
            return set(self.config.data_types.values())
        return {self.config.data_type}

    def has_type(self, chart_type: str, targets: Sequence[Series] | None = None) -> bool:
        return chart_type in self._types_in(targets)

    def has_type_of(self, family: str, targets: Sequence[Series] | None = None) -> bool:
        members = TYPE_FAMILIES.get(family, frozenset())
        return bool(self._types_in(targets) & members)

    def has_arc_type(self, targets: Sequence[Series] | None = None) -> bool:
        return bool(self._types_in(targets) & ARC_TYPES)

    def has_radar(self) -> bool:
        return self.has_type("radar")

    def has_axis(self) -> bool:
        return not self.has_arc_type() and not self.has_radar()

    def has_point_type(self) -> bool:
        return self.has_type_of("Line") or self.has_type("bubble") or self.has_type("scatter")

    def is_bar_type(self, series_id: str) -> bool:
        return self.type_of(series_id) == "bar"

    def is_bubble_type(self, series_id: str) -> bool:
        return self.type_of(series_id) == "bubble"

    def is_area_range_type(self, series_id: str) -> bool:
        return self.type_of(series_id) in RANGE_TYPES

    def is_stack_normalized(self) -> bool:
        return bool(self.config.data_stack_normalize and self.config.data_groups)

    def is_grouped(self, series_id: str | None = None) -> bool:
        groups = self.config.data_groups
        if series_id is None:
            return len(groups) > 0
        return any(series_id in group and len(group) > 1 for group in groups)

    def has_data_label(self) -> bool:
        labels = self.config.data_labels
        if isinstance(labels, bool):
            return labels
        return bool(labels)

    def convert_values_to_step(
        self, values: Sequence[DataPoint], step_type: str | None = None
    ) -> list[DataPoint]:
        return convert_values_to_step(
            values,
            step_type=step_type or self.config.line_step_type,
            categorized=self.axis.is_categorized(),
        )

    # -- lookups ------------------------------------------------------------------

    def add_name(self, point: DataPoint | None) -> DataPoint | None:
        if point is not None:
            point.name = self.config.data_names.get(point.id, point.id)
        return point

    @staticmethod
    def value_at(values: Sequence[DataPoint], index: int) -> DataPoint | None:
        for point in values:
            if point.index == index:
                return point
        return None

    def all_values_on_index(self, index: int, filter_null: bool = False) -> list[DataPoint | None]:
        values = [self.add_name(self.value_at(t.values, index)) for t in self.visible_series()]
        if filter_null:
            values = [v for v in values if v is not None and _is_value(base_value(v.value))]
        return values

    def index_by_x(self, x: Any, based_x: Sequence[Any] | None = None) -> int | None:
        if based_x is not None:
            for i, candidate in enumerate(based_x):
                if _same_x(candidate, x):
                    return i
            return -1
        matches = self.filter_by_x(self.targets, x)
        return matches[0].index if matches else None

    def max_data_count(self) -> int:
        return max((len(t.values) for t in self.targets), default=0)

    def max_data_count_target(self) -> list[XSlot] | list[DataPoint]:
        targets = self.visible_series()
        if len(targets) > 1:
            return [XSlot(x=x, index=i) for i, x in enumerate(self.unique_sorted_x(targets))]
        if targets:
            return targets[0].values
        return []

    @staticmethod
    def map_to_ids(targets: Sequence[Series]) -> list[str]:
        return [t.id for t in targets]

    def map_to_target_ids(self, ids: str | Sequence[str] | None) -> list[str]:
        if ids is None:
            return self.map_to_ids(self.targets)
        if isinstance(ids, str):
            return [ids]
        return list(ids)

    def has_target(self, targets: Sequence[Series], series_id: str) -> bool:
        return series_id in self.map_to_ids(targets)

    def series_by_id(self, series_id: str) -> Series | None:
        for target in self.targets:
            if target.id == series_id:
                return target
        return None

    # -- visibility ---------------------------------------------------------------

    def is_visible(self, series_id: str) -> bool:
        return series_id not in self.hidden_target_ids

    def is_legend_visible(self, series_id: str) -> bool:
        return series_id not in self.hidden_legend_ids

    def visible_series(self, targets: Sequence[Series] | None = None) -> list[Series]:
        source = self.targets if targets is None else targets
        return [t for t in source if self.is_visible(t.id)]

    def add_hidden_target_ids(self, ids: str | Sequence[str]) -> None:
        self.hidden_target_ids = _merge_unique(self.hidden_target_ids, self.map_to_target_ids(ids))
        self.touch()
        LOGGER.debug("hidden targets: %s", self.hidden_target_ids)

    def remove_hidden_target_ids(self, ids: str | Sequence[str]) -> None:
        removed = set(self.map_to_target_ids(ids))
        self.hidden_target_ids = [i for i in self.hidden_target_ids if i not in removed]
        self.touch()
        LOGGER.debug("hidden targets: %s", self.hidden_target_ids)

    def add_hidden_legend_ids(self, ids: str | Sequence[str]) -> None:
        self.hidden_legend_ids = _merge_unique(self.hidden_legend_ids, self.map_to_target_ids(ids))

    def remove_hidden_legend_ids(self, ids: str | Sequence[str]) -> None:
        removed = set(self.map_to_target_ids(ids))
        self.hidden_legend_ids = [i for i in self.hidden_legend_ids if i not in removed]

    def mark_shown(self, ids: Iterable[str]) -> None:
        self._shown_once.update(ids)

    def is_shown_once(self, series_id: str) -> bool:
        return series_id in self._shown_once

    # -- x domain -----------------------------------------------------------------

    def unique_sorted_x(self, targets: Sequence[Series] | None) -> list[XValue]:
        if not targets:
            return []
        unique: dict[Any, XValue] = {}
        for target in targets:
            for point in target.values:
                key = _x_sort_key(point.x)
                unique.setdefault(key, point.x)
        return [unique[key] for key in sorted(unique)]

    def align_indices_to_ticks(self, tick_values: Sequence[Any]) -> None:
        """Re-index every point by the position of its x in ``tick_values``.

        Points whose x is not a tick keep their ordinal position.
        """
        tick_index: dict[Any, int] = {}
        for i, tick in enumerate(tick_values):
            x = getattr(tick, "x", tick)
            tick_index[_x_sort_key(x)] = i
        for target in self.targets:
            for position, point in enumerate(target.values):
                point.index = tick_index.get(_x_sort_key(point.x), position)
        self.touch()

    def filter_by_x(self, targets: Sequence[Series], x: Any) -> list[DataPoint]:
        return [v for t in targets for v in t.values if _same_x(v.x, x)]

    @staticmethod
    def filter_remove_null(values: Sequence[DataPoint]) -> list[DataPoint]:
        return [v for v in values if _is_value(base_value(v.value))]

    @staticmethod
    def filter_by_x_domain(targets: Sequence[Series], x_domain: tuple[Any, Any]) -> list[Series]:
        lo = _x_sort_key(x_domain[0])
        hi = _x_sort_key(x_domain[1])
        return [
            Series(
                id=t.id,
                id_org=t.id_org,
                values=[v for v in t.values if lo <= _x_sort_key(v.x) <= hi],
            )
            for t in targets
        ]

    # -- value queries ------------------------------------------------------------

    def values_as_id_keyed(self, targets: Sequence[Series]) -> dict[str, list[float | None]]:
        multiple_x = self.is_multiple_x()
        xs = self.unique_sorted_x(targets) if multiple_x else None
        out: dict[str, list[float | None]] = {}
        for target in targets:
            data: list[float | None] = []
            for point in target.values:
                value = point.value
                if isinstance(value, (RangeValue, BubbleValue)):
                    data.extend(flatten_value(value))
                elif xs is not None:
                    index = self.index_by_x(point.x, xs)
                    if index is None or index < 0:
                        continue
                    if index >= len(data):
                        data.extend([None] * (index + 1 - len(data)))
                    data[index] = value
                else:
                    data.append(value)
            out[target.id] = data
        return out

    def data_values(self, ids: str | Sequence[str] | None = None) -> list[float | None]:
        """Base values of the given series (all series when ``ids`` is None), flattened in order."""
        wanted = self.map_to_target_ids(ids)
        return [base_value(v.value) for t in self.targets if t.id in wanted for v in t.values]

    def check_value_in_targets(self, targets: Sequence[Series], checker) -> bool:
        for target in targets:
            for point in target.values:
                base = base_value(point.value)
                if is_number(base) and checker(base):
                    return True
        return False

    def has_multi_targets(self) -> bool:
        return len(self.visible_series()) > 1

    def has_negative_value_in_targets(self, targets: Sequence[Series]) -> bool:
        return self.check_value_in_targets(targets, lambda v: v < 0)

    def has_positive_value_in_targets(self, targets: Sequence[Series]) -> bool:
        return self.check_value_in_targets(targets, lambda v: v > 0)

    # -- ordering -----------------------------------------------------------------

    def _check_order(self, order_type: str) -> bool:
        order = self.config.data_order
        return isinstance(order, str) and order.lower() == order_type

    def is_order_desc(self) -> bool:
        return self._check_order("desc")

    def is_order_asc(self) -> bool:
        return self._check_order("asc")

    def order_targets(self, targets: Sequence[Series]) -> list[Series]:
        ordered = list(targets)
        order_asc = self.is_order_asc()
        order_desc = self.is_order_desc()
        if order_asc or order_desc:
            # Stacks are drawn bottom-up: "asc" puts the largest total first.
            def total(t: Series) -> float:
                return sum(abs(numeric_or_zero(v.value)) for v in t.values)

            ordered.sort(key=total, reverse=order_asc)
        elif callable(self.config.data_order):
            ordered.sort(key=cmp_to_key(self.config.data_order))
        return ordered


def _merge_unique(current: list[str], extra: Iterable[str]) -> list[str]:
    out = list(current)
    for item in extra:
        if item not in out:
            out.append(item)
    return out


def _float_or_none(text: str) -> float | None:
    try:
        return float(text)
    except ValueError:
        return None
