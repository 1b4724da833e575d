from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence

from chartcore.adapters import columns_from_column_lists, columns_from_rows, normalize_columns
from chartcore.aggregate import Aggregator, MinMax, MinMaxData, RatioKind, filter_by_value
from chartcore.axis import AxisCapabilities, ScaleSet
from chartcore.config import ChartConfig
from chartcore.errors import ChartDataError
from chartcore.hit_test import (
    BarRegions,
    EventRect,
    HitTestContext,
    Position,
    data_index_from_position,
    find_closest_from_targets,
    find_same_x_values,
)
from chartcore.model import DataModel
from chartcore.points import PointRegistry
from chartcore.redraw import (
    HeadlessRenderLayer,
    RedrawOptions,
    RedrawOrchestrator,
    RedrawPass,
    RedrawPlugin,
    RenderLayer,
    SurfaceState,
)
from chartcore.series import ArcSlice, DataPoint, Series
from chartcore.transition import TransitionClock

LOGGER = logging.getLogger(__name__)

# Data changes re-layout the x domain and the legend.
_DATA_CHANGE_REDRAW = RedrawOptions(with_update_org_x_domain=True, with_update_x_domain=True, with_legend=True)


class Chart:
    """A chart instance: owns the data model and routes every change through one redraw entry point."""

    def __init__(
        self,
        config: ChartConfig | None = None,
        *,
        axis: AxisCapabilities | None = None,
        scales: ScaleSet | None = None,
        renderer: RenderLayer | None = None,
        clock: TransitionClock | None = None,
        is_surface_visible: Callable[[], bool] = lambda: True,
        plugins: Sequence[RedrawPlugin] = (),
        bar_regions: BarRegions | None = None,
    ) -> None:
        self.config = config or ChartConfig()
        self.model = DataModel(self.config, axis)
        self.aggregator = Aggregator(self.model, scales=scales)
        self.bar_regions = bar_regions or BarRegions()
        self.points = PointRegistry.from_config(self.config, is_bubble=self.model.is_bubble_type)
        self.state = SurfaceState()
        self.orchestrator = RedrawOrchestrator(
            self.model,
            renderer or HeadlessRenderLayer(),
            clock=clock,
            is_surface_visible=is_surface_visible,
            plugins=plugins,
            state=self.state,
            api=self,
        )

    @property
    def scales(self) -> ScaleSet | None:
        return self.aggregator.scales

    @scales.setter
    def scales(self, scales: ScaleSet | None) -> None:
        self.aggregator.scales = scales

    @property
    def targets(self) -> list[Series]:
        return self.model.targets

    @property
    def clock(self) -> TransitionClock:
        return self.orchestrator.clock

    # -- data mutation --------------------------------------------------------

    def load(
        self,
        data: Any = None,
        *,
        names: Sequence[str] | None = None,
        rows: Sequence[Sequence[Any]] | None = None,
        columns: Sequence[Sequence[Any]] | None = None,
        replace: bool = False,
        redraw: bool = True,
    ) -> list[Series]:
        """Load tabular data. Series with known ids are replaced, new ids appended.

        With ``replace=True`` the whole series collection is swapped instead.
        """
        if rows is not None:
            table = columns_from_rows(rows)
        elif columns is not None:
            table = columns_from_column_lists(columns)
        elif data is not None:
            table = normalize_columns(data, names=names)
        else:
            raise ChartDataError("load() requires data, rows or columns")

        targets = self.model.convert_columns_to_targets(table)
        if replace:
            self.model.replace_targets(targets)
        else:
            self.model.load_targets(targets)
        LOGGER.info("loaded %d series (%s)", len(targets), "replace" if replace else "merge")
        if redraw:
            self.orchestrator.redraw(_DATA_CHANGE_REDRAW)
        return targets

    def replace_series(self, targets: Sequence[Series], *, redraw: bool = True) -> None:
        self.model.replace_targets(targets)
        if redraw:
            self.orchestrator.redraw(_DATA_CHANGE_REDRAW)

    def unload(self, ids: str | Sequence[str] | None = None, *, redraw: bool = True) -> list[str]:
        removed = self.model.remove_targets(ids)
        if redraw:
            self.orchestrator.redraw(_DATA_CHANGE_REDRAW)
        return removed

    def xs(self, xs: Mapping[str, Sequence[Any]] | None = None) -> dict[str, list[Any]]:
        """Merge explicit x values per series id; returns the current x map."""
        if xs:
            self.model.update_target_xs(self.model.targets, xs)
            self.orchestrator.redraw(RedrawOptions(with_update_org_x_domain=True, with_update_x_domain=True))
        return dict(self.model.xs)

    def hide(self, ids: str | Sequence[str] | None = None, *, with_legend: bool = False) -> None:
        target_ids = self.model.map_to_target_ids(ids)
        self.model.add_hidden_target_ids(target_ids)
        if with_legend:
            self.model.add_hidden_legend_ids(target_ids)
        self.orchestrator.redraw(_DATA_CHANGE_REDRAW)

    def show(self, ids: str | Sequence[str] | None = None, *, with_legend: bool = False) -> None:
        target_ids = self.model.map_to_target_ids(ids)
        self.model.remove_hidden_target_ids(target_ids)
        if with_legend:
            self.model.remove_hidden_legend_ids(target_ids)
        self.orchestrator.redraw(_DATA_CHANGE_REDRAW)

    def toggle(self, ids: str | Sequence[str] | None = None, *, with_legend: bool = False) -> None:
        target_ids = self.model.map_to_target_ids(ids)
        to_show = [i for i in target_ids if not self.model.is_visible(i)]
        to_hide = [i for i in target_ids if self.model.is_visible(i)]
        if to_show:
            self.model.remove_hidden_target_ids(to_show)
            if with_legend:
                self.model.remove_hidden_legend_ids(to_show)
        if to_hide:
            self.model.add_hidden_target_ids(to_hide)
            if with_legend:
                self.model.add_hidden_legend_ids(to_hide)
        self.orchestrator.redraw(_DATA_CHANGE_REDRAW)

    def shown(self) -> list[str]:
        return self.model.map_to_ids(self.model.visible_series())

    def names(self, names: Mapping[str, str] | None = None) -> dict[str, str]:
        if names:
            self.config.data_names.update(names)
            self.orchestrator.redraw(RedrawOptions(with_legend=True))
        return dict(self.config.data_names)

    # -- aggregate queries ----------------------------------------------------

    def data_values(self, ids: str | Sequence[str] | None = None) -> list[float | None]:
        return self.model.data_values(ids)

    def min_max(self, targets: Sequence[Series] | None = None) -> MinMax:
        return self.aggregator.extremum(None if targets is None else [t.values for t in targets])

    def min_max_data_points(self) -> MinMaxData:
        return self.aggregator.min_max_data_points()

    def stack_totals(self) -> list[float] | None:
        return self.aggregator.per_index_stack_total()

    def total_sum(self, subtract_hidden: bool = False) -> float:
        return self.aggregator.total_sum(subtract_hidden)

    def ratio(self, kind: RatioKind, point: DataPoint | ArcSlice | None, as_percent: bool = False) -> float:
        return self.aggregator.ratio(kind, point, as_percent)

    def points_with_value(self, series_id: str, value: float | None) -> list[DataPoint]:
        target = self.model.series_by_id(series_id)
        return filter_by_value(target.values, value) if target is not None else []

    # -- hit testing ----------------------------------------------------------

    def hit_test_context(self) -> HitTestContext | None:
        if self.scales is None:
            return None
        return HitTestContext(
            scales=self.scales,
            sensitivity=self.config.point_sensitivity,
            rotated=self.config.axis_rotated,
            is_bar=self.model.is_bar_type,
            within_bar=self.bar_regions.contains,
        )

    def nearest_point(self, pos: Position, targets: Sequence[Series] | None = None) -> DataPoint | None:
        ctx = self.hit_test_context()
        if ctx is None:
            LOGGER.debug("nearest_point called without scales; no selection")
            return None
        return find_closest_from_targets(self.model.visible_series(targets), pos, ctx)

    def points_sharing_x(self, values: Sequence[DataPoint], index: int) -> list[DataPoint]:
        return find_same_x_values(values, index)

    def data_index_at(self, coords: Sequence[EventRect], pos: Position) -> int:
        return data_index_from_position(coords, pos, self.config.axis_rotated)

    # -- redraw ---------------------------------------------------------------

    def redraw(self, options: RedrawOptions | Mapping[str, Any] | None = None) -> RedrawPass:
        return self.orchestrator.redraw(options)

    def update_and_redraw(self, options: RedrawOptions | Mapping[str, Any] | None = None) -> RedrawPass:
        return self.orchestrator.update_and_redraw(options)

    def redraw_without_rescale(self) -> RedrawPass:
        return self.orchestrator.redraw_without_rescale()

    def tick(self, now: float | None = None) -> int:
        """Advance running transitions; call once per frame from the host loop."""
        if not self.orchestrator.is_surface_visible():
            return self.clock.finish_all()
        return self.clock.advance(now)
