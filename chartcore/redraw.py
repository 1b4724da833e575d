from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
import logging
from typing import Any, Callable, Iterable, Mapping, Protocol, Sequence

from chartcore.config import ChartConfig
from chartcore.model import DataModel
from chartcore.series import Series
from chartcore.transition import RedrawBarrier, TimedTask, TransitionClock, TransitionSession

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Flow:
    """Streaming append: new points enter, ``length`` old points scroll off."""

    duration: float = 0.0
    length: int = 0
    done: Callable[[], None] | None = None


@dataclass(frozen=True)
class RedrawOptions:
    """Caller intent for one redraw. ``None`` means "use the named default"."""

    with_y: bool | None = None
    with_subchart: bool | None = None
    with_transition: bool | None = None
    with_event_rect: bool | None = None
    with_dimension: bool | None = None
    with_trim_x_domain: bool | None = None
    with_transform: bool | None = None
    with_update_x_domain: bool | None = None
    with_update_org_x_domain: bool | None = None
    with_legend: bool | None = None
    with_update_x_axis: bool | None = None
    with_transition_for_exit: bool | None = None
    with_transition_for_axis: bool | None = None
    with_transition_for_transform: bool | None = None
    initializing: bool = False
    flow: Flow | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "RedrawOptions":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            LOGGER.debug("ignoring unknown redraw options: %s", unknown)
        values = {k: v for k, v in raw.items() if k in known}
        if "flow" in values:
            values["flow"] = _as_flow(values["flow"])
        return cls(**values)


def _as_flow(value: Any) -> Flow | None:
    if value is None or isinstance(value, Flow):
        return value
    if isinstance(value, Mapping):
        known = {f.name for f in fields(Flow)}
        return Flow(**{k: v for k, v in value.items() if k in known})
    LOGGER.debug("ignoring malformed flow option %r", value)
    return None


def get_option(options: RedrawOptions, name: str, default: bool) -> bool:
    value = getattr(options, name)
    return default if value is None else bool(value)


@dataclass(frozen=True)
class RedrawFlags:
    y: bool = True
    subchart: bool = True
    transition: bool = True
    event_rect: bool = True
    dimension: bool = True
    trim_x_domain: bool = True
    transform: bool = False
    update_x_domain: bool = False
    update_org_x_domain: bool = False
    legend: bool = False
    update_x_axis: bool = False
    transition_for_exit: bool = True
    transition_for_axis: bool = True

    @classmethod
    def resolve(cls, options: RedrawOptions) -> "RedrawFlags":
        resolved: dict[str, bool] = {}
        for f in fields(cls):
            if f.name in _DERIVED_DEFAULTS:
                default = resolved[_DERIVED_DEFAULTS[f.name]]
            else:
                default = f.default
            resolved[f.name] = get_option(options, f"with_{f.name}", default)
        return cls(**resolved)


# Flags whose default follows another, already resolved flag.
_DERIVED_DEFAULTS = {
    "update_x_axis": "update_x_domain",
    "transition_for_exit": "transition",
    "transition_for_axis": "transition",
}


@dataclass
class SurfaceState:
    resizing: bool = False
    transiting: bool = False
    has_focus_grid: bool = True


class RenderLayer(ABC):
    """Drawing collaborator driven by the orchestrator.

    The shape-family redraws return the transitions they started on the
    given session (nothing when ``transition`` is None).
    """

    @abstractmethod
    def redraw_line(self, shape: Any, transition: TransitionSession | None) -> Iterable[TimedTask]:
        raise NotImplementedError

    @abstractmethod
    def redraw_area(self, shape: Any, transition: TransitionSession | None) -> Iterable[TimedTask]:
        raise NotImplementedError

    @abstractmethod
    def redraw_bar(self, shape: Any, transition: TransitionSession | None) -> Iterable[TimedTask]:
        raise NotImplementedError

    @abstractmethod
    def redraw_circle(
        self, shape: Any, transition: TransitionSession | None, flow_fn: Callable[[], None] | None
    ) -> Iterable[TimedTask]:
        raise NotImplementedError

    @abstractmethod
    def redraw_text(self, shape: Any, flow: Flow | None, transition: TransitionSession | None) -> Iterable[TimedTask]:
        raise NotImplementedError

    def redraw_grid(self, transition: TransitionSession | None) -> Iterable[TimedTask]:
        return []

    def redraw_region(self, transition: TransitionSession | None) -> Iterable[TimedTask]:
        return []

    def update_grid_focus(self) -> Iterable[TimedTask]:
        return []

    def draw_shape(self) -> Any:
        return None

    def update_sizes(self, initializing: bool) -> None:
        return

    def update_legend(self, target_ids: list[str], options: RedrawOptions, transitions: Any) -> None:
        return

    def update_dimension(self, without_axis: bool) -> None:
        return

    def update_circle_y(self) -> None:
        return

    def redraw_axis(
        self, targets: list[Series], flags: RedrawFlags, transitions: Any, flow: Flow | None, initializing: bool
    ) -> None:
        return

    def update_empty_label(self, text: str, visible: bool) -> None:
        return

    def update_grid(self, duration: float) -> None:
        return

    def update_region(self, duration: float) -> None:
        return

    def update_bar(self, duration: float) -> None:
        return

    def update_line(self, duration: float) -> None:
        return

    def update_area(self, duration: float) -> None:
        return

    def bind_zoom_event(self) -> None:
        return

    def redraw_arc(self, duration: float, duration_for_exit: float, with_transform: bool) -> None:
        return

    def redraw_radar(self, duration_for_exit: float) -> None:
        return

    def update_circle(self) -> None:
        return

    def update_text(self, duration: float) -> None:
        return

    def redraw_title(self) -> None:
        return

    def update_types_elements(self) -> None:
        return

    def redraw_subchart(self, with_subchart: bool, duration: float, shape: Any) -> None:
        return

    def generate_flow(
        self, targets: list[Series], flow: Flow, duration: float, shape: Any
    ) -> Callable[[], None] | None:
        return None

    def generate_axis_transitions(self, duration: float) -> Any:
        return None

    def update_scales(self) -> None:
        return

    def update_svg_size(self) -> None:
        return

    def transform_all(self, with_transition: bool, transitions: Any) -> None:
        return


class HeadlessRenderLayer(RenderLayer):
    """Renders nothing; used when the chart only serves data queries."""

    def redraw_line(self, shape, transition):
        return []

    def redraw_area(self, shape, transition):
        return []

    def redraw_bar(self, shape, transition):
        return []

    def redraw_circle(self, shape, transition, flow_fn):
        return []

    def redraw_text(self, shape, flow, transition):
        return []


class RedrawPlugin(Protocol):
    def on_redraw(self, options: RedrawOptions, duration: float) -> None:
        ...


@dataclass(frozen=True)
class RedrawStep:
    """Zero-argument draw closure for one layer of the redraw list."""

    layer: str
    draw: Callable[[], Iterable[TimedTask]]

    def __call__(self) -> list[TimedTask]:
        return list(self.draw() or [])


@dataclass
class RedrawPass:
    flags: RedrawFlags
    duration: float
    is_transition: bool
    layers: list[str] = field(default_factory=list)
    transitions: list[TimedTask] = field(default_factory=list)
    barrier: RedrawBarrier | None = None
    callback_fired: bool = False


class RedrawOrchestrator:
    """Decides which layers are stale for a change and redraws them back to front."""

    def __init__(
        self,
        model: DataModel,
        renderer: RenderLayer,
        *,
        clock: TransitionClock | None = None,
        is_surface_visible: Callable[[], bool] = lambda: True,
        plugins: Sequence[RedrawPlugin] = (),
        state: SurfaceState | None = None,
        api: Any = None,
    ) -> None:
        self.model = model
        self.renderer = renderer
        self.clock = clock or TransitionClock()
        self.is_surface_visible = is_surface_visible
        self.plugins = list(plugins)
        self.state = state or SurfaceState()
        self.api = api
        self._last_barrier: RedrawBarrier | None = None

    @property
    def config(self) -> ChartConfig:
        return self.model.config

    def redraw(self, options: RedrawOptions | Mapping[str, Any] | None = None, transitions: Any = None) -> RedrawPass:
        options = _as_options(options)
        model = self.model
        config = self.config
        renderer = self.renderer
        targets_to_show = model.visible_series()

        initializing = options.initializing
        flow = _as_flow(options.flow)
        flags = RedrawFlags.resolve(options)
        duration = config.transition_duration if flags.transition else 0
        duration_for_exit = duration if flags.transition_for_exit else 0
        duration_for_axis = duration if flags.transition_for_axis else 0
        has_axis = model.has_axis()
        if transitions is None and has_axis:
            transitions = renderer.generate_axis_transitions(duration_for_axis)

        renderer.update_sizes(initializing)

        if flags.legend and config.legend_show:
            renderer.update_legend(model.map_to_ids(model.targets), options, transitions)
        elif flags.dimension:
            # y tick values may change; the axis itself is redrawn below.
            renderer.update_dimension(True)

        if not model.has_arc_type() or model.has_radar():
            renderer.update_circle_y()

        if has_axis:
            renderer.redraw_axis(targets_to_show, flags, transitions, flow, initializing)
            if config.data_empty_label_text:
                renderer.update_empty_label(config.data_empty_label_text, visible=not targets_to_show)
            if config.grid_x_show or config.grid_y_show or config.grid_x_lines or config.grid_y_lines:
                renderer.update_grid(duration)
            if config.regions:
                renderer.update_region(duration)
            if model.has_type("bar"):
                renderer.update_bar(duration_for_exit)
            if model.has_type_of("Line"):
                renderer.update_line(duration_for_exit)
            if model.has_type_of("Area"):
                renderer.update_area(duration_for_exit)
            if config.interaction_enabled and flow is None and flags.event_rect:
                renderer.bind_zoom_event()
        else:
            if model.has_arc_type():
                renderer.redraw_arc(duration, duration_for_exit, flags.transform)
            if model.has_radar():
                renderer.redraw_radar(duration_for_exit)

        if not self.state.resizing and (model.has_point_type() or model.has_radar()):
            renderer.update_circle()

        if model.has_data_label():
            renderer.update_text(duration_for_exit)

        renderer.redraw_title()

        if initializing:
            renderer.update_types_elements()

        redraw_pass = self.generate_redraw_list(targets_to_show, flow, duration, flags)
        self._call_plugins(options, duration)
        return redraw_pass

    def generate_redraw_list(
        self,
        targets: list[Series],
        flow: Flow | None,
        duration: float,
        flags: RedrawFlags,
    ) -> RedrawPass:
        config = self.config
        renderer = self.renderer
        shape = renderer.draw_shape()

        if self.model.has_axis() and config.subchart_show:
            renderer.redraw_subchart(flags.subchart, duration, shape)

        flow_fn = renderer.generate_flow(targets, flow, flow.duration, shape) if flow is not None else None
        is_transition = bool(duration or flow_fn) and self.is_surface_visible()
        session = self.clock.session(duration) if is_transition else None

        steps = self.get_redraw_list(shape, flow, flow_fn, session)
        redraw_pass = RedrawPass(
            flags=flags,
            duration=duration,
            is_transition=is_transition,
            layers=[step.layer for step in steps],
        )
        for step in steps:
            redraw_pass.transitions.extend(step())
        LOGGER.debug(
            "redraw: duration=%s transition=%s layers=%s transitions=%d",
            duration,
            is_transition,
            redraw_pass.layers,
            len(redraw_pass.transitions),
        )

        if flow is not None or config.onrendered is not None:
            after_redraw = self._after_redraw(flow_fn, redraw_pass)
            if session is not None and steps:
                if self._last_barrier is not None and not self._last_barrier.done():
                    LOGGER.warning("redraw started before the previous redraw's transitions settled")
                redraw_pass.barrier = RedrawBarrier(redraw_pass.transitions, after_redraw)
                self._last_barrier = redraw_pass.barrier
            elif not self.state.transiting:
                after_redraw()

        self.model.mark_shown(self.model.map_to_ids(self.model.targets))
        return redraw_pass

    def get_redraw_list(
        self,
        shape: Any,
        flow: Flow | None,
        flow_fn: Callable[[], None] | None,
        transition: TransitionSession | None,
    ) -> list[RedrawStep]:
        model = self.model
        config = self.config
        renderer = self.renderer
        steps: list[RedrawStep] = []

        if model.has_axis():
            if config.grid_x_lines or config.grid_y_lines:
                steps.append(RedrawStep("grid", lambda: renderer.redraw_grid(transition)))
            if config.regions:
                steps.append(RedrawStep("region", lambda: renderer.redraw_region(transition)))
            if model.has_type_of("Line"):
                steps.append(RedrawStep("line", lambda: renderer.redraw_line(shape, transition)))
            if model.has_type_of("Area"):
                steps.append(RedrawStep("area", lambda: renderer.redraw_area(shape, transition)))
            if model.has_type("bar"):
                steps.append(RedrawStep("bar", lambda: renderer.redraw_bar(shape, transition)))
            if flow is None and config.grid_focus_show and self.state.has_focus_grid:
                steps.append(RedrawStep("grid-focus", renderer.update_grid_focus))

        if not model.has_arc_type() or model.has_radar():
            if model.has_data_label():
                steps.append(RedrawStep("label", lambda: renderer.redraw_text(shape, flow, transition)))

        if (model.has_point_type() or model.has_radar()) and not config.point_focus_only:
            steps.append(RedrawStep("point", lambda: renderer.redraw_circle(shape, transition, flow_fn)))

        return steps

    def update_and_redraw(self, options: RedrawOptions | Mapping[str, Any] | None = None) -> RedrawPass:
        options = _as_options(options)
        config = self.config
        with_transition = get_option(options, "with_transition", True)
        options = replace(
            options,
            with_transition=with_transition,
            with_transform=get_option(options, "with_transform", False),
            with_legend=get_option(options, "with_legend", False),
            with_update_x_domain=True,
            with_update_org_x_domain=True,
            with_transition_for_exit=False,
            with_transition_for_transform=get_option(options, "with_transition_for_transform", with_transition),
        )
        transitions = None

        # With a visible legend, update_legend inside redraw() does this work.
        if not (options.with_legend and config.legend_show):
            if self.model.has_axis():
                axis_duration = config.transition_duration if options.with_transition_for_axis else 0
                transitions = self.renderer.generate_axis_transitions(axis_duration)
            self.renderer.update_scales()
            self.renderer.update_svg_size()
            self.renderer.transform_all(bool(options.with_transition_for_transform), transitions)

        return self.redraw(options, transitions)

    def redraw_without_rescale(self) -> RedrawPass:
        return self.redraw(
            RedrawOptions(
                with_y=False,
                with_subchart=False,
                with_event_rect=False,
                with_transition_for_axis=False,
            )
        )

    def _after_redraw(self, flow_fn: Callable[[], None] | None, redraw_pass: RedrawPass) -> Callable[[], None]:
        def after_redraw() -> None:
            redraw_pass.callback_fired = True
            if flow_fn is not None:
                try:
                    flow_fn()
                except Exception:
                    LOGGER.exception("flow step failed")
            if self.config.onrendered is not None:
                try:
                    self.config.onrendered(self.api)
                except Exception:
                    LOGGER.exception("onrendered callback failed")

        return after_redraw

    def _call_plugins(self, options: RedrawOptions, duration: float) -> None:
        for plugin in self.plugins:
            hook = getattr(plugin, "on_redraw", None)
            if hook is None:
                continue
            try:
                hook(options, duration)
            except Exception:
                LOGGER.exception("redraw plugin %r failed", plugin)


def _as_options(options: RedrawOptions | Mapping[str, Any] | None) -> RedrawOptions:
    if options is None:
        return RedrawOptions()
    if isinstance(options, RedrawOptions):
        return options
    if isinstance(options, Mapping):
        return RedrawOptions.from_mapping(options)
    LOGGER.debug("unsupported redraw options %r; using defaults", options)
    return RedrawOptions()
