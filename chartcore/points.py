from __future__ import annotations

import logging
import re
from typing import Any, Callable, Protocol, Sequence
import xml.etree.ElementTree as ET

from chartcore.config import ChartConfig
from chartcore.series import DataPoint
from chartcore.transition import TimedTask, TransitionSession

LOGGER = logging.getLogger(__name__)

PositionFn = Callable[[DataPoint], float]
StyleFn = Callable[[DataPoint], Any]

_VALID_POINT_TYPE = re.compile(r"^(circle|rect(angle)?)$", re.IGNORECASE)


class PointDrawer(Protocol):
    def create(self, parent: ET.Element, point: DataPoint, css_class: str, size: float, fill: Any) -> ET.Element:
        ...

    def update(
        self,
        node: ET.Element,
        point: DataPoint,
        x_pos: PositionFn,
        y_pos: PositionFn,
        opacity: StyleFn,
        fill: StyleFn,
        transition: TransitionSession | None,
        flow: bool = False,
    ) -> list[TimedTask]:
        ...


def _apply(node: ET.Element, attrs: dict[str, Any]) -> None:
    for key, value in attrs.items():
        node.set(key, _fmt(value))


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _move(
    node: ET.Element,
    attrs: dict[str, Any],
    transition: TransitionSession | None,
    name: str,
) -> list[TimedTask]:
    if transition is None:
        _apply(node, attrs)
        return []
    task = transition.start(name)
    task.on_end(lambda _task: _apply(node, attrs))
    return [task]


class CirclePoint:
    def __init__(self, *, is_bubble: Callable[[str], bool] = lambda series_id: False, radius: StyleFn | None = None) -> None:
        self._is_bubble = is_bubble
        self._radius = radius

    def create(self, parent: ET.Element, point: DataPoint, css_class: str, size: float, fill: Any) -> ET.Element:
        node = ET.SubElement(parent, "circle")
        _apply(node, {"class": css_class, "r": size, "style": f"fill: {fill}"})
        return node

    def update(self, node, point, x_pos, y_pos, opacity, fill, transition, flow=False):
        # Bubble sizes follow the data, so reloads must refresh the radius.
        if self._is_bubble(point.id) and self._radius is not None:
            _apply(node, {"r": self._radius(point)})
        if transition is not None and flow:
            _apply(node, {"cx": x_pos(point)})
        tasks = _move(node, {"cx": x_pos(point), "cy": y_pos(point)}, transition, f"circle-{point.id}-{point.index}")
        _apply(node, {"opacity": opacity(point), "style": f"fill: {fill(point)}"})
        return tasks


class RectanglePoint:
    def __init__(self, r: float) -> None:
        self._r = r

    def create(self, parent: ET.Element, point: DataPoint, css_class: str, size: float, fill: Any) -> ET.Element:
        node = ET.SubElement(parent, "rect")
        _apply(node, {"class": css_class, "width": size * 2.0, "height": size * 2.0, "style": f"fill: {fill}"})
        return node

    def update(self, node, point, x_pos, y_pos, opacity, fill, transition, flow=False):
        x = x_pos(point) - self._r
        y = y_pos(point) - self._r
        if transition is not None and flow:
            _apply(node, {"x": x})
        tasks = _move(node, {"x": x, "y": y}, transition, f"rect-{point.id}-{point.index}")
        _apply(node, {"opacity": opacity(point), "style": f"fill: {fill(point)}"})
        return tasks


class DefsPoint:
    """Point drawn as a ``<use>`` of an SVG snippet registered in ``<defs>``."""

    def __init__(self, defs: ET.Element, markup: str, def_id: str) -> None:
        self._def_id = def_id
        if not any(child.get("id") == def_id for child in defs):
            node = ET.fromstring(markup)
            node.set("id", def_id)
            node.set("style", "fill: inherit; stroke: none")
            defs.append(node)
        self._box = _markup_box(markup)

    def create(self, parent: ET.Element, point: DataPoint, css_class: str, size: float, fill: Any) -> ET.Element:
        node = ET.SubElement(parent, "use")
        _apply(node, {"href": f"#{self._def_id}", "class": css_class, "style": f"fill: {fill}"})
        return node

    def update(self, node, point, x_pos, y_pos, opacity, fill, transition, flow=False):
        width, height = self._box
        _apply(node, {"x": x_pos(point) - width * 0.5, "y": y_pos(point) - height * 0.5})
        _apply(node, {"opacity": opacity(point), "style": f"fill: {fill(point)}"})
        return []


def _markup_box(markup: str) -> tuple[float, float]:
    node = ET.fromstring(markup)
    try:
        return (float(node.get("width", 0)), float(node.get("height", 0)))
    except ValueError:
        return (0.0, 0.0)


def is_point_drawer(candidate: Any) -> bool:
    return callable(getattr(candidate, "create", None)) and callable(getattr(candidate, "update", None))


class PointRegistry:
    """Assigns a point shape to every series, cycling through the configured pattern."""

    def __init__(
        self,
        pattern: Sequence[Any],
        *,
        defs: ET.Element | None = None,
        point_r: float = 2.5,
        is_bubble: Callable[[str], bool] = lambda series_id: False,
        radius: StyleFn | None = None,
    ) -> None:
        if not pattern:
            raise ValueError("point pattern must include at least one entry")
        self._pattern = list(pattern)
        self._defs = defs if defs is not None else ET.Element("defs")
        self._ids: list[str] = []
        self._builtin: dict[str, PointDrawer] = {
            "circle": CirclePoint(is_bubble=is_bubble, radius=radius),
            "rectangle": RectanglePoint(point_r),
        }
        self._custom: dict[str, PointDrawer] = {}

    @classmethod
    def from_config(
        cls,
        config: ChartConfig,
        *,
        defs: ET.Element | None = None,
        is_bubble: Callable[[str], bool] = lambda series_id: False,
        radius: StyleFn | None = None,
    ) -> "PointRegistry":
        pattern = config.point_pattern or [config.point_type]
        return cls(pattern, defs=defs, point_r=config.point_r, is_bubble=is_bubble, radius=radius)

    @property
    def defs(self) -> ET.Element:
        return self._defs

    def drawer_for(self, series_id: str) -> PointDrawer:
        if series_id not in self._ids:
            self._ids.append(series_id)
        shape = self._pattern[self._ids.index(series_id) % len(self._pattern)]
        if isinstance(shape, str) and _VALID_POINT_TYPE.match(shape):
            key = "circle" if shape.lower() == "circle" else "rectangle"
            return self._builtin[key]
        if is_point_drawer(shape):
            return shape
        if series_id not in self._custom:
            LOGGER.debug("registering custom point markup for %s", series_id)
            self._custom[series_id] = DefsPoint(self._defs, str(shape), f"chart-point-{series_id}")
        return self._custom[series_id]
