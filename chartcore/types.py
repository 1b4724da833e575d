from __future__ import annotations

from typing import Literal


ChartType = Literal[
    "line",
    "spline",
    "step",
    "area",
    "area-spline",
    "area-step",
    "area-line-range",
    "area-spline-range",
    "area-step-range",
    "bar",
    "scatter",
    "bubble",
    "pie",
    "donut",
    "gauge",
    "polar",
    "radar",
]

TypeFamily = Literal["Line", "Area", "Arc"]

RANGE_TYPES = frozenset({"area-line-range", "area-spline-range", "area-step-range"})
AREA_TYPES = frozenset({"area", "area-spline", "area-step"}) | RANGE_TYPES
# Area series are stroked along their upper edge, so they count as lines too.
LINE_TYPES = frozenset({"line", "spline", "step"}) | AREA_TYPES
ARC_TYPES = frozenset({"pie", "donut", "gauge", "polar"})
POINT_TYPES = LINE_TYPES | {"scatter", "bubble"}
ALL_TYPES = POINT_TYPES | ARC_TYPES | {"bar", "radar"}

TYPE_FAMILIES: dict[str, frozenset[str]] = {
    "Line": LINE_TYPES,
    "Area": AREA_TYPES,
    "Arc": ARC_TYPES,
}


def is_known_type(chart_type: str) -> bool:
    return chart_type in ALL_TYPES
