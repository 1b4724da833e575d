from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
import tomllib
from typing import Any, Callable, Literal, Mapping

from chartcore.types import is_known_type


AxisXType = Literal["indexed", "category", "timeseries"]
AXIS_X_TYPES = ("indexed", "category", "timeseries")

# Table names accepted in TOML files; `[data] x = "date"` becomes `data_x`.
CONFIG_TABLES = (
    "data",
    "axis",
    "point",
    "transition",
    "pie",
    "gauge",
    "radar",
    "legend",
    "subchart",
    "interaction",
    "grid",
    "line",
)


@dataclass
class ChartConfig:
    data_x: str | None = None
    data_xs: dict[str, str] = field(default_factory=dict)
    data_x_sort: bool = True
    data_x_format: str = "%Y-%m-%d"
    data_type: str = "line"
    data_types: dict[str, str] = field(default_factory=dict)
    data_groups: list[list[str]] = field(default_factory=list)
    data_stack_normalize: bool = False
    data_names: dict[str, str] = field(default_factory=dict)
    data_order: str | Callable[[Any, Any], int] | None = "desc"
    data_labels: bool | dict[str, Any] = False
    data_empty_label_text: str = ""
    data_id_converter: Callable[[str], str] | None = None
    axis_rotated: bool = False
    axis_x_type: AxisXType = "indexed"
    point_type: str = "circle"
    point_pattern: list[Any] = field(default_factory=list)
    point_r: float = 2.5
    point_sensitivity: float = 10.0
    point_focus_only: bool = False
    transition_duration: int = 350
    pie_pad_angle: float = 0.0
    gauge_full_circle: bool = False
    radar_size_ratio: float = 0.87
    legend_show: bool = True
    subchart_show: bool = False
    interaction_enabled: bool = True
    grid_x_show: bool = False
    grid_y_show: bool = False
    grid_x_lines: list[Any] = field(default_factory=list)
    grid_y_lines: list[Any] = field(default_factory=list)
    grid_focus_show: bool = True
    regions: list[Any] = field(default_factory=list)
    line_step_type: str = "step"
    onrendered: Callable[[Any], None] | None = None

    def __post_init__(self) -> None:
        if self.axis_x_type not in AXIS_X_TYPES:
            raise ValueError(f"axis_x_type must be one of {AXIS_X_TYPES}, got {self.axis_x_type!r}")
        if self.transition_duration < 0:
            raise ValueError("transition_duration must be >= 0")
        if self.point_sensitivity < 0:
            raise ValueError("point_sensitivity must be >= 0")
        if self.radar_size_ratio <= 0:
            raise ValueError("radar_size_ratio must be > 0")
        if not is_known_type(self.data_type):
            raise ValueError(f"unknown chart type: {self.data_type}")
        for series_id, chart_type in self.data_types.items():
            if not is_known_type(chart_type):
                raise ValueError(f"unknown chart type for {series_id}: {chart_type}")

    def replace(self, **changes: Any) -> "ChartConfig":
        return replace(self, **changes)


# Expected TOML value types per field. Callables cannot be expressed in TOML.
_TOML_TYPES: dict[str, tuple[type, ...]] = {
    "data_x": (str,),
    "data_xs": (dict,),
    "data_x_sort": (bool,),
    "data_x_format": (str,),
    "data_type": (str,),
    "data_types": (dict,),
    "data_groups": (list,),
    "data_stack_normalize": (bool,),
    "data_names": (dict,),
    "data_order": (str,),
    "data_labels": (bool, dict),
    "data_empty_label_text": (str,),
    "axis_rotated": (bool,),
    "axis_x_type": (str,),
    "point_type": (str,),
    "point_pattern": (list,),
    "point_r": (int, float),
    "point_sensitivity": (int, float),
    "point_focus_only": (bool,),
    "transition_duration": (int,),
    "pie_pad_angle": (int, float),
    "gauge_full_circle": (bool,),
    "radar_size_ratio": (int, float),
    "legend_show": (bool,),
    "subchart_show": (bool,),
    "interaction_enabled": (bool,),
    "grid_x_show": (bool,),
    "grid_y_show": (bool,),
    "grid_x_lines": (list,),
    "grid_y_lines": (list,),
    "grid_focus_show": (bool,),
    "regions": (list,),
    "line_step_type": (str,),
}


def load_config(path: str | Path) -> ChartConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"chart config not found: {config_path}")
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    return config_from_mapping(raw)


def config_from_mapping(raw: Mapping[str, Any]) -> ChartConfig:
    values: dict[str, Any] = {}
    for key, value in _flatten_tables(raw).items():
        expected = _TOML_TYPES.get(key)
        if expected is None:
            raise ValueError(f"unknown config key: {key}")
        # bool is an int subclass; numeric fields must not accept it.
        if isinstance(value, bool) and bool not in expected:
            raise ValueError(f"config key {key} must be {_type_names(expected)}, got bool")
        if not isinstance(value, expected):
            raise ValueError(f"config key {key} must be {_type_names(expected)}, got {type(value).__name__}")
        values[key] = value
    if "data_groups" in values:
        values["data_groups"] = _coerce_groups(values["data_groups"])
    known = {f.name for f in fields(ChartConfig)}
    return ChartConfig(**{k: v for k, v in values.items() if k in known})


def _flatten_tables(raw: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in raw.items():
        if key in CONFIG_TABLES and isinstance(value, dict):
            for sub_key, sub_value in value.items():
                out[f"{key}_{sub_key}"] = sub_value
            continue
        out[key] = value
    return out


def _coerce_groups(raw: list[Any]) -> list[list[str]]:
    groups: list[list[str]] = []
    for group in raw:
        if not isinstance(group, list) or not all(isinstance(v, str) for v in group):
            raise ValueError("data_groups must be a list of string lists")
        groups.append(list(group))
    return groups


def _type_names(types: tuple[type, ...]) -> str:
    return " or ".join(t.__name__ for t in types)
