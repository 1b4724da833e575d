from __future__ import annotations

from pathlib import Path
from typing import Any

from chartcore.chart import Chart
from chartcore.config import ChartConfig, config_from_mapping, load_config


def chart(
    data: Any = None,
    *,
    config: ChartConfig | str | Path | dict[str, Any] | None = None,
    **kwargs: Any,
) -> Chart:
    """Create a chart from a config object, a TOML path or a plain mapping, optionally loading data."""
    if isinstance(config, (str, Path)):
        resolved = load_config(config)
    elif isinstance(config, dict):
        resolved = config_from_mapping(config)
    else:
        resolved = config
    instance = Chart(resolved, **kwargs)
    if data is not None:
        instance.load(data, redraw=False)
        instance.update_and_redraw({"initializing": True})
    return instance
