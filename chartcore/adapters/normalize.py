from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from chartcore.errors import ChartDataError


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


def normalize_columns(data: Any, *, names: Sequence[str] | None = None) -> dict[str, list[Any]]:
    """Convert tabular input into an ordered ``{column name: values}`` mapping.

    Accepted inputs: a mapping of column name to 1-D values, a pandas
    DataFrame, a 2-D numpy array or torch tensor together with ``names``,
    or a sequence of row mappings.
    """
    if pd is not None and isinstance(data, pd.DataFrame):
        return {str(col): _coerce_column(data[col], label=str(col)) for col in data.columns}

    if isinstance(data, Mapping):
        return {str(key): _coerce_column(value, label=str(key)) for key, value in data.items()}

    if torch is not None and isinstance(data, torch.Tensor):
        data = _tensor_to_numpy(data, label="data", ndim=2)

    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise ChartDataError("array input must be 2-D (rows x columns)")
        if names is None or len(names) != data.shape[1]:
            raise ChartDataError("array input requires one name per column")
        return {str(name): data[:, i].tolist() for i, name in enumerate(names)}

    if isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray)):
        if all(isinstance(row, Mapping) for row in data):
            return _columns_from_row_mappings(data)

    raise ChartDataError(f"unsupported chart data type: {type(data)!r}")


def columns_from_rows(rows: Sequence[Sequence[Any]]) -> dict[str, list[Any]]:
    """Rows where the first row is the header: ``[["a", "b"], [1, 2], [3, 4]]``."""
    if not rows:
        return {}
    header = [str(name) for name in rows[0]]
    out: dict[str, list[Any]] = {name: [] for name in header}
    for row_index, row in enumerate(rows[1:], start=1):
        if len(row) > len(header):
            raise ChartDataError(f"row {row_index} has more cells than the header")
        for i, name in enumerate(header):
            out[name].append(row[i] if i < len(row) else None)
    return out


def columns_from_column_lists(columns: Sequence[Sequence[Any]]) -> dict[str, list[Any]]:
    """Column lists whose first element is the name: ``[["a", 1, 3], ["b", 2, 4]]``."""
    out: dict[str, list[Any]] = {}
    for column in columns:
        if not column:
            raise ChartDataError("column lists must start with a name")
        out[str(column[0])] = list(column[1:])
    return out


def _columns_from_row_mappings(rows: Sequence[Mapping[str, Any]]) -> dict[str, list[Any]]:
    keys: list[str] = []
    for row in rows:
        for key in row:
            if str(key) not in keys:
                keys.append(str(key))
    out: dict[str, list[Any]] = {key: [] for key in keys}
    for row in rows:
        as_str = {str(k): v for k, v in row.items()}
        for key in keys:
            out[key].append(as_str.get(key))
    return out


def _coerce_column(value: Any, *, label: str) -> list[Any]:
    if torch is not None and isinstance(value, torch.Tensor):
        return _tensor_to_numpy(value, label=label, ndim=1).tolist()

    if pd is not None and isinstance(value, pd.Series):
        return [None if _is_missing(v) else v for v in value.to_list()]

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise ChartDataError(f"{label} must be 1-D")
        return value.tolist()

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return list(value)

    raise ChartDataError(f"unsupported {label} input type: {type(value)!r}")


def _tensor_to_numpy(tensor: Any, *, label: str, ndim: int) -> np.ndarray:
    tensor = tensor.detach()
    if tensor.ndim != ndim:
        raise ChartDataError(f"{label} must be {ndim}-D")
    if tensor.is_cuda:
        tensor = tensor.cpu()
    return tensor.to(torch.float64).numpy()


def _is_missing(value: Any) -> bool:
    if pd is None:
        return value is None
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False
