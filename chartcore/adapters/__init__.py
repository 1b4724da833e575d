from .normalize import columns_from_column_lists, columns_from_rows, normalize_columns
from .steps import convert_values_to_range, convert_values_to_step

__all__ = [
    "columns_from_column_lists",
    "columns_from_rows",
    "convert_values_to_range",
    "convert_values_to_step",
    "normalize_columns",
]
