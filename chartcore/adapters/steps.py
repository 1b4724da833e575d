from __future__ import annotations

import re
from typing import Sequence

from chartcore.series import DataPoint
from chartcore.values import RangeValue


_STEP_EDGE = re.compile(r"step-(after|before)")


def convert_values_to_step(
    values: Sequence[DataPoint] | DataPoint,
    *,
    step_type: str,
    categorized: bool,
) -> list[DataPoint]:
    """Pad a step series with cloned head/tail points so both edge steps render fully."""
    converted = list(values) if isinstance(values, Sequence) else [values]
    if not (categorized or _STEP_EDGE.search(step_type)):
        return converted
    if not converted:
        return converted

    head = converted[0]
    tail = converted[-1]
    if not isinstance(head.x, (int, float)) or not isinstance(tail.x, (int, float)):
        return converted

    x = head.x - 1
    converted.insert(0, DataPoint(x=x, value=head.value, id=head.id, index=head.index))
    if categorized and step_type == "step-after":
        converted.insert(0, DataPoint(x=x - 1, value=head.value, id=head.id, index=head.index))

    x = tail.x + 1
    converted.append(DataPoint(x=x, value=tail.value, id=tail.id, index=tail.index))
    if categorized and step_type == "step-before":
        converted.append(DataPoint(x=x + 1, value=tail.value, id=tail.id, index=tail.index))
    return converted


def convert_values_to_range(values: Sequence[DataPoint] | DataPoint) -> list[DataPoint]:
    """Split range points into their upper and lower bound points; plain points pass through."""
    converted = list(values) if isinstance(values, Sequence) else [values]
    ranges: list[DataPoint] = []
    for point in converted:
        if not isinstance(point.value, RangeValue):
            ranges.append(point)
            continue
        ranges.append(DataPoint(x=point.x, value=point.value.high, id=point.id, index=point.index))
        ranges.append(DataPoint(x=point.x, value=point.value.low, id=point.id, index=point.index))
    return ranges
