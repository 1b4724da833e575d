from __future__ import annotations

import unittest

from chartcore.hit_test import (
    BarRegions,
    EventRect,
    HitTestContext,
    data_index_from_position,
    distance,
    find_closest,
    find_closest_from_targets,
    find_same_x_values,
)
from chartcore.series import DataPoint, Series


class _PixelScales:
    """x * 10 horizontally, 100 - y * 10 vertically."""

    def x(self, value):
        return float(value) * 10.0

    def y(self, series_id, value):
        return 100.0 - float(value) * 10.0

    def y_domain(self, series_id):
        return (0.0, 10.0)


def _series(series_id: str, pairs: list[tuple[float, float | None]]) -> Series:
    values = [DataPoint(x=x, value=v, id=series_id, index=i) for i, (x, v) in enumerate(pairs)]
    return Series(id=series_id, id_org=series_id, values=values)


class FindClosestTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ctx = HitTestContext(scales=_PixelScales(), sensitivity=10.0)
        self.a = _series("a", [(0, 3.0), (1, 5.0)])
        self.b = _series("b", [(0, -2.0), (1, 4.0)])

    def test_distance_in_pixels(self) -> None:
        self.assertAlmostEqual(distance(self.a.values[1], (13.0, 54.0), self.ctx), 5.0)

    def test_distance_swaps_axes_when_rotated(self) -> None:
        rotated = HitTestContext(scales=_PixelScales(), sensitivity=10.0, rotated=True)
        self.assertAlmostEqual(distance(self.a.values[1], (50.0, 10.0), rotated), 0.0)

    def test_closest_point_within_sensitivity(self) -> None:
        found = find_closest_from_targets([self.a, self.b], (10.0, 58.0), self.ctx)
        self.assertIs(found, self.b.values[1])

    def test_nothing_within_sensitivity(self) -> None:
        self.assertIsNone(find_closest_from_targets([self.a, self.b], (500.0, 500.0), self.ctx))

    def test_sensitivity_bound_is_exclusive(self) -> None:
        point = self.a.values[0]
        self.assertIsNone(find_closest([point], (10.0, 70.0), self.ctx))
        self.assertIs(find_closest([point], (9.9, 70.0), self.ctx), point)

    def test_missing_values_are_ignored(self) -> None:
        gap = _series("g", [(1, None)])
        self.assertIsNone(find_closest(gap.values + [None], (10.0, 100.0), self.ctx))

    def test_bar_under_position_wins(self) -> None:
        regions = BarRegions()
        bar = _series("bar", [(5, 1.0)])
        regions.set("bar", 0, (40.0, 90.0, 20.0, 10.0))
        ctx = HitTestContext(
            scales=_PixelScales(),
            sensitivity=10.0,
            is_bar=lambda series_id: series_id == "bar",
            within_bar=regions.contains,
        )
        self.assertIs(find_closest_from_targets([self.a, bar], (45.0, 95.0), ctx), bar.values[0])
        # Bars are never chosen by distance.
        self.assertIsNone(find_closest(bar.values, (30.0, 90.0), ctx))
        regions.clear()
        self.assertIsNone(find_closest(bar.values, (45.0, 95.0), ctx))


class SameXTests(unittest.TestCase):
    def test_run_of_equal_x_is_maximal(self) -> None:
        values = _series("a", [(1, 1.0), (2, 2.0), (2, 3.0), (2, 4.0), (3, 5.0)]).values
        found = find_same_x_values(values, 2)
        self.assertEqual(found, values[1:4])
        self.assertTrue(all(v.x == values[2].x for v in found))
        self.assertNotEqual(values[0].x, values[2].x)
        self.assertNotEqual(values[4].x, values[2].x)

    def test_single_point_and_out_of_range(self) -> None:
        values = _series("a", [(1, 1.0), (2, 2.0)]).values
        self.assertEqual(find_same_x_values(values, 0), [values[0]])
        self.assertEqual(find_same_x_values(values, 5), [])


class EventRectTests(unittest.TestCase):
    def setUp(self) -> None:
        self.coords = [EventRect(x=0.0, w=10.0), EventRect(x=10.0, w=10.0), EventRect(x=20.0, w=10.0)]

    def test_index_from_position(self) -> None:
        self.assertEqual(data_index_from_position(self.coords, (15.0, 0.0)), 1)
        self.assertEqual(data_index_from_position(self.coords, (2.0, 0.0)), 0)
        self.assertEqual(data_index_from_position(self.coords, (29.0, 0.0)), 2)

    def test_position_outside_every_rect(self) -> None:
        self.assertEqual(data_index_from_position(self.coords, (35.0, 0.0)), -1)
        self.assertEqual(data_index_from_position([], (5.0, 0.0)), -1)

    def test_rotated_uses_vertical_extent(self) -> None:
        coords = [EventRect(x=0.0, y=0.0, h=5.0), EventRect(x=0.0, y=5.0, h=5.0)]
        self.assertEqual(data_index_from_position(coords, (100.0, 7.0), rotated=True), 1)


if __name__ == "__main__":
    unittest.main()
