from __future__ import annotations

from datetime import datetime, timezone
import unittest

from chartcore.config import ChartConfig
from chartcore.model import DataModel
from chartcore.series import DataPoint, Series, XSlot
from chartcore.values import RangeValue


def _series(series_id: str, pairs: list[tuple[object, object]]) -> Series:
    values = [DataPoint(x=x, value=v, id=series_id, index=i) for i, (x, v) in enumerate(pairs)]
    return Series(id=series_id, id_org=series_id, values=values)


class DataModelXKeyTests(unittest.TestCase):
    def test_x_key_follows_active_mode(self) -> None:
        self.assertEqual(DataModel(ChartConfig(data_x="date")).x_key("a"), "date")
        multi = DataModel(ChartConfig(data_xs={"a": "xa", "b": "xb"}))
        self.assertEqual(multi.x_key("b"), "xb")
        self.assertIsNone(multi.x_key("c"))
        self.assertIsNone(DataModel().x_key("a"))

    def test_is_x_matches_shared_and_per_series_keys(self) -> None:
        self.assertTrue(DataModel(ChartConfig(data_x="date")).is_x("date"))
        multi = DataModel(ChartConfig(data_xs={"a": "xa"}))
        self.assertTrue(multi.is_x("xa"))
        self.assertTrue(multi.is_not_x("a"))

    def test_x_value_at_falls_back_to_index(self) -> None:
        model = DataModel()
        model.xs = {"a": [10, None]}
        self.assertEqual(model.x_value_at("a", 0), 10)
        self.assertEqual(model.x_value_at("a", 1), 1)
        self.assertEqual(model.x_value_at("a", 9), 9)
        self.assertEqual(model.x_value_at("missing", 5), 5)

    def test_other_target_x_uses_first_known_series(self) -> None:
        model = DataModel()
        model.xs = {"a": [1, 2], "b": [5]}
        self.assertEqual(model.other_target_x(1), 2)
        self.assertIsNone(model.other_target_x(7))

    def test_multiple_x_mode(self) -> None:
        self.assertFalse(DataModel().is_multiple_x())
        self.assertTrue(DataModel(ChartConfig(data_xs={"a": "xa"})).is_multiple_x())
        self.assertTrue(DataModel(ChartConfig(data_x_sort=False)).is_multiple_x())
        self.assertTrue(DataModel(ChartConfig(data_type="scatter")).is_multiple_x())

    def test_prev_and_next_x_read_axis_positions(self) -> None:
        model = DataModel()
        model.update_xs([XSlot(x=1, index=0), XSlot(x=2, index=1), XSlot(x=4, index=2)])
        self.assertEqual(model.prev_x(1), 1)
        self.assertEqual(model.next_x(1), 4)
        self.assertIsNone(model.prev_x(0))
        self.assertIsNone(model.next_x(2))


class DataModelLoadTests(unittest.TestCase):
    def test_custom_x_values_are_sorted_and_reindexed(self) -> None:
        model = DataModel(ChartConfig(data_x="x"))
        targets = model.convert_columns_to_targets({"x": [3, 1, 2], "a": [30, 10, 20]})
        self.assertEqual(len(targets), 1)
        values = targets[0].values
        self.assertEqual([v.x for v in values], [1.0, 2.0, 3.0])
        self.assertEqual([v.value for v in values], [10.0, 20.0, 30.0])
        self.assertEqual([v.index for v in values], [0, 1, 2])

    def test_indexed_axis_uses_ordinal_x(self) -> None:
        model = DataModel()
        targets = model.convert_columns_to_targets({"a": [5, None, "7"]})
        self.assertEqual([v.x for v in targets[0].values], [0, 1, 2])
        self.assertEqual([v.value for v in targets[0].values], [5.0, None, 7.0])

    def test_time_series_x_is_parsed(self) -> None:
        model = DataModel(ChartConfig(data_x="date", axis_x_type="timeseries"))
        targets = model.convert_columns_to_targets({"date": ["2024-01-02", "2024-01-01"], "a": [2, 1]})
        xs = [v.x for v in targets[0].values]
        self.assertEqual(xs[0], datetime(2024, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(xs[1], datetime(2024, 1, 2, tzinfo=timezone.utc))
        self.assertEqual([v.value for v in targets[0].values], [1.0, 2.0])

    def test_categorized_axis_ignores_raw_x(self) -> None:
        model = DataModel(ChartConfig(data_x="x", axis_x_type="category"))
        targets = model.convert_columns_to_targets({"x": ["b", "a"], "a": [1, 2]})
        self.assertEqual([v.x for v in targets[0].values], [0, 1])

    def test_invalid_custom_x_degrades_to_index(self) -> None:
        model = DataModel(ChartConfig(data_x="x", data_x_sort=False))
        targets = model.convert_columns_to_targets({"x": [10, "oops", None], "a": [1, 2, 3]})
        self.assertEqual([v.x for v in targets[0].values], [10.0, 1, 2])

    def test_unparsable_custom_x_sorts_by_index(self) -> None:
        model = DataModel(ChartConfig(data_x="x"))
        targets = model.convert_columns_to_targets({"x": [0, "bad", 2], "a": [1, 2, 3]})
        self.assertEqual([v.x for v in targets[0].values], [0.0, 1, 2.0])
        self.assertEqual([v.value for v in targets[0].values], [1.0, 2.0, 3.0])

    def test_missing_x_column_falls_back_to_index(self) -> None:
        model = DataModel(ChartConfig(data_x="x"))
        with self.assertLogs("chartcore.model", level="WARNING"):
            targets = model.convert_columns_to_targets({"a": [1, 2]})
        self.assertEqual([v.x for v in targets[0].values], [0, 1])
        multi = DataModel(ChartConfig(data_xs={"a": "xa"}))
        with self.assertLogs("chartcore.model", level="WARNING"):
            targets = multi.convert_columns_to_targets({"a": [1, 2]})
        self.assertEqual([v.x for v in targets[0].values], [0, 1])

    def test_id_converter_keeps_original_id(self) -> None:
        model = DataModel(ChartConfig(data_id_converter=str.upper))
        targets = model.convert_columns_to_targets({"a": [1]})
        self.assertEqual(targets[0].id, "A")
        self.assertEqual(targets[0].id_org, "a")
        self.assertEqual(targets[0].values[0].id, "A")

    def test_range_values_follow_series_type(self) -> None:
        model = DataModel(ChartConfig(data_types={"r": "area-line-range"}))
        targets = model.convert_columns_to_targets({"r": [[5, 3, 1], {"high": 6, "mid": 4, "low": 2}]})
        self.assertEqual(targets[0].values[0].value, RangeValue(high=5.0, mid=3.0, low=1.0))
        self.assertEqual(targets[0].values[1].base, 4.0)

    def test_load_targets_merges_by_id(self) -> None:
        model = DataModel()
        model.load_targets([_series("a", [(0, 1)]), _series("b", [(0, 2)])])
        model.mark_shown(["a", "b"])
        replacement = _series("a", [(0, 9)])
        model.load_targets([replacement, _series("c", [(0, 3)])])
        self.assertEqual(model.map_to_ids(model.targets), ["a", "b", "c"])
        self.assertIs(model.targets[0], replacement)
        self.assertFalse(model.is_shown_once("a"))
        self.assertTrue(model.is_shown_once("b"))

    def test_replace_targets_keeps_shown_flags_only_for_surviving_ids(self) -> None:
        model = DataModel()
        model.replace_targets([_series("a", []), _series("b", [])])
        model.mark_shown(["a", "b"])
        model.replace_targets([_series("b", [])])
        self.assertFalse(model.is_shown_once("a"))
        self.assertTrue(model.is_shown_once("b"))

    def test_replace_targets_drops_x_values_of_removed_ids(self) -> None:
        model = DataModel(ChartConfig(data_xs={"a": "xa", "b": "xb"}))
        model.replace_targets(model.convert_columns_to_targets({"xa": [5, 6], "a": [1, 2], "xb": [7], "b": [3]}))
        model.replace_targets([_series("b", [(7, 3)])])
        self.assertEqual(list(model.xs), ["b"])
        self.assertEqual(model.other_target_xs(), [7])

    def test_mutations_bump_generation(self) -> None:
        model = DataModel()
        start = model.generation
        model.replace_targets([_series("a", [(0, 1)])])
        model.add_hidden_target_ids("a")
        model.remove_hidden_target_ids("a")
        model.align_indices_to_ticks([0])
        self.assertEqual(model.generation, start + 4)

    def test_remove_targets_drops_visibility_state(self) -> None:
        model = DataModel()
        model.replace_targets([_series("a", [(0, 1)]), _series("b", [(0, 1)])])
        model.add_hidden_target_ids("a")
        model.add_hidden_legend_ids("a")
        self.assertEqual(model.remove_targets("a"), ["a"])
        self.assertEqual(model.map_to_ids(model.targets), ["b"])
        self.assertEqual(model.hidden_target_ids, [])
        self.assertEqual(model.hidden_legend_ids, [])


class DataModelQueryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.model = DataModel(ChartConfig(data_names={"a": "Alpha"}))
        self.a = _series("a", [(0, 3), (1, 5)])
        self.b = _series("b", [(0, -2), (1, 4)])
        self.model.replace_targets([self.a, self.b])

    def test_value_at_scans_stored_index(self) -> None:
        values = [DataPoint(x=0, value=1.0, id="a", index=0), DataPoint(x=4, value=2.0, id="a", index=4)]
        self.assertIs(DataModel.value_at(values, 4), values[1])
        self.assertIsNone(DataModel.value_at(values, 2))

    def test_visibility_sets_have_set_semantics(self) -> None:
        self.model.add_hidden_target_ids(["b", "b"])
        self.model.add_hidden_target_ids("b")
        self.assertEqual(self.model.hidden_target_ids, ["b"])
        self.assertFalse(self.model.is_visible("b"))
        self.assertEqual(self.model.visible_series(), [self.a])
        self.model.remove_hidden_target_ids("b")
        self.assertEqual(self.model.visible_series(), [self.a, self.b])

    def test_legend_visibility_is_independent(self) -> None:
        self.model.add_hidden_legend_ids("a")
        self.assertFalse(self.model.is_legend_visible("a"))
        self.assertTrue(self.model.is_visible("a"))

    def test_all_values_on_index_adds_names(self) -> None:
        values = self.model.all_values_on_index(1)
        self.assertEqual([v.name for v in values], ["Alpha", "b"])
        self.assertEqual([v.value for v in values], [5, 4])

    def test_all_values_on_index_filters_missing(self) -> None:
        self.a.values[1].value = None
        values = self.model.all_values_on_index(1, filter_null=True)
        self.assertEqual([v.id for v in values], ["b"])

    def test_group_membership_requires_group_of_two(self) -> None:
        model = DataModel(ChartConfig(data_groups=[["a", "b"], ["c"]]))
        self.assertTrue(model.is_grouped("a"))
        self.assertFalse(model.is_grouped("c"))
        self.assertFalse(model.is_grouped("z"))
        self.assertTrue(model.is_grouped())

    def test_sign_checks(self) -> None:
        self.assertTrue(self.model.has_negative_value_in_targets(self.model.targets))
        self.assertFalse(self.model.has_negative_value_in_targets([self.a]))
        self.assertTrue(self.model.has_positive_value_in_targets([self.b]))

    def test_order_targets(self) -> None:
        small = _series("small", [(0, 1)])
        large = _series("large", [(0, -10)])
        self.model.config.data_order = "desc"
        self.assertEqual([t.id for t in self.model.order_targets([large, small])], ["small", "large"])
        self.model.config.data_order = "asc"
        self.assertEqual([t.id for t in self.model.order_targets([small, large])], ["large", "small"])
        self.model.config.data_order = lambda t1, t2: (t1.id > t2.id) - (t1.id < t2.id)
        self.assertEqual([t.id for t in self.model.order_targets([small, large])], ["large", "small"])
        self.model.config.data_order = None
        self.assertEqual([t.id for t in self.model.order_targets([small, large])], ["small", "large"])

    def test_filter_by_x_domain_keeps_ids(self) -> None:
        filtered = DataModel.filter_by_x_domain([self.a], (1, 5))
        self.assertEqual(filtered[0].id_org, "a")
        self.assertEqual([v.x for v in filtered[0].values], [1])

    def test_filter_remove_null(self) -> None:
        self.a.values[0].value = None
        self.assertEqual(DataModel.filter_remove_null(self.a.values), [self.a.values[1]])

    def test_index_by_x(self) -> None:
        self.assertEqual(self.model.index_by_x(1), 1)
        self.assertIsNone(self.model.index_by_x(99))
        self.assertEqual(self.model.index_by_x(3, [1, 3]), 1)
        self.assertEqual(self.model.index_by_x(2, [1, 3]), -1)

    def test_values_as_id_keyed_flattens_ranges(self) -> None:
        model = DataModel(ChartConfig(data_types={"r": "area-line-range"}))
        ranged = Series(
            id="r",
            id_org="r",
            values=[DataPoint(x=0, value=RangeValue(high=3.0, mid=2.0, low=1.0), id="r", index=0)],
        )
        model.replace_targets([ranged])
        self.assertEqual(model.values_as_id_keyed([ranged]), {"r": [3.0, 2.0, 1.0]})

    def test_values_as_id_keyed_places_values_on_shared_x(self) -> None:
        model = DataModel(ChartConfig(data_xs={"a": "xa", "b": "xb"}))
        a = _series("a", [(1, 10.0), (3, 30.0)])
        b = _series("b", [(2, 20.0)])
        model.replace_targets([a, b])
        self.assertEqual(model.values_as_id_keyed([a, b]), {"a": [10.0, None, 30.0], "b": [None, 20.0]})

    def test_max_data_count_target_merges_visible_x(self) -> None:
        self.b.values[1].x = 2
        slots = self.model.max_data_count_target()
        self.assertEqual([(s.x, s.index) for s in slots], [(0, 0), (1, 1), (2, 2)])
        self.model.add_hidden_target_ids("b")
        self.assertEqual(self.model.max_data_count_target(), self.a.values)
        self.assertEqual(self.model.max_data_count(), 2)


class DataModelXDomainTests(unittest.TestCase):
    def test_unique_sorted_x_merges_and_is_idempotent(self) -> None:
        model = DataModel()
        a = _series("a", [(3, 1), (1, 1)])
        b = _series("b", [(1, 2), (2, 2)])
        merged = model.unique_sorted_x([a, b])
        self.assertEqual(merged, [1, 2, 3])
        again = model.unique_sorted_x([_series("m", [(x, 0) for x in merged])])
        self.assertEqual(again, merged)
        self.assertLessEqual(len(merged), len(a.values) + len(b.values))

    def test_unique_sorted_x_orders_dates_chronologically(self) -> None:
        model = DataModel()
        later = datetime(2024, 3, 1, tzinfo=timezone.utc)
        earlier = datetime(2024, 1, 1, tzinfo=timezone.utc)
        merged = model.unique_sorted_x([_series("a", [(later, 1), (earlier, 1), (later, 2)])])
        self.assertEqual(merged, [earlier, later])

    def test_unique_sorted_x_of_nothing(self) -> None:
        self.assertEqual(DataModel().unique_sorted_x([]), [])

    def test_align_indices_round_trip(self) -> None:
        model = DataModel()
        a = _series("a", [(10, 1), (20, 2), (30, 3)])
        model.replace_targets([a])
        original = list(a.values)
        model.align_indices_to_ticks([XSlot(x=20, index=0), XSlot(x=10, index=1), XSlot(x=40, index=2)])
        self.assertEqual([v.index for v in a.values], [1, 0, 2])
        self.assertIs(DataModel.value_at(a.values, 1), original[0])
        self.assertIs(DataModel.value_at(a.values, 0), original[1])
        # x=30 is not a tick, so it keeps its ordinal position.
        self.assertIs(DataModel.value_at(a.values, 2), original[2])

    def test_update_target_x_regenerates_points(self) -> None:
        model = DataModel(ChartConfig(data_xs={"a": "xa"}))
        a = _series("a", [(0, 1), (1, 2)])
        model.replace_targets([a])
        model.update_target_xs(model.targets, {"a": [5, "bad"]})
        self.assertEqual([v.x for v in a.values], [5.0, 1])
        self.assertEqual(model.xs["a"], [5, "bad"])

    def test_step_conversion_uses_configured_step_type(self) -> None:
        model = DataModel(ChartConfig(line_step_type="step-after"))
        values = _series("a", [(0, 1), (1, 2)]).values
        self.assertEqual([v.x for v in model.convert_values_to_step(values)], [-1, 0, 1, 2])
        self.assertEqual(len(DataModel().convert_values_to_step(values)), 2)
        self.assertEqual(len(DataModel().convert_values_to_step(values, "step-before")), 4)


if __name__ == "__main__":
    unittest.main()
