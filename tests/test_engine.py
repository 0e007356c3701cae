import json
import math
import sys
import unittest
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sheet_reconciler.engine import apply_corrections, validate
from sheet_reconciler.keywords import KeywordSet
from sheet_reconciler.modes import (
    HorizontalGroup,
    HorizontalManual,
    Selection,
    SumDirection,
    VerticalGroup,
    VerticalIndent,
    VerticalManual,
)
from sheet_reconciler.table import CellRange, as_rows

SUBTOTAL = KeywordSet(("Subtotal",))


def vertical_group(direction=SumDirection.BOTTOM, keywords=SUBTOTAL, **range_kwargs):
    return VerticalGroup(name_col=0, keywords=keywords, direction=direction, range=CellRange(**range_kwargs))


class VerticalGroupTests(unittest.TestCase):
    def test_bottom_subtotal_that_matches_has_no_discrepancy(self):
        table = [["Name", "Amount"], ["Item", 10], ["Item", 20], ["Subtotal", 30]]
        result = validate(table, vertical_group())
        self.assertEqual(result.count, 0)
        self.assertFalse(result.has_discrepancies)

    def test_bottom_subtotal_mismatch_is_reported_with_correction(self):
        table = [["Name", "Amount"], ["Item", 10], ["Item", 20], ["Subtotal", 35]]
        result = validate(table, vertical_group())

        self.assertEqual(result.count, 1)
        record = result.discrepancies[0]
        self.assertEqual((record.row, record.col), (3, 1))
        self.assertEqual(record.expected, 30)
        self.assertEqual(record.actual, 35)
        self.assertEqual(record.difference, 5)
        self.assertEqual(result.corrections[(3, 1)], 30)
        self.assertEqual(result.total_difference, 5)

    def test_bottom_accumulator_resets_after_each_subtotal(self):
        table = [
            ["Name", "Q1", "Q2"],
            ["a", 1, 2],
            ["Subtotal", 1, 2],
            ["b", "(5)", "1,000"],
            ["Subtotal", -5, 1000],
        ]
        self.assertEqual(validate(table, vertical_group()).count, 0)

    def test_top_subtotals_are_resolved_against_the_rows_below(self):
        table = [
            ["Name", "Amount"],
            ["Subtotal", 30],
            ["a", 10],
            ["b", 20],
            ["Subtotal", 7],
            ["c", 4],
        ]
        result = validate(table, vertical_group(SumDirection.TOP))

        self.assertEqual([record.coordinate for record in result.discrepancies], [(4, 1)])
        self.assertEqual(result.discrepancies[0].expected, 4)
        self.assertEqual(result.discrepancies[0].difference, 3)

    def test_top_non_numeric_trigger_clears_pending_check(self):
        table = [
            ["Name", "Amount"],
            ["Subtotal", ""],
            ["a", 10],
            ["Subtotal", 99],
            ["b", 5],
        ]
        result = validate(table, vertical_group(SumDirection.TOP))

        self.assertEqual(result.count, 1)
        self.assertEqual(result.discrepancies[0].coordinate, (3, 1))
        self.assertEqual(result.discrepancies[0].expected, 5)

    def test_bottom_non_numeric_trigger_resets_the_group(self):
        table = [
            ["Name", "Amount"],
            ["a", 10],
            ["Subtotal", ""],
            ["b", 5],
            ["Subtotal", 5],
        ]
        self.assertEqual(validate(table, vertical_group()).count, 0)

    def test_integer_too_wide_for_a_float_is_checked_as_infinite(self):
        table = json.loads('[["Name", "Amount"], ["Item", 1' + "0" * 400 + '], ["Subtotal", 5]]')
        result = validate(table, vertical_group())

        self.assertEqual(result.count, 1)
        self.assertEqual(result.discrepancies[0].coordinate, (2, 1))
        self.assertEqual(result.discrepancies[0].expected, math.inf)
        self.assertEqual(result.discrepancies[0].actual, 5)

    def test_excluded_rows_are_neither_summed_nor_checked(self):
        table = [
            ["Name", "Amount"],
            ["a", 10],
            ["b", 20],
            ["Grand Total", 1000],
            ["Subtotal", 30],
        ]
        keywords = KeywordSet(("Total", "Subtotal"), ("Grand Total",))
        self.assertEqual(validate(table, vertical_group(keywords=keywords)).count, 0)

    def test_label_column_is_never_checked_and_range_limits_rows(self):
        table = [
            ["Name", "Amount"],
            ["a", 10],
            ["Subtotal", 10],
            ["b", 1],
            ["Subtotal", 500],
        ]
        self.assertEqual(validate(table, vertical_group(end_row=3)).count, 0)
        self.assertEqual(validate(table, vertical_group()).count, 1)

    def test_dataframe_input_after_normalisation(self):
        df = pd.DataFrame({"label": ["Name", "Item", "Item", "Subtotal"], "value": ["Amount", 10, 20, 35]})
        result = validate(as_rows(df), vertical_group())
        self.assertEqual(result.corrections, {(3, 1): 30})


class HorizontalGroupTests(unittest.TestCase):
    def setUp(self):
        self.request = HorizontalGroup(keywords=KeywordSet(("Subtotal", "Total"), ("Memo",)))

    def test_subtotal_columns_sum_the_columns_to_their_left(self):
        table = [
            ["Name", "A", "B", "Subtotal", "C", "Total"],
            ["x", 1, 2, 3, 4, 4],
        ]
        self.assertEqual(validate(table, self.request).count, 0)

    def test_each_trigger_column_is_checked_independently(self):
        table = [
            ["Name", "A", "B", "Subtotal", "C", "Total"],
            ["y", 1, 2, 10, 4, 9],
        ]
        result = validate(table, self.request)

        self.assertEqual([record.coordinate for record in result.discrepancies], [(1, 3), (1, 5)])
        self.assertEqual(result.discrepancies[0].expected, 3)
        self.assertEqual(result.discrepancies[1].expected, 4)
        self.assertEqual(result.discrepancies[1].difference, 5)

    def test_non_numeric_trigger_column_resets_the_running_sum(self):
        table = [
            ["Name", "A", "Subtotal", "B", "Total"],
            ["x", 10, "", 5, 5],
        ]
        self.assertEqual(validate(table, self.request).count, 0)

    def test_excluded_columns_are_skipped(self):
        table = [
            ["Name", "A", "Memo", "B", "Total"],
            ["z", 5, 100, 5, 10],
        ]
        self.assertEqual(validate(table, self.request).count, 0)


class VerticalIndentTests(unittest.TestCase):
    request = VerticalIndent(name_col=0)

    def test_difference_of_one_is_within_tolerance(self):
        table = [["Name", "Value"], ["Parent", 11], ["  Child1", 4], ["  Child2", 6]]
        self.assertEqual(validate(table, self.request).count, 0)

    def test_parent_mismatch_is_reported(self):
        table = [["Name", "Value"], ["Parent", 20], ["  Child1", 4], ["  Child2", 6]]
        result = validate(table, self.request)

        self.assertEqual(result.count, 1)
        self.assertEqual(result.discrepancies[0].coordinate, (1, 1))
        self.assertEqual(result.discrepancies[0].expected, 10)

    def test_only_immediate_children_are_summed(self):
        table = [
            ["Name", "Value"],
            ["A", 10],
            ["  B", 10],
            ["    c", 4],
            ["    d", 6],
        ]
        self.assertEqual(validate(table, self.request).count, 0)

    def test_subtree_ends_at_the_next_shallower_row(self):
        table = [
            ["Account", "2024"],
            ["Revenue", 1200],
            ["  Product", 700],
            ["  Services", 500],
            ["Expenses", 900],
            ["  Payroll", 500],
            ["    Salaries", 380],
            ["    Bonuses", 120],
            ["  Rent", 350],
            ["Net", 300],
        ]
        result = validate(table, self.request)

        self.assertEqual(result.count, 1)
        record = result.discrepancies[0]
        self.assertEqual(record.coordinate, (4, 1))
        self.assertEqual(record.expected, 850)
        self.assertEqual(record.difference, 50)

    def test_fullwidth_space_counts_as_indentation(self):
        table = [["Name", "Value"], ["Parent", 12], ["　Child", 5], ["　Child", 5]]
        self.assertEqual(validate(table, self.request).count, 1)

    def test_non_numeric_parent_or_children_are_skipped(self):
        table = [["Name", "Value"], ["Parent", "n/a"], ["  Child", 5], ["Other", 99], ["  Child", "-"]]
        self.assertEqual(validate(table, self.request).count, 0)


class ManualModeTests(unittest.TestCase):
    def test_horizontal_signed_equation_holds(self):
        request = HorizontalManual(selection=Selection((1, 2, 3), {2: -1}))
        table = [["Name", "A", "B", "C"], ["r", 100, 40, 60]]
        self.assertEqual(validate(table, request).count, 0)

    def test_horizontal_signed_equation_mismatch(self):
        request = HorizontalManual(selection=Selection((1, 2, 3), {2: -1}))
        table = [["Name", "A", "B", "C"], ["r", 100, 40, 70]]
        result = validate(table, request)

        self.assertEqual(result.count, 1)
        self.assertEqual(result.discrepancies[0].coordinate, (1, 3))
        self.assertEqual(result.discrepancies[0].expected, 60)
        self.assertEqual(result.discrepancies[0].difference, 10)

    def test_non_numeric_inputs_count_as_zero(self):
        request = HorizontalManual(selection=Selection((1, 2, 3)))
        table = [["Name", "A", "B", "C"], ["r", 100, "n/a", 100], ["s", 5, 5, "pending"]]
        self.assertEqual(validate(table, request).count, 0)

    def test_target_sign_is_ignored(self):
        request = HorizontalManual(selection=Selection((1, 2), {2: -1}))
        table = [["Name", "A", "B"], ["r", 10, 10]]
        self.assertEqual(validate(table, request).count, 0)

    def test_vertical_signed_equation_down_columns(self):
        request = VerticalManual(selection=Selection((1, 2, 3), {2: -1}))
        table = [
            ["", "Q1", "Q2"],
            ["Revenue", 100, 200],
            ["Cost", 40, 50],
            ["Profit", 60, 140],
        ]
        result = validate(table, request)

        self.assertEqual(result.count, 1)
        record = result.discrepancies[0]
        self.assertEqual(record.coordinate, (3, 2))
        self.assertEqual(record.expected, 150)
        self.assertEqual(record.difference, -10)

    def test_undersized_selection_is_a_no_op_with_warning(self):
        table = [["Name", "A"], ["r", 1]]
        for request in (HorizontalManual(selection=Selection((1,))), VerticalManual(selection=Selection(()))):
            with self.subTest(mode=request.mode):
                result = validate(table, request)
                self.assertEqual(result.count, 0)
                self.assertEqual(len(result.warnings), 1)


class EngineContractTests(unittest.TestCase):
    def test_repeated_calls_return_identical_results(self):
        table = [["Name", "Amount"], ["Item", 10], ["Item", 20], ["Subtotal", 35]]
        request = vertical_group()
        first = validate(table, request)
        second = validate(table, request)

        self.assertEqual(first, second)
        self.assertIsNot(first, second)

    def test_degenerate_range_yields_empty_result(self):
        table = [["Name", "Amount"], ["Subtotal", 5]]
        self.assertEqual(validate(table, vertical_group(header_row=10)).count, 0)
        self.assertEqual(validate([], VerticalIndent(name_col=0)).count, 0)

    def test_unknown_request_type_is_rejected(self):
        with self.assertRaises(TypeError):
            validate([["a"]], object())

    def test_apply_corrections_returns_a_fixed_copy(self):
        table = [["Name", "Amount"], ["Item", 10], ["Item", 20], ["Subtotal", 35]]
        result = validate(table, vertical_group())

        corrected = apply_corrections(table, result)

        self.assertEqual(corrected[3], ["Subtotal", 30])
        self.assertEqual(table[3], ["Subtotal", 35])


if __name__ == "__main__":
    unittest.main()
