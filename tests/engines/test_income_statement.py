"""
Tests for the income statement engine.

Covers:
- Derived lines (net revenue, gross profit, EBITDA, net result, ROI)
- Row order and subgroup ordering
- Zero-filled periods and out-of-range entries
- Property: group rows equal the sum of their subgroups
"""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engines.income_statement import (
    ClassifiedAmount,
    DREGroup,
    RowKind,
    StatementLine,
    build_income_statement,
    months_between,
)

JAN, FEB = "2024-01", "2024-02"


def _entry(period, group, subgroup, amount):
    return ClassifiedAmount(period=period, group=group, subgroup=subgroup, amount=Decimal(amount))


def _rows_by_key(rows):
    return {row.key: row for row in rows}


@pytest.fixture
def january_rows():
    entries = [
        _entry(JAN, DREGroup.REVENUE_GROSS, "Sales", "1000"),
        _entry(JAN, DREGroup.DEDUCTIONS, "Sales Taxes", "100"),
        _entry(JAN, DREGroup.COGS, "Domestic Purchases", "400"),
        _entry(JAN, DREGroup.OPERATING_EXPENSES, "Administrative", "200"),
        _entry(JAN, DREGroup.OPERATING_EXPENSES, "Financial", "50"),
    ]
    return _rows_by_key(build_income_statement(entries=entries, periods=[JAN]))


class TestDerivedLines:

    def test_net_revenue(self, january_rows):
        assert january_rows["NET_REVENUE"].value_for(JAN) == Decimal("900")

    def test_gross_profit(self, january_rows):
        assert january_rows["GROSS_PROFIT"].value_for(JAN) == Decimal("500")

    def test_net_result(self, january_rows):
        assert january_rows["NET_RESULT"].value_for(JAN) == Decimal("250")

    def test_ebitda_adds_back_financial(self, january_rows):
        assert january_rows["EBITDA"].value_for(JAN) == Decimal("300")

    def test_roi(self, january_rows):
        roi = january_rows["ROI"]
        assert roi.value_for(JAN) == Decimal("27.78")
        assert roi.is_percentage

    def test_roi_zero_without_revenue(self):
        rows = _rows_by_key(
            build_income_statement(
                entries=[_entry(JAN, DREGroup.OPERATING_EXPENSES, "Administrative", "10")],
                periods=[JAN],
            )
        )
        assert rows["ROI"].value_for(JAN) == Decimal("0.00")
        assert rows["NET_RESULT"].value_for(JAN) == Decimal("-10")

    def test_negative_source_amounts_enter_as_absolute(self):
        rows = _rows_by_key(
            build_income_statement(
                entries=[_entry(JAN, DREGroup.COGS, "Import Costs", "-300")],
                periods=[JAN],
            )
        )
        assert rows["COGS"].value_for(JAN) == Decimal("300")


class TestRowStructure:

    def test_line_order(self, january_rows):
        assert list(january_rows) == [line.value for line in StatementLine]

    def test_only_group_rows_have_children(self, january_rows):
        for row in january_rows.values():
            if row.kind is RowKind.GROUP:
                continue
            assert row.children == ()

    def test_subgroups_sorted_by_value_then_label(self):
        entries = [
            _entry(JAN, DREGroup.OPERATING_EXPENSES, "Sales", "50"),
            _entry(JAN, DREGroup.OPERATING_EXPENSES, "Financial", "50"),
            _entry(JAN, DREGroup.OPERATING_EXPENSES, "Administrative", "80"),
        ]
        rows = _rows_by_key(build_income_statement(entries=entries, periods=[JAN]))
        labels = [c.label for c in rows["OPERATING_EXPENSES"].children]
        assert labels == ["Administrative", "Financial", "Sales"]

    def test_every_period_zero_filled(self):
        rows = _rows_by_key(
            build_income_statement(
                entries=[_entry(FEB, DREGroup.REVENUE_GROSS, "Sales", "10")],
                periods=[JAN, FEB],
            )
        )
        assert rows["REVENUE_GROSS"].values == {JAN: Decimal("0"), FEB: Decimal("10")}
        assert rows["COGS"].values == {JAN: Decimal("0"), FEB: Decimal("0")}

    def test_entries_outside_periods_ignored(self):
        rows = _rows_by_key(
            build_income_statement(
                entries=[_entry("2023-12", DREGroup.REVENUE_GROSS, "Sales", "10")],
                periods=[JAN],
            )
        )
        assert rows["REVENUE_GROSS"].total == Decimal("0")

    def test_total_roi_recomputed_from_totals(self):
        entries = [
            _entry(JAN, DREGroup.REVENUE_GROSS, "Sales", "100"),
            _entry(JAN, DREGroup.OPERATING_EXPENSES, "Administrative", "50"),
            _entry(FEB, DREGroup.REVENUE_GROSS, "Sales", "300"),
        ]
        rows = _rows_by_key(build_income_statement(entries=entries, periods=[JAN, FEB]))
        roi = rows["ROI"]
        assert roi.value_for(JAN) == Decimal("50.00")
        assert roi.value_for(FEB) == Decimal("100.00")
        # (50 + 300) / 400, not the sum or mean of the monthly ratios
        assert roi.total == Decimal("87.50")


class TestMonthsBetween:

    def test_inclusive_across_year(self):
        assert months_between(date(2023, 11, 20), date(2024, 2, 1)) == [
            "2023-11",
            "2023-12",
            "2024-01",
            "2024-02",
        ]

    def test_same_month(self):
        assert months_between(date(2024, 5, 1), date(2024, 5, 31)) == ["2024-05"]

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            months_between(date(2024, 5, 1), date(2024, 4, 30))


_amounts = st.decimals(
    min_value=Decimal("-10000"),
    max_value=Decimal("10000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

_entries = st.lists(
    st.builds(
        ClassifiedAmount,
        period=st.sampled_from([JAN, FEB]),
        group=st.sampled_from(list(DREGroup)),
        subgroup=st.sampled_from(["Sales", "Financial", "Administrative", "Freight"]),
        amount=_amounts,
    ),
    max_size=40,
)


class TestAdditivity:

    @settings(max_examples=100, deadline=None)
    @given(entries=_entries)
    def test_group_equals_sum_of_subgroups(self, entries):
        rows = build_income_statement(entries=entries, periods=[JAN, FEB])

        for row in rows:
            if row.kind is not RowKind.GROUP:
                continue
            for period in (JAN, FEB):
                children_sum = sum((c.value_for(period) for c in row.children), Decimal("0"))
                assert row.value_for(period) == children_sum

    @settings(max_examples=100, deadline=None)
    @given(entries=_entries)
    def test_row_total_is_sum_of_periods(self, entries):
        rows = build_income_statement(entries=entries, periods=[JAN, FEB])

        for row in rows:
            if row.is_percentage:
                continue
            assert row.total == row.value_for(JAN) + row.value_for(FEB)
