"""
Tests for the installment schedule engine.

Covers:
- The worked 1200 / 3 monthly example
- Remainder handling (last installment carries the cents)
- Calendar-month stepping with end-of-month clamping
- Weekly and biweekly spacing
- Property: amounts always add up to the rounded total
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engines.installments import (
    Frequency,
    add_months,
    build_schedule,
    due_date_for,
    split_amount,
)
from ledger_kernel.db.types import round_money


class TestWorkedExample:

    def test_1200_in_three_monthly_installments(self):
        schedule = build_schedule(
            total=Decimal("1200"),
            count=3,
            frequency=Frequency.MONTHLY,
            first_date=date(2024, 1, 10),
        )

        assert [i.amount for i in schedule] == [Decimal("400.00")] * 3
        assert [i.due_date for i in schedule] == [
            date(2024, 1, 10),
            date(2024, 2, 10),
            date(2024, 3, 10),
        ]
        assert [i.label for i in schedule] == ["1/3", "2/3", "3/3"]


class TestSplitAmount:

    def test_remainder_goes_to_last(self):
        assert split_amount(Decimal("100"), 3) == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]

    def test_single_installment(self):
        assert split_amount(Decimal("99.999"), 1) == [Decimal("100.00")]

    def test_rejects_zero_count(self):
        with pytest.raises(ValueError):
            split_amount(Decimal("100"), 0)

    def test_rejects_non_positive_total(self):
        with pytest.raises(ValueError):
            split_amount(Decimal("0.004"), 2)


class TestDueDates:

    def test_month_end_clamps_without_drifting(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 1, 31), 2) == date(2024, 3, 31)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_year_rollover(self):
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    def test_weekly(self):
        assert due_date_for(date(2024, 1, 1), 2, Frequency.WEEKLY) == date(2024, 1, 15)

    def test_biweekly_is_fifteen_days(self):
        assert due_date_for(date(2024, 1, 1), 1, "BIWEEKLY") == date(2024, 1, 16)

    def test_unknown_frequency(self):
        with pytest.raises(ValueError):
            due_date_for(date(2024, 1, 1), 1, "DAILY")


class TestScheduleProperties:

    @settings(max_examples=200, deadline=None)
    @given(
        total=st.decimals(
            min_value=Decimal("0.01"),
            max_value=Decimal("1000000"),
            places=2,
            allow_nan=False,
            allow_infinity=False,
        ),
        count=st.integers(min_value=1, max_value=60),
    )
    def test_amounts_sum_to_total(self, total, count):
        if total < Decimal("0.01") * count:
            total = Decimal("0.01") * count
        amounts = split_amount(total, count)

        assert len(amounts) == count
        assert sum(amounts) == round_money(total)
        assert all(a > 0 for a in amounts)
        assert amounts[-1] >= amounts[0]

    @settings(max_examples=100, deadline=None)
    @given(
        first=st.dates(min_value=date(2000, 1, 1), max_value=date(2090, 12, 31)),
        count=st.integers(min_value=1, max_value=24),
        frequency=st.sampled_from([Frequency.WEEKLY, Frequency.BIWEEKLY]),
    )
    def test_fixed_day_steps(self, first, count, frequency):
        schedule = build_schedule(
            total=Decimal("500"), count=count, frequency=frequency, first_date=first
        )
        step = 7 if frequency is Frequency.WEEKLY else 15

        assert schedule[0].due_date == first
        for earlier, later in zip(schedule, schedule[1:]):
            assert later.due_date - earlier.due_date == timedelta(days=step)

    @settings(max_examples=100, deadline=None)
    @given(
        first=st.dates(min_value=date(2000, 1, 1), max_value=date(2090, 12, 31)),
        count=st.integers(min_value=1, max_value=36),
    )
    def test_monthly_steps_one_calendar_month(self, first, count):
        schedule = build_schedule(
            total=Decimal("500"), count=count, frequency=Frequency.MONTHLY, first_date=first
        )

        for n, item in enumerate(schedule):
            months = (item.due_date.year - first.year) * 12 + item.due_date.month - first.month
            assert months == n
            assert item.due_date.day <= first.day
