"""
Tests for the aging engine.

Covers:
- Days overdue from dates and from timestamps
- The two collection buckets
- Bucket validation
"""

from datetime import date, datetime, timezone

import pytest

from ledger_engines.aging import AgeBucket, classify, days_overdue, overdue_buckets


class TestDaysOverdue:

    def test_whole_days_from_date(self):
        assert days_overdue(date(2024, 1, 10), date(2024, 1, 30)) == 20

    def test_not_yet_due_is_zero(self):
        assert days_overdue(date(2024, 2, 1), date(2024, 1, 15)) == 0

    def test_due_today_is_zero(self):
        assert days_overdue(date(2024, 1, 15), date(2024, 1, 15)) == 0

    def test_no_due_date(self):
        assert days_overdue(None, date(2024, 1, 15)) == 0

    def test_partial_day_rounds_up(self):
        as_of = datetime(2024, 1, 15, 0, 30, tzinfo=timezone.utc)
        assert days_overdue(date(2024, 1, 14), as_of) == 2

    def test_naive_timestamp_treated_as_utc(self):
        assert days_overdue(date(2024, 1, 14), datetime(2024, 1, 15)) == 1


class TestBuckets:

    def test_default_threshold_is_fifteen(self):
        up_to, over = overdue_buckets()
        assert (up_to.min_days, up_to.max_days) == (1, 15)
        assert over.min_days == 16
        assert over.is_unbounded

    @pytest.mark.parametrize(
        "age, expected",
        [(1, "up_to_15"), (15, "up_to_15"), (16, "over_15"), (400, "over_15")],
    )
    def test_classify(self, age, expected):
        assert classify(age, overdue_buckets(15)).name == expected

    def test_custom_threshold(self):
        assert classify(10, overdue_buckets(7)).name == "over_7"

    def test_age_outside_every_bucket(self):
        with pytest.raises(ValueError):
            classify(0, overdue_buckets(15))

    def test_invalid_bucket(self):
        with pytest.raises(ValueError):
            AgeBucket("bad", 10, 5)
        with pytest.raises(ValueError):
            AgeBucket("bad", -1, None)
