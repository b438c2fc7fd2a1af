"""
Tests for debtor aggregation.

Covers:
- Which receivables qualify for the collection desk
- Notary / agreement / direct-overdue routing of each title
- Aging split and collection level
- Next-action partition and portfolio KPIs
"""

from datetime import date
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engines.debtors import (
    CollectionLevel,
    aggregate_debtors,
    partition_by_next_action,
    qualifies_for_collection,
    summarize_portfolio,
)
from ledger_kernel.domain.values import AGREEMENT_CATEGORY, CollectionStatus, RecordStatus
from tests.factories import receivable

TODAY = date(2024, 3, 31)


def _profiles(records, **kwargs):
    return aggregate_debtors(records=records, today=TODAY, **kwargs)


class TestQualification:

    def test_boleto_open_qualifies(self):
        assert qualifies_for_collection(receivable("AR-1"))

    def test_other_payment_method_excluded(self):
        assert not qualifies_for_collection(receivable("AR-1", payment_method="PIX"))

    def test_agreement_installment_qualifies_regardless_of_method(self):
        record = receivable("AR-1", payment_method="PIX", category=AGREEMENT_CATEGORY)
        assert qualifies_for_collection(record)

    def test_paid_excluded(self):
        assert not qualifies_for_collection(receivable("AR-1", status="Pago", balance="0"))

    def test_notary_collection_status_qualifies_with_any_status(self):
        record = receivable(
            "AR-1", status="PROTESTO PENDENTE", collection_status=CollectionStatus.AT_NOTARY.value
        )
        assert qualifies_for_collection(record)


class TestAggregation:

    def test_aging_split_at_threshold(self):
        records = [
            receivable("AR-1", balance="100.00", due_date=date(2024, 3, 21)),  # 10 days
            receivable("AR-2", balance="50.00", due_date=date(2024, 3, 16)),  # 15 days
            receivable("AR-3", balance="200.00", due_date=date(2024, 2, 1)),  # 59 days
        ]
        [profile] = _profiles(records)

        assert profile.total_overdue == Decimal("350.00")
        assert profile.overdue_up_to_threshold == Decimal("150.00")
        assert profile.overdue_over_threshold == Decimal("200.00")
        assert profile.title_count == 3
        assert profile.max_days_overdue == 59
        assert profile.collection_level is CollectionLevel.COLLECTION

    def test_not_yet_due_contributes_nothing(self):
        [profile] = _profiles([receivable("AR-1", due_date=date(2024, 4, 10))])

        assert profile.total_overdue == Decimal("0.00")
        assert profile.title_count == 0
        assert profile.collection_level is CollectionLevel.REGULAR

    def test_balance_within_tolerance_ignored(self):
        [profile] = _profiles([receivable("AR-1", balance="0.01")])
        assert profile.total_overdue == Decimal("0.00")

    def test_notary_counts_in_total_and_notary(self):
        records = [
            receivable(
                "AR-1",
                balance="300.00",
                status=RecordStatus.AT_NOTARY.value,
                collection_status=CollectionStatus.AT_NOTARY.value,
            ),
            receivable("AR-2", balance="40.00", due_date=date(2024, 3, 30)),
        ]
        [profile] = _profiles(records)

        assert profile.at_notary == Decimal("300.00")
        assert profile.total_overdue == Decimal("340.00")
        assert profile.collection_level is CollectionLevel.NOTARY

    def test_agreement_installments_tracked_separately(self):
        records = [
            receivable(
                "stl-1-1",
                balance="400.00",
                due_date=date(2024, 3, 10),
                payment_method="PIX",
                category=AGREEMENT_CATEGORY,
                settlement_ref="stl-1",
            ),
            receivable(
                "stl-1-2",
                balance="400.00",
                due_date=date(2024, 4, 10),
                payment_method="PIX",
                category=AGREEMENT_CATEGORY,
                settlement_ref="stl-1",
            ),
        ]
        [profile] = _profiles(records)

        assert profile.in_agreement == Decimal("800.00")
        assert profile.overdue_agreement == Decimal("400.00")
        assert profile.total_overdue == Decimal("0.00")
        assert profile.collection_level is CollectionLevel.COLLECTION

    def test_sorted_by_total_overdue_then_name(self):
        records = [
            receivable("A-1", counterparty_name="BETA", balance="10.00"),
            receivable("A-2", counterparty_name="ALPHA", balance="10.00"),
            receivable("A-3", counterparty_name="GAMMA", balance="99.00"),
        ]
        names = [p.counterparty_name for p in _profiles(records)]
        assert names == ["GAMMA", "ALPHA", "BETA"]

    def test_next_action_attached(self):
        [profile] = _profiles(
            [receivable("AR-1")], next_actions={"ACME LTDA": date(2024, 4, 2)}
        )
        assert profile.next_action_date == date(2024, 4, 2)

    def test_custom_payment_methods(self):
        profiles = _profiles([receivable("AR-1", payment_method="PIX")], payment_methods=("PIX",))
        assert len(profiles) == 1


class TestPartitionAndPortfolio:

    def test_partition_by_next_action(self):
        records = [
            receivable("A-1", counterparty_name="NO ACTION"),
            receivable("A-2", counterparty_name="DUE TODAY"),
            receivable("A-3", counterparty_name="LATER"),
        ]
        profiles = _profiles(
            records,
            next_actions={"DUE TODAY": TODAY, "LATER": date(2024, 4, 15)},
        )
        to_contact, up_to_date = partition_by_next_action(profiles, TODAY)

        assert {p.counterparty_name for p in to_contact} == {"NO ACTION", "DUE TODAY"}
        assert [p.counterparty_name for p in up_to_date] == ["LATER"]

    def test_recovery_rate(self):
        profiles = _profiles([receivable("AR-1", balance="300.00")])
        summary = summarize_portfolio(profiles, Decimal("100.00"))

        assert summary.total_overdue == Decimal("300.00")
        assert summary.portfolio_total == Decimal("400.00")
        assert summary.recovery_rate == Decimal("25.00")
        assert summary.debtor_count == 1

    def test_empty_portfolio(self):
        summary = summarize_portfolio([], Decimal("0"))
        assert summary.recovery_rate == Decimal("0.00")
        assert summary.portfolio_total == Decimal("0.00")


class TestAggregationProperties:

    @settings(max_examples=100, deadline=None)
    @given(
        titles=st.lists(
            st.tuples(
                st.sampled_from(["ALPHA", "BETA", "GAMMA"]),
                st.integers(min_value=2, max_value=500_000),
                st.integers(min_value=-30, max_value=120),
                st.booleans(),
            ),
            max_size=25,
        )
    )
    def test_overdue_splits_into_buckets_and_notary(self, titles):
        records = [
            receivable(
                f"AR-{i}",
                counterparty_name=name,
                balance=Decimal(cents) / 100,
                due_date=date.fromordinal(TODAY.toordinal() - days_late),
                collection_status=(
                    CollectionStatus.AT_NOTARY.value if at_notary
                    else CollectionStatus.COLLECTABLE.value
                ),
            )
            for i, (name, cents, days_late, at_notary) in enumerate(titles)
        ]

        for profile in _profiles(records):
            assert profile.total_overdue == (
                profile.overdue_up_to_threshold
                + profile.overdue_over_threshold
                + profile.at_notary
            )
            assert profile.total_overdue >= 0
