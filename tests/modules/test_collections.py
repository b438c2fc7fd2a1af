"""
Tests for the collections module.

Covers:
- Debtor profiles read from the store, with next actions from the history
- Upcoming-due reminders and a debtor's directly collectable titles
- Portfolio KPIs with active settlements
- Interaction log ordering and validation
- Notary send / remove, with audit and history entries
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_config.schema import LedgerSettings
from ledger_engines.debtors import CollectionLevel
from ledger_engines.installments import Frequency
from ledger_kernel.domain.values import CollectionStatus, LedgerVariant, RecordStatus
from ledger_kernel.exceptions import RecordNotFoundError, ValidationError
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.audit_trail import AuditAction, AuditTrail
from ledger_modules.collections import (
    CollectionAction,
    CollectionService,
    DebtorAggregationService,
)
from ledger_modules.settlements import SettlementService


@pytest.fixture
def debtors(session, settings, deterministic_clock):
    return DebtorAggregationService(session, settings, deterministic_clock)


@pytest.fixture
def desk(session, settings, deterministic_clock):
    return CollectionService(session, settings, deterministic_clock)


@pytest.fixture
def acme_overdue(receivable_factory):
    """Two overdue boleto titles for ACME LTDA: 14 and 43 days late on 2024-03-15."""
    receivable_factory("AR-1", balance="100.00", due_date=date(2024, 3, 1))
    receivable_factory("AR-2", balance="200.00", due_date=date(2024, 2, 1))


def _receivable(session, record_id):
    return LedgerSelector(session).get(LedgerVariant.RECEIVABLE, record_id)


class TestDebtorProfiles:

    def test_summarize_from_store(self, debtors, acme_overdue, receivable_factory):
        receivable_factory("AR-3", counterparty_name="PIX BUYER", payment_method="PIX")
        receivable_factory("AR-4", counterparty_name="PAID LTDA", status="Pago", balance="0")

        [profile] = debtors.summarize()

        assert profile.counterparty_name == "ACME LTDA"
        assert profile.total_overdue == Decimal("300.00")
        assert profile.overdue_up_to_threshold == Decimal("100.00")
        assert profile.overdue_over_threshold == Decimal("200.00")
        assert profile.max_days_overdue == 43
        assert profile.collection_level is CollectionLevel.COLLECTION

    def test_threshold_from_settings(self, session, deterministic_clock, acme_overdue):
        service = DebtorAggregationService(
            session, LedgerSettings(aging_threshold_days=60), deterministic_clock
        )
        [profile] = service.summarize()
        assert profile.overdue_up_to_threshold == Decimal("300.00")

    def test_next_action_is_latest_dated_entry(
        self, debtors, desk, acme_overdue, test_actor, deterministic_clock
    ):
        desk.record_interaction(
            "ACME LTDA", CollectionAction.PHONE_CALL, test_actor, next_action_date=date(2024, 3, 20)
        )
        deterministic_clock.advance(60)
        desk.record_interaction("ACME LTDA", CollectionAction.NO_ANSWER, test_actor)

        [profile] = debtors.summarize()
        assert profile.next_action_date == date(2024, 3, 20)

        deterministic_clock.advance(60)
        desk.record_interaction(
            "ACME LTDA", CollectionAction.WHATSAPP, test_actor, next_action_date=date(2024, 3, 14)
        )
        [profile] = debtors.summarize()
        assert profile.next_action_date == date(2024, 3, 14)

    def test_partition(self, debtors, desk, acme_overdue, receivable_factory, test_actor):
        receivable_factory("AR-5", counterparty_name="BETA LTDA", due_date=date(2024, 3, 10))
        desk.record_interaction(
            "ACME LTDA", CollectionAction.SCHEDULED, test_actor, next_action_date=date(2024, 3, 20)
        )

        to_contact, up_to_date = debtors.partition_by_next_action()

        assert [p.counterparty_name for p in to_contact] == ["BETA LTDA"]
        assert [p.counterparty_name for p in up_to_date] == ["ACME LTDA"]


class TestReminders:

    @pytest.fixture
    def upcoming(self, receivable_factory):
        receivable_factory("AR-10", due_date=date(2024, 3, 18))
        receivable_factory("AR-11", due_date=date(2024, 3, 15))
        receivable_factory("AR-12", due_date=date(2024, 3, 19))
        receivable_factory("AR-13", due_date=date(2024, 3, 16), status="Pago", balance="0")
        receivable_factory("AR-14", due_date=date(2024, 3, 16), settlement_ref="stl-1")
        receivable_factory("AR-15", due_date=date(2024, 3, 10))

    def test_default_window(self, debtors, upcoming):
        reminders = debtors.due_reminders()

        assert [(r.record.id, r.days_until_due) for r in reminders] == [
            ("AR-11", 0),
            ("AR-10", 3),
        ]
        assert reminders[0].counterparty_name == "ACME LTDA"

    def test_custom_window(self, debtors, upcoming):
        assert [r.record.id for r in debtors.due_reminders(window_days=0)] == ["AR-11"]

    def test_negative_window(self, debtors):
        with pytest.raises(ValidationError):
            debtors.due_reminders(window_days=-1)


class TestOverdueTitles:

    def test_only_directly_collectable_oldest_first(self, debtors, acme_overdue, receivable_factory):
        receivable_factory("AR-6", due_date=date(2024, 4, 1))
        receivable_factory("AR-7", payment_method="PIX")
        receivable_factory(
            "AR-8",
            status=RecordStatus.AT_NOTARY.value,
            collection_status=CollectionStatus.AT_NOTARY.value,
        )
        receivable_factory("AR-9", settlement_ref="stl-1")

        titles = debtors.overdue_titles("ACME LTDA")
        assert [t.id for t in titles] == ["AR-2", "AR-1"]

    def test_unknown_debtor(self, debtors):
        assert debtors.overdue_titles("NOBODY") == []


class TestPortfolio:

    def test_active_agreements_count_toward_recovery(
        self, session, settings, deterministic_clock, debtors, acme_overdue, receivable_factory,
        test_actor,
    ):
        receivable_factory("AR-20", counterparty_name="DELTA SA", balance="600.00",
                           due_date=date(2024, 1, 10))
        SettlementService(session, settings, deterministic_clock).create(
            counterparty="DELTA SA",
            negotiated_record_ids=["AR-20"],
            agreed_amount=Decimal("500.00"),
            installment_count=2,
            frequency=Frequency.MONTHLY,
            first_date=date(2024, 4, 10),
            actor=test_actor,
        )

        summary = debtors.portfolio_summary()

        assert summary.total_overdue == Decimal("300.00")
        assert summary.total_in_agreements == Decimal("500.00")
        assert summary.portfolio_total == Decimal("800.00")
        assert summary.recovery_rate == Decimal("62.50")

    def test_no_agreements(self, debtors, acme_overdue):
        summary = debtors.portfolio_summary()
        assert summary.total_in_agreements == Decimal("0.00")
        assert summary.recovery_rate == Decimal("0.00")


class TestInteractionLog:

    def test_history_newest_first(self, desk, test_actor, deterministic_clock):
        desk.record_interaction("ACME LTDA", CollectionAction.PHONE_CALL, test_actor)
        deterministic_clock.advance(60)
        desk.record_interaction(
            "ACME LTDA",
            "Visited the store",
            test_actor,
            days_overdue=12,
            amount_due=Decimal("300.00"),
            notes="Promised payment next week",
        )
        desk.record_interaction("OTHER SA", CollectionAction.EMAIL, test_actor)

        history = desk.history_for("ACME LTDA")

        assert [h.action_taken for h in history] == ["Visited the store", "PHONE_CALL"]
        assert history[0].amount_due == Decimal("300.00")
        assert history[0].days_overdue == 12
        assert history[0].recorded_by == test_actor.name

    def test_recent_history_limit(self, desk, test_actor, deterministic_clock):
        for name in ("A", "B", "C"):
            desk.record_interaction(name, CollectionAction.EMAIL, test_actor)
            deterministic_clock.advance(60)

        assert [h.counterparty_name for h in desk.recent_history(limit=2)] == ["C", "B"]

    @pytest.mark.parametrize(
        "name, action, kwargs, field",
        [
            ("", CollectionAction.EMAIL, {}, "counterparty_name"),
            ("ACME LTDA", " ", {}, "action_taken"),
            ("ACME LTDA", CollectionAction.EMAIL, {"days_overdue": -1}, "days_overdue"),
            ("ACME LTDA", CollectionAction.EMAIL, {"amount_due": Decimal("-1")}, "amount_due"),
        ],
    )
    def test_validation(self, desk, test_actor, name, action, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            desk.record_interaction(name, action, test_actor, **kwargs)
        assert exc_info.value.field == field


class TestNotary:

    def test_send_to_notary(self, session, desk, debtors, acme_overdue, test_actor):
        moved = desk.send_to_notary(["AR-1", "AR-2"], test_actor)

        assert {r.id for r in moved} == {"AR-1", "AR-2"}
        for record_id in ("AR-1", "AR-2"):
            record = _receivable(session, record_id)
            assert record.collection_status == CollectionStatus.AT_NOTARY.value
            assert record.normalized_status == RecordStatus.AT_NOTARY.value

        [entry] = AuditTrail(session).recent(action=AuditAction.NOTARY_SENT)
        assert entry.subject == "ACME LTDA"
        assert entry.amount == Decimal("300.00")

        [history] = desk.history_for("ACME LTDA")
        assert history.action_taken == CollectionAction.NOTARY.value
        assert history.days_overdue == 43

        [profile] = debtors.summarize()
        assert profile.at_notary == Decimal("300.00")
        assert profile.collection_level is CollectionLevel.NOTARY

    def test_remove_from_notary_restores_status_by_due_date(
        self, session, desk, receivable_factory, test_actor
    ):
        for record_id, due in (("AR-1", date(2024, 3, 1)), ("AR-2", date(2024, 4, 1))):
            receivable_factory(
                record_id,
                due_date=due,
                status=RecordStatus.AT_NOTARY.value,
                collection_status=CollectionStatus.AT_NOTARY.value,
            )

        desk.remove_from_notary(["AR-1", "AR-2"], test_actor)

        assert _receivable(session, "AR-1").status == RecordStatus.OVERDUE.value
        assert _receivable(session, "AR-2").status == RecordStatus.OPEN.value
        assert _receivable(session, "AR-1").collection_status == CollectionStatus.COLLECTABLE.value
        assert len(AuditTrail(session).recent(action=AuditAction.NOTARY_REMOVED)) == 1

    def test_remove_requires_notary(self, desk, acme_overdue, test_actor):
        with pytest.raises(ValidationError):
            desk.remove_from_notary(["AR-1"], test_actor)

    def test_locked_record_refused(self, session, desk, receivable_factory, test_actor):
        receivable_factory("AR-1", settlement_ref="stl-1")

        with pytest.raises(ValidationError):
            desk.send_to_notary(["AR-1"], test_actor)
        assert not _receivable(session, "AR-1").is_at_notary

    def test_settled_record_refused(self, desk, receivable_factory, test_actor):
        receivable_factory("AR-1", balance="0", status="Pago")
        with pytest.raises(ValidationError):
            desk.send_to_notary(["AR-1"], test_actor)

    def test_missing_record(self, session, desk, acme_overdue, test_actor):
        with pytest.raises(RecordNotFoundError):
            desk.send_to_notary(["AR-1", "AR-404"], test_actor)
        assert not _receivable(session, "AR-1").is_at_notary

    def test_no_ids(self, desk, test_actor):
        with pytest.raises(ValidationError):
            desk.send_to_notary([], test_actor)
