"""
Tests for LedgerSelector and the ledger ORM mapping.

Both variants come back as the same canonical LedgerRecord no matter which
columns back them.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.values import CollectionStatus, LedgerVariant, RecordStatus
from ledger_kernel.models.ledger_record import (
    PayableRecordModel,
    ReceivableRecordModel,
    ledger_model_for,
)
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from tests.factories import receivable


@pytest.fixture
def selector(session):
    return LedgerSelector(session)


class TestLedgerModelMapping:

    def test_model_for_variant(self):
        assert ledger_model_for(LedgerVariant.RECEIVABLE) is ReceivableRecordModel
        assert ledger_model_for("payable") is PayableRecordModel

    def test_receivable_round_trip(self, receivable_factory, selector):
        receivable_factory(
            "AR-1",
            counterparty_name="ACME LTDA",
            balance="80.00",
            face_amount="100.00",
            amount_settled=Decimal("20.00"),
            fees=Decimal("1.50"),
            document_number="NF 10",
        )
        record = selector.get(LedgerVariant.RECEIVABLE, "AR-1")

        assert record.counterparty_name == "ACME LTDA"
        assert record.face_amount == Decimal("100.00")
        assert record.outstanding_balance == Decimal("80.00")
        assert record.amount_settled == Decimal("20.00")
        assert record.fees == Decimal("1.50")
        assert record.payment_method == "BOLETO"
        assert record.collection_status == CollectionStatus.COLLECTABLE.value

    def test_payable_round_trip(self, payable_factory, selector):
        payable_factory("AP-1", payment_key="pix@supplier.example")
        record = selector.get(LedgerVariant.PAYABLE, "AP-1")

        assert record.variant is LedgerVariant.PAYABLE
        assert record.counterparty_name == "SUPPLIER SA"
        assert record.payment_method == "PIX"
        assert record.payment_key == "pix@supplier.example"

    def test_apply_record_keeps_engine_owned_fields(self, session, receivable_factory, test_actor):
        receivable_factory(
            "AR-1",
            collection_status=CollectionStatus.AT_NOTARY.value,
            settlement_ref="stl-1",
        )
        row = session.get(ReceivableRecordModel, "AR-1")
        row.apply_record(receivable("AR-1", balance="50.00"), test_actor.name)
        session.commit()

        assert row.outstanding_balance == Decimal("50.00")
        assert row.collection_status == CollectionStatus.AT_NOTARY.value
        assert row.settlement_ref == "stl-1"
        assert row.updated_by == test_actor.name


class TestLedgerSelectorQueries:

    def test_get_missing_returns_none(self, selector):
        assert selector.get(LedgerVariant.RECEIVABLE, "nope") is None

    def test_variants_are_separate_tables(self, receivable_factory, payable_factory, selector):
        receivable_factory("X-1")
        payable_factory("X-1")

        assert set(selector.snapshot(LedgerVariant.RECEIVABLE)) == {"X-1"}
        assert selector.snapshot(LedgerVariant.PAYABLE)["X-1"].variant is LedgerVariant.PAYABLE

    def test_get_many_skips_missing(self, receivable_factory, selector):
        receivable_factory("AR-1")
        receivable_factory("AR-2")

        found = selector.get_many(LedgerVariant.RECEIVABLE, ["AR-2", "AR-9", "AR-1"])
        assert set(found) == {"AR-1", "AR-2"}
        assert selector.get_many(LedgerVariant.RECEIVABLE, []) == {}

    def test_in_period_range_excludes_canceled(self, payable_factory, selector):
        payable_factory("AP-1", due_date=date(2024, 1, 10))
        payable_factory("AP-2", due_date=date(2024, 2, 10), status="Cancelado")
        payable_factory("AP-3", due_date=date(2024, 3, 10))
        payable_factory("AP-4", due_date=date(2024, 4, 10))

        records = selector.in_period_range(LedgerVariant.PAYABLE, "2024-01", "2024-03")
        assert [r.id for r in records] == ["AP-1", "AP-3"]

    def test_for_counterparty_orders_by_due_date(self, receivable_factory, selector):
        receivable_factory("AR-2", due_date=date(2024, 2, 1))
        receivable_factory("AR-1", due_date=date(2024, 1, 1))
        receivable_factory("AR-3", counterparty_name="OTHER", due_date=date(2023, 1, 1))

        records = selector.for_counterparty(LedgerVariant.RECEIVABLE, "ACME LTDA")
        assert [r.id for r in records] == ["AR-1", "AR-2"]

    def test_by_settlement_ref(self, receivable_factory, selector):
        receivable_factory("AR-1", settlement_ref="stl-1", status=RecordStatus.NEGOTIATED.value)
        receivable_factory("AR-2")

        assert [r.id for r in selector.by_settlement_ref("stl-1")] == ["AR-1"]
