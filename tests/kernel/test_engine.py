"""
Tests for the database engine helpers and the deterministic clock.
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from ledger_kernel.db.engine import get_session, is_postgres, reset_engine, session_scope
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.models.ledger_record import ReceivableRecordModel
from tests.factories import receivable


class TestSessionScope:

    def test_commits_on_success(self, engine):
        with session_scope() as sess:
            sess.add(ReceivableRecordModel.from_dto(receivable("AR-1"), "tester"))

        with session_scope() as sess:
            assert sess.scalars(select(ReceivableRecordModel.id)).all() == ["AR-1"]

    def test_rolls_back_on_error(self, engine):
        with pytest.raises(RuntimeError):
            with session_scope() as sess:
                sess.add(ReceivableRecordModel.from_dto(receivable("AR-1"), "tester"))
                sess.flush()
                raise RuntimeError("boom")

        with session_scope() as sess:
            assert sess.get(ReceivableRecordModel, "AR-1") is None

    def test_sqlite_is_not_postgres(self, engine):
        assert is_postgres() is (engine.dialect.name == "postgresql")


class TestUninitialized:

    def test_get_session_requires_engine(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_session()
        assert is_postgres() is False


class TestDeterministicClock:

    def test_frozen_until_advanced(self):
        clock = DeterministicClock(datetime(2024, 3, 15, 12, tzinfo=timezone.utc))
        assert clock.now() == clock.now()

        clock.advance(30)
        assert clock.now() == datetime(2024, 3, 15, 12, 0, 30, tzinfo=timezone.utc)

    def test_advance_days_moves_today(self):
        clock = DeterministicClock(datetime(2024, 3, 31, 12, tzinfo=timezone.utc))
        clock.advance_days(1)
        assert clock.today() == date(2024, 4, 1)

    def test_set_date_is_noon_utc(self):
        clock = DeterministicClock()
        clock.advance(99)
        clock.set_date(date(2024, 2, 29))
        assert clock.now() == datetime(2024, 2, 29, 12, tzinfo=timezone.utc)

    def test_tick(self):
        clock = DeterministicClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        assert clock.tick() == datetime(2024, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
