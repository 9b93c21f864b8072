# Overview: Pytest coverage for the transactional executor (atomic scope and retry policy).

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from backoffice.models import Product, StockLedgerEntry
from backoffice.services import concurrency
from backoffice.services.concurrency import ConcurrencyConflict, is_transient_error, run_in_transaction
from backoffice.services.reconciler import StockMove
from backoffice.services.stock_service import LedgerContext, apply_stock_moves


def _locked_error():
    return OperationalError("UPDATE products", {}, Exception("database is locked"))


@pytest.fixture
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(concurrency.time, "sleep", delays.append)
    return delays


def test_transient_classification():
    assert is_transient_error(_locked_error()) is True
    assert is_transient_error(ConnectionError("reset")) is True
    assert is_transient_error(TimeoutError()) is True
    assert is_transient_error(ValueError("bad")) is False
    assert is_transient_error(StaleDataError("stale")) is False
    assert is_transient_error(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))) is False


def test_retries_transient_failure_then_succeeds(db_session, no_sleep):
    calls = []

    def _op():
        calls.append(1)
        if len(calls) < 3:
            raise _locked_error()
        return "done"

    assert run_in_transaction(_op, attempts=3, backoff_base=0.1) == "done"
    assert len(calls) == 3
    assert no_sleep == [0.1, 0.2]


def test_gives_up_after_max_attempts(db_session, no_sleep):
    calls = []

    def _op():
        calls.append(1)
        raise _locked_error()

    with pytest.raises(OperationalError):
        run_in_transaction(_op, attempts=3, backoff_base=0.1)
    assert len(calls) == 3


def test_non_transient_error_is_not_retried(db_session, no_sleep):
    calls = []

    def _op():
        calls.append(1)
        raise ValueError("invalid quantity")

    with pytest.raises(ValueError):
        run_in_transaction(_op)
    assert len(calls) == 1
    assert no_sleep == []


def test_stale_data_becomes_conflict_without_retry(db_session, no_sleep):
    calls = []

    def _op():
        calls.append(1)
        raise StaleDataError("version mismatch")

    with pytest.raises(ConcurrencyConflict):
        run_in_transaction(_op)
    assert len(calls) == 1


def test_failure_rolls_back_stock_and_ledger(db_session, product):
    def _op():
        apply_stock_moves([StockMove(product.id, -4, "sale_completed")], LedgerContext("sale", 1))
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run_in_transaction(_op)

    assert db_session.get(Product, product.id).stock == 10
    assert db_session.query(StockLedgerEntry).count() == 0


def test_attempts_default_from_config(app, db_session, no_sleep):
    calls = []

    def _op():
        calls.append(1)
        raise _locked_error()

    app.config["RECONCILE_MAX_ATTEMPTS"] = 2
    try:
        with pytest.raises(OperationalError):
            run_in_transaction(_op)
    finally:
        app.config["RECONCILE_MAX_ATTEMPTS"] = 3
    assert len(calls) == 2
