# Overview: Pytest coverage for the stock mutator, ledger appends and manual adjustments.

"""
Stock Mutator and Ledger Tests

Covers:
- subtract/add deltas, negative stock allowed, clamp at zero
- services (unknown product ids) are accepted as no-ops
- ledger entries carry the applied change and enriched notes
- completeness audit (stock - opening_stock == ledger net)
- manual adjustments through the result envelope
"""

import logging

import pytest
from sqlalchemy import text

from backoffice.extensions import db
from backoffice.models import Product, StockLedgerEntry
from backoffice.services import ledger_service, stock_service
from backoffice.services.reconciler import StockMove
from backoffice.services.stock_service import LedgerContext, apply_delta, apply_stock_moves


class TestApplyDelta:
    def test_subtract_and_add(self, db_session, product):
        mutation = apply_delta(product.id, 3, "subtract")
        assert (mutation.before, mutation.after, mutation.applied) == (10, 7, -3)

        mutation = apply_delta(product.id, 5, "add")
        assert mutation.after == 12
        db_session.commit()
        assert db_session.get(Product, product.id).stock == 12

    def test_oversell_goes_negative(self, db_session, make_product):
        p = make_product(stock=2)
        mutation = apply_delta(p.id, 5, "subtract")
        assert mutation.after == -3

    def test_clamp_floors_at_zero_and_reports_applied(self, db_session, make_product):
        p = make_product(stock=2)
        mutation = apply_delta(p.id, 5, "subtract", clamp=True)
        assert mutation.after == 0
        assert mutation.applied == -2

    def test_unknown_id_is_service_noop(self, db_session, service):
        mutation = apply_delta(service.id, 4, "subtract")
        assert mutation.is_service is True
        assert mutation.applied == 0

    @pytest.mark.parametrize("magnitude", [-1, 1.5, True, "3"])
    def test_rejects_invalid_magnitude(self, db_session, product, magnitude):
        with pytest.raises(ValueError):
            apply_delta(product.id, magnitude, "subtract")

    def test_rejects_invalid_direction(self, db_session, product):
        with pytest.raises(ValueError):
            apply_delta(product.id, 1, "sideways")


class TestLedger:
    def test_append_for_service_is_noop(self, db_session, service):
        entry = ledger_service.append_stock_entry(
            product_id=service.id,
            change_type="sale_completed",
            quantity_change=-1,
            reference_type="sale",
            reference_id=1,
        )
        assert entry is None
        assert db_session.query(StockLedgerEntry).count() == 0

    def test_notes_are_enriched(self, db_session, product):
        entry = ledger_service.append_stock_entry(
            product_id=product.id,
            change_type="sale_completed",
            quantity_change=-2,
            reference_type="sale",
            reference_id=7,
            notes="New sale created",
            payment_method="credit_card",
            status="completed",
            customer_name="Ann",
        )
        db_session.commit()
        assert entry.quantity == 2
        assert entry.notes == "New sale created | Payment: Credit Card | Status: Completed | Customer: Ann"

    def test_apply_moves_records_applied_change_when_clamped(self, db_session, make_product):
        p = make_product(stock=1)
        entries = apply_stock_moves(
            [StockMove(p.id, -4, "purchase_deleted", "Stock removed", clamp=True)],
            LedgerContext("purchase", 3),
        )
        db_session.commit()

        assert [e.quantity_change for e in entries] == [-1]
        assert db_session.get(Product, p.id).stock == 0
        assert ledger_service.find_ledger_discrepancies() == []

    def test_zero_move_writes_entry_without_touching_stock(self, db_session, product):
        entries = apply_stock_moves([StockMove(product.id, 0, "sale_pending")], LedgerContext("sale", 1))
        db_session.commit()
        assert [e.quantity_change for e in entries] == [0]
        assert db_session.get(Product, product.id).stock == 10

    def test_history_filters(self, db_session, product):
        apply_stock_moves([StockMove(product.id, -1, "sale_completed")], LedgerContext("sale", 1))
        apply_stock_moves([StockMove(product.id, 2, "purchase")], LedgerContext("purchase", 5))
        db_session.commit()

        assert len(ledger_service.list_stock_history(product.id)) == 2
        purchases = ledger_service.list_stock_history(product.id, reference_type="purchase")
        assert [e.reference_id for e in purchases] == [5]
        assert ledger_service.list_stock_history(product.id, limit=1)[0].change_type == "purchase"
        assert ledger_service.ledger_balance(product.id) == 1

    def test_discrepancy_detected_for_unlogged_change(self, db_session, product):
        product.stock = 4
        db_session.commit()

        problems = ledger_service.find_ledger_discrepancies()
        assert len(problems) == 1
        assert problems[0]["product_id"] == product.id
        assert problems[0]["difference"] == -6

    def test_failed_append_is_logged_and_stock_change_kept(self, db_session, product, caplog):
        db_session.execute(text(
            "CREATE TRIGGER block_ledger_insert BEFORE INSERT ON stock_ledger_entries "
            "BEGIN SELECT RAISE(ABORT, 'ledger offline'); END"
        ))
        db_session.commit()
        try:
            with caplog.at_level(logging.WARNING, logger="backoffice.services.ledger_service"):
                result = stock_service.adjust_stock(product.id, -3)
        finally:
            db_session.execute(text("DROP TRIGGER IF EXISTS block_ledger_insert"))
            db_session.commit()

        assert result.success is True
        assert result.ledger_entries == []
        assert db_session.get(Product, product.id).stock == 7
        assert db_session.query(StockLedgerEntry).count() == 0
        assert "Failed to write stock history" in caplog.text
        assert [p["product_id"] for p in ledger_service.find_ledger_discrepancies()] == [product.id]


class TestAdjustStock:
    def test_adjust_records_manual_entry(self, db_session, product):
        result = stock_service.adjust_stock(product.id, -3, note="Damaged in storage", user_id=9)

        assert result.success is True
        assert result.data["product"]["stock"] == 7
        assert len(result.ledger_entries) == 1
        entry = result.ledger_entries[0]
        assert entry["change_type"] == "adjustment"
        assert entry["reference_type"] == "manual"
        assert entry["quantity_change"] == -3
        assert entry["created_by_user_id"] == 9
        assert ledger_service.find_ledger_discrepancies() == []

    def test_adjust_rejects_zero(self, db_session, product):
        result = stock_service.adjust_stock(product.id, 0)
        assert result.success is False
        assert result.error_kind == "validation"

    def test_adjust_unknown_product(self, db_session):
        result = stock_service.adjust_stock(999_999, 2)
        assert result.success is False
        assert result.error_kind == "not_found"
        assert db.session.query(StockLedgerEntry).count() == 0
