# Overview: Pytest coverage for purchase create/update/delete reconciliation.

import pytest

from backoffice.models import FinancialAdjustment, Product, Purchase
from backoffice.services import purchase_service
from backoffice.services.ledger_service import entries_for_reference, find_ledger_discrepancies


def _stock(db_session, product_id):
    return db_session.get(Product, product_id).stock


def _ledger(purchase_id):
    return [(e.product_id, e.quantity_change, e.change_type) for e in entries_for_reference("purchase", purchase_id)]


def _create(product_id, quantity=6, status="paid", purchase_status="delivered", **extra):
    payload = {
        "supplier": "Acme Wholesale",
        "status": status,
        "purchase_status": purchase_status,
        "items": [{"product_id": product_id, "quantity": quantity, "unit_price_cents": 150}],
    }
    payload.update(extra)
    return purchase_service.create_purchase(payload)


class TestCreatePurchase:
    def test_delivered_purchase_adds_stock(self, db_session, product):
        result = _create(product.id, 6)
        assert result.success, result.message
        assert _stock(db_session, product.id) == 16
        assert _ledger(result.data["id"]) == [(product.id, 6, "purchase")]
        assert "Acme Wholesale" in result.ledger_entries[0]["notes"]
        assert result.data["received_cents"] == 900

    def test_pending_delivery_has_no_stock_impact(self, db_session, product):
        result = _create(product.id, 6, purchase_status="pending")
        assert result.success
        assert _stock(db_session, product.id) == 10
        assert _ledger(result.data["id"]) == [(product.id, 0, "purchase_pending")]

    def test_cancelled_purchase_records_zero_entry(self, db_session, product):
        result = _create(product.id, 6, status="cancelled")
        assert result.success
        assert result.data["received_cents"] == 0
        assert _ledger(result.data["id"]) == [(product.id, 0, "purchase_cancelled")]

    def test_credit_purchase_keeps_submitted_received(self, db_session, product):
        result = _create(product.id, 6, status="credit", received_cents=400)
        assert result.success
        assert result.data["outstanding_cents"] == 500

    def test_journal_entry(self, db_session, product):
        result = _create(product.id, 6)
        journal = db_session.query(FinancialAdjustment).filter_by(
            reference_type="purchase", reference_id=result.data["id"]
        ).one()
        assert journal.event_type == "purchase_recorded"
        assert journal.total_cents == 900


class TestPurchaseValidation:
    def test_supplier_required(self, db_session, product):
        result = _create(product.id, supplier="  ")
        assert result.success is False
        assert result.message == "Supplier is required"

    def test_total_must_be_positive(self, db_session, product):
        result = purchase_service.create_purchase({
            "supplier": "Acme",
            "items": [{"product_id": product.id, "quantity": 2, "unit_price_cents": 0}],
        })
        assert result.success is False
        assert result.message == "Total amount must be greater than 0"

    def test_services_cannot_be_purchased(self, db_session, service):
        result = _create(service.id)
        assert result.success is False
        assert result.error_kind == "validation"
        assert db_session.query(Purchase).count() == 0

    @pytest.mark.parametrize("received", [901, -1])
    def test_received_out_of_range(self, db_session, product, received):
        result = _create(product.id, 6, status="partial", received_cents=received)
        assert result.success is False
        assert result.error_kind == "validation"


class TestUpdatePurchase:
    def test_quantity_increase_adds_net(self, db_session, product):
        created = _create(product.id, 6)
        item_id = created.data["items"][0]["id"]
        result = purchase_service.update_purchase(created.data["id"], {
            "items": [{"id": item_id, "product_id": product.id, "quantity": 10, "unit_price_cents": 150}],
        })
        assert result.success, result.message
        assert _stock(db_session, product.id) == 20
        assert _ledger(created.data["id"])[-1] == (product.id, 4, "purchase")
        assert result.data["total_cents"] == 1500

    def test_cancel_reverses_and_journals_cancellation(self, db_session, product):
        created = _create(product.id, 6)
        result = purchase_service.update_purchase(created.data["id"], {"status": "cancelled"})
        assert result.success, result.message
        assert _stock(db_session, product.id) == 10
        assert _ledger(created.data["id"])[-1] == (product.id, -6, "adjustment")
        assert db_session.query(FinancialAdjustment).filter_by(event_type="purchase_cancelled").count() == 1

    def test_delivery_flips_to_delivered(self, db_session, product):
        created = _create(product.id, 6, purchase_status="ordered")
        result = purchase_service.update_purchase(created.data["id"], {"purchase_status": "delivered"})
        assert result.success
        assert _stock(db_session, product.id) == 16

    def test_reversal_never_goes_below_zero(self, db_session, product):
        created = _create(product.id, 6)
        # Stock sold off elsewhere before the purchase is corrected
        product.stock = 2
        product.opening_stock = -4
        db_session.commit()

        result = purchase_service.update_purchase(created.data["id"], {"status": "cancelled"})
        assert result.success
        assert _stock(db_session, product.id) == 0
        assert _ledger(created.data["id"])[-1] == (product.id, -2, "adjustment")
        assert find_ledger_discrepancies() == []

    def test_no_changes_detected(self, db_session, product):
        created = _create(product.id, 6)
        result = purchase_service.update_purchase(created.data["id"], {"supplier": "Acme Wholesale"})
        assert result.message == "No changes detected"


class TestDeletePurchase:
    def test_delete_removes_added_stock(self, db_session, product):
        created = _create(product.id, 6)
        result = purchase_service.delete_purchase(created.data["id"])
        assert result.success
        assert _stock(db_session, product.id) == 10
        assert _ledger(created.data["id"])[-1] == (product.id, -6, "purchase_deleted")
        assert db_session.get(Purchase, created.data["id"]) is None
        assert find_ledger_discrepancies() == []

    def test_delete_undelivered_has_zero_impact(self, db_session, product):
        created = _create(product.id, 6, purchase_status="pending")
        purchase_service.delete_purchase(created.data["id"])
        assert _stock(db_session, product.id) == 10
        assert _ledger(created.data["id"])[-1] == (product.id, 0, "purchase_deleted")
