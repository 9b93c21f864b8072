"""
Status impact policy tests.

Covers the fixed status table, case-insensitive matching, the configurable
unknown-status answer, purchase delivery rules and ledger reason codes.
"""

import pytest

from backoffice.services.stock_policy import (
    COMMITTED,
    RELEASED,
    UNCOMMITTED,
    StatusImpactPolicy,
    StockImpact,
    impact,
    purchase_impact,
    sale_reason,
)


@pytest.mark.parametrize("status", ["completed", "delivered", "paid", "credit", "partial"])
def test_committed_statuses_hold_stock(status):
    assert StatusImpactPolicy().impact(status) == StockImpact(True, True)
    assert StatusImpactPolicy().sale_state(status) == COMMITTED


@pytest.mark.parametrize("status", ["pending", "cancelled", "returned", "refunded"])
def test_non_committed_statuses_do_not_affect_stock(status):
    assert StatusImpactPolicy().impact(status) == StockImpact(False, False)


def test_status_matching_is_case_insensitive():
    policy = StatusImpactPolicy()
    assert policy.impact("COMPLETED") == policy.impact("completed")
    assert policy.impact("  Cancelled ") == policy.impact("cancelled")


def test_released_and_uncommitted_states():
    policy = StatusImpactPolicy()
    assert policy.sale_state("cancelled") == RELEASED
    assert policy.sale_state("refunded") == RELEASED
    assert policy.sale_state("pending") == UNCOMMITTED


def test_unknown_status_defaults_to_stock_affecting():
    assert StatusImpactPolicy().impact("layaway") == StockImpact(True, True)


def test_unknown_status_policy_can_be_disabled():
    policy = StatusImpactPolicy(unknown_affects_stock=False)
    assert policy.impact("layaway") == StockImpact(False, False)
    assert policy.sale_state("layaway") == UNCOMMITTED


def test_module_impact_reads_app_config(app):
    app.config["UNKNOWN_STATUS_AFFECTS_STOCK"] = False
    try:
        assert impact("layaway").affects_stock is False
    finally:
        app.config["UNKNOWN_STATUS_AFFECTS_STOCK"] = True
    assert impact("layaway").affects_stock is True


def test_purchase_adds_only_when_delivered_and_not_cancelled():
    assert purchase_impact("paid", "delivered").affects_stock is True
    assert purchase_impact("credit", None).affects_stock is True
    assert purchase_impact("paid", "pending").affects_stock is False
    assert purchase_impact("paid", "ordered").affects_stock is False
    assert purchase_impact("cancelled", "delivered").affects_stock is False
    assert purchase_impact("paid", "delivered").reduces is False


def test_sale_reason_codes():
    assert sale_reason("sale", "completed") == "sale_completed"
    assert sale_reason("sale", "credit") == "sale_credit"
    assert sale_reason("sale", "pending") == "sale_pending"
    assert sale_reason("sale", "cancelled") == "sale_cancelled"
    assert sale_reason("sale_deleted", "refunded") == "sale_returned"
    assert sale_reason("sale_deleted", "completed") == "sale_deleted"
