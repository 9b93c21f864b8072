"""
Transaction reconciler planning tests (pure; no database).
"""

from backoffice.services.reconciler import (
    TransactionSnapshot,
    merge_quantities,
    plan_purchase_create,
    plan_purchase_delete,
    plan_purchase_update,
    plan_sale_create,
    plan_sale_delete,
    plan_sale_update,
)
from backoffice.services.stock_policy import StatusImpactPolicy

POLICY = StatusImpactPolicy()


def sale(status, items, method="cash"):
    return TransactionSnapshot.of(status, method, items)


def moves_as_tuples(moves):
    return [(m.product_id, m.quantity_change, m.reason) for m in moves]


def test_merge_quantities_sums_duplicate_products():
    snap = sale("completed", [(1, 2), (2, 1), (1, 3)])
    assert merge_quantities(snap.items) == {1: 5, 2: 1}


def test_completed_create_takes_exact_quantities():
    moves = plan_sale_create(sale("completed", [(1, 3), (2, 1)]), POLICY)
    assert moves_as_tuples(moves) == [(1, -3, "sale_completed"), (2, -1, "sale_completed")]


def test_credit_create_uses_credit_reason():
    moves = plan_sale_create(sale("credit", [(1, 2)]), POLICY)
    assert moves_as_tuples(moves) == [(1, -2, "sale_credit")]


def test_pending_create_records_zero_moves():
    moves = plan_sale_create(sale("pending", [(1, 4)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 0, "sale_pending")]


def test_cancelled_create_records_zero_moves():
    moves = plan_sale_create(sale("cancelled", [(1, 4)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 0, "sale_cancelled")]


def test_quantity_increase_yields_single_increase_move():
    moves = plan_sale_update(sale("completed", [(1, 5)]), sale("completed", [(1, 8)]), POLICY)
    assert moves_as_tuples(moves) == [(1, -3, "sale_item_increased")]


def test_quantity_decrease_add_and_remove():
    old = sale("completed", [(1, 5), (2, 2)])
    new = sale("completed", [(1, 3), (3, 4)])
    moves = plan_sale_update(old, new, POLICY)
    assert moves_as_tuples(moves) == [
        (1, 2, "sale_item_decreased"),
        (2, 2, "sale_item_removed"),
        (3, -4, "sale_item_added"),
    ]


def test_duplicate_lines_merge_before_diff():
    old = sale("completed", [(1, 2), (1, 3)])
    new = sale("completed", [(1, 5)])
    assert plan_sale_update(old, new, POLICY) == []


def test_completed_to_cancelled_restores_old_quantities():
    moves = plan_sale_update(sale("completed", [(1, 3)]), sale("cancelled", [(1, 3)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 3, "sale_returned")]


def test_completed_to_pending_restores_as_pending():
    moves = plan_sale_update(sale("completed", [(1, 2)]), sale("pending", [(1, 2)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 2, "sale_pending")]


def test_cancelled_to_completed_takes_new_quantities():
    moves = plan_sale_update(sale("cancelled", [(1, 3)]), sale("completed", [(1, 4)]), POLICY)
    assert moves_as_tuples(moves) == [(1, -4, "sale_status_changed")]


def test_pending_to_completed_takes_stock():
    moves = plan_sale_update(sale("pending", [(1, 2)]), sale("completed", [(1, 2)]), POLICY)
    assert moves_as_tuples(moves) == [(1, -2, "sale_status_changed")]


def test_committed_status_swap_records_zero_entries():
    moves = plan_sale_update(sale("completed", [(1, 2)]), sale("credit", [(1, 2)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 0, "sale_status_changed")]


def test_non_committed_status_swap_records_zero_entries():
    moves = plan_sale_update(sale("pending", [(1, 2)]), sale("cancelled", [(1, 2)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 0, "sale_status_changed")]


def test_unchanged_sale_plans_nothing():
    assert plan_sale_update(sale("pending", [(1, 2)]), sale("pending", [(1, 2)]), POLICY) == []


def test_delete_committed_restores_stock():
    moves = plan_sale_delete(sale("completed", [(1, 3)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 3, "sale_deleted")]


def test_delete_pending_has_zero_impact():
    moves = plan_sale_delete(sale("pending", [(1, 3)]), POLICY)
    assert moves_as_tuples(moves) == [(1, 0, "sale_deleted")]


def purchase(status, items, delivery="delivered"):
    return TransactionSnapshot.of(status, "cash", items, purchase_status=delivery)


def test_delivered_purchase_adds_stock():
    moves = plan_purchase_create(purchase("paid", [(1, 6)]), 9, "Acme")
    assert moves_as_tuples(moves) == [(1, 6, "purchase")]
    assert "Acme" in moves[0].note


def test_pending_purchase_records_zero_moves():
    assert moves_as_tuples(plan_purchase_create(purchase("paid", [(1, 6)], "pending"))) == [
        (1, 0, "purchase_pending"),
    ]
    assert moves_as_tuples(plan_purchase_create(purchase("cancelled", [(1, 6)]))) == [
        (1, 0, "purchase_cancelled"),
    ]


def test_purchase_update_moves_net_difference():
    moves = plan_purchase_update(purchase("paid", [(1, 6)]), purchase("paid", [(1, 10)]))
    assert moves_as_tuples(moves) == [(1, 4, "purchase")]

    moves = plan_purchase_update(purchase("paid", [(1, 6)]), purchase("paid", [(1, 2)]))
    assert moves_as_tuples(moves) == [(1, -4, "adjustment")]
    assert moves[0].clamp is True


def test_purchase_cancel_reverses_added_stock():
    moves = plan_purchase_update(purchase("paid", [(1, 6)]), purchase("cancelled", [(1, 6)]))
    assert moves_as_tuples(moves) == [(1, -6, "adjustment")]


def test_purchase_delivery_status_change_without_net():
    moves = plan_purchase_update(purchase("paid", [(1, 6)], "pending"), purchase("paid", [(1, 6)], "ordered"))
    assert moves_as_tuples(moves) == [(1, 0, "purchase_status_changed")]


def test_purchase_delete_is_clamped_reversal():
    moves = plan_purchase_delete(purchase("paid", [(1, 6)]), 4)
    assert moves_as_tuples(moves) == [(1, -6, "purchase_deleted")]
    assert moves[0].clamp is True

    moves = plan_purchase_delete(purchase("paid", [(1, 6)], "pending"), 4)
    assert moves_as_tuples(moves) == [(1, 0, "purchase_deleted")]
