"""
Tests for receipt reconciliation
"""

from decimal import Decimal

import pytest

from billsplit_ocr.models import LineItem, Receipt
from billsplit_ocr.validator import (MAX_ITEM_PRICE, MIN_ITEM_PRICE, SYNTHETIC_ITEM_NAME,
                                     ReceiptReconciler, within_tolerance)

D = Decimal


@pytest.fixture
def reconciler():
    return ReceiptReconciler()


def test_subtotal_from_items(reconciler):
    """Test missing subtotal is the sum of price x quantity"""
    draft = Receipt(items=(LineItem("Naan", D("40"), 2), LineItem("Dal", D("170"))), total=D("250"))
    receipt = reconciler.reconcile(draft)

    assert receipt.subtotal == D("250.00")
    assert receipt.total == D("250.00")


def test_total_backfilled_from_parts(reconciler):
    """Test missing total is subtotal + tax + service charge"""
    receipt = reconciler.reconcile(Receipt(subtotal=D("100"), tax=D("5")))

    assert receipt.total == D("105.00")


def test_tax_recomputed_as_residual(reconciler):
    """Test an implausible tax reading is replaced by the residual"""
    receipt = reconciler.reconcile(Receipt(subtotal=D("1000"), tax=D("10"), total=D("1200")))

    assert receipt.tax == D("200.00")
    assert receipt.parts_sum == receipt.total


def test_service_charge_capped_at_remainder(reconciler):
    """Test settle step when the service charge alone exceeds the gap"""
    receipt = reconciler.reconcile(
        Receipt(subtotal=D("1000"), service_charge=D("500"), total=D("1100"))
    )

    assert receipt.service_charge == D("100.00")
    assert receipt.tax == D("0.00")
    assert receipt.parts_sum == receipt.total


def test_total_below_subtotal_trusts_total(reconciler):
    """Test the subtotal shrinks when the printed total is lower"""
    receipt = reconciler.reconcile(Receipt(subtotal=D("1000"), tax=D("50"), total=D("500")))

    assert receipt.subtotal == D("450.00")
    assert receipt.parts_sum == receipt.total


def test_price_boundary(reconciler):
    """Test 10000.00 is kept and 10000.01 dropped"""
    draft = Receipt(
        items=(LineItem("Gold Coin", D("10000.00")), LineItem("Gold Bar", D("10000.01"))),
        subtotal=D("10000"),
        total=D("10000"),
    )
    receipt = reconciler.reconcile(draft)

    assert [item.name for item in receipt.items] == ["Gold Coin"]


def test_synthetic_item_for_total_only(reconciler):
    """Test a lone total becomes one "Bill Total" item"""
    receipt = reconciler.reconcile(Receipt(total=D("500")))

    assert len(receipt.items) == 1
    assert receipt.items[0].name == SYNTHETIC_ITEM_NAME
    assert receipt.items[0].price == D("500.00")
    assert receipt.items[0].quantity == 1


def test_synthetic_item_split_above_cap(reconciler):
    """Test a total above the item cap is split into equal units"""
    item = reconciler.reconcile(Receipt(total=D("25000"))).items[0]

    assert item.quantity == 3
    assert item.price == D("8333.33")
    assert item.price <= MAX_ITEM_PRICE


def test_sub_rupee_total_is_noise(reconciler):
    """Test totals below 1 are cleared and produce no item"""
    receipt = reconciler.reconcile(Receipt(total=D("0.50")))

    assert receipt.total == 0
    assert receipt.items == ()


def test_empty_receipt_unchanged(reconciler):
    """Test nothing is invented for an empty draft"""
    receipt = reconciler.reconcile(Receipt())

    assert receipt.items == ()
    assert receipt.total == receipt.subtotal == receipt.tax == receipt.service_charge == 0


def test_draft_not_mutated(reconciler):
    """Test reconcile returns a new receipt"""
    draft = Receipt(items=(LineItem("Tea", D("20")),))
    receipt = reconciler.reconcile(draft)

    assert draft.subtotal == 0
    assert receipt is not draft
    assert receipt.subtotal == D("20.00")


def test_money_quantized_to_cents(reconciler):
    """Test every amount carries two decimal places"""
    receipt = reconciler.reconcile(Receipt(items=(LineItem("Tea", D("19.999")),), tax=D("1.005")))

    assert receipt.items[0].price == D("20.00")
    assert receipt.tax == D("1.01")
    assert receipt.total.as_tuple().exponent == -2


@pytest.mark.parametrize("draft", [
    Receipt(subtotal=D("100"), tax=D("300"), total=D("150")),
    Receipt(subtotal=D("80"), tax=D("5"), service_charge=D("4"), total=D("2000")),
    Receipt(items=(LineItem("Thali", D("150")), LineItem("Lassi", D("0.5"))), tax=D("9")),
    Receipt(subtotal=D("500"), service_charge=D("900"), total=D("100")),
    Receipt(items=(LineItem("Ticket", D("12000")),), total=D("12000")),
])
def test_reconciled_receipts_are_consistent(reconciler, draft):
    """Test totals law, non-negativity and item price range"""
    receipt = reconciler.reconcile(draft)

    assert within_tolerance(receipt.total, receipt.parts_sum)
    for amount in (receipt.subtotal, receipt.tax, receipt.service_charge, receipt.total):
        assert amount >= 0
    for item in receipt.items:
        assert MIN_ITEM_PRICE <= item.price <= MAX_ITEM_PRICE
        assert item.quantity >= 1
