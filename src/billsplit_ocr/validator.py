"""
Receipt Validator / Reconciler
==============================
Pure post-processing over a draft Receipt. Returns a new Receipt; the draft
is never mutated.

Steps, in order:
  1. subtotal == 0 with items      → subtotal = Σ price × quantity
  2. total == 0                    → total = subtotal + tax + service_charge
  3. parts off by > 10% of total
     and total > subtotal          → tax = total − subtotal − service_charge
                                     (only when that residual is positive)
  4. still off by > 10%            → settle the parts against the total:
       total ≥ subtotal: service charge capped at the residual, tax = rest
       total < subtotal: trust the total, shrink the subtotal (or the extras)
  5. drop items priced outside [1, 10000]
  6. no items left but total > 0   → one synthesized "Bill Total" item

After step 4, |total − (subtotal + tax + service_charge)| ≤ 10% of total
always holds.
"""

import math
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Tuple

from loguru import logger

from billsplit_ocr.models import ZERO, ItemKind, LineItem, Receipt

CENT = Decimal("0.01")
ONE = Decimal("1")
MIN_ITEM_PRICE = Decimal("1")
MAX_ITEM_PRICE = Decimal("10000")
TOLERANCE = Decimal("0.1")
SYNTHETIC_ITEM_NAME = "Bill Total"


def quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def within_tolerance(total: Decimal, parts: Decimal) -> bool:
    return total == 0 or abs(total - parts) <= TOLERANCE * total


class ReceiptReconciler:

    def reconcile(self, receipt: Receipt) -> Receipt:
        items = tuple(replace(item, price=quantize(item.price)) for item in receipt.items)
        subtotal = quantize(receipt.subtotal)
        tax = quantize(receipt.tax)
        service = quantize(receipt.service_charge)
        total = quantize(receipt.total)

        if subtotal == 0 and items:
            subtotal = sum((item.line_total for item in items), ZERO)
            logger.debug(f"[ReceiptReconciler] subtotal from items: {subtotal}")

        if total == 0:
            total = subtotal + tax + service

        if not within_tolerance(total, subtotal + tax + service) and total > subtotal:
            residual = total - subtotal - service
            if residual > 0:
                logger.debug(f"[ReceiptReconciler] tax {tax} → {residual} (residual)")
                tax = residual

        if not within_tolerance(total, subtotal + tax + service):
            subtotal, tax, service = self._settle(subtotal, tax, service, total)

        if 0 < total < ONE:
            logger.debug(f"[ReceiptReconciler] total {total} below 1, treated as noise")
            subtotal = tax = service = total = ZERO

        kept = tuple(item for item in items
                     if MIN_ITEM_PRICE <= item.price <= MAX_ITEM_PRICE and item.quantity >= 1)
        if len(kept) != len(items):
            logger.debug(f"[ReceiptReconciler] dropped {len(items) - len(kept)} out-of-range item(s)")

        if not kept and total > 0:
            kept = (self._synthesize(total),)

        return replace(
            receipt,
            items=kept,
            subtotal=subtotal,
            tax=tax,
            service_charge=service,
            total=total,
        )

    @staticmethod
    def _settle(subtotal: Decimal, tax: Decimal, service: Decimal,
                total: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
        if total >= subtotal:
            remainder = total - subtotal
            service = min(service, remainder)
            tax = remainder - service
        elif total - (tax + service) >= 0:
            subtotal = total - (tax + service)
        else:
            subtotal, tax, service = total, ZERO, ZERO
        logger.debug(
            f"[ReceiptReconciler] settled parts to total {total}: "
            f"subtotal={subtotal} tax={tax} service={service}"
        )
        return subtotal, tax, service

    @staticmethod
    def _synthesize(total: Decimal) -> LineItem:
        """One "Bill Total" line; split into equal units when above the item cap."""
        units = max(1, math.ceil(total / MAX_ITEM_PRICE))
        return LineItem(
            name=SYNTHETIC_ITEM_NAME,
            price=quantize(total / units),
            quantity=units,
            kind=ItemKind.GENERIC,
        )
