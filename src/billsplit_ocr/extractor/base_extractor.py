"""
Base Extractor
==============
Shared contract for the extraction strategies:

    extract(lines, price_index, receipt_type) → draft Receipt

  lines        ClassifiedLine list, one per cleaned OCR line
  price_index  line_index → ScoredPrice tuple (best first)

Subclasses implement ONLY _extract(). The draft is not reconciled; that is
ReceiptReconciler's job.
"""

from typing import Dict, Optional, Sequence, Tuple

from loguru import logger

from billsplit_ocr.models import ClassifiedLine, Receipt, ReceiptType, ScoredPrice
from billsplit_ocr.patterns import PatternTables

PriceIndex = Dict[int, Tuple[ScoredPrice, ...]]


class BaseExtractor:
    """
    Abstract base class.  Subclasses implement _extract().
    """

    def __init__(self, patterns: Optional[PatternTables] = None):
        self.p = patterns or PatternTables.default()

    # ── Public entry point ────────────────────────────────────────────────────

    def extract(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex,
                receipt_type: ReceiptType = ReceiptType.GENERAL) -> Receipt:
        if not lines:
            return self._empty(receipt_type)

        receipt = self._extract(lines, price_index, receipt_type)

        logger.info(
            f"[{self.__class__.__name__}] merchant={receipt.merchant_info.name!r} "
            f"items={len(receipt.items)} subtotal={receipt.subtotal} "
            f"tax={receipt.tax} service={receipt.service_charge} total={receipt.total}"
        )
        return receipt

    # ── Subclass hook ─────────────────────────────────────────────────────────

    def _extract(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex,
                 receipt_type: ReceiptType) -> Receipt:
        raise NotImplementedError

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _empty(receipt_type: ReceiptType = ReceiptType.GENERAL) -> Receipt:
        return Receipt(receipt_type=receipt_type)

    @staticmethod
    def _positional(prices: Sequence[ScoredPrice]) -> Tuple[ScoredPrice, ...]:
        """Prices in left-to-right order on their line."""
        return tuple(sorted(prices, key=lambda sp: sp.start))
