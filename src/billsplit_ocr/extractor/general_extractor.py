"""
General Extractor

Default strategy for restaurant, retail, train and general receipts:
merchant identity from the head of the receipt, items from item-candidate
lines, and totals from keyword lines anywhere.
"""

from typing import Optional, Sequence

from billsplit_ocr.extractor.base_extractor import BaseExtractor, PriceIndex
from billsplit_ocr.extractor.item_extractor import ItemExtractor
from billsplit_ocr.extractor.merchant_extractor import MerchantExtractor
from billsplit_ocr.extractor.totals_extractor import TotalsExtractor
from billsplit_ocr.models import ClassifiedLine, Receipt, ReceiptType
from billsplit_ocr.patterns import PatternTables


class GeneralExtractor(BaseExtractor):

    def __init__(self, patterns: Optional[PatternTables] = None):
        super().__init__(patterns)
        self.merchant = MerchantExtractor(self.p)
        self.items = ItemExtractor(self.p)
        self.totals = TotalsExtractor(self.p)

    def _extract(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex,
                 receipt_type: ReceiptType) -> Receipt:
        totals = self.totals.extract(lines, price_index)
        return Receipt(
            merchant_info=self.merchant.extract(lines),
            items=tuple(self.items.extract(lines, price_index)),
            subtotal=totals["subtotal"],
            tax=totals["tax"],
            service_charge=totals["service_charge"],
            total=totals["total"],
            receipt_type=receipt_type,
        )
