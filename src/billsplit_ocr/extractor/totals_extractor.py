"""
Totals Extractor (general path)

Every line is inspected regardless of role. A line feeds at most one field,
checked in the order subtotal, total, tax, service charge, and contributes the
largest price on it. Each field keeps the running maximum over all lines, so
a repeated or noisy TOTAL line cannot lower an earlier reading.
"""

from decimal import Decimal
from typing import Dict, Optional, Sequence

from loguru import logger

from billsplit_ocr.extractor.base_extractor import PriceIndex
from billsplit_ocr.models import ZERO, ClassifiedLine
from billsplit_ocr.patterns import PatternTables

FIELDS = ("subtotal", "total", "tax", "service_charge")


class TotalsExtractor:

    def __init__(self, patterns: Optional[PatternTables] = None):
        self.p = patterns or PatternTables.default()
        self._field_patterns = (
            ("subtotal", self.p.subtotal),
            ("total", self.p.total),
            ("tax", self.p.tax),
            ("service_charge", self.p.service_charge),
        )

    def field_of(self, text: str) -> Optional[str]:
        for field_name, pattern in self._field_patterns:
            if pattern.search(text):
                return field_name
        return None

    def extract(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex) -> Dict[str, Decimal]:
        values = {name: ZERO for name in FIELDS}
        for cl in lines:
            prices = price_index.get(cl.line_index, ())
            if not prices:
                continue
            field_name = self.field_of(cl.text)
            if field_name is None:
                continue
            candidate = max(sp.value for sp in prices)
            if candidate > values[field_name]:
                values[field_name] = candidate
                logger.debug(f"[TotalsExtractor] {field_name}={candidate} from {cl.text!r}")
        return values
