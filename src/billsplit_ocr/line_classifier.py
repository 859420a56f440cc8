"""
Line Classifier
===============
Assigns one role to every cleaned line. Rules run in order and the first
match wins:

  header         column headings or bill/receipt/invoice/order lines
  total-like     total, subtotal, tax or service-charge keywords
  merchant-info  phone, e-mail, city, street words or a 6-digit PIN code
  unclassified   shorter than 3 chars or more than 70% digits
  item-candidate everything else
"""

from typing import List, Optional

from loguru import logger

from billsplit_ocr.models import ClassifiedLine, LineRole
from billsplit_ocr.patterns import PatternTables


class LineClassifier:

    NUMERIC_DENSITY_MAX = 0.7
    MIN_LENGTH = 3

    def __init__(self, patterns: Optional[PatternTables] = None):
        self.p = patterns or PatternTables.default()

    def is_header(self, line: str) -> bool:
        return bool(self.p.header_line.match(line) or self.p.header_keyword.search(line))

    def is_total_like(self, line: str) -> bool:
        return any(rx.search(line) for rx in
                   (self.p.subtotal, self.p.total, self.p.tax, self.p.service_charge))

    def is_merchant_info(self, line: str) -> bool:
        return bool(
            self.p.phone.search(line)
            or self.p.email.search(line)
            or self.p.cities.search(line)
            or self.p.address_words.search(line)
            or self.p.postal_code.search(line)
        )

    @staticmethod
    def numeric_density(line: str) -> float:
        if not line:
            return 0.0
        return sum(ch.isdigit() for ch in line) / len(line)

    def role_of(self, line: str) -> LineRole:
        if self.is_header(line):
            return LineRole.HEADER
        if self.is_total_like(line):
            return LineRole.TOTAL_LIKE
        if self.is_merchant_info(line):
            return LineRole.MERCHANT_INFO
        if len(line.strip()) < self.MIN_LENGTH or self.numeric_density(line) > self.NUMERIC_DENSITY_MAX:
            return LineRole.UNCLASSIFIED
        return LineRole.ITEM_CANDIDATE

    def classify(self, lines: List[str]) -> List[ClassifiedLine]:
        classified = [ClassifiedLine(text=line, line_index=i, role=self.role_of(line))
                      for i, line in enumerate(lines)]
        if classified:
            counts = {}
            for cl in classified:
                counts[cl.role.value] = counts.get(cl.role.value, 0) + 1
            logger.debug(f"[LineClassifier] roles: {counts}")
        return classified
