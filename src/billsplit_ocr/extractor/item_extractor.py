"""
Item & Price Extractor (general path)
=====================================
Turns item-candidate lines that carry at least one price into LineItems.

Item-worthiness score (kept when > 3):
  base 5
  +3 per food / beverage / item term on the line
  +4 quantity marker (2x, 3 qty, 1 pc)
  +3 line sits in the middle 60% of the receipt
  +2 mixed letters and digits
  -10 looks like an address or carries a phone number
"""

import re
from decimal import Decimal
from typing import List, Optional, Sequence

from loguru import logger

from billsplit_ocr.extractor.base_extractor import PriceIndex
from billsplit_ocr.models import ClassifiedLine, ItemKind, LineItem, LineRole, ScoredPrice
from billsplit_ocr.patterns import PatternTables, count_terms
from billsplit_ocr.scoring import ScoredCandidate, ScoreSheet

MIN_PRICE = Decimal("1")
MAX_PRICE = Decimal("10000")
REASONABLE_MAX = Decimal("2000")

_NAME_EDGE = " -:.,()@#/&+'"
_SPACES = re.compile(r"\s+")
_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")


class ItemExtractor:

    MIN_ITEM_SCORE = 3

    def __init__(self, patterns: Optional[PatternTables] = None):
        self.p = patterns or PatternTables.default()

    def extract(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex) -> List[LineItem]:
        total_lines = len(lines)
        items: List[LineItem] = []
        seen = set()

        for cl in lines:
            if cl.role != LineRole.ITEM_CANDIDATE:
                continue
            prices = price_index.get(cl.line_index, ())
            if not prices or self.p.non_item.search(cl.text):
                continue

            scored = self.score_line(cl, total_lines)
            if scored.score <= self.MIN_ITEM_SCORE:
                logger.debug(f"[ItemExtractor] skip {cl.text!r} score={scored.score}")
                continue

            name = self.item_name(cl.text, prices)
            if not name:
                continue
            price = self.select_price(cl.text, prices)
            if not (MIN_PRICE <= price <= MAX_PRICE):
                continue

            key = (name.lower(), price)
            if key in seen:
                continue
            seen.add(key)

            items.append(LineItem(name=name, price=price,
                                  quantity=self.quantity(cl.text), kind=ItemKind.GENERIC))

        return items

    # ── Scoring ───────────────────────────────────────────────────────────────

    def score_line(self, cl: ClassifiedLine, total_lines: int) -> ScoredCandidate[ClassifiedLine]:
        line = cl.text
        sheet = ScoreSheet(5)

        terms = count_terms(self.p.food_terms, line) + count_terms(self.p.item_terms, line)
        if terms:
            sheet.add(3 * terms, "item vocabulary")

        if self.p.quantity.search(line):
            sheet.add(4, "quantity marker")

        if total_lines:
            position = cl.line_index / total_lines
            if 0.2 < position < 0.8:
                sheet.add(3, "middle of receipt")

        if _LETTER.search(line) and _DIGIT.search(line):
            sheet.add(2, "mixed alphanumeric")

        if self.p.looks_like_address(line) or self.p.phone.search(line):
            sheet.add(-10, "address or phone")

        return sheet.result(cl)

    # ── Field parsing ─────────────────────────────────────────────────────────

    def item_name(self, text: str, prices: Sequence[ScoredPrice]) -> str:
        chars = list(text)
        for sp in prices:
            for i in range(sp.start, min(sp.end, len(chars))):
                chars[i] = " "
        name = "".join(chars)
        name = self.p.quantity.sub(" ", name)
        name = self.p.currency.sub(" ", name)
        name = _SPACES.sub(" ", name).strip(_NAME_EDGE).strip()
        if len(name) <= 1 or not _LETTER.search(name):
            return ""
        return name

    def select_price(self, text: str, prices: Sequence[ScoredPrice]) -> Decimal:
        """
        Pick the item price from a line's candidates (best-scored first).

        A lone candidate wins outright. On a line mentioning total/amount the
        largest value wins. Otherwise the first non-round (not a multiple of
        10) candidate in the 1–2000 range, then any candidate in that range,
        then the best-scored one.
        """
        if len(prices) == 1:
            return prices[0].value

        if self.p.total_word.search(text):
            return max(sp.value for sp in prices)

        reasonable = [sp for sp in prices if MIN_PRICE <= sp.value <= REASONABLE_MAX]
        for sp in reasonable:
            if sp.value % 10 != 0:
                return sp.value
        if reasonable:
            return reasonable[0].value
        return prices[0].value

    def quantity(self, text: str) -> int:
        m = self.p.quantity.search(text)
        if not m:
            return 1
        number = next(g for g in m.groups() if g is not None)
        return max(int(number), 1)
