"""
Price Tokenizer
===============
Finds every number on a line that could be a price and scores it from the
surrounding words and its own format.

Token patterns, highest priority first. A later pattern never re-uses
characters already claimed by an earlier one, so "₹320.00" yields one token
and not also "320.00" or "00".

  currency     ₹320  Rs.45.50  INR 1,200.00
  grouped      1,120.00  12,34,567
  two_decimal  89.60
  comma_dec    178,00            (European-style decimal comma)
  whole        450               (not glued to letters, %, :, /, or a qty marker)

Comma handling is delegated to a swappable policy object; the default treats
a single comma followed by exactly two digits as a decimal point and any
other comma as a thousands separator.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from loguru import logger

from billsplit_ocr.errors import MalformedPrice
from billsplit_ocr.models import ClassifiedLine, LineRole, ReceiptType, ScoredPrice
from billsplit_ocr.patterns import PatternTables
from billsplit_ocr.scoring import ScoreSheet


class CommaDecimalPolicy:
    """Two digits after a lone comma ⇒ decimal comma, else thousands separator."""

    def normalize(self, token: str) -> str:
        if "," in token and "." not in token and token.count(",") == 1:
            head, tail = token.split(",")
            if len(tail) == 2:
                return f"{head}.{tail}"
        return token.replace(",", "")


_GROUPED = r"\d{1,3}(?:,\d{2,3})*,\d{3}(?:\.\d{1,2})?"

# (name, regex, group holding the number, has currency symbol)
_TOKEN_PATTERNS: Tuple[Tuple[str, Pattern, int, bool], ...] = (
    ("currency", re.compile(
        r"(₹|\bRs\.?|\bINR)\s*(" + _GROUPED + r"|\d+(?:[.,]\d{1,2})?)(?![\d])",
        re.IGNORECASE), 2, True),
    ("grouped", re.compile(r"(?<![\w.,])(" + _GROUPED + r")(?![\d,])"), 1, False),
    ("two_decimal", re.compile(r"(?<![\w.,])(\d{1,6}\.\d{2})(?!\d|[.,]\d)"), 1, False),
    ("comma_dec", re.compile(r"(?<![\w.,])(\d{1,4},\d{2})(?![\d,]|\.\d)"), 1, False),
    ("whole", re.compile(
        r"(?<![\w.,:/#₹-])(\d{1,5})(?![\w%:/]|[.,\-]\d)(?!\s*(?:x|qty|pcs?|nos?)\b)",
        re.IGNORECASE), 1, False),
)

_FARE_PRICE = re.compile(r"\b(?:fare|price|cost)\b", re.IGNORECASE)
_NET = re.compile(r"\bnet\b", re.IGNORECASE)
_REFERENCE = re.compile(r"\b(?:no|num|number|ref|id)\b|#", re.IGNORECASE)
_DATE_TIME = re.compile(r"\b(?:date|time|dt|dated)\b", re.IGNORECASE)
_SEAT = re.compile(r"\b(?:seat|berth)\b", re.IGNORECASE)
_KM_AFTER = re.compile(r"\s*kms?\b", re.IGNORECASE)

_TRANSPORT_TYPES = (ReceiptType.TRANSPORTATION, ReceiptType.TRAIN)

DISCARD_AT_OR_BELOW = -5


class PriceTokenizer:
    """
    Extracts ScoredPrice candidates from single lines.

    tokenize() returns candidates sorted by score, best first; equal scores
    keep their left-to-right order.
    """

    def __init__(self, patterns: Optional[PatternTables] = None,
                 decimal_policy: Optional[CommaDecimalPolicy] = None):
        self.p = patterns or PatternTables.default()
        self.decimal_policy = decimal_policy or CommaDecimalPolicy()

    # ── Public API ────────────────────────────────────────────────────────────

    def tokenize(self, line: str, receipt_type: ReceiptType = ReceiptType.GENERAL,
                 role: Optional[LineRole] = None) -> List[ScoredPrice]:
        found = []
        for raw, number, start, end, has_symbol in self._raw_tokens(line):
            try:
                value = self.parse(number)
            except MalformedPrice as e:
                logger.debug(f"[PriceTokenizer] {e}")
                continue
            if value <= 0:
                continue
            sheet = self._score(value, number, has_symbol, line, end, receipt_type, role)
            if sheet.score <= DISCARD_AT_OR_BELOW:
                continue
            found.append(ScoredPrice(
                value=value,
                raw_token=raw,
                has_currency_symbol=has_symbol,
                context_score=sheet.score,
                start=start,
                end=end,
                reasons=tuple(sheet.reasons),
            ))
        # Stable: positional order breaks ties
        return sorted(found, key=lambda sp: -sp.context_score)

    def index(self, lines: Sequence[ClassifiedLine],
              receipt_type: ReceiptType = ReceiptType.GENERAL) -> Dict[int, Tuple[ScoredPrice, ...]]:
        """Price candidates for every line, keyed by line index."""
        return {cl.line_index: tuple(self.tokenize(cl.text, receipt_type, cl.role)) for cl in lines}

    def parse(self, number: str) -> Decimal:
        normalized = self.decimal_policy.normalize(number.strip())
        try:
            value = Decimal(normalized)
        except InvalidOperation:
            raise MalformedPrice(number)
        if not value.is_finite():
            raise MalformedPrice(number)
        return value

    # ── Internals ─────────────────────────────────────────────────────────────

    def _raw_tokens(self, line: str) -> List[Tuple[str, str, int, int, bool]]:
        claimed: List[Tuple[int, int]] = []
        tokens = []
        for _name, rx, group, has_symbol in _TOKEN_PATTERNS:
            for m in rx.finditer(line):
                start, end = m.span()
                if any(start < c_end and c_start < end for c_start, c_end in claimed):
                    continue
                claimed.append((start, end))
                tokens.append((m.group(0), m.group(group), start, end, has_symbol))
        tokens.sort(key=lambda t: t[2])
        return tokens

    def _score(self, value: Decimal, number: str, has_symbol: bool, line: str,
               end: int, receipt_type: ReceiptType, role: Optional[LineRole] = None) -> ScoreSheet:
        sheet = ScoreSheet()

        if has_symbol:
            sheet.add(10, "currency symbol")

        # Keywords
        if role == LineRole.TOTAL_LIKE and self.p.total_word.search(line):
            sheet.add(15, "total/amount keyword")
        if _FARE_PRICE.search(line):
            sheet.add(12, "fare/price keyword")
        if self.p.subtotal.search(line) or _NET.search(line):
            sheet.add(8, "subtotal/net keyword")
        if self.p.tax.search(line):
            sheet.add(5, "tax keyword")

        # Plausible range for the receipt type
        if receipt_type in _TRANSPORT_TYPES:
            if 10 <= value <= 2000:
                sheet.add(8, "fare range")
            if 50 <= value <= 500:
                sheet.add(5, "typical fare")
            if value < 10 or value > 5000:
                sheet.add(-10, "implausible fare")
        else:
            if 1 <= value <= 10000:
                sheet.add(5, "price range")
            if 10 <= value <= 1000:
                sheet.add(3, "typical price")
            if value > 50000:
                sheet.add(-15, "implausible price")

        # Format
        is_whole = value == value.to_integral_value()
        if not is_whole:
            sheet.add(3, "decimal value")
        if is_whole and value > 100 and value % 100 == 0:
            sheet.add(-2, "round hundred")

        bare_integer = not has_symbol and is_whole and not re.search(r"[.,]", number)
        if bare_integer:
            if 1000 <= value <= 9999:
                sheet.add(-5, "looks like a year or id")
            if 100 <= value <= 999 and _REFERENCE.search(line):
                sheet.add(-8, "looks like a reference number")
            if _DATE_TIME.search(line):
                sheet.add(-4, "date/time context")
            if _SEAT.search(line):
                sheet.add(-4, "seat context")

        if _KM_AFTER.match(line, end):
            sheet.add(-5, "distance")

        return sheet
