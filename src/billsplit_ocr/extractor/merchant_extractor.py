"""
Merchant Info Extractor
=======================
Merchant identity is printed at the head of a receipt, so only the first
WINDOW lines are scanned.

  name      best-scoring line (see score_name); unset unless score > 0
  phone     first phone match, whitespace removed
  email     first e-mail match, lower-cased
  website   first www./http(s):// or common-TLD host outside e-mails
  tax_id    first GSTIN-shaped token
  address   first address-like line that is not the name line
"""

import re
from typing import List, Optional, Sequence

from loguru import logger

from billsplit_ocr.models import ClassifiedLine, LineRole, MerchantInfo
from billsplit_ocr.patterns import PatternTables, count_terms
from billsplit_ocr.scoring import ScoredCandidate, ScoreSheet, select_best

_NAME_JUNK = re.compile(r"[^\w\s&'-]")
_SPACES = re.compile(r"\s+")


class MerchantExtractor:

    WINDOW = 10
    MIN_NAME_LENGTH = 3

    def __init__(self, patterns: Optional[PatternTables] = None):
        self.p = patterns or PatternTables.default()

    def extract(self, lines: Sequence[ClassifiedLine]) -> MerchantInfo:
        window = list(lines[:self.WINDOW])
        if not window:
            return MerchantInfo()

        best = select_best((self.score_name(cl) for cl in window), min_score=0)
        name = None
        name_index = None
        if best is not None:
            cleaned = self.clean_name(best.candidate.text)
            if len(cleaned) >= self.MIN_NAME_LENGTH and any(ch.isalpha() for ch in cleaned):
                name = cleaned
                name_index = best.candidate.line_index
                logger.debug(f"[MerchantExtractor] name={name!r} score={best.score} {list(best.reasons)}")

        texts = [cl.text for cl in window]
        return MerchantInfo(
            name=name,
            address=self._address(window, name_index),
            phone=self._phone(texts),
            email=self._email(texts),
            website=self._website(texts),
            tax_id=self._first(self.p.gstin, texts),
        )

    # ── Name scoring ──────────────────────────────────────────────────────────

    def score_name(self, cl: ClassifiedLine) -> ScoredCandidate[ClassifiedLine]:
        line = cl.text
        sheet = ScoreSheet()

        if self.p.price_like.search(line):
            sheet.add(-20, "contains price")
        if cl.role == LineRole.HEADER:
            sheet.add(-15, "header line")

        if cl.line_index == 0:
            sheet.add(15, "first line")
        elif cl.line_index <= 2:
            sheet.add(10, "near top")
        elif cl.line_index <= 4:
            sheet.add(5, "upper section")

        business = count_terms(self.p.business_terms, line)
        if business:
            sheet.add(8 * business, "business vocabulary")

        has_letters = any(ch.isalpha() for ch in line)
        if has_letters and (line == line.upper() or line.istitle()):
            sheet.add(5, "upper/title case")

        if 5 <= len(line) <= 50:
            sheet.add(5, "reasonable length")
        if len(line) < 3:
            sheet.add(-10, "too short")
        if len(line) > 80:
            sheet.add(-5, "too long")

        digits = sum(ch.isdigit() for ch in line)
        if digits > len(line) * 0.3:
            sheet.add(-10, "digit heavy")

        if self.p.cities.search(line):
            sheet.add(3, "city name")

        return sheet.result(cl)

    @staticmethod
    def clean_name(text: str) -> str:
        return _SPACES.sub(" ", _NAME_JUNK.sub(" ", text)).strip()

    # ── Other fields ──────────────────────────────────────────────────────────

    @staticmethod
    def _first(pattern, texts: List[str]) -> Optional[str]:
        for text in texts:
            m = pattern.search(text)
            if m:
                return m.group(0)
        return None

    def _phone(self, texts: List[str]) -> Optional[str]:
        phone = self._first(self.p.phone, texts)
        return re.sub(r"\s", "", phone) if phone else None

    def _email(self, texts: List[str]) -> Optional[str]:
        email = self._first(self.p.email, texts)
        return email.lower() if email else None

    def _website(self, texts: List[str]) -> Optional[str]:
        without_emails = [self.p.email.sub(" ", t) for t in texts]
        return self._first(self.p.website, without_emails)

    def _address(self, window: List[ClassifiedLine], name_index: Optional[int]) -> Optional[str]:
        for cl in window:
            if cl.line_index == name_index:
                continue
            if self.p.looks_like_address(cl.text):
                return cl.text
        return None
