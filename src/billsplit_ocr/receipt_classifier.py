"""
Receipt Type Classifier
=======================
Picks the extraction strategy BEFORE any field is extracted.

Checks run in priority order; the first hit wins:

  'transportation'  bus operator abbreviations (GSRTC, KSRTC, ...), "bus",
                    "depot", "journey", "passenger ticket"
  'train'           IRCTC, Indian Railway, train, platform, coach, berth, PNR
  'restaurant'      food vocabulary, restaurant / hotel / cafe
  'retail'          invoice, bill, purchase
  'general'         fallback

The type is a routing hint for ExtractorFactory, not a scored prediction.
"""

import re
from typing import Optional

from loguru import logger

from billsplit_ocr.models import ReceiptType
from billsplit_ocr.patterns import PatternTables


_JOURNEY = re.compile(r"\bjourney\b", re.IGNORECASE)
_HOSPITALITY = re.compile(r"\b(?:restaurant|hotel|cafe|dhaba|bar\s*&?\s*grill)\b", re.IGNORECASE)
_RETAIL = re.compile(r"\b(?:invoice|bill|purchase)\b", re.IGNORECASE)


class ReceiptTypeClassifier:
    """
    Keyword-presence classifier.

    Usage
    -----
        classifier = ReceiptTypeClassifier(PatternTables.default())
        receipt_type = classifier.classify(text)
    """

    def __init__(self, patterns: Optional[PatternTables] = None):
        self.p = patterns or PatternTables.default()

    def classify(self, text: str) -> ReceiptType:
        receipt_type = self._classify(text or "")
        logger.info(f"[ReceiptTypeClassifier] Detected receipt type: {receipt_type.value}")
        return receipt_type

    def _classify(self, text: str) -> ReceiptType:
        if self.p.bus_ticket.search(text) or _JOURNEY.search(text):
            return ReceiptType.TRANSPORTATION

        if self.p.train_ticket.search(text):
            return ReceiptType.TRAIN

        if self.p.food_terms.search(text) or _HOSPITALITY.search(text):
            return ReceiptType.RESTAURANT

        if _RETAIL.search(text):
            return ReceiptType.RETAIL

        return ReceiptType.GENERAL
