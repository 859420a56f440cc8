"""
billsplit_ocr - receipt text extraction and interpretation for bill splitting
"""

from billsplit_ocr.errors import EngineUnavailable, ExtractionFailed, MalformedPrice
from billsplit_ocr.models import (ClassifiedLine, ItemKind, LineItem, LineRole, MerchantInfo,
                                  RawTranscription, Receipt, ReceiptType, ScoredPrice)
from billsplit_ocr.patterns import PatternTables
from billsplit_ocr.receipt_processor import ReceiptProcessor

__version__ = "1.0.0"

__all__ = [
    "ClassifiedLine",
    "EngineUnavailable",
    "ExtractionFailed",
    "ItemKind",
    "LineItem",
    "LineRole",
    "MalformedPrice",
    "MerchantInfo",
    "PatternTables",
    "RawTranscription",
    "Receipt",
    "ReceiptProcessor",
    "ReceiptType",
    "ScoredPrice",
]
