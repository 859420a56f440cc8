"""
Extractor Factory
=================
Routes a ReceiptType to its extraction strategy.

Usage
-----
    factory   = ExtractorFactory(patterns)
    extractor = factory.get_extractor(ReceiptType.TRANSPORTATION)
    draft     = extractor.extract(lines, price_index, ReceiptType.TRANSPORTATION)
"""

from typing import Dict, Optional, Type

from loguru import logger

from billsplit_ocr.extractor.base_extractor import BaseExtractor
from billsplit_ocr.extractor.general_extractor import GeneralExtractor
from billsplit_ocr.extractor.transportation_extractor import TransportationExtractor
from billsplit_ocr.models import ReceiptType
from billsplit_ocr.patterns import PatternTables


class ExtractorFactory:
    """
    Returns the extractor for a receipt type. Every type other than
    transportation uses GeneralExtractor.
    """

    # ── Mapping: receipt_type → extractor class ───────────────────────────────
    _CLASSES: Dict[ReceiptType, Type[BaseExtractor]] = {
        ReceiptType.TRANSPORTATION: TransportationExtractor,
        ReceiptType.TRAIN:          GeneralExtractor,
        ReceiptType.RESTAURANT:     GeneralExtractor,
        ReceiptType.RETAIL:         GeneralExtractor,
        ReceiptType.GENERAL:        GeneralExtractor,
    }

    def __init__(self, patterns: Optional[PatternTables] = None):
        self.patterns = patterns or PatternTables.default()
        self._instances: Dict[Type[BaseExtractor], BaseExtractor] = {}

    def get_extractor(self, receipt_type: ReceiptType) -> BaseExtractor:
        """
        Return a (cached) extractor instance for the given receipt type.

        Unknown types fall back to GeneralExtractor.
        """
        cls = self._CLASSES.get(receipt_type)
        if cls is None:
            logger.warning(
                f"[ExtractorFactory] Unknown receipt type {receipt_type!r}, "
                f"falling back to GeneralExtractor"
            )
            cls = GeneralExtractor

        if cls not in self._instances:
            self._instances[cls] = cls(self.patterns)
            logger.debug(f"[ExtractorFactory] Initialised {cls.__name__}")

        return self._instances[cls]

    @property
    def supported_types(self) -> list:
        """List of all supported receipt type strings."""
        return [t.value for t in self._CLASSES]
