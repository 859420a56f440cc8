"""Receipt extraction strategies, selected by ExtractorFactory."""

from billsplit_ocr.extractor.base_extractor import BaseExtractor
from billsplit_ocr.extractor.factory import ExtractorFactory
from billsplit_ocr.extractor.general_extractor import GeneralExtractor
from billsplit_ocr.extractor.item_extractor import ItemExtractor
from billsplit_ocr.extractor.merchant_extractor import MerchantExtractor
from billsplit_ocr.extractor.totals_extractor import TotalsExtractor
from billsplit_ocr.extractor.transportation_extractor import TransportationExtractor

__all__ = [
    "BaseExtractor",
    "ExtractorFactory",
    "GeneralExtractor",
    "ItemExtractor",
    "MerchantExtractor",
    "TotalsExtractor",
    "TransportationExtractor",
]
