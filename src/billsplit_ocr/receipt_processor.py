"""
Receipt Processor - Main pipeline orchestrator

image bytes
  → ImageVariantGenerator   several preprocessed JPEG renderings
  → OCRResultSelector       single most plausible transcription
  → extract_from_text()     clean → type → line roles → prices
                            → type-specific extractor → reconciler
  → {"success": True, "data": {...}} | {"success": False, "error": "..."}

extract_from_text() is a pure function of its input text, so the same text
always yields the same Receipt.
"""

import threading
import time
from dataclasses import replace
from typing import Any, Dict, Optional

from loguru import logger

from billsplit_ocr.config import load_config
from billsplit_ocr.errors import ExtractionFailed
from billsplit_ocr.extractor.factory import ExtractorFactory
from billsplit_ocr.image_preprocessor import ImageVariantGenerator
from billsplit_ocr.line_classifier import LineClassifier
from billsplit_ocr.models import Receipt
from billsplit_ocr.ocr_engine import build_engines
from billsplit_ocr.ocr_selector import OCRResultSelector, score_transcription
from billsplit_ocr.patterns import PatternTables
from billsplit_ocr.price_tokenizer import PriceTokenizer
from billsplit_ocr.receipt_classifier import ReceiptTypeClassifier
from billsplit_ocr.text_cleaner import TextCleaner
from billsplit_ocr.utils import format_processing_time, sanitize_filename, validate_image_bytes
from billsplit_ocr.validator import ReceiptReconciler

SOURCES = ("camera", "upload")


class ReceiptProcessor:
    """
    High-level receipt processing pipeline.

    OCR engines are heavy, so the selector is built on first image request;
    text-only extraction never loads them.
    """

    def __init__(self,
                 config_path: Optional[str] = None,
                 config: Optional[Dict] = None,
                 patterns: Optional[PatternTables] = None,
                 variant_generator: Optional[ImageVariantGenerator] = None,
                 selector: Optional[OCRResultSelector] = None):
        self.config = config if config is not None else load_config(config_path)
        self.patterns = patterns or PatternTables.from_vocabulary(self.config.get('vocabulary'))

        self.cleaner = TextCleaner()
        self.type_classifier = ReceiptTypeClassifier(self.patterns)
        self.line_classifier = LineClassifier(self.patterns)
        self.tokenizer = PriceTokenizer(self.patterns)
        self.factory = ExtractorFactory(self.patterns)
        self.reconciler = ReceiptReconciler()

        self.variant_generator = variant_generator or ImageVariantGenerator(self.config.get('preprocessing'))
        self._selector = selector
        self._selector_lock = threading.Lock()

        logger.info("ReceiptProcessor initialized")

    @property
    def selector(self) -> OCRResultSelector:
        if self._selector is None:
            # Concurrent first requests must not load the engines twice
            with self._selector_lock:
                if self._selector is None:
                    primary, secondary = build_engines(self.config)
                    self._selector = OCRResultSelector.from_config(self.config, primary, secondary, self.patterns)
        return self._selector

    # ── Text → Receipt ────────────────────────────────────────────────────────

    def extract_from_text(self, text: str, confidence: Optional[float] = None,
                          ocr_method: str = "text") -> Receipt:
        """
        Interpret already-recognised receipt text.

        Args:
            text:       OCR output, newline separated
            confidence: confidence to report; scored from the text when None
            ocr_method: label of the engine/variant that produced the text

        Returns:
            Reconciled Receipt
        """
        text = text or ""
        lines = self.cleaner.clean(text)
        receipt_type = self.type_classifier.classify("\n".join(lines))

        classified = self.line_classifier.classify(lines)
        price_index = self.tokenizer.index(classified, receipt_type)

        extractor = self.factory.get_extractor(receipt_type)
        draft = extractor.extract(classified, price_index, receipt_type)

        if confidence is None:
            confidence = score_transcription(text, self.patterns)

        draft = replace(draft, raw_text=text, confidence=confidence, ocr_method=ocr_method)
        return self.reconciler.reconcile(draft)

    # ── Image → envelope ──────────────────────────────────────────────────────

    def process_image(self, image_bytes: bytes, source: str = "upload",
                      filename: Optional[str] = None) -> Dict[str, Any]:
        """
        Full pipeline for one receipt image.

        Args:
            image_bytes: encoded image
            source:      "camera" or "upload"
            filename:    original name, for logging only

        Returns:
            {"success": True, "data": receipt dict} or
            {"success": False, "error": message}
        """
        start = time.time()
        label = sanitize_filename(filename) if filename else "<buffer>"

        if source not in SOURCES:
            logger.warning(f"Unknown source '{source}', treating as upload")
            source = "upload"

        valid, message = validate_image_bytes(image_bytes)
        if not valid:
            logger.error(f"Rejected {label}: {message}")
            return {"success": False, "error": message}

        max_bytes = self.config.get('preprocessing', {}).get('max_image_bytes')
        if max_bytes and len(image_bytes) > max_bytes:
            logger.error(f"Rejected {label}: {len(image_bytes)} bytes exceeds {max_bytes}")
            return {"success": False, "error": f"Image too large (limit {max_bytes} bytes)"}

        logger.info(f"Processing: {label} ({len(image_bytes)} bytes, source={source})")

        try:
            variants = self.variant_generator.generate(image_bytes, source)
            selection = self.selector.select(variants)
            receipt = self.extract_from_text(selection.text, selection.confidence, selection.ocr_method)
        except ExtractionFailed as e:
            logger.error(f"OCR failed for {label}: {e}")
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.exception(f"Unexpected error processing {label}")
            return {"success": False, "error": f"Processing failed: {e}"}

        if not receipt.has_structure():
            logger.error(f"No receipt data extracted from {label}")
            return {"success": False, "error": "No receipt data could be extracted from the image"}

        elapsed = int((time.time() - start) * 1000)
        logger.info(
            f"✅ {label}: {receipt.receipt_type.value}, {len(receipt.items)} item(s), "
            f"total={receipt.total} via {receipt.ocr_method} in {format_processing_time(elapsed)}"
        )
        return {"success": True, "data": receipt.to_dict()}
