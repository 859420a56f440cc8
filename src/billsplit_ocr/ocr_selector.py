"""
OCR Result Selector
===================
Runs image variants through the available engines and keeps the single
most plausible transcription. Texts from different variants are never
blended.

Order:
  1. every variant × every primary engine, stopping early once a result
     reaches early_exit_confidence
  2. only if nothing reached good_enough_confidence: every variant × every
     secondary engine

Each engine call runs on a worker thread and is abandoned after its
timeout; a timed-out or failing attempt is logged and skipped.
"""

import concurrent.futures
import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from loguru import logger

from billsplit_ocr.errors import EngineUnavailable, ExtractionFailed
from billsplit_ocr.models import RawTranscription
from billsplit_ocr.ocr_engine import OCREngineAdapter
from billsplit_ocr.patterns import PatternTables, count_terms

DEFAULT_BASE_CONFIDENCE = 0.7
SHORT_TEXT_CHARS = 50

_WELL_FORMED_PRICE = re.compile(
    r"(?:₹|\brs\.?|\binr)\s*\d+(?:[.,]\d{2})?|\b\d+\.\d{2}\b|(?<![\d,.])\d{2,3},\d{2}(?![\d,])",
    re.IGNORECASE)


def score_transcription(text: str, patterns: Optional[PatternTables] = None,
                        base_confidence: Optional[float] = None) -> float:
    """
    Plausibility of an OCR transcription as a receipt, in [0, 1].

    Starts from the engine's confidence hint (0.7 when absent) and adds
    bonuses for receipt vocabulary and well-formed prices.
    """
    if not text or not text.strip():
        return 0.0

    p = patterns or PatternTables.default()
    score = DEFAULT_BASE_CONFIDENCE if base_confidence is None else float(base_confidence)

    if p.currency.search(text):
        score += 0.1
    if p.tax.search(text):
        score += 0.1
    if p.phone.search(text):
        score += 0.05
    if p.total_word.search(text):
        score += 0.1
    if p.transport_keywords.search(text):
        score += 0.15
    if p.bus_ticket.search(text):
        score += 0.1
    if p.train_ticket.search(text):
        score += 0.1

    score += min(count_terms(p.food_terms, text) * 0.02, 0.1)
    score += min(len(_WELL_FORMED_PRICE.findall(text)) * 0.03, 0.15)

    if p.cities.search(text):
        score += 0.05
    if len(text.strip()) < SHORT_TEXT_CHARS:
        score -= 0.2

    return max(0.0, min(1.0, score))


@dataclass(frozen=True)
class OCRSelection:
    text: str
    confidence: float
    engine_name: str
    variant_name: str

    @property
    def ocr_method(self) -> str:
        return f"{self.engine_name} ({self.variant_name})"


class OCRResultSelector:

    def __init__(self,
                 primary: Sequence[OCREngineAdapter],
                 secondary: Sequence[OCREngineAdapter] = (),
                 patterns: Optional[PatternTables] = None,
                 good_enough: float = 0.7,
                 early_exit: float = 0.95,
                 call_timeout: Optional[float] = None):
        self.primary = list(primary)
        self.secondary = list(secondary)
        self.patterns = patterns or PatternTables.default()
        self.good_enough = good_enough
        self.early_exit = early_exit
        self.call_timeout = call_timeout

    @classmethod
    def from_config(cls, config: Dict, primary, secondary,
                    patterns: Optional[PatternTables] = None) -> "OCRResultSelector":
        selection = config.get('selection', {})
        return cls(
            primary,
            secondary,
            patterns=patterns,
            good_enough=selection.get('good_enough_confidence', 0.7),
            early_exit=selection.get('early_exit_confidence', 0.95),
            call_timeout=config.get('engines', {}).get('call_timeout_seconds'),
        )

    # ── Public API ────────────────────────────────────────────────────────────

    def select(self, variants: Dict[str, bytes]) -> OCRSelection:
        """
        Best transcription across all variants and engines.

        Raises:
            ExtractionFailed: every attempt errored or returned empty text
        """
        if not self.primary and not self.secondary:
            raise ExtractionFailed("No OCR engine available")

        best = self._run_pass(self.primary, variants, None, "primary")

        if best is None or best.confidence < self.good_enough:
            if self.secondary:
                logger.info(
                    f"[OCRSelector] Best primary confidence "
                    f"{best.confidence if best else 0:.2f} < {self.good_enough}, trying fallback engines"
                )
                best = self._run_pass(self.secondary, variants, best, "secondary")

        if best is None:
            raise ExtractionFailed("All OCR attempts failed or returned empty text")

        logger.info(f"[OCRSelector] Selected {best.ocr_method} confidence={best.confidence:.2f}")
        return best

    # ── Internals ─────────────────────────────────────────────────────────────

    def _run_pass(self, engines: Sequence[OCREngineAdapter], variants: Dict[str, bytes],
                  best: Optional[OCRSelection], label: str) -> Optional[OCRSelection]:
        for variant_name, image in variants.items():
            for engine in engines:
                raw = self._attempt(engine, variant_name, image)
                if raw is None:
                    continue
                confidence = score_transcription(raw.text, self.patterns, raw.confidence_hint)
                logger.debug(f"[OCRSelector] {label} {raw.engine_name}/{variant_name}: {confidence:.2f}")
                if best is None or confidence > best.confidence:
                    best = OCRSelection(raw.text, confidence, raw.engine_name, variant_name)
                if best.confidence >= self.early_exit:
                    logger.info(f"[OCRSelector] Early exit at {best.confidence:.2f}")
                    return best
        return best

    def _attempt(self, engine: OCREngineAdapter, variant_name: str,
                 image: bytes) -> Optional[RawTranscription]:
        try:
            result = self._call_with_timeout(engine, image)
        except EngineUnavailable as e:
            logger.warning(f"[OCRSelector] {variant_name}: {e}")
            return None
        except Exception as e:
            logger.warning(f"[OCRSelector] {engine.name} {variant_name} failed: {e}")
            return None

        text = (result.get("text") or "").strip()
        if not text:
            logger.warning(f"[OCRSelector] {engine.name} {variant_name}: empty text")
            return None
        hint = result.get("confidence")
        return RawTranscription(
            text=text,
            confidence_hint=DEFAULT_BASE_CONFIDENCE if hint is None else float(hint),
            engine_name=engine.name,
            variant_name=variant_name,
        )

    def _call_with_timeout(self, engine: OCREngineAdapter, image: bytes) -> Dict:
        timeout = self.call_timeout if self.call_timeout is not None else engine.timeout
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(engine.recognize, image)
            try:
                return future.result(timeout=timeout)
            except concurrent.futures.TimeoutError:
                future.cancel()
                raise EngineUnavailable(engine.name, f"timed out after {timeout}s")
        finally:
            # Do not wait for a hung call; the worker thread is abandoned
            executor.shutdown(wait=False)
