"""
OCR Engine Adapters
Wrap external text-recognition backends behind one interface:

    engine.recognize(image_bytes) → {"text": str, "confidence": float}

Any backend failure (missing binary, timeout, network error, malformed
response) is raised as EngineUnavailable so the selector can move on to the
next (engine, variant) attempt.

Backends:
- PaddleOCREngine   local, PaddleOCR 2.x (optional 'paddle' extra)
- OCRSpaceEngine    remote, OCR.space parse API over requests
- TesseractEngine   local, pytesseract
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import pytesseract
import requests
from loguru import logger

from billsplit_ocr.errors import EngineUnavailable
from billsplit_ocr.image_preprocessor import decode_image


class OCREngineAdapter(ABC):
    """Interface consumed by OCRResultSelector."""

    name: str = "engine"
    timeout: float = 45

    @abstractmethod
    def recognize(self, image: bytes) -> Dict[str, Any]:
        """Return {"text": ..., "confidence": ...} or raise EngineUnavailable."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


# ─── PaddleOCR ────────────────────────────────────────────────────────────────

class PaddleOCREngine(OCREngineAdapter):
    """
    Local PaddleOCR engine.

    The model is loaded once at construction; that is slow, so build_engines
    creates a single instance per processor.
    """

    name = "PaddleOCR"

    def __init__(self, config: Dict):
        # OneDNN crashes on some CPUs with PaddleOCR 2.x
        os.environ.setdefault('FLAGS_use_mkldnn', 'False')
        os.environ.setdefault('FLAGS_enable_new_ir', 'False')

        try:
            from paddleocr import PaddleOCR
        except ImportError as e:
            raise EngineUnavailable(self.name, f"paddleocr is not installed ({e})")

        ocr_config = config.get('ocr', {})
        self.timeout = config.get('engines', {}).get('call_timeout_seconds', 45)

        init_params = {
            'use_angle_cls': ocr_config.get('use_angle_cls', True),
            'lang': ocr_config.get('lang', 'en'),
            'use_gpu': ocr_config.get('use_gpu', False),
            'det_db_thresh': ocr_config.get('det_db_thresh', 0.15),
            'rec_batch_num': ocr_config.get('rec_batch_num', 6),
            'drop_score': ocr_config.get('drop_score', 0.25),
            'use_space_char': True,
            'show_log': False,
        }
        for key in ('det_db_unclip_ratio', 'det_limit_side_len', 'det_db_box_thresh',
                    'use_dilation', 'det_db_score_mode'):
            if key in ocr_config:
                init_params[key] = ocr_config[key]

        logger.info(f"Initializing PaddleOCR (det_db_thresh={init_params['det_db_thresh']}, "
                    f"drop_score={init_params['drop_score']})")
        self.ocr = PaddleOCR(**init_params)

    def recognize(self, image: bytes) -> Dict[str, Any]:
        try:
            img = decode_image(image)
        except ValueError as e:
            raise EngineUnavailable(self.name, str(e))

        try:
            result = self.ocr.ocr(img, cls=True)
        except Exception as e:
            raise EngineUnavailable(self.name, f"recognition failed: {e}")

        texts: List[str] = []
        confidences: List[float] = []
        for page in result or []:
            for entry in page or []:
                text, conf = entry[1]
                if text and text.strip():
                    texts.append(text.strip())
                    confidences.append(float(conf))

        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return {"text": "\n".join(texts), "confidence": confidence}


# ─── OCR.space ────────────────────────────────────────────────────────────────

class OCRSpaceEngine(OCREngineAdapter):
    """Remote OCR.space engine. Reports a flat 0.7 confidence hint."""

    name = "OCR.space API"
    CONFIDENCE_HINT = 0.7

    def __init__(self, config: Dict, session: Optional[requests.Session] = None):
        space_config = config.get('ocr_space', {})
        self.api_key = space_config.get('api_key')
        if not self.api_key:
            raise EngineUnavailable(self.name, "no API key configured")
        self.url = space_config.get('url', 'https://api.ocr.space/parse/image')
        self.engine = str(space_config.get('engine', '2'))
        self.language = space_config.get('language', 'eng')
        self.timeout = space_config.get('timeout', 45)
        self.session = session or requests.Session()

    def recognize(self, image: bytes) -> Dict[str, Any]:
        data = {
            'apikey': self.api_key,
            'language': self.language,
            'isOverlayRequired': 'false',
            'detectOrientation': 'true',
            'isTable': 'true',
            'scale': 'true',
            'OCREngine': self.engine,
        }
        files = {'file': ('receipt.jpg', image, 'image/jpeg')}

        try:
            response = self.session.post(self.url, data=data, files=files, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout:
            raise EngineUnavailable(self.name, f"timed out after {self.timeout}s")
        except requests.RequestException as e:
            raise EngineUnavailable(self.name, f"request failed: {e}")
        except ValueError as e:
            raise EngineUnavailable(self.name, f"malformed response: {e}")

        if payload.get('IsErroredOnProcessing'):
            message = payload.get('ErrorMessage') or 'processing error'
            if isinstance(message, list):
                message = "; ".join(str(m) for m in message)
            raise EngineUnavailable(self.name, str(message))

        parsed = payload.get('ParsedResults') or []
        if not parsed:
            raise EngineUnavailable(self.name, "no parsed results")

        text = "\n".join(r.get('ParsedText', '') for r in parsed).strip()
        return {"text": text, "confidence": self.CONFIDENCE_HINT}


# ─── Tesseract ────────────────────────────────────────────────────────────────

class TesseractEngine(OCREngineAdapter):
    """Local Tesseract engine via pytesseract. Confidence = mean word confidence."""

    name = "Tesseract"

    def __init__(self, config: Dict):
        tess_config = config.get('tesseract', {})
        self.lang = tess_config.get('lang', 'eng')
        self.tess_config = tess_config.get('config', '--oem 1 --psm 6')
        self.timeout = tess_config.get('timeout', 60)

        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, EnvironmentError) as e:
            raise EngineUnavailable(self.name, f"tesseract binary not found ({e})")
        logger.info(f"Tesseract {version} available")

    def recognize(self, image: bytes) -> Dict[str, Any]:
        try:
            img = decode_image(image)
        except ValueError as e:
            raise EngineUnavailable(self.name, str(e))

        try:
            data = pytesseract.image_to_data(
                img,
                lang=self.lang,
                config=self.tess_config,
                output_type=pytesseract.Output.DICT,
                timeout=self.timeout,
            )
        except RuntimeError as e:
            # pytesseract signals its own timeout with RuntimeError
            raise EngineUnavailable(self.name, f"tesseract failed: {e}")
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise EngineUnavailable(self.name, f"tesseract failed: {e}")

        return self._assemble(data)

    @staticmethod
    def _assemble(data: Dict[str, List]) -> Dict[str, Any]:
        """Regroup word-level output into lines, in reading order."""
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        confidences: List[float] = []

        for i, word in enumerate(data.get('text', [])):
            if not word or not str(word).strip():
                continue
            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            lines.setdefault(key, []).append(str(word).strip())
            try:
                conf = float(data['conf'][i])
            except (TypeError, ValueError):
                continue
            if conf >= 0:
                confidences.append(conf)

        text = "\n".join(" ".join(words) for words in lines.values())
        confidence = (sum(confidences) / len(confidences) / 100.0) if confidences else 0.0
        return {"text": text, "confidence": confidence}


# ─── Construction ─────────────────────────────────────────────────────────────

_ENGINE_CLASSES = {
    'paddle': PaddleOCREngine,
    'ocr_space': OCRSpaceEngine,
    'tesseract': TesseractEngine,
}


def _build(names: List[str], config: Dict) -> List[OCREngineAdapter]:
    engines: List[OCREngineAdapter] = []
    for name in names:
        cls = _ENGINE_CLASSES.get(name)
        if cls is None:
            logger.warning(f"Unknown OCR engine '{name}' in config, skipping")
            continue
        try:
            engines.append(cls(config))
            logger.info(f"✅ {cls.name} engine ready")
        except EngineUnavailable as e:
            logger.warning(f"⚠️  {e.engine_name} engine disabled: {e.reason}")
        except Exception as e:
            logger.warning(f"Could not initialize {cls.name}: {e}")
    return engines


def build_engines(config: Dict) -> Tuple[List[OCREngineAdapter], List[OCREngineAdapter]]:
    """
    Construct the configured primary and secondary engines.

    Engines that cannot be constructed (missing package or binary, no API
    key) are skipped with a warning.
    """
    engine_config = config.get('engines', {})
    primary = _build(engine_config.get('primary', []), config)
    secondary = _build(engine_config.get('secondary', []), config)
    if not primary and not secondary:
        logger.error("No OCR engine could be initialized")
    return primary, secondary
