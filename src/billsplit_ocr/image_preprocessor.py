"""
Image Variant Generator for Receipt OCR

Produces several differently preprocessed JPEG renderings of one receipt
photo. No single preprocessing recipe suits every receipt and every engine,
so the selector runs them all and keeps the best transcription.

VARIANTS (in the order they are tried):
  shadow_free          camera photos only: background normalization
  high_contrast        2000px wide, grayscale, stretched, sharpened, binarized
  receipt_optimized    1800px, gamma 1.2, normalized, sharpened, brightened
  denoised             1600px, light blur, normalized, mild contrast
  transport_optimized  2200px, strong sharpen and contrast for faded tickets
  minimal              fit inside 1920x1080, otherwise untouched

FALLBACKS:
  undecodable input    → {"original": <raw bytes>}
  processing failure   → {"basic": <original fitted inside 1920x1080>}
"""

from typing import Dict, Optional

import cv2
import numpy as np
from loguru import logger


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes into a BGR array."""
    if not data:
        raise ValueError("Empty image buffer")
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("Cannot decode image")
    return img


def encode_jpeg(img: np.ndarray, quality: int) -> bytes:
    ok, buf = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return buf.tobytes()


class ImageVariantGenerator:
    """
    Receipt image variant generator.

    Every variant is returned as JPEG bytes so it can be handed to any
    OCR engine adapter unchanged.
    """

    # Target widths / output qualities
    HIGH_CONTRAST_WIDTH   = 2000
    RECEIPT_WIDTH         = 1800
    DENOISED_WIDTH        = 1600
    TRANSPORT_WIDTH       = 2200
    MINIMAL_BOX           = (1920, 1080)
    BINARY_THRESHOLD      = 128

    def __init__(self, config: Optional[Dict] = None):
        self.config = config or {}

    # ── Public API ────────────────────────────────────────────────────────────

    def generate(self, data: bytes, source: str = "upload") -> Dict[str, bytes]:
        """
        Build all variants for one image.

        Args:
            data:   encoded image bytes (JPEG, PNG, ...)
            source: "camera" adds a shadow-removal variant tried first

        Returns:
            Ordered mapping of variant name → JPEG bytes
        """
        try:
            img = decode_image(data)
        except ValueError as e:
            logger.warning(f"[VariantGenerator] {e}, passing original bytes through")
            return {"original": data}

        try:
            variants: Dict[str, bytes] = {}
            if source == "camera":
                variants["shadow_free"] = encode_jpeg(self._remove_shadow(img), 92)
            variants["high_contrast"] = self._high_contrast(img)
            variants["receipt_optimized"] = self._receipt_optimized(img)
            variants["denoised"] = self._denoised(img)
            variants["transport_optimized"] = self._transport_optimized(img)
            variants["minimal"] = self._minimal(img)
        except (cv2.error, ValueError) as e:
            logger.warning(f"[VariantGenerator] Preprocessing failed: {e}, using basic variant")
            try:
                return {"basic": encode_jpeg(self._fit_inside(img, *self.MINIMAL_BOX), 90)}
            except (cv2.error, ValueError):
                return {"basic": data}

        logger.info(f"[VariantGenerator] Generated {len(variants)} variants: {list(variants)}")
        return variants

    # ── Variants ──────────────────────────────────────────────────────────────

    def _high_contrast(self, img: np.ndarray) -> bytes:
        out = self._gray(self._resize_width(img, self.HIGH_CONTRAST_WIDTH))
        out = self._normalize(out)
        out = self._linear(out, 1.5, -64)
        out = self._sharpen(out, 1.0)
        _, out = cv2.threshold(out, self.BINARY_THRESHOLD, 255, cv2.THRESH_BINARY)
        return encode_jpeg(out, 95)

    def _receipt_optimized(self, img: np.ndarray) -> bytes:
        out = self._gray(self._resize_width(img, self.RECEIPT_WIDTH))
        out = self._gamma_correct(out, 1.2)
        out = self._normalize(out)
        out = self._sharpen(out, 1.0)
        out = self._linear(out, 1.1, 0)
        return encode_jpeg(out, 90)

    def _denoised(self, img: np.ndarray) -> bytes:
        out = self._gray(self._resize_width(img, self.DENOISED_WIDTH))
        out = cv2.GaussianBlur(out, (3, 3), 0.3)
        out = self._normalize(out)
        out = self._linear(out, 1.2, -20)
        out = self._sharpen(out, 0.5)
        return encode_jpeg(out, 85)

    def _transport_optimized(self, img: np.ndarray) -> bytes:
        out = self._gray(self._resize_width(img, self.TRANSPORT_WIDTH))
        out = self._normalize(out)
        out = self._sharpen(out, 2.0)
        out = self._linear(out, 1.8, -50)
        return encode_jpeg(out, 98)

    def _minimal(self, img: np.ndarray) -> bytes:
        return encode_jpeg(self._fit_inside(img, *self.MINIMAL_BOX), 92)

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _gray(img: np.ndarray) -> np.ndarray:
        if img.ndim == 2:
            return img
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

    @staticmethod
    def _normalize(img: np.ndarray) -> np.ndarray:
        return cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX)

    @staticmethod
    def _linear(img: np.ndarray, alpha: float, beta: float) -> np.ndarray:
        """out = alpha * img + beta, saturated to uint8."""
        return cv2.convertScaleAbs(img, alpha=alpha, beta=beta)

    @staticmethod
    def _sharpen(img: np.ndarray, strength: float) -> np.ndarray:
        """Unsharp mask."""
        blurred = cv2.GaussianBlur(img, (0, 0), 1.0)
        return cv2.addWeighted(img, 1.0 + strength, blurred, -strength, 0)

    def _gamma_correct(self, img: np.ndarray, gamma: float) -> np.ndarray:
        """
        Gamma correction via lookup table.
        The table raises values to 1/gamma, so gamma > 1.0 lifts faint mid-tones.
        """
        inv_gamma = 1.0 / gamma
        table = np.array([
            (i / 255.0) ** inv_gamma * 255
            for i in range(256)
        ], dtype=np.uint8)
        return cv2.LUT(img, table)

    def _remove_shadow(self, img: np.ndarray) -> np.ndarray:
        """
        Background normalization for uneven lighting.

        Estimates the slow-varying background by dilating then median
        blurring, subtracts the original from it, and inverts so text stays
        dark on a flat white page.
        """
        gray = self._gray(img)
        dilated = cv2.dilate(gray, np.ones((7, 7), np.uint8))
        bg = cv2.medianBlur(dilated, 31)
        norm = 255 - cv2.absdiff(bg, gray)
        return cv2.normalize(norm, None, 0, 255, cv2.NORM_MINMAX, cv2.CV_8U)

    @staticmethod
    def _resize_width(img: np.ndarray, width: int) -> np.ndarray:
        """Resize to an exact width, preserving aspect ratio."""
        h, w = img.shape[:2]
        if w == width:
            return img
        scale = width / w
        interp = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_CUBIC
        return cv2.resize(img, (width, max(1, int(round(h * scale)))), interpolation=interp)

    @staticmethod
    def _fit_inside(img: np.ndarray, max_w: int, max_h: int) -> np.ndarray:
        """Shrink to fit the box; never enlarge."""
        h, w = img.shape[:2]
        scale = min(max_w / w, max_h / h)
        if scale >= 1.0:
            return img
        new_w, new_h = max(1, int(w * scale)), max(1, int(h * scale))
        return cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_AREA)
