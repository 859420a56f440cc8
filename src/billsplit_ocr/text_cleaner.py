"""
Text Cleaning Module
Normalizes raw OCR output before line classification

Works line by line so the receipt's row structure survives:
- "Butter  Chicken   ₹ 320.00 |" → "Butter Chicken ₹320.00"
- blank and whitespace-only lines are dropped
"""

import re
from typing import Dict, List

from loguru import logger


class TextCleaner:
    """Per-line OCR text cleanup driven by an ordered pattern table."""

    def __init__(self):
        self.patterns = self._build_patterns()

    def _build_patterns(self) -> Dict:
        """Build regex patterns for cleanup, applied in order"""
        return {
            'strip_noise': {
                'pattern': re.compile(r"[^\w\s₹.,()\-+/:@#%&']"),
                'replacement': '',
                'description': 'Drop characters that never carry receipt data'
            },
            'rupee_spacing': {
                'pattern': re.compile(r'₹\s+'),
                'replacement': '₹',
                'description': 'Attach rupee symbol to its amount'
            },
            'collapse_spaces': {
                'pattern': re.compile(r'[ \t\f\v]+'),
                'replacement': ' ',
                'description': 'Collapse runs of horizontal whitespace'
            },
        }

    def clean_line(self, line: str) -> str:
        cleaned = line
        for pattern_info in self.patterns.values():
            cleaned = pattern_info['pattern'].sub(pattern_info['replacement'], cleaned)
        return cleaned.strip()

    def clean(self, text: str) -> List[str]:
        """
        Clean OCR text into a list of non-empty lines

        Args:
            text: Raw OCR text, newline separated

        Returns:
            Cleaned lines in original order
        """
        if not text:
            return []

        lines = []
        for raw in text.splitlines():
            cleaned = self.clean_line(raw)
            if cleaned:
                lines.append(cleaned)

        logger.debug(f"[TextCleaner] {len(lines)} lines kept from {len(text.splitlines())}")
        return lines
