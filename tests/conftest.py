"""
Shared fixtures for the receipt pipeline tests
"""

import time

import cv2
import numpy as np
import pytest

from billsplit_ocr.config import default_config
from billsplit_ocr.line_classifier import LineClassifier
from billsplit_ocr.patterns import PatternTables
from billsplit_ocr.price_tokenizer import PriceTokenizer
from billsplit_ocr.receipt_processor import ReceiptProcessor
from billsplit_ocr.text_cleaner import TextCleaner


RESTAURANT_TEXT = "\n".join([
    "SPICE GARDEN RESTAURANT",
    "MG Road, Bangalore 560001",
    "Ph: 080-41234567",
    "Bill No: 1234 Date: 12/03/2024",
    "Item Qty Price",
    "Butter Chicken ₹320.00",
    "Dal Makhani ₹280.00",
    "Garlic Naan ₹240.00",
    "Paneer Tikka ₹280.00",
    "Subtotal ₹1120.00",
    "GST (8%) ₹89.60",
    "Service Charge ₹56.00",
    "TOTAL ₹1265.60",
    "Thank you! Visit again",
])

GROCERY_TEXT = "\n".join([
    "ANNAPURNA STORES",
    "Invoice No 4521",
    "Rice 5kg 450.00",
    "Sugar 2kg 96.00",
    "Sunflower Oil 1L 215.00",
    "Tea Powder 296.00",
    "GST 52.85",
    "TOTAL 1109.85",
])

BUS_TICKET_HEAD = [
    "GSRTC AHMEDABAD DEPOT",
    "PASSENGER TICKET",
    "AHMEDABAD - MUMBAI CENTRAL",
    "DISTANCE 525 KMS",
]

BUS_TICKET_TEXT = "\n".join(BUS_TICKET_HEAD + ["FARE 450.00"])

# Neither number sits on a fare/total line
BUS_TICKET_AMBIGUOUS_TEXT = "\n".join(BUS_TICKET_HEAD + ["TIME 21:30 450"])


@pytest.fixture
def restaurant_text():
    return RESTAURANT_TEXT


@pytest.fixture
def grocery_text():
    return GROCERY_TEXT


@pytest.fixture
def bus_ticket_text():
    return BUS_TICKET_TEXT


@pytest.fixture
def bus_ticket_ambiguous_text():
    return BUS_TICKET_AMBIGUOUS_TEXT


@pytest.fixture(scope="session")
def patterns():
    return PatternTables.default()


@pytest.fixture
def processor(patterns):
    """Processor for text-only extraction; never touches OCR engines."""
    return ReceiptProcessor(config=default_config(), patterns=patterns)


@pytest.fixture
def classify(patterns):
    """Clean and classify raw text into ClassifiedLines."""
    cleaner = TextCleaner()
    classifier = LineClassifier(patterns)

    def _classify(text):
        return classifier.classify(cleaner.clean(text))

    return _classify


@pytest.fixture
def tokenizer(patterns):
    return PriceTokenizer(patterns)


@pytest.fixture
def receipt_png():
    """Encoded PNG of a simple synthetic receipt"""
    img = np.ones((200, 400, 3), dtype=np.uint8) * 255
    cv2.putText(img, "SPICE GARDEN", (30, 50),
                cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 0, 0), 2)
    cv2.putText(img, "TOTAL Rs 1265.60", (30, 120),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 0, 0), 2)
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return buf.tobytes()


class FakeEngine:
    """OCR engine stub: maps image bytes to a text, an exception, or a default."""

    def __init__(self, name="FakeOCR", responses=None, default="", confidence=0.7,
                 delay=0.0, timeout=5):
        self.name = name
        self.responses = responses or {}
        self.default = default
        self.confidence = confidence
        self.delay = delay
        self.timeout = timeout
        self.calls = 0

    def recognize(self, image):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        result = self.responses.get(image, self.default)
        if isinstance(result, Exception):
            raise result
        return {"text": result, "confidence": self.confidence}


@pytest.fixture
def make_engine():
    """Factory for FakeEngine instances"""
    return FakeEngine
