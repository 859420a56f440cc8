"""
Tests for the HTTP API
"""

import pytest
from fastapi.testclient import TestClient

from billsplit_ocr.api.routes import get_processor
from billsplit_ocr.config import default_config
from billsplit_ocr.image_preprocessor import ImageVariantGenerator
from billsplit_ocr.ocr_selector import OCRResultSelector
from billsplit_ocr.receipt_processor import ReceiptProcessor
from main import app


@pytest.fixture
def client(patterns, make_engine, restaurant_text):
    engine = make_engine(name="PaddleOCR", default=restaurant_text, confidence=0.9)
    processor = ReceiptProcessor(
        config=default_config(),
        patterns=patterns,
        variant_generator=ImageVariantGenerator(),
        selector=OCRResultSelector([engine], patterns=patterns),
    )
    app.dependency_overrides[get_processor] = lambda: processor
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    """Test health endpoint"""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_parse_text(client, restaurant_text):
    """Test text-only extraction endpoint"""
    response = client.post("/api/v1/receipts/parse-text", json={"text": restaurant_text})
    body = response.json()

    assert response.status_code == 200
    assert body["success"] is True
    assert body["data"]["total"] == 1265.6
    assert len(body["data"]["items"]) == 4


def test_parse_text_without_structure(client):
    """Test empty text reports failure"""
    body = client.post("/api/v1/receipts/parse-text", json={"text": ""}).json()

    assert body["success"] is False
    assert body["error"]


def test_scan_receipt(client, receipt_png):
    """Test image scan with a fake OCR engine"""
    response = client.post(
        "/api/v1/receipts/scan",
        files={"file": ("bill.png", receipt_png, "image/png")},
        data={"source": "camera"},
    )
    body = response.json()

    assert response.status_code == 200
    assert body["success"] is True
    assert body["data"]["merchant_info"]["name"] == "SPICE GARDEN RESTAURANT"
    assert body["data"]["ocr_method"] == "PaddleOCR (shadow_free)"


def test_scan_rejects_extension(client, receipt_png):
    """Test unsupported file types are rejected"""
    response = client.post("/api/v1/receipts/scan", files={"file": ("bill.gif", receipt_png, "image/gif")})

    assert response.status_code == 400


def test_scan_rejects_source(client, receipt_png):
    """Test unknown source values are rejected"""
    response = client.post(
        "/api/v1/receipts/scan",
        files={"file": ("bill.png", receipt_png, "image/png")},
        data={"source": "scanner"},
    )

    assert response.status_code == 400


def test_scan_rejects_large_file(client):
    """Test uploads over 10MB are rejected"""
    big = b"\xff" * (10 * 1024 * 1024 + 1)
    response = client.post("/api/v1/receipts/scan", files={"file": ("bill.jpg", big, "image/jpeg")})

    assert response.status_code == 413
