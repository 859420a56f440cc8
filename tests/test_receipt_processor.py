"""
Tests for the end-to-end receipt pipeline
"""

import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from billsplit_ocr.config import default_config
from billsplit_ocr.errors import EngineUnavailable
from billsplit_ocr.image_preprocessor import ImageVariantGenerator
from billsplit_ocr.models import ReceiptType
from billsplit_ocr.ocr_selector import OCRResultSelector
from billsplit_ocr.receipt_processor import ReceiptProcessor
from billsplit_ocr.validator import MAX_ITEM_PRICE, MIN_ITEM_PRICE, within_tolerance


@pytest.fixture
def image_processor(patterns, make_engine):
    """Build a processor whose OCR engine returns the given text"""

    def _build(*engines):
        selector = OCRResultSelector(list(engines), patterns=patterns, call_timeout=5)
        return ReceiptProcessor(
            config=default_config(),
            patterns=patterns,
            variant_generator=ImageVariantGenerator(),
            selector=selector,
        )

    return _build


# ==================== TEXT EXTRACTION ====================

def test_restaurant_receipt(processor, restaurant_text):
    """Test a restaurant bill with items, tax and service charge"""
    receipt = processor.extract_from_text(restaurant_text)

    assert receipt.receipt_type == ReceiptType.RESTAURANT
    assert "SPICE GARDEN" in receipt.merchant_info.name
    assert ("Butter Chicken", Decimal("320.00")) in [(i.name, i.price) for i in receipt.items]
    assert len(receipt.items) == 4
    assert receipt.subtotal == Decimal("1120.00")
    assert receipt.tax == Decimal("89.60")
    assert receipt.service_charge == Decimal("56.00")
    assert receipt.total == Decimal("1265.60")


def test_grocery_receipt_subtotal_from_items(processor, grocery_text):
    """Test subtotal is derived from the items when not printed"""
    receipt = processor.extract_from_text(grocery_text)

    assert [i.name for i in receipt.items] == ["Rice 5kg", "Sugar 2kg", "Sunflower Oil 1L", "Tea Powder"]
    assert receipt.subtotal == Decimal("1057.00")
    assert receipt.tax == Decimal("52.85")
    assert receipt.total == Decimal("1109.85")


def test_empty_text(processor):
    """Test empty input yields an empty general receipt"""
    receipt = processor.extract_from_text("")

    assert receipt.receipt_type == ReceiptType.GENERAL
    assert receipt.items == ()
    assert receipt.total == 0
    assert receipt.confidence == 0.0
    assert not receipt.has_structure()


def test_extraction_is_deterministic(processor, restaurant_text):
    """Test the same text always yields the same receipt"""
    first = processor.extract_from_text(restaurant_text)
    second = processor.extract_from_text(restaurant_text)

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_text_source_recorded(processor, grocery_text):
    """Test raw text and method are carried on the receipt"""
    receipt = processor.extract_from_text(grocery_text, confidence=0.9, ocr_method="Tesseract (minimal)")

    assert receipt.raw_text == grocery_text
    assert receipt.confidence == 0.9
    assert receipt.ocr_method == "Tesseract (minimal)"


@pytest.mark.parametrize("fixture_name", [
    "restaurant_text", "grocery_text", "bus_ticket_text", "bus_ticket_ambiguous_text",
])
def test_output_is_consistent(processor, request, fixture_name):
    """Test every receipt satisfies the totals law and item ranges"""
    receipt = processor.extract_from_text(request.getfixturevalue(fixture_name))

    assert within_tolerance(receipt.total, receipt.parts_sum)
    assert all(MIN_ITEM_PRICE <= item.price <= MAX_ITEM_PRICE for item in receipt.items)
    assert 0.0 <= receipt.confidence <= 1.0


def test_noisy_text_does_not_crash(processor):
    """Test garbage input still produces a valid receipt"""
    receipt = processor.extract_from_text("@@@ ||| ###\n$$$ 99999999 ...\n\t\n~~")

    assert receipt.total >= 0
    assert all(MIN_ITEM_PRICE <= item.price <= MAX_ITEM_PRICE for item in receipt.items)


def test_to_dict_shape(processor, restaurant_text):
    """Test the serialized receipt"""
    data = processor.extract_from_text(restaurant_text).to_dict()

    assert data["total"] == 1265.6
    assert data["receipt_type"] == "restaurant"
    assert data["merchant_info"]["phone"] == "080-41234567"
    assert data["items"][0] == {"name": "Butter Chicken", "price": 320.0, "quantity": 1, "kind": "generic"}


# ==================== IMAGE PIPELINE ====================

def test_process_image_success(image_processor, make_engine, receipt_png, restaurant_text):
    """Test a full scan with a fake OCR engine"""
    processor = image_processor(make_engine(name="PaddleOCR", default=restaurant_text, confidence=0.9))
    result = processor.process_image(receipt_png, source="camera", filename="bill.png")

    assert result["success"] is True
    assert result["data"]["total"] == 1265.6
    assert result["data"]["ocr_method"] == "PaddleOCR (shadow_free)"


def test_process_image_all_engines_fail(image_processor, make_engine, receipt_png):
    """Test the error envelope when no engine produces text"""
    processor = image_processor(
        make_engine(name="Broken", default=EngineUnavailable("Broken", "offline")),
        make_engine(name="Silent", default=""),
    )
    result = processor.process_image(receipt_png)

    assert result["success"] is False
    assert result["error"]


def test_process_image_without_structure(image_processor, make_engine, receipt_png):
    """Test text with nothing extractable is reported as a failure"""
    processor = image_processor(make_engine(default="....."))
    result = processor.process_image(receipt_png)

    assert result == {"success": False, "error": "No receipt data could be extracted from the image"}


def test_process_image_empty_bytes(image_processor, make_engine):
    """Test empty upload is rejected before OCR"""
    engine = make_engine(default="TOTAL 10.00")
    result = image_processor(engine).process_image(b"")

    assert result["success"] is False
    assert engine.calls == 0


def test_process_image_rejects_non_image(image_processor, make_engine):
    """Test MIME sniffing rejects text files"""
    engine = make_engine(default="TOTAL 10.00")
    result = image_processor(engine).process_image(b"just some plain text, not an image at all")

    assert result["success"] is False
    assert "Not an image" in result["error"]
    assert engine.calls == 0


def test_process_image_over_size_limit(patterns, make_engine, receipt_png):
    """Test the configured byte limit is enforced before OCR"""
    config = default_config()
    config["preprocessing"]["max_image_bytes"] = 100
    engine = make_engine(default="TOTAL 10.00")
    processor = ReceiptProcessor(config=config, patterns=patterns,
                                 selector=OCRResultSelector([engine], patterns=patterns))

    result = processor.process_image(receipt_png)

    assert result["success"] is False
    assert "too large" in result["error"]
    assert engine.calls == 0


def test_selector_built_once_for_concurrent_requests(monkeypatch, patterns):
    """Test concurrent first image requests share one engine build"""
    builds = []

    def slow_build(config):
        builds.append(config)
        time.sleep(0.05)
        return [], []

    monkeypatch.setattr("billsplit_ocr.receipt_processor.build_engines", slow_build)
    processor = ReceiptProcessor(config=default_config(), patterns=patterns)

    with ThreadPoolExecutor(max_workers=4) as pool:
        selectors = list(pool.map(lambda _: processor.selector, range(4)))

    assert len(builds) == 1
    assert all(selector is selectors[0] for selector in selectors)
