"""
Tests for text cleaning, line roles and receipt type detection
"""

import pytest

from billsplit_ocr.line_classifier import LineClassifier
from billsplit_ocr.models import LineRole, ReceiptType
from billsplit_ocr.patterns import PatternTables
from billsplit_ocr.receipt_classifier import ReceiptTypeClassifier
from billsplit_ocr.text_cleaner import TextCleaner


@pytest.fixture
def line_classifier(patterns):
    return LineClassifier(patterns)


@pytest.fixture
def type_classifier(patterns):
    return ReceiptTypeClassifier(patterns)


# ==================== TEXT CLEANER ====================

def test_clean_keeps_row_structure():
    """Test cleaning works per line and drops blank lines"""
    text = "Butter  Chicken   ₹ 320.00 |\n\n   \nTOTAL ₹1265.60"

    assert TextCleaner().clean(text) == ["Butter Chicken ₹320.00", "TOTAL ₹1265.60"]


def test_clean_empty_text():
    """Test empty input yields no lines"""
    assert TextCleaner().clean("") == []


# ==================== LINE CLASSIFIER ====================

@pytest.mark.parametrize("line,role", [
    ("Item Qty Price", LineRole.HEADER),
    ("Bill No: 1234 Date: 12/03/2024", LineRole.HEADER),
    ("Subtotal ₹1120.00", LineRole.TOTAL_LIKE),
    ("GST (8%) ₹89.60", LineRole.TOTAL_LIKE),
    ("Service Charge ₹56.00", LineRole.TOTAL_LIKE),
    ("Ph: 080-41234567", LineRole.MERCHANT_INFO),
    ("MG Road, Bangalore 560001", LineRole.MERCHANT_INFO),
    ("info@spicegarden.in", LineRole.MERCHANT_INFO),
    ("12", LineRole.UNCLASSIFIED),
    ("1234 5678 90", LineRole.UNCLASSIFIED),
    ("Butter Chicken ₹320.00", LineRole.ITEM_CANDIDATE),
])
def test_line_roles(line_classifier, line, role):
    """Test each rule assigns the expected role"""
    assert line_classifier.role_of(line) == role


def test_total_keyword_beats_merchant_info(line_classifier):
    """Test rule order: total-like is checked before merchant-info"""
    assert line_classifier.role_of("Total Mumbai 450.00") == LineRole.TOTAL_LIKE


def test_classify_preserves_order(line_classifier):
    """Test classify keeps line order and indices"""
    lines = ["SPICE GARDEN", "Butter Chicken ₹320.00", "TOTAL ₹320.00"]
    classified = line_classifier.classify(lines)

    assert [cl.text for cl in classified] == lines
    assert [cl.line_index for cl in classified] == [0, 1, 2]
    assert classified[2].role == LineRole.TOTAL_LIKE


# ==================== RECEIPT TYPE ====================

def test_bus_ticket_type(type_classifier, bus_ticket_text):
    """Test operator abbreviation marks a bus ticket"""
    assert type_classifier.classify(bus_ticket_text) == ReceiptType.TRANSPORTATION


def test_train_ticket_type(type_classifier):
    """Test railway vocabulary marks a train ticket"""
    text = "IRCTC E-TICKET\nPNR 4512369870\nCOACH B2 BERTH 34"
    assert type_classifier.classify(text) == ReceiptType.TRAIN


def test_restaurant_type(type_classifier, restaurant_text):
    """Test food vocabulary marks a restaurant bill"""
    assert type_classifier.classify(restaurant_text) == ReceiptType.RESTAURANT


def test_retail_type(type_classifier):
    """Test invoice wording without food terms marks retail"""
    text = "ANNAPURNA STORES\nInvoice No 4521\nSoap 45.00"
    assert type_classifier.classify(text) == ReceiptType.RETAIL


def test_general_type(type_classifier):
    """Test fallback type"""
    assert type_classifier.classify("Some text 12.00") == ReceiptType.GENERAL
    assert type_classifier.classify("") == ReceiptType.GENERAL


def test_transport_checked_before_food(type_classifier):
    """Test priority order: transport wins over food vocabulary"""
    assert type_classifier.classify("Bus Stand Canteen\nChai 10") == ReceiptType.TRANSPORTATION


def test_regional_vocabulary_is_injectable():
    """Test an alternate vocabulary changes classification"""
    text = "Steamed Momos 120"

    assert ReceiptTypeClassifier(PatternTables.default()).classify(text) == ReceiptType.GENERAL
    tables = PatternTables.from_vocabulary({"food_terms": ["momo"]})
    assert ReceiptTypeClassifier(tables).classify(text) == ReceiptType.RESTAURANT
