"""
Tests for price tokenization and scoring
"""

from decimal import Decimal

import pytest

from billsplit_ocr.errors import MalformedPrice
from billsplit_ocr.models import ClassifiedLine, LineRole, ReceiptType
from billsplit_ocr.price_tokenizer import CommaDecimalPolicy


def values(prices):
    return [sp.value for sp in prices]


def test_currency_token_is_claimed_once(tokenizer):
    """Test that ₹320.00 yields one token, not also 320.00 or 00"""
    prices = tokenizer.tokenize("Butter Chicken ₹320.00")

    assert len(prices) == 1
    assert prices[0].value == Decimal("320.00")
    assert prices[0].has_currency_symbol
    assert prices[0].raw_token == "₹320.00"


def test_grouped_amount_with_rs_prefix(tokenizer):
    """Test thousands separators inside a currency token"""
    prices = tokenizer.tokenize("Grand Total Rs. 1,120.00")

    assert values(prices) == [Decimal("1120.00")]


def test_comma_decimal(tokenizer):
    """Test European-style decimal comma"""
    assert values(tokenizer.tokenize("Masala Dosa 178,00")) == [Decimal("178.00")]


@pytest.mark.parametrize("token,expected", [
    ("178,00", "178.00"),
    ("1,120", "1120"),
    ("12,34,567", "1234567"),
    ("1,120.50", "1120.50"),
    ("45.50", "45.50"),
])
def test_comma_decimal_policy(token, expected):
    """Test comma normalization rules"""
    assert CommaDecimalPolicy().normalize(token) == expected


def test_numbers_glued_to_units_are_ignored(tokenizer):
    """Test that 5kg is not read as a price"""
    assert values(tokenizer.tokenize("Rice 5kg 450.00")) == [Decimal("450.00")]


def test_dates_and_times_are_not_prices(tokenizer):
    """Test date and clock fragments produce no tokens"""
    assert tokenizer.tokenize("Date: 12/03/2024 Time 21:30") == []


def test_quantity_marker_is_not_a_price(tokenizer):
    """Test "2 x" is a quantity, not a price"""
    assert values(tokenizer.tokenize("2 x Naan 80")) == [Decimal("80")]


def test_percentage_is_not_a_price(tokenizer):
    """Test the tax rate in "GST (8%)" is skipped"""
    assert values(tokenizer.tokenize("GST (8%) ₹89.60")) == [Decimal("89.60")]


def test_candidates_sorted_best_first(tokenizer):
    """Test a decimal total outranks a bare four-digit number"""
    prices = tokenizer.tokenize("TOTAL 1265.60 CASH 2000")

    assert values(prices) == [Decimal("1265.60"), Decimal("2000")]
    assert prices[0].context_score > prices[1].context_score


def test_distance_context_lowers_score(tokenizer):
    """Test a number followed by km is penalized on tickets"""
    prices = tokenizer.tokenize("DISTANCE 525 KMS", ReceiptType.TRANSPORTATION)

    assert len(prices) == 1
    assert prices[0].context_score == 3
    assert any(reason.startswith("distance") for reason in prices[0].reasons)


def test_low_scoring_candidates_are_discarded(tokenizer):
    """Test a reference-like number on a ticket is dropped entirely"""
    assert tokenizer.tokenize("PNR 8812 Date", ReceiptType.TRANSPORTATION) == []


def test_token_spans_point_into_line(tokenizer):
    """Test start/end offsets cover the raw token"""
    line = "Paneer Tikka ₹280.00"
    price = tokenizer.tokenize(line)[0]

    assert line[price.start:price.end] == price.raw_token


def test_parse_rejects_garbage(tokenizer):
    """Test malformed numbers raise MalformedPrice"""
    with pytest.raises(MalformedPrice):
        tokenizer.parse("abc")


def test_index_covers_every_line(tokenizer, classify, restaurant_text):
    """Test the price index has an entry per classified line"""
    lines = classify(restaurant_text)
    index = tokenizer.index(lines)

    assert sorted(index) == [cl.line_index for cl in lines]
    assert index[0] == ()


def test_total_bonus_only_on_total_like_lines(tokenizer):
    """Test the total/amount keyword bonus needs a total-like line"""
    line = "Amount 450.00"
    plain = tokenizer.tokenize(line)[0]
    total_like = tokenizer.tokenize(line, role=LineRole.TOTAL_LIKE)[0]

    assert total_like.context_score == plain.context_score + 15
    assert not any(reason.startswith("total/amount") for reason in plain.reasons)


def test_index_passes_line_roles(tokenizer):
    """Test the index scores each line with its classified role"""
    lines = [
        ClassifiedLine("Paneer Tikka Amount 280.00", 0, LineRole.ITEM_CANDIDATE),
        ClassifiedLine("Total Amount 280.00", 1, LineRole.TOTAL_LIKE),
    ]
    index = tokenizer.index(lines)

    assert index[1][0].context_score - index[0][0].context_score == 15
