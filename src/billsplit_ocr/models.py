"""
Receipt data model
==================
Immutable value types shared by every stage of the pipeline.

  RawTranscription  one OCR attempt (engine x variant), discarded after selection
  ScoredPrice       one numeric token on a line with its context score
  ClassifiedLine    one cleaned input line and its role
  MerchantInfo      optional merchant identity fields
  LineItem          one splittable item
  Receipt           the final artifact, serializable with to_dict()

Money is carried as Decimal throughout and only converted to float when a
Receipt is serialized.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple


ZERO = Decimal("0")


class ReceiptType(str, Enum):
    TRANSPORTATION = "transportation"
    TRAIN = "train"
    RESTAURANT = "restaurant"
    RETAIL = "retail"
    GENERAL = "general"


class LineRole(str, Enum):
    HEADER = "header"
    TOTAL_LIKE = "total-like"
    MERCHANT_INFO = "merchant-info"
    ITEM_CANDIDATE = "item-candidate"
    UNCLASSIFIED = "unclassified"


class ItemKind(str, Enum):
    GENERIC = "generic"
    TRANSPORTATION = "transportation"


# ─── Ephemeral pipeline values ────────────────────────────────────────────────

@dataclass(frozen=True)
class RawTranscription:
    text: str
    confidence_hint: float
    engine_name: str
    variant_name: str


@dataclass(frozen=True)
class ScoredPrice:
    """A numeric token that may be a price. start/end index the source line."""
    value: Decimal
    raw_token: str
    has_currency_symbol: bool
    context_score: int
    start: int = 0
    end: int = 0
    reasons: Tuple[str, ...] = ()

    @property
    def is_whole(self) -> bool:
        return self.value == self.value.to_integral_value()


@dataclass(frozen=True)
class ClassifiedLine:
    text: str
    line_index: int
    role: LineRole


# ─── Output record ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MerchantInfo:
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    tax_id: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.name, self.address, self.phone,
                        self.email, self.website, self.tax_id))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "tax_id": self.tax_id,
        }


@dataclass(frozen=True)
class LineItem:
    name: str
    price: Decimal
    quantity: int = 1
    kind: ItemKind = ItemKind.GENERIC

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "price": float(self.price),
            "quantity": self.quantity,
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class Receipt:
    merchant_info: MerchantInfo = field(default_factory=MerchantInfo)
    items: Tuple[LineItem, ...] = ()
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    service_charge: Decimal = ZERO
    total: Decimal = ZERO
    receipt_type: ReceiptType = ReceiptType.GENERAL
    raw_text: str = ""
    confidence: float = 0.0
    ocr_method: str = ""

    @property
    def parts_sum(self) -> Decimal:
        return self.subtotal + self.tax + self.service_charge

    def has_structure(self) -> bool:
        """True when anything at all was extracted from the text."""
        return bool(self.items) or self.total > 0 or not self.merchant_info.is_empty()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "merchant_info": self.merchant_info.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "service_charge": float(self.service_charge),
            "total": float(self.total),
            "receipt_type": self.receipt_type.value,
            "raw_text": self.raw_text,
            "confidence": round(self.confidence, 3),
            "ocr_method": self.ocr_method,
        }
