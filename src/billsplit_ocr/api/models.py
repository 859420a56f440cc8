"""
API Models - Request and Response schemas
Using Pydantic for automatic validation and documentation

ReceiptModel mirrors Receipt.to_dict(); money fields are plain floats.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# ─── Receipt Models ───────────────────────────────────────────────────────────

class MerchantInfoModel(BaseModel):
    """Merchant identity; every field optional."""
    name: Optional[str]    = Field(None, description="Merchant or operator name")
    address: Optional[str] = Field(None, description="First address-like line")
    phone: Optional[str]   = Field(None, description="Phone number")
    email: Optional[str]   = Field(None, description="E-mail address (lower-case)")
    website: Optional[str] = Field(None, description="Website host or URL")
    tax_id: Optional[str]  = Field(None, description="GSTIN")


class LineItemModel(BaseModel):
    """One splittable item."""
    name: str      = Field(...,        description="Item name")
    price: float   = Field(...,        description="Unit price", ge=1, le=10000)
    quantity: int  = Field(1,          description="Quantity", ge=1)
    kind: str      = Field("generic",  description="'generic' or 'transportation'")


class ReceiptModel(BaseModel):
    """Structured receipt extracted from OCR text."""
    merchant_info: MerchantInfoModel = Field(default_factory=MerchantInfoModel)
    items: List[LineItemModel]       = Field(default_factory=list)
    subtotal: float        = Field(0, ge=0)
    tax: float             = Field(0, ge=0)
    service_charge: float  = Field(0, ge=0)
    total: float           = Field(0, ge=0)
    receipt_type: str      = Field("general", description="transportation | train | restaurant | retail | general")
    raw_text: str          = Field("", description="Selected OCR transcription")
    confidence: float      = Field(0, ge=0, le=1, description="Plausibility of the transcription")
    ocr_method: str        = Field("", description="Engine and variant that produced the text")


# ─── Envelopes ────────────────────────────────────────────────────────────────

class ScanResponse(BaseModel):
    """{"success": true, "data": ...} or {"success": false, "error": ...}"""
    success: bool                  = Field(...,  description="Whether extraction succeeded")
    data: Optional[ReceiptModel]   = Field(None, description="Extracted receipt")
    error: Optional[str]           = Field(None, description="Failure reason")


class ParseTextRequest(BaseModel):
    """Already-recognised receipt text."""
    text: str = Field(..., description="OCR text, newline separated")


class HealthResponse(BaseModel):
    status: str  = Field("healthy")
    service: str = Field("billsplit-ocr-api")
    version: str = Field(...)
