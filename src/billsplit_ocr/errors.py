"""
Error taxonomy for the receipt extraction pipeline.

Only ExtractionFailed ever reaches a caller. EngineUnavailable is absorbed by
the OCR result selector and MalformedPrice by the price tokenizer.
"""


class ReceiptOCRError(Exception):
    """Base class for all pipeline errors."""


class EngineUnavailable(ReceiptOCRError):
    """A single (engine, variant) attempt failed: network, timeout, bad response."""

    def __init__(self, engine_name: str, reason: str):
        self.engine_name = engine_name
        self.reason = reason
        super().__init__(f"{engine_name}: {reason}")


class ExtractionFailed(ReceiptOCRError):
    """Every engine/variant attempt failed or produced empty text."""


class MalformedPrice(ReceiptOCRError):
    """A numeric token could not be parsed after normalization."""

    def __init__(self, raw_token: str):
        self.raw_token = raw_token
        super().__init__(f"Cannot parse price token: {raw_token!r}")
