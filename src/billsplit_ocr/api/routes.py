"""
API Routes - receipt scanning endpoints

The processor is provided through a dependency so tests can substitute
one built with fake OCR engines.
"""

from functools import lru_cache
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from billsplit_ocr.api.models import ParseTextRequest, ScanResponse
from billsplit_ocr.receipt_processor import SOURCES, ReceiptProcessor

# Create router
router = APIRouter()

# Allowed extensions and max file size
ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.bmp', '.tif', '.tiff'}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


@lru_cache(maxsize=1)
def get_processor() -> ReceiptProcessor:
    """Shared processor; OCR engines load on the first scan."""
    return ReceiptProcessor()


# ==================== UTILITY FUNCTIONS ====================

def validate_file(file: UploadFile):
    """Validate uploaded file"""
    if not file.filename:
        raise HTTPException(400, detail="No filename provided")

    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            400,
            detail=f"Invalid file type: {ext}. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )


# ==================== API ENDPOINTS ====================

@router.post("/receipts/scan", response_model=ScanResponse, tags=["Receipts"])
async def scan_receipt(
    file: UploadFile = File(..., description="Receipt image"),
    source: str = Form("upload", description="'camera' or 'upload'"),
    processor: ReceiptProcessor = Depends(get_processor),
):
    """
    **Scan a receipt image**

    Runs preprocessing variants through the OCR engines, interprets the best
    transcription and returns the structured receipt.

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/v1/receipts/scan \\
      -F "file=@receipt.jpg" \\
      -F "source=camera"
    ```
    """
    validate_file(file)
    if source not in SOURCES:
        raise HTTPException(400, detail=f"Invalid source: {source}. Allowed: {', '.join(SOURCES)}")

    data = await file.read()
    if len(data) > MAX_FILE_SIZE:
        raise HTTPException(413, detail=f"File too large. Maximum size: {MAX_FILE_SIZE // (1024 * 1024)}MB")

    logger.info(f"Scan request: {file.filename} ({len(data)} bytes)")
    result = await run_in_threadpool(processor.process_image, data, source, file.filename)
    return ScanResponse(**result)


@router.post("/receipts/parse-text", response_model=ScanResponse, tags=["Receipts"])
async def parse_text(
    request: ParseTextRequest,
    processor: ReceiptProcessor = Depends(get_processor),
):
    """
    **Interpret already-recognised receipt text**

    Skips OCR entirely; useful for re-parsing stored transcriptions.
    """
    receipt = await run_in_threadpool(processor.extract_from_text, request.text)
    if not receipt.has_structure():
        return ScanResponse(success=False, error="No receipt data could be extracted from the text")
    return ScanResponse(success=True, data=receipt.to_dict())
