"""
Bill Split Receipt OCR API - Main Application
FastAPI application for receipt extraction

Run with: python main.py
Access API docs at: http://localhost:8000/docs
"""

import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from billsplit_ocr import __version__
from billsplit_ocr.api.models import HealthResponse
from billsplit_ocr.api.routes import router

# Create FastAPI app
app = FastAPI(
    title="Bill Split Receipt OCR API",
    description="Extract merchant, items and totals from receipt images",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Bill Split Receipt OCR API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse(version=__version__)


if __name__ == "__main__":
    import os

    import uvicorn

    from billsplit_ocr.config import load_config
    from billsplit_ocr.utils import setup_logging

    log_config = load_config().get("logging", {})
    setup_logging(log_config.get("file", "logs/billsplit_ocr.log"), log_config.get("level", "INFO"))

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=False)
