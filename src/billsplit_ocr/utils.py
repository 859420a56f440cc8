"""
Utility functions for receipt OCR processing
"""

import os
import re
import sys
from pathlib import Path
from typing import Tuple

import magic
from loguru import logger


def validate_image_bytes(data: bytes) -> Tuple[bool, str]:
    """
    Validate that an uploaded buffer is an image

    Args:
        data: Raw file bytes

    Returns:
        (is_valid, message)
    """
    if not data:
        return False, "Empty file"

    # Verify MIME type (don't trust extension alone)
    try:
        mime = magic.from_buffer(data[:4096], mime=True)
        if not mime.startswith('image/'):
            return False, f"Not an image file (MIME type: {mime})"
    except Exception as e:
        logger.warning(f"Could not verify MIME type: {e}")

    return True, "Valid image file"


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal and special characters

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    # Get just the filename (remove any path components)
    filename = os.path.basename(filename or "")

    # Remove special characters (keep alphanumeric, dots, dashes, underscores)
    filename = re.sub(r'[^a-zA-Z0-9._-]', '_', filename)

    # Limit length
    if len(filename) > 100:
        name, ext = os.path.splitext(filename)
        filename = name[:95] + ext

    return filename or "upload"


def ensure_directory(dir_path: str) -> str:
    """Create the directory if needed and return its absolute path"""
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return str(path.absolute())


def format_processing_time(milliseconds: int) -> str:
    """
    Format processing time in human-readable format

    Args:
        milliseconds: Time in milliseconds

    Returns:
        Formatted string (e.g., "1.23s", "456ms")
    """
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    else:
        seconds = milliseconds / 1000
        return f"{seconds:.2f}s"


# Logging setup helper
def setup_logging(log_file: str = "logs/billsplit_ocr.log", level: str = "INFO"):
    """
    Setup logging configuration

    Args:
        log_file: Path to log file
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    # Remove default handler
    logger.remove()

    # Add console handler
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level
    )

    # Add file handler
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            ensure_directory(log_dir)
        logger.add(
            log_file,
            rotation="10 MB",
            retention="30 days",
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
        )

    logger.info("Logging initialized")
