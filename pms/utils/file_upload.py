"""
File Upload Utility - validate uploaded images and read roster spreadsheets.

Supported formats:
- Profile images: JPEG, PNG, WebP (max 5MB)
- Rosters: Excel (.xlsx via openpyxl, .xls via xlrd) and CSV (max 10MB)
"""

import io
import logging
from typing import Dict, List, Tuple

import pandas as pd
from fastapi import UploadFile

from pms.core.config import get_settings
from pms.core.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

settings = get_settings()

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
ALLOWED_ROSTER_EXTENSIONS = {".xlsx", ".xls", ".csv"}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def read_profile_image(file: UploadFile) -> Tuple[bytes, str, str]:
    """
    Read and validate an uploaded profile image.

    Returns:
        Tuple of (content, filename, content_type)

    Raises:
        ValidationFailed when the file is missing, of the wrong type or too large
    """
    if file is None or not file.filename:
        raise ValidationFailed("No image file provided")

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationFailed("Only JPEG, PNG, and WebP images are allowed")

    content = await file.read()
    max_bytes = settings.max_image_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise ValidationFailed(f"File size too large. Maximum size is {settings.max_image_size_mb}MB.")
    if not content:
        raise ValidationFailed("Uploaded image is empty")

    return content, file.filename, file.content_type


def parse_roster(content: bytes, filename: str) -> List[Dict[str, str]]:
    """
    Parse roster bytes into a list of rows keyed by column header.

    Every cell is read as text; blank cells become "". Fully empty rows are dropped.
    """
    ext = get_file_extension(filename)
    buffer = io.BytesIO(content)
    try:
        if ext == ".csv":
            frame = pd.read_csv(buffer, dtype=str, keep_default_na=False)
        elif ext == ".xlsx":
            frame = pd.read_excel(buffer, dtype=str, keep_default_na=False, engine="openpyxl")
        else:
            frame = pd.read_excel(buffer, dtype=str, keep_default_na=False, engine="xlrd")
    except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
        logger.info("Could not parse roster %s: %s", filename, e)
        raise ValidationFailed(f"Could not read spreadsheet: {e}")

    frame.columns = [str(column).strip() for column in frame.columns]
    rows = frame.to_dict(orient="records")
    return [row for row in rows if any(str(value).strip() for value in row.values())]


async def read_roster(file: UploadFile) -> List[Dict[str, str]]:
    """Validate an uploaded roster file and return its rows."""
    if file is None or not file.filename:
        raise ValidationFailed("No file uploaded")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_ROSTER_EXTENSIONS:
        raise ValidationFailed(
            f"Unsupported file type '{ext}'. Allowed: XLSX, XLS, CSV"
        )

    content = await file.read()
    max_bytes = settings.max_roster_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise ValidationFailed(f"File too large. Maximum size: {settings.max_roster_size_mb}MB")

    rows = parse_roster(content, file.filename)
    if not rows:
        raise ValidationFailed("The uploaded file contains no data rows")
    return rows
