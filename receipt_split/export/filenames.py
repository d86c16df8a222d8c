"""
Backup filename generation.

Receipt images are backed up as receipt-<YYYYMMDD-HHMMSS>.<ext>, stamped
in UTC. The extension comes from the uploaded file's name when it has
one, otherwise from the image content, otherwise jpg.
"""

from datetime import datetime, timezone
from io import BytesIO
from pathlib import PurePath
from typing import Optional

from PIL import Image, UnidentifiedImageError


DEFAULT_EXTENSION = "jpg"

# Pillow format names that differ from the usual file extension
_FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "MPO": "jpg",
    "TIFF": "tif",
}


def sniff_extension(image_bytes: bytes) -> Optional[str]:
    """File extension for the image format Pillow detects, if any."""
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError):
        return None
    if not image_format:
        return None
    return _FORMAT_EXTENSIONS.get(image_format, image_format.lower())


def _name_extension(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    suffix = PurePath(filename).suffix.lstrip(".").lower()
    if suffix == "jpeg":
        return "jpg"
    return suffix or None


def generate_receipt_filename(
    original_filename: Optional[str] = None,
    image_bytes: Optional[bytes] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Build the backup filename for a receipt image.

    Args:
        original_filename: Name of the uploaded file, if known
        image_bytes: Image content, used when the name has no extension
        now: Timestamp to use; defaults to the current UTC time.
             Aware datetimes are converted to UTC.

    Returns:
        e.g. "receipt-20240315-142530.png"
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)

    extension = _name_extension(original_filename)
    if extension is None and image_bytes:
        extension = sniff_extension(image_bytes)

    return f"receipt-{now:%Y%m%d-%H%M%S}.{extension or DEFAULT_EXTENSION}"
