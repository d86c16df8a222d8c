"""Image backup services package."""

from receipt_split.services.backup.cloudinary_service import (
    CloudinaryImageBackup,
    ImageTooLargeError,
    UnsupportedImageFormatError,
)
from receipt_split.services.backup.interface import BackupError, ImageBackupInterface

__all__ = [
    "BackupError",
    "CloudinaryImageBackup",
    "ImageBackupInterface",
    "ImageTooLargeError",
    "UnsupportedImageFormatError",
]
