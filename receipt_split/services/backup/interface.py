"""
Abstract Image Backup Interface

The receipt photo is backed up before its rows are exported, and the
identifier the backup returns is written next to those rows.
"""

from abc import ABC, abstractmethod


class BackupError(Exception):
    """Base exception for image backup errors."""
    pass


class ImageBackupInterface(ABC):
    """Abstract interface for receipt image backup."""

    @abstractmethod
    async def upload(self, image_bytes: bytes, filename: str) -> str:
        """
        Store a receipt image.

        Args:
            image_bytes: Raw image content
            filename: Generated name, e.g. receipt-20240315-142530.jpg

        Returns:
            Opaque file identifier

        Raises:
            BackupError: If the upload fails
        """
        pass
