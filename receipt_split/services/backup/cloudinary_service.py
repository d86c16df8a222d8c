"""
Receipt Image Backup using Cloudinary

DESIGN DECISION: Receipt photos go to Cloudinary because:
1. Reliable cloud storage with a free tier sufficient for a household
2. Simple upload API that accepts raw bytes
3. The returned public id is stable and short enough for a sheet cell

The image is stored as uploaded, with no transformations. The public id
is derived from the generated backup filename, so the sheet row and the
stored image share the same timestamp.
"""

from pathlib import PurePath
from typing import Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from tenacity import retry, stop_after_attempt, wait_exponential

from receipt_split.config import AppSettings, CloudinarySettings, get_settings
from receipt_split.services.backup.interface import BackupError, ImageBackupInterface


class ImageTooLargeError(BackupError):
    """Image exceeds the configured upload size."""
    pass


class UnsupportedImageFormatError(BackupError):
    """Image extension is not one of the supported formats."""
    pass


class CloudinaryImageBackup(ImageBackupInterface):
    """
    Backs up receipt images to Cloudinary.

    Flow:
    1. Check size and format against the app settings
    2. Upload the raw bytes under <folder>/<filename without extension>
    3. Return the public id Cloudinary assigned
    """

    def __init__(
        self,
        settings: Optional[CloudinarySettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().cloudinary
        self._app_settings = app_settings or get_settings().app
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def check_image(self, image_bytes: bytes, filename: str) -> None:
        """
        Reject images the backup would refuse.

        Raises:
            ImageTooLargeError: If the image is over the size limit
            UnsupportedImageFormatError: If the extension is not supported
        """
        if not image_bytes:
            raise BackupError("Image is empty")

        if len(image_bytes) > self._app_settings.max_upload_size_bytes:
            raise ImageTooLargeError(
                f"Image is {len(image_bytes)} bytes; the limit is "
                f"{self._app_settings.max_upload_size_mb} MB"
            )

        extension = PurePath(filename).suffix.lstrip(".").lower()
        if extension not in self._app_settings.supported_formats_list:
            raise UnsupportedImageFormatError(
                f"Unsupported image format: {extension or 'none'}. "
                f"Supported: {', '.join(self._app_settings.supported_formats_list)}"
            )

    async def upload(self, image_bytes: bytes, filename: str) -> str:
        """
        Upload a receipt image.

        Args:
            image_bytes: Raw image bytes
            filename: Generated backup filename

        Returns:
            Cloudinary public id of the stored image

        Raises:
            BackupError: If the image is rejected or the upload fails
        """
        self.check_image(image_bytes, filename)
        return await self._upload(image_bytes, filename)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _upload(self, image_bytes: bytes, filename: str) -> str:
        self._configure()

        try:
            result = cloudinary.uploader.upload(
                image_bytes,
                public_id=PurePath(filename).stem,
                folder=self._settings.folder,
                resource_type="image",
                overwrite=False,
            )
        except CloudinaryError as e:
            raise BackupError(f"Cloudinary error: {e}")

        file_id = result.get("public_id")
        if not file_id:
            raise BackupError("No public id returned from Cloudinary")
        return file_id
