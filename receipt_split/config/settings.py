"""
Configuration Management for Receipt Split

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Household policy lives here, not in code.
The housemate roster and the default tax rate differ from one
deployment to the next, so they are read from the environment
and injected into the calculation layer.
"""

from decimal import Decimal
from functools import cached_property, lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HouseholdSettings(BaseSettings):
    """Household roster and money-handling policy."""

    model_config = SettingsConfigDict(
        env_prefix="HOUSEHOLD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    participants: str = Field(
        default="",
        description="Comma-separated, ordered list of housemates"
    )
    default_tax_rate: Decimal = Field(
        default=Decimal("13"),
        ge=0,
        le=100,
        description="Tax percentage backfilled when OCR finds no tax line"
    )
    money_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Allowed difference between computed and reported totals"
    )
    tax_allocation: Literal["subtotal", "taxable"] = Field(
        default="subtotal",
        description=(
            "Basis used to spread tax over items when splitting per item: "
            "every item's share of the subtotal, or taxable items only"
        )
    )

    @field_validator('participants')
    @classmethod
    def strip_participants(cls, v: str) -> str:
        return ",".join(name.strip() for name in v.split(",") if name.strip())

    @property
    def participant_list(self) -> list[str]:
        """Get the roster as an ordered list without duplicates."""
        seen: list[str] = []
        for name in self.participants.split(","):
            if name and name not in seen:
                seen.append(name)
        return seen


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets export configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the shared expense spreadsheet"
    )

    # Sheet names within the spreadsheet
    expenses_sheet_name: str = Field(
        default="Sheet1",
        description="Name of the sheet receiving expense rows"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before exporting receipts."
            )
        return v


class CloudinarySettings(BaseSettings):
    """Cloudinary receipt image backup configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    folder: str = Field(
        default="receipts",
        description="Folder that receives receipt image backups"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum receipt image size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp,heic",
        description="Comma-separated list of supported image formats"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the calculation layer works
    # without any external service configured. The household group is
    # read on every calculation, so it is loaded once.

    @cached_property
    def household(self) -> HouseholdSettings:
        return HouseholdSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("household", "google_sheets", "cloudinary", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    if results.get("household") and not settings.household.participant_list:
        results["household"] = False
        results["household_error"] = "HOUSEHOLD_PARTICIPANTS is empty"

    return results
