"""
Configuration Management for FairShare

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Participant defaults, the settlement threshold and the storage backend
are all read from the environment (or a .env file) in one place.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Defaults used by the aggregation core."""

    model_config = SettingsConfigDict(
        env_prefix="FAIRSHARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    participant_a: str = Field(
        default="User A",
        min_length=1,
        description="First participant (position A)"
    )
    participant_b: str = Field(
        default="User B",
        min_length=1,
        description="Second participant (position B)"
    )
    settled_epsilon: float = Field(
        default=0.01,
        ge=0.0,
        description="Settlement amounts at or below this are shown as settled"
    )
    default_category: str = Field(
        default="Other",
        min_length=1,
        description="Category used when an expense has none"
    )
    fallback_color: str = Field(
        default="#94a3b8",
        description="Swatch used for categories missing from the catalog"
    )

    @field_validator("participant_a", "participant_b", "default_category")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v

    @property
    def participant_names(self) -> tuple[str, str]:
        return (self.participant_a, self.participant_b)


class StorageSettings(BaseSettings):
    """Which persistence backend the flows talk to."""

    model_config = SettingsConfigDict(
        env_prefix="FAIRSHARE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "json", "sheets"] = Field(
        default="json",
        description="Storage backend"
    )
    data_dir: str = Field(
        default="./data",
        description="Directory for the JSON backend"
    )
    expenses_key: str = Field(
        default="fairshare_expenses_v1",
        description="Document name for expenses"
    )
    categories_key: str = Field(
        default="fairshare_categories_v1",
        description="Document name for categories"
    )
    participants_key: str = Field(
        default="fairshare_usernames_v1",
        description="Document name for the participant pair"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expenses"
    )
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for categories"
    )
    participants_sheet_name: str = Field(
        default="Participants",
        description="Name of the sheet for the participant pair"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    log_level: str = Field(
        default="INFO",
        description="Root log level for structlog output"
    )

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper()


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

    # Sub-settings are loaded lazily so a missing Sheets config
    # doesn't block the local backends.

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each section that failed.
    Google Sheets is only checked when it is the configured backend.
    """
    results = {}
    settings = get_settings()

    def check(name: str) -> None:
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    for name in ("ledger", "storage", "app"):
        check(name)

    if results["storage"] and settings.storage.backend == "sheets":
        check("google_sheets")

    return results
