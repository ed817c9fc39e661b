"""
Configuration Management for TripSplit

Settings come from environment variables (and .env) through pydantic-settings.

Every configurable value lives in this module.
The settlement core only needs the tolerance and the default currency;
everything else configures the collaborators around it (storage,
payment-request delivery).
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Where trips, participants, expenses and audit events are stored."""

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
    trips_sheet_name: str = Field(
        default="Trips",
        description="Name of the sheet for trips"
    )
    participants_sheet_name: str = Field(
        default="Participants",
        description="Name of the sheet for trip participants"
    )
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expenses"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing file only warns; secrets are often mounted after start-up."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class NotificationSettings(BaseSettings):
    """Payment-request function configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    function_url: str = Field(
        ...,
        description="URL of the send-expense-request function"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer key sent with each request"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="HTTP timeout per attempt"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Delivery attempts before giving up"
    )


class ResendSettings(BaseSettings):
    """Resend email API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RESEND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Resend API key"
    )
    from_address: str = Field(
        default="TripSplit <onboarding@resend.dev>",
        description="Sender shown on payment-request emails"
    )
    api_url: str = Field(
        default="https://api.resend.com/emails",
        description="Resend send-email endpoint"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Settlement tolerance, validation limits and environment flags.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Settlement
    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency used when a trip does not specify one"
    )
    settlement_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        le=1,
        description="Balances and transfers below this are treated as settled"
    )

    # Validation thresholds
    max_expense_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Maximum reasonable expense amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future an expense date can be"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Entry point to every settings section.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def notifications(self) -> NotificationSettings:
        return NotificationSettings()

    @property
    def resend(self) -> ResendSettings:
        return ResendSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings instance.

    get_settings.cache_clear() forces a reload.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load each settings section.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the sections that failed.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "notifications": lambda: settings.notifications,
        "resend": lambda: settings.resend,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
