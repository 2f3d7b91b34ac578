"""
Configuration Management for the Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (CSV parsing and advice)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=4096,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    parse_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Temperature for CSV parsing (lower = more deterministic)"
    )
    advice_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Temperature for the financial advice chat"
    )


class AlphaVantageSettings(BaseSettings):
    """Alpha Vantage quote service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ALPHAVANTAGE_",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Alpha Vantage API key (free tier: 25 requests/day)"
    )
    endpoint: str = Field(
        default="https://www.alphavantage.co/query",
        description="Alpha Vantage REST endpoint"
    )
    batch_delay_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Pause between tickers in a batch refresh"
    )
    lookup_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause between the symbol search and the quote call"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="HTTP timeout per request"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets blob storage configuration."""

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
        description="ID of the Google Sheets spreadsheet to use"
    )
    data_sheet_name: str = Field(
        default="FinanceData",
        description="Name of the key/value worksheet"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the audit log worksheet"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Storage
    storage_backend: Literal["memory", "file", "sheets"] = Field(
        default="file",
        description="Where the state blob is kept"
    )
    data_dir: Path = Field(
        default=Path.home() / ".finance-tracker",
        description="Directory used by the file backend"
    )
    data_key: str = Field(
        default="finance-tracker-data",
        description="Blob key of the main application state"
    )
    settings_key: str = Field(
        default="finance-tracker-settings",
        description="Blob key of the user settings"
    )
    legacy_budgets_key: str = Field(
        default="budget-tracker-data",
        description="Budgets-only blob written by older versions"
    )
    legacy_active_id_key: str = Field(
        default="budget-tracker-active-id",
        description="Active budget id written by older versions"
    )

    # Validation thresholds
    max_expense_amount: float = Field(
        default=1000000.0,
        description="Maximum reasonable single expense (for sanity checking)"
    )
    net_worth_precision: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places used when comparing net-worth snapshots"
    )


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def alpha_vantage(self) -> AlphaVantageSettings:
        return AlphaVantageSettings()

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

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks. Google Sheets is only checked when it is
    the configured storage backend.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    try:
        _ = settings.gemini
        results["gemini"] = True
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        results["alpha_vantage"] = settings.alpha_vantage.api_key is not None
        if not results["alpha_vantage"]:
            results["alpha_vantage_error"] = "ALPHAVANTAGE_API_KEY is not set"
    except Exception as e:
        results["alpha_vantage"] = False
        results["alpha_vantage_error"] = str(e)

    if results.get("app") and settings.app.storage_backend == "sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
