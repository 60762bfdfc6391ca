"""
Configuration Management for the Deployment Financial Lifecycle Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable thresholds live here rather than as literals
inside the calculators. The calculators take these values as parameters,
so tests can pin them and deployments can override them via env vars.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LifecycleSettings(BaseSettings):
    """Phase windows and projection thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOYMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Phase windows (days)
    pre_deployment_window_days: int = Field(
        default=90,
        ge=0,
        description="Days before departure that count as pre-deployment"
    )
    redeployment_window_days: int = Field(
        default=30,
        ge=0,
        description="Days before expected return that count as redeployment"
    )
    post_deployment_window_days: int = Field(
        default=90,
        ge=0,
        description="Days after actual return that count as post-deployment"
    )

    # Projection parameters
    days_per_month: int = Field(
        default=30,
        ge=1,
        description="Day count used to convert durations into months"
    )
    on_track_threshold: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Fraction of expected progress that still counts as on track"
    )
    default_tax_rate: float = Field(
        default=0.22,
        ge=0.0,
        le=1.0,
        description="Marginal tax rate used for CZTE savings estimates"
    )
    initial_expense_ratio: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Starting estimate of deployment expenses as a share of baseline"
    )


class StorageSettings(BaseSettings):
    """Persistence backend selection."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["json", "sheets", "memory"] = Field(
        default="json",
        description="Which state storage backend to use"
    )
    state_file_path: Path = Field(
        default=Path("data/deployment_state.json"),
        description="Location of the JSON state file (json backend)"
    )
    state_key: str = Field(
        default="securepoint-deployment",
        min_length=1,
        description="Key the engine state blob is stored under"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets state backend configuration."""

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
    state_sheet_name: str = Field(
        default="EngineState",
        description="Name of the worksheet holding serialized engine state"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the worksheet for audit events"
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

    # Sub-settings load lazily so a missing Sheets config
    # doesn't prevent running on the local JSON backend.

    @property
    def lifecycle(self) -> LifecycleSettings:
        return LifecycleSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


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

    Returns a dict of {setting_name: is_valid}, plus an "<name>_error"
    entry for each section that failed to load.
    """
    results = {}

    settings = get_settings()

    for name in ("lifecycle", "storage", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
