"""
Configuration Management for Cashbook

Everything is read from environment variables (CASHBOOK_* for the
storage and recurrence groups) or a .env file.

DESIGN DECISION: Settings are grouped by concern.
Where data lives and how far ahead recurring rules are materialized
are both decided at startup and validated once.
"""

from datetime import timezone, tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA zone name; 'UTC' never depends on tzdata."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class StorageSettings(BaseSettings):
    """Local snapshot and audit log locations."""

    model_config = SettingsConfigDict(
        env_prefix="CASHBOOK_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".cashbook",
        description="Directory holding the snapshot and the audit log"
    )
    snapshot_file_name: str = Field(
        default="accounts.json",
        min_length=1,
        description="File name of the accounts snapshot"
    )
    audit_file_name: str = Field(
        default="audit.jsonl",
        min_length=1,
        description="File name of the append-only audit log"
    )

    @property
    def snapshot_path(self) -> Path:
        return self.data_dir / self.snapshot_file_name

    @property
    def audit_path(self) -> Path:
        return self.data_dir / self.audit_file_name


class RecurrenceSettings(BaseSettings):
    """Recurrence engine policy."""

    model_config = SettingsConfigDict(
        env_prefix="CASHBOOK_RECURRENCE_",
        extra="ignore"
    )

    horizon_months: int = Field(
        default=1,
        ge=1,
        le=12,
        description="How many months ahead occurrences are materialized"
    )
    timezone: str = Field(
        default="UTC",
        description="IANA time zone used to decide which calendar day 'now' falls on"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown zone names at startup rather than mid-run."""
        try:
            resolve_timezone(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @property
    def tzinfo(self) -> tzinfo:
        return resolve_timezone(self.timezone)


class AppSettings(BaseSettings):
    """
    Process-wide switches, read from the environment and .env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local structured logs"
    )


class Settings(BaseSettings):
    """
    Entry point to every settings group.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are built on access so a bad group
    # only fails the component that needs it

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def recurrence(self) -> RecurrenceSettings:
        return RecurrenceSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Settings singleton. Tests that change the environment call
    get_settings.cache_clear() afterwards.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Build every settings group and report which ones fail validation.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the failures.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "recurrence", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
