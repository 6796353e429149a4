"""Application settings.

All configuration is sourced from environment variables (and optionally `.env`).
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from surveyflow.core.exceptions import ConfigurationError

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseSettings):
    """Typed environment-backed settings for SurveyFlow."""

    model_config = SettingsConfigDict(
        env_prefix="SURVEYFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    json_logs: bool = False

    # Canonical value stored when a respondent picks the open-ended option.
    other_option_value: str = Field(default="other", min_length=1)
    # Label used for that option when the node does not define `otherLabel`.
    default_other_label: str = Field(default="Other", min_length=1)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process.

    Raises:
        ConfigurationError: If an environment value is invalid.
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid SurveyFlow settings: {e}",
            context={"fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
        ) from e
