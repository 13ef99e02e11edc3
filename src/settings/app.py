"""Application settings powered by Pydantic BaseSettings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.observability.logging import parse_log_level
from src.rankset.persistence import SaveFormat
from src.rankset.selection import PairStrategy


class AppSettings(BaseSettings):
    """Centralized environment configuration for the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    strategy: PairStrategy = Field(
        default=PairStrategy.MIN_EQUAL, validation_alias="RANKVOTE_STRATEGY"
    )
    save_format: SaveFormat = Field(
        default=SaveFormat.JSON, validation_alias="RANKVOTE_FORMAT"
    )
    seed: int | None = Field(default=None, validation_alias="RANKVOTE_SEED")
    json_logs: bool = Field(default=False, validation_alias="RANKVOTE_JSON_LOGS")
    log_level: str = Field(default="WARNING", validation_alias="RANKVOTE_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Reject level names the logging module does not know."""
        parse_log_level(v)
        return v.upper()

    @property
    def log_level_value(self) -> int:
        """Numeric logging level."""
        return parse_log_level(self.log_level)


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
