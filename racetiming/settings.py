import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils import parse_comma_list


class Settings(BaseSettings):
    """Runtime configuration, read from ``RT_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Sessions and the bootstrap admin (created at startup when both are set)
    RT_SECRET_KEY: str = "dev-secret-change-me"
    RT_SESSION_MAX_AGE: int = Field(default=60 * 60 * 24 * 14, gt=0)
    RT_ADMIN_EMAIL: str = ""
    RT_ADMIN_PASSWORD: str = ""

    RT_DB_URL: str = "sqlite:///./race_timing.db"

    # Race event listing
    RT_PAGE_SIZE: int = Field(default=20, ge=1)
    RT_MAX_PAGE_SIZE: int = Field(default=100, ge=1)
    RT_CORS_ORIGINS: str = "*"

    RT_LOG_LEVEL: str = "INFO"

    @field_validator("RT_LOG_LEVEL")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def cors_origins(self) -> list[str]:
        return parse_comma_list(self.RT_CORS_ORIGINS) or ["*"]


settings = Settings()
