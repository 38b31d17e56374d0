from pydantic import field_validator
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

logger = logging.getLogger(__name__)

DEFAULT_DAILY_CAP = 1000
DEFAULT_MAX_TOKENS = 300


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "HLR Lookup Assistant Gateway"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Model settings
    MODEL: str = "@cf/meta/llama-3.1-8b-instruct"
    MAX_TOKENS: int = DEFAULT_MAX_TOKENS
    ASSISTANT_SYSTEM_PROMPT: str = (
        'You are "HLR Lookup Assistant". Be concise.\n'
        "- Provide runnable curl when asked.\n"
        "- Ask for missing required params.\n"
        "- Stay on HLR Lookup docs/API topics.\n"
    )

    # Admission control
    DAILY_CAP: int = DEFAULT_DAILY_CAP
    ALLOWED_ORIGINS: str = ""
    ALLOW_OFFTOPIC: bool = False
    TIMEZONE: str = "UTC"
    USAGE_STORE_DIR: Optional[Path] = None  # unset keeps usage in memory

    # Direct Workers AI binding
    ACCOUNT_ID: Optional[str] = None
    CF_API_TOKEN: Optional[str] = None
    WORKERS_AI_API_BASE: str = "https://api.cloudflare.com/client/v4"

    # Optional OpenAI-compatible path via AI Gateway
    USE_OPENAI_COMPAT: bool = False
    GATEWAY_URL: Optional[str] = None

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @field_validator("DAILY_CAP", "MAX_TOKENS", mode="before")
    @classmethod
    def _lenient_int(cls, value, info):
        """Fall back to the default when an operator supplies a non-numeric limit."""
        default = DEFAULT_DAILY_CAP if info.field_name == "DAILY_CAP" else DEFAULT_MAX_TOKENS
        if value is None or value == "":
            return default
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Invalid {info.field_name}={value!r}, using {default}")
            return default

    @field_validator("TIMEZONE", mode="before")
    @classmethod
    def _known_timezone(cls, value):
        name = (value or "UTC").strip()
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown TIMEZONE={name!r}, falling back to UTC")
            return "UTC"
        return name


# Create settings instance
settings = Settings()
