"""Process settings for notice-mcp"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from NOTICE_MCP_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="NOTICE_MCP_",
        env_file=".env",
        extra="ignore",
    )

    # Backend configuration file (TOML)
    CONFIG_PATH: str = "config.toml"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None
