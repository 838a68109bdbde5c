import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when required configuration is missing."""


class Config(BaseModel):
    token: Optional[str] = None


class Settings(BaseSettings):
    """Process configuration read from the environment (and `.env`)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    raindrop_access_token: Optional[str] = Field(default=None, validation_alias="RAINDROP_ACCESS_TOKEN")
    host: str = Field(default="127.0.0.1", validation_alias="HOST")
    port: int = Field(default=3002, validation_alias="PORT")
    rate_limit_window_ms: int = Field(default=60000, gt=0, validation_alias="RATE_LIMIT_WINDOW_MS")
    rate_limit_max_requests: int = Field(default=120, gt=0, validation_alias="RATE_LIMIT_MAX_REQUESTS")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    json_response: bool = Field(default=False, validation_alias="MCP_JSON_RESPONSE")

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000


CONFIG_DIR = Path.home() / ".config" / "raindrop-mcp"
CONFIG_FILE = CONFIG_DIR / "config.json"


def load_config() -> Config:
    """Load the stored credential from disk."""
    if not CONFIG_FILE.exists():
        return Config()
    try:
        with open(CONFIG_FILE, "r") as f:
            return Config.model_validate(json.load(f))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", CONFIG_FILE, e)
        return Config()


def save_config(config: Config) -> None:
    """Save configuration to disk with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    # Set directory permissions to 700 (drwx------)
    CONFIG_DIR.chmod(0o700)

    # Create file with 600 permissions (rw-------)
    if not CONFIG_FILE.exists():
        CONFIG_FILE.touch(mode=0o600)
    else:
        CONFIG_FILE.chmod(0o600)

    with open(CONFIG_FILE, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def delete_config() -> None:
    """Delete the configuration file."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()


def load_settings() -> Settings:
    """Read settings, falling back to the stored token when the environment has none."""
    settings = Settings()
    if not settings.raindrop_access_token:
        stored = load_config().token
        if stored:
            settings = settings.model_copy(update={"raindrop_access_token": stored})
    return settings


def require_token(settings: Settings) -> str:
    if not settings.raindrop_access_token:
        raise ConfigError(
            "RAINDROP_ACCESS_TOKEN is required. Set it in the environment or run `raindrop-mcp login`."
        )
    return settings.raindrop_access_token
