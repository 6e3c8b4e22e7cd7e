"""Configuration management for the photo edit service."""

import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from dotenv import load_dotenv

from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_CONFIG_PATH = Path("config/photo_edit.yaml")


class Config(BaseModel):
    """Main application configuration.

    Values come from an optional YAML file (same upper-case keys as the
    environment) overlaid by environment variables.
    """
    model_config = ConfigDict(populate_by_name=True)

    # API Keys
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY", "gemini_api_key"),
    )

    # Models
    edit_model: str = Field(default="gemini-2.5-flash-image-preview", alias="EDIT_MODEL")
    text_model: str = Field(default="gemini-2.5-flash", alias="TEXT_MODEL")

    # Retry policy
    max_attempts: int = Field(default=3, ge=1, alias="MAX_ATTEMPTS")
    retry_base_delay_seconds: float = Field(default=1.0, ge=0.0, alias="RETRY_BASE_DELAY_SECONDS")
    attempt_timeout_seconds: Optional[float] = Field(default=None, gt=0.0, alias="ATTEMPT_TIMEOUT_SECONDS")

    # Timeout Settings
    http_timeout_seconds: float = Field(default=120.0, gt=0.0, alias="HTTP_TIMEOUT_SECONDS")

    # Custom transport settings record
    settings_path: Path = Field(default=Path("config/api_settings.json"), alias="API_SETTINGS_PATH")

    # Application Settings
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    def require_gemini_api_key(self) -> str:
        """Return the Gemini key or fail; only the default transport needs it."""
        if not self.gemini_api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY is not set and no custom endpoint is configured"
            )
        return self.gemini_api_key


# Global config instance
_config: Optional[Config] = None


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.info(f"No config file at {path}, using environment only")
        return {}

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at top level")
    return data


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load configuration from environment and an optional YAML file.

    Args:
        path: YAML file to read; falls back to $PHOTO_EDIT_CONFIG,
            then config/photo_edit.yaml

    Returns:
        Config instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config

    config_path = Path(path or os.getenv("PHOTO_EDIT_CONFIG") or DEFAULT_CONFIG_PATH)

    try:
        config_data = {
            **_read_yaml(config_path),
            **os.environ,
        }
        _config = Config(**config_data)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e

    logger.info(
        "Configuration loaded successfully",
        extra={
            "environment": _config.app_env,
            "edit_model": _config.edit_model,
            "text_model": _config.text_model,
            "max_attempts": _config.max_attempts,
            "gemini_key_present": bool(_config.gemini_api_key),
        }
    )

    return _config


def get_config() -> Config:
    """
    Get the current configuration instance.

    Raises:
        ConfigurationError: If config not loaded
    """
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config
