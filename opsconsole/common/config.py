"""
Console Settings

Settings are read from OPSCONSOLE_* environment variables (and a .env file),
optionally overridden by a YAML config file.
"""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError
from .logging_setup import get_service_logger

logger = get_service_logger("config")

# Fixed key of the singleton maintenance document
MAINTENANCE_DOCUMENT_ID = "maintenance"

# Refresh period of the admin stats panel
DEFAULT_STATS_INTERVAL_SECONDS = 60


class ConsoleSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Create a .env file with:
    - OPSCONSOLE_SUPABASE_URL=https://xxx.supabase.co
    - OPSCONSOLE_SUPABASE_KEY=your-anon-or-service-key
    - OPSCONSOLE_STATS_BASE_URL=https://admin.example.com
    """

    model_config = SettingsConfigDict(
        env_prefix="OPSCONSOLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Remote document store
    supabase_url: str = ""
    supabase_key: str = ""
    maintenance_table: str = "settings"
    maintenance_schema: str = "public"
    maintenance_document_id: str = MAINTENANCE_DOCUMENT_ID

    # Stats backend
    stats_base_url: str = ""
    stats_endpoint: str = "/api/admin/system-stats"
    stats_interval_seconds: float = DEFAULT_STATS_INTERVAL_SECONDS
    stats_timeout_seconds: float = 10.0
    stats_token: str = ""

    # HTTP adapter
    api_host: str = "127.0.0.1"
    api_port: int = 8090
    # Comma-separated list
    allowed_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def origins(self) -> list[str]:
        """Allowed CORS origins as a list"""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_settings(config_path: str | Path | None = None) -> ConsoleSettings:
    """
    Load settings, letting top-level keys of a YAML file override the environment.

    Args:
        config_path: Optional path to a YAML config file

    Returns:
        ConsoleSettings instance

    Raises:
        ConfigError: If the file cannot be parsed or is not a mapping
    """
    if config_path is None:
        return ConsoleSettings()

    path = Path(config_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Config file not found: {path}")
        return ConsoleSettings()
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing {path}: {e}") from e

    if not isinstance(overrides, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    logger.info(f"Loaded configuration from {path}", extra={"keys": sorted(overrides)})
    return ConsoleSettings(**overrides)


@lru_cache()
def get_settings() -> ConsoleSettings:
    """Get cached settings."""
    return ConsoleSettings()
