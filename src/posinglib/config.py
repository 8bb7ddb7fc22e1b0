"""Configuration management for posinglib application.

Values are read from environment variables with Streamlit secrets as fallback.
Collaborators (store, identity provider, normalizer) never read the
environment themselves: the app builds one immutable ``AppConfig`` at startup
and passes it into their constructors.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import streamlit as st

from .logging_config import get_logger

logger = get_logger(__name__)

TRUE_VALUES = ("true", "1", "yes", "on")
DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "local")
PRODUCTION_ENVIRONMENTS = ("production", "prod")


def _read_secret(key: str) -> Any:
    try:
        return st.secrets.get(key)
    except Exception:  # nosec B110
        # No secrets.toml outside a configured Streamlit deployment
        return None


def _cast(value: Any, cast_type: type) -> Any:
    if cast_type is bool:
        return value.lower() in TRUE_VALUES if isinstance(value, str) else bool(value)
    if cast_type is str:
        return value
    return cast_type(value)


class Config:
    """Typed, cached lookup of settings from the environment or Streamlit secrets."""

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """
        Look up a setting.

        Args:
            key: Environment variable / secret name
            default: Returned when the key is unset or cannot be cast
            cast_type: str, int, float or bool

        Returns:
            The value cast to ``cast_type``
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key not in self._cache:
            self._cache[cache_key] = self._lookup(key, default, cast_type)
        return self._cache[cache_key]

    def _lookup(self, key: str, default: Any, cast_type: type) -> Any:
        value = os.getenv(key)
        if value is None:
            value = _read_secret(key)
        if value is None:
            return default
        try:
            return _cast(value, cast_type)
        except (TypeError, ValueError) as e:
            logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
            return default

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """
        Look up a setting that has no default.

        Raises:
            ValueError: If the key is unset
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    @property
    def environment(self) -> str:
        return str(self.get("ENVIRONMENT", "development")).lower()

    def is_development(self) -> bool:
        return self.environment in DEVELOPMENT_ENVIRONMENTS

    def is_production(self) -> bool:
        return self.environment in PRODUCTION_ENVIRONMENTS

    def clear_cache(self):
        self._cache.clear()


@dataclass(frozen=True)
class AppConfig:
    """Explicit settings handed to the store, identity provider and normalizer."""

    app_id: str = "default-app-id"
    data_dir: Path = Path("/tmp/posinglib")  # nosec B108
    initial_auth_token: str | None = None
    gcs_database_bucket: str | None = None
    gcp_project_id: str | None = None
    max_record_bytes: int = 1_048_576
    max_batch_size: int = 10
    max_image_dimension: int = 1600
    max_payload_bytes: int = 1_000_000
    max_file_size: int = 50 * 1024 * 1024
    normalizer_workers: int = 4
    write_workers: int = 4
    environment: str = "development"

    @property
    def backup_enabled(self) -> bool:
        """Whether database files are mirrored to Cloud Storage."""
        return bool(self.gcs_database_bucket)

    @classmethod
    def from_env(cls, config: Config | None = None) -> "AppConfig":
        """Build settings from environment variables / Streamlit secrets."""
        config = config or get_config()
        defaults = cls()
        return cls(
            app_id=config.get("APP_ID", defaults.app_id),
            data_dir=Path(config.get("DATA_DIR", str(defaults.data_dir))),
            initial_auth_token=config.get("INITIAL_AUTH_TOKEN") or None,
            gcs_database_bucket=config.get("GCS_DATABASE_BUCKET") or None,
            gcp_project_id=config.get("GOOGLE_CLOUD_PROJECT") or None,
            max_record_bytes=config.get("MAX_RECORD_BYTES", defaults.max_record_bytes, int),
            max_batch_size=config.get("MAX_BATCH_SIZE", defaults.max_batch_size, int),
            max_image_dimension=config.get("MAX_IMAGE_DIMENSION", defaults.max_image_dimension, int),
            max_payload_bytes=config.get("MAX_RECORD_PAYLOAD_BYTES", defaults.max_payload_bytes, int),
            max_file_size=config.get("MAX_FILE_SIZE", defaults.max_file_size, int),
            normalizer_workers=config.get("NORMALIZER_WORKERS", defaults.normalizer_workers, int),
            write_workers=config.get("WRITE_WORKERS", defaults.write_workers, int),
            environment=config.get("ENVIRONMENT", defaults.environment),
        )


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
