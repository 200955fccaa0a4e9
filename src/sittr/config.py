"""
Configuration loader for the Sittr maintenance service.
Loads configuration from YAML files and environment variables.
"""

from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Optional
import logging
import os

import yaml
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)


class SittrConfig(BaseModel):
    """Main maintenance service configuration."""

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    # Trigger authentication (empty rejects every trigger)
    cron_secret: str = ""

    # Entity store
    database_type: str = "sqlite"  # or "supabase"
    database_path: str = "sittr.db"

    # Object storage
    storage_type: str = "local"  # or "supabase"
    storage_bucket: str = "pet-images"
    local_storage_path: str = "./uploads"

    # Job policy
    invite_code_ttl_days: int = 30
    notification_retention_days: int = 90
    image_grace_period_hours: int = 2
    due_soon_window_hours: int = 6
    birthday_timezone: str = "UTC"

    # Execution
    job_workers: int = 4
    job_lock_ttl_seconds: int = 600
    reconcile_retries: int = 2
    scheduler_enabled: bool = True

    class Config:
        extra = "ignore"

    @field_validator("job_workers")
    @classmethod
    def _positive_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("job_workers must be at least 1")
        return value

    @field_validator("birthday_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {value}") from e
        return value

    @property
    def invite_code_ttl(self) -> timedelta:
        return timedelta(days=self.invite_code_ttl_days)

    @property
    def notification_retention(self) -> timedelta:
        return timedelta(days=self.notification_retention_days)

    @property
    def image_grace_period(self) -> timedelta:
        return timedelta(hours=self.image_grace_period_hours)

    @property
    def due_soon_window(self) -> timedelta:
        return timedelta(hours=self.due_soon_window_hours)

    @property
    def job_lock_ttl(self) -> timedelta:
        return timedelta(seconds=self.job_lock_ttl_seconds)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# config key -> (env var, parser)
ENV_OVERRIDES: Dict[str, tuple] = {
    "environment": ("SITTR_ENV", str),
    "log_level": ("LOG_LEVEL", str),
    "cron_secret": ("CRON_SECRET", str),
    "database_type": ("DATABASE_TYPE", str),
    "database_path": ("SITTR_DB_PATH", str),
    "storage_type": ("STORAGE_TYPE", str),
    "storage_bucket": ("STORAGE_BUCKET", str),
    "local_storage_path": ("LOCAL_STORAGE_PATH", str),
    "invite_code_ttl_days": ("INVITE_CODE_TTL_DAYS", int),
    "notification_retention_days": ("NOTIFICATION_RETENTION_DAYS", int),
    "image_grace_period_hours": ("IMAGE_GRACE_PERIOD_HOURS", int),
    "due_soon_window_hours": ("DUE_SOON_WINDOW_HOURS", int),
    "birthday_timezone": ("BIRTHDAY_TIMEZONE", str),
    "job_workers": ("JOB_WORKERS", int),
    "job_lock_ttl_seconds": ("JOB_LOCK_TTL_SECONDS", int),
    "reconcile_retries": ("RECONCILE_RETRIES", int),
    "scheduler_enabled": ("SCHEDULER_ENABLED", _as_bool),
}


class ConfigLoader:
    """Load and manage the service configuration."""

    def __init__(self, config_dir: str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing config files
        """
        self.config_dir = Path(config_dir)
        self.config: Optional[SittrConfig] = None
        self.load()

    def load(self) -> SittrConfig:
        """Load configuration from YAML and environment variables."""

        # Determine which config file to load
        env = os.getenv("SITTR_ENV", "development")
        config_file = self.config_dir / f"{env}.yaml"

        # Load default config first
        merged = self._load_yaml(self.config_dir / "default.yaml")

        # Override with environment-specific config
        if config_file.exists():
            merged.update(self._load_yaml(config_file))
        else:
            logger.debug(f"Config file not found: {config_file}, using defaults")

        # Override with environment variables
        merged.update(self._load_from_env())

        self.config = SittrConfig(**merged)
        logger.info(
            f"Configuration loaded (environment: {self.config.environment}, "
            f"database: {self.config.database_type}, storage: {self.config.storage_type})"
        )
        if not self.config.cron_secret:
            logger.warning("CRON_SECRET is not set - every cron trigger will be rejected")
        return self.config

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML config file."""
        if not path.exists():
            return {}

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
                return data or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load YAML config {path}: {e}")
            return {}

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}
        for key, (env_var, parse) in ENV_OVERRIDES.items():
            raw = os.getenv(env_var)
            if raw is None or raw == "":
                continue
            config[key] = parse(raw)
        return config

    def get(self) -> SittrConfig:
        """Get current configuration."""
        if not self.config:
            self.load()
        return self.config


# Global config instance
_global_config_loader: Optional[ConfigLoader] = None


def get_config() -> SittrConfig:
    """Get the global service configuration."""
    global _global_config_loader
    if _global_config_loader is None:
        _global_config_loader = ConfigLoader(os.getenv("SITTR_CONFIG_DIR", "config"))
    return _global_config_loader.get()

