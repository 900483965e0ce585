"""
Configuration module for the Recipe Batch Importer
==================================================

Centralizes configuration for importing recipe records from a local JSON
queue into a Mealie instance.

CONFIGURATION:
- data/config.yaml: User-specific settings (Mealie URL, request timeout)
- data/secrets.yaml: Credentials (mealie token, or email + password)

Environment variables take priority over both files:
    MEALIE_URL, MEALIE_TOKEN, MEALIE_EMAIL, MEALIE_PASSWORD,
    RECIPE_IMPORT_DATA_DIR

Usage:
    from config import load_settings

    settings = load_settings()            # data dir from env or ./data
    settings = load_settings("/tmp/run")  # explicit data dir

    if not settings.has_credentials:
        ...
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# Project root directory (where this file lives)
PROJECT_ROOT = Path(__file__).parent

# Default data directory - pending queue, archives, config and logs
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"

CONFIG_FILENAME = "config.yaml"
SECRETS_FILENAME = "secrets.yaml"

# Queue and archive filenames inside the data directory
RECIPES_FILENAME = "recipes.json"
IMPORTED_FILENAME = "imported.json"
ERRORS_FILENAME = "errors.json"

DEFAULT_MEALIE_URL = "http://localhost:9925"
MEALIE_TIMEOUT = 30  # seconds

LOG_FILENAME = "recipe_import.log"

# Use standard logging for config.py (foundational module)
logger = logging.getLogger(__name__)


@dataclass
class ImporterSettings:
    """Resolved runtime settings for one import run."""
    data_dir: Path
    mealie_url: str = DEFAULT_MEALIE_URL
    mealie_token: Optional[str] = None
    mealie_email: Optional[str] = None
    mealie_password: Optional[str] = None
    timeout: int = MEALIE_TIMEOUT

    @property
    def has_credentials(self) -> bool:
        """True when a token, or both email and password, are configured."""
        if self.mealie_token:
            return True
        return bool(self.mealie_email and self.mealie_password)

    @property
    def recipes_path(self) -> Path:
        return self.data_dir / RECIPES_FILENAME

    @property
    def imported_path(self) -> Path:
        return self.data_dir / IMPORTED_FILENAME

    @property
    def errors_path(self) -> Path:
        return self.data_dir / ERRORS_FILENAME

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"


def resolve_data_dir(data_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Pick the data directory for this run.

    Priority: explicit argument, then RECIPE_IMPORT_DATA_DIR, then ./data
    next to this module.
    """
    if data_dir:
        return Path(data_dir)
    env_dir = os.getenv("RECIPE_IMPORT_DATA_DIR", "").strip()
    if env_dir:
        return Path(env_dir)
    return DEFAULT_DATA_DIR


def load_user_config(data_dir: Path) -> Dict[str, Any]:
    """
    Load user configuration from <data_dir>/config.yaml.

    The file is optional - a missing file yields an empty dict.

    Raises:
        ValueError: If the YAML is invalid or is not a mapping
    """
    config_path = Path(data_dir) / CONFIG_FILENAME
    if not config_path.exists():
        return {}

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(
            f"\n{'='*60}\n"
            f"ERROR: config.yaml has invalid YAML syntax\n"
            f"{'='*60}\n"
            f"File: {config_path}\n"
            f"Error: {e}\n"
            f"{'='*60}"
        ) from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError(
            f"\n{'='*60}\n"
            f"ERROR: config.yaml must contain a mapping\n"
            f"{'='*60}\n"
            f"File: {config_path}\n"
            f"{'='*60}"
        )

    connection = config.get("connection", {})
    if connection is not None and not isinstance(connection, dict):
        raise ValueError(
            f"\n{'='*60}\n"
            f"ERROR: config.yaml connection section must be a mapping\n"
            f"{'='*60}"
        )

    return config


def load_secrets(data_dir: Path) -> Dict[str, Any]:
    """
    Load secrets from <data_dir>/secrets.yaml.

    Returns:
        dict with keys 'mealie_token', 'mealie_email', 'mealie_password'
        (may be None). Returns empty dict if the file doesn't exist.
    """
    secrets_path = Path(data_dir) / SECRETS_FILENAME
    if not secrets_path.exists():
        return {}

    try:
        with open(secrets_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        mealie = data.get('mealie') or {}
        return {
            'mealie_token': mealie.get('token'),
            'mealie_email': mealie.get('email'),
            'mealie_password': mealie.get('password'),
        }
    except (OSError, yaml.YAMLError, AttributeError) as e:
        logger.warning(f"⚠️ Failed to load secrets from {secrets_path}: {e}")
        return {}


def _env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings(data_dir: Optional[Union[str, Path]] = None) -> ImporterSettings:
    """
    Resolve settings for a run.

    Priority order for every value (ENV VAR IS SOURCE OF TRUTH):
    1. Environment variable
    2. data/secrets.yaml (credentials only)
    3. data/config.yaml
    4. Built-in default

    Raises:
        ValueError: If config.yaml is invalid
    """
    resolved_dir = resolve_data_dir(data_dir)
    user_config = load_user_config(resolved_dir)
    secrets = load_secrets(resolved_dir)
    connection = user_config.get("connection") or {}

    timeout = connection.get("timeout", MEALIE_TIMEOUT)
    try:
        timeout = int(timeout)
    except (TypeError, ValueError) as e:
        raise ValueError(f"config.yaml connection.timeout must be an integer, got {timeout!r}") from e

    settings = ImporterSettings(
        data_dir=resolved_dir,
        mealie_url=_env("MEALIE_URL") or connection.get("mealie_url") or DEFAULT_MEALIE_URL,
        mealie_token=_env("MEALIE_TOKEN") or secrets.get('mealie_token'),
        mealie_email=_env("MEALIE_EMAIL") or secrets.get('mealie_email'),
        mealie_password=_env("MEALIE_PASSWORD") or secrets.get('mealie_password'),
        timeout=timeout,
    )

    if settings.mealie_token:
        logger.debug(f"🔑 Using Mealie token (length: {len(settings.mealie_token)})")
    elif settings.has_credentials:
        logger.debug(f"🔑 Using Mealie login for {settings.mealie_email}")

    return settings


def build_logging_config(log_dir: Path) -> Dict[str, Any]:
    """Logging dictConfig for a run writing its log file under log_dir."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "WARNING",
                "formatter": "standard",
                "stream": "ext://sys.stderr"
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "detailed",
                "filename": str(Path(log_dir) / LOG_FILENAME),
                "maxBytes": 10485760,  # 10MB
                "backupCount": 5,
                "encoding": "utf-8"
            }
        },
        "root": {
            "level": "DEBUG",
            "handlers": ["console", "file"]
        }
    }
