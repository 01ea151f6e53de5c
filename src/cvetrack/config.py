"""
Configuration management for cvetrack.

Supports multiple configuration sources in order of priority:
1. Environment variables (highest priority)
2. Project .env file (.cvetrack/.env in the working directory)
3. Global config file (~/.cvetrack/config.yml)
4. Default values (lowest priority)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ENV_KEYS = (
    "CVETRACK_DB_URL",
    "CVETRACK_DATA_DIR",
    "CVETRACK_WORKERS",
    "CVETRACK_UPSERT_POLICY",
    "CVETRACK_RULES_DIR",
    "CVETRACK_REMOTE_BASE_URL",
    "CVETRACK_VERBOSE",
)

UPSERT_POLICIES = ("merge", "replace")
DEFAULT_REMOTE_BASE_URL = "https://raw.githubusercontent.com/CVEProject/cvelistV5/main/cves"


def global_config_dir() -> Path:
    """Return the global ~/.cvetrack directory."""
    return Path.home() / ".cvetrack"


def load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from .env file."""
    env_vars = {}
    if env_path.exists():
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    # Remove quotes if present
                    value = value.strip().strip("\"'")
                    env_vars[key.strip()] = value
    return env_vars


def load_global_config() -> dict[str, Any]:
    """Load global configuration from ~/.cvetrack/config.yml."""
    config_path = global_config_dir() / "config.yml"
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


def load_project_config(project_dir: Path | None = None) -> dict[str, str]:
    """Load project-specific configuration from .cvetrack/.env."""
    project_dir = project_dir or Path.cwd()
    return load_env_file(project_dir / ".cvetrack" / ".env")


def get_config(key: str, project_dir: Path | None = None, default: Any = None) -> Any:
    """Look up ``key`` in the environment, then the project ``.cvetrack/.env``,
    then the global ``config.yml``. Returns ``default`` when none has it.
    """
    env_value = os.environ.get(key)
    if env_value:
        return env_value

    project_config = load_project_config(project_dir)
    if key in project_config:
        return project_config[key]

    global_config = load_global_config()
    if key in global_config:
        return global_config[key]

    return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_int(key: str, value: Any, default: int) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer %s=%r, using %d", key, value, default)
        return default


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    db_url: str
    data_dir: Path
    workers: int = 1
    upsert_policy: str = "merge"
    rules_dir: Path | None = None
    remote_base_url: str = DEFAULT_REMOTE_BASE_URL
    verbose: bool = False


def load_settings(project_dir: Path | None = None) -> Settings:
    """Resolve every setting through get_config."""
    data_dir = Path(get_config("CVETRACK_DATA_DIR", project_dir, str(global_config_dir())))
    db_url = get_config("CVETRACK_DB_URL", project_dir) or f"sqlite:///{data_dir / 'cvetrack.db'}"

    policy = str(get_config("CVETRACK_UPSERT_POLICY", project_dir, "merge")).lower()
    if policy not in UPSERT_POLICIES:
        logger.warning("Unknown upsert policy %r, falling back to 'merge'", policy)
        policy = "merge"

    rules_dir = get_config("CVETRACK_RULES_DIR", project_dir)
    return Settings(
        db_url=db_url,
        data_dir=data_dir,
        workers=_as_int("CVETRACK_WORKERS", get_config("CVETRACK_WORKERS", project_dir, 1), 1),
        upsert_policy=policy,
        rules_dir=Path(rules_dir) if rules_dir else None,
        remote_base_url=get_config(
            "CVETRACK_REMOTE_BASE_URL", project_dir, DEFAULT_REMOTE_BASE_URL
        ).rstrip("/"),
        verbose=_as_bool(get_config("CVETRACK_VERBOSE", project_dir, False)),
    )


def create_global_config() -> Path:
    """Create global config directory and file if they don't exist."""
    config_dir = global_config_dir()
    config_dir.mkdir(exist_ok=True)

    config_path = config_dir / "config.yml"
    if not config_path.exists():
        default_config = {
            "CVETRACK_WORKERS": 1,
            "CVETRACK_UPSERT_POLICY": "merge",
            "CVETRACK_VERBOSE": False,
        }
        with open(config_path, "w") as f:
            yaml.dump(default_config, f, default_flow_style=False)

    return config_path
