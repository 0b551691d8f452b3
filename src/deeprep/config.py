"""
Runtime configuration.

Values come from config/deeprep.yaml, overridden by environment variables
(a .env file is honored via python-dotenv).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "deeprep.yaml"


@dataclass
class Settings:
    postgres_dsn: Optional[str] = None
    openai_api_key: Optional[str] = None
    ai_model: str = "gpt-4o-mini"
    ai_timeout_seconds: float = 30.0
    cache_ttl_days: int = 7
    stale_session_hours: int = 24
    connectivity_url: str = "https://api.openai.com"
    connectivity_timeout_seconds: float = 3.0
    log_level: str = "INFO"


_ENV_KEYS = {
    "postgres_dsn": "POSTGRES_DSN",
    "openai_api_key": "OPENAI_API_KEY",
    "ai_model": "DEEPREP_AI_MODEL",
    "ai_timeout_seconds": "DEEPREP_AI_TIMEOUT_SECONDS",
    "cache_ttl_days": "DEEPREP_CACHE_TTL_DAYS",
    "stale_session_hours": "DEEPREP_STALE_SESSION_HOURS",
    "connectivity_url": "DEEPREP_CONNECTIVITY_URL",
    "connectivity_timeout_seconds": "DEEPREP_CONNECTIVITY_TIMEOUT_SECONDS",
    "log_level": "DEEPREP_LOG_LEVEL",
}


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Build Settings from YAML and the environment.

    Args:
        config_path: Path to a YAML config file. If None, uses config/deeprep.yaml.

    Returns:
        Settings with environment variables taking precedence over YAML
    """
    load_dotenv()

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    config = _read_yaml(path)

    defaults = Settings()
    values = {}
    for name, env_key in _ENV_KEYS.items():
        default = getattr(defaults, name)
        raw = os.getenv(env_key, config.get(name, default))
        if raw is None or default is None or isinstance(default, str):
            values[name] = raw
        else:
            values[name] = type(default)(raw)

    return Settings(**values)
