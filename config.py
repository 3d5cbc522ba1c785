"""
Configuration for profile-scout.

Settings come from (later wins):
    1. dataclass defaults
    2. optional YAML file (argument or PROFILE_SCOUT_CONFIG)
    3. environment variables (.env is loaded first)
"""

import logging
import os
import yaml
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional
from dotenv import load_dotenv

CONFIG_ENV_VAR = "PROFILE_SCOUT_CONFIG"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

STORE_BACKENDS = ("redis", "json", "memory")
LLM_PROVIDERS = ("openai", "groq")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class ConfigError(ValueError):
    """Invalid or missing configuration."""


@dataclass
class Settings:
    # Cache store
    store_backend: str = "json"
    data_dir: str = "data"
    redis_url: Optional[str] = None
    redis_host: Optional[str] = None
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_tls: bool = False
    redis_key_prefix: str = "profile-scout"
    profile_ttl_seconds: int = 0

    # Bright Data
    brightdata_api_token: Optional[str] = None
    brightdata_unlocker_zone: str = "unblocker"
    brightdata_dataset_id: str = "gd_l1viktl72bvl7bjuj0"
    http_timeout: int = 30

    # LLM
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    llm_base_url: Optional[str] = None
    llm_api_key: Optional[str] = None

    # Research execution
    research_workers: int = 3
    research_stale_after_seconds: int = 0  # 0 = never reclaim
    reaper_interval_seconds: int = 60
    max_web_results: int = 5

    # Resolver
    share_inflight_fetches: bool = False

    # Process
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5001

    def validate(self) -> "Settings":
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigError(
                f"Unknown store backend: {self.store_backend} (expected one of {', '.join(STORE_BACKENDS)})"
            )
        if self.store_backend == "redis" and not (self.redis_url or self.redis_host):
            raise ConfigError(
                "Missing required environment variables: REDIS_URL or REDIS_HOST, REDIS_PORT, REDIS_PASSWORD"
            )
        if self.llm_provider not in LLM_PROVIDERS:
            raise ConfigError(f"Unknown LLM provider: {self.llm_provider}")
        if self.research_workers < 1:
            raise ConfigError("RESEARCH_WORKERS must be at least 1")
        return self


# Settings field -> environment variable
ENV_VARS = {
    "store_backend": "STORE_BACKEND",
    "data_dir": "DATA_DIR",
    "redis_url": "REDIS_URL",
    "redis_host": "REDIS_HOST",
    "redis_port": "REDIS_PORT",
    "redis_password": "REDIS_PASSWORD",
    "redis_tls": "REDIS_TLS_ENABLED",
    "redis_key_prefix": "REDIS_KEY_PREFIX",
    "profile_ttl_seconds": "PROFILE_TTL_SECONDS",
    "brightdata_api_token": "BRIGHTDATA_API_TOKEN",
    "brightdata_unlocker_zone": "BRIGHTDATA_UNLOCKER_ZONE",
    "brightdata_dataset_id": "BRIGHTDATA_DATASET_ID",
    "http_timeout": "HTTP_TIMEOUT",
    "llm_provider": "LLM_PROVIDER",
    "llm_model": "LLM_MODEL",
    "llm_base_url": "LLM_BASE_URL",
    "llm_api_key": "LLM_API_KEY",
    "research_workers": "RESEARCH_WORKERS",
    "research_stale_after_seconds": "RESEARCH_STALE_AFTER_SECONDS",
    "reaper_interval_seconds": "REAPER_INTERVAL_SECONDS",
    "max_web_results": "RESEARCH_MAX_WEB_RESULTS",
    "share_inflight_fetches": "SHARE_INFLIGHT_FETCHES",
    "log_level": "LOG_LEVEL",
    "host": "HOST",
    "port": "PORT",
}


def _coerce(name: str, kind, value):
    """Convert a raw YAML/env value to the field's type."""
    if value is None:
        return None
    if kind is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigError(f"{name}: expected a boolean, got {value!r}")
    if kind is int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name}: expected an integer, got {value!r}")
    return str(value)


def _field_kinds() -> dict:
    """Field name -> bool, int or str, judged from the default."""
    kinds = {}
    for f in fields(Settings):
        kinds[f.name] = type(f.default) if f.default is not None else str
    return kinds


def load_yaml_config(path: Path) -> dict:
    """Load a settings file. Missing file is not an error."""
    if not path.exists():
        return {}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return data


def load_settings(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build validated settings from defaults, YAML and environment."""
    if env is None:
        load_dotenv()
        env = os.environ

    kinds = _field_kinds()
    values = {}

    config_path = path or (Path(env[CONFIG_ENV_VAR]) if env.get(CONFIG_ENV_VAR) else None)
    if config_path:
        for key, value in load_yaml_config(Path(config_path)).items():
            if key not in kinds:
                logging.getLogger(__name__).warning("Ignoring unknown setting %r in %s", key, config_path)
                continue
            values[key] = _coerce(key, kinds[key], value)

    for name, var in ENV_VARS.items():
        if var in env:
            values[name] = _coerce(var, kinds[name], env[var])

    return Settings(**values).validate()


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger."""
    root = logging.getLogger()
    if not any(getattr(h, "_profile_scout", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._profile_scout = True
        root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
