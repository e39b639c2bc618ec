"""
YAML settings loader for the plan optimizer.
Provides cached, dot-path access to optimizer.yaml settings.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


_settings_cache: Optional[Dict[str, Any]] = None


def get_config_path() -> Path:
    """Return path to optimizer.yaml (PLANOPT_CONFIG_PATH wins, .env honoured)."""
    load_dotenv()
    env_path = os.getenv("PLANOPT_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    return Path(__file__).parent / "optimizer.yaml"


def read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(force_reload: bool = False) -> Dict[str, Any]:
    """Load and cache settings from optimizer.yaml."""
    global _settings_cache
    if _settings_cache is not None and not force_reload:
        return _settings_cache

    _settings_cache = read_yaml(get_config_path())
    return _settings_cache


def get_setting(path: str, default: Any = None) -> Any:
    """
    Get a nested setting by dot-notation path.
    Example: get_setting("genetic.population_size", 20)
    """
    settings = load_settings()
    value: Any = settings
    for key in path.split("."):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
