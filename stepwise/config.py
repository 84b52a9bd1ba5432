#!/usr/bin/env python3
"""
Configuration management for Stepwise.
Handles user preferences stored locally, environment overrides and the
effective runtime settings for a session.
"""

import os
import json
import shlex
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional, Dict, Any, List

from loguru import logger


ENV_PREFIX = 'STEPWISE_'


def get_config_dir() -> Path:
    """Get the Stepwise config directory (~/.stepwise)"""
    override = os.environ.get(f'{ENV_PREFIX}HOME')
    config_dir = Path(override) if override else Path.home() / '.stepwise'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / 'config.json'


def get_log_path() -> Path:
    """Get the log file path"""
    return get_config_dir() / 'stepwise.log'


def load_config() -> Dict[str, Any]:
    """Load configuration from file"""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file"""
    config_path = get_config_path()
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)
    config_path.chmod(0o600)


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a specific config value"""
    config = load_config()
    return config.get(key, default)


def set_config_value(key: str, value: Any) -> None:
    """Set a specific config value"""
    config = load_config()
    config[key] = value
    save_config(config)


def _coerce(value: Any, target: Any) -> Any:
    """Convert a raw config/env value to the type of the default"""
    if isinstance(target, bool):
        if isinstance(value, str):
            return value.strip().lower() in ('1', 'true', 'yes', 'on')
        return bool(value)
    if isinstance(target, float):
        return float(value)
    if isinstance(target, int):
        return int(value)
    return str(value)


@dataclass(frozen=True)
class Settings:
    """
    Effective settings for a tutoring session.

    Resolution order (later wins): defaults, ~/.stepwise/config.json,
    STEPWISE_* environment variables, explicit overrides (CLI flags).
    """
    toolchain: str = 'toolchain'
    success_marker: str = 'ok'
    run_timeout: float = 60.0        # seconds before a run is a ToolError
    debounce_seconds: float = 0.3    # watcher burst coalescing window
    tick_seconds: float = 0.1        # redraw interval
    auto_advance: bool = True
    watch: bool = True
    run_on_change: bool = True
    run_on_save: bool = False
    progress_file: str = '.stepwise-progress.json'
    log_level: str = 'INFO'
    extra_env: Dict[str, str] = field(default_factory=dict)

    def toolchain_argv(self) -> List[str]:
        """Split the toolchain command into argv form"""
        return shlex.split(self.toolchain)

    @classmethod
    def resolve(
        cls,
        config: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
        **overrides,
    ) -> 'Settings':
        """Build settings from config file values, environment and overrides"""
        config = load_config() if config is None else config
        environ = os.environ if environ is None else environ

        settings = cls()
        values = {}
        for f in fields(cls):
            if f.name == 'extra_env':
                continue
            default = getattr(settings, f.name)
            env_key = ENV_PREFIX + f.name.upper()
            sources = [
                ('config file', config.get(f.name)),
                (env_key, environ.get(env_key)),
                ('command line', overrides.get(f.name)),
            ]
            for source, raw in sources:
                if raw is None:
                    continue
                try:
                    values[f.name] = _coerce(raw, default)
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid {} from {}: {!r}", f.name, source, raw)

        if isinstance(config.get('extra_env'), dict):
            values['extra_env'] = {str(k): str(v) for k, v in config['extra_env'].items()}

        return replace(settings, **values)
