"""Configuration management with environment variable and file support"""

import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "OPSTOOLS_CONFIG"
DATE_FORMAT = "%Y-%m-%d"


class ConfigError(Exception):
    pass


class Config:
    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        config_path = Path(self.config_file)
        if not config_path.exists():
            self._config = {}
            return

        try:
            with open(config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not load config file {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping at the top level")
        self._config = loaded

    def get(self, key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        env_key = env_var or key.upper().replace('.', '_')
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        value = self._config
        for k in key.split('.'):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                value = None
                break
        if value is not None:
            return value

        return default

    def get_bool(self, key: str, default: bool = False, env_var: Optional[str] = None) -> bool:
        value = self.get(key, default, env_var)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ('true', '1', 'yes', 'on')
        return bool(value)

    def get_int(self, key: str, default: int = 0, env_var: Optional[str] = None) -> int:
        value = self.get(key, default, env_var)
        try:
            return int(value)
        except (ValueError, TypeError):
            return default

    def get_float(self, key: str, default: float = 0.0, env_var: Optional[str] = None) -> float:
        value = self.get(key, default, env_var)
        try:
            return float(value)
        except (ValueError, TypeError):
            return default

    def get_list(self, key: str, default: Optional[List[str]] = None, env_var: Optional[str] = None) -> List[str]:
        value = self.get(key, None, env_var)
        if value is None:
            return list(default or [])
        if isinstance(value, str):
            return [part.strip() for part in value.split(',') if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(part).strip() for part in value if str(part).strip()]
        return [str(value)]

    def get_date(self, key: str, default: Optional[str] = None, env_var: Optional[str] = None) -> Optional[date]:
        value = self.get(key, default, env_var)
        if value is None or value == '':
            return None
        # YAML turns unquoted 2025-09-07 into a date already
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
        except ValueError as e:
            raise ConfigError(f"Invalid date for '{key}': {value!r} (expected YYYY-MM-DD)") from e
