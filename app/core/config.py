"""
Configuration loader for the Sales Operations backend.
Uses YAML format for cleaner, more readable configuration.
"""

import yaml
import os
from pathlib import Path
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)

# Environment variables that override the provider section
PROVIDER_ENV_OVERRIDES = {
    'YAMPI_API_URL': 'url',
    'YAMPI_STORE_ALIAS': 'store_alias',
    'YAMPI_USER_TOKEN': 'user_token',
    'YAMPI_USER_SECRET_KEY': 'user_secret_key',
}


class Config:
    """Singleton configuration manager."""

    _instance: Optional['Config'] = None
    _data: dict = {}
    _project_root: Path = None

    def __new__(cls, config_path: Optional[str] = None) -> 'Config':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._project_root = Path(__file__).resolve().parent.parent.parent
            cls._instance._load(config_path)
        return cls._instance

    def _load(self, config_path: Optional[str] = None) -> None:
        """Load configuration from YAML file."""
        if config_path:
            path = Path(config_path)
        else:
            path = self._project_root / "config.yaml"

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            self._data = yaml.safe_load(f) or {}

        # Validate required sections
        required = ['general', 'provider']
        missing = [s for s in required if s not in self._data]
        if missing:
            raise ValueError(f"Missing required config sections: {missing}")

        self._apply_env_overrides()
        logger.info(f"Configuration loaded from {path}")

    def _apply_env_overrides(self) -> None:
        """Let credentials come from the environment instead of the file."""
        provider = self._data.get('provider') or {}
        for env_name, key in PROVIDER_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                provider[key] = value
        self._data['provider'] = provider

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next access reloads the file."""
        cls._instance = None

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get a nested config value using dot notation.
        Example: config.get('provider', 'timeout') -> config['provider']['timeout']
        """
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_int(self, *keys: str, default: int = 0) -> int:
        """Get integer value."""
        value = self.get(*keys, default=default)
        return int(value) if value is not None else default

    @property
    def project_root(self) -> Path:
        """Get project root directory."""
        return self._project_root

    @property
    def data_dir(self) -> Path:
        """Get data directory path, creating if needed."""
        dir_name = self.get('general', 'data_dir', default='data')
        path = self._project_root / dir_name
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def db_path(self) -> Path:
        """Get database file path."""
        db_name = self.get('general', 'database', default='salesops.db')
        return self.data_dir / db_name

    @property
    def log_path(self) -> Path:
        """Get log file path."""
        log_name = self.get('general', 'log_file', default='salesops.log')
        return self._project_root / log_name


# Global config instance (initialized on first import)
def get_config() -> Config:
    """Get the global config instance."""
    return Config()
