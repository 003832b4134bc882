"""Settings file handling and per-user directories"""

import copy
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from loguru import logger

from ..core.storage.drivers import DRIVERS, build_connection_string

DEFAULT_SETTINGS: Dict[str, Any] = {
    'storage': {
        'database_dir': None,       # data directory when unset
        'database_name': 'clipboard',
        'driver': 'idle',
        'poll_interval': 100,       # ms, polling driver only
        'poll_attempts': 10
    },
    'actions': {
        'config_path': None,        # config directory when unset
        'merge_on_startup': True
    },
    'logging': {
        'level': 'INFO',
        'file_logging': True,
        'rotation': '1 day',
        'retention': '7 days'
    }
}

REQUIRED_KEYS = (
    'storage.database_name',
    'storage.driver',
    'storage.poll_interval',
    'storage.poll_attempts',
)


def get_config_dir() -> Path:
    """Directory holding settings.yaml and actions.json"""
    override = os.environ.get('CLIPSTORE_CONFIG_DIR')
    if override:
        return Path(override)
    return Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config')) / 'clipstore'


def get_data_dir() -> Path:
    """Directory holding the database and logs"""
    override = os.environ.get('CLIPSTORE_HOME')
    if override:
        return Path(override)
    return Path(os.environ.get('XDG_DATA_HOME', Path.home() / '.local' / 'share')) / 'clipstore'


def merge_settings(base: Dict[str, Any], overrides: Dict[str, Any]) -> None:
    """Apply `overrides` onto `base` in place, descending into nested sections"""
    for key, value in overrides.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merge_settings(current, value)
        else:
            base[key] = value


class ConfigManager:
    """YAML settings layered over built-in defaults"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Load settings

        Args:
            config_path: Settings file, settings.yaml in the config directory if None
        """
        self.config_path = config_path or str(get_config_dir() / 'settings.yaml')
        self.config: Dict[str, Any] = copy.deepcopy(DEFAULT_SETTINGS)
        self._read_file()

    def _read_file(self):
        if not os.path.exists(self.config_path):
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                overrides = yaml.safe_load(f) or {}
            if not isinstance(overrides, dict):
                raise ValueError("top level must be a mapping")

        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Ignoring settings file {self.config_path}: {e}")
            return

        merge_settings(self.config, overrides)
        logger.info(f"Settings loaded from {self.config_path}")

    def save(self) -> bool:
        """
        Write the current settings back to the settings file

        Returns:
            True if the file was written
        """
        try:
            Path(self.config_path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self.config, f, default_flow_style=False)

        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Could not write settings to {self.config_path}: {e}")
            return False

        logger.info(f"Settings written to {self.config_path}")
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a setting by dotted path, e.g. 'storage.driver'

        Returns:
            The value, or `default` if any part of the path is missing
        """
        node: Any = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any):
        """Set a setting by dotted path, creating missing sections"""
        *sections, name = key.split('.')
        node = self.config
        for section in sections:
            node = node.setdefault(section, {})

        node[name] = value
        logger.debug(f"Setting {key} = {value!r}")

    def reset(self):
        self.config = copy.deepcopy(DEFAULT_SETTINGS)
        logger.info("Settings reset to defaults")

    def database_dir(self) -> Path:
        configured = self.get('storage.database_dir')
        return Path(configured).expanduser() if configured else get_data_dir()

    def connection_string(self) -> str:
        """Connection string for the configured database"""
        return build_connection_string(self.database_dir(), self.get('storage.database_name', 'clipboard'))

    def actions_path(self) -> Optional[Path]:
        configured = self.get('actions.config_path')
        return Path(configured).expanduser() if configured else None

    def validate(self) -> bool:
        """
        Check the storage settings before a database is opened

        Returns:
            False if a required key is missing, the driver is unknown or the
            polling budget is below one millisecond or one attempt
        """
        missing = [key for key in REQUIRED_KEYS if self.get(key) is None]
        if missing:
            logger.error(f"Missing settings: {', '.join(missing)}")
            return False

        driver = self.get('storage.driver')
        if driver not in DRIVERS:
            logger.error(f"Unknown database driver {driver!r}, expected one of {sorted(DRIVERS)}")
            return False

        try:
            interval = int(self.get('storage.poll_interval'))
            attempts = int(self.get('storage.poll_attempts'))
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid polling settings: {e}")
            return False

        if interval < 1 or attempts < 1:
            logger.error(f"Polling needs at least 1 ms and 1 attempt (got {interval} ms, {attempts})")
            return False

        return True
