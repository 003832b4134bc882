"""Settings and logging utilities"""

from .config_manager import ConfigManager, get_config_dir, get_data_dir
from .logging_setup import setup_logging

__all__ = ['ConfigManager', 'get_config_dir', 'get_data_dir', 'setup_logging']
