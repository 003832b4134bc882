"""Loading, saving and upgrading the user's action configuration file"""

import json
import os
import shutil
from pathlib import Path
from typing import Optional, Union
from loguru import logger

from .defaults import default_config
from .merge import count_difference, merge_config
from .models import ActionConfig
from ...utils.config_manager import get_config_dir

# 'default' forces the bundled configuration, any other value is a file path
ACTIONS_ENV = 'CLIPSTORE_ACTIONS'

PathLike = Union[str, Path]


def get_actions_config_path() -> Path:
    return get_config_dir() / 'actions.json'


def load_config(path: Optional[PathLike] = None, save: bool = False) -> ActionConfig:
    """
    Load the action configuration

    A missing, unreadable or malformed file yields the bundled default.

    Args:
        path: Configuration file (defaults to the per-user location)
        save: Write the default configuration if no file exists and no
            CLIPSTORE_ACTIONS override is set
    """
    override = os.environ.get(ACTIONS_ENV)
    if override == 'default':
        return default_config()

    path = Path(override) if override else Path(path or get_actions_config_path())
    try:
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                return ActionConfig.from_dict(json.load(f))

        config = default_config()
        # An override location is never written to
        if save and not override:
            save_config(config, path)
        return config

    except (OSError, ValueError) as e:
        logger.error(f"Failed to load actions config from {path}: {e}")

    return default_config()


def save_config(config: ActionConfig, path: Optional[PathLike] = None, backup: bool = False) -> None:
    """
    Save the action configuration

    Args:
        config: Configuration to save
        path: Configuration file (defaults to the per-user location)
        backup: Keep the previous file as '<name>~'

    Raises:
        OSError: The file could not be written
    """
    path = Path(path or get_actions_config_path())
    path.parent.mkdir(parents=True, exist_ok=True)

    if backup and path.exists():
        shutil.copy2(path, path.with_name(path.name + '~'))

    tmp_path = path.with_name(path.name + '.tmp')
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent='\t')
    os.replace(tmp_path, path)

    logger.info(f"Actions config saved to {path}")


def upgrade_config(path: Optional[PathLike] = None) -> int:
    """
    Add bundled actions the user's configuration does not have yet

    A file with entries that could not be read is left untouched.

    Returns:
        Number of actions added
    """
    if os.environ.get(ACTIONS_ENV):
        logger.debug(f"{ACTIONS_ENV} is set, not upgrading the actions config")
        return 0

    user_config = load_config(path)
    if user_config.skipped:
        logger.warning(f"Not upgrading the actions config: {len(user_config.skipped)} entries could not be read")
        return 0

    bundled = default_config()

    added = count_difference(user_config, bundled)
    if added > 0:
        save_config(merge_config(user_config, bundled), path, backup=True)
        logger.info(f"Added {added} new bundled actions to the actions config")

    return added
