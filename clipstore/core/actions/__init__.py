"""Action configuration: model, matching, lookup and merging"""

from .config import load_config, save_config, upgrade_config
from .defaults import default_config
from .matcher import match_action, test_action
from .merge import collect_ids, count_difference, merge_config
from .models import (
    Action, ActionConfig, ActionOutput, ActionSubmenu, ColorAction, ColorSpace,
    CommandAction, QrCodeAction,
)
from .resolver import applicable_actions, find_action_by_id, find_default_action, is_default_action

__all__ = [
    'Action', 'ActionConfig', 'ActionOutput', 'ActionSubmenu', 'ColorAction', 'ColorSpace',
    'CommandAction', 'QrCodeAction',
    'applicable_actions', 'collect_ids', 'count_difference', 'default_config',
    'find_action_by_id', 'find_default_action', 'is_default_action', 'load_config',
    'match_action', 'merge_config', 'save_config', 'test_action', 'upgrade_config',
]
