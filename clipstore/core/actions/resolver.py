"""Lookup of actions and default actions in a configuration"""

from typing import Iterator, List, Optional, Tuple

from .matcher import match_action
from .models import Action, ActionConfig, ActionItem, ActionSubmenu
from ..clipboard.entry import ClipboardEntry


def find_action_by_id(config: ActionConfig, action_id: str) -> Optional[Action]:
    """
    Find an action by its id, searching submenus depth first

    Returns:
        The first action with this id, or None
    """
    def find(items: List[ActionItem]) -> Optional[Action]:
        for item in items:
            if isinstance(item, ActionSubmenu):
                result = find(item.actions)
                if result is not None:
                    return result
            elif item.id == action_id:
                return item
        return None

    return find(config.actions)


def is_default_action(config: ActionConfig, entry: ClipboardEntry, action: Action) -> bool:
    return (config.defaults or {}).get(entry.type.value) == action.id


def find_default_action(config: ActionConfig, entry: ClipboardEntry) -> Optional[Action]:
    """
    Find the default action for an entry's type

    A default pointing at an action that no longer exists yields None.
    """
    action_id = (config.defaults or {}).get(entry.type.value)
    return find_action_by_id(config, action_id) if action_id else None


def iter_actions(items: List[ActionItem]) -> Iterator[Action]:
    for item in items:
        if isinstance(item, ActionSubmenu):
            yield from iter_actions(item.actions)
        else:
            yield item


def applicable_actions(config: ActionConfig,
                       entry: ClipboardEntry) -> List[Tuple[Action, List[Optional[str]]]]:
    """All actions matching an entry, in display order, with their captures"""
    matches = []
    for action in iter_actions(config.actions):
        captures = match_action(entry, action)
        if captures is not None:
            matches.append((action, captures))
    return matches
