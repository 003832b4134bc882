"""Merging an updated bundled configuration into a user's configuration

Actions are identified by id. A merge never duplicates an id the user
already has and never reorders or edits the user's own entries; new actions
are appended to the user's submenu of the same name, or at the end.
"""

from dataclasses import replace
from typing import Iterator, List, Sequence, Union

from .models import Action, ActionConfig, ActionItem, ActionSubmenu


def collect_ids(tree: Union[ActionConfig, Sequence[ActionItem]]) -> Iterator[str]:
    """Yield the id of every action in depth-first order, ignoring submenu names"""
    items = tree.actions if isinstance(tree, ActionConfig) else tree
    for item in items:
        if isinstance(item, ActionSubmenu):
            yield from collect_ids(item.actions)
        elif isinstance(item, Action):
            yield item.id


def count_difference(config1: ActionConfig, config2: ActionConfig) -> int:
    """
    Count the action ids in config2 that do not occur in config1

    Args:
        config1: The original configuration
        config2: The configuration to check
    """
    ids = set(collect_ids(config1))
    return sum(1 for action_id in collect_ids(config2) if action_id not in ids)


def _filter_new(items: Sequence[ActionItem], known: set) -> List[ActionItem]:
    filtered = []
    for item in items:
        if isinstance(item, ActionSubmenu):
            actions = _filter_new(item.actions, known)
            if actions:
                filtered.append(replace(item, actions=actions))
        elif isinstance(item, Action) and item.id not in known:
            filtered.append(item)
    return filtered


def merge_config(config1: ActionConfig, config2: ActionConfig) -> ActionConfig:
    """
    Merge the actions of config2 that config1 lacks into config1

    Args:
        config1: The original configuration, whose order and defaults are kept
        config2: The configuration to take new actions from
    """
    remaining = _filter_new(config2.actions, set(collect_ids(config1)))

    # Join new submenu content onto the user's submenu of the same name
    actions: List[ActionItem] = []
    for item in config1.actions:
        if not isinstance(item, ActionSubmenu):
            actions.append(item)
            continue

        same_name = [x for x in remaining if isinstance(x, ActionSubmenu) and x.name == item.name]
        new_actions = [action for submenu in same_name for action in submenu.actions]

        if new_actions:
            actions.append(replace(item, actions=[*item.actions, *new_actions]))
            remaining = [x for x in remaining if not any(x is s for s in same_name)]
        else:
            actions.append(item)

    return ActionConfig(
        actions=[*actions, *remaining],
        defaults=dict(config1.defaults or {}),
    )
