"""Tests whether an action applies to a clipboard entry

User-authored patterns that fail to compile make the action non-matching
instead of raising.
"""

import re
from typing import List, Optional

from .models import Action
from ..clipboard.entry import ClipboardEntry


def _type_matches(entry: ClipboardEntry, action: Action) -> bool:
    return not action.types or entry.type in action.types


def _compile(pattern: str) -> Optional['re.Pattern']:
    try:
        return re.compile(pattern)
    except (re.error, TypeError):
        return None


def test_action(entry: ClipboardEntry, action: Action) -> bool:
    """
    Test if an action is applicable to a clipboard entry

    Args:
        entry: Entry to test the action against
        action: The action
    """
    if not _type_matches(entry, action):
        return False
    if not action.pattern:
        return True

    regex = _compile(action.pattern)
    return regex is not None and regex.search(entry.content) is not None


def match_action(entry: ClipboardEntry, action: Action) -> Optional[List[Optional[str]]]:
    """
    Match an action against an entry and return the captured values

    Returns:
        [whole match, group 1, ...] with None for groups that did not take
        part, [content] when the action has no pattern, or None if the
        action does not apply
    """
    if not _type_matches(entry, action):
        return None
    if not action.pattern:
        return [entry.content]

    regex = _compile(action.pattern)
    if regex is None:
        return None

    match = regex.search(entry.content)
    if match is None:
        return None
    return [match.group(0), *match.groups()]
