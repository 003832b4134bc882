"""Action configuration model and its JSON representation"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from loguru import logger


class ActionOutput(str, Enum):
    """What happens to the result of an action"""
    IGNORE = 'ignore'
    COPY = 'copy'
    PASTE = 'paste'


class ColorSpace(str, Enum):
    RGB = 'rgb'
    HEX = 'hex'
    HSL = 'hsl'
    HWB = 'hwb'
    LINEAR_RGB = 'linear-rgb'
    XYZ = 'xyz'
    LAB = 'lab'
    LCH = 'lch'
    OKLAB = 'oklab'
    OKLCH = 'oklch'


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass
class Action:
    """
    Rule mapping matching clipboard content to a behaviour

    A missing pattern matches any content; missing or empty types match any
    item type. Keys this model does not know are kept in `extra` and written
    back unchanged.
    """
    id: str
    name: str
    output: ActionOutput = ActionOutput.IGNORE
    pattern: Optional[str] = None
    types: Optional[List[str]] = None
    shortcut: Optional[List[str]] = None
    kind: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {'kind': self.kind}
        for f in fields(self):
            if f.name != 'extra':
                data[f.name] = _plain(getattr(self, f.name))
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


@dataclass
class CommandAction(Action):
    """Runs a shell command template; $N placeholders take capture groups"""
    command: str = ''
    kind: str = 'command'


@dataclass
class ColorAction(Action):
    """Converts a color to another color space"""
    space: ColorSpace = ColorSpace.RGB
    kind: str = 'color'


@dataclass
class QrCodeAction(Action):
    kind: str = 'qrcode'


@dataclass
class ActionSubmenu:
    """Named group of actions"""
    name: str
    actions: List[Union[Action, 'ActionSubmenu']] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name, 'actions': [item.to_dict() for item in self.actions]}
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


ActionItem = Union[Action, ActionSubmenu]


@dataclass
class ActionConfig:
    """
    Ordered action tree plus the default action id per item type

    `skipped` holds the raw entries that could not be parsed when the
    configuration was read from a file.
    """
    actions: List[ActionItem] = field(default_factory=list)
    defaults: Dict[str, str] = field(default_factory=dict)
    skipped: List[Any] = field(default_factory=list, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'actions': [item.to_dict() for item in self.actions],
            'defaults': dict(self.defaults),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActionConfig':
        """
        Build a configuration from its JSON form

        Entries that are neither an action nor a submenu are skipped and
        recorded in `skipped`.
        """
        if not isinstance(data, dict):
            raise ValueError("Action configuration must be a JSON object")

        actions = data.get('actions') or []
        if not isinstance(actions, list):
            raise ValueError("'actions' must be a list")

        defaults = data.get('defaults') or {}
        if not isinstance(defaults, dict):
            raise ValueError("'defaults' must be an object")

        skipped: List[Any] = []
        return cls(
            actions=_items_from_list(actions, skipped),
            defaults={str(k): v for k, v in defaults.items() if isinstance(v, str)},
            skipped=skipped,
        )


ACTION_KEYS = frozenset({'kind', 'id', 'name', 'output', 'pattern', 'types', 'shortcut'})
SUBMENU_KEYS = frozenset({'name', 'actions'})


def is_submenu_dict(data: Any) -> bool:
    return isinstance(data, dict) and 'name' in data and 'actions' in data


def is_action_dict(data: Any) -> bool:
    return isinstance(data, dict) and all(key in data for key in ('kind', 'id', 'name', 'output'))


def _extra(data: Dict[str, Any], known) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known}


def item_from_dict(data: Any, skipped: Optional[List[Any]] = None) -> Optional[ActionItem]:
    """
    Parse one action or submenu, or return None if it is neither

    Args:
        data: Decoded JSON entry
        skipped: Receives entries inside a submenu that could not be parsed
    """
    skipped = [] if skipped is None else skipped

    if is_submenu_dict(data):
        if not isinstance(data['actions'], list):
            return None
        return ActionSubmenu(
            name=str(data['name']),
            actions=_items_from_list(data['actions'], skipped),
            extra=_extra(data, SUBMENU_KEYS),
        )

    if not is_action_dict(data):
        return None

    try:
        pattern = data.get('pattern')
        common = dict(
            id=str(data['id']),
            name=str(data['name']),
            output=ActionOutput(data['output']),
            pattern=str(pattern) if pattern is not None else None,
            types=list(data['types']) if data.get('types') else None,
            shortcut=list(data['shortcut']) if data.get('shortcut') is not None else None,
        )
        kind = data['kind']

        if kind == 'command' and 'command' in data:
            return CommandAction(command=str(data['command']), extra=_extra(data, ACTION_KEYS | {'command'}),
                                 **common)
        if kind == 'color' and 'space' in data:
            return ColorAction(space=ColorSpace(data['space']), extra=_extra(data, ACTION_KEYS | {'space'}),
                               **common)
        if kind == 'qrcode':
            return QrCodeAction(extra=_extra(data, ACTION_KEYS), **common)
        return Action(kind=str(kind), extra=_extra(data, ACTION_KEYS), **common)

    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid action {data.get('id')!r}: {e}")
        return None


def _items_from_list(items: List[Any], skipped: List[Any]) -> List[ActionItem]:
    parsed = []
    for data in items:
        item = item_from_dict(data, skipped)
        if item is None:
            logger.warning(f"Skipping unrecognized action entry: {data!r}")
            skipped.append(data)
            continue
        parsed.append(item)
    return parsed
