"""Bundled default action configuration"""

from .models import (
    ActionConfig, ActionOutput, ActionSubmenu, ColorAction, ColorSpace,
    CommandAction, QrCodeAction,
)
from ..clipboard.entry import ItemType


def _color_action(action_id: str, name: str, pattern: str, space: ColorSpace) -> ColorAction:
    return ColorAction(
        id=action_id,
        name=name,
        pattern=pattern,
        types=[ItemType.COLOR.value],
        space=space,
        output=ActionOutput.PASTE,
        shortcut=[],
    )


def default_config() -> ActionConfig:
    """Build a fresh copy of the bundled configuration"""
    return ActionConfig(
        actions=[
            ActionSubmenu(
                name='Open',
                actions=[
                    CommandAction(
                        id='open-with-default',
                        name='Open with Default',
                        types=[ItemType.IMAGE.value, ItemType.FILE.value],
                        command='xargs xdg-open',
                        output=ActionOutput.IGNORE,
                        shortcut=[],
                    ),
                    CommandAction(
                        id='open-with-files',
                        name='Open with Files',
                        pattern='^(.*)',
                        types=[ItemType.IMAGE.value, ItemType.FILE.value, ItemType.FILES.value],
                        command='nautilus -s $1',
                        output=ActionOutput.IGNORE,
                        shortcut=[],
                    ),
                    CommandAction(
                        id='open-with-browser',
                        name='Open with Browser',
                        types=[ItemType.LINK.value],
                        command='xargs xdg-open',
                        output=ActionOutput.IGNORE,
                        shortcut=[],
                    ),
                ],
            ),
            CommandAction(
                id='paste-as-path',
                name='Paste as Path',
                types=[ItemType.IMAGE.value, ItemType.FILE.value, ItemType.FILES.value],
                command='cut -c8-',
                output=ActionOutput.PASTE,
                shortcut=[],
            ),
            ActionSubmenu(
                name='Convert',
                actions=[
                    _color_action('rgb', 'Rgb', '^(?!rgb)', ColorSpace.RGB),
                    _color_action('hex', 'Hex', '^(?!#)', ColorSpace.HEX),
                    _color_action('hsl', 'Hsl', '^(?!hsl)', ColorSpace.HSL),
                    _color_action('oklch', 'Oklch', '^(?!oklch)', ColorSpace.OKLCH),
                ],
            ),
            QrCodeAction(
                id='qrcode',
                name='QR Code',
                types=[
                    ItemType.TEXT.value, ItemType.CODE.value, ItemType.LINK.value,
                    ItemType.CHARACTER.value, ItemType.COLOR.value,
                ],
                output=ActionOutput.IGNORE,
                shortcut=['<Control>q'],
            ),
        ],
        defaults={
            ItemType.FILE.value: 'paste-as-path',
            ItemType.FILES.value: 'paste-as-path',
            ItemType.LINK.value: 'open-with-browser',
        },
    )
