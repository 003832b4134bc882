"""Clipboard entry model"""

from .entry import ClipboardEntry, ItemType

__all__ = ['ClipboardEntry', 'ItemType']
