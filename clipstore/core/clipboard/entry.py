"""Clipboard history entry"""

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ItemType(str, Enum):
    """Classification of clipboard content"""
    TEXT = "text"
    CODE = "code"
    IMAGE = "image"
    FILE = "file"
    FILES = "files"
    LINK = "link"
    CHARACTER = "character"
    COLOR = "color"


@dataclass
class ClipboardEntry:
    """Single clipboard history entry"""
    type: ItemType
    content: str
    id: Optional[int] = None
    pinned: bool = False
    tag: Optional[str] = None
    timestamp: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = field(default=None)

    def __post_init__(self):
        self.type = ItemType(self.type)
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc).replace(microsecond=0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        data = asdict(self)
        data['type'] = self.type.value
        data['timestamp'] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClipboardEntry':
        """Create from dictionary"""
        data = dict(data)
        if isinstance(data.get('timestamp'), str):
            data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return cls(**data)
