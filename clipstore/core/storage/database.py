"""Database schema for clipboard entries"""

from datetime import datetime, timezone
from typing import List
from sqlalchemy import Column, String, Text, Boolean, Integer
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import CreateIndex, CreateTable

Base = declarative_base()

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


class ClipboardEntryDB(Base):
    """Database model for clipboard entries"""
    __tablename__ = 'clipboard'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(16), nullable=False, index=True)
    content = Column(Text, nullable=False)
    pinned = Column(Boolean, nullable=False, default=False)
    tag = Column(String(255))
    timestamp = Column(String(19), nullable=False, index=True)
    entry_metadata = Column(Text)  # JSON string - 'metadata' is reserved by SQLAlchemy


ENTRIES = ClipboardEntryDB.__table__


def schema_statements() -> List:
    """DDL creating the entries table and its indexes if missing"""
    statements = [CreateTable(ENTRIES, if_not_exists=True)]
    for index in sorted(ENTRIES.indexes, key=lambda i: i.name):
        statements.append(CreateIndex(index, if_not_exists=True))
    return statements


def convert_datetime(value: datetime) -> str:
    """Format a datetime as UTC text for storage"""
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_datetime(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
