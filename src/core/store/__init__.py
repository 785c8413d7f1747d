"""
Persistence backends for Kolam.

Provides the abstract store interface and concrete implementations.

Available backends:
- SQLiteEntryStore: Local single-file database (aiosqlite)
"""

from src.core.store.base import EntryStore
from src.core.store.factory import StoreFactory
from src.core.store.sqlite_store import SQLiteEntryStore

__all__ = [
    "EntryStore",
    "SQLiteEntryStore",
    "StoreFactory",
]
