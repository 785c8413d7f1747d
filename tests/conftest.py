"""
Shared fixtures for Kolam tests.

Every test gets a fresh SQLite database under tmp_path, so tests never
share state or need cleanup.
"""

from collections.abc import AsyncGenerator

import pytest

from src.config import Config, LoggingConfig, StoreConfig, TokenizerConfig
from src.core.store.sqlite_store import SQLiteEntryStore
from src.models.entry import EntryRole
from src.services.kolam_engine import KolamEngine
from src.utils.document import text_to_document


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Configuration pointing at a throwaway database, no network tokenizer."""
    return Config(
        store=StoreConfig(db_path=str(tmp_path / "kolam.db")),
        tokenizer=TokenizerConfig(provider="approximate"),
        logging=LoggingConfig(log_to_file=False),
    )


@pytest.fixture
async def store(tmp_path) -> AsyncGenerator[SQLiteEntryStore, None]:
    """Initialized SQLite store."""
    sqlite_store = SQLiteEntryStore(db_path=str(tmp_path / "store.db"))
    await sqlite_store.initialize()
    yield sqlite_store
    await sqlite_store.close()


@pytest.fixture
async def engine(test_config) -> AsyncGenerator[KolamEngine, None]:
    """Initialized engine on a fresh database."""
    kolam = KolamEngine(config=test_config)
    await kolam.initialize()
    yield kolam
    await kolam.close()


@pytest.fixture
async def stream(engine):
    """An open stream holding two user notes."""
    created = await engine.streams.create_stream(title="Fishing trip")
    await engine.streams.open_stream(created.id)
    await engine.streams.create_entry(created.id, text="Bring the red rod.")
    await engine.streams.create_entry(created.id, text="Leave at dawn, the pond is calm then.")
    return created


@pytest.fixture
def make_assistant_entry(engine):
    """Factory creating assistant-authored entries directly through the store."""

    async def _make(stream_id: str, text: str):
        return await engine.store.create_entry(
            stream_id, EntryRole.ASSISTANT, text_to_document(text)
        )

    return _make
