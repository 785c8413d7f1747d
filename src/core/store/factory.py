"""
Factory for creating persistence backends.
"""

from src.config import Config
from src.core.store.base import EntryStore
from src.core.store.sqlite_store import SQLiteEntryStore
from src.utils.exceptions import ConfigurationError


class StoreFactory:
    """Factory for creating entry stores from configuration."""

    @staticmethod
    def create(config: Config) -> EntryStore:
        """
        Create entry store from configuration.

        Args:
            config: Main configuration object

        Returns:
            Entry store instance

        Raises:
            ConfigurationError: If backend is not supported
        """
        if config.store.backend == "sqlite":
            return SQLiteEntryStore(db_path=config.store.db_path)
        else:
            raise ConfigurationError(
                f"Unsupported store backend: {config.store.backend}",
                {"backend": config.store.backend},
            )
