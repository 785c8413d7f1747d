"""
Kolam Engine - wires the store, staging, version control and bridge together.

Brings together:
- Entry store (SQLite)
- Staging selector for the active stream
- Version control engine
- Bridge protocol engine
- Stream / entry / profile service
"""

from src.config import Config
from src.core.store.base import EntryStore
from src.core.store.factory import StoreFactory
from src.core.tokenizer import Tokenizer
from src.services.bridge import BridgeProtocolEngine
from src.services.staging import StagingSelector
from src.services.stream_service import StreamService
from src.services.version_control import VersionControlEngine
from src.utils.logger import get_logger

logger = get_logger(__name__)


class KolamEngine:
    """
    Owns one store connection and the engines built on it.

    Usage:
        engine = KolamEngine(config=Config.from_env())
        await engine.initialize()
        details = await engine.streams.open_stream(stream_id)
        export = await engine.bridge.generate_export(stream_id, "CRITIQUE")
        await engine.close()
    """

    def __init__(self, config: Config | None = None, store: EntryStore | None = None):
        """
        Initialize Kolam Engine.

        Args:
            config: Configuration object
            store: Store to use instead of the one selected by config
        """
        self.config = config or Config()
        self.store = store or StoreFactory.create(self.config)
        self.tokenizer = Tokenizer(self.config.tokenizer)

        self.staging = StagingSelector()
        self.versions = VersionControlEngine(self.store)
        self.bridge = BridgeProtocolEngine(
            store=self.store,
            versions=self.versions,
            staging=self.staging,
            tokenizer=self.tokenizer,
            config=self.config,
        )
        self.streams = StreamService(
            self.store, self.staging, versions=self.versions, bridge=self.bridge
        )

    async def initialize(self) -> None:
        """Initialize the store."""
        logger.info("Initializing Kolam Engine")
        await self.store.initialize()
        logger.info("Kolam Engine ready")

    async def close(self) -> None:
        """Close the store connection."""
        logger.info("Shutting down Kolam Engine")
        await self.store.close()
