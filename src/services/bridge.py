"""
Bridge Protocol Engine - export staged entries, import the AI reply.

Per stream the protocol is in one of two states: no pending block, or
awaiting a reply for exactly one pending block. An export creates (or
replaces) the block; a matching import or an explicit discard removes it.
"""

import asyncio
from collections import defaultdict

from src.config import Config
from src.core.store.base import EntryStore
from src.core.tokenizer import Tokenizer
from src.models.bridge import (
    BridgeExport,
    BridgeImportResult,
    Directive,
    PendingBlock,
    TokenStatus,
)
from src.models.entry import AiMetadata, Entry, EntryRole
from src.services.composer import BRIDGE_MARKER_PATTERN, compose
from src.services.reply_parser import parse_reply, provider_for_model
from src.services.staging import StagingSelector
from src.services.version_control import VersionControlEngine
from src.utils.document import text_to_document
from src.utils.exceptions import (
    ConflictError,
    KolamError,
    NotFoundError,
    TokenBudgetExceededError,
    ValidationError,
)
from src.utils.id_generator import generate_bridge_key, generate_pending_block_id
from src.utils.logger import get_logger

logger = get_logger(__name__)


class BridgeProtocolEngine:
    """
    Manages bridge keys and pending blocks.

    Export and import on the same stream are serialized; the store's unique
    constraints back that up across processes.
    """

    def __init__(
        self,
        store: EntryStore,
        versions: VersionControlEngine,
        staging: StagingSelector,
        tokenizer: Tokenizer | None = None,
        config: Config | None = None,
    ):
        """
        Initialize Bridge Protocol Engine.

        Args:
            store: Persistence collaborator
            versions: Engine used to commit imported content
            staging: Selector holding the active stream's staged entries
            tokenizer: Token counter for export budgets
            config: Configuration object
        """
        self.store = store
        self.versions = versions
        self.staging = staging
        self.config = config or Config()
        self.tokenizer = tokenizer or Tokenizer(self.config.tokenizer)
        self._stream_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ═══════════════════════════════════════════════════════════
    # BRIDGE KEYS
    # ═══════════════════════════════════════════════════════════

    async def generate_bridge_key(self) -> str:
        """
        Draw a key not held by any live pending block.

        Raises:
            ConflictError: If every attempt collided
        """
        attempts = self.config.bridge.max_key_attempts
        for attempt in range(1, attempts + 1):
            key = generate_bridge_key(self.config.bridge.key_length)
            if not await self.store.bridge_key_in_use(key):
                return key
            logger.warning(
                f"Bridge key collision (attempt {attempt}/{attempts})",
                extra={"operation": "generate_bridge_key"},
            )

        raise ConflictError(
            f"Could not generate a unique bridge key after {attempts} attempts",
            {"attempts": attempts},
        )

    @staticmethod
    def validate_bridge_key(text: str, bridge_key: str) -> bool:
        """
        Check whether a reply contains the expected key.

        Literal, case-sensitive substring test. An empty key or text never
        validates.
        """
        if not text or not bridge_key:
            return False
        return bridge_key in text

    @staticmethod
    def extract_bridge_key(text: str) -> str | None:
        """
        First marker key found in text, for diagnostics.

        Whether a reply belongs to an export is decided by
        validate_bridge_key alone.
        """
        if not text:
            return None
        match = BRIDGE_MARKER_PATTERN.search(text)
        return match.group(1) if match else None

    # ═══════════════════════════════════════════════════════════
    # PENDING BLOCKS
    # ═══════════════════════════════════════════════════════════

    async def create_pending_block(
        self,
        stream_id: str,
        bridge_key: str,
        staged_entry_ids: list[str],
        directive: Directive | str,
    ) -> PendingBlock:
        """
        Create the stream's pending block, replacing any previous one.

        Returns:
            The new block; its ID differs from any block it replaced

        Raises:
            NotFoundError: If the stream doesn't exist
            ConflictError: If the key belongs to another stream's live block
        """
        block = PendingBlock(
            id=generate_pending_block_id(),
            stream_id=stream_id,
            bridge_key=bridge_key,
            staged_entry_ids=list(staged_entry_ids),
            directive=Directive(directive),
        )
        previous = await self.store.replace_pending_block(block)

        if previous is not None:
            logger.info(
                f"Replaced pending block {previous.id} with {block.id}",
                extra={"operation": "create_pending_block", "stream_id": stream_id},
            )
        else:
            logger.info(
                f"Created pending block {block.id}",
                extra={"operation": "create_pending_block", "stream_id": stream_id},
            )
        return block

    async def get_pending_block(self, stream_id: str) -> PendingBlock | None:
        return await self.store.get_pending_block(stream_id)

    async def delete_pending_block(self, pending_block_id: str) -> None:
        """
        Cancel an export without importing.

        Raises:
            NotFoundError: If no block has this ID (already imported or replaced)
        """
        if not await self.store.delete_pending_block(pending_block_id):
            raise NotFoundError(
                f"Pending block not found: {pending_block_id}",
                {"pending_block_id": pending_block_id},
            )
        logger.info(f"Deleted pending block {pending_block_id}")

    async def discard(self, stream_id: str) -> bool:
        """
        Drop the stream's pending block, if any.

        Returns:
            True if a block was discarded
        """
        async with self._stream_locks[stream_id]:
            block = await self.store.get_pending_block(stream_id)
            if block is None:
                return False
            discarded = await self.store.delete_pending_block(block.id)

        logger.info(
            f"Discarded pending block of {stream_id}",
            extra={"operation": "discard", "stream_id": stream_id},
        )
        return discarded

    def forget(self, stream_id: str) -> None:
        """Drop the export lock of a deleted stream, unless an export or import holds it."""
        lock = self._stream_locks.get(stream_id)
        if lock is not None and not lock.locked():
            del self._stream_locks[stream_id]

    # ═══════════════════════════════════════════════════════════
    # EXPORT / IMPORT
    # ═══════════════════════════════════════════════════════════

    async def _staged_entries(self, stream_id: str) -> list[Entry]:
        if self.staging.stream_id != stream_id:
            raise ValidationError(
                f"Stream {stream_id} is not the active stream",
                {"stream_id": stream_id, "active_stream_id": self.staging.stream_id},
            )

        entries = await self.store.list_entries(stream_id)
        dropped = self.staging.prune(entry.id for entry in entries)
        if dropped:
            logger.debug(
                f"Dropped {len(dropped)} staged IDs with no entry",
                extra={"stream_id": stream_id},
            )

        staged = self.staging.ordered(entries)
        if not staged:
            raise ValidationError("No entries are staged for export", {"stream_id": stream_id})
        return staged

    async def generate_export(
        self,
        stream_id: str,
        directive: Directive | str | None = None,
        model: str | None = None,
    ) -> BridgeExport:
        """
        Compose an export of the staged entries and record its pending block.

        Args:
            stream_id: Active stream to export from
            directive: DUMP, CRITIQUE or GENERATE (defaults to config)
            model: Target model name for the token budget (defaults to config)

        Returns:
            BridgeExport with the prompt, pending block and token usage

        Raises:
            NotFoundError: If the stream doesn't exist
            ValidationError: If nothing is staged or the stream isn't active
            TokenBudgetExceededError: If the prompt exceeds the model's limit
            ConflictError: If no unique bridge key could be drawn
        """
        directive = Directive(directive or self.config.bridge.default_directive)
        limit = self.config.model_limit(model or self.config.bridge.default_model)

        async with self._stream_locks[stream_id]:
            if await self.store.get_stream(stream_id) is None:
                raise NotFoundError(f"Stream not found: {stream_id}", {"stream_id": stream_id})

            entries = await self._staged_entries(stream_id)
            bridge_key = await self.generate_bridge_key()
            prompt = compose(directive, entries, bridge_key)

            usage = self.tokenizer.usage(prompt, limit)
            if usage.status == TokenStatus.EXCEEDED:
                raise TokenBudgetExceededError(
                    f"Export needs {usage.used} tokens, {limit.name} allows {limit.token_limit}",
                    {"stream_id": stream_id, "used": usage.used, "limit": limit.token_limit},
                )

            entry_ids = [entry.id for entry in entries]
            block = await self.create_pending_block(stream_id, bridge_key, entry_ids, directive)

        logger.info(
            f"Exported {len(entry_ids)} entries from {stream_id}",
            extra={
                "operation": "generate_export",
                "directive": directive.value,
                "tokens": usage.used,
                "token_status": usage.status.value,
            },
        )
        return BridgeExport(
            pending_block=block,
            prompt=prompt,
            staged_entry_ids=entry_ids,
            token_usage=usage,
        )

    async def import_reply(
        self,
        stream_id: str,
        text: str,
        target_entry_id: str | None = None,
        expected_pending_block_id: str | None = None,
    ) -> BridgeImportResult:
        """
        Import an AI reply for the stream's pending block.

        A reply without the expected key returns `matched=False` and leaves
        everything untouched. A matching reply is committed as a new version,
        either of `target_entry_id` or of a new assistant entry, after which
        the pending block is removed and the exported entries are unstaged.

        Args:
            stream_id: Stream the export came from
            text: Reply as pasted by the user
            target_entry_id: Entry to commit onto; None creates an assistant entry
            expected_pending_block_id: Block the caller believes is pending

        Raises:
            NotFoundError: If the stream, its pending block or the target entry is missing
            ConflictError: If `expected_pending_block_id` is stale
        """
        async with self._stream_locks[stream_id]:
            if await self.store.get_stream(stream_id) is None:
                raise NotFoundError(f"Stream not found: {stream_id}", {"stream_id": stream_id})

            block = await self.store.get_pending_block(stream_id)
            if block is None:
                raise NotFoundError(
                    f"No pending block for stream {stream_id}", {"stream_id": stream_id}
                )
            if expected_pending_block_id and expected_pending_block_id != block.id:
                raise ConflictError(
                    "Pending block was replaced by a newer export",
                    {"expected": expected_pending_block_id, "current": block.id},
                )

            if not self.validate_bridge_key(text, block.bridge_key):
                found_key = self.extract_bridge_key(text)
                logger.warning(
                    "Reply does not carry the expected bridge key",
                    extra={"stream_id": stream_id, "found_key": found_key},
                )
                return BridgeImportResult(
                    matched=False,
                    pending_block_id=block.id,
                    expected_key=block.bridge_key,
                    found_key=found_key,
                )

            parsed = parse_reply(text)
            document = text_to_document(parsed.content)
            message = f"Bridge import ({block.directive.value})"

            if target_entry_id is not None:
                target = await self.store.get_entry(target_entry_id)
                if target is None or target.stream_id != stream_id:
                    raise NotFoundError(
                        f"Entry not found in stream {stream_id}: {target_entry_id}",
                        {"stream_id": stream_id, "entry_id": target_entry_id},
                    )
                version = await self.versions.commit(target.id, content=document, message=message)
            else:
                model = parsed.ai_model or "Unknown"
                target = await self.store.create_entry(
                    stream_id,
                    EntryRole.ASSISTANT,
                    document,
                    parent_context_ids=block.staged_entry_ids,
                    ai_metadata=AiMetadata(
                        model=model,
                        provider=provider_for_model(model),
                        directive=block.directive.value,
                        bridge_key=block.bridge_key,
                        summary=parsed.summary,
                    ),
                )
                try:
                    version = await self.versions.commit(target.id, message=message)
                except KolamError:
                    logger.error(
                        f"Import commit failed, removing new entry {target.id}",
                        extra={"stream_id": stream_id, "entry_id": target.id},
                    )
                    await self.store.delete_entry(target.id)
                    self.versions.forget(target.id)
                    raise

            await self.store.delete_pending_block(block.id)

            if self.staging.stream_id == stream_id:
                for entry_id in block.staged_entry_ids:
                    self.staging.unstage(entry_id)
                await self.store.set_staged_flags(stream_id, sorted(self.staging.staged_ids()))

            entry = await self.store.get_entry(target.id)

        logger.info(
            f"Imported reply into {target.id} v{version.version_number}",
            extra={
                "operation": "import_reply",
                "stream_id": stream_id,
                "structured": parsed.is_structured,
            },
        )
        return BridgeImportResult(
            matched=True,
            pending_block_id=block.id,
            expected_key=block.bridge_key,
            found_key=parsed.bridge_key,
            entry=entry,
            version=version,
            warnings=parsed.warnings,
        )
