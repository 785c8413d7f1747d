"""
Kolam FastAPI Application

A REST API server for the Kolam core: streams and entries, staging,
entry version control and the bridge protocol (export / import of
AI conversations).
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.config import Config
from src.models import (
    BridgeImportResult,
    BulkProfileResult,
    Directive,
    Entry,
    EntryVersion,
    PendingBlock,
    Profile,
    ProfileRole,
    Stream,
    StreamDetails,
    StreamMetadata,
    TokenUsage,
)
from src.services.bridge import BridgeProtocolEngine
from src.services.kolam_engine import KolamEngine
from src.utils.exceptions import (
    ConflictError,
    KolamError,
    NotFoundError,
    ValidationError,
)
from src.utils.logger import get_logger, setup_logging

# Global engine instance
engine: KolamEngine | None = None
logger = get_logger(__name__)


# Pydantic models for API
class CreateStreamRequest(BaseModel):
    """Request model for creating a stream."""

    title: str = Field(..., min_length=1)
    description: str | None = None
    tags: list[str] | None = None
    color: str | None = None
    pinned: bool = False


class UpdateStreamRequest(BaseModel):
    """Request model for updating a stream; omitted fields are unchanged."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    tags: list[str] | None = None
    color: str | None = None
    pinned: bool | None = None


class CreateEntryRequest(BaseModel):
    """Request model for creating an entry from a document or Markdown text."""

    content: dict[str, Any] | None = None
    text: str | None = None
    profile_id: str | None = None


class UpdateEntryContentRequest(BaseModel):
    content: dict[str, Any]


class CreateProfileRequest(BaseModel):
    name: str = Field(..., min_length=1)
    role: ProfileRole = ProfileRole.SELF
    color: str | None = None
    initials: str | None = None
    bio: str | None = None
    is_default: bool = False


class BulkProfileRequest(BaseModel):
    profile_id: str | None = None


class CommitVersionRequest(BaseModel):
    """Request model for committing a version; no content snapshots the draft."""

    content: dict[str, Any] | None = None
    message: str | None = None


class ValidateKeyRequest(BaseModel):
    text: str
    bridge_key: str


class ExtractKeyRequest(BaseModel):
    text: str


class ExportRequest(BaseModel):
    """Request model for exporting the staged entries."""

    directive: Directive | None = None
    model: str | None = Field(default=None, description="Target model for the token budget")


class ExportResponse(BaseModel):
    """Response model for an export."""

    pending_block: PendingBlock
    bridge_key: str
    prompt: str
    staged_entry_ids: list[str]
    token_usage: TokenUsage


class ImportRequest(BaseModel):
    """Request model for importing an AI reply."""

    text: str
    target_entry_id: str | None = None
    expected_pending_block_id: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    engine_initialized: bool
    store: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global engine

    # Load configuration from environment or use defaults
    config = Config.from_env()

    # Initialize logging with config
    setup_logging(config.logging)

    logger.info("Starting Kolam server")
    logger.info(
        f"Configuration: store={config.store.backend} ({config.store.db_path}), "
        f"tokenizer={config.tokenizer.provider}/{config.tokenizer.model}"
    )

    engine = KolamEngine(config=config)
    await engine.initialize()
    logger.info("Kolam engine initialized")

    yield

    # Cleanup
    logger.info("Shutting down Kolam server")
    await engine.close()
    engine = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Kolam API",
    description="Versioned note streams with a copy-paste bridge to external AI chats",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_code(error: KolamError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, ValidationError):
        return 422
    return 500


@app.exception_handler(KolamError)
async def kolam_error_handler(request: Request, exc: KolamError):
    """Translate domain errors into HTTP responses."""
    status_code = _status_code(exc)
    if status_code == 500:
        logger.error(f"Error handling {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__, "context": exc.context},
    )


def _engine() -> KolamEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if engine else "initializing",
        engine_initialized=engine is not None,
        store=engine.config.store.backend if engine else "none",
    )


# Stream endpoints
@app.post("/streams", response_model=Stream, status_code=201)
async def create_stream(request: CreateStreamRequest):
    return await _engine().streams.create_stream(**request.model_dump())


@app.get("/streams", response_model=list[StreamMetadata])
async def list_streams():
    """List streams, pinned first, then most recently updated."""
    return await _engine().streams.list_streams()


@app.get("/streams/{stream_id}", response_model=StreamDetails)
async def get_stream(stream_id: str):
    return await _engine().streams.get_stream_details(stream_id)


@app.post("/streams/{stream_id}/open", response_model=StreamDetails)
async def open_stream(stream_id: str):
    """
    Make a stream the active one.

    Staging always belongs to the active stream, so switching streams
    clears it.
    """
    return await _engine().streams.open_stream(stream_id)


@app.patch("/streams/{stream_id}", response_model=Stream)
async def update_stream(stream_id: str, request: UpdateStreamRequest):
    return await _engine().streams.update_stream(stream_id, **request.model_dump())


@app.delete("/streams/{stream_id}")
async def delete_stream(stream_id: str):
    """Delete a stream with its entries, versions and pending block."""
    await _engine().streams.delete_stream(stream_id)
    return {"id": stream_id, "deleted": True}


# Entry endpoints
@app.post("/streams/{stream_id}/entries", response_model=Entry, status_code=201)
async def create_entry(stream_id: str, request: CreateEntryRequest):
    return await _engine().streams.create_entry(
        stream_id,
        content=request.content,
        text=request.text,
        profile_id=request.profile_id,
    )


@app.get("/entries/search", response_model=list[Entry])
async def search_entries(q: str = Query(..., min_length=1), limit: int = Query(50, ge=1, le=500)):
    """Substring search over entry content."""
    return await _engine().streams.search_entries(q, limit)


@app.get("/entries/{entry_id}", response_model=Entry)
async def get_entry(entry_id: str):
    return await _engine().streams.get_entry(entry_id)


@app.put("/entries/{entry_id}/content", response_model=Entry)
async def update_entry_content(entry_id: str, request: UpdateEntryContentRequest):
    """Save a draft without committing a version."""
    return await _engine().streams.update_entry_content(entry_id, request.content)


@app.delete("/entries/{entry_id}")
async def delete_entry(entry_id: str):
    await _engine().streams.delete_entry(entry_id)
    return {"id": entry_id, "deleted": True}


# Staging endpoints
@app.get("/staging", response_model=list[Entry])
async def get_staged_entries():
    """Staged entries of the active stream in sequence order."""
    return await _engine().streams.staged_entries()


@app.post("/staging/all")
async def stage_all():
    staged = await _engine().streams.stage_all()
    return {"staged_entry_ids": staged}


@app.delete("/staging")
async def clear_staging():
    await _engine().streams.clear_staging()
    return {"cleared": True}


@app.post("/staging/profile", response_model=BulkProfileResult)
async def bulk_update_entry_profile(request: BulkProfileRequest):
    """Assign a profile to every staged user entry; assistant entries are skipped."""
    return await _engine().streams.bulk_update_entry_profile(request.profile_id)


@app.post("/staging/{entry_id}")
async def stage_entry(entry_id: str):
    await _engine().streams.stage(entry_id)
    return {"id": entry_id, "staged": True}


@app.delete("/staging/{entry_id}")
async def unstage_entry(entry_id: str):
    await _engine().streams.unstage(entry_id)
    return {"id": entry_id, "staged": False}


@app.post("/staging/{entry_id}/toggle")
async def toggle_entry(entry_id: str):
    staged = await _engine().streams.toggle_staging(entry_id)
    return {"id": entry_id, "staged": staged}


# Profile endpoints
@app.post("/profiles", response_model=Profile, status_code=201)
async def create_profile(request: CreateProfileRequest):
    return await _engine().streams.create_profile(**request.model_dump())


@app.get("/profiles", response_model=list[Profile])
async def list_profiles():
    return await _engine().streams.list_profiles()


@app.get("/profiles/{profile_id}", response_model=Profile)
async def get_profile(profile_id: str):
    return await _engine().streams.get_profile(profile_id)


# Version endpoints
@app.post("/entries/{entry_id}/versions", response_model=EntryVersion, status_code=201)
async def commit_entry_version(entry_id: str, request: CommitVersionRequest | None = None):
    """
    Commit a new version of an entry.

    Without content the entry's current draft is snapshotted. Version
    numbers are allocated by the store: previous latest + 1.
    """
    request = request or CommitVersionRequest()
    return await _engine().versions.commit(
        entry_id, content=request.content, message=request.message
    )


@app.get("/entries/{entry_id}/versions", response_model=list[EntryVersion])
async def get_entry_versions(entry_id: str):
    """All versions of an entry in ascending order."""
    return await _engine().versions.list_versions(entry_id)


@app.get("/entries/{entry_id}/versions/latest", response_model=EntryVersion | None)
async def get_latest_version(entry_id: str):
    return await _engine().versions.get_latest(entry_id)


@app.get("/entries/{entry_id}/versions/{version_number}", response_model=EntryVersion | None)
async def get_version_by_number(entry_id: str, version_number: int):
    return await _engine().versions.get_by_number(entry_id, version_number)


@app.post(
    "/entries/{entry_id}/versions/{version_number}/revert",
    response_model=EntryVersion,
    status_code=201,
)
async def revert_to_version(entry_id: str, version_number: int):
    """
    Revert an entry by committing an earlier version's snapshot as a new version.

    History is never rewritten; the revert itself can be reverted.
    """
    return await _engine().versions.revert(entry_id, version_number)


# Bridge endpoints
@app.post("/bridge/keys")
async def generate_bridge_key():
    """Draw a bridge key not held by any pending export."""
    return {"bridge_key": await _engine().bridge.generate_bridge_key()}


@app.post("/bridge/validate")
async def validate_bridge_key(request: ValidateKeyRequest):
    return {"valid": BridgeProtocolEngine.validate_bridge_key(request.text, request.bridge_key)}


@app.post("/bridge/extract")
async def extract_bridge_key(request: ExtractKeyRequest):
    """Diagnostic only: report the first marker key found in the text."""
    return {"bridge_key": BridgeProtocolEngine.extract_bridge_key(request.text)}


@app.post("/streams/{stream_id}/export", response_model=ExportResponse, status_code=201)
async def create_export(stream_id: str, request: ExportRequest | None = None):
    """
    Export the staged entries of the active stream.

    Creates the stream's pending block, replacing any earlier one. The
    returned prompt ends with a single `[[BRIDGE:<key>]]` line.
    """
    request = request or ExportRequest()
    export = await _engine().bridge.generate_export(
        stream_id, directive=request.directive, model=request.model
    )
    return ExportResponse(
        pending_block=export.pending_block,
        bridge_key=export.bridge_key,
        prompt=export.prompt,
        staged_entry_ids=export.staged_entry_ids,
        token_usage=export.token_usage,
    )


@app.get("/streams/{stream_id}/pending", response_model=PendingBlock | None)
async def get_pending_block(stream_id: str):
    return await _engine().bridge.get_pending_block(stream_id)


@app.delete("/streams/{stream_id}/pending")
async def discard_pending_block(stream_id: str):
    discarded = await _engine().bridge.discard(stream_id)
    return {"stream_id": stream_id, "discarded": discarded}


@app.delete("/pending/{pending_block_id}")
async def delete_pending_block(pending_block_id: str):
    await _engine().bridge.delete_pending_block(pending_block_id)
    return {"id": pending_block_id, "deleted": True}


@app.post("/streams/{stream_id}/import", response_model=BridgeImportResult)
async def import_reply(stream_id: str, request: ImportRequest):
    """
    Import an AI reply for the stream's pending export.

    A reply without the expected key is not an error: the response has
    `matched: false` and the pending export is kept.
    """
    return await _engine().bridge.import_reply(
        stream_id,
        request.text,
        target_entry_id=request.target_entry_id,
        expected_pending_block_id=request.expected_pending_block_id,
    )


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Kolam API",
        "version": "1.0.0",
        "description": "Versioned note streams with a copy-paste bridge to external AI chats",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
