"""FastAPI application exposing ingestion, graph, chat and admin endpoints."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from hybrid_rag.admin import AdminResetGuard, ReconfigurationRequest
from hybrid_rag.config import Settings, settings
from hybrid_rag.errors import HybridRagError
from hybrid_rag.ingestion.loader import to_text
from hybrid_rag.ingestion.pipeline import IngestionService
from hybrid_rag.ingestion.progress import ProgressChannel, ProgressEvent
from hybrid_rag.models import ChatResponse, GraphData
from hybrid_rag.retrieval.answer import answer_question
from hybrid_rag.retrieval.citations import CitationPromptAssembler
from hybrid_rag.retrieval.retriever import HybridRetriever
from hybrid_rag.serving.schemas import (
    ChatRequest,
    IngestionResponse,
    IngestTextRequest,
    StatusResponse,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Coroutine

    from hybrid_rag.providers.shared import SharedAIService
    from hybrid_rag.retrieval.base import KnowledgeStore

logger = logging.getLogger(__name__)


# ── Service container ─────────────────────────────────────────────────


@dataclass
class AppServices:
    """Everything the routes need, built once per process.

    ``tasks`` holds strong references to running ingestion tasks so they
    are not garbage-collected before completion.
    """

    store: KnowledgeStore
    ai: SharedAIService
    settings: Settings
    ingestion: IngestionService = field(init=False)
    retriever: HybridRetriever = field(init=False)
    assembler: CitationPromptAssembler = field(init=False)
    guard: AdminResetGuard = field(init=False)
    tasks: set[asyncio.Task] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.ingestion = IngestionService(
            self.store,
            self.ai,
            chunk_size=self.settings.chunk_size,
            chunk_overlap=self.settings.chunk_overlap,
        )
        self.retriever = HybridRetriever(self.store, ai=self.ai, default_k=self.settings.retrieval_k)
        self.assembler = CitationPromptAssembler()
        self.guard = AdminResetGuard(self.store, self.ai)

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        """Run *coro* as a detached background task."""
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task


async def build_services(cfg: Settings) -> AppServices:
    """Connect the default backends (Neo4j + LangChain provider)."""
    from hybrid_rag.providers.langchain_service import LangChainAIService
    from hybrid_rag.providers.shared import SharedAIService
    from hybrid_rag.retrieval.neo4j_store import Neo4jKnowledgeStore

    ai_config = cfg.initial_ai_config()
    ai = SharedAIService(LangChainAIService(ai_config))
    store = await Neo4jKnowledgeStore.connect(
        cfg.neo4j_uri, cfg.neo4j_user, cfg.neo4j_pass, database=cfg.neo4j_database
    )
    await store.create_indexes(ai_config.embedding_dim)
    return AppServices(store=store, ai=ai, settings=cfg)


def get_services(request: Request) -> AppServices:
    return request.app.state.services


# ── Routes ────────────────────────────────────────────────────────────

router = APIRouter()


@router.get("/health")
async def health(services: AppServices = Depends(get_services)) -> dict[str, str]:
    """Liveness check; also reports whether the knowledge store answers."""
    database = "up" if await services.store.health_check() else "down"
    return {"status": "ok", "database": database}


@router.post("/admin/config", response_model=StatusResponse, tags=["admin"])
async def update_config(
    payload: ReconfigurationRequest,
    services: AppServices = Depends(get_services),
) -> StatusResponse:
    """Reset the knowledge store and swap the AI configuration.

    Refused with 403 unless ``force_reset`` is true.
    """
    await services.guard.reconfigure(payload)
    return StatusResponse(status="System reset and reconfigured successfully")


@router.post("/ingest", tags=["ingestion"])
async def ingest_document(
    file: UploadFile | None = File(default=None),
    content: str | None = Form(default=None),
    services: AppServices = Depends(get_services),
) -> StreamingResponse:
    """Ingest an uploaded file or raw text, streaming one progress line per event.

    The work runs in a background task that is not tied to this connection:
    a client that disconnects only stops receiving lines.  ``DONE`` marks
    success; lines starting with ``ERROR:`` mark a fatal failure.
    """
    channel = ProgressChannel(maxsize=services.settings.progress_queue_size)

    filename: str | None = None
    data: bytes | None = None
    upload_error: str | None = None
    if file is not None:
        filename = file.filename or "file"
        try:
            data = await file.read()
        except (OSError, RuntimeError) as exc:
            logger.warning("Upload of %s failed: %s", filename, exc)
            upload_error = f"Upload failed: {exc}"

    services.spawn(
        _run_ingestion(
            services,
            channel,
            filename=filename,
            data=data,
            text=content,
            upload_error=upload_error,
        )
    )
    return StreamingResponse(_stream_lines(channel), media_type="text/plain; charset=utf-8")


@router.post("/ingest/text", response_model=IngestionResponse, tags=["ingestion"])
async def ingest_text(
    payload: IngestTextRequest,
    services: AppServices = Depends(get_services),
) -> IngestionResponse:
    """Store a short text as one chunk; provider failures fail the request."""
    chunk_id = await services.ingestion.ingest_text(payload.content)
    return IngestionResponse(id=str(chunk_id), status="ingested")


@router.get("/graph", response_model=GraphData, tags=["visualization"])
async def get_graph(services: AppServices = Depends(get_services)) -> GraphData:
    """Retrieve the full entity graph for visualisation."""
    return await services.store.get_full_graph()


@router.post("/chat", response_model=ChatResponse, tags=["chat"])
async def chat(
    request: ChatRequest,
    services: AppServices = Depends(get_services),
) -> ChatResponse:
    """Answer a question from the knowledge base with numbered citations."""
    return await answer_question(
        request.message,
        ai=services.ai,
        retriever=services.retriever,
        assembler=services.assembler,
    )


# ── Ingestion task ────────────────────────────────────────────────────


async def _run_ingestion(
    services: AppServices,
    channel: ProgressChannel,
    *,
    filename: str | None,
    data: bytes | None,
    text: str | None,
    upload_error: str | None = None,
) -> None:
    try:
        if upload_error is not None:
            channel.publish(ProgressEvent.error(upload_error))
            return
        if data is not None:
            channel.publish(ProgressEvent.info(f"Reading file: {filename}..."))
            channel.publish(ProgressEvent.info("Parsing content..."))
            content = await asyncio.to_thread(to_text, filename, data)
        else:
            content = text or ""
            if content:
                channel.publish(ProgressEvent.info("Received direct text..."))
        await services.ingestion.ingest_with_progress(content, channel)
    except HybridRagError as exc:
        logger.warning("Ingestion aborted: %s", exc)
        channel.publish(ProgressEvent.error(exc.message))
    except Exception:
        logger.exception("Ingestion task crashed")
        channel.publish(ProgressEvent.error("Internal error"))
    finally:
        channel.close()


async def _stream_lines(channel: ProgressChannel) -> AsyncIterator[str]:
    async for event in channel.events():
        yield f"{event.render()}\n"


# ── Error handling ────────────────────────────────────────────────────


async def _domain_error_handler(request: Request, exc: HybridRagError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message()})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Input values are left out; they may carry secrets.
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Validation error", "detail": details})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal error"})


# ── Application factory ───────────────────────────────────────────────


def create_app(services: AppServices | None = None, *, cfg: Settings = settings) -> FastAPI:
    """Build the FastAPI application.

    Parameters
    ----------
    services:
        Pre-built services (tests, embedding).  When ``None`` the lifespan
        connects the default backends from *cfg* on startup.
    cfg:
        Settings used when *services* is not supplied.
    """

    @asynccontextmanager
    async def lifespan(application: FastAPI):  # noqa: ANN202
        owned = getattr(application.state, "services", None) is None
        if owned:
            application.state.services = await build_services(cfg)
        logger.info("Hybrid RAG API ready")
        yield
        running: AppServices = application.state.services
        if running.tasks:
            logger.info("Waiting for %d ingestion task(s) to finish", len(running.tasks))
            await asyncio.wait(set(running.tasks))
        if owned:
            await running.store.close()

    application = FastAPI(
        title="Hybrid RAG API",
        version="0.1.0",
        description="Document ingestion into a vector + knowledge-graph store and cited chat answers.",
        lifespan=lifespan,
    )
    if services is not None:
        application.state.services = services

    application.add_middleware(
        CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]
    )
    application.add_exception_handler(HybridRagError, _domain_error_handler)
    application.add_exception_handler(RequestValidationError, _request_validation_handler)
    application.add_exception_handler(Exception, _unhandled_error_handler)
    application.include_router(router)
    return application


app = create_app()
