"""Ingestion pipeline — chunk, embed, extract and persist a document.

Two entry points share the same building blocks but differ in failure
policy:

* :meth:`IngestionService.ingest_with_progress` — bulk documents.  Chunks
  are processed one at a time, in order.  A provider failure on one chunk
  is reported as a warning and the pipeline moves on; only store failures
  abort the document.
* :meth:`IngestionService.ingest_text` — a short text stored as a single
  chunk within one request.  Provider failures are returned to the caller
  (extraction gets one retry first).
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from hybrid_rag.errors import AIError, ParseError, ValidationError
from hybrid_rag.ingestion.chunker import CHUNK_OVERLAP, CHUNK_SIZE, SlidingWindowTextSplitter
from hybrid_rag.ingestion.progress import ProgressEvent
from hybrid_rag.models import Chunk

if TYPE_CHECKING:
    from hybrid_rag.ingestion.progress import ProgressChannel
    from hybrid_rag.models import KnowledgeExtraction
    from hybrid_rag.providers.base import AIService
    from hybrid_rag.providers.shared import SharedAIService
    from hybrid_rag.retrieval.base import KnowledgeStore

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 5


class IngestionService:
    """Drives documents through the chunk → embed → extract → persist pipeline.

    Parameters
    ----------
    store:
        Knowledge store receiving chunks and graph data.
    ai:
        Shared provider used for embeddings and extraction.
    chunk_size:
        Target chunk length in characters.
    chunk_overlap:
        Characters shared by consecutive chunks.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        ai: SharedAIService,
        *,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
    ) -> None:
        self._store = store
        self._ai = ai
        self._splitter = SlidingWindowTextSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)

    # -- streaming mode -------------------------------------------------------

    async def ingest_with_progress(self, content: str, progress: ProgressChannel) -> uuid.UUID:
        """Ingest a whole document, publishing progress events as it goes.

        Returns
        -------
        uuid.UUID
            Identifier grouping the document's chunks.

        Raises
        ------
        ValidationError
            *content* is empty or too short.
        DatabaseError
            The store failed; the document is abandoned at that chunk.
        """
        _check_content(content)

        chunks = self._splitter.split_text(content)
        total = len(chunks)
        doc_group_id = uuid.uuid4()
        stored = 0
        progress.publish(ProgressEvent.info(f"Document split into {total} chunk(s)."))
        logger.info("Ingesting document %s: %d chunk(s)", doc_group_id, total)

        for step, chunk_text in enumerate(chunks, 1):
            # One reader session per chunk: a reset cannot land between the
            # embedding and the writes that depend on it.
            async with self._ai.session() as ai:
                if await self._ingest_chunk(ai, chunk_text, step, total, progress):
                    stored += 1

        logger.info("Document %s processed: %d/%d chunk(s) stored", doc_group_id, stored, total)
        progress.publish(ProgressEvent.info(f"Document processed: {stored}/{total} chunk(s) stored."))
        progress.publish(ProgressEvent.done())
        return doc_group_id

    async def _ingest_chunk(
        self,
        ai: AIService,
        chunk_text: str,
        step: int,
        total: int,
        progress: ProgressChannel,
    ) -> bool:
        """Embed, store and link one chunk; return whether it was stored."""
        progress.publish(ProgressEvent.info("Generating embedding...", step, total))
        try:
            embedding = await ai.generate_embedding(chunk_text)
        except AIError as exc:
            logger.warning("Embedding failed for chunk %d/%d: %s", step, total, exc)
            progress.publish(
                ProgressEvent.warning(f"Embedding failed: {exc}. Skipping chunk.", step, total)
            )
            return False

        chunk = await self._store_chunk(chunk_text, embedding)

        progress.publish(ProgressEvent.info("Extracting knowledge...", step, total))
        try:
            extraction = await ai.extract_knowledge(chunk_text)
        except (AIError, ParseError) as exc:
            logger.warning("Extraction failed for chunk %d/%d: %s", step, total, exc)
            progress.publish(ProgressEvent.warning(f"Entity extraction failed: {exc}", step, total))
            return True

        progress.publish(
            ProgressEvent.info(
                f"Linking {len(extraction.entities)} entities into the graph...", step, total
            )
        )
        await self._store.save_graph(chunk.id, extraction)
        return True

    # -- single-shot mode -----------------------------------------------------

    async def ingest_text(self, content: str) -> uuid.UUID:
        """Store *content* as one chunk and attach its knowledge graph.

        Returns
        -------
        uuid.UUID
            The chunk id.

        Raises
        ------
        AIError
            Embedding failed, or extraction failed twice.
        ParseError
            Extraction output was unparseable twice.
        DatabaseError
            The store failed.
        """
        _check_content(content)

        async with self._ai.session() as ai:
            embedding = await ai.generate_embedding(content)
            chunk = await self._store_chunk(content, embedding)

            extraction = await _extract_with_retry(ai, content)
            await self._store.save_graph(chunk.id, extraction)
        logger.info(
            "Ingested chunk %s with %d entities", chunk.id, len(extraction.entities)
        )
        return chunk.id

    async def _store_chunk(self, text: str, embedding: list[float]) -> Chunk:
        chunk = Chunk(id=uuid.uuid4(), text=text, embedding=embedding)
        await self._store.save_chunk(chunk.id, chunk.text, chunk.embedding)
        return chunk


async def _extract_with_retry(ai: AIService, text: str) -> KnowledgeExtraction:
    """Extract once, retry exactly once; the second failure propagates."""
    try:
        return await ai.extract_knowledge(text)
    except (AIError, ParseError) as exc:
        logger.warning("Extraction failed, retrying once: %s", exc)
    return await ai.extract_knowledge(text)


def _check_content(content: str) -> None:
    if len(content.strip()) < MIN_CONTENT_LENGTH:
        raise ValidationError("Content is empty or too short")
