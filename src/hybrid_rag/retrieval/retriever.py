"""Hybrid retriever — vector search plus graph neighbourhood, via the store.

The store does the heavy lifting (similarity search, graph expansion,
scoring).  This class only decides *how many* contexts to request and
hands them on untouched, so that the position of each context is the
citation index used downstream.

Usage::

    retriever = HybridRetriever(store, ai=shared_ai)
    contexts  = await retriever.search("Who founded the company?", k=5)
    for ctx in contexts:
        print(ctx.chunk_id, ctx.connected_entities)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hybrid_rag.models import HybridContext
    from hybrid_rag.providers.shared import SharedAIService
    from hybrid_rag.retrieval.base import KnowledgeStore

logger = logging.getLogger(__name__)


class HybridRetriever:
    """High-level retriever that wraps any :class:`KnowledgeStore`.

    Parameters
    ----------
    store:
        A concrete knowledge-store backend.
    ai:
        Provider used by :meth:`search` to embed text queries.  Optional
        when only :meth:`retrieve` is used.
    default_k:
        Default number of contexts requested from the store.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        *,
        ai: SharedAIService | None = None,
        default_k: int = 5,
    ) -> None:
        if default_k <= 0:
            raise ValueError(f"default_k must be positive, got {default_k}")
        self._store = store
        self._ai = ai
        self.default_k = default_k

    # -- public API -----------------------------------------------------------

    async def retrieve(self, query_embedding: list[float], *, k: int | None = None) -> list[HybridContext]:
        """Return at most *k* contexts for a pre-computed query embedding.

        Order is preserved exactly as the store returned it.
        """
        if k is None:
            k = self.default_k
        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")
        contexts = await self._store.find_hybrid_context(query_embedding, k)
        if len(contexts) > k:
            logger.warning("Store returned %d contexts for k=%d; truncating", len(contexts), k)
            contexts = contexts[:k]
        logger.info("Hybrid retrieval returned %d context(s) (k=%d)", len(contexts), k)
        return contexts

    async def search(self, query: str, *, k: int | None = None) -> list[HybridContext]:
        """Embed *query* with the shared provider, then :meth:`retrieve`."""
        if self._ai is None:
            raise RuntimeError("HybridRetriever.search needs an AI provider; use retrieve()")
        embedding = await self._ai.generate_embedding(query)
        return await self.retrieve(embedding, k=k)
