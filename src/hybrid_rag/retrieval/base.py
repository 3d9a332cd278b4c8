"""Abstract base class for knowledge-store backends.

A knowledge store keeps two kinds of data side by side: chunk vectors
(for similarity search) and the entity / relation graph extracted from
those chunks.  Adding a new backend only requires subclassing
:class:`KnowledgeStore` and implementing the abstract methods.  The rest
of the stack is backend-agnostic.

Every method raises :class:`~hybrid_rag.errors.DatabaseError` on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from hybrid_rag.models import GraphData, HybridContext, KnowledgeExtraction


class KnowledgeStore(ABC):
    """Backend-agnostic vector + graph store interface."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def save_chunk(self, chunk_id: UUID, text: str, embedding: list[float]) -> None:
        """Persist a chunk and its embedding."""
        ...

    @abstractmethod
    async def save_graph(self, chunk_id: UUID, extraction: KnowledgeExtraction) -> None:
        """Attach *extraction* to the chunk, merging entities by name."""
        ...

    @abstractmethod
    async def find_hybrid_context(self, embedding: list[float], k: int) -> list[HybridContext]:
        """Return up to *k* chunks nearest to *embedding* with their graph neighbourhood.

        Results are ordered most-similar first.
        """
        ...

    @abstractmethod
    async def get_full_graph(self) -> GraphData:
        """Return every entity and relation for visualisation."""
        ...

    @abstractmethod
    async def reset_database(self) -> None:
        """Delete all chunks, entities, relations and the vector index."""
        ...

    @abstractmethod
    async def create_indexes(self, dim: int) -> None:
        """(Re)create the vector index for embeddings of size *dim*."""
        ...

    # -- optional overrides ---------------------------------------------------

    async def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        return True

    async def close(self) -> None:
        """Release connections.  No-op by default."""
