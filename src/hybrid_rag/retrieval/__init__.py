"""
Retrieval — knowledge-store backends, hybrid search and citation assembly.

This module wraps the store behind a clean interface so that the serving
layer never needs to know which database is backing retrieval.

Public surface
--------------
- :class:`KnowledgeStore` — abstract backend.
- :class:`Neo4jKnowledgeStore` — default Neo4j backend.
- :class:`HybridRetriever` — vector + graph retrieval entry point.
- :class:`CitationPromptAssembler` — numbered evidence and source list.
- :func:`answer_question` — end-to-end cited answer.
"""

from hybrid_rag.retrieval.answer import answer_question
from hybrid_rag.retrieval.base import KnowledgeStore
from hybrid_rag.retrieval.citations import CitationBundle, CitationPromptAssembler
from hybrid_rag.retrieval.retriever import HybridRetriever

__all__ = [
    "CitationBundle",
    "CitationPromptAssembler",
    "HybridRetriever",
    "KnowledgeStore",
    "Neo4jKnowledgeStore",
    "answer_question",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import Neo4jKnowledgeStore to avoid pulling in the driver at import time."""
    if name == "Neo4jKnowledgeStore":
        from hybrid_rag.retrieval.neo4j_store import Neo4jKnowledgeStore

        return Neo4jKnowledgeStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
