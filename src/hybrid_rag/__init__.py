"""
Hybrid RAG — document ingestion into a vector + knowledge-graph store and
citation-grounded question answering on top of it.

Subpackages
-----------
- :mod:`hybrid_rag.ingestion` — conversion, chunking, per-chunk embedding /
  extraction with progress reporting.
- :mod:`hybrid_rag.retrieval` — knowledge-store backends, hybrid retrieval and
  citation assembly.
- :mod:`hybrid_rag.providers` — LLM / embedding provider behind a shared,
  reconfigurable cell.
- :mod:`hybrid_rag.serving` — FastAPI application.
"""

__version__ = "0.1.0"
