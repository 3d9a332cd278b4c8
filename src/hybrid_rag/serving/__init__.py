"""
Serving — FastAPI application for ingestion, graph exploration, chat and
administration.

Run locally with ``python -m hybrid_rag.serving``.
"""
