"""Process entry point: ``python -m hybrid_rag.serving``."""

from __future__ import annotations

import logging

import uvicorn

from hybrid_rag.config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Starting Hybrid RAG API on %s:%d", settings.host, settings.port)
    uvicorn.run("hybrid_rag.serving.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
