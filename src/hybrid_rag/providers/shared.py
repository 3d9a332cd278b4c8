"""Process-wide provider cell guarded by a single read-write lock.

Every embedding / extraction / generation call holds the reader side, so
any number of calls run concurrently.  Reconfiguration holds the writer
side for the whole store reset and swap, which waits for in-flight calls
and blocks new ones until it is done.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import aiorwlock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from langchain_core.messages import BaseMessage

    from hybrid_rag.models import AIConfig, KnowledgeExtraction
    from hybrid_rag.providers.base import AIService


class SharedAIService:
    """Concurrency-safe facade over an :class:`AIService`.

    Parameters
    ----------
    service:
        The provider backend.  Only this facade may reconfigure it.
    """

    def __init__(self, service: AIService) -> None:
        self._service = service
        self._lock = aiorwlock.RWLock()

    # -- reader side ------------------------------------------------------------

    async def generate_embedding(self, text: str) -> list[float]:
        async with self._lock.reader_lock:
            return await self._service.generate_embedding(text)

    async def extract_knowledge(self, text: str) -> KnowledgeExtraction:
        async with self._lock.reader_lock:
            return await self._service.extract_knowledge(text)

    async def generate(self, messages: list[BaseMessage]) -> str:
        async with self._lock.reader_lock:
            return await self._service.generate(messages)

    async def current_config(self) -> AIConfig:
        async with self._lock.reader_lock:
            return self._service.get_config()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AIService]:
        """Hold the reader side across several calls.

        Used when provider calls and the store writes depending on them must
        all see the same configuration.  The yielded backend must not be
        reconfigured.
        """
        async with self._lock.reader_lock:
            yield self._service

    def get_config(self) -> AIConfig:
        """Lock-free snapshot; configs are immutable so a stale read is harmless."""
        return self._service.get_config()

    # -- writer side ------------------------------------------------------------

    def validate_config(self, config: AIConfig) -> None:
        self._service.validate_config(config)

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[AIService]:
        """Hold the writer side; waits for in-flight calls and sessions."""
        async with self._lock.writer_lock:
            yield self._service
