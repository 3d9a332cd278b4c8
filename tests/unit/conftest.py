"""In-memory fakes for the knowledge store and the AI provider."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING
from uuid import UUID

import pytest
from pydantic import SecretStr

from hybrid_rag.errors import AIError, ConfigError, DatabaseError
from hybrid_rag.models import (
    AIConfig,
    AIProvider,
    GraphData,
    GraphEntity,
    GraphRelation,
    HybridContext,
    KnowledgeExtraction,
)
from hybrid_rag.providers.base import AIService
from hybrid_rag.providers.shared import SharedAIService
from hybrid_rag.retrieval.base import KnowledgeStore

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage


# ── Fake knowledge store ────────────────────────────────────────────────


class FakeKnowledgeStore(KnowledgeStore):
    """Records every call; ``fail_on`` makes the named operations raise."""

    def __init__(
        self,
        contexts: list[HybridContext] | None = None,
        graph: GraphData | None = None,
    ) -> None:
        self.chunks: dict[UUID, tuple[str, list[float]]] = {}
        self.graphs: dict[UUID, KnowledgeExtraction] = {}
        self.contexts: list[HybridContext] = contexts or []
        self.graph = graph or GraphData()
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self.index_dim: int | None = None
        self.last_k: int | None = None

    def _record(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail_on:
            raise DatabaseError(f"{op} failed")

    async def save_chunk(self, chunk_id: UUID, text: str, embedding: list[float]) -> None:
        self._record("save_chunk")
        self.chunks[chunk_id] = (text, embedding)

    async def save_graph(self, chunk_id: UUID, extraction: KnowledgeExtraction) -> None:
        self._record("save_graph")
        self.graphs[chunk_id] = extraction

    async def find_hybrid_context(self, embedding: list[float], k: int) -> list[HybridContext]:
        self._record("find_hybrid_context")
        self.last_k = k
        return self.contexts[:k]

    async def get_full_graph(self) -> GraphData:
        self._record("get_full_graph")
        return self.graph

    async def reset_database(self) -> None:
        self._record("reset_database")
        self.chunks.clear()
        self.graphs.clear()

    async def create_indexes(self, dim: int) -> None:
        self._record("create_indexes")
        self.index_dim = dim


# ── Fake provider ──────────────────────────────────────────────────────


DEFAULT_EXTRACTION = KnowledgeExtraction(
    entities=[
        GraphEntity(name="Ada Lovelace", category="Person"),
        GraphEntity(name="Analytical Engine", category="Machine"),
    ],
    relations=[
        GraphRelation(source="Ada Lovelace", target="Analytical Engine", relation_type="WROTE_ABOUT"),
    ],
)


class FakeAIService(AIService):
    """Deterministic provider.

    * ``fail_embedding_when``: predicate on the text; ``True`` raises ``AIError``.
    * ``extraction_failures``: number of upcoming extraction calls that fail
      with ``extraction_error``.
    """

    def __init__(self, config: AIConfig) -> None:
        self.fail_embedding_when: Callable[[str], bool] | None = None
        self.extraction_failures = 0
        self.extraction_error: Exception = AIError("extraction unavailable")
        self.extraction = DEFAULT_EXTRACTION
        self.answer = "Ada wrote the first program [1]."
        self.embedded: list[str] = []
        self.extracted: list[str] = []
        self.prompts: list[list[BaseMessage]] = []
        super().__init__(config)

    async def generate_embedding(self, text: str) -> list[float]:
        self.embedded.append(text)
        if self.fail_embedding_when is not None and self.fail_embedding_when(text):
            raise AIError("embedding backend down")
        return [0.5] * self._config.embedding_dim

    async def extract_knowledge(self, text: str) -> KnowledgeExtraction:
        self.extracted.append(text)
        if self.extraction_failures > 0:
            self.extraction_failures -= 1
            raise self.extraction_error
        return self.extraction

    async def generate(self, messages: list[BaseMessage]) -> str:
        self.prompts.append(messages)
        return self.answer

    def validate_config(self, config: AIConfig) -> None:
        if config.model_name == "broken-model":
            raise ConfigError("model not available")


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def ai_config() -> AIConfig:
    return AIConfig(
        provider=AIProvider.OPENAI,
        model_name="gpt-4o",
        embedding_model="text-embedding-3-small",
        api_key=SecretStr("sk-test"),
        embedding_dim=4,
    )


@pytest.fixture()
def fake_ai(ai_config: AIConfig) -> FakeAIService:
    return FakeAIService(ai_config)


@pytest.fixture()
def shared_ai(fake_ai: FakeAIService) -> SharedAIService:
    return SharedAIService(fake_ai)


@pytest.fixture()
def fake_store() -> FakeKnowledgeStore:
    return FakeKnowledgeStore()


@pytest.fixture()
def sample_contexts() -> list[HybridContext]:
    return [
        HybridContext(
            chunk_id="chunk-1",
            content="Ada Lovelace wrote\nthe first published algorithm.",
            connected_entities=["Ada Lovelace", "Analytical Engine"],
        ),
        HybridContext(
            chunk_id="chunk-2",
            content="  " + "Charles Babbage designed the Analytical Engine. " * 5,
            connected_entities=["Charles Babbage"],
        ),
        HybridContext(
            chunk_id="chunk-3",
            content="The engine was never completed.",
            connected_entities=[],
        ),
    ]


@pytest.fixture()
def store_factory() -> type[FakeKnowledgeStore]:
    return FakeKnowledgeStore
