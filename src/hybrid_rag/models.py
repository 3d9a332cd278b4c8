"""Domain models shared by ingestion, retrieval and serving."""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, PositiveInt, SecretStr

# ── Provider configuration ────────────────────────────────────────────


class AIProvider(str, Enum):
    """Supported LLM / embedding backends (all OpenAI-compatible)."""

    OPENAI = "OpenAI"
    OLLAMA = "Ollama"
    GROQ = "Groq"


class AIConfig(BaseModel):
    """The live provider configuration.

    ``api_key`` is excluded from every dump so the secret never leaves the
    process through an API response or a log line.
    """

    model_config = ConfigDict(frozen=True)

    provider: AIProvider = AIProvider.OPENAI
    model_name: str = Field(min_length=1)
    embedding_model: str = Field(min_length=1)
    api_key: SecretStr = Field(default=SecretStr(""), exclude=True)
    embedding_dim: PositiveInt
    base_url: AnyHttpUrl | None = None


# ── Knowledge graph ───────────────────────────────────────────────────


class GraphEntity(BaseModel):
    name: str
    category: str


class GraphRelation(BaseModel):
    source: str
    target: str
    relation_type: str


class KnowledgeExtraction(BaseModel):
    """Entities and relations extracted from a single chunk.

    Relations reference entities by *name*; the store merges entities with
    the same name across chunks.
    """

    entities: list[GraphEntity] = Field(default_factory=list)
    relations: list[GraphRelation] = Field(default_factory=list)


class Chunk(BaseModel):
    """A persisted unit of text together with its embedding."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    text: str
    embedding: list[float]


# ── Retrieval ─────────────────────────────────────────────────────────


class HybridContext(BaseModel):
    """A retrieved chunk plus the graph entities connected to it.

    ``score`` is the vector similarity reported by the store, when the
    backend provides one.
    """

    chunk_id: str
    content: str
    connected_entities: list[str] = Field(default_factory=list)
    score: float | None = None


class SourceReference(BaseModel):
    """UI-facing citation entry; ``index`` matches the ``[n]`` marker in the answer."""

    index: int
    chunk_id: str
    short_content: str
    relevance: float = Field(ge=0.0, le=1.0)
    concepts: list[str] = Field(default_factory=list)


class ChatResponse(BaseModel):
    response: str
    sources: list[SourceReference] = Field(default_factory=list)


# ── Visualisation ─────────────────────────────────────────────────────


class VisNode(BaseModel):
    id: str
    label: str
    group: str


class VisEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    label: str


class GraphData(BaseModel):
    """Full graph projection consumed by the network visualisation."""

    nodes: list[VisNode] = Field(default_factory=list)
    edges: list[VisEdge] = Field(default_factory=list)
