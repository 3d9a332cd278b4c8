"""LangChain-backed provider — single place to swap LLM / embedding backends.

All three supported providers speak the OpenAI wire protocol, so
``ChatOpenAI`` and ``OpenAIEmbeddings`` work unchanged:

1. **OpenAI cloud** (default) — requires an API key.
2. **Ollama** — local server, ``http://localhost:11434/v1`` unless
   ``base_url`` is set.  No key needed.
3. **Groq** — ``https://api.groq.com/openai/v1``, requires an API key.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from langchain_openai import ChatOpenAI, OpenAIEmbeddings
from pydantic import ValidationError as PydanticValidationError

from hybrid_rag.errors import AIError, ConfigError, ParseError
from hybrid_rag.models import AIConfig, AIProvider, KnowledgeExtraction
from hybrid_rag.providers.base import AIService
from hybrid_rag.providers.prompts import build_extraction_prompt

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URLS: dict[AIProvider, str | None] = {
    AIProvider.OPENAI: None,
    AIProvider.OLLAMA: "http://localhost:11434/v1",
    AIProvider.GROQ: "https://api.groq.com/openai/v1",
}

_KEYLESS_PROVIDERS = {AIProvider.OLLAMA}


class LangChainAIService(AIService):
    """Provider built on ``langchain_openai`` clients.

    Clients are rebuilt on every accepted configuration, so a swap takes
    effect for the next call.
    """

    def __init__(self, config: AIConfig, *, temperature: float = 0.0) -> None:
        self._temperature = temperature
        self._llm: ChatOpenAI | None = None
        self._embeddings: OpenAIEmbeddings | None = None
        super().__init__(config)

    # -- configuration ----------------------------------------------------------

    def validate_config(self, config: AIConfig) -> None:
        if config.provider not in _KEYLESS_PROVIDERS and not config.api_key.get_secret_value():
            raise ConfigError(f"Provider {config.provider.value} requires an API key")

    def _apply(self, config: AIConfig) -> None:
        kwargs = _client_kwargs(config)
        self._llm = ChatOpenAI(model=config.model_name, temperature=self._temperature, **kwargs)
        # Non-OpenAI backends do not accept pre-tokenised input.
        self._embeddings = OpenAIEmbeddings(
            model=config.embedding_model,
            check_embedding_ctx_length=config.provider is AIProvider.OPENAI,
            **kwargs,
        )
        logger.info(
            "Provider configured: %s (chat=%s, embeddings=%s, dim=%d, base_url=%s)",
            config.provider.value,
            config.model_name,
            config.embedding_model,
            config.embedding_dim,
            kwargs.get("base_url") or "default",
        )

    # -- AIService overrides ----------------------------------------------------

    async def generate_embedding(self, text: str) -> list[float]:
        try:
            vector = await self._embeddings.aembed_query(text)
        except Exception as exc:
            raise AIError(f"Embedding failed: {exc}") from exc

        if not vector:
            raise AIError("No embedding returned from provider")
        expected = self._config.embedding_dim
        if len(vector) != expected:
            raise AIError(
                f"Embedding dimension mismatch: provider returned {len(vector)}, "
                f"configured {expected}"
            )
        return [float(x) for x in vector]

    async def extract_knowledge(self, text: str) -> KnowledgeExtraction:
        try:
            response = await self._llm.ainvoke(build_extraction_prompt(text))
        except Exception as exc:
            raise AIError(f"Extraction failed: {exc}") from exc
        return parse_extraction(_message_text(response.content))

    async def generate(self, messages: list[BaseMessage]) -> str:
        try:
            response = await self._llm.ainvoke(messages)
        except Exception as exc:
            raise AIError(f"Answer generation failed: {exc}") from exc
        return _message_text(response.content)


# ── Helpers ────────────────────────────────────────────────────────────


def _client_kwargs(config: AIConfig) -> dict[str, Any]:
    base_url = str(config.base_url) if config.base_url else DEFAULT_BASE_URLS[config.provider]
    # Ollama ignores the key, but the OpenAI client requires a non-empty value.
    api_key = config.api_key.get_secret_value() or "EMPTY"
    kwargs: dict[str, Any] = {"api_key": api_key}
    if base_url:
        kwargs["base_url"] = base_url
    return kwargs


def _message_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def clean_json_response(raw: str) -> str:
    """Strip markdown code fences that models wrap around JSON output."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        cleaned = cleaned[first_newline + 1 :] if first_newline != -1 else cleaned[3:]
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_extraction(raw: str) -> KnowledgeExtraction:
    """Parse an LLM extraction response into a :class:`KnowledgeExtraction`.

    Raises
    ------
    ParseError
        When the cleaned text is not valid JSON or does not match the schema.
    """
    cleaned = clean_json_response(raw)
    try:
        return KnowledgeExtraction.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        raise ParseError(f"Failed to parse JSON from LLM: {exc} - Raw: {cleaned[:200]}") from exc
