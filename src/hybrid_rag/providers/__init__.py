"""
Providers — LLM / embedding backends behind a reconfigurable shared cell.

Public surface
--------------
- :class:`AIService` — abstract backend.
- :class:`LangChainAIService` — OpenAI / Ollama / Groq via ``langchain_openai``.
- :class:`SharedAIService` — read-write-locked facade used by every caller.
"""

from hybrid_rag.providers.base import AIService
from hybrid_rag.providers.shared import SharedAIService

__all__ = [
    "AIService",
    "LangChainAIService",
    "SharedAIService",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import LangChainAIService to avoid pulling in the OpenAI client at import time."""
    if name == "LangChainAIService":
        from hybrid_rag.providers.langchain_service import LangChainAIService

        return LangChainAIService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
