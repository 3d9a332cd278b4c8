"""Abstract base class for LLM / embedding providers.

Adding a new backend only requires subclassing :class:`AIService` and
implementing the abstract methods.  Callers never talk to an
``AIService`` directly; they go through
:class:`~hybrid_rag.providers.shared.SharedAIService`, which serialises
reconfiguration against in-flight calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

    from hybrid_rag.models import AIConfig, KnowledgeExtraction


class AIService(ABC):
    """Backend-agnostic provider interface.

    Parameters
    ----------
    config:
        Initial configuration; validated by :meth:`update_config`.
    """

    def __init__(self, config: AIConfig) -> None:
        self._config = config
        self.update_config(config)

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def generate_embedding(self, text: str) -> list[float]:
        """Return the embedding of *text*.

        Raises
        ------
        AIError
            The provider call failed or returned a vector whose length does
            not match ``config.embedding_dim``.
        """
        ...

    @abstractmethod
    async def extract_knowledge(self, text: str) -> KnowledgeExtraction:
        """Extract entities and relations from *text*.

        Raises
        ------
        AIError
            The provider call failed.
        ParseError
            The model output was not the expected JSON document.
        """
        ...

    @abstractmethod
    async def generate(self, messages: list[BaseMessage]) -> str:
        """Run a chat completion over *messages* and return the raw text."""
        ...

    @abstractmethod
    def validate_config(self, config: AIConfig) -> None:
        """Raise :class:`~hybrid_rag.errors.ConfigError` if *config* is unusable."""
        ...

    # -- configuration ----------------------------------------------------------

    def update_config(self, config: AIConfig) -> None:
        """Validate and apply *config*.  Subclasses rebuild clients in :meth:`_apply`."""
        self.validate_config(config)
        self._config = config
        self._apply(config)

    def get_config(self) -> AIConfig:
        return self._config

    def _apply(self, config: AIConfig) -> None:  # noqa: B027
        """Hook called after a configuration has been accepted."""
