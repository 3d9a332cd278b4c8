"""Destructive reconfiguration, gated behind an explicit force flag.

Changing the provider configuration can change the embedding dimension,
which invalidates every stored vector.  The only supported way to
reconfigure is therefore a full reset::

    STABLE ──(force_reset)──▶ RESETTING ──▶ STABLE
                                │  (writer lock held throughout)
                                ├─ reset_database()
                                ├─ create_indexes(new dim)
                                └─ swap config

Holding the writer side for the whole reset means no chunk can be embedded
with the old configuration and written into the freshly cleared store.

A failure while clearing or indexing aborts before the swap: the old
configuration stays live, the store is left cleared (no rollback).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from hybrid_rag.errors import SafetyGuardError, ValidationError
from hybrid_rag.models import AIConfig

if TYPE_CHECKING:
    from hybrid_rag.providers.shared import SharedAIService
    from hybrid_rag.retrieval.base import KnowledgeStore

logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    STABLE = "stable"
    RESETTING = "resetting"


class ReconfigurationRequest(BaseModel):
    """Admin payload.

    ``config`` is kept as raw JSON of any shape: it is only parsed once the
    force flag has been checked, so a missing flag is always reported as such.
    """

    config: Any = None
    force_reset: bool = False


class AdminResetGuard:
    """Two-state machine serialising destructive resets.

    Parameters
    ----------
    store:
        Knowledge store to clear and re-index.
    ai:
        Shared provider cell whose configuration is swapped.
    """

    def __init__(self, store: KnowledgeStore, ai: SharedAIService) -> None:
        self._store = store
        self._ai = ai
        self._state = GuardState.STABLE
        self._reset_lock = asyncio.Lock()

    @property
    def state(self) -> GuardState:
        return self._state

    async def reconfigure(self, request: ReconfigurationRequest) -> AIConfig:
        """Apply ``request.config`` through a full store reset.

        Raises
        ------
        SafetyGuardError
            ``force_reset`` is not set.
        ValidationError
            The config payload is malformed.
        ConfigError
            The provider rejects the config.
        DatabaseError
            Clearing or re-indexing failed; the old config remains in effect.
        """
        if not request.force_reset:
            logger.warning("Reconfiguration refused: force_reset not set")
            raise SafetyGuardError()

        if not isinstance(request.config, Mapping):
            raise ValidationError("Invalid AI configuration: expected an object")
        try:
            config = AIConfig.model_validate(dict(request.config))
        except PydanticValidationError as exc:
            # Field names only; input values may contain the API key.
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
            raise ValidationError(f"Invalid AI configuration fields: {', '.join(fields)}") from exc
        self._ai.validate_config(config)

        async with self._reset_lock, self._ai.exclusive() as service:
            self._state = GuardState.RESETTING
            logger.warning(
                "Resetting knowledge store for new configuration (provider=%s, dim=%d)",
                config.provider.value,
                config.embedding_dim,
            )
            try:
                await self._store.reset_database()
                await self._store.create_indexes(config.embedding_dim)
                service.update_config(config)
            finally:
                self._state = GuardState.STABLE
        logger.info("Reconfiguration complete (model=%s)", config.model_name)
        return config
