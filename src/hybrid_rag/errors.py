"""Error taxonomy shared by every layer of the service.

Each error carries the HTTP status it maps to so that the serving layer can
translate it without a lookup table.  Only :class:`ValidationError` and
:class:`SafetyGuardError` expose their message to API clients; everything
else is reported as a generic internal error.
"""

from __future__ import annotations


class HybridRagError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    public: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message())
        self.message = str(self)

    @classmethod
    def default_message(cls) -> str:
        return cls.__name__

    def public_message(self) -> str:
        """Message safe to return to an API client."""
        return self.message if self.public else "Internal error"


class DatabaseError(HybridRagError):
    """Knowledge store unreachable or a write/read failed."""


class AIError(HybridRagError):
    """Embedding, extraction or generation call failed."""


class ConfigError(HybridRagError):
    """A provider configuration was rejected."""


class ValidationError(HybridRagError):
    """Malformed request payload."""

    status_code = 400
    public = True


class ParseError(HybridRagError):
    """Unparseable LLM output or unsupported / undecodable document."""


class SafetyGuardError(HybridRagError):
    """Destructive reconfiguration attempted without ``force_reset``."""

    status_code = 403
    public = True

    @classmethod
    def default_message(cls) -> str:
        return "Admin operation requires force flag"
