"""Swarmcraft error hierarchy.

Every fatal condition of the YAML-to-swarm pipeline is reported as one of
these types so callers can tell them apart without parsing messages.
"""

from __future__ import annotations

from typing import Optional


class SwarmcraftError(Exception):
    """Base error for all Swarmcraft exceptions."""

    code = "SWARMCRAFT_ERROR"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Configuration errors
class ConfigError(SwarmcraftError):
    """Base error for configuration document failures."""

    code = "CONFIG_ERROR"


class ConfigSourceError(ConfigError):
    """No source, both sources, or an unreadable file."""

    code = "CONFIG_SOURCE"


class ConfigParseError(ConfigError):
    """The document is not valid YAML."""

    code = "CONFIG_PARSE"


class ConfigStructureError(ConfigError):
    """The document lacks a non-empty ``agents`` sequence."""

    code = "CONFIG_STRUCTURE"


class ValidationError(SwarmcraftError):
    """A field violates its contract."""

    code = "VALIDATION"

    def __init__(self, message: str, field: Optional[str] = None, constraint: Optional[str] = None):
        super().__init__(message, {"field": field, "constraint": constraint})
        self.field = field
        self.constraint = constraint


# Pipeline errors
class AgentConstructionError(SwarmcraftError):
    """An agent could not be built."""

    code = "AGENT_CONSTRUCTION"

    def __init__(self, message: str, agent_name: Optional[str] = None, attempts: int = 0):
        super().__init__(message, {"agent_name": agent_name, "attempts": attempts})
        self.agent_name = agent_name
        self.attempts = attempts


class UnsupportedReturnTypeError(SwarmcraftError):
    code = "UNSUPPORTED_RETURN_TYPE"


class SwarmNotDeclaredError(SwarmcraftError):
    code = "SWARM_NOT_DECLARED"


class DispatchError(SwarmcraftError):
    """A swarm strategy could not be set up or executed."""

    code = "DISPATCH"


# Backend errors
class BackendError(SwarmcraftError):
    """Model backend failure that retrying will not fix."""

    code = "BACKEND_ERROR"

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, {"provider": provider, "status_code": status_code})
        self.provider = provider
        self.status_code = status_code


class TransientBackendError(BackendError):
    """Connectivity, timeout, rate-limit or 5xx failure."""

    code = "BACKEND_TRANSIENT"
