"""
Error taxonomy shared by the retry executor, the tool dispatcher and the
chat endpoint.

Every error raised at a provider boundary is converted into one of the
``AssistantError`` subclasses below. Retry and propagation logic switch on
``error.kind`` rather than poking at status codes or message strings.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    PROVIDER_OVERLOADED = "provider_overloaded"
    PROVIDER_UNREACHABLE = "provider_unreachable"
    PROVIDER_AUTH = "provider_auth"
    PROVIDER_REQUEST = "provider_request"
    TOOL_EXECUTION = "tool_execution"
    TRANSPORT = "transport"


class AssistantError(Exception):
    """Base class; ``kind`` is the discriminant."""

    kind: ErrorKind

    def __init__(self, message: str, *, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, provider={self.provider!r}, status={self.status_code!r}, message={self.message!r})"


class ConfigurationError(AssistantError):
    """A required credential or setting is absent."""
    kind = ErrorKind.CONFIGURATION


class ProviderOverloaded(AssistantError):
    """Provider said it is overloaded, rate limited us, or returned a 5xx."""
    kind = ErrorKind.PROVIDER_OVERLOADED


class ProviderUnreachable(AssistantError):
    """Connection reset, timeout or DNS failure."""
    kind = ErrorKind.PROVIDER_UNREACHABLE


class ProviderAuthError(AssistantError):
    """401/403 from a provider. Never retried."""
    kind = ErrorKind.PROVIDER_AUTH


class ProviderRequestError(AssistantError):
    """Any other 4xx: the request itself was wrong."""
    kind = ErrorKind.PROVIDER_REQUEST


class ToolExecutionError(AssistantError):
    """A tool handler failed for a reason that isn't a provider error."""
    kind = ErrorKind.TOOL_EXECUTION


class TransportError(AssistantError):
    """Malformed inbound request; rejected before any model call."""
    kind = ErrorKind.TRANSPORT


RETRYABLE_KINDS = frozenset({ErrorKind.PROVIDER_OVERLOADED, ErrorKind.PROVIDER_UNREACHABLE})

OVERLOADED_STATUS_CODES = frozenset({429, 503, 529})


def is_overloaded_message(message: Optional[str]) -> bool:
    lowered = (message or "").lower()
    return "overloaded" in lowered or "temporarily unavailable" in lowered


def classify_http_status(status_code: int, message: str, *, provider: Optional[str] = None) -> AssistantError:
    """Map an HTTP status from any provider to the matching error variant."""
    if status_code in (401, 403):
        return ProviderAuthError(message, provider=provider, status_code=status_code)
    if status_code in OVERLOADED_STATUS_CODES or status_code >= 500 or is_overloaded_message(message):
        return ProviderOverloaded(message, provider=provider, status_code=status_code)
    return ProviderRequestError(message, provider=provider, status_code=status_code)
