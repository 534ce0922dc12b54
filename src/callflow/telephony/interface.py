"""
Telephony provider interface definition.

Normalized results and the failure classification shared by the dispatcher,
the poller and the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Protocol

from callflow.shared.exceptions import CallflowError

GET_LIKE_METHODS = frozenset({"GET", "HEAD", "DELETE", "OPTIONS"})
POST_LIKE_METHODS = frozenset({"POST", "PUT", "PATCH"})

PROVIDER_SUCCESS = "success"
PROVIDER_ERROR = "error"


class ReadinessState(str, Enum):
    """Readiness of an asynchronously produced remote resource."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self is not ReadinessState.PENDING


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of one HTTP exchange with the provider.

    ``payload`` is the decoded JSON body, untouched. Whether it signals an
    application-level success is for the caller to decide.
    """

    status_code: int
    payload: Any
    error: Exception | None = None

    @property
    def is_success(self) -> bool:
        """True when the payload follows the provider's success convention."""
        return (
            isinstance(self.payload, dict)
            and self.payload.get("status") == PROVIDER_SUCCESS
        )

    @property
    def provider_message(self) -> str | None:
        if isinstance(self.payload, dict):
            message = self.payload.get("message")
            return str(message) if message is not None else None
        return None


class TelephonyProviderError(CallflowError):
    """Base exception for telephony provider errors."""

    kind = "provider_error"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: Any = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["error_code"] = self.error_code
        data["provider_payload"] = self.provider_response
        return data


class TransportError(TelephonyProviderError):
    """Connection could not be established, or the exchange timed out."""

    kind = "transport_error"


class DecodeError(TelephonyProviderError):
    """Response body is not a parseable structured payload."""

    kind = "decode_error"

    def __init__(
        self,
        message: str,
        raw_body: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, error_code="DECODE_ERROR")
        self.raw_body = raw_body
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["raw_body"] = self.raw_body
        data["status_code"] = self.status_code
        return data


class ProviderRejectedError(TelephonyProviderError):
    """The provider answered, but its payload reports an error."""

    kind = "provider_rejected"


INFRASTRUCTURE_ERRORS = (TransportError, DecodeError)


class Dispatcher(Protocol):
    """Anything able to execute one signed provider request."""

    async def execute(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> RemoteResult:
        ...
