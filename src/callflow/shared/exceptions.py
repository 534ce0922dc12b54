"""
Base exception types shared across the service.
"""

from typing import Any


class CallflowError(Exception):
    """Base exception for every classified failure raised by this package."""

    kind = "callflow_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class InvalidInput(CallflowError):
    """Caller supplied missing or empty required fields.

    Raised before any remote call is made.
    """

    kind = "invalid_input"

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = list(fields or [])

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["fields"] = self.fields
        return data
