from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """Raised when a report cannot be relayed; carries the HTTP status and client text."""

    def __init__(self, status: int = 500, message: Optional[str] = "internal error"):
        super().__init__(message)
        self.status = status
        self.message = message


class MissingFieldError(GatewayError):
    """Raised when a required form field is absent or empty."""

    def __init__(self, field: str):
        super().__init__(500, f"missing {field} field")
        self.field = field


class MalformedFieldError(GatewayError):
    """Raised when a single-line form field contains CR or LF."""

    def __init__(self, field: str):
        super().__init__(500, f"invalid {field} field")
        self.field = field


class UnauthorizedError(GatewayError):
    """Raised when the key authorizer rejects the submitted key."""

    def __init__(self) -> None:
        super().__init__(403, "unknown user key")


class DeliveryError(GatewayError):
    """Raised when the mail transport fails. The cause is for operators only."""

    def __init__(self, cause: Exception):
        super().__init__(500, "internal error")
        self.cause = cause
