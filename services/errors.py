"""Error taxonomy for backend interaction.

Every error carries the message shown to the user as ``str(exc)``.
"""
from __future__ import annotations


class RentXError(Exception):
    """Base class for failures surfaced to the user."""


class TransportError(RentXError):
    """Request never produced a response (connection failure or timeout)."""


class HTTPStatusError(RentXError):
    """Backend answered with a non-success status."""

    def __init__(self, status: int, body: str, fallback: str) -> None:
        self.status = status
        self.body = body
        super().__init__(body.strip() or fallback)


class ResponseFormatError(RentXError, ValueError):
    """Response body does not have the shape the client expects."""


class ValidationError(RentXError):
    """Local precondition failed; nothing was sent."""


__all__ = [
    "HTTPStatusError",
    "RentXError",
    "ResponseFormatError",
    "TransportError",
    "ValidationError",
]
