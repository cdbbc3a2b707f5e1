# zhenghe/core/exceptions.py
from __future__ import annotations

from typing import Optional


class ZhengheError(Exception):
    """Base class for every error raised by the client."""


class TransportError(ZhengheError, IOError):
    """
    The HTTP exchange itself failed: connection error, non-2xx status,
    or a body that was empty or could not be decoded.
    status_code is None when no response was received.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        reason: str = "",
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.body = body


class ApiError(ZhengheError):
    """
    Service-level failure. Wraps the underlying error with a description
    of the action that failed; the original error is kept on `.cause`.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        base = super().__str__()
        if self.cause is None:
            return base
        return f"{base}: {self.cause}"


class StructuralError(ZhengheError, ValueError):
    """A decoded response lacks the fields needed to extract its content."""
