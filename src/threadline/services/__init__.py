# src/threadline/services/__init__.py
"""Business logic services for the Threadline application."""

from .errors import (
    AuthenticationRequired,
    MalformedDataError,
    NotFoundError,
    PermissionDenied,
    RemoteFailure,
    ThreadlineError,
    ValidationFailure,
)

__all__ = [
    "AuthenticationRequired",
    "MalformedDataError",
    "NotFoundError",
    "PermissionDenied",
    "RemoteFailure",
    "ThreadlineError",
    "ValidationFailure",
]
