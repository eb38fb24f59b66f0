"""Error taxonomy shared by the store, the services and the API layer."""

from __future__ import annotations


class ThreadlineError(RuntimeError):
    """Base exception for all Threadline failures."""


class NotFoundError(ThreadlineError):
    """A post, poll or profile id does not resolve."""


class RemoteFailure(ThreadlineError):
    """The backing store could not complete a fetch or mutation."""


class ValidationFailure(ThreadlineError, ValueError):
    """Input rejected before (or instead of) reaching the store."""


class AuthenticationRequired(ValidationFailure):
    """The operation needs a signed-in viewer."""


class PermissionDenied(ValidationFailure):
    """The viewer may not act on someone else's content."""


class MalformedDataError(ThreadlineError):
    """A record or a set of records violates structural expectations."""
