from __future__ import annotations

from typing import Optional


class KobeError(Exception):
    """Base class for every failure raised by the client library."""


class ConnectionFailedError(KobeError, ConnectionError):
    """The service endpoint could not be reached or the channel is closed."""


class RemoteError(KobeError):
    """The service rejected a request or the call did not complete."""

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class NotFoundError(KobeError):
    """The service does not know the requested task id."""

    def __init__(self, task_id: str, details: Optional[str] = None):
        message = f"task {task_id!r} not found"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)
        self.task_id = task_id


class ScriptLoadError(KobeError, OSError):
    """A local script, playbook or key could not be read or rendered."""


class CredentialError(KobeError, RuntimeError):
    """A host credential could not be resolved from its secret store."""

    def __init__(self, secret: str, reason: str):
        super().__init__(f"Unable to resolve secret {secret}: {reason}")
        self.secret = secret
