"""Exceptions raised by the sync engine and the node cache."""

from __future__ import annotations


class MirrorError(Exception):
    """Base class for all cache-engine failures."""


class AuthExpiredError(MirrorError):
    """Raised when the remote service rejects the bearer credential.

    Not retried internally. The Account Provider must re-authorize before
    ``sync()`` is invoked again; sync then resumes from the persisted checkpoint.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Authorization rejected ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class NetworkFailureError(MirrorError):
    """Raised on a non-2xx response or a transport error (including timeouts)."""

    def __init__(self, status_code: int | None, message: str) -> None:
        if status_code is None:
            super().__init__(f"Transport error: {message}")
        else:
            super().__init__(f"Drive API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class MalformedResponseError(NetworkFailureError):
    """Raised when a changelog line or node record cannot be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(None, message)


class BrokenChainError(MirrorError):
    """Raised when path reconstruction cannot reach the root node."""

    def __init__(self, node_id: str, parent_id: str | None, reason: str) -> None:
        super().__init__(f"Broken parent chain at node {node_id}: {reason}")
        self.node_id = node_id
        self.parent_id = parent_id
        self.reason = reason


class StorageFailureError(MirrorError):
    """Raised when a cache transaction fails. The transaction has been rolled back."""
