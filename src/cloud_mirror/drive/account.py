"""Account record and the Account Provider interface consumed by the sync engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class Account:
    """Credentials, endpoints and sync position for one cloud-drive account.

    Credentials are acquired and renewed outside this package; the cache only
    stores what it is given.
    """

    email: str
    access_token: str
    metadata_url: str
    content_url: str
    refresh_token: str | None = None
    last_authorized: int | None = None
    checkpoint: str | None = None


class AccountProvider(Protocol):
    """What the sync engine needs from whoever owns the account's credentials."""

    @property
    def email(self) -> str: ...

    @property
    def access_token(self) -> str: ...

    @property
    def metadata_url(self) -> str: ...

    @property
    def checkpoint(self) -> str | None: ...

    def save_checkpoint(self, checkpoint: str | None) -> None:
        """Persist the changelog resumption point before returning."""
        ...
