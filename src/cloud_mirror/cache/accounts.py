"""Account configuration persistence and the cache-backed Account Provider."""

from __future__ import annotations

import logging

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from cloud_mirror.cache.schema import AccountConfigRow
from cloud_mirror.drive.account import Account
from cloud_mirror.errors import StorageFailureError

logger = logging.getLogger(__name__)


class AccountConfigStore:
    """Reads and writes the ``account_config`` row of each account, keyed by email."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def load(self, email: str) -> Account | None:
        """Return the stored account for ``email``, or None if it was never saved."""
        try:
            with self._sessions() as session:
                row = session.get(AccountConfigRow, email)
        except SQLAlchemyError as exc:
            raise StorageFailureError(f"failed to load account config for {email}") from exc
        if row is None:
            return None
        return Account(
            email=row.email,
            access_token=row.access_token or "",
            metadata_url=row.metadata_url or "",
            content_url=row.content_url or "",
            refresh_token=row.refresh_token,
            last_authorized=row.last_authorized,
            checkpoint=row.checkpoint,
        )

    def save(self, account: Account) -> None:
        """Insert or replace the stored configuration for ``account``."""
        row = AccountConfigRow(
            email=account.email,
            checkpoint=account.checkpoint,
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            last_authorized=account.last_authorized,
            metadata_url=account.metadata_url,
            content_url=account.content_url,
        )
        try:
            with self._sessions.begin() as session:
                session.merge(row)
        except SQLAlchemyError as exc:
            logger.error("[save] account config not saved; email:%s", account.email)
            raise StorageFailureError(f"failed to save account config for {account.email}") from exc


class StoredAccountProvider:
    """Account Provider that persists the checkpoint to the cache database.

    Credentials come from the caller. Only the checkpoint is taken from storage,
    so that a new process resumes sync where the previous one stopped.
    """

    def __init__(self, account: Account, config_store: AccountConfigStore) -> None:
        self._account = account
        self._config_store = config_store

    @classmethod
    def open(cls, account: Account, config_store: AccountConfigStore) -> StoredAccountProvider:
        """Merge ``account`` with its stored checkpoint and save the result.

        Args:
            account: Freshly supplied credentials and endpoints. Its checkpoint
                is used only when nothing is stored yet.
            config_store: Store holding the account configuration.

        Returns:
            Provider whose checkpoint reflects the last persisted sync position.
        """
        stored = config_store.load(account.email)
        if stored is not None and account.checkpoint is None:
            account.checkpoint = stored.checkpoint
        config_store.save(account)
        logger.info(
            "[open] account loaded; email:%s;has_checkpoint:%s",
            account.email,
            account.checkpoint is not None,
        )
        return cls(account, config_store)

    @property
    def account(self) -> Account:
        return self._account

    @property
    def email(self) -> str:
        return self._account.email

    @property
    def access_token(self) -> str:
        return self._account.access_token

    @property
    def metadata_url(self) -> str:
        return self._account.metadata_url

    @property
    def checkpoint(self) -> str | None:
        return self._account.checkpoint

    def save_checkpoint(self, checkpoint: str | None) -> None:
        """Record ``checkpoint`` and write the account configuration immediately."""
        previous = self._account.checkpoint
        self._account.checkpoint = checkpoint
        try:
            self._config_store.save(self._account)
        except StorageFailureError:
            self._account.checkpoint = previous
            raise
        logger.info("[save_checkpoint] checkpoint persisted; email:%s", self._account.email)
