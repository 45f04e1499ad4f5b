"""Cache engine — one account's node cache, resolver and sync puller wired together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cloud_mirror.cache.accounts import AccountConfigStore, StoredAccountProvider
from cloud_mirror.cache.schema import create_cache_engine, sqlite_cache_url
from cloud_mirror.cache.store import NodeStore
from cloud_mirror.drive.account import Account
from cloud_mirror.drive.client import DriveClient
from cloud_mirror.drive.models import Node, NodeStatus, SyncReport
from cloud_mirror.resolve.paths import PathResolver
from cloud_mirror.resolve.usage import ExistenceCheck, disk_usage, node_exists
from cloud_mirror.sync.applier import ApplyOutcome, ChangeApplier
from cloud_mirror.sync.puller import SyncPuller

if TYPE_CHECKING:
    from cloud_mirror.config import AppConfig
    from cloud_mirror.drive.account import AccountProvider

logger = logging.getLogger(__name__)


class CacheEngine:
    """Entry point for everything outside the cache: sync, reset and lookups.

    Each instance owns its store and account handle, so several engines
    (for several accounts, or in tests) can coexist in one process.
    """

    def __init__(
        self,
        store: NodeStore,
        account: AccountProvider,
        puller: SyncPuller,
    ) -> None:
        """Initialise the engine.

        Args:
            store: Node Store for this account.
            account: Account Provider holding the persisted checkpoint.
            puller: Sync Puller feeding ``store``.
        """
        self._store = store
        self._account = account
        self._puller = puller
        self._resolver = PathResolver(store)
        self._applier = ChangeApplier(store)

    @property
    def store(self) -> NodeStore:
        return self._store

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def sync(self) -> SyncReport:
        """Pull remote changes into the cache; see ``SyncPuller.sync``."""
        return self._puller.sync()

    def clear_cache(self) -> None:
        """Forget the checkpoint and drop every cached node, forcing a full re-sync.

        The checkpoint is reset first. If clearing the nodes then fails, the
        next sync starts from the beginning and overwrites the remaining rows.
        """
        self._account.save_checkpoint(None)
        self._store.clear()
        logger.info("[clear_cache] cache cleared; email:%s", self._account.email)

    def record_mutation(self, record: dict[str, Any]) -> ApplyOutcome:
        """Apply a node record returned by a create/rename/move/trash/restore call."""
        return self._applier.apply(record)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def root_node(self) -> Node | None:
        return self._resolver.root_node()

    def path_of(self, node: Node) -> str:
        return self._resolver.path_of(node)

    def resolve_by_id(self, node_id: str) -> Node | None:
        return self._resolver.resolve_by_id(node_id)

    def resolve_by_path(self, path: str) -> Node | None:
        return self._resolver.resolve_by_path(path)

    def resolve_by_checksum(self, checksum: str) -> list[Node]:
        return self._resolver.resolve_by_checksum(checksum)

    def resolve_by_name_substring(self, text: str) -> list[Node]:
        return self._store.search_by_name(text)

    def children_of(self, node: Node, include_trashed: bool = False) -> list[Node]:
        return self._store.children_of(node, include_trashed=include_trashed)

    def filter_by_status(self, status: NodeStatus) -> list[Node]:
        return self._store.filter(status=status)

    def disk_usage(self, node: Node, include_assets: bool = False) -> int:
        return disk_usage(self._store, node, include_assets=include_assets)

    def node_exists(
        self, remote_path: str, local_path: str | Path | None = None
    ) -> ExistenceCheck:
        return node_exists(self._resolver, remote_path, local_path)


def cache_engine_from_config(config: AppConfig) -> CacheEngine:
    """Construct a CacheEngine from application configuration.

    Opens (creating if needed) the account's SQLite cache, restores the
    persisted checkpoint, and wires the client, applier and puller together.

    Args:
        config: Application configuration instance.

    Returns:
        Configured CacheEngine instance.
    """
    engine = create_cache_engine(sqlite_cache_url(config.cache_dir, config.account_email))
    account = StoredAccountProvider.open(
        Account(
            email=config.account_email,
            access_token=config.access_token,
            metadata_url=config.metadata_url,
            content_url=config.content_url,
            refresh_token=config.refresh_token,
        ),
        AccountConfigStore(engine),
    )
    store = NodeStore(engine)
    client = DriveClient(account, timeout=config.request_timeout_seconds)
    puller = SyncPuller(
        client=client,
        account=account,
        store=store,
        applier=ChangeApplier(store),
        max_nodes=config.sync_max_nodes,
    )
    return CacheEngine(store=store, account=account, puller=puller)
