"""Sync Puller — drives the incremental changelog protocol against the remote service."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from cloud_mirror.drive.changes import build_changes_request, iter_change_parts
from cloud_mirror.drive.models import ChangePart, SyncReport
from cloud_mirror.sync.applier import ApplyOutcome

if TYPE_CHECKING:
    from cloud_mirror.cache.store import NodeStore
    from cloud_mirror.drive.account import AccountProvider
    from cloud_mirror.drive.client import DriveClient
    from cloud_mirror.sync.applier import ChangeApplier

logger = logging.getLogger(__name__)

DEFAULT_MAX_NODES = 5000


class SyncState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    PROCESSING = "processing"
    ABORTED = "aborted"


class SyncPuller:
    """Pulls changelog pages and applies them to the cache, one part at a time.

    The checkpoint carried by a part is persisted before the next part is
    touched, so an interrupted sync resumes from the last confirmed part.
    Any failure aborts the sync; re-invoking ``sync`` resumes from there.
    """

    def __init__(
        self,
        client: DriveClient,
        account: AccountProvider,
        store: NodeStore,
        applier: ChangeApplier,
        max_nodes: int = DEFAULT_MAX_NODES,
    ) -> None:
        """Initialise the puller.

        Args:
            client: Transport for changelog requests.
            account: Source of the starting checkpoint and sink for new ones.
            store: Node Store, cleared when the remote side signals a reset.
            applier: Applies each node record to the store.
            max_nodes: Upper bound on node records per changelog response.
        """
        self._client = client
        self._account = account
        self._store = store
        self._applier = applier
        self._max_nodes = max_nodes
        self.state = SyncState.IDLE

    def sync(self) -> SyncReport:
        """Pull and apply changes until the remote side has nothing more to send.

        Returns:
            Counts of what was applied and the final checkpoint.

        Raises:
            AuthExpiredError: If the credential is rejected mid-sync.
            NetworkFailureError: On a non-2xx response, transport error or
                malformed changelog.
            StorageFailureError: If a cache write fails.
        """
        report = SyncReport(checkpoint=self._account.checkpoint)
        logger.info(
            "[sync] starting sync; email:%s;from_checkpoint:%s",
            self._account.email,
            report.checkpoint is not None,
        )
        try:
            more = True
            while more:
                more = self._pull_once(report)
        except Exception:
            self.state = SyncState.ABORTED
            logger.error(
                "[sync] sync aborted; requests:%d;upserted:%d;purged:%d",
                report.requests,
                report.upserted,
                report.purged,
            )
            raise

        self.state = SyncState.IDLE
        logger.info(
            "[sync] sync complete; requests:%d;upserted:%d;purged:%d;resets:%d",
            report.requests,
            report.upserted,
            report.purged,
            report.resets,
        )
        return report

    def _pull_once(self, report: SyncReport) -> bool:
        """Issue one changelog request and process its parts in order.

        Returns:
            True if another request should follow: some part carried nodes, or
            a part carried an empty node list without ending the response.
        """
        self.state = SyncState.REQUESTING
        body = self._client.post_changes(build_changes_request(self._max_nodes, report.checkpoint))
        report.requests += 1

        self.state = SyncState.PROCESSING
        received_nodes = False
        pages_pending = False
        for part in iter_change_parts(body):
            self._process_part(part, report)
            if part.nodes:
                received_nodes = True
            elif part.nodes is not None and not part.end:
                pages_pending = True
            if part.end:
                break

        logger.info(
            "[_pull_once] response processed; request:%d;received_nodes:%s;pages_pending:%s",
            report.requests,
            received_nodes,
            pages_pending,
        )
        return received_nodes or pages_pending

    def _process_part(self, part: ChangePart, report: SyncReport) -> None:
        if part.reset:
            logger.info("[_process_part] remote reset received; clearing cache")
            self._store.clear()
            report.resets += 1

        for record in part.nodes or ():
            if self._applier.apply(record) is ApplyOutcome.PURGED:
                report.purged += 1
            else:
                report.upserted += 1

        if part.checkpoint is not None:
            self._account.save_checkpoint(part.checkpoint)
            report.checkpoint = part.checkpoint
