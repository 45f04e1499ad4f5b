"""Change Applier — turns one node record into a Node Store mutation."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from cloud_mirror.drive.models import FIELD_ID, FIELD_STATUS, Node, NodeStatus
from cloud_mirror.errors import MalformedResponseError

if TYPE_CHECKING:
    from cloud_mirror.cache.store import NodeStore

logger = logging.getLogger(__name__)


class ApplyOutcome(str, Enum):
    UPSERTED = "upserted"
    PURGED = "purged"


class ChangeApplier:
    """Applies node records to the store. Replaying a record is harmless."""

    def __init__(self, store: NodeStore) -> None:
        self._store = store

    def apply(self, record: dict[str, Any]) -> ApplyOutcome:
        """Apply a single raw node record.

        A ``PURGED`` record deletes the node; anything else is upserted.
        Failures are not retried.

        Args:
            record: Node record exactly as received.

        Returns:
            Which mutation was performed.

        Raises:
            MalformedResponseError: If the record cannot be parsed.
            StorageFailureError: If the store transaction fails.
        """
        # Purge records may be trimmed down to an id, so check them before full parsing.
        if record.get(FIELD_STATUS) == NodeStatus.PURGED.value:
            node_id = record.get(FIELD_ID)
            if not isinstance(node_id, str) or not node_id:
                raise MalformedResponseError(f"purge record has no id: {record!r}")
            self._store.delete_by_id(node_id)
            logger.debug("[apply] purged node; node_id:%s", node_id)
            return ApplyOutcome.PURGED

        self._store.upsert(Node.from_record(record))
        return ApplyOutcome.UPSERTED
