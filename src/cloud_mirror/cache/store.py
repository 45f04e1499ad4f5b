"""Node Store — transactional node and edge persistence for the local cache."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cloud_mirror.cache.schema import EdgeRow, NodeRow
from cloud_mirror.drive.models import (
    FIELD_CREATED,
    FIELD_MODIFIED,
    ROOT_NAME,
    Node,
    NodeKind,
    NodeStatus,
)
from cloud_mirror.errors import StorageFailureError

logger = logging.getLogger(__name__)

# Columns accepted by NodeStore.filter().
FILTERABLE_COLUMNS = {
    "id": NodeRow.id,
    "name": NodeRow.name,
    "kind": NodeRow.kind,
    "checksum": NodeRow.checksum,
    "status": NodeRow.status,
}


def _column_value(value: Any) -> Any:
    if isinstance(value, (NodeKind, NodeStatus)):
        return value.value
    return value


class NodeStore:
    """Persistent store of nodes and their parent/child edges.

    A node's ``parents`` list is the only source of truth for its edges. Every
    ``upsert`` diffs the stored edge set against it inside the same transaction
    as the node row, so readers never see a node whose edges disagree with it.
    """

    def __init__(self, engine: Engine) -> None:
        """Initialise the store.

        Args:
            engine: Engine for a database created by ``create_cache_engine``.
        """
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def upsert(self, node: Node) -> Node:
        """Insert or replace ``node`` and reconcile its edges atomically.

        A root node without a name is stored as ``ROOT`` so that it can be
        found by name.

        Args:
            node: Node to store.

        Returns:
            The node as stored.

        Raises:
            StorageFailureError: If the transaction fails. Nothing is changed.
        """
        if node.is_root and not node.name:
            node = node.renamed(ROOT_NAME)

        record = node.to_record()
        row = NodeRow(
            id=node.id,
            name=node.name,
            kind=node.kind.value,
            checksum=node.checksum,
            status=node.status.value,
            created=record.get(FIELD_CREATED),
            modified=record.get(FIELD_MODIFIED),
            raw_payload=json.dumps(record),
        )
        try:
            with self._sessions.begin() as session:
                session.merge(row)
                self._reconcile_edges(session, node)
        except SQLAlchemyError as exc:
            logger.error("[upsert] transaction rolled back; node_id:%s", node.id)
            raise StorageFailureError(f"failed to store node {node.id}") from exc

        logger.debug("[upsert] stored node; node_id:%s;parents:%d", node.id, len(node.parents))
        return node

    def _reconcile_edges(self, session: Session, node: Node) -> None:
        """Bring the stored edges of ``node`` in line with its ``parents``."""
        wanted = set(node.parents)
        stored = set(
            session.scalars(select(EdgeRow.parent_id).where(EdgeRow.child_id == node.id))
        )

        removed = stored - wanted
        if removed:
            session.execute(
                delete(EdgeRow).where(
                    EdgeRow.child_id == node.id, EdgeRow.parent_id.in_(removed)
                )
            )
        # Keep the first-seen order of parents for deterministic row ids.
        added = [p for p in dict.fromkeys(node.parents) if p not in stored]
        session.add_all(EdgeRow(child_id=node.id, parent_id=p) for p in added)

    def delete_by_id(self, node_id: str) -> None:
        """Remove a node and every edge where it is the child.

        Deleting an id that is not cached is not an error.

        Raises:
            StorageFailureError: If the transaction fails.
        """
        try:
            with self._sessions.begin() as session:
                session.execute(delete(EdgeRow).where(EdgeRow.child_id == node_id))
                session.execute(delete(NodeRow).where(NodeRow.id == node_id))
        except SQLAlchemyError as exc:
            logger.error("[delete_by_id] transaction rolled back; node_id:%s", node_id)
            raise StorageFailureError(f"failed to delete node {node_id}") from exc
        logger.debug("[delete_by_id] deleted node; node_id:%s", node_id)

    def clear(self) -> None:
        """Delete every node and edge. Account configuration is untouched."""
        try:
            with self._sessions.begin() as session:
                session.execute(delete(EdgeRow))
                session.execute(delete(NodeRow))
        except SQLAlchemyError as exc:
            logger.error("[clear] transaction rolled back")
            raise StorageFailureError("failed to clear node cache") from exc
        logger.info("[clear] node cache cleared")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _query(self, stmt: Any) -> list[Node]:
        try:
            with self._sessions() as session:
                payloads = session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageFailureError("node cache query failed") from exc
        return [Node.from_record(json.loads(payload)) for payload in payloads]

    def find_by_id(self, node_id: str) -> Node | None:
        nodes = self._query(select(NodeRow.raw_payload).where(NodeRow.id == node_id))
        return nodes[0] if nodes else None

    def find_by_checksum(self, checksum: str) -> list[Node]:
        """Return every node whose content has ``checksum``; checksums need not be unique."""
        return self._query(
            select(NodeRow.raw_payload).where(NodeRow.checksum == checksum).order_by(NodeRow.id)
        )

    def find_by_name(self, name: str) -> list[Node]:
        return self._query(
            select(NodeRow.raw_payload).where(NodeRow.name == name).order_by(NodeRow.id)
        )

    def search_by_name(self, text: str) -> list[Node]:
        """Return nodes whose name contains ``text``; ``%`` and ``_`` match literally."""
        return self._query(
            select(NodeRow.raw_payload)
            .where(NodeRow.name.contains(text, autoescape=True))
            .order_by(NodeRow.name, NodeRow.id)
        )

    def children_of(self, node: Node, include_trashed: bool = False) -> list[Node]:
        """Return the cached nodes that list ``node`` among their parents.

        Trashed children are left out unless ``include_trashed`` is set.
        """
        stmt = (
            select(NodeRow.raw_payload)
            .join(EdgeRow, EdgeRow.child_id == NodeRow.id)
            .where(EdgeRow.parent_id == node.id)
        )
        if not include_trashed:
            stmt = stmt.where(NodeRow.status != NodeStatus.TRASH.value)
        return self._query(stmt.order_by(NodeRow.name, NodeRow.id))

    def filter(self, **conditions: Any) -> list[Node]:
        """Return nodes matching every ``column=value`` equality condition.

        Example: ``store.filter(status=NodeStatus.PENDING, kind=NodeKind.FILE)``.

        Raises:
            ValueError: If a condition names a column that cannot be filtered on.
        """
        unknown = set(conditions) - set(FILTERABLE_COLUMNS)
        if unknown:
            raise ValueError(f"cannot filter on: {', '.join(sorted(unknown))}")

        stmt = select(NodeRow.raw_payload)
        for column, value in conditions.items():
            stmt = stmt.where(FILTERABLE_COLUMNS[column] == _column_value(value))
        return self._query(stmt.order_by(NodeRow.name, NodeRow.id))

    def count_nodes(self) -> int:
        try:
            with self._sessions() as session:
                return int(session.scalar(select(func.count()).select_from(NodeRow)) or 0)
        except SQLAlchemyError as exc:
            raise StorageFailureError("node cache query failed") from exc

    def edge_pairs(self) -> set[tuple[str, str]]:
        """Return every stored ``(child_id, parent_id)`` edge."""
        try:
            with self._sessions() as session:
                rows = session.execute(select(EdgeRow.child_id, EdgeRow.parent_id)).all()
        except SQLAlchemyError as exc:
            raise StorageFailureError("edge query failed") from exc
        return {(child_id, parent_id) for child_id, parent_id in rows}
