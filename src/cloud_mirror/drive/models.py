"""Data models for cloud-drive node records and changelog parts."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from cloud_mirror.errors import MalformedResponseError

# Node record JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_KIND = "kind"
FIELD_STATUS = "status"
FIELD_PARENTS = "parents"
FIELD_IS_ROOT = "isRoot"
FIELD_CONTENT_PROPERTIES = "contentProperties"
FIELD_MD5 = "md5"
FIELD_SIZE = "size"
FIELD_CREATED = "createdDate"
FIELD_MODIFIED = "modifiedDate"

# Changelog part keys
CHANGE_NODES = "nodes"
CHANGE_CHECKPOINT = "checkpoint"
CHANGE_RESET = "reset"
CHANGE_END = "end"

# Name assigned to a root node that arrives without one.
ROOT_NAME = "ROOT"


class NodeKind(str, Enum):
    FILE = "FILE"
    FOLDER = "FOLDER"
    ASSET = "ASSET"


class NodeStatus(str, Enum):
    PENDING = "PENDING"
    AVAILABLE = "AVAILABLE"
    TRASH = "TRASH"
    PURGED = "PURGED"


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise MalformedResponseError(f"timestamp is not a string: {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedResponseError(f"invalid timestamp: {value!r}") from exc


def _format_timestamp(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Node:
    """A single file, folder or asset in the remote node graph.

    The explicit fields are the ones the cache interprets. ``raw`` holds the
    complete record as received so that fields this model does not know about
    survive a trip through the cache.
    """

    id: str
    name: str
    kind: NodeKind
    status: NodeStatus
    parents: tuple[str, ...] = ()
    is_root: bool = False
    checksum: str | None = None
    size: int | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict, hash=False, repr=False)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Node:
        """Build a Node from a raw node record.

        Raises:
            MalformedResponseError: If the record lacks an id or carries an
                unknown kind or status.
        """
        node_id = record.get(FIELD_ID)
        if not isinstance(node_id, str) or not node_id:
            raise MalformedResponseError(f"node record has no id: {record!r}")
        try:
            kind = NodeKind(record.get(FIELD_KIND, ""))
            status = NodeStatus(record.get(FIELD_STATUS, NodeStatus.AVAILABLE.value))
        except ValueError as exc:
            raise MalformedResponseError(f"node {node_id}: {exc}") from exc

        props = record.get(FIELD_CONTENT_PROPERTIES) or {}
        size = props.get(FIELD_SIZE)
        return cls(
            id=node_id,
            name=record.get(FIELD_NAME) or "",
            kind=kind,
            status=status,
            parents=tuple(record.get(FIELD_PARENTS) or ()),
            is_root=record.get(FIELD_IS_ROOT) is True,
            checksum=props.get(FIELD_MD5),
            size=int(size) if size is not None else None,
            created_at=_parse_timestamp(record.get(FIELD_CREATED)),
            modified_at=_parse_timestamp(record.get(FIELD_MODIFIED)),
            raw=dict(record),
        )

    def to_record(self) -> dict[str, Any]:
        """Return the full record, with the interpreted fields written over ``raw``."""
        record = dict(self.raw)
        record[FIELD_ID] = self.id
        record[FIELD_NAME] = self.name
        record[FIELD_KIND] = self.kind.value
        record[FIELD_STATUS] = self.status.value
        record[FIELD_PARENTS] = list(self.parents)
        if self.is_root or FIELD_IS_ROOT in record:
            record[FIELD_IS_ROOT] = self.is_root

        if self.checksum is not None or self.size is not None:
            props = dict(record.get(FIELD_CONTENT_PROPERTIES) or {})
            if self.checksum is not None:
                props[FIELD_MD5] = self.checksum
            if self.size is not None:
                props[FIELD_SIZE] = self.size
            record[FIELD_CONTENT_PROPERTIES] = props

        if self.created_at is not None and FIELD_CREATED not in record:
            record[FIELD_CREATED] = _format_timestamp(self.created_at)
        if self.modified_at is not None and FIELD_MODIFIED not in record:
            record[FIELD_MODIFIED] = _format_timestamp(self.modified_at)
        return record

    def renamed(self, name: str) -> Node:
        """Return a copy carrying ``name`` in both the field and the raw record."""
        return dataclasses.replace(self, name=name, raw={**self.raw, FIELD_NAME: name})

    @property
    def is_folder(self) -> bool:
        return self.kind is NodeKind.FOLDER


@dataclass
class ChangePart:
    """One newline-delimited object from a changelog response.

    ``nodes`` is None when the key was absent and an empty list when it was
    present but empty. The distinction drives pagination.
    """

    nodes: list[dict[str, Any]] | None = None
    checkpoint: str | None = None
    reset: bool = False
    end: bool = False


@dataclass
class SyncReport:
    """Summary of one ``sync()`` invocation."""

    requests: int = 0
    upserted: int = 0
    purged: int = 0
    resets: int = 0
    checkpoint: str | None = None
