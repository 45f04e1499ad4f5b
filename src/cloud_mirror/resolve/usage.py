"""Disk usage and existence/duplicate checks over the cached node graph."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from cloud_mirror.drive.models import Node

if TYPE_CHECKING:
    from cloud_mirror.cache.store import NodeStore
    from cloud_mirror.resolve.paths import PathResolver

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 1024 * 1024


def file_md5(local_path: str | Path) -> str:
    """Compute the MD5 hex digest of a local file, reading it in chunks."""
    digest = hashlib.md5()  # noqa: S324
    with open(local_path, "rb") as fh:
        for chunk in iter(lambda: fh.read(READ_CHUNK_BYTES), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass
class ExistenceCheck:
    """Outcome of checking a remote path (and optionally a local file) against the cache."""

    path_match: bool
    checksum_match: bool
    message: str
    node: Node | None = None


def disk_usage(store: NodeStore, node: Node, include_assets: bool = False) -> int:
    """Total content size of ``node`` and everything below it, in bytes.

    Folders always descend into their children; files only do so when
    ``include_assets`` is set, since their children are assets. Each node is
    counted once even if it is reachable through several parents.
    """
    total = 0
    seen: set[str] = set()
    pending = [node]
    while pending:
        current = pending.pop()
        if current.id in seen:
            continue
        seen.add(current.id)
        total += current.size or 0
        if current.is_folder or include_assets:
            pending.extend(store.children_of(current))
    return total


def node_exists(
    resolver: PathResolver,
    remote_path: str,
    local_path: str | Path | None = None,
) -> ExistenceCheck:
    """Check whether ``remote_path`` is cached, comparing content with ``local_path``.

    When the path is not cached but a local file is given, any cached node with
    the same MD5 counts as a checksum match, so callers can skip re-uploading
    content that already exists elsewhere.
    """
    node = resolver.resolve_by_path(remote_path)
    if node is None:
        if local_path is not None:
            for duplicate in resolver.resolve_by_checksum(file_md5(local_path)):
                duplicate_path = resolver.path_of(duplicate)
                logger.info(
                    "[node_exists] same content cached elsewhere; path:%s;duplicate:%s",
                    remote_path,
                    duplicate_path,
                )
                return ExistenceCheck(
                    path_match=False,
                    checksum_match=True,
                    message=f"File with same MD5 exists at {duplicate_path}",
                    node=duplicate,
                )
        return ExistenceCheck(
            path_match=False,
            checksum_match=False,
            message=f"File {remote_path} does not exist.",
        )

    if local_path is None:
        return ExistenceCheck(
            path_match=True, checksum_match=False, message=f"File {remote_path} exists.", node=node
        )
    if node.checksum is None:
        return ExistenceCheck(
            path_match=True,
            checksum_match=False,
            message=f"File {remote_path} exists but no checksum is available.",
            node=node,
        )
    if file_md5(local_path) != node.checksum:
        return ExistenceCheck(
            path_match=True,
            checksum_match=False,
            message=f"File {remote_path} exists but does not match local checksum.",
            node=node,
        )
    return ExistenceCheck(
        path_match=True,
        checksum_match=True,
        message=f"File {remote_path} exists and is identical to local copy.",
        node=node,
    )
