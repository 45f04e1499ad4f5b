"""Path Resolver — remote paths reconstructed from cached parent links."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cloud_mirror.drive.models import ROOT_NAME, Node
from cloud_mirror.errors import BrokenChainError

if TYPE_CHECKING:
    from cloud_mirror.cache.store import NodeStore

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"


def split_path(path: str) -> list[str]:
    """Split a remote path into its non-empty segments."""
    return [segment for segment in path.split(PATH_SEPARATOR) if segment]


class PathResolver:
    """Resolves nodes to paths and paths back to nodes using the Node Store.

    A node may have several parents. Paths always follow the first one, so
    each node has exactly one path even when it is reachable along several.
    """

    def __init__(self, store: NodeStore) -> None:
        self._store = store

    def root_node(self) -> Node | None:
        """Return the cached root node, or None before the first sync."""
        for node in self._store.find_by_name(ROOT_NAME):
            if node.is_root:
                return node
        return None

    def path_of(self, node: Node) -> str:
        """Reconstruct the remote path of ``node``.

        Walks first parents up to the root. The root itself has the empty path
        and never appears as a segment.

        Args:
            node: Node whose path to build.

        Returns:
            Path segments joined with ``/``, without a leading separator.

        Raises:
            BrokenChainError: If a parent is missing from the cache, a non-root
                node has no parents, or the parent links form a cycle.
        """
        names: list[str] = []
        visited = {node.id}
        current = node
        while not current.is_root:
            names.append(current.name)
            if not current.parents:
                raise BrokenChainError(current.id, None, "non-root node has no parents")
            parent_id = current.parents[0]
            if parent_id in visited:
                raise BrokenChainError(current.id, parent_id, "parent links form a cycle")
            parent = self._store.find_by_id(parent_id)
            if parent is None:
                raise BrokenChainError(current.id, parent_id, f"parent {parent_id} is not cached")
            visited.add(parent_id)
            current = parent
        return PATH_SEPARATOR.join(reversed(names))

    def resolve_by_path(self, path: str) -> Node | None:
        """Return the node at ``path``, or None if no cached node has that path.

        Every node named like the last segment is a candidate; the first one
        whose reconstructed path equals ``path`` wins. Candidates whose chain
        is broken are skipped, but if nothing matches the first such failure
        is raised so that a sync gap is not mistaken for a missing node.

        Raises:
            BrokenChainError: If no candidate matches and at least one
                candidate's parent chain is broken.
        """
        segments = split_path(path)
        if not segments:
            return self.root_node()

        wanted = PATH_SEPARATOR.join(segments)
        broken: BrokenChainError | None = None
        for candidate in self._store.find_by_name(segments[-1]):
            try:
                candidate_path = self.path_of(candidate)
            except BrokenChainError as exc:
                logger.warning(
                    "[resolve_by_path] skipping candidate with broken chain; node_id:%s;reason:%s",
                    candidate.id,
                    exc.reason,
                )
                broken = broken or exc
                continue
            if candidate_path == wanted:
                return candidate

        if broken is not None:
            raise broken
        return None

    def resolve_by_id(self, node_id: str) -> Node | None:
        return self._store.find_by_id(node_id)

    def resolve_by_checksum(self, checksum: str) -> list[Node]:
        return self._store.find_by_checksum(checksum)
