"""Changelog request bodies and newline-delimited response parsing."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

from cloud_mirror.drive.models import (
    CHANGE_CHECKPOINT,
    CHANGE_END,
    CHANGE_NODES,
    CHANGE_RESET,
    ChangePart,
)
from cloud_mirror.errors import MalformedResponseError

logger = logging.getLogger(__name__)

REQUEST_MAX_NODES = "maxNodes"
REQUEST_CHECKPOINT = "checkpoint"
REQUEST_INCLUDE_PURGED = "includePurged"


def build_changes_request(max_nodes: int, checkpoint: str | None) -> dict[str, Any]:
    """Build the JSON body for one changelog request.

    Purged nodes are only requested once a checkpoint exists; a sync from the
    beginning has nothing to purge.

    Args:
        max_nodes: Upper bound on node records per response.
        checkpoint: Resumption point from the previous request, or None.

    Returns:
        Request body dict ready for JSON encoding.
    """
    body: dict[str, Any] = {REQUEST_MAX_NODES: max_nodes}
    if checkpoint is not None:
        body[REQUEST_CHECKPOINT] = checkpoint
        body[REQUEST_INCLUDE_PURGED] = True
    return body


def parse_change_part(obj: Any) -> ChangePart:
    """Map one decoded changelog object to a ChangePart."""
    if not isinstance(obj, dict):
        raise MalformedResponseError(f"changelog part is not an object: {obj!r}")

    nodes = obj.get(CHANGE_NODES)
    if nodes is not None and not isinstance(nodes, list):
        raise MalformedResponseError("changelog part 'nodes' is not a list")

    checkpoint = obj.get(CHANGE_CHECKPOINT)
    return ChangePart(
        nodes=nodes,
        checkpoint=str(checkpoint) if checkpoint is not None else None,
        reset=obj.get(CHANGE_RESET) is True,
        end=obj.get(CHANGE_END) is True,
    )


def iter_change_parts(body: str) -> Iterator[ChangePart]:
    """Yield the parts of a changelog response body in order.

    Blank lines are skipped. Parts are yielded lazily so that a malformed
    line only aborts processing once every earlier part has been handled.

    Raises:
        MalformedResponseError: If a line is not a JSON object.
    """
    for line_no, line in enumerate(body.split("\n"), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as exc:
            logger.error("[iter_change_parts] undecodable changelog line; line:%d", line_no)
            raise MalformedResponseError(f"line {line_no} is not valid JSON: {exc}") from exc
        yield parse_change_part(obj)
