"""Bounded undo/redo stacks of graph snapshots."""

from __future__ import annotations

from collections import deque
from copy import deepcopy
from logging import getLogger

from erd.types import Graph

logger = getLogger(__name__)

HISTORY_LIMIT = 60


def snapshot(graph: Graph) -> Graph:
    """Deep copy of the logical state, sharing nothing with the live graph."""
    return deepcopy({"tables": graph["tables"], "relations": graph["relations"]})


class History:
    """Undo and redo stacks holding at most ``limit`` snapshots each.

    The oldest snapshot is evicted when a stack overflows.
    """

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        """Initialize empty stacks."""
        if limit < 1:
            msg = f"History limit must be positive, got {limit}"
            raise ValueError(msg)
        self._past: deque[Graph] = deque(maxlen=limit)
        self._future: deque[Graph] = deque(maxlen=limit)

    @property
    def can_undo(self) -> bool:
        """Whether a snapshot is available to undo to."""
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        """Whether a snapshot is available to redo to."""
        return bool(self._future)

    def record(self, graph: Graph) -> None:
        """Store the state preceding a user action and forget redoable states."""
        self._past.append(snapshot(graph))
        self._future.clear()

    def undo(self, current: Graph) -> Graph | None:
        """Step back, returning the restored state or None when nothing to undo."""
        if not self._past:
            return None
        self._future.append(snapshot(current))
        logger.debug("Undo (%d left)", len(self._past) - 1)
        return self._past.pop()

    def redo(self, current: Graph) -> Graph | None:
        """Step forward, returning the restored state or None when nothing to redo."""
        if not self._future:
            return None
        self._past.append(snapshot(current))
        logger.debug("Redo (%d left)", len(self._future) - 1)
        return self._future.pop()

    def clear(self) -> None:
        """Drop every snapshot."""
        self._past.clear()
        self._future.clear()

    def __len__(self) -> int:
        """Number of undoable steps."""
        return len(self._past)
