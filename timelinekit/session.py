"""Editing session — the current timeline plus undo/redo history."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Optional

from timelinekit.config import Thresholds
from timelinekit.engine import apply_operation
from timelinekit.errors import TimelineError, NOTHING_TO_UNDO, NOTHING_TO_REDO, recovery_hints
from timelinekit.models import Timeline, UntrustedTimeline
from timelinekit.validation import commit_timeline

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 100


class EditSession:
    """Holds the current committed timeline and the snapshots behind it.

    Operations stay pure functions; the session only decides which snapshot
    is current. A failed operation leaves the session untouched.

    Example::

        session = EditSession(timeline)
        session.apply(split_at, "clip-1", 90)
        session.undo()
    """

    def __init__(self, timeline: Timeline, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        if history_size < 1:
            raise ValueError(f"history_size must be >= 1, got {history_size}")
        self._current = timeline
        self._undo: deque[Timeline] = deque(maxlen=history_size)
        self._redo: list[Timeline] = []
        self.history_size = history_size

    @property
    def current(self) -> Timeline:
        return self._current

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def _push(self, timeline: Timeline) -> Timeline:
        self._undo.append(self._current)
        self._redo.clear()
        self._current = timeline
        return timeline

    def apply(self, operation: Callable[..., Timeline], *args, **kwargs) -> Timeline:
        """Run ``operation(current, *args, **kwargs)`` and make its result current."""
        result = operation(self._current, *args, **kwargs)
        logger.debug("Applied %s (undo depth %d)", getattr(operation, "__name__", operation), len(self._undo) + 1)
        return self._push(result)

    def apply_record(self, op) -> Timeline:
        """Apply an edit-script operation record (see ``timelinekit.models``)."""
        return self.apply(apply_operation, op)

    def accept(self, untrusted: UntrustedTimeline, thresholds: Optional[Thresholds] = None) -> Timeline:
        """Validate and commit an externally produced timeline as a new undoable state.

        Raises:
            TimelineError: INVALID_TIMELINE when validation reports errors.
        """
        timeline = commit_timeline(untrusted, thresholds)
        logger.info("Accepted timeline from %s", untrusted.source)
        return self._push(timeline)

    def undo(self) -> Timeline:
        if not self._undo:
            raise TimelineError(
                code=NOTHING_TO_UNDO,
                message="Nothing to undo",
                recovery=recovery_hints(NOTHING_TO_UNDO),
            )
        self._redo.append(self._current)
        self._current = self._undo.pop()
        return self._current

    def redo(self) -> Timeline:
        if not self._redo:
            raise TimelineError(
                code=NOTHING_TO_REDO,
                message="Nothing to redo",
                recovery=recovery_hints(NOTHING_TO_REDO),
            )
        self._undo.append(self._current)
        self._current = self._redo.pop()
        return self._current
