"""Session state: the persisted baseline and the mutable draft of one prompt."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from draftdesk.core.diff import deep_equal

T = TypeVar("T")

_ORIGINAL: Any = object()


def clone(value: T) -> T:
    """Independent deep copy; no mutable structure is shared with the input."""
    return copy.deepcopy(value)


@dataclass
class SessionState(Generic[T]):
    """Original vs. draft values plus the pagination position.

    Only the commit handler replaces `original`; field handlers mutate `draft`.
    `is_modified()` is always derived, never stored.
    """

    topic: str
    original: T
    draft: T
    current_page: int = 0
    total_pages: int = 1

    def is_modified(self) -> bool:
        return not deep_equal(self.original, self.draft)

    def replace_baseline(self, value: T) -> None:
        self.original = clone(value)
        self.draft = clone(value)

    def restore_draft(self, snapshot: Any = _ORIGINAL) -> None:
        """Reset the draft to snapshot, or to the original when none is given."""
        self.draft = clone(self.original if snapshot is _ORIGINAL else snapshot)

    def snapshot(self) -> T:
        return clone(self.draft)


def create_session(topic: str, source_record: T, total_pages: int = 1) -> SessionState[T]:
    if total_pages < 1:
        raise ValueError(f"total_pages must be >= 1, got {total_pages}")
    return SessionState(
        topic=topic,
        original=clone(source_record),
        draft=clone(source_record),
        total_pages=total_pages,
    )
