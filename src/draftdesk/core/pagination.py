"""Page index clamping for multi-page prompts and read-only listings."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

T = TypeVar("T")


class Direction(StrEnum):
    NEXT = "next"
    PREV = "prev"


def clamp_page(index: int, total: int) -> int:
    if total <= 1:
        return 0
    return max(0, min(index, total - 1))


def step(current: int, total: int, direction: Direction | str) -> int:
    """Move one page in direction; at either bound the index is unchanged."""
    delta = 1 if Direction(direction) is Direction.NEXT else -1
    return clamp_page(current + delta, total)


def navigate(state: Any, direction: Direction | str) -> int:
    """Move state.current_page one page and return the new index.

    Never wraps and never raises for in-range state.
    """
    state.current_page = step(state.current_page, state.total_pages, direction)
    return state.current_page


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into pages of size; an empty sequence yields one empty page."""
    if size < 1:
        raise ValueError(f"page size must be >= 1, got {size}")
    pages = [list(items[i : i + size]) for i in range(0, len(items), size)]
    return pages or [[]]


def page_label(index: int, total: int) -> str:
    return f"Page {index + 1}/{max(total, 1)}"


@dataclass
class Pager:
    """Cursor over a read-only listing."""

    current: int = 0
    total: int = 1

    def navigate(self, direction: Direction | str) -> int:
        self.current = step(self.current, self.total, direction)
        return self.current

    @property
    def at_start(self) -> bool:
        return self.current == 0

    @property
    def at_end(self) -> bool:
        return self.current >= self.total - 1
