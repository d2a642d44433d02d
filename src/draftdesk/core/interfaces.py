"""Collaborators the engine consumes but does not implement."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from draftdesk.core.ui_event import UIEvent


@runtime_checkable
class Subscription(Protocol):
    """Async stream of events for one prompt."""

    def __aiter__(self) -> AsyncIterator[UIEvent]: ...

    async def __anext__(self) -> UIEvent: ...

    def close(self) -> None: ...

    def drain(self) -> int:
        """Drop queued events; returns how many were dropped."""
        ...


class EventSource(Protocol):
    def subscribe(
        self,
        prompt_id: str,
        actor_filter: Callable[[str], bool] | None = None,
    ) -> Subscription: ...


class Renderer(Protocol):
    def render(self, topic: str, draft: Any, page_index: int) -> Any: ...

    def attach_navigation(self, artifact: Any, page_index: int, total_pages: int) -> Any: ...

    def render_listing(
        self,
        topic: str,
        entries: Sequence[Any],
        page_index: int,
        total_pages: int,
    ) -> Any: ...


class PromptTarget(Protocol):
    """The visible prompt a session draws on."""

    @property
    def prompt_id(self) -> str: ...

    async def show(self, artifact: Any) -> None: ...

    async def disable(self) -> None: ...

    async def notify(self, actor_id: str, message: str, level: str = "info") -> None: ...

    async def open_child(self, title: str) -> PromptTarget: ...

    async def close(self) -> None: ...


class RecordStore(Protocol):
    async def get(self, record_id: str) -> dict[str, Any] | None: ...

    async def conditional_update(
        self, record_id: str, patch: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """Apply a dotted partial patch; return the document after the write, or None."""
        ...
