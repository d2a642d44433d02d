"""asyncio.Queue backed event source.

Each subscription owns one queue. publish() fans an event out to every open
subscription of the prompt whose actor filter accepts it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from draftdesk.core.logging import get_logger
from draftdesk.core.ui_event import UIEvent

_logger = get_logger(__name__)

_CLOSED = object()


class QueueSubscription:
    def __init__(
        self,
        source: QueueEventSource,
        prompt_id: str,
        actor_filter: Callable[[str], bool] | None = None,
    ) -> None:
        self._source = source
        self.prompt_id = prompt_id
        self.actor_filter = actor_filter
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self.closed = False

    def accepts(self, event: UIEvent) -> bool:
        if self.closed:
            return False
        return self.actor_filter is None or bool(self.actor_filter(event.actor_id))

    def put(self, event: UIEvent) -> None:
        self._queue.put_nowait(event)

    def __aiter__(self) -> QueueSubscription:
        return self

    async def __anext__(self) -> UIEvent:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        assert isinstance(item, UIEvent)
        return item

    def drain(self) -> int:
        dropped = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if item is _CLOSED:
                self._queue.put_nowait(item)
                break
            dropped += 1
        return dropped

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)
        self._source._detach(self)


class QueueEventSource:
    def __init__(self) -> None:
        self._subs: dict[str, list[QueueSubscription]] = {}

    def subscribe(
        self,
        prompt_id: str,
        actor_filter: Callable[[str], bool] | None = None,
    ) -> QueueSubscription:
        sub = QueueSubscription(self, prompt_id, actor_filter)
        self._subs.setdefault(prompt_id, []).append(sub)
        return sub

    def has_subscribers(self, prompt_id: str) -> bool:
        return bool(self._subs.get(prompt_id))

    def publish(self, prompt_id: str, event: UIEvent) -> int:
        """Deliver event to the prompt's subscriptions; returns the delivery count."""
        delivered = 0
        for sub in list(self._subs.get(prompt_id, [])):
            if sub.accepts(event):
                sub.put(event)
                delivered += 1
        if not delivered:
            _logger.debug(f"No subscriber for '{event.action_id}' on prompt {prompt_id}")
        return delivered

    def _detach(self, sub: QueueSubscription) -> None:
        subs = self._subs.get(sub.prompt_id)
        if subs and sub in subs:
            subs.remove(sub)
        if not subs:
            self._subs.pop(sub.prompt_id, None)
