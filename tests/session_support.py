"""Shared helpers for engine tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from draftdesk.adapters import InMemoryRecordStore, PlainRenderer, QueueEventSource, RecordingPrompt
from draftdesk.core.config import SessionSettings
from draftdesk.core.engine import SessionEngine
from draftdesk.core.events import EventBus


class RecordingLogger:
    """Logger fake that keeps (level, message) pairs."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def _add(self, level: str, message: str) -> None:
        self.records.append((level, message))

    def debug(self, message: str) -> None:
        self._add("debug", message)

    def verbose(self, message: str) -> None:
        self._add("verbose", message)

    def info(self, message: str) -> None:
        self._add("info", message)

    def warning(self, message: str) -> None:
        self._add("warning", message)

    def error(self, message: str) -> None:
        self._add("error", message)

    def messages(self, level: str) -> list[str]:
        return [m for lvl, m in self.records if lvl == level]


class RecordingStore(InMemoryRecordStore):
    """InMemoryRecordStore that keeps every (record_id, patch) it was asked to apply."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def conditional_update(self, record_id: str, patch: Any) -> Any:
        self.calls.append((str(record_id), dict(patch)))
        return await super().conditional_update(record_id, patch)


class FailingStore(RecordingStore):
    async def conditional_update(self, record_id: str, patch: Any) -> Any:
        self.calls.append((str(record_id), dict(patch)))
        raise ConnectionError("database unreachable")


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


def make_engine(
    store: InMemoryRecordStore | None = None,
    settings: SessionSettings | None = None,
    logger: Any = None,
    bus: EventBus | None = None,
) -> tuple[SessionEngine, QueueEventSource, InMemoryRecordStore]:
    events = QueueEventSource()
    store = store if store is not None else RecordingStore()
    engine = SessionEngine(
        events=events,
        store=store,
        renderer=PlainRenderer(),
        settings=settings or SessionSettings(timeout=5.0, idle=5.0),
        logger=logger or RecordingLogger(),
        bus=bus,
    )
    return engine, events, store


class Driver:
    """Starts a session in the background and feeds it events."""

    def __init__(self, engine: SessionEngine, events: QueueEventSource) -> None:
        self.engine = engine
        self.events = events
        self.prompt = RecordingPrompt("p1")
        self.task: asyncio.Task[Any] | None = None

    async def start(self, topic: str, record: Any, actor_id: str = "u1", **kw: Any) -> None:
        self.task = asyncio.create_task(
            self.engine.start_session(topic, record, actor_id, self.prompt, **kw)
        )
        await wait_until(lambda: self.prompt.shown > 0 or self.task.done())

    async def send(self, event: Any, prompt: RecordingPrompt | None = None) -> None:
        """Publish event and wait until the session has consumed it."""
        target = prompt or self.prompt
        before = (target.shown, len(target.notices), target.disable_calls, len(target.children))
        self.events.publish(target.prompt_id, event)

        def _settled() -> bool:
            after = (target.shown, len(target.notices), target.disable_calls, len(target.children))
            return after != before or (self.task is not None and self.task.done())

        try:
            await wait_until(_settled, timeout=0.2)
        except AssertionError:
            # Handlers that neither redraw nor notify leave nothing to observe.
            pass

    async def child(self, index: int = 0) -> RecordingPrompt:
        await wait_until(lambda: len(self.prompt.children) > index)
        child = self.prompt.children[index]
        await wait_until(lambda: child.shown > 0)
        return child

    async def outcome(self, timeout: float = 2.0) -> Any:
        assert self.task is not None
        return await asyncio.wait_for(self.task, timeout)

    async def close_child(self, event: Any, child: RecordingPrompt) -> None:
        """Send the event that ends child and wait for the parent to redraw."""
        shown = self.prompt.shown
        self.events.publish(child.prompt_id, event)
        await wait_until(lambda: self.prompt.shown > shown or bool(self.task and self.task.done()))
