"""The event loop of one prompt.

A Session owns one SessionState, one prompt, one subscription, one router and
one watchdog. Top-level topics, nested topics and sub-flows all run on it; they
differ only in the router and view they are given.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import Any

from draftdesk.core.interfaces import PromptTarget, Subscription
from draftdesk.core.logging import Logger, get_logger
from draftdesk.core.router import EventRouter, HandlerContext
from draftdesk.core.state import SessionState
from draftdesk.core.ui_event import UIEvent
from draftdesk.core.watchdog import SessionStatus, Watchdog

NOT_YOUR_SESSION = "This prompt belongs to someone else; start your own session to make changes."


class Session:
    def __init__(
        self,
        *,
        engine: Any,
        state: SessionState[Any],
        owner_id: str,
        prompt: PromptTarget,
        subscription: Subscription,
        router: EventRouter,
        watchdog: Watchdog,
        view: Callable[[Session], Any],
        spec: Any = None,
        record_id: str | None = None,
        parent: Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.engine = engine
        self.state = state
        self.owner_id = str(owner_id)
        self.prompt = prompt
        self.subscription = subscription
        self.router = router
        self.watchdog = watchdog
        self.view = view
        self.spec = spec
        self.record_id = record_id
        self.parent = parent
        self.logger = logger or get_logger(__name__)

        self.started_at = time.time()
        self.last_commit: Any = None
        self._stop_request: SessionStatus | None = None
        self._last_timestamp: int | None = None

    @property
    def status(self) -> SessionStatus:
        return self.watchdog.status

    @property
    def topic(self) -> str:
        return self.state.topic

    def stop(self, status: SessionStatus) -> None:
        """Ask the loop to end with status after the current event."""
        if self._stop_request is None:
            self._stop_request = status

    async def redraw(self) -> None:
        await self.prompt.show(self.view(self))

    async def notify(self, message: str, level: str = "info", actor_id: str | None = None) -> None:
        try:
            await self.prompt.notify(actor_id or self.owner_id, message, level)
        except Exception as e:
            self.logger.warning(f"Notice could not be delivered: {type(e).__name__}: {e}")

    async def run_subflow(self, initial: Any, actions: Any, *, title: str | None = None) -> Any:
        """Open a child prompt and block this session until it resolves.

        Both clocks are frozen meanwhile; events that reached this prompt while
        the child was open are dropped.
        """
        async with self.watchdog.suspended():
            result = await self.engine.run_subflow(self, initial, actions, title=title)
        dropped = self.subscription.drain()
        if dropped:
            self.logger.debug(f"Dropped {dropped} event(s) queued during sub-flow ({self.topic})")
        return result

    async def run_topic(self, topic: str) -> Any:
        """Run another topic's session in a child prompt on this session's record.

        This session waits with both clocks frozen; the child's back action ends
        it and control returns here. Returns the child's SessionOutcome.
        """
        async with self.watchdog.suspended():
            outcome = await self.engine.run_nested(self, topic)
        dropped = self.subscription.drain()
        if dropped:
            self.logger.debug(f"Dropped {dropped} event(s) queued during {topic} ({self.topic})")
        return outcome

    async def run(self) -> SessionStatus:
        self.watchdog.start()
        try:
            await self.redraw()
            while self._stop_request is None:
                event = await self.watchdog.next_event(self.subscription)
                if event is None:
                    break
                await self._handle(event)

            if self._stop_request is not None:
                await self.watchdog.finish(self._stop_request)
        finally:
            if not self.watchdog.is_terminal:
                await self.watchdog.finish(SessionStatus.CANCELLED)
            self.subscription.close()
        return self.watchdog.status

    async def _handle(self, event: UIEvent) -> None:
        if self._last_timestamp is not None and event.timestamp < self._last_timestamp:
            self.logger.debug(f"Dropped stale event '{event.action_id}' ({self.topic})")
            return

        ctx = HandlerContext(event=event, state=self.state, session=self, owner_id=self.owner_id)
        try:
            result = await self.router.dispatch(event, ctx)
        except Exception as e:
            error_id = uuid.uuid4().hex[:8]
            self.logger.error(
                f"[{error_id}] Handler for '{event.action_id}' ({self.topic}) failed: "
                f"{type(e).__name__}: {e}"
            )
            self._accept(event)
            await self.notify(
                f"Something went wrong (error id {error_id}). "
                "Your draft was restored to its state before that action.",
                "error",
            )
            return

        if result.rejected:
            await self.notify(NOT_YOUR_SESSION, "warning", actor_id=event.actor_id)
            return

        self._accept(event)
        if result.redraw and self._stop_request is None:
            await self.redraw()

    def _accept(self, event: UIEvent) -> None:
        self._last_timestamp = event.timestamp
        self.watchdog.touch()

    def describe(self) -> dict[str, Any]:
        return {
            "prompt_id": self.prompt.prompt_id,
            "topic": self.topic,
            "owner_id": self.owner_id,
            "status": self.status.value,
            "page": self.state.current_page,
            "total_pages": self.state.total_pages,
            "modified": self.state.is_modified(),
            "parent": self.parent.prompt.prompt_id if self.parent is not None else None,
            "started_at": self.started_at,
        }
