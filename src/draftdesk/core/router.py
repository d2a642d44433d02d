"""Prefix-based dispatch of UI events to per-topic handlers.

One handler per (topic, action_id). An event is routed to the handler whose
registered action id is the longest prefix of the event's concrete action id.
Ownership is enforced here, once, before any handler runs.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from draftdesk.core.errors import FieldValidationError, RegistrationError
from draftdesk.core.logging import Logger, get_logger
from draftdesk.core.state import SessionState, clone
from draftdesk.core.ui_event import UIEvent


@dataclass
class HandlerContext:
    """What a handler sees: the event, the session state and the owning session."""

    event: UIEvent
    state: SessionState[Any]
    session: Any
    owner_id: str

    @property
    def draft(self) -> Any:
        return self.state.draft

    async def notify(self, message: str, level: str = "info") -> None:
        await self.session.notify(message, level)


Handler = Callable[[HandlerContext], Awaitable[bool | None]]


@dataclass(frozen=True)
class DispatchResult:
    redraw: bool
    handled: bool
    rejected: bool = False
    matched: str | None = None
    error: FieldValidationError | None = None


class EventRouter:
    """Registry of (topic, action_id) -> handler."""

    def __init__(self, logger: Logger | None = None) -> None:
        self._handlers: dict[str, dict[str, Handler]] = {}
        self.logger = logger or get_logger(__name__)

    def register_handler(self, topic: str, action_id: str, handler: Handler) -> None:
        if not topic or not action_id:
            raise RegistrationError("topic and action_id must be non-empty")
        bucket = self._handlers.setdefault(topic, {})
        if action_id in bucket:
            raise RegistrationError(
                f"Handler for action '{action_id}' is already registered on topic '{topic}'",
                "Register each action exactly once at startup",
            )
        bucket[action_id] = handler

    def handler(self, topic: str, action_id: str) -> Callable[[Handler], Handler]:
        """Decorator form of register_handler."""

        def _decorator(fn: Handler) -> Handler:
            self.register_handler(topic, action_id, fn)
            return fn

        return _decorator

    def has_topic(self, topic: str) -> bool:
        return topic in self._handlers

    def actions(self, topic: str) -> list[str]:
        return sorted(self._handlers.get(topic, {}))

    def resolve(self, topic: str, action_id: str) -> tuple[str, Handler] | None:
        best: tuple[str, Handler] | None = None
        for registered, handler in self._handlers.get(topic, {}).items():
            if not action_id.startswith(registered):
                continue
            if best is None or len(registered) > len(best[0]):
                best = (registered, handler)
        return best

    async def dispatch(self, event: UIEvent, ctx: HandlerContext) -> DispatchResult:
        """Route event to its handler.

        Non-owner events are rejected untouched; unmatched ids are acknowledged as
        no-ops. A FieldValidationError is reported to the owner and the draft is
        restored. Any other exception also restores the draft, then propagates.
        """
        if event.actor_id != ctx.owner_id:
            self.logger.debug(
                f"Rejected '{event.action_id}' from non-owner {event.actor_id} "
                f"(topic={ctx.state.topic})"
            )
            return DispatchResult(redraw=False, handled=False, rejected=True)

        found = self.resolve(ctx.state.topic, event.action_id)
        if found is None:
            self.logger.debug(f"No handler for '{event.action_id}' (topic={ctx.state.topic})")
            return DispatchResult(redraw=False, handled=False)

        matched, handler = found
        snapshot = clone(ctx.state.draft)
        try:
            redraw = await handler(ctx)
        except FieldValidationError as e:
            ctx.state.restore_draft(snapshot)
            self.logger.verbose(f"Validation failed for '{matched}': {e.message}")
            await ctx.notify(str(e), "error")
            return DispatchResult(redraw=False, handled=True, matched=matched, error=e)
        except Exception:
            ctx.state.restore_draft(snapshot)
            raise

        return DispatchResult(redraw=bool(redraw), handled=True, matched=matched)
