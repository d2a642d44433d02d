"""Session engine: topic registry and the single entry point for callers.

Example:
    engine = SessionEngine(events=source, store=store, renderer=PlainRenderer())
    engine.register_topic(spec)
    outcome = await engine.start_session("app-config-bc", guild_doc, "u1", prompt)

A handler may run another topic nested under its own prompt with
ctx.session.run_topic(topic); the nested back action returns to the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from draftdesk.core import diagnostics
from draftdesk.core.commit import CommitHandler
from draftdesk.core.config import SessionSettings
from draftdesk.core.diff import FieldChange
from draftdesk.core.errors import (
    CommitError,
    DraftDeskError,
    FieldValidationError,
    NoChangesError,
    UnknownTopicError,
)
from draftdesk.core.events import EventBus
from draftdesk.core.interfaces import EventSource, PromptTarget, RecordStore, Renderer
from draftdesk.core.logging import Logger, get_logger
from draftdesk.core.pagination import Direction, navigate
from draftdesk.core.router import EventRouter, Handler, HandlerContext
from draftdesk.core.session import Session
from draftdesk.core.state import clone, create_session
from draftdesk.core.subflow import SubflowActions, SubflowResult, SubflowView, build_subflow_router
from draftdesk.core.topic import BACK, CONFIRM, NEXT, PREV, TopicSpec
from draftdesk.core.watchdog import SessionStatus, Watchdog


@dataclass(frozen=True)
class SessionOutcome:
    """How a top-level session ended.

    `committed` is True when at least one save succeeded during the session;
    `value` is the last persisted value in that case, else the untouched original.
    """

    status: SessionStatus
    value: Any
    committed: bool
    changes: list[FieldChange] = field(default_factory=list)
    summary: list[str] = field(default_factory=list)


async def _next_page(ctx: HandlerContext) -> bool:
    before = ctx.state.current_page
    return navigate(ctx.state, Direction.NEXT) != before


async def _prev_page(ctx: HandlerContext) -> bool:
    before = ctx.state.current_page
    return navigate(ctx.state, Direction.PREV) != before


async def _back(ctx: HandlerContext) -> bool:
    # A nested session ending here hands control back to its parent prompt.
    ctx.session.stop(SessionStatus.CANCELLED)
    return False


async def _confirm(ctx: HandlerContext) -> bool:
    session: Session = ctx.session
    spec: TopicSpec = session.spec
    engine: SessionEngine = session.engine
    if spec.read_only:
        await ctx.notify(f"The {spec.title} is read-only; there is nothing to save.", "warning")
        return False
    try:
        result = await engine.commit_handler.commit(
            ctx.state,
            record_id=str(session.record_id),
            scope=spec.scope,
            checks=spec.checks,
            labels=spec.field_labels(),
            extras=spec.extras_for(ctx.event.actor_id),
            title=spec.title,
        )
    except NoChangesError as e:
        await ctx.notify(e.message, "info")
        return False
    except CommitError as e:
        await ctx.notify(str(e), "error")
        return False

    session.last_commit = result
    lines = "\n".join(f"- {line}" for line in result.summary)
    await ctx.notify(f"Successfully saved the {spec.title}.\n{lines}", "success")
    if spec.close_on_commit:
        session.stop(SessionStatus.CONFIRMED)
        return False
    return True


class SessionEngine:
    def __init__(
        self,
        events: EventSource,
        store: RecordStore,
        renderer: Renderer,
        router: EventRouter | None = None,
        settings: SessionSettings | None = None,
        logger: Logger | None = None,
        bus: EventBus | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.events = events
        self.store = store
        self.renderer = renderer
        self.logger = logger or get_logger(__name__)
        self.router = router or EventRouter(logger=self.logger)
        self.settings = settings or SessionSettings()
        self.bus = bus
        self.clock = clock
        self.commit_handler = CommitHandler(store, logger=self.logger, bus=bus)

        self._topics: dict[str, TopicSpec] = {}
        self._active: dict[str, Session] = {}

    # Registration

    def register_topic(self, spec: TopicSpec) -> None:
        if spec.topic in self._topics:
            raise DraftDeskError(f"Topic '{spec.topic}' is already registered")

        builtins: dict[str, Handler] = {
            NEXT: _next_page,
            PREV: _prev_page,
            CONFIRM: _confirm,
            BACK: _back,
        }
        for suffix, handler in {**builtins, **spec.handlers}.items():
            self.router.register_handler(spec.topic, spec.action(suffix), handler)

        register_layout = getattr(self.renderer, "register_layout", None)
        if register_layout is not None:
            register_layout(spec.topic, spec.pages)

        self._topics[spec.topic] = spec
        self.logger.debug(f"Registered topic {spec.topic} ({spec.total_pages} page(s))")

    def register_handler(self, topic: str, action_id: str, handler: Handler) -> None:
        if topic not in self._topics:
            raise UnknownTopicError(topic)
        self.router.register_handler(topic, action_id, handler)

    def topic(self, topic: str) -> TopicSpec:
        try:
            return self._topics[topic]
        except KeyError:
            raise UnknownTopicError(topic) from None

    def topics(self) -> list[str]:
        return sorted(self._topics)

    def active_sessions(self) -> list[dict[str, Any]]:
        return [s.describe() for s in self._active.values()]

    # Sessions

    async def start_session(
        self,
        topic: str,
        source_record: Any,
        actor_id: str,
        prompt_target: PromptTarget,
        record_id: str | None = None,
    ) -> SessionOutcome:
        """Run one prompt for actor_id until it is confirmed, cancelled or expires."""
        spec = self.topic(topic)
        if record_id is None and isinstance(source_record, dict):
            record_id = source_record.get("_id")
        if record_id is None:
            raise DraftDeskError(
                f"No record id for topic '{topic}'",
                "Pass record_id or include '_id' in the source record",
            )

        session = self._open(spec, source_record, str(actor_id), prompt_target, str(record_id))
        status = await self._run(session, operation=topic)
        return self._outcome(session, status)

    async def run_nested(self, parent: Session, topic: str) -> SessionOutcome:
        """Run topic in a child prompt of parent, on the same record; see Session.run_topic."""
        spec = self.topic(topic)
        record = await self.store.get(str(parent.record_id))
        if record is None:
            raise FieldValidationError(
                f"The record behind this prompt no longer exists ({parent.record_id})",
                suggestion="Start a new session",
            )

        prompt = await parent.prompt.open_child(spec.title)
        session = self._open(
            spec, record, parent.owner_id, prompt, str(parent.record_id), parent=parent
        )
        try:
            status = await self._run(session, operation=topic)
        finally:
            try:
                await prompt.close()
            except Exception as e:
                self.logger.warning(f"Closing nested prompt failed: {type(e).__name__}: {e}")
        return self._outcome(session, status)

    def _open(
        self,
        spec: TopicSpec,
        source_record: Any,
        owner_id: str,
        prompt: PromptTarget,
        record_id: str,
        parent: Session | None = None,
    ) -> Session:
        state = create_session(spec.topic, spec.select(source_record), total_pages=spec.total_pages)
        watchdog = Watchdog(
            timeout=spec.timeout or self.settings.timeout,
            idle=spec.idle or self.settings.idle,
            on_terminal=prompt.disable,
            clock=self.clock,
            logger=self.logger,
        )
        return Session(
            engine=self,
            state=state,
            owner_id=owner_id,
            prompt=prompt,
            subscription=self.events.subscribe(prompt.prompt_id),
            router=self.router,
            watchdog=watchdog,
            view=self._render_topic,
            spec=spec,
            record_id=record_id,
            parent=parent,
            logger=self.logger,
        )

    def _outcome(self, session: Session, status: SessionStatus) -> SessionOutcome:
        state = session.state
        last = session.last_commit
        if last is None:
            return SessionOutcome(status=status, value=clone(state.original), committed=False)
        return SessionOutcome(
            status=status,
            value=clone(state.original),
            committed=True,
            changes=list(last.changes),
            summary=list(last.summary),
        )

    async def run_subflow(
        self,
        parent: Session,
        initial: Any,
        actions: SubflowActions,
        *,
        title: str | None = None,
    ) -> SubflowResult:
        """Edit a collection in a child prompt; see Session.run_subflow."""
        baseline = clone(list(initial or []))
        prompt = await parent.prompt.open_child(title or actions.label)
        view = SubflowView(actions=actions, page_size=actions.page_size or self.settings.page_size)
        router = build_subflow_router(actions, view, logger=self.logger)
        state = create_session(actions.topic, baseline)
        watchdog = Watchdog(
            timeout=self.settings.subflow_timeout,
            idle=self.settings.subflow_idle,
            on_terminal=prompt.disable,
            clock=self.clock,
            logger=self.logger,
        )
        session = Session(
            engine=self,
            state=state,
            owner_id=parent.owner_id,
            prompt=prompt,
            subscription=self.events.subscribe(prompt.prompt_id),
            router=router,
            watchdog=watchdog,
            view=lambda s: view.render(self.renderer, s.state.draft),
            parent=parent,
            logger=self.logger,
        )

        try:
            status = await self._run(session, operation=actions.topic)
        finally:
            try:
                await prompt.close()
            except Exception as e:
                self.logger.warning(f"Closing sub-flow prompt failed: {type(e).__name__}: {e}")

        if status is SessionStatus.CONFIRMED:
            return SubflowResult(committed=True, value=clone(state.draft))
        return SubflowResult(committed=False, value=clone(baseline))

    async def _run(self, session: Session, *, operation: str) -> SessionStatus:
        prompt_id = session.prompt.prompt_id
        self._active[prompt_id] = session
        diagnostics.emit(
            self.bus,
            "session.start",
            component="session",
            operation=operation,
            data={"prompt_id": prompt_id, "owner_id": session.owner_id},
        )
        self.logger.verbose(f"Session {operation} opened on {prompt_id} for {session.owner_id}")
        try:
            return await session.run()
        finally:
            self._active.pop(prompt_id, None)
            diagnostics.emit(
                self.bus,
                "session.end",
                component="session",
                operation=operation,
                data={
                    "prompt_id": prompt_id,
                    "status": session.status.value,
                    "committed": session.last_commit is not None,
                },
            )
            self.logger.verbose(f"Session {operation} on {prompt_id} ended: {session.status.value}")

    def _render_topic(self, session: Session) -> Any:
        state = session.state
        artifact = self.renderer.render(state.topic, state.draft, state.current_page)
        return self.renderer.attach_navigation(artifact, state.current_page, state.total_pages)
