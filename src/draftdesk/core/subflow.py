"""Collection editing inside a nested prompt.

A sub-flow edits a private copy of a list of entries (e.g. restriction rules).
Every mutation is all-or-nothing; only confirm hands the copy back to the
parent, while discard and timeout hand back the value it started from.
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from draftdesk.core.errors import BatchValidationError, EntriesNotFoundError, FieldValidationError
from draftdesk.core.logging import Logger
from draftdesk.core.pagination import Direction, Pager, chunk
from draftdesk.core.router import EventRouter, HandlerContext
from draftdesk.core.state import clone
from draftdesk.core.watchdog import SessionStatus

Entry = dict[str, Any]

# Shape of new_entry_id values.
OBJECT_ID = re.compile(r"[0-9a-f]{24}")


def new_entry_id() -> str:
    """24 hex characters, the shape of a document object id."""
    return secrets.token_hex(12)


def _describe_by_id(entry: Mapping[str, Any]) -> str:
    return str(entry.get("_id", entry.get("id", entry)))


@dataclass(frozen=True)
class SubflowActions:
    """How one collection-valued field is edited.

    parse turns a text submission into candidate entries (it may raise
    FieldValidationError when the submission as a whole is unusable), validate
    accepts or rejects a single candidate, normalize converts an accepted
    candidate into its stored form, describe names an entry in messages. When
    id_pattern is set, removals naming identifiers it does not fully match are
    refused before any lookup.
    """

    topic: str
    label: str
    parse: Callable[[Mapping[str, str]], list[Entry]]
    validate: Callable[[Entry], bool] = lambda entry: True
    normalize: Callable[[Entry], Entry] = lambda entry: entry
    describe: Callable[[Entry], str] = _describe_by_id
    id_key: str = "_id"
    id_factory: Callable[[], str] = new_entry_id
    id_pattern: re.Pattern[str] | None = None
    page_size: int | None = None

    def action(self, suffix: str) -> str:
        return f"{self.topic}-{suffix}"


@dataclass(frozen=True)
class SubflowResult:
    committed: bool
    value: Any


class CollectionEditor:
    """Pure list operations; every method returns a new list or raises."""

    def __init__(self, actions: SubflowActions) -> None:
        self.actions = actions

    def ids(self, current: Sequence[Entry]) -> list[str]:
        key = self.actions.id_key
        return [str(e.get(key)) for e in current if isinstance(e, Mapping) and key in e]

    def add(self, current: Sequence[Entry], candidates: Sequence[Entry]) -> list[Entry]:
        if not candidates:
            raise FieldValidationError("Nothing to add", field=self.actions.label)

        invalid = [self.actions.describe(c) for c in candidates if not self.actions.validate(c)]
        if invalid:
            raise BatchValidationError(invalid, field=self.actions.label)

        out = clone(list(current))
        for candidate in candidates:
            entry = self.actions.normalize(clone(dict(candidate)))
            if not entry.get(self.actions.id_key):
                entry[self.actions.id_key] = self.actions.id_factory()
            out.append(entry)
        return out

    def remove(self, current: Sequence[Entry], ids: Sequence[str]) -> list[Entry]:
        wanted = list(dict.fromkeys(str(i) for i in ids))
        if not wanted:
            raise FieldValidationError(
                "Provide at least one identifier to remove", field=self.actions.label
            )

        pattern = self.actions.id_pattern
        if pattern is not None:
            malformed = [i for i in wanted if not pattern.fullmatch(i)]
            if malformed:
                raise FieldValidationError(
                    f"Invalid identifiers: {', '.join(malformed)}; nothing was removed",
                    field=self.actions.label,
                    suggestion="Identifiers are 24 hexadecimal characters",
                )

        existing = set(self.ids(current))
        missing = [i for i in wanted if i not in existing]
        if missing:
            raise EntriesNotFoundError(missing, field=self.actions.label)

        drop = set(wanted)
        return [clone(e) for e in current if str(e.get(self.actions.id_key)) not in drop]

    def clear(self, current: Sequence[Entry]) -> list[Entry]:
        return []

    def pages(self, current: Sequence[Entry], page_size: int) -> list[list[Entry]]:
        return chunk(list(current), page_size)


@dataclass
class SubflowView:
    """Render state of a sub-flow prompt: the action menu or the paged listing."""

    actions: SubflowActions
    page_size: int
    mode: str = "menu"
    pager: Pager = field(default_factory=Pager)

    def open_listing(self, entries: Sequence[Entry]) -> None:
        self.mode = "listing"
        self.pager = Pager(current=0, total=len(chunk(list(entries), self.page_size)))

    def sync(self, entries: Sequence[Entry]) -> None:
        """Keep the listing cursor in range after the collection changed."""
        total = len(chunk(list(entries), self.page_size))
        self.pager = Pager(current=min(self.pager.current, total - 1), total=total)

    def render(self, renderer: Any, entries: Sequence[Entry]) -> Any:
        topic = self.actions.topic
        if self.mode == "listing":
            page = chunk(list(entries), self.page_size)[self.pager.current]
            artifact = renderer.render_listing(topic, page, self.pager.current, self.pager.total)
            return renderer.attach_navigation(artifact, self.pager.current, self.pager.total)
        summary = {"label": self.actions.label, "count": len(entries)}
        artifact = renderer.render(topic, summary, 0)
        return renderer.attach_navigation(artifact, 0, 1)


def build_subflow_router(
    actions: SubflowActions,
    view: SubflowView,
    logger: Logger | None = None,
) -> EventRouter:
    """Private router for one sub-flow prompt."""
    router = EventRouter(logger=logger)
    editor = CollectionEditor(actions)
    topic = actions.topic

    @router.handler(topic, actions.action("add"))
    async def _add(ctx: HandlerContext) -> bool:
        candidates = actions.parse(ctx.event.fields)
        ctx.state.draft = editor.add(ctx.state.draft, candidates)
        view.sync(ctx.state.draft)
        count = len(candidates)
        await ctx.notify(f"Added {count} entr{'y' if count == 1 else 'ies'}", "success")
        return True

    @router.handler(topic, actions.action("remove"))
    async def _remove(ctx: HandlerContext) -> bool:
        raw = ctx.event.fields.get("ids", "") or ",".join(ctx.event.values)
        ids = [p.strip() for p in raw.replace("\n", ",").split(",") if p.strip()]
        ids = list(dict.fromkeys(ids))
        ctx.state.draft = editor.remove(ctx.state.draft, ids)
        view.sync(ctx.state.draft)
        await ctx.notify(f"Removed {len(ids)} entr{'y' if len(ids) == 1 else 'ies'}", "success")
        return True

    @router.handler(topic, actions.action("clear"))
    async def _clear(ctx: HandlerContext) -> bool:
        if not ctx.state.draft:
            await ctx.notify(f"There are no {actions.label.lower()} to clear", "info")
            return False
        count = len(ctx.state.draft)
        ctx.state.draft = editor.clear(ctx.state.draft)
        view.sync(ctx.state.draft)
        await ctx.notify(f"Cleared {count} entr{'y' if count == 1 else 'ies'}", "success")
        return True

    @router.handler(topic, actions.action("list"))
    async def _list(ctx: HandlerContext) -> bool:
        view.open_listing(ctx.state.draft)
        return True

    @router.handler(topic, actions.action("lnext"))
    async def _listing_next(ctx: HandlerContext) -> bool:
        before = view.pager.current
        return view.pager.navigate(Direction.NEXT) != before

    @router.handler(topic, actions.action("lprev"))
    async def _listing_prev(ctx: HandlerContext) -> bool:
        before = view.pager.current
        return view.pager.navigate(Direction.PREV) != before

    @router.handler(topic, actions.action("lbck"))
    async def _listing_back(ctx: HandlerContext) -> bool:
        view.mode = "menu"
        return True

    @router.handler(topic, actions.action("cfm"))
    async def _confirm(ctx: HandlerContext) -> bool:
        ctx.session.stop(SessionStatus.CONFIRMED)
        return False

    @router.handler(topic, actions.action("dis"))
    async def _discard(ctx: HandlerContext) -> bool:
        ctx.session.stop(SessionStatus.CANCELLED)
        return False

    return router
