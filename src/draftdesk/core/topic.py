"""Static description of an editable topic: layout, scope and handlers."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from draftdesk.core.commit import Check
from draftdesk.core.diff import get_path
from draftdesk.core.router import Handler
from draftdesk.core.state import clone

# Built-in action suffixes every topic gets.
NEXT = "next"
PREV = "prev"
CONFIRM = "cfm"
BACK = "bck"
BUILTIN_ACTIONS = (NEXT, PREV, CONFIRM, BACK)


@dataclass(frozen=True)
class FieldSpec:
    path: str
    label: str
    kind: str = "selection"
    options: tuple[str, ...] = ()
    action: str | None = None


@dataclass(frozen=True)
class PageLayout:
    title: str
    fields: tuple[FieldSpec, ...] = ()


@dataclass(frozen=True)
class TopicSpec:
    """Everything the engine needs to run sessions of one topic.

    `scope` is the dotted path of the edited value inside the source record;
    patches are written under it. `handlers` maps an action suffix to its
    handler; the registered action id is `<topic>-<suffix>`.
    A read_only topic only displays its value; confirming it saves nothing.
    """

    topic: str
    title: str
    pages: tuple[PageLayout, ...]
    scope: str = ""
    handlers: Mapping[str, Handler] = field(default_factory=dict)
    checks: Sequence[Check] = ()
    patch_extras: Callable[[str], dict[str, Any]] | None = None
    labels: Mapping[str, str] = field(default_factory=dict)
    close_on_commit: bool = True
    read_only: bool = False
    timeout: float | None = None
    idle: float | None = None

    def __post_init__(self) -> None:
        if not self.topic:
            raise ValueError("topic must be non-empty")
        if not self.pages:
            raise ValueError(f"topic '{self.topic}' needs at least one page")
        clash = set(self.handlers) & set(BUILTIN_ACTIONS)
        if clash:
            raise ValueError(f"topic '{self.topic}' redefines built-in actions: {sorted(clash)}")

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    def action(self, suffix: str) -> str:
        return f"{self.topic}-{suffix}"

    def field_labels(self) -> dict[str, str]:
        out = {f.path: f.label for page in self.pages for f in page.fields}
        out.update(self.labels)
        return out

    def select(self, record: Any) -> Any:
        """The value this topic edits, copied out of the source record."""
        value = get_path(record, self.scope)
        if value is None and self.scope:
            return {}
        return clone(value)

    def extras_for(self, actor_id: str) -> dict[str, Any]:
        if self.patch_extras is None:
            return {}
        return dict(self.patch_extras(actor_id))
