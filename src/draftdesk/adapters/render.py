"""JSON-friendly rendering and an in-memory prompt target.

PlainRenderer turns a draft into a dict built from the topic's page layout;
RecordingPrompt keeps what was last shown plus every notice, which is all the
HTTP surface and the tests need.
"""

from __future__ import annotations

import itertools
from collections import OrderedDict
from collections.abc import Sequence
from typing import Any

from draftdesk.core.diff import format_value, get_path
from draftdesk.core.pagination import page_label
from draftdesk.core.topic import PageLayout

DEFAULT_KEEP_FINISHED = 32


class PlainRenderer:
    def __init__(self) -> None:
        self._layouts: dict[str, tuple[PageLayout, ...]] = {}

    def register_layout(self, topic: str, pages: Sequence[PageLayout]) -> None:
        self._layouts[topic] = tuple(pages)

    def render(self, topic: str, draft: Any, page_index: int) -> dict[str, Any]:
        pages = self._layouts.get(topic)
        if not pages:
            return {"topic": topic, "page": page_index, "title": topic, "value": draft}

        layout = pages[min(page_index, len(pages) - 1)]
        fields = []
        for spec in layout.fields:
            value = get_path(draft, spec.path)
            fields.append(
                {
                    "path": spec.path,
                    "label": spec.label,
                    "kind": spec.kind,
                    "value": value,
                    "display": format_value(value),
                    "options": list(spec.options),
                    "action": f"{topic}-{spec.action}" if spec.action else None,
                }
            )
        return {"topic": topic, "page": page_index, "title": layout.title, "fields": fields}

    def render_listing(
        self,
        topic: str,
        entries: Sequence[Any],
        page_index: int,
        total_pages: int,
    ) -> dict[str, Any]:
        return {
            "topic": topic,
            "page": page_index,
            "title": f"{topic} listing",
            "entries": list(entries),
            "empty": not entries,
        }

    def attach_navigation(
        self, artifact: dict[str, Any], page_index: int, total_pages: int
    ) -> dict[str, Any]:
        out = dict(artifact)
        out["navigation"] = {
            "page": page_index,
            "total_pages": total_pages,
            "label": page_label(page_index, total_pages),
            "has_prev": page_index > 0,
            "has_next": page_index < total_pages - 1,
        }
        out["disabled"] = False
        return out


class PromptRegistry:
    """prompt_id -> RecordingPrompt, so prompts can be found by id.

    Prompts of finished sessions are moved to a bounded history by `unregister`
    so their final state stays readable for a while; children are dropped.
    """

    def __init__(self, keep_finished: int = DEFAULT_KEEP_FINISHED) -> None:
        self._prompts: dict[str, RecordingPrompt] = {}
        self._finished: OrderedDict[str, RecordingPrompt] = OrderedDict()
        self.keep_finished = keep_finished
        self._ids = itertools.count(1)

    def new(self, title: str = "") -> RecordingPrompt:
        prompt = RecordingPrompt(f"p{next(self._ids)}", title=title, registry=self)
        self.register(prompt)
        return prompt

    def register(self, prompt: RecordingPrompt) -> None:
        self._prompts[prompt.prompt_id] = prompt

    def unregister(self, prompt_id: str) -> RecordingPrompt | None:
        prompt = self._prompts.pop(prompt_id, None)
        if prompt is None:
            return None
        for child in prompt.children:
            self._drop(child)

        if self.keep_finished > 0:
            self._finished[prompt_id] = prompt
            while len(self._finished) > self.keep_finished:
                self._finished.popitem(last=False)
        return prompt

    def _drop(self, prompt: RecordingPrompt) -> None:
        self._prompts.pop(prompt.prompt_id, None)
        for child in prompt.children:
            self._drop(child)

    def get(self, prompt_id: str) -> RecordingPrompt | None:
        return self._prompts.get(prompt_id) or self._finished.get(prompt_id)

    def is_active(self, prompt_id: str) -> bool:
        return prompt_id in self._prompts

    def all(self) -> list[RecordingPrompt]:
        return list(self._prompts.values())


class RecordingPrompt:
    def __init__(
        self,
        prompt_id: str = "prompt",
        title: str = "",
        *,
        parent: RecordingPrompt | None = None,
        registry: PromptRegistry | None = None,
    ) -> None:
        self._prompt_id = prompt_id
        self.title = title
        self.parent = parent
        self.registry = registry

        self.artifact: Any = None
        self.shown = 0
        self.disable_calls = 0
        self.closed = False
        self.notices: list[dict[str, str]] = []
        self.children: list[RecordingPrompt] = []

    @property
    def prompt_id(self) -> str:
        return self._prompt_id

    @property
    def disabled(self) -> bool:
        return self.disable_calls > 0

    async def show(self, artifact: Any) -> None:
        self.artifact = artifact
        self.shown += 1

    async def disable(self) -> None:
        self.disable_calls += 1
        if isinstance(self.artifact, dict):
            self.artifact = {**self.artifact, "disabled": True}

    async def notify(self, actor_id: str, message: str, level: str = "info") -> None:
        self.notices.append({"actor_id": str(actor_id), "message": message, "level": level})

    async def open_child(self, title: str) -> RecordingPrompt:
        child = RecordingPrompt(
            f"{self.prompt_id}.{len(self.children) + 1}",
            title=title,
            parent=self,
            registry=self.registry,
        )
        self.children.append(child)
        if self.registry is not None:
            self.registry.register(child)
        return child

    async def close(self) -> None:
        self.closed = True

    def messages(self, level: str | None = None) -> list[str]:
        return [n["message"] for n in self.notices if level is None or n["level"] == level]

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt_id": self.prompt_id,
            "title": self.title,
            "artifact": self.artifact,
            "disabled": self.disabled,
            "closed": self.closed,
            "notices": list(self.notices),
            "children": [c.prompt_id for c in self.children],
        }
