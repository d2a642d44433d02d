"""Tests for PlainRenderer and the recording prompt."""

from __future__ import annotations

import asyncio

from draftdesk.adapters import PlainRenderer, PromptRegistry, RecordingPrompt
from draftdesk.core.topic import FieldSpec, PageLayout

PAGES = (
    PageLayout(
        "General",
        (
            FieldSpec("enabled", "Enabled", options=("true", "false"), action="en"),
            FieldSpec("limits.max", "Maximum", kind="text"),
        ),
    ),
    PageLayout("Roles", (FieldSpec("roles", "Roles", kind="subflow", action="roles"),)),
)


def test_render_uses_layout():
    renderer = PlainRenderer()
    renderer.register_layout("t", PAGES)

    artifact = renderer.render("t", {"enabled": True, "limits": {"max": 4}}, 0)

    assert artifact["title"] == "General"
    enabled, maximum = artifact["fields"]
    assert enabled == {
        "path": "enabled",
        "label": "Enabled",
        "kind": "selection",
        "value": True,
        "display": "Yes",
        "options": ["true", "false"],
        "action": "t-en",
    }
    assert maximum["value"] == 4 and maximum["action"] is None


def test_render_unknown_topic_passes_value_through():
    artifact = PlainRenderer().render("x", {"a": 1}, 0)
    assert artifact == {"topic": "x", "page": 0, "title": "x", "value": {"a": 1}}


def test_navigation():
    renderer = PlainRenderer()
    nav = renderer.attach_navigation({"topic": "t"}, 1, 2)["navigation"]
    assert nav == {
        "page": 1,
        "total_pages": 2,
        "label": "Page 2/2",
        "has_prev": True,
        "has_next": False,
    }


def test_listing():
    artifact = PlainRenderer().render_listing("roles", [], 0, 1)
    assert artifact["entries"] == [] and artifact["empty"] is True


def test_recording_prompt_children_are_registered():
    async def run():
        registry = PromptRegistry()
        prompt = registry.new("Config")
        child = await prompt.open_child("Roles")
        await child.show({"x": 1})
        await child.disable()
        await child.notify("u1", "done", "success")
        return registry, prompt, child

    registry, prompt, child = asyncio.run(run())

    assert prompt.prompt_id == "p1" and child.prompt_id == "p1.1"
    assert registry.get("p1.1") is child
    assert child.artifact == {"x": 1, "disabled": True}
    assert child.messages("success") == ["done"]
    assert prompt.to_dict()["children"] == ["p1.1"]
    assert [p.prompt_id for p in registry.all()] == ["p1", "p1.1"]


def test_recording_prompt_defaults():
    prompt = RecordingPrompt()
    assert prompt.prompt_id == "prompt"
    assert prompt.disabled is False


class TestPromptRegistryRetention:
    def test_unregister_drops_children_and_keeps_finished_prompt_readable(self):
        async def run():
            registry = PromptRegistry()
            prompt = registry.new("Config")
            child = await prompt.open_child("Roles")
            await child.open_child("Nested")
            return registry, prompt, child

        registry, prompt, child = asyncio.run(run())

        assert registry.unregister("p1") is prompt
        assert registry.all() == []
        assert registry.get("p1") is prompt
        assert registry.is_active("p1") is False
        assert registry.get("p1.1") is None and registry.get("p1.1.1") is None
        assert registry.unregister("p1") is None

    def test_finished_history_is_bounded(self):
        registry = PromptRegistry(keep_finished=2)
        for _ in range(3):
            registry.unregister(registry.new().prompt_id)

        assert registry.get("p1") is None
        assert [registry.get(p).prompt_id for p in ("p2", "p3")] == ["p2", "p3"]

    def test_no_history(self):
        registry = PromptRegistry(keep_finished=0)
        registry.unregister(registry.new().prompt_id)
        assert registry.get("p1") is None
