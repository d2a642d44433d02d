"""Tests for the record stores."""

from __future__ import annotations

import asyncio

import pytest
import yaml

from draftdesk.adapters import InMemoryRecordStore, YamlRecordStore, apply_patch
from draftdesk.core.events import EventBus


def test_apply_patch_sets_dotted_paths_without_touching_input():
    doc = {"settings": {"a": 1, "b": {"c": 2}}}

    out = apply_patch(doc, {"settings.b.c": 3, "settings.new.deep": [1], "top": None})

    assert out == {"settings": {"a": 1, "b": {"c": 3}, "new": {"deep": [1]}}, "top": None}
    assert doc == {"settings": {"a": 1, "b": {"c": 2}}}


class TestInMemoryRecordStore:
    def test_update_returns_fresh_document(self):
        store = InMemoryRecordStore({"r": {"_id": "r", "x": 1}})

        result = asyncio.run(store.conditional_update("r", {"x": 2}))

        assert result == {"_id": "r", "x": 2}
        result["x"] = 99
        assert store.snapshot("r")["x"] == 2
        assert not hasattr(store, "calls")

    def test_unknown_record(self):
        store = InMemoryRecordStore()
        assert asyncio.run(store.conditional_update("missing", {"x": 1})) is None

    def test_normalizer_then_validator(self):
        def lower_name(doc):
            doc["name"] = doc["name"].lower()

        def no_admin(doc):
            return "reserved name" if doc["name"] == "admin" else None

        store = InMemoryRecordStore(
            {"r": {"name": "x"}}, normalizers=[lower_name], validators=[no_admin]
        )

        assert asyncio.run(store.conditional_update("r", {"name": "ADMIN"})) is None
        assert store.snapshot("r") == {"name": "x"}
        assert asyncio.run(store.conditional_update("r", {"name": "Bob"})) == {"name": "bob"}

    def test_boundary_envelopes(self):
        bus = EventBus()
        seen = []
        bus.subscribe("boundary.end", lambda env: seen.append(env["data"]["status"]))
        store = InMemoryRecordStore({"r": {"x": 1}}, bus=bus)

        asyncio.run(store.conditional_update("r", {"x": 2}))
        asyncio.run(store.conditional_update("nope", {"x": 2}))

        assert seen == ["succeeded", "not_found"]

    def test_put_sets_id(self):
        store = InMemoryRecordStore()
        store.put("a", {"v": 1})
        assert asyncio.run(store.get("a")) == {"v": 1, "_id": "a"}


class TestYamlRecordStore:
    def test_updates_are_persisted(self, tmp_path):
        path = tmp_path / "records.yaml"
        store = YamlRecordStore(path)
        store.put("g1", {"settings": {"enabled": False}})

        asyncio.run(store.conditional_update("g1", {"settings.enabled": True}))

        on_disk = yaml.safe_load(path.read_text())
        assert on_disk == {"g1": {"_id": "g1", "settings": {"enabled": True}}}
        assert YamlRecordStore(path).snapshot("g1")["settings"]["enabled"] is True
        assert not path.with_suffix(".yaml.tmp").exists()

    def test_missing_file_is_empty(self, tmp_path):
        assert YamlRecordStore(tmp_path / "none.yaml").snapshot("x") is None

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            YamlRecordStore(path)
