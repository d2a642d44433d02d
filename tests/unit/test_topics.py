"""Bundled topics driven through the engine."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from draftdesk.core.errors import BatchValidationError, FieldValidationError
from draftdesk.core.subflow import CollectionEditor
from draftdesk.core.ui_event import UIEvent
from draftdesk.core.watchdog import SessionStatus
from draftdesk.topics import register_default_topics
from draftdesk.topics.basic import (
    SignatureFormat,
    roblox_dependency_conflict,
    roblox_dependent_features,
)
from draftdesk.topics.callsigns import BEAT_RESTRICTIONS, UNIT_TYPE_RESTRICTIONS
from session_support import Driver, RecordingStore, make_engine

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


def _engine(*records, **kw):
    store = RecordingStore({r["_id"]: r for r in records})
    engine, events, store = make_engine(store=store)
    register_default_topics(engine, now=lambda: FIXED_NOW, **kw)
    return engine, events, store


def sel(action: str, *values: str, actor: str = "u1") -> UIEvent:
    return UIEvent.selection(f"{action}:{actor}", actor, list(values))


def btn(action: str, actor: str = "u1") -> UIEvent:
    return UIEvent.button(f"{action}:{actor}", actor)


def text(action: str, actor: str = "u1", **fields: str) -> UIEvent:
    return UIEvent.text(f"{action}:{actor}", actor, fields)


class TestRobloxDependency:
    def test_features_from_signature_format(self):
        fmt = int(SignatureFormat.ROBLOX_USERNAME | 1)
        settings = {"duty_activities": {"signature_format": fmt}}
        assert roblox_dependent_features(settings) == ["Roblox Username"]

    def test_no_conflict_while_authorization_required(self):
        settings = {"require_authorization": True, "duty_activities": {"signature_format": 4}}
        assert roblox_dependency_conflict(settings) is None

    def test_no_conflict_without_roblox_signatures(self):
        settings = {"require_authorization": False, "duty_activities": {"signature_format": 3}}
        assert roblox_dependency_conflict(settings) is None

    def test_conflict_names_features(self):
        settings = {"require_authorization": False, "duty_activities": {"signature_format": 12}}
        problem = roblox_dependency_conflict(settings)
        assert "Roblox Display Name, Roblox Username" in problem


def test_basic_topic_saves_role_permissions(guild_record):
    async def run():
        engine, events, store = _engine(guild_record)
        d = Driver(engine, events)
        await d.start("app-config-bc", guild_record)
        await d.send(sel("app-config-bc-mrs", "r-mgmt", "r-mgmt", "r-admin"))
        await d.send(btn("app-config-bc-cfm"))
        running = not d.task.done()
        await d.send(btn("app-config-bc-bck"))
        return running, await d.outcome(), d.prompt, store

    running, outcome, prompt, store = asyncio.run(run())

    assert running
    assert outcome.committed
    assert store.calls == [("guild-1", {"settings.role_perms.management": ["r-mgmt", "r-admin"]})]
    assert store.snapshot("guild-1")["settings"]["role_perms"]["staff"] == ["r-staff"]
    assert "Management Roles: r-mgmt, r-admin" in outcome.summary


def test_basic_topic_refuses_optional_authorization_with_roblox_signature(guild_record):
    guild_record["settings"]["duty_activities"]["signature_format"] = 5

    async def run():
        engine, events, store = _engine(guild_record)
        d = Driver(engine, events)
        await d.start("app-config-bc", guild_record)
        await d.send(sel("app-config-bc-ra", "false"))
        modified = engine.active_sessions()[0]["modified"]
        await d.send(btn("app-config-bc-bck"))
        return modified, await d.outcome(), d.prompt, store

    modified, outcome, prompt, store = asyncio.run(run())

    assert modified is False
    assert outcome.status is SessionStatus.CANCELLED
    [error] = prompt.messages("error")
    assert "Roblox Display Name" in error
    assert store.calls == []


def test_basic_topic_role_filter(guild_record):
    async def run():
        engine, events, store = _engine(guild_record, role_filter=lambda r: r != "everyone")
        d = Driver(engine, events)
        await d.start("app-config-bc", guild_record)
        await d.send(sel("app-config-bc-srs", "r-staff", "everyone"))
        modified = engine.active_sessions()[0]["modified"]
        await d.send(btn("app-config-bc-bck"))
        await d.outcome()
        return modified, d.prompt

    modified, prompt = asyncio.run(run())

    assert modified is False
    assert "everyone" in prompt.messages("error")[0]


def test_callsigns_unit_type_restrictions(guild_record):
    async def run():
        engine, events, store = _engine(guild_record)
        d = Driver(engine, events)
        await d.start("app-config-cs", guild_record)
        await d.send(btn("app-config-cs-utr"))
        child = await d.child()
        await d.send(
            UIEvent.text("cs-utr-add", "u1", {"unit_types": "air, Zeppelin", "roles": "r1"}),
            prompt=child,
        )
        rejected = child.messages("error")
        await d.send(
            UIEvent.text("cs-utr-add", "u1", {"unit_types": "air, K9", "roles": "r1, r2"}),
            prompt=child,
        )
        await d.close_child(UIEvent.button("cs-utr-cfm", "u1"), child)
        await d.send(btn("app-config-cs-cfm"))
        await d.send(btn("app-config-cs-bck"))
        return rejected, await d.outcome(), store

    rejected, outcome, store = asyncio.run(run())

    assert len(rejected) == 1 and "Zeppelin" in rejected[0]
    saved = store.snapshot("guild-1")["settings"]["callsigns_module"]["unit_type_restrictions"]
    assert [e["unit_type"] for e in saved] == ["Air", "K9"]
    assert all(e["permitted_roles"] == ["r1", "r2"] for e in saved)
    assert all(len(e["_id"]) == 24 for e in saved)
    assert outcome.committed
    assert "Unit Type Restrictions: 2 entries" in outcome.summary


def test_callsigns_beat_restrictions_on_second_page(guild_record):
    async def run():
        engine, events, store = _engine(guild_record)
        d = Driver(engine, events)
        await d.start("app-config-cs", guild_record)
        for _ in range(3):
            await d.send(btn("app-config-cs-next"))
        page_title = d.prompt.artifact["title"]
        await d.send(btn("app-config-cs-bnr"))
        child = await d.child()
        await d.send(
            UIEvent.text("cs-bnr-add", "u1", {"beat_ranges": "1-50, 60-40", "roles": "r1"}),
            prompt=child,
        )
        rejected = child.messages("error")
        await d.send(
            UIEvent.text("cs-bnr-add", "u1", {"beat_ranges": "100-199", "roles": "r1, r1"}),
            prompt=child,
        )
        await d.close_child(UIEvent.button("cs-bnr-cfm", "u1"), child)
        await d.send(btn("app-config-cs-cfm"))
        await d.send(btn("app-config-cs-bck"))
        return page_title, rejected, store

    page_title, rejected, store = asyncio.run(run())

    assert page_title == "Beat Number Restrictions"
    assert "60-40" in rejected[0] and "1-50" not in rejected[0].split(";")[0]
    [entry] = store.snapshot("guild-1")["settings"]["callsigns_module"]["beat_restrictions"]
    assert entry["range"] == [100, 199]
    assert entry["permitted_roles"] == ["r1"]


def test_incident_edit_stamps_last_updated(incident_record):
    async def run():
        engine, events, store = _engine(incident_record, signature=lambda a: f"Officer {a}")
        d = Driver(engine, events)
        await d.start("incident-edit", incident_record)
        await d.send(sel("incident-edit-status", "Closed"))
        await d.send(text("incident-edit-suspects", suspects="John Doe, x, Jane Roe"))
        await d.send(text("incident-edit-notes", notes="  seen   near\nthe docks "))
        await d.send(btn("incident-edit-cfm"))
        return await d.outcome(), store

    outcome, store = asyncio.run(run())

    assert outcome.status is SessionStatus.CONFIRMED
    [(record_id, patch)] = store.calls
    assert record_id == "inc-1"
    assert patch["status"] == "Closed"
    assert patch["suspects"] == ["John Doe", "Jane Roe"]
    assert patch["notes"] == "seen near the docks"
    assert patch["last_updated"] == FIXED_NOW.isoformat()
    assert patch["last_updated_by"] == {"discord_id": "u1", "signature": "Officer u1"}
    assert "officers" not in patch
    saved = store.snapshot("inc-1")
    assert saved["last_updated_by"]["signature"] == "Officer u1"
    assert saved["officers"] == ["@officer"]


def test_incident_rejects_unknown_status_and_short_notes(incident_record):
    async def run():
        engine, events, store = _engine(incident_record)
        d = Driver(engine, events)
        await d.start("incident-edit", incident_record)
        await d.send(sel("incident-edit-status", "Solved"))
        await d.send(text("incident-edit-notes", notes="ok"))
        modified = engine.active_sessions()[0]["modified"]
        await d.send(btn("incident-edit-bck"))
        await d.outcome()
        return modified, d.prompt

    modified, prompt = asyncio.run(run())

    assert modified is False
    errors = prompt.messages("error")
    assert len(errors) == 2
    assert "at least 3 characters" in errors[1]


def test_default_topics_are_registered():
    engine, events, store = make_engine()
    names = register_default_topics(engine)
    assert names == [
        "app-config",
        "app-config-vc",
        "app-config-bc",
        "app-config-sc",
        "app-config-da",
        "app-config-loa",
        "app-config-ra",
        "app-config-cs",
        "app-config-ac",
        "incident-edit",
    ]
    assert engine.topic("app-config").pages[0].fields[0].options == tuple(names[1:-1])
    assert engine.topics() == sorted(names)
    assert engine.topic("incident-edit").timeout == 750.0


class TestCallsignRestrictionParsing:
    def test_permitted_roles_are_required(self):
        with pytest.raises(FieldValidationError, match="between 1 and 6"):
            UNIT_TYPE_RESTRICTIONS.parse({"unit_types": "K9"})

    def test_at_most_six_permitted_roles(self):
        roles = ", ".join(f"r{i}" for i in range(7))
        with pytest.raises(FieldValidationError, match="got 7"):
            BEAT_RESTRICTIONS.parse({"beat_ranges": "1-5", "roles": roles})

    def test_entry_without_roles_is_refused(self):
        with pytest.raises(BatchValidationError) as exc:
            CollectionEditor(UNIT_TYPE_RESTRICTIONS).add(
                [], [{"unit_type": "K9", "permitted_roles": []}]
            )
        assert exc.value.invalid == ["K9"]

    def test_blank_items_fail_the_whole_batch(self):
        candidates = UNIT_TYPE_RESTRICTIONS.parse({"unit_types": "K9,,   ,A", "roles": "r1"})
        assert [c["unit_type"] for c in candidates] == ["K9", "", "", "A"]

        with pytest.raises(BatchValidationError) as exc:
            CollectionEditor(UNIT_TYPE_RESTRICTIONS).add([], candidates)
        assert exc.value.invalid == ["(blank)", "(blank)"]

    def test_trailing_separator_in_beat_ranges(self):
        candidates = BEAT_RESTRICTIONS.parse({"beat_ranges": "1-5,", "roles": "r1"})
        with pytest.raises(BatchValidationError):
            CollectionEditor(BEAT_RESTRICTIONS).add([], candidates)


def test_callsigns_blank_and_roleless_submissions_over_a_session(guild_record):
    async def run():
        engine, events, store = _engine(guild_record)
        d = Driver(engine, events)
        await d.start("app-config-cs", guild_record)
        await d.send(btn("app-config-cs-utr"))
        child = await d.child()
        await d.send(
            UIEvent.text("cs-utr-add", "u1", {"unit_types": "K9,,   ,A", "roles": "r1"}),
            prompt=child,
        )
        await d.send(UIEvent.text("cs-utr-add", "u1", {"unit_types": "K9"}), prompt=child)
        await d.send(UIEvent.text("cs-utr-remove", "u1", {"ids": "not-an-id"}), prompt=child)
        await d.send(btn("cs-utr-clear"), prompt=child)
        await d.close_child(UIEvent.button("cs-utr-cfm", "u1"), child)
        modified = engine.active_sessions()[0]["modified"]
        await d.send(btn("app-config-cs-bck"))
        await d.outcome()
        return child, modified, store

    child, modified, store = asyncio.run(run())

    blank, roleless, malformed = child.messages("error")
    assert "(blank)" in blank
    assert "between 1 and 6" in roleless
    assert "Invalid identifiers: not-an-id" in malformed
    assert child.messages("info") == ["There are no unit type restrictions to clear"]
    assert modified is False
    assert store.calls == []


def test_callsigns_module_settings(guild_record):
    async def run():
        engine, events, store = _engine(guild_record)
        d = Driver(engine, events)
        await d.start("app-config-cs", guild_record)
        await d.send(text("app-config-cs-rc", channel="c-requests"))
        await d.send(text("app-config-cs-lc", channel="c-log"))
        await d.send(sel("app-config-cs-mgr", "r1", "r2"))
        await d.send(sel("app-config-cs-mgr", *[f"r{i}" for i in range(7)]))
        await d.send(sel("app-config-cs-aor", "true"))
        await d.send(sel("app-config-cs-ara", "true"))
        await d.send(sel("app-config-cs-acr", "false"))
        await d.send(text("app-config-cs-nf", format="{unit_type}-{beat_num} {callsign}"))
        await d.send(text("app-config-cs-nf", format="[{unit_type}-{beat_num}] {display_name}"))
        await d.send(sel("app-config-cs-utrm", "true"))
        await d.send(btn("app-config-cs-cfm"))
        await d.send(btn("app-config-cs-bck"))
        return await d.outcome(), d.prompt, store

    outcome, prompt, store = asyncio.run(run())

    too_many, bad_placeholder = prompt.messages("error")
    assert "got 7" in too_many
    assert "{callsign}" in bad_placeholder
    [(_, patch)] = store.calls
    assert patch == {
        "settings.callsigns_module.requests_channel": "c-requests",
        "settings.callsigns_module.log_channel": "c-log",
        "settings.callsigns_module.manager_roles": ["r1", "r2"],
        "settings.callsigns_module.alert_on_request": True,
        "settings.callsigns_module.update_nicknames": True,
        "settings.callsigns_module.release_on_inactivity": False,
        "settings.callsigns_module.nickname_format": "[{unit_type}-{beat_num}] {display_name}",
        "settings.callsigns_module.unit_type_whitelist": True,
    }
    assert outcome.committed
    assert "Alert Managers on Requests: Yes" in outcome.summary
