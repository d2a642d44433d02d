"""Tests for the commit/save handler."""

from __future__ import annotations

import asyncio

import pytest

from draftdesk.adapters import InMemoryRecordStore
from draftdesk.core.commit import CommitHandler
from draftdesk.core.errors import CommitError, NoChangesError
from draftdesk.core.events import EventBus
from draftdesk.core.state import create_session
from session_support import FailingStore, RecordingLogger


class StubStore:
    """Returns a canned document and records every call."""

    def __init__(self, result) -> None:
        self.result = result
        self.calls: list[tuple[str, dict]] = []

    async def conditional_update(self, record_id, patch):
        self.calls.append((record_id, dict(patch)))
        return self.result


def _handler(store, bus=None) -> CommitHandler:
    return CommitHandler(store, logger=RecordingLogger(), bus=bus)


def test_unmodified_draft_never_reaches_store():
    store = StubStore({"enabled": True})
    state = create_session("t", {"enabled": False, "roles": []})
    state.draft["extra"] = None

    with pytest.raises(NoChangesError) as exc:
        asyncio.run(_handler(store).commit(state, record_id="r", title="settings"))

    assert store.calls == []
    assert "no changes" in exc.value.message


def test_basic_edit_and_confirm():
    store = StubStore({"enabled": True, "roles": []})
    state = create_session("t", {"enabled": False, "roles": []})
    state.draft["enabled"] = True
    assert state.is_modified()

    result = asyncio.run(_handler(store).commit(state, record_id="r"))

    assert store.calls == [("r", {"enabled": True})]
    assert "enabled: Yes" in result.summary
    assert state.original == {"enabled": True, "roles": []}
    assert not state.is_modified()


def test_baseline_comes_from_store_not_draft():
    # The store normalises the value it was given.
    store = StubStore({"_id": "g", "settings": {"name": "ALPHA", "other": 1}})
    state = create_session("t", {"name": "old", "other": 1})
    state.draft["name"] = "alpha"

    result = asyncio.run(_handler(store).commit(state, record_id="g", scope="settings"))

    assert store.calls[0][1] == {"settings.name": "alpha"}
    assert state.original == {"name": "ALPHA", "other": 1}
    assert state.draft == state.original
    assert result.summary == ["name: ALPHA"]


def test_extras_are_added_to_patch():
    store = StubStore({"status": "Closed", "last_updated": "now"})
    state = create_session("t", {"status": "Active"})
    state.draft["status"] = "Closed"

    asyncio.run(_handler(store).commit(state, record_id="i", extras={"last_updated": "now"}))

    assert store.calls[0][1] == {"status": "Closed", "last_updated": "now"}


@pytest.mark.parametrize("store", [StubStore(None), FailingStore({"r": {"enabled": False}})])
def test_store_failure_leaves_state_untouched(store):
    state = create_session("t", {"enabled": False})
    state.draft["enabled"] = True

    with pytest.raises(CommitError) as exc:
        asyncio.run(_handler(store).commit(state, record_id="r"))

    assert exc.value.reason == "failed"
    assert exc.value.suggestion
    assert state.original == {"enabled": False}
    assert state.draft == {"enabled": True}
    assert len(store.calls) == 1


def test_failing_check_rejects_without_store_call():
    store = StubStore({"a": 2})
    state = create_session("t", {"a": 1})
    state.draft["a"] = 2

    with pytest.raises(CommitError) as exc:
        asyncio.run(
            _handler(store).commit(
                state, record_id="r", checks=[lambda d: "conflict" if d["a"] == 2 else None]
            )
        )

    assert exc.value.reason == "rejected"
    assert store.calls == []
    assert state.is_modified()


def test_commit_emits_boundary_envelopes():
    bus = EventBus()
    seen: list[tuple[str, dict]] = []
    bus.subscribe_all(lambda event, data: seen.append((event, data)))
    store = InMemoryRecordStore({"r": {"a": 1}})
    state = create_session("t", {"a": 1})
    state.draft["a"] = 2

    asyncio.run(_handler(store, bus=bus).commit(state, record_id="r"))

    commit_events = [(e, d) for e, d in seen if d["component"] == "commit"]
    assert [e for e, _ in commit_events] == ["boundary.start", "boundary.end"]
    assert commit_events[1][1]["data"]["status"] == "succeeded"
