"""Persisting a modified draft.

The store receives a partial patch of changed fields only, and the committing
session's baseline is refreshed from what the store returns, not from the
local draft.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from draftdesk.core import diagnostics
from draftdesk.core.diff import (
    FieldChange,
    build_patch,
    compute_field_diff,
    get_path,
    summarize_changes,
)
from draftdesk.core.errors import CommitError, NoChangesError
from draftdesk.core.events import EventBus
from draftdesk.core.interfaces import RecordStore
from draftdesk.core.logging import Logger, get_logger
from draftdesk.core.state import SessionState

# A check returns an error message for a draft it refuses, or None.
Check = Callable[[Any], str | None]


@dataclass(frozen=True)
class CommitResult:
    value: Any
    changes: list[FieldChange]
    summary: list[str]


class CommitHandler:
    def __init__(
        self,
        store: RecordStore,
        logger: Logger | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.store = store
        self.logger = logger or get_logger(__name__)
        self.bus = bus

    async def commit(
        self,
        state: SessionState[Any],
        *,
        record_id: str,
        scope: str = "",
        checks: Sequence[Check] = (),
        labels: Mapping[str, str] | None = None,
        extras: Mapping[str, Any] | None = None,
        title: str = "configuration",
    ) -> CommitResult:
        """Write the draft's changed fields and refresh the baseline.

        Raises:
            NoChangesError: draft equals original; the store is not called
            CommitError: a check refused the draft, or the store failed or
                returned nothing; original and draft are left untouched
        """
        if not state.is_modified():
            raise NoChangesError(title)

        for check in checks:
            problem = check(state.draft)
            if problem:
                raise CommitError(
                    problem,
                    reason="rejected",
                    suggestion="Resolve the conflict and confirm again",
                )

        changes = compute_field_diff(state.original, state.draft)
        patch = build_patch(changes, scope)
        patch.update(extras or {})

        op = f"{state.topic}.commit"
        diagnostics.emit(
            self.bus,
            "boundary.start",
            component="commit",
            operation=op,
            data={"record_id": record_id, "fields": sorted(patch)},
        )
        t0 = time.monotonic()

        try:
            updated = await self.store.conditional_update(record_id, patch)
        except Exception as e:
            self.logger.warning(
                f"Commit of {state.topic} for {record_id} failed: {type(e).__name__}: {e}"
            )
            self._emit_end(op, record_id, t0, status="failed", error=type(e).__name__)
            raise CommitError(f"Failed to save the {title}: {e}") from e

        if updated is None:
            self.logger.warning(f"Store rejected commit of {state.topic} for {record_id}")
            self._emit_end(op, record_id, t0, status="failed", error="rejected")
            raise CommitError(f"The {title} could not be saved")

        persisted = get_path(updated, scope)
        state.replace_baseline(persisted)
        self._emit_end(op, record_id, t0, status="succeeded")
        self.logger.verbose(f"Committed {len(changes)} field(s) of {state.topic} for {record_id}")

        return CommitResult(
            value=state.original,
            changes=changes,
            summary=summarize_changes(changes, persisted, labels),
        )

    def _emit_end(self, op: str, record_id: str, t0: float, **data: Any) -> None:
        diagnostics.emit(
            self.bus,
            "boundary.end",
            component="commit",
            operation=op,
            data={
                "record_id": record_id,
                "duration_ms": int((time.monotonic() - t0) * 1000),
                **data,
            },
        )
