"""Editing an existing incident report."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from draftdesk.core.router import HandlerContext
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.validators import INCIDENT_STATUSES, parse_names, parse_notes, parse_status

TOPIC = "incident-edit"

# Absolute ceiling 12.5 minutes, idle window 10 minutes.
TIMEOUT_SECONDS = 750.0
IDLE_SECONDS = 600.0


async def _set_status(ctx: HandlerContext) -> bool:
    ctx.draft["status"] = parse_status(ctx.event.values)
    return True


def _names_handler(key: str):
    async def _set_names(ctx: HandlerContext) -> bool:
        ctx.draft[key] = parse_names(ctx.event.fields.get(key, ""))
        return True

    return _set_names


async def _set_notes(ctx: HandlerContext) -> bool:
    ctx.draft["notes"] = parse_notes(ctx.event.fields.get("notes"))
    return True


def incident_topic(
    signature: Callable[[str], str] | None = None,
    now: Callable[[], datetime] | None = None,
) -> TopicSpec:
    """Incident report topic; saving stamps who updated the report and when."""
    clock = now or (lambda: datetime.now(UTC))

    def _extras(actor_id: str) -> dict[str, Any]:
        return {
            "last_updated": clock().isoformat(),
            "last_updated_by": {
                "discord_id": actor_id,
                "signature": signature(actor_id) if signature else f"@{actor_id}",
            },
        }

    return TopicSpec(
        topic=TOPIC,
        title="incident report",
        pages=(
            PageLayout(
                title="Incident Report",
                fields=(
                    FieldSpec("status", "Status", options=INCIDENT_STATUSES, action="status"),
                    FieldSpec("officers", "Involved Officers", kind="text", action="officers"),
                    FieldSpec("suspects", "Suspects", kind="text", action="suspects"),
                    FieldSpec("witnesses", "Witnesses", kind="text", action="witnesses"),
                    FieldSpec("notes", "Notes", kind="text", action="notes"),
                ),
            ),
        ),
        handlers={
            "status": _set_status,
            "officers": _names_handler("officers"),
            "suspects": _names_handler("suspects"),
            "witnesses": _names_handler("witnesses"),
            "notes": _set_notes,
        },
        patch_extras=_extras,
        timeout=TIMEOUT_SECONDS,
        idle=IDLE_SECONDS,
    )
