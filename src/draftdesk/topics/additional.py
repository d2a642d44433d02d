"""Additional settings: log deletion interval and member text input filtering."""

from __future__ import annotations

from draftdesk.core.errors import FieldValidationError
from draftdesk.core.router import HandlerContext
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.topics.common import bool_handler, set_path

TOPIC = "app-config-ac"
SCOPE = "settings"

MILLIS_IN_DAY = 86_400_000
LOG_DELETION_DAYS = (0, 1, 3, 7, 14, 30)


async def _set_log_deletion_interval(ctx: HandlerContext) -> bool:
    choice = ctx.event.values[0].strip().lower() if len(ctx.event.values) == 1 else ""
    days = choice.removesuffix("d")
    if not days.isdigit() or int(days) not in LOG_DELETION_DAYS:
        raise FieldValidationError(
            f"Unknown log deletion interval: {choice!r}",
            field="duty_activities.log_deletion_interval",
            suggestion=", ".join(f"{d}d" for d in LOG_DELETION_DAYS),
        )
    # 0 keeps logs forever.
    set_path(ctx.draft, "duty_activities.log_deletion_interval", int(days) * MILLIS_IN_DAY)
    return True


def additional_topic() -> TopicSpec:
    return TopicSpec(
        topic=TOPIC,
        title="additional configuration",
        scope=SCOPE,
        pages=(
            PageLayout(
                title="Additional Configuration",
                fields=(
                    FieldSpec(
                        "duty_activities.log_deletion_interval",
                        "Log Deletion Interval",
                        options=tuple(f"{d}d" for d in LOG_DELETION_DAYS),
                        action="ldi",
                    ),
                    FieldSpec(
                        "utif_enabled",
                        "Member Text Input Filtering",
                        options=("true", "false"),
                        action="utif",
                    ),
                ),
            ),
        ),
        handlers={
            "ldi": _set_log_deletion_interval,
            "utif": bool_handler("utif_enabled"),
        },
        close_on_commit=False,
    )
