"""Basic application settings: authorization requirement and role permissions."""

from __future__ import annotations

from collections.abc import Callable
from enum import IntFlag
from typing import Any

from draftdesk.core.diff import get_path
from draftdesk.core.errors import FieldValidationError
from draftdesk.core.router import HandlerContext
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.topics.common import role_handler
from draftdesk.validators import parse_bool_choice

TOPIC = "app-config-bc"
SCOPE = "settings"


class SignatureFormat(IntFlag):
    """Duty activity log signature parts."""

    DISCORD_NICKNAME = 1
    DISCORD_USERNAME = 2
    ROBLOX_DISPLAY_NAME = 4
    ROBLOX_USERNAME = 8


_ROBLOX_FEATURES = (
    (SignatureFormat.ROBLOX_DISPLAY_NAME, "Roblox Display Name"),
    (SignatureFormat.ROBLOX_USERNAME, "Roblox Username"),
)


def roblox_dependent_features(settings: Any) -> list[str]:
    fmt = SignatureFormat(int(get_path(settings, "duty_activities.signature_format", 0) or 0))
    return [name for flag, name in _ROBLOX_FEATURES if flag in fmt]


def roblox_dependency_conflict(settings: Any) -> str | None:
    """Roblox based signatures need linked accounts, so authorization must stay on."""
    features = roblox_dependent_features(settings)
    if not features or get_path(settings, "require_authorization") is not False:
        return None
    listed = ", ".join(features)
    return (
        f"Roblox account linking cannot be optional while duty activity signatures use: "
        f"{listed}. Change the signature format first."
    )


async def _set_require_authorization(ctx: HandlerContext) -> bool:
    ctx.draft["require_authorization"] = parse_bool_choice(
        ctx.event.values, field="require_authorization"
    )
    problem = roblox_dependency_conflict(ctx.draft)
    if problem:
        raise FieldValidationError(problem, field="require_authorization")
    return True


def basic_topic(role_filter: Callable[[str], bool] | None = None) -> TopicSpec:
    return TopicSpec(
        topic=TOPIC,
        title="basic app configuration",
        scope=SCOPE,
        pages=(
            PageLayout(
                title="Basic Configuration",
                fields=(
                    FieldSpec(
                        "require_authorization",
                        "Roblox Authorization Required",
                        options=("true", "false"),
                        action="ra",
                    ),
                    FieldSpec("role_perms.staff", "Staff Roles", action="srs"),
                    FieldSpec("role_perms.management", "Management Roles", action="mrs"),
                ),
            ),
        ),
        handlers={
            "ra": _set_require_authorization,
            "srs": role_handler("role_perms.staff", role_filter=role_filter),
            "mrs": role_handler("role_perms.management", role_filter=role_filter),
        },
        checks=(roblox_dependency_conflict,),
        close_on_commit=False,
    )
