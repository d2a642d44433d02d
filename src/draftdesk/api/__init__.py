"""HTTP surface for driving sessions without a chat gateway."""

from draftdesk.api.server import create_app

__all__ = ["create_app"]
