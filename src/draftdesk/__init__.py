"""DraftDesk: draft/commit editing sessions for chat bots."""

from draftdesk.core import __version__

__all__ = ["__version__"]
