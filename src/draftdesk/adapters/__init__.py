"""In-process implementations of the engine's collaborators."""

from draftdesk.adapters.render import PlainRenderer, PromptRegistry, RecordingPrompt
from draftdesk.adapters.store import InMemoryRecordStore, YamlRecordStore, apply_patch
from draftdesk.adapters.transport import QueueEventSource, QueueSubscription

__all__ = [
    "InMemoryRecordStore",
    "PlainRenderer",
    "PromptRegistry",
    "QueueEventSource",
    "QueueSubscription",
    "RecordingPrompt",
    "YamlRecordStore",
    "apply_patch",
]
