"""Error handling with friendly messages."""

from __future__ import annotations

from collections.abc import Iterable


class DraftDeskError(Exception):
    """Base exception for all DraftDesk errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(DraftDeskError):
    """Configuration error."""

    pass


class RegistrationError(DraftDeskError):
    """A handler or topic was registered twice or with an invalid id."""

    pass


class UnknownTopicError(DraftDeskError):
    """No topic is registered under the requested identifier."""

    def __init__(self, topic: str) -> None:
        self.topic = topic
        super().__init__(
            f"Topic '{topic}' is not registered",
            "Register the topic with SessionEngine.register_topic() first",
        )


class FieldValidationError(DraftDeskError):
    """User input failed a field-specific check.

    Recovered locally: the draft is left unchanged and the session stays active.
    """

    def __init__(self, message: str, field: str | None = None, suggestion: str | None = None):
        self.field = field
        super().__init__(message, suggestion)


class BatchValidationError(FieldValidationError):
    """A bulk submission contained invalid entries; nothing from it was applied."""

    def __init__(self, invalid: Iterable[str], field: str | None = None) -> None:
        self.invalid = list(invalid)
        listed = ", ".join(self.invalid)
        super().__init__(
            f"Invalid entries: {listed}; none of the submitted entries were added",
            field=field,
            suggestion="Correct the listed entries and submit the whole batch again",
        )


class EntriesNotFoundError(FieldValidationError):
    """A removal referenced identifiers that do not exist; nothing was removed."""

    def __init__(self, missing: Iterable[str], field: str | None = None) -> None:
        self.missing = list(missing)
        listed = ", ".join(self.missing)
        super().__init__(
            f"Entries not found: {listed}; nothing was removed",
            field=field,
            suggestion="Use the list action to view the current identifiers",
        )


class NoChangesError(DraftDeskError):
    """Confirm was requested on a draft identical to the original."""

    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__(
            f"There were no changes made to the {title} to save",
            "Modify at least one setting before confirming",
        )


class CommitError(DraftDeskError):
    """Persisting a draft failed; the session remains active and may retry."""

    def __init__(self, message: str, reason: str = "failed", suggestion: str | None = None):
        self.reason = reason
        super().__init__(message, suggestion or "Your changes are kept; try saving again")
