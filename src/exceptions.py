"""Exception hierarchy for the learning diary bot."""


class DiaryError(Exception):
    """Base exception for the diary bot."""


class ConfigurationError(DiaryError):
    """Required configuration is missing or invalid."""


class ValidationError(DiaryError):
    """User input failed a format or range check.

    Flows catch this and re-prompt in the same step; it never reaches the
    error boundary.
    """

    def __init__(self, message: str, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class CollaboratorUnavailable(DiaryError):
    """A collaborator (store, AI service, transport) failed."""


class StorageError(CollaboratorUnavailable):
    """Database operation failed."""


class AIServiceError(CollaboratorUnavailable):
    """AI completion request failed."""
