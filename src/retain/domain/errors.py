"""Exceptions raised by the retain engine."""


class RetainError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(RetainError, ValueError):
    """Raised for malformed caller input, e.g. an unknown rating value."""


class InvalidTransitionError(RetainError):
    """Raised when a session action is not valid in the current state.

    The session is left untouched.
    """


class SnapshotWriteError(RetainError):
    """A snapshot could not be persisted.

    Never raised out of a session transition; it is recorded as a warning.
    """

    def __init__(self, key: object, cause: BaseException):
        super().__init__(f"Failed to write snapshot for {key}: {cause}")
        self.key = key
        self.cause = cause


class DeckFileError(RetainError):
    """A deck file could not be parsed."""
