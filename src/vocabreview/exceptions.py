"""Exceptions raised by the review engine."""


class ReviewError(Exception):
    """Base class for review engine errors."""


class SessionStateError(ReviewError):
    """An action was requested that the current session phase does not allow."""


class ProgressStoreError(ReviewError):
    """The persistence collaborator rejected a progress update."""


class SchemaMismatchError(ProgressStoreError):
    """The update referenced a field the store does not know about."""
