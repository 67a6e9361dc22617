class BackendError(Exception):
    """A storage call failed. ``status_code`` is set for HTTP responses."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(BackendError):
    pass


class ConflictError(BackendError):
    pass


class ExamUnavailableError(BackendError):
    pass


class ScoringFailure(BackendError):
    """Submitting the session for scoring did not return a result."""


class PersistenceFailure(BackendError):
    """An answer could not be saved."""


class InvalidTransition(Exception):
    """The controller was asked to do something its current view does not allow."""
