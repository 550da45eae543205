"""Error taxonomy shared by the lesson and progress engines.

Every domain error carries a human readable ``message`` and a stable
``code``. The HTTP layer maps the category (not the individual class) to a
status code; see ``learnhub.main``.
"""


class LearnHubError(Exception):
    """Base domain error."""

    def __init__(self, message: str, code: str = "learnhub_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(LearnHubError):
    """Referenced content, lesson or enrollment does not exist."""

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class InvalidArgumentError(LearnHubError):
    """Caller supplied a value outside the accepted domain."""

    def __init__(
        self, message: str = "Invalid argument", code: str = "invalid_argument"
    ):
        super().__init__(message, code)


class ForbiddenError(LearnHubError):
    """Operation not allowed in the learner's current state."""

    def __init__(self, message: str = "Forbidden", code: str = "forbidden"):
        super().__init__(message, code)


class ConflictError(LearnHubError):
    """Operation conflicts with existing state; the caller may retry."""

    def __init__(self, message: str = "Conflict", code: str = "conflict"):
        super().__init__(message, code)


class StoreConflictError(ConflictError):
    """Transaction could not commit (serialization failure, lock timeout, ...)."""

    def __init__(self, message: str = "Store transaction failed, retry the request"):
        super().__init__(message, "store_conflict")


_STATUS_BY_CATEGORY: tuple[tuple[type[LearnHubError], int], ...] = (
    (NotFoundError, 404),
    (InvalidArgumentError, 400),
    (ForbiddenError, 403),
    (ConflictError, 409),
)


def status_code_for(error: LearnHubError) -> int:
    """HTTP status for a domain error, by category."""
    for category, status_code in _STATUS_BY_CATEGORY:
        if isinstance(error, category):
            return status_code
    return 500
