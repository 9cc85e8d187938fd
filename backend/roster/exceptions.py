"""
Exceptions raised by the roster services.

The HTTP layer maps each type to a status code and a response envelope in
main.py; services never build HTTP responses themselves.
"""


class RosterError(Exception):
    """Base class for every error the roster services raise."""
    pass


class NotFound(RosterError):
    """A student id did not resolve to an active record."""

    def __init__(self, student_id):
        self.student_id = student_id
        super().__init__(f"Student not found with ID: {student_id}")


class ValidationFailure(RosterError):
    """
    Input was rejected before reaching the store.

    `errors` is a list of {"field": ..., "message": ...} dicts, one per
    offending field.
    """

    def __init__(self, message: str, errors: list = None):
        self.errors = errors or []
        super().__init__(message)


class InvalidPageRequest(ValidationFailure):
    """Bad page, size, sort field or sort direction."""

    def __init__(self, field: str, message: str):
        super().__init__(message, [{"field": field, "message": message}])


class NoOpUpdate(RosterError):
    """An update targeted a missing or soft-deleted student (strict mode)."""

    def __init__(self, student_id):
        self.student_id = student_id
        super().__init__(f"Student not found with ID: {student_id}")


class ConcurrentUpdate(RosterError):
    """Another writer changed the record between our read and our write."""

    def __init__(self, student_id):
        self.student_id = student_id
        super().__init__(f"Student {student_id} was modified concurrently, reload and retry")
