from fastapi import status


class CollegeMateError(Exception):
    """Base class for errors surfaced to API callers.

    Each subclass carries the HTTP status and the reason phrase rendered in
    the ``{"error": ...}`` response body.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason = "Internal Server Error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.reason)
        self.message = message or self.reason


class BadInputError(CollegeMateError):
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "Bad Request"


class ForbiddenError(CollegeMateError):
    status_code = status.HTTP_403_FORBIDDEN
    reason = "Forbidden"


class NotFoundError(CollegeMateError):
    status_code = status.HTTP_404_NOT_FOUND
    reason = "Not Found"


class ConflictError(CollegeMateError):
    status_code = status.HTTP_409_CONFLICT
    reason = "Conflict"
