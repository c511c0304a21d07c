"""Error kinds raised by the application and the status each one maps to."""

from fastapi import status


class PostboardError(Exception):
    """Base class for errors that end a request with a status code."""

    message = "An error occurred. Please check your request and try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class StorageError(PostboardError):
    message = "Storage is unavailable"


class NotFound(PostboardError):
    message = "Not found"


class BadRequest(PostboardError):
    message = "Invalid request"


class MethodNotAllowed(PostboardError):
    message = "Invalid request method"


class StartupError(Exception):
    """Configuration, template or database problem that prevents serving."""


STATUS_CODES: dict[type[PostboardError], int] = {
    BadRequest: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    MethodNotAllowed: status.HTTP_405_METHOD_NOT_ALLOWED,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(error: PostboardError) -> int:
    for kind in type(error).__mro__:
        if kind in STATUS_CODES:
            return STATUS_CODES[kind]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def from_status(status_code: int) -> PostboardError | None:
    """Map a framework-raised HTTP status back onto an error kind, if it has one."""
    for kind, code in STATUS_CODES.items():
        if code == status_code:
            return kind()
    return None
