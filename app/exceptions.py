import enum
from http import HTTPStatus
from typing import Any

# Context keys copied into log records for an error
LOGGED_CONTEXT = ("action", "field", "email_id")


class ErrorType(enum.Enum):
    ENTITY_NOT_FOUND = "entity_not_found"
    INTERNAL_ERROR = "internal_error"
    INVALID_DATA = "invalid_data"
    UNHANDLED_EXCEPTION = "unhandled_exception"
    UNSPECIFIED = "unspecified"


class BaseError(Exception):
    """
    Error surfaced to API callers as {"error": <type>, "error_description": <message>}.

    Subclasses pick the type and status; keyword context (field, email_id, action) is kept
    for logging only and never sent to the caller.
    """

    error_type: ErrorType = ErrorType.UNSPECIFIED
    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra: dict[str, Any] = {key: context[key] for key in LOGGED_CONTEXT if context.get(key)}

    def __str__(self) -> str:
        return f"error: {self.error_type.value}; description: {self.message}"

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def to_payload(self) -> dict[str, str]:
        return {"error": self.error_type.value, "error_description": self.message}


class InvalidDataError(BaseError):
    error_type = ErrorType.INVALID_DATA
    status_code = HTTPStatus.BAD_REQUEST


class EntityNotFoundError(BaseError):
    error_type = ErrorType.ENTITY_NOT_FOUND
    status_code = HTTPStatus.NOT_FOUND


class InternalError(BaseError):
    error_type = ErrorType.INTERNAL_ERROR
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
