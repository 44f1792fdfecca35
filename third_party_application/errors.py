"""Typed failures raised by the application lifecycle core.

Each failure carries a stable error code, a message and the HTTP status the
adapter layer is expected to render it with. Anything that is not an
``ApplicationError`` is unclassified and maps to a generic unknown error.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from .models.state import State

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Stable error codes exposed to API consumers."""

    APPLICATION_NOT_FOUND = "APPLICATION_NOT_FOUND"
    CLIENT_SECRET_NOT_FOUND = "CLIENT_SECRET_NOT_FOUND"
    COLLABORATOR_NOT_FOUND = "COLLABORATOR_NOT_FOUND"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    APPLICATION_ALREADY_EXISTS = "APPLICATION_ALREADY_EXISTS"
    SUBSCRIPTION_ALREADY_EXISTS = "SUBSCRIPTION_ALREADY_EXISTS"
    CLIENT_SECRET_LIMIT_EXCEEDED = "CLIENT_SECRET_LIMIT_EXCEEDED"
    CLIENT_SECRET_REQUIRED = "CLIENT_SECRET_REQUIRED"
    APPLICATION_NEEDS_ADMIN = "APPLICATION_NEEDS_ADMIN"
    USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
    INVALID_UPLIFT_VERIFICATION_CODE = "INVALID_UPLIFT_VERIFICATION_CODE"
    INVALID_IP_ALLOWLIST = "INVALID_IP_ALLOWLIST"
    SCOPE_NOT_FOUND = "SCOPE_NOT_FOUND"
    INVALID_REQUEST_PAYLOAD = "INVALID_REQUEST_PAYLOAD"
    UNAUTHORIZED = "UNAUTHORIZED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorResponse(BaseModel):
    """Body rendered for a failed operation."""

    code: ErrorCode
    message: str


class ApplicationError(Exception):
    """Base class for every domain failure of the core."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message)


class NotFound(ApplicationError):
    code = ErrorCode.APPLICATION_NOT_FOUND
    http_status = 404


class ApplicationNotFound(NotFound):
    def __init__(self, application_id: str):
        super().__init__(f"Application not found for id: {application_id}")
        self.application_id = application_id


class ClientSecretNotFound(NotFound):
    code = ErrorCode.CLIENT_SECRET_NOT_FOUND

    def __init__(self, application_id: str, secret_id: str):
        super().__init__(f"Client secret {secret_id} not found for application {application_id}")
        self.secret_id = secret_id


class CollaboratorNotFound(NotFound):
    code = ErrorCode.COLLABORATOR_NOT_FOUND

    def __init__(self, application_id: str, email: str):
        super().__init__(f"Collaborator {email} not found for application {application_id}")
        self.email = email


class InvalidStateTransition(ApplicationError):
    """Raised when a lifecycle move is not allowed from the current state."""

    code = ErrorCode.INVALID_STATE_TRANSITION
    http_status = 412

    def __init__(self, invalid_from: "State", to: "State", expected_from: "State"):
        super().__init__(
            f"Transition to '{to.value}' state requires the application to be in "
            f"'{expected_from.value}' state, but it was in '{invalid_from.value}'"
        )
        self.invalid_from = invalid_from
        self.to = to
        self.expected_from = expected_from


class ApplicationBlocked(InvalidStateTransition):
    """Raised when a gatekeeper transition targets a blocked application."""

    def __init__(self, application_id: str, current: "State", to: "State"):
        super().__init__(current, to, current)
        self.message = f"Application {application_id} is blocked"
        self.args = (self.message,)
        self.application_id = application_id


class ApplicationAlreadyExists(ApplicationError):
    code = ErrorCode.APPLICATION_ALREADY_EXISTS
    http_status = 409

    def __init__(self, application_name: str):
        super().__init__(f"Application already exists with name: {application_name}")
        self.application_name = application_name


class SubscriptionAlreadyExists(ApplicationError):
    code = ErrorCode.SUBSCRIPTION_ALREADY_EXISTS
    http_status = 409

    def __init__(self, application_name: str, context: str, version: str):
        super().__init__(
            f"Application: '{application_name}' is already Subscribed to API: {context}: {version}"
        )


class ClientSecretsLimitExceeded(ApplicationError):
    code = ErrorCode.CLIENT_SECRET_LIMIT_EXCEEDED
    http_status = 403

    def __init__(self, limit: int):
        super().__init__(f"Client secrets limit of {limit} has been reached")
        self.limit = limit


class ClientSecretRequired(ApplicationError):
    code = ErrorCode.CLIENT_SECRET_REQUIRED
    http_status = 403

    def __init__(self, application_id: str):
        super().__init__(f"Cannot delete the last client secret of application {application_id}")


class ApplicationNeedsAdmin(ApplicationError):
    code = ErrorCode.APPLICATION_NEEDS_ADMIN
    http_status = 403

    def __init__(self) -> None:
        super().__init__("Application requires at least one admin")


class UserAlreadyExists(ApplicationError):
    code = ErrorCode.USER_ALREADY_EXISTS
    http_status = 409

    def __init__(self, email: str):
        super().__init__(f"Collaborator {email} already exists with a different role")
        self.email = email


class InvalidUpliftVerificationCode(ApplicationError):
    code = ErrorCode.INVALID_UPLIFT_VERIFICATION_CODE
    http_status = 400

    def __init__(self, code: str):
        super().__init__(f"Invalid verification code '{code}'")
        self.verification_code = code


class InvalidIpAllowlistException(ApplicationError):
    code = ErrorCode.INVALID_IP_ALLOWLIST
    http_status = 400


class ScopeNotFoundException(ApplicationError):
    code = ErrorCode.SCOPE_NOT_FOUND
    http_status = 404


class InvalidAccessType(ApplicationError):
    code = ErrorCode.INVALID_REQUEST_PAYLOAD
    http_status = 422


class InvalidRateLimitTier(ApplicationError):
    code = ErrorCode.INVALID_REQUEST_PAYLOAD
    http_status = 422

    def __init__(self, value: str):
        super().__init__(f"'{value}' is an invalid rate limit tier")


class Unauthorized(ApplicationError):
    code = ErrorCode.UNAUTHORIZED
    http_status = 401


class ConcurrentModification(ApplicationError):
    """Raised when a version-matched write keeps losing to concurrent writers."""

    def __init__(self, application_id: str, attempts: int):
        super().__init__(
            f"Application {application_id} was modified concurrently ({attempts} attempts)"
        )


UNKNOWN_ERROR_RESPONSE = ErrorResponse(
    code=ErrorCode.UNKNOWN_ERROR, message="An unexpected error occurred"
)


def to_error_response(exc: BaseException) -> tuple[int, ErrorResponse]:
    """Map any exception raised by the core to an HTTP status and error body.

    Unclassified exceptions never leak their message; they are logged and
    tracked instead.
    """
    if isinstance(exc, ApplicationError) and not isinstance(exc, ConcurrentModification):
        return exc.http_status, exc.to_response()

    from .telemetry import track_exception

    logger.error(f"An unexpected error occurred: {exc}", exc_info=exc)
    track_exception(exc)
    return 500, UNKNOWN_ERROR_RESPONSE
