"""Error taxonomy for API handlers.

Every failure a handler wants to surface to the caller is raised as an
`ApiError`. The handler boundary turns it into a JSON response with the
error's status code; anything else becomes a generic 500.
"""

__all__ = [
    "ApiError",
    "ConfigurationError",
    "RequestValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "MethodNotAllowedError",
    "UpstreamError",
]

from http import HTTPStatus
from typing import Any, ClassVar, Dict, Optional

from aibs_informatics_core.exceptions import ApplicationException


class ApiError(ApplicationException):
    """Base class for errors that map onto an HTTP response.

    Attributes:
        message: Message returned in the `error` field of the body.
        status_code: HTTP status of the response.
        extra: Additional top level fields merged into the response body.
    """

    default_status: ClassVar[int] = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: ClassVar[str] = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **extra: Any,
    ):
        self.message = message or self.default_message
        self.status_code = int(status_code or self.default_status)
        self.extra = extra
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class ConfigurationError(ApiError):
    """A required secret or setting is missing. Raised before any network call."""

    default_message = "Server configuration error"


class RequestValidationError(ApiError):
    default_status = HTTPStatus.BAD_REQUEST
    default_message = "Invalid request body"


class UnauthorizedError(ApiError):
    default_status = HTTPStatus.UNAUTHORIZED
    default_message = "No autorizado"


class ForbiddenError(ApiError):
    default_status = HTTPStatus.FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ApiError):
    default_status = HTTPStatus.NOT_FOUND
    default_message = "Not found"


class MethodNotAllowedError(ApiError):
    default_status = HTTPStatus.METHOD_NOT_ALLOWED
    default_message = "Method not allowed"


class UpstreamError(ApiError):
    """A third party API answered with a non-2xx status.

    Attributes:
        upstream_status: Status returned by the third party, if any.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None,
        **extra: Any,
    ):
        self.upstream_status = upstream_status
        super().__init__(message, status_code, **extra)
