"""Error taxonomy shared by the server and the sync client."""

from pydantic import BaseModel

from focus_sync.core.config import constants


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_CONFLICT = "ERR_CONFLICT"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"


class ApiError(BaseModel):
    """JSON body of every non-2xx response."""

    message: str
    details: str | None = None


class FocusSyncError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    code: str = "ERR_UNKNOWN"

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_api_error(self) -> ApiError:
        """Render the error as a response body."""
        return ApiError(message=self.message, details=self.details)


class ValidationError(FocusSyncError):
    """Required fields are missing or malformed."""

    status_code = constants.HTTP_BAD_REQUEST
    code = ErrorCode.ERR_VALIDATION


class AuthenticationError(FocusSyncError):
    """Credentials or tokens were rejected.

    Messages must not reveal which credential was wrong.
    """

    status_code = constants.HTTP_UNAUTHORIZED
    code = ErrorCode.ERR_AUTHENTICATION_FAILED


class NotFoundError(FocusSyncError):
    """A route or record does not exist."""

    status_code = constants.HTTP_NOT_FOUND
    code = ErrorCode.ERR_NOT_FOUND


class ConflictError(FocusSyncError):
    """A unique key (e.g. email) is already taken."""

    status_code = constants.HTTP_CONFLICT
    code = ErrorCode.ERR_CONFLICT


class TransientNetworkFailure(Exception):  # noqa: N818
    """A sync request could not reach the server or got a non-2xx reply.

    Raised by the client transport only; the sync client recovers from it locally.
    """

    code = ErrorCode.ERR_NETWORK_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
