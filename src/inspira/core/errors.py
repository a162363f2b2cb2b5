"""API error definitions.

Every rejection the API produces is an ``ApiError`` carrying a stable
``ApiErrorCode``; the HTTP status is derived from the code.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_PROFILE_NOT_FOUND = "E_PROFILE_NOT_FOUND"
    E_POST_NOT_FOUND = "E_POST_NOT_FOUND"
    E_COMMENT_NOT_FOUND = "E_COMMENT_NOT_FOUND"
    E_CONVERSATION_NOT_FOUND = "E_CONVERSATION_NOT_FOUND"
    E_MESSAGE_NOT_FOUND = "E_MESSAGE_NOT_FOUND"

    # Validation and business-rule errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_MISSING_FIELD = "E_MISSING_FIELD"
    E_INSUFFICIENT_CREDITS = "E_INSUFFICIENT_CREDITS"
    E_ALREADY_RESOLVED = "E_ALREADY_RESOLVED"
    E_SELF_REWARD = "E_SELF_REWARD"
    E_SELF_CONVERSATION = "E_SELF_CONVERSATION"
    E_OWN_MESSAGE = "E_OWN_MESSAGE"
    E_INVALID_PACKAGE = "E_INVALID_PACKAGE"
    E_INVALID_SIGNATURE = "E_INVALID_SIGNATURE"
    E_PAYMENT_ALREADY_PROCESSED = "E_PAYMENT_ALREADY_PROCESSED"

    # Server errors
    E_PAYMENT_PROVIDER_ERROR = "E_PAYMENT_PROVIDER_ERROR"  # 502
    E_STORAGE_ERROR = "E_STORAGE_ERROR"  # 502
    E_INTERNAL = "E_INTERNAL"  # 500


ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_PROFILE_NOT_FOUND: 404,
    ApiErrorCode.E_POST_NOT_FOUND: 404,
    ApiErrorCode.E_COMMENT_NOT_FOUND: 404,
    ApiErrorCode.E_CONVERSATION_NOT_FOUND: 404,
    ApiErrorCode.E_MESSAGE_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_MISSING_FIELD: 400,
    ApiErrorCode.E_INSUFFICIENT_CREDITS: 400,
    ApiErrorCode.E_ALREADY_RESOLVED: 400,
    ApiErrorCode.E_SELF_REWARD: 400,
    ApiErrorCode.E_SELF_CONVERSATION: 400,
    ApiErrorCode.E_OWN_MESSAGE: 400,
    ApiErrorCode.E_INVALID_PACKAGE: 400,
    ApiErrorCode.E_INVALID_SIGNATURE: 400,
    ApiErrorCode.E_PAYMENT_ALREADY_PROCESSED: 400,
    ApiErrorCode.E_PAYMENT_PROVIDER_ERROR: 502,
    ApiErrorCode.E_STORAGE_ERROR: 502,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class UnauthenticatedError(ApiError):
    """No verified identity is attached to the request."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(ApiErrorCode.E_UNAUTHENTICATED, message)


class ForbiddenError(ApiError):
    """Authenticated but not entitled."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class NotFoundError(ApiError):
    """Resource not found, or not visible to the caller."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Business-rule or input rejection raised before any mutation."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class UpstreamError(ApiError):
    """An external collaborator (payment provider, object storage) failed."""

    def __init__(self, code: ApiErrorCode, message: str):
        super().__init__(code, message)
