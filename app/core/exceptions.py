"""Application exception classes and handlers."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        retryable: bool = False,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


# --- Authentication (401) ---


class AuthenticationError(AppException):
    """Base authentication error."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401)


class TokenExpiredError(AppException):
    """Token has expired."""

    def __init__(self) -> None:
        super().__init__(
            message="Token has expired",
            code="TOKEN_EXPIRED",
            status_code=401,
        )


class InvalidTokenError(AppException):
    """Token is invalid."""

    def __init__(self) -> None:
        super().__init__(
            message="Invalid token",
            code="INVALID_TOKEN",
            status_code=401,
        )


# --- Authorization (403) ---


class AuthorizationError(AppException):
    """Insufficient permissions."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message=message, code="AUTHORIZATION_ERROR", status_code=403)


class QuotaExceededError(AppException):
    """The guest has used every message the session allows."""

    def __init__(self) -> None:
        super().__init__(
            message="Message limit reached for this guest session",
            code="QUOTA_EXCEEDED",
            status_code=403,
        )


# --- Bad input (400 / 422) ---


class InvalidParametersError(AppException):
    """Guest session creation or conversion input was rejected."""

    def __init__(self, message: str = "Invalid guest chat parameters") -> None:
        super().__init__(message=message, code="INVALID_PARAMETERS", status_code=400)


class MessageTooLongError(AppException):
    """Message content exceeds the allowed length."""

    def __init__(self, max_length: int) -> None:
        super().__init__(
            message=f"Message cannot exceed {max_length} characters",
            code="MESSAGE_TOO_LONG",
            status_code=422,
        )


class EmptyMessageError(AppException):
    """Message content is empty or whitespace only."""

    def __init__(self) -> None:
        super().__init__(
            message="Message cannot be empty",
            code="EMPTY_MESSAGE",
            status_code=422,
        )


# --- Not Found (404) ---


class GuestChatNotFoundError(AppException):
    """Unknown, malformed, or hidden guest chat token.

    Deliberately the same error whether the token never existed or is no
    longer viewable.
    """

    def __init__(self) -> None:
        super().__init__(
            message="Guest chat not found",
            code="GUEST_CHAT_NOT_FOUND",
            status_code=404,
        )


# --- Conflict (409) ---


class SendConflictError(AppException):
    """Concurrent senders kept winning the message counter update."""

    def __init__(self) -> None:
        super().__init__(
            message="Message could not be committed due to concurrent sends. Please retry.",
            code="SEND_CONFLICT",
            status_code=409,
            retryable=True,
        )


# --- Gone (410) ---


class SessionExpiredError(AppException):
    """The guest session is past its expiry time."""

    def __init__(self) -> None:
        super().__init__(
            message="This guest chat session has expired",
            code="SESSION_EXPIRED",
            status_code=410,
        )


class SessionConvertedError(AppException):
    """The guest has registered a full account; the session is closed."""

    def __init__(self) -> None:
        super().__init__(
            message="This guest chat session was converted to a full account",
            code="SESSION_CONVERTED",
            status_code=410,
        )


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": exc.status_code,
            "message": exc.message,
            "code": exc.code,
        },
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body/query validation failures in the error envelope."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "status": 422,
            "message": f"{location}: {detail}" if location else detail,
            "code": "VALIDATION_ERROR",
        },
    )
