"""
Typed failures returned to channel callers.

Every failure carries a stable, caller-visible code and a message. The
HTTP status is only a transport detail; callers branch on `code`.
"""

from typing import Optional


class SmsGatewayError(Exception):
    """Base class for all failures surfaced through the channel."""

    status_code = 500
    default_code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": None}


class AccessDenied(SmsGatewayError):
    """The read-message capability is not granted."""

    status_code = 403
    default_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "READ_SMS permission is required"):
        super().__init__(message)


class InvalidArgument(SmsGatewayError):
    """A required argument is missing, empty, or out of range."""

    status_code = 400
    default_code = "INVALID_ARGUMENT"


class ReadError(SmsGatewayError):
    """
    The store query raised a fault.

    The code identifies the call site (e.g. SMS_READ_ERROR); the message
    carries the underlying fault's text verbatim after a short prefix.
    """

    status_code = 500
    default_code = "READ_ERROR"

    @classmethod
    def wrap(cls, code: str, description: str, exc: BaseException) -> "ReadError":
        return cls(f"{description}: {exc}", code=code)


class NoInteractiveContext(SmsGatewayError):
    """A permission prompt was needed but no foreground context is attached."""

    status_code = 409
    default_code = "NO_ACTIVITY"

    def __init__(self, message: str = "No activity available to request permission"):
        super().__init__(message)


class PermissionRequestError(SmsGatewayError):
    status_code = 500
    default_code = "PERMISSION_REQUEST_ERROR"


class MethodNotImplemented(Exception):
    """
    Unknown channel method.

    Deliberately not a SmsGatewayError: callers receive a "not implemented"
    signal rather than an error envelope.
    """

    def __init__(self, method: str):
        super().__init__(f"Method '{method}' is not implemented")
        self.method = method
