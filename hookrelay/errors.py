# hookrelay/errors.py
from typing import Optional


class RelayError(Exception):
    """Base error carrying the HTTP status and the message shown to callers."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class AuthFailure(RelayError):
    status_code = 401
    message = "Invalid token"


class Forbidden(RelayError):
    status_code = 403
    message = "Unauthorized"


class NotFound(RelayError):
    status_code = 404
    message = "Webhook not found"


class StorageFailure(RelayError):
    status_code = 500
    message = "Storage error"
