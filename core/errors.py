from __future__ import annotations

from typing import Optional


class ConsoleError(Exception):
    """
    Base class for every failure the console reports to its caller.

    status_code is the HTTP status the REST layer answers with; code is a
    short machine-readable category echoed in the JSON error body.
    """

    status_code = 500
    code = "error"

    def __init__(self, message: str, *, storage_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.storage_code = storage_code


class AuthError(ConsoleError):
    """Bad credentials at connect time."""

    status_code = 400
    code = "auth_error"


class NetworkError(AuthError):
    """Storage server unreachable at connect time."""

    code = "network_error"


class NotConnectedError(ConsoleError):
    status_code = 401
    code = "not_connected"

    def __init__(self, message: str = "Not connected to a storage server") -> None:
        super().__init__(message)


class NotFoundError(ConsoleError):
    status_code = 404
    code = "not_found"


class ConflictError(ConsoleError):
    status_code = 409
    code = "conflict"


class ValidationError(ConsoleError):
    status_code = 400
    code = "validation_error"


class PassthroughError(ConsoleError):
    """Anything else the storage server reports, forwarded verbatim."""

    status_code = 500
    code = "storage_error"


# S3 error codes shared by every S3-compatible server.
_NOT_FOUND_CODES = {
    "NoSuchBucket",
    "NoSuchKey",
    "NoSuchObject",
    "NoSuchVersion",
    "NoSuchUpload",
    "NotFound",
    "404",
}
_CONFLICT_CODES = {
    "BucketNotEmpty",
    "BucketAlreadyExists",
    "BucketAlreadyOwnedByYou",
    "OperationAborted",
}
_VALIDATION_CODES = {
    "InvalidBucketName",
    "InvalidObjectName",
    "KeyTooLongError",
    "MalformedPolicy",
    "MalformedXML",
    "InvalidArgument",
    "InvalidRequest",
}
_AUTH_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
    "AuthorizationHeaderMalformed",
}


def error_from_storage_code(code: Optional[str], message: str) -> ConsoleError:
    """
    Translate an S3 error code into the console taxonomy.

    Auth-shaped codes raised after connect are passed through: only the
    connect path turns them into AuthError.
    """
    code = (code or "").strip()
    if code in _NOT_FOUND_CODES:
        return NotFoundError(message, storage_code=code)
    if code in _CONFLICT_CODES:
        return ConflictError(message, storage_code=code)
    if code in _VALIDATION_CODES:
        return ValidationError(message, storage_code=code)
    return PassthroughError(message, storage_code=code or None)


def is_auth_code(code: Optional[str]) -> bool:
    return (code or "").strip() in _AUTH_CODES
