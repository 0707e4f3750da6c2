"""
Failure taxonomy and status classification for the bank wire server.

Every recoverable failure raised while parsing, routing or servicing a
request is a ``BankServerError`` carrying a ``FailureTag``. The classifier
turns that tag into an HTTP-style status and the JSON error body, so status
code knowledge lives in one table instead of at every raise site.
"""

import json
from enum import Enum
from typing import Dict, Tuple

from .responses import Response


class FailureTag(Enum):
    """Closed set of failure kinds that map to a client-visible status."""
    INVALID_REQUEST = "invalid_request"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    MALFORMED_ARGUMENT = "malformed_argument"
    RESOURCE_NOT_FOUND = "resource_not_found"
    NO_SUCH_USER = "no_such_user"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    AUTHENTICATION_FAILURE = "authentication_failure"
    USER_ALREADY_EXISTS = "user_already_exists"


STATUS_TABLE: Dict[FailureTag, Tuple[int, str]] = {
    FailureTag.INVALID_REQUEST: (400, "Bad Request"),
    FailureTag.INSUFFICIENT_FUNDS: (400, "Bad Request"),
    FailureTag.MALFORMED_ARGUMENT: (400, "Bad Request"),
    FailureTag.RESOURCE_NOT_FOUND: (404, "Not Found"),
    FailureTag.NO_SUCH_USER: (404, "Not Found"),
    FailureTag.METHOD_NOT_ALLOWED: (405, "Method Not Allowed"),
    FailureTag.AUTHENTICATION_FAILURE: (403, "Forbidden"),
    FailureTag.USER_ALREADY_EXISTS: (409, "Conflict"),
}


class BankServerError(Exception):
    """Base class for failures that produce a classified error response."""
    tag: FailureTag = FailureTag.INVALID_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(BankServerError):
    tag = FailureTag.INVALID_REQUEST


class InsufficientFundsError(BankServerError):
    tag = FailureTag.INSUFFICIENT_FUNDS


class MalformedArgumentError(BankServerError):
    tag = FailureTag.MALFORMED_ARGUMENT


class ResourceNotFoundError(BankServerError):
    tag = FailureTag.RESOURCE_NOT_FOUND


class NoSuchUserError(BankServerError):
    tag = FailureTag.NO_SUCH_USER


class MethodNotAllowedError(BankServerError):
    tag = FailureTag.METHOD_NOT_ALLOWED


class AuthenticationError(BankServerError):
    """Missing, invalid or expired credential."""
    tag = FailureTag.AUTHENTICATION_FAILURE


class UserAlreadyExistsError(BankServerError):
    tag = FailureTag.USER_ALREADY_EXISTS


class BodyDeserializationError(BankServerError):
    """Raised by a banking service when a raw body cannot become a typed request.

    The connection handler re-tags this as an invalid request with a fixed
    message; the tag here only matters if it escapes unhandled.
    """
    tag = FailureTag.INVALID_REQUEST


def classify(tag: FailureTag) -> Tuple[int, str]:
    """Return ``(status_code, status_phrase)`` for a failure tag."""
    return STATUS_TABLE[tag]


def error_body(message: str) -> str:
    """Build the JSON error body carrying ``message``."""
    return json.dumps({"message": message}, ensure_ascii=False)


def error_response(error: BankServerError) -> Response:
    """Classify a failure and build the response written to the client."""
    status_code, status_phrase = classify(error.tag)
    return Response(status_code, status_phrase, error_body(error.message))


def internal_error_response() -> Response:
    """Generic 500 response used when an unexpected exception escapes."""
    return Response(500, "Internal Server Error", error_body("Internal Server Error"))
