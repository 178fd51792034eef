"""Error taxonomy shared by the client library and the API."""
from __future__ import annotations


class OrderError(Exception):
    """Base class; carries the HTTP status a route should answer with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderError, ValueError):
    """Missing or malformed input. User-correctable."""

    status_code = 400


class AuthError(OrderError):
    status_code = 401


class ConsistencyError(OrderError):
    """Item/binary mismatch: a count gap or a declared-vs-actual type clash."""

    status_code = 400


class MissingFileError(ConsistencyError):
    """A cart item has no payload in the binary store."""


class NotFoundError(OrderError, LookupError):
    status_code = 404


class UpstreamError(OrderError):
    """Object storage or a remote fetch failed."""

    status_code = 500


class UpstreamTimeoutError(UpstreamError):
    status_code = 504


class SubmissionError(OrderError):
    """The API rejected a submission; keeps the status and message it sent back."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
