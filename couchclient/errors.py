from __future__ import annotations

"""Error taxonomy raised by the client.

Configuration and argument errors are raised before any request is sent.
HTTP status failures carry the status code, reason phrase and a snippet of
the response body so callers can log or branch on them.
"""

BODY_SNIPPET_LIMIT = 500


class CouchClientError(RuntimeError):
    """Base class for every error raised by ``couchclient``."""


class ConfigurationError(CouchClientError, ValueError):
    """Raised for an invalid account, URL, credentials or interceptor setup."""


class ArgumentValidationError(CouchClientError, ValueError):
    """Raised when a local argument is invalid (empty id, bad db name)."""


class HTTPStatusFailure(CouchClientError):
    """Raised when the server answers with an unexpected HTTP status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        reason: str = "",
        body: str = "",
    ) -> None:
        """Attach status details alongside the failure message."""

        snippet = body[:BODY_SNIPPET_LIMIT]
        detail = f"{message}\nHTTP_Status: {status_code} {reason}".rstrip()
        if snippet:
            detail = f"{detail}\nBody: {snippet}"
        super().__init__(detail)
        self.status_code = status_code
        self.reason = reason
        self.body = snippet


class ModificationFailure(HTTPStatusFailure):
    """A create/update/delete of a database, document or index failed."""


class ReadFailure(HTTPStatusFailure):
    """A fetch or query returned a non-success status."""


class RetryBudgetExceeded(CouchClientError):
    """Raised when interceptors keep requesting replays past the budget."""

    def __init__(self, max_attempts: int) -> None:
        super().__init__(
            "Maximum number of retries reached. A response interceptor set the replay flag, "
            f"but the maximum number of attempts [{max_attempts}] has been reached."
        )
        self.max_attempts = max_attempts


class TransportFailure(CouchClientError):
    """Raised when the request never produced an HTTP response."""


class DecodeFailure(CouchClientError):
    """Raised when a response body is not JSON or lacks an expected field."""
