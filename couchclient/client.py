from __future__ import annotations

"""Client façade: account/URL parsing, authentication wiring and databases.

This module is the single place where the library:
- turns an account name or URL into a base address
- pulls credentials out of URL user-info
- chooses the authentication interceptor for the configured credentials
- splits user interceptors into request and response capabilities
"""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Literal
from urllib.parse import unquote, urlsplit, urlunsplit

import httpx

from .config import Settings, get_settings
from .database import Database
from .errors import ConfigurationError
from .http import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT_SECONDS, HttpPipeline, redact_url
from .interceptors import (
    BasicAuthInterceptor,
    CookieInterceptor,
    RequestInterceptor,
    ResponseInterceptor,
)

logger = logging.getLogger(__name__)

AuthMode = Literal["cookie", "basic", "none"]
ACCOUNT_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$")


def account_url(account: str) -> str:
    """Return the hosted base URL for a bare account name."""

    name = (account or "").strip()
    if not name:
        raise ConfigurationError("account must not be null or empty")
    if not ACCOUNT_PATTERN.match(name):
        raise ConfigurationError(
            "Account parameter does not appear to contain a valid account name. "
            "Did you provide a URL instead?"
        )
    return f"https://{name}.cloudant.com"


def split_credentials(url: str) -> tuple[str, str | None, str | None]:
    """Strip user-info from ``url``, returning ``(base_url, username, password)``."""

    parts = urlsplit((url or "").strip())
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigurationError(
            "The url argument must be an absolute http(s) URI and must be a network location."
        )

    username = unquote(parts.username) if parts.username else None
    password = unquote(parts.password) if parts.password else None
    netloc = parts.netloc.rsplit("@", 1)[-1]
    base = urlunsplit((parts.scheme, netloc, parts.path, "", ""))
    return base, username, password


def split_interceptors(
    interceptors: Iterable[object],
) -> tuple[list[RequestInterceptor], list[ResponseInterceptor]]:
    """Partition interceptors by capability, preserving registration order."""

    request_interceptors: list[RequestInterceptor] = []
    response_interceptors: list[ResponseInterceptor] = []
    for interceptor in interceptors:
        if not isinstance(interceptor, (RequestInterceptor, ResponseInterceptor)):
            raise ConfigurationError(
                "Http interceptors must implement either RequestInterceptor or "
                f"ResponseInterceptor. {type(interceptor).__name__} implements neither."
            )
        if isinstance(interceptor, RequestInterceptor):
            request_interceptors.append(interceptor)
        if isinstance(interceptor, ResponseInterceptor):
            response_interceptors.append(interceptor)
    return request_interceptors, response_interceptors


class CouchClient:
    """Entry point for talking to one database server account."""

    def __init__(
        self,
        url: str,
        *,
        username: str | None = None,
        password: str | None = None,
        interceptors: Iterable[object] | None = None,
        auth: AuthMode = "cookie",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        global_headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Resolve credentials, build interceptors and the shared pipeline."""

        base_url, url_username, url_password = split_credentials(url)
        username = username or url_username
        password = password or url_password
        if username and not password:
            raise ConfigurationError("username was set, but password is null or empty.")
        if password and not username:
            raise ConfigurationError("password was set, but username is null or empty.")
        if auth not in ("cookie", "basic", "none"):
            raise ConfigurationError(f"Unsupported auth mode: {auth}")

        self.url = base_url.rstrip("/")
        self.username = username
        self._owned: list[CookieInterceptor] = []

        registered = list(interceptors or [])
        if username and password and auth == "cookie":
            cookie_interceptor = CookieInterceptor(
                username,
                password,
                timeout=timeout,
                transport=transport,
            )
            self._owned.append(cookie_interceptor)
            registered.append(cookie_interceptor)
        elif username and password and auth == "basic":
            registered.append(BasicAuthInterceptor(username, password))

        request_interceptors, response_interceptors = split_interceptors(registered)
        self.pipeline = HttpPipeline(
            f"{self.url}/",
            request_interceptors=request_interceptors,
            response_interceptors=response_interceptors,
            global_headers=global_headers,
            max_attempts=max_attempts,
            timeout=timeout,
            transport=transport,
        )
        logger.debug("Created client for %s (auth=%s)", redact_url(url), auth if username else "none")

    @classmethod
    def from_account(cls, account: str, **kwargs) -> CouchClient:
        """Build a client for a hosted account name."""

        return cls(account_url(account), **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> CouchClient:
        """Build a client from environment-backed settings."""

        settings = settings or get_settings()
        return cls(
            settings.couchdb_url,
            username=settings.couchdb_username or None,
            password=settings.couchdb_password or None,
            auth=settings.couchdb_auth,
            max_attempts=settings.couchdb_max_attempts,
            timeout=settings.couchdb_timeout_seconds,
            **kwargs,
        )

    def database(self, name: str) -> Database:
        """Return a handle on database ``name``; no request is sent."""

        return Database(self.pipeline, name)

    def close(self) -> None:
        """Close the pipeline and any interceptor-owned HTTP clients."""

        self.pipeline.close()
        for interceptor in self._owned:
            interceptor.close()

    def __enter__(self) -> CouchClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
