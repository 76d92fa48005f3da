from __future__ import annotations

"""Request/response interceptor contracts and authentication interceptors.

Interceptors are small, synchronous transforms that the HTTP pipeline runs
around every attempt:
- request interceptors mutate the outbound request (typically headers)
- response interceptors inspect status/headers and may ask for a replay

A class may implement either capability, both, or neither. The pipeline
keeps the two capabilities in separate ordered lists.
"""

import base64
import logging
import threading
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

SESSION_PATH = "/_session"


@dataclass
class InterceptorContext:
    """Mutable per-attempt state handed from one interceptor to the next."""

    request: httpx.Request
    response: httpx.Response | None = None
    replay: bool = False


class RequestInterceptor:
    """Capability for transforming a request before it is sent."""

    def intercept_request(self, context: InterceptorContext) -> InterceptorContext:
        raise NotImplementedError


class ResponseInterceptor:
    """Capability for inspecting a response and optionally requesting a replay."""

    def intercept_response(self, context: InterceptorContext) -> InterceptorContext:
        raise NotImplementedError


def basic_auth_header(username: str, password: str) -> str:
    """Build the ``Authorization`` value for HTTP Basic credentials."""

    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class BasicAuthInterceptor(RequestInterceptor, ResponseInterceptor):
    """Attach a static Basic ``Authorization`` header to every attempt."""

    def __init__(self, username: str, password: str) -> None:
        self._header = basic_auth_header(username, password)

    def intercept_request(self, context: InterceptorContext) -> InterceptorContext:
        context.request.headers["Authorization"] = self._header
        return context

    def intercept_response(self, context: InterceptorContext) -> InterceptorContext:
        # Credentials cannot be refreshed; the pipeline budget bounds the replays.
        if context.response is not None and context.response.status_code == 401:
            context.replay = True
        return context


def session_url(url: httpx.URL) -> str:
    """Return the session endpoint on the same scheme/host/port as ``url``."""

    host = url.host
    if ":" in host:
        host = f"[{host}]"
    if url.port is not None:
        host = f"{host}:{url.port}"
    return f"{url.scheme}://{host}{SESSION_PATH}"


def _cookie_pair(set_cookie: str) -> str:
    """Reduce a ``Set-Cookie`` value to the ``name=value`` pair to send back."""

    return set_cookie.split(";", 1)[0].strip()


class CookieInterceptor(RequestInterceptor, ResponseInterceptor):
    """Session-cookie authentication shared by every request of one client.

    The cookie is fetched lazily by POSTing the credentials to ``/_session``
    and cached until a protected request is answered with 401. Once the
    session endpoint rejects the credentials (or answers with an unexpected
    status) the interceptor stops trying for the rest of its lifetime.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._username = username
        self._password = password
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._lock = threading.Lock()
        self._session_cookie: str | None = None
        self._stop_retrying = False

    @property
    def session_cookie(self) -> str | None:
        with self._lock:
            return self._session_cookie

    @property
    def stop_retrying(self) -> bool:
        with self._lock:
            return self._stop_retrying

    def close(self) -> None:
        """Close the private HTTP client used for session exchanges."""

        self._client.close()

    def intercept_request(self, context: InterceptorContext) -> InterceptorContext:
        with self._lock:
            if self._stop_retrying:
                return context
            if self._session_cookie is None:
                self._session_cookie = self._request_cookie(context.request.url)
            cookie = self._session_cookie

        if cookie:
            context.request.headers["Cookie"] = cookie
        return context

    def intercept_response(self, context: InterceptorContext) -> InterceptorContext:
        response = context.response
        if response is None or response.status_code != 401:
            return context

        sent_cookie = context.request.headers.get("Cookie")
        with self._lock:
            if self._stop_retrying:
                context.replay = False
                return context
            if self._session_cookie is None or self._session_cookie == sent_cookie:
                self._session_cookie = self._request_cookie(context.request.url)
            context.replay = self._session_cookie is not None
        return context

    def _request_cookie(self, url: httpx.URL) -> str | None:
        """Exchange credentials for a session cookie; never raises.

        Must be called with ``self._lock`` held.
        """

        endpoint = session_url(url)
        try:
            response = self._client.post(
                endpoint,
                data={"name": self._username, "password": self._password},
            )
        except httpx.HTTPError as exc:
            logger.warning("Failed to get cookie from %s: %s", endpoint, exc)
            return None

        status = response.status_code
        if 200 <= status < 300:
            if not self._session_has_started(response):
                logger.warning("Session endpoint %s did not confirm the session", endpoint)
                return None
            values = response.headers.get_list("set-cookie")
            if not values:
                logger.warning("Session endpoint %s returned no Set-Cookie header", endpoint)
                return None
            return _cookie_pair(values[-1])

        if status == 401:
            self._stop_retrying = True
            logger.warning(
                "Credentials are incorrect, cookie authentication will not be "
                "attempted again by this interceptor"
            )
        elif 500 <= status < 600:
            logger.warning("Failed to get cookie from server, response code %s", status)
        else:
            self._stop_retrying = True
            logger.warning(
                "Failed to get cookie from server, response code %s, cookie authentication "
                "will not be attempted again",
                status,
            )
        return None

    @staticmethod
    def _session_has_started(response: httpx.Response) -> bool:
        """Return whether the session payload carries ``"ok": true``."""

        try:
            payload: Any = response.json()
        except ValueError:
            return False
        return isinstance(payload, dict) and payload.get("ok") is True
