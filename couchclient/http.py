from __future__ import annotations

"""HTTP pipeline that sends every request through the interceptor chain.

One logical operation is sent as a bounded sequence of attempts. Each
attempt gets a freshly built request and context; request interceptors run
before the transport call, response interceptors after it, and a response
interceptor may ask for the operation to be replayed.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import httpx

from .errors import ArgumentValidationError, ConfigurationError, RetryBudgetExceeded, TransportFailure
from .interceptors import InterceptorContext, RequestInterceptor, ResponseInterceptor

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_TIMEOUT_SECONDS = 30.0
JSON_CONTENT_TYPE = "application/json; charset=UTF-8"
ALLOWED_METHODS = frozenset({"GET", "PUT", "POST", "DELETE"})
REDACTED_HEADERS = frozenset({"authorization", "cookie", "set-cookie"})


def redact_url(url: str | httpx.URL) -> str:
    """Replace any user-info embedded in ``url`` before it is logged."""

    text = str(url)
    parts = urlsplit(text)
    if "@" not in parts.netloc:
        return text
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"*****@{host}"))


def sanitize_headers(headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Return header pairs with credential-bearing values masked."""

    return [
        (name, "******" if name.lower() in REDACTED_HEADERS else value)
        for name, value in headers
    ]


def _format_headers(headers: httpx.Headers) -> str:
    pairs = sanitize_headers(headers.multi_items())
    lines = [f"\n\t[{index}]{name} : {value}" for index, (name, value) in enumerate(pairs)]
    return "".join(lines) or "none"


def format_request_log(request: httpx.Request) -> str:
    """Render a redacted, multi-line summary of an outbound request."""

    return (
        "Http Request\n"
        f"   {'METHOD':<10}:{request.method}\n"
        f"   {'URI':<10}:{redact_url(request.url)}\n"
        f"   {'HEADERS':<10}:{_format_headers(request.headers)}"
    )


def format_response_log(response: httpx.Response) -> str:
    """Render a redacted, multi-line summary of an inbound response."""

    request = response.request
    return (
        "Http Response\n"
        f"   {'URI':<8}:[{request.method}] {redact_url(request.url)}\n"
        f"   {'STATUS':<8}:{response.status_code} {response.reason_phrase}\n"
        f"   {'HEADERS':<8}:{_format_headers(response.headers)}"
    )


def _discarding_cookie_jar() -> CookieJar:
    """Return a jar that never stores server cookies.

    Session cookies are owned by ``CookieInterceptor``, not the shared client.
    """

    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def encode_body(body: Any) -> bytes | None:
    """Serialize a request body to UTF-8 JSON; strings are sent verbatim."""

    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


class HttpPipeline:
    """Send JSON requests to one server through ordered interceptor lists."""

    def __init__(
        self,
        base_url: str | httpx.URL,
        *,
        request_interceptors: Iterable[RequestInterceptor] | None = None,
        response_interceptors: Iterable[ResponseInterceptor] | None = None,
        global_headers: Mapping[str, str] | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create the shared HTTP client and validate interceptor lists."""

        if max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {max_attempts}")

        self._request_interceptors = list(request_interceptors or [])
        self._response_interceptors = list(response_interceptors or [])
        for interceptor in self._request_interceptors:
            if not isinstance(interceptor, RequestInterceptor):
                raise ConfigurationError(
                    f"{type(interceptor).__name__} does not implement RequestInterceptor"
                )
        for interceptor in self._response_interceptors:
            if not isinstance(interceptor, ResponseInterceptor):
                raise ConfigurationError(
                    f"{type(interceptor).__name__} does not implement ResponseInterceptor"
                )

        self.max_attempts = max_attempts
        self._client = httpx.Client(
            base_url=base_url,
            headers=dict(global_headers or {}),
            timeout=timeout,
            transport=transport,
            cookies=_discarding_cookie_jar(),
        )

    @property
    def base_url(self) -> httpx.URL:
        return self._client.base_url

    @property
    def request_interceptors(self) -> list[RequestInterceptor]:
        return list(self._request_interceptors)

    @property
    def response_interceptors(self) -> list[ResponseInterceptor]:
        return list(self._response_interceptors)

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""

        self._client.close()

    def __enter__(self) -> HttpPipeline:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def add_global_header(self, name: str, value: str) -> None:
        """Add a header sent with every request, regardless of interceptors."""

        self._client.headers[name] = value

    def remove_global_header(self, name: str) -> None:
        self._client.headers.pop(name, None)

    def get(self, uri: str, headers: Mapping[str, str] | None = None) -> httpx.Response:
        return self.send("GET", uri, headers)

    def delete(self, uri: str, headers: Mapping[str, str] | None = None) -> httpx.Response:
        return self.send("DELETE", uri, headers)

    def put(
        self,
        uri: str,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> httpx.Response:
        return self.send("PUT", uri, headers, body)

    def post(
        self,
        uri: str,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> httpx.Response:
        return self.send("POST", uri, headers, body)

    def send(
        self,
        method: str,
        uri: str | httpx.URL,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> httpx.Response:
        """Send one logical operation, replaying it while interceptors ask to.

        Raises ``RetryBudgetExceeded`` when the last allowed attempt still
        requested a replay and ``TransportFailure`` when an attempt never
        produced a response. Transport failures are not retried.
        """

        verb = method.upper()
        if verb not in ALLOWED_METHODS:
            raise ArgumentValidationError(f"Unsupported HTTP method: {method}")

        actual_headers = httpx.Headers(headers or {})
        actual_headers["Accept"] = "application/json"
        content = encode_body(body)
        if content is not None:
            actual_headers["Content-Type"] = JSON_CONTENT_TYPE

        for attempt in range(1, self.max_attempts + 1):
            request = self._client.build_request(verb, uri, headers=actual_headers, content=content)
            context = InterceptorContext(request=request)
            for interceptor in self._request_interceptors:
                context = self._checked(interceptor.intercept_request(context), interceptor)

            logger.debug(format_request_log(context.request))
            try:
                response = self._client.send(context.request)
            except httpx.TimeoutException as exc:
                raise TransportFailure(
                    f"{verb} {redact_url(context.request.url)} timed out"
                ) from exc
            except httpx.HTTPError as exc:
                raise TransportFailure(
                    f"{verb} {redact_url(context.request.url)} failed: {exc}"
                ) from exc
            logger.debug(format_response_log(response))

            context.response = response
            for interceptor in self._response_interceptors:
                context = self._checked(interceptor.intercept_response(context), interceptor)

            if not context.replay:
                return response

            response.close()
            logger.debug(
                "Replaying %s %s (attempt %d of %d)",
                verb,
                redact_url(context.request.url),
                attempt,
                self.max_attempts,
            )

        logger.warning("Maximum number of retries reached for %s %s", verb, redact_url(str(uri)))
        raise RetryBudgetExceeded(self.max_attempts)

    @staticmethod
    def _checked(context: InterceptorContext | None, interceptor: object) -> InterceptorContext:
        if context is None:
            raise ConfigurationError(
                f"Interceptor {type(interceptor).__name__} returned no context"
            )
        return context
