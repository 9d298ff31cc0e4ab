"""
================================================================================
Dock Health HTTP Client with Allure Integration
================================================================================

An httpx-based client for the Dock Health REST API featuring:
    - Default per-client headers (Authorization, x-api-key, x-user-id, ...)
    - Automatic retry with exponential backoff on network errors (idempotent methods)
    - Rate limit (429) handling with Retry-After parsing
    - Allure reporting with redacted headers/bodies and a cURL command
    - Expected-status checks with readable failures

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

import allure
import httpx
from allure_commons.types import AttachmentType
from loguru import logger

from .config_loader import ConfigLoader


# Maximum response length to include in Allure reports
MAX_RESPONSE_LENGTH = 3000

# Default retry settings
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_BACKOFF = 0.5
DEFAULT_RETRY_MAX_WAIT = 5.0

# Safe to resend after a network error; a POST or PATCH may already have been applied
IDEMPOTENT_METHODS = {"GET", "HEAD", "OPTIONS", "PUT", "DELETE"}

SENSITIVE_HEADERS = {"authorization", "x-api-key", "cookie", "set-cookie"}
SENSITIVE_FIELDS = ["password", "secret", "token", "api_key", "authorization", "session"]


class HttpClientError(Exception):
    """Base exception for HTTP client errors."""
    pass


class RateLimitExceeded(HttpClientError):
    """Raised when rate limit is exceeded and all retries are exhausted."""
    pass


class UnexpectedStatusError(HttpClientError):
    """Raised when a response status is not one of the expected ones."""

    def __init__(self, response: httpx.Response, expected: tuple) -> None:
        self.response = response
        self.expected = expected
        request = response.request
        super().__init__(
            f"{request.method} {request.url.path} returned {response.status_code}, "
            f"expected {' or '.join(str(s) for s in expected)}: {response.text[:500]}"
        )


class HttpClient:
    """
    HTTP client for the Dock Health API.

    Usage:
        >>> headers = user_and_org_headers(token, user_id, org_id)
        >>> with HttpClient(config, headers=headers) as client:
        ...     response = client.get("/api/v1/organization/current")
        ...     org = client.expect(response, 200).json()
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize HTTP client with configuration.

        Args:
            config: Configuration loader instance. Creates new one if None.
            headers: Headers sent with every request made by this client.
            transport: Optional httpx transport (used by unit tests).
        """
        if config is None:
            config = ConfigLoader()

        self.config = config
        self.base_url = config.get("api.url", "http://localhost:8000")
        self.timeout = int(config.get("api.timeout", 30))
        self.retry_count = int(config.get("api.retry_count", DEFAULT_RETRY_COUNT))
        self.retry_backoff = float(config.get("api.retry_backoff", DEFAULT_RETRY_BACKOFF))
        self.retry_max_wait = float(config.get("api.retry_max_wait", DEFAULT_RETRY_MAX_WAIT))

        self.default_headers: Dict[str, str] = dict(headers or {})
        self.session: Optional[httpx.Client] = None
        self._transport = transport

    def __enter__(self) -> "HttpClient":
        """Enter context manager - initialize HTTP session."""
        self.session = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - close HTTP session."""
        if self.session:
            self.session.close()
            self.session = None

    def with_headers(self, headers: Dict[str, str]) -> "HttpClient":
        """
        Return a client sharing this session but sending other headers.

        Handy when a flow switches acting user or organization mid-way.
        """
        clone = object.__new__(HttpClient)
        clone.__dict__.update(self.__dict__)
        clone.default_headers = dict(headers)
        return clone

    def request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Execute HTTP request with automatic retry and Allure logging.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH)
            url: Request URL (relative to api.url)
            **kwargs: Additional arguments passed to httpx.request

        Returns:
            httpx.Response object

        Raises:
            RateLimitExceeded: When rate limit retries are exhausted
            httpx.HTTPError: When network retries are exhausted
        """
        if self.session is None:
            raise HttpClientError(
                "HttpClient must be used within a context manager. "
                "Use 'with HttpClient() as client:'"
            )

        headers = dict(self.default_headers)
        headers.update(kwargs.pop("headers", None) or {})
        kwargs["headers"] = headers

        for attempt in range(self.retry_count):
            try:
                response = self.session.request(method, url, **kwargs)

                if response.status_code == 429:
                    retry_after = self._parse_retry_after(response)
                    logger.warning(
                        f"Rate limited (429). Waiting {retry_after}s before retry. "
                        f"Attempt {attempt + 1}/{self.retry_count}"
                    )
                    time.sleep(retry_after)
                    continue

                logger.debug(f"{method} {url} -> {response.status_code}")
                self._log_to_allure(method, url, kwargs, response)
                return response

            except (httpx.TimeoutException, httpx.NetworkError) as e:
                retryable = method.upper() in IDEMPOTENT_METHODS
                if retryable and attempt < self.retry_count - 1:
                    wait_time = self._calculate_backoff(attempt)
                    logger.warning(
                        f"Network error: {e}. Retrying in {wait_time}s. "
                        f"Attempt {attempt + 1}/{self.retry_count}"
                    )
                    time.sleep(wait_time)
                else:
                    if retryable:
                        logger.error(f"All retries exhausted. Last error: {e}")
                    else:
                        logger.error(f"Network error on {method} {url}, not retried: {e}")
                    raise

        raise RateLimitExceeded(
            f"Rate limit exceeded after {self.retry_count} retries"
        )

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute POST request."""
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute PUT request."""
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute PATCH request."""
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Execute DELETE request."""
        return self.request("DELETE", url, **kwargs)

    @staticmethod
    def expect(response: httpx.Response, *statuses: int) -> httpx.Response:
        """
        Check the response status.

        Args:
            response: Response to check
            statuses: Accepted status codes (200 if none given)

        Returns:
            The same response, for chaining ``.json()``

        Raises:
            UnexpectedStatusError: Status not in ``statuses``
        """
        statuses = statuses or (200,)
        if response.status_code not in statuses:
            raise UnexpectedStatusError(response, statuses)
        return response

    def _parse_retry_after(self, response: httpx.Response) -> float:
        """
        Parse Retry-After header (seconds) from a 429 response.

        Returns:
            Wait time in seconds (capped at retry_max_wait)
        """
        retry_after = response.headers.get("Retry-After", "")

        try:
            wait_time = float(retry_after)
        except ValueError:
            wait_time = self.retry_backoff

        return min(wait_time, self.retry_max_wait)

    def _calculate_backoff(self, attempt: int) -> float:
        """
        Calculate exponential backoff wait time.

        Formula: base * (2 ^ attempt), capped at max_wait
        """
        wait_time = self.retry_backoff * (2 ** attempt)
        return min(wait_time, self.retry_max_wait)

    def _log_to_allure(
        self,
        method: str,
        url: str,
        kwargs: Dict[str, Any],
        response: httpx.Response,
    ) -> None:
        """
        Log HTTP request/response to Allure report.

        Attaches the request URL, redacted headers and body, query params,
        a cURL command, the response status and the (truncated) body.
        """
        full_url = str(response.request.url) if response.request else url
        params = kwargs.get("params")

        status_mark = "OK" if response.status_code < 400 else "FAIL"
        step_title = f"[{status_mark}] {method} {url} -> {response.status_code}"

        with allure.step(step_title):
            allure.attach(
                full_url,
                name="Request URL",
                attachment_type=AttachmentType.TEXT
            )

            safe_headers = self._redact_headers(kwargs.get("headers", {}))
            if safe_headers:
                allure.attach(
                    json.dumps(safe_headers, ensure_ascii=False, indent=2),
                    name="Request Headers",
                    attachment_type=AttachmentType.JSON
                )

            safe_body = self._redact_body(kwargs.get("json"))
            if safe_body:
                allure.attach(
                    json.dumps(safe_body, ensure_ascii=False, indent=2),
                    name="Request Body",
                    attachment_type=AttachmentType.JSON
                )

            if params:
                allure.attach(
                    json.dumps(params, ensure_ascii=False, indent=2, default=str),
                    name="Query Params",
                    attachment_type=AttachmentType.JSON
                )

            allure.attach(
                self._build_curl(method, full_url, safe_headers, safe_body),
                name="cURL Command",
                attachment_type=AttachmentType.TEXT
            )

            allure.attach(
                f"{status_mark} {response.status_code}",
                name="Response Status",
                attachment_type=AttachmentType.TEXT
            )

            try:
                response_content = json.dumps(
                    self._redact_body(response.json()), ensure_ascii=False, indent=2
                )
            except ValueError:
                response_content = response.text or "<empty>"

            if len(response_content) > MAX_RESPONSE_LENGTH:
                response_content = (
                    f"{response_content[:MAX_RESPONSE_LENGTH]}\n\n"
                    f"... [Truncated, full length: {len(response_content)} chars] ..."
                )

            allure.attach(
                response_content,
                name="Response Body",
                attachment_type=AttachmentType.JSON
            )

    def _redact_headers(self, headers: Dict[str, Any]) -> Dict[str, Any]:
        """Mask sensitive header values before logging."""
        masked = {}
        for key, value in headers.items():
            if key.lower() in SENSITIVE_HEADERS:
                masked[key] = "***MASKED***"
            else:
                masked[key] = value
        return masked

    def _redact_body(self, payload: Any) -> Any:
        """
        Recursively mask sensitive fields in request and response bodies.

        Webhook payloads carry their signing `secret`, which must not end up
        in reports.
        """
        if isinstance(payload, dict):
            redacted = {}
            for key, value in payload.items():
                if any(token in key.lower() for token in SENSITIVE_FIELDS):
                    redacted[key] = "***MASKED***"
                else:
                    redacted[key] = self._redact_body(value)
            return redacted
        if isinstance(payload, list):
            return [self._redact_body(item) for item in payload]
        return payload

    def _build_curl(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[Any],
    ) -> str:
        """Build a copy-paste ready cURL command from redacted values."""
        parts = [f"curl -X {method}"]

        for key, value in headers.items():
            parts.append(f"-H '{key}: {value}'")

        if body:
            body_json = json.dumps(body, ensure_ascii=False)
            parts.append(f"-d '{body_json}'")

        parts.append(f"'{url}'")

        return " \\\n  ".join(parts)


__all__ = [
    "HttpClient",
    "HttpClientError",
    "RateLimitExceeded",
    "UnexpectedStatusError",
]
