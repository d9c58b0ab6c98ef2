"""Base HTTP client with retry logic, timeouts, and error handling.

External API clients inherit from this class to get consistent behavior for
retries, timeouts, and error classification.
"""

import logging
from enum import StrEnum
from typing import Any, Self

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class FailureReason(StrEnum):
    """Why an upstream call did not produce usable data."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    HTTP_ERROR = "http_error"
    MALFORMED_RESPONSE = "malformed_response"
    NO_DATA = "no_data"


class HTTPClientError(Exception):
    """Raised for any failed upstream request."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        reason: FailureReason = FailureReason.HTTP_ERROR,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.reason = reason


class HTTPClient:
    """Base HTTP client with retry logic, timeouts, and error handling.

    Example usage:
        class CoinGeckoClient(HTTPClient):
            def __init__(self):
                super().__init__(
                    base_url="https://api.coingecko.com/api/v3",
                    timeout=15.0,
                )

            def get_global(self) -> dict:
                return self.get_json("/global")
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.default_headers = headers or {}
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url or "",
                timeout=self.timeout,
                headers=self.default_headers,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True,
    )
    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send one request, retrying transient transport failures."""
        return self.client.request(method=method, url=url, **kwargs)

    def _request(
        self,
        method: str,
        url: str,
        params: dict | None = None,
        json: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make HTTP request with retry logic.

        Raises:
            HTTPClientError: On HTTP errors, timeouts, or connection failures,
                with ``reason`` set to the failure classification.
        """
        merged_headers = {**self.default_headers, **(headers or {})}

        try:
            response = self._send(method, url, params=params, json=json, headers=merged_headers)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"HTTP {status} for {method} {url}: {e.response.text[:200]}")
            raise HTTPClientError(
                message=f"HTTP {status}: {e.response.reason_phrase}",
                status_code=status,
                response_body=e.response.text,
                reason=FailureReason.RATE_LIMITED if status == 429 else FailureReason.HTTP_ERROR,
            ) from e
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout for {method} {url}")
            raise HTTPClientError(
                f"Request timed out: {url}", reason=FailureReason.TIMEOUT
            ) from e
        except httpx.TransportError as e:
            logger.warning(f"Connection error for {method} {url}: {e}")
            raise HTTPClientError(f"Connection failed: {url}", reason=FailureReason.NETWORK) from e

    def get(self, url: str, params: dict | None = None, headers: dict | None = None) -> httpx.Response:
        """HTTP GET request."""
        return self._request("GET", url, params=params, headers=headers)

    def get_json(self, url: str, params: dict | None = None) -> Any:
        """HTTP GET returning parsed JSON.

        Raises:
            HTTPClientError: With ``MALFORMED_RESPONSE`` if the body is not JSON.
        """
        response = self.get(url, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise HTTPClientError(
                f"Invalid JSON from {url}",
                status_code=response.status_code,
                response_body=response.text[:200],
                reason=FailureReason.MALFORMED_RESPONSE,
            ) from e
