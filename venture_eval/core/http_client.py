"""
Base HTTP client with request pacing, throttle handling and error classification.

Provides the foundation for external search clients. Every outbound request
passes one pacing gate per client instance; an HTTP 429 gets a single
retry after a fixed cooldown and any other failure is raised to the caller.
"""
import asyncio
import logging
import time
from abc import ABC
from typing import Any, Dict, Optional

import httpx

from venture_eval.core.api_errors import (
    APIError,
    FatalError,
    RateLimitError,
    RetryableError,
    classify_http_error,
)

logger = logging.getLogger(__name__)


class BaseAPIClient(ABC):
    """
    Base class for external API clients.

    Provides:
    - Minimum spacing between requests (shared gate per instance)
    - One retry after a cooldown on throttling
    - Standardized error classification
    - Lazy connection-pooled httpx client

    Subclasses should:
    - Set SOURCE_NAME and BASE_URL class attributes
    - Implement API-specific methods that call _request()
    - Override _build_headers() to add authentication
    """

    # Override in subclass
    SOURCE_NAME: str = "unknown"
    BASE_URL: str = ""

    DEFAULT_TIMEOUT: float = 30.0
    DEFAULT_CONNECT_TIMEOUT: float = 10.0
    DEFAULT_MIN_INTERVAL: float = 1.0
    DEFAULT_THROTTLE_COOLDOWN: float = 5.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        throttle_cooldown: float = DEFAULT_THROTTLE_COOLDOWN,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        """
        Initialize the API client.

        Args:
            api_key: Optional API key for authentication
            min_interval: Minimum seconds between outbound requests
            throttle_cooldown: Seconds to wait before the single 429 retry
            timeout: Request timeout in seconds
            connect_timeout: Connection timeout in seconds
        """
        self.api_key = api_key
        self.min_interval = min_interval
        self.throttle_cooldown = throttle_cooldown
        self.timeout = timeout
        self.connect_timeout = connect_timeout

        # Pacing state
        self._last_request_at: Optional[float] = None
        self._rate_limit_lock = asyncio.Lock()

        # Advisory counters
        self.request_count = 0
        self.last_request_time: float = 0.0

        # HTTP client (lazy initialization)
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            f"Initialized {self.SOURCE_NAME} client: "
            f"api_key_present={bool(api_key)}, "
            f"min_interval={min_interval}s"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client with connection pooling."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug(f"{self.SOURCE_NAME} client closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _enforce_rate_limit(self) -> None:
        """Suspend until min_interval has passed since the previous request."""
        async with self._rate_limit_lock:
            loop = asyncio.get_running_loop()
            if self._last_request_at is not None and self.min_interval > 0:
                elapsed = loop.time() - self._last_request_at
                if elapsed < self.min_interval:
                    wait_time = self.min_interval - elapsed
                    logger.debug(f"[{self.SOURCE_NAME}] Pacing: waiting {wait_time:.2f}s")
                    await asyncio.sleep(wait_time)
            self._last_request_at = loop.time()
            self.last_request_time = time.time()
            self.request_count += 1

    def _build_headers(self) -> Dict[str, str]:
        """
        Build request headers.

        Override to add API-specific headers (e.g., Authorization).
        """
        return {
            "Accept": "application/json",
            "User-Agent": f"venture-eval/{self.SOURCE_NAME}-client",
        }

    def _check_api_error(self, data: Any, resource_id: str) -> Optional[APIError]:
        """Detect an error object inside a 2xx response body."""
        if isinstance(data, dict) and "error" in data:
            error_msg = data.get("error")
            if isinstance(error_msg, dict):
                error_msg = error_msg.get("message", str(error_msg))
            return FatalError(
                message=f"{resource_id}: {error_msg}",
                source=self.SOURCE_NAME,
                response_data=data,
            )
        return None

    async def _send(
        self,
        method: str,
        url: str,
        json_body: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        resource_id: str,
    ) -> Dict[str, Any]:
        """Perform one HTTP exchange and classify its outcome."""
        client = await self._get_client()
        try:
            response = await client.request(method, url, json=json_body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = classify_http_error(
                e.response.status_code, e.response.text[:500], self.SOURCE_NAME
            )
            if isinstance(error, RateLimitError):
                retry_after = e.response.headers.get("Retry-After")
                if retry_after and retry_after.isdigit():
                    error.retry_after = float(retry_after)
            raise error from e
        except httpx.RequestError as e:
            raise RetryableError(
                message=f"Request failed: {e}", source=self.SOURCE_NAME
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise RetryableError(
                message=f"Invalid JSON in response for {resource_id}",
                source=self.SOURCE_NAME,
                status_code=response.status_code,
            ) from e

        api_error = self._check_api_error(data, resource_id)
        if api_error:
            raise api_error
        return data

    async def _request(
        self,
        method: str,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
        resource_id: str = "unknown",
    ) -> Dict[str, Any]:
        """
        Make a paced HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Full URL or path (if path, BASE_URL is prepended)
            json_body: JSON body for POST/PUT requests
            resource_id: Identifier for logging

        Returns:
            Parsed JSON response

        Raises:
            RateLimitError: Throttled again after the single retry
            APIError: Any other failure, unretried
        """
        if not url.startswith("http"):
            url = f"{self.BASE_URL.rstrip('/')}/{url.lstrip('/')}"

        headers = self._build_headers()
        if json_body is not None:
            headers["Content-Type"] = "application/json"

        await self._enforce_rate_limit()
        logger.debug(f"[{self.SOURCE_NAME}] {method} {resource_id}")

        try:
            return await self._send(method, url, json_body, headers, resource_id)
        except RateLimitError:
            logger.warning(
                f"[{self.SOURCE_NAME}] Rate limited on {resource_id}. "
                f"Retrying once in {self.throttle_cooldown}s"
            )
            await asyncio.sleep(self.throttle_cooldown)
            return await self._send(method, url, json_body, headers, resource_id)

    async def post(
        self,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
        resource_id: str = "unknown",
    ) -> Dict[str, Any]:
        """Make a paced POST request."""
        return await self._request("POST", url, json_body=json_body, resource_id=resource_id)

    def get_request_stats(self) -> Dict[str, float]:
        """Advisory counters for observability."""
        return {
            "request_count": self.request_count,
            "last_request_time": self.last_request_time,
        }
