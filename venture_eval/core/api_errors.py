"""
Error classification for external providers.

One hierarchy covers the search provider, the LLM providers and
configuration problems. The class decides whether a retry can help.
"""

from typing import Any, Dict, Optional

# Client errors that no retry will fix
FATAL_STATUS_LABELS = {
    400: "Bad request",
    401: "Authentication failed",
    403: "Access forbidden",
    404: "Not found",
}


class APIError(Exception):
    """
    Base exception for provider failures.

    Attributes:
        message: Human-readable error description
        source: Provider name (e.g., 'exa', 'openai')
        status_code: HTTP status code if applicable
        response_data: Raw response body, when one was parsed
    """

    retryable = False

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.status_code = status_code
        self.response_data = response_data

    def __str__(self) -> str:
        text = f"[{self.source}] {self.message}" if self.source else self.message
        if self.status_code:
            text += f" (HTTP {self.status_code})"
        return text


class RetryableError(APIError):
    """5xx responses, timeouts, dropped connections, empty or malformed model output."""

    retryable = True


class RateLimitError(RetryableError):
    """
    Provider throttling (HTTP 429 or an SDK rate-limit error).

    retry_after is the provider's hint in seconds, when it sent one.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        retry_after: Optional[float] = None,
        response_data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, source=source, status_code=429, response_data=response_data)
        self.retry_after = retry_after


class FatalError(APIError):
    """Bad request, bad key, forbidden or missing resource."""


class AuthenticationError(FatalError):
    def __init__(self, message: str = "Authentication failed - check API key", source: Optional[str] = None):
        super().__init__(message, source=source, status_code=401)


class ConfigurationError(FatalError):
    """
    A provider key or setting is missing.

    Raised at first use of the provider and never retried.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        missing_config: Optional[str] = None,
    ):
        super().__init__(message, source=source)
        self.missing_config = missing_config


def classify_http_error(
    status_code: int, response_text: str = "", source: Optional[str] = None
) -> APIError:
    """Map an HTTP error status onto the hierarchy. The body is cut to 200 chars."""
    body = response_text[:200]
    if status_code == 429:
        return RateLimitError(f"Rate limited: {body}", source=source)
    if status_code == 401:
        return AuthenticationError(f"Authentication failed: {body}", source=source)
    if status_code in FATAL_STATUS_LABELS:
        return FatalError(
            f"{FATAL_STATUS_LABELS[status_code]}: {body}",
            source=source,
            status_code=status_code,
        )
    if 500 <= status_code < 600:
        return RetryableError(f"Server error: {body}", source=source, status_code=status_code)
    return APIError(f"HTTP error {status_code}: {body}", source=source, status_code=status_code)


def is_throttling_error(error: BaseException) -> bool:
    """
    True when an error signals provider rate limiting.

    Recognises our own RateLimitError and any SDK error carrying a
    429 status (openai/anthropic expose ``status_code``).
    """
    if isinstance(error, RateLimitError):
        return True
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    return status == 429
