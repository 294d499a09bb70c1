"""Error classification and retry logic for model calls."""

import asyncio
import random
import re
from typing import Optional, Type, Tuple, Callable, Any
from enum import Enum

import openai


class ErrorCategory(str, Enum):
    """Categories of errors for better handling."""
    NETWORK = "network"  # Connection issues, timeouts
    API_ERROR = "api_error"  # API returned error response
    AUTH_ERROR = "auth_error"  # Authentication/authorization failures
    RATE_LIMIT = "rate_limit"  # Rate limit exceeded
    UNKNOWN = "unknown"


class RetryableError(Exception):
    """Base exception for classified upstream errors."""
    def __init__(self, message: str, category: ErrorCategory, retryable: bool = True, retry_after: Optional[float] = None):
        self.message = message
        self.category = category
        self.retryable = retryable
        self.retry_after = retry_after
        super().__init__(message)


class NetworkError(RetryableError):
    """Network-related errors (connection, timeout)."""
    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, ErrorCategory.NETWORK, retryable=True, retry_after=retry_after)


class APIError(RetryableError):
    """API returned an error response."""
    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False, retry_after: Optional[float] = None):
        self.status_code = status_code
        super().__init__(message, ErrorCategory.API_ERROR, retryable=retryable, retry_after=retry_after)


class AuthError(RetryableError):
    """Authentication/authorization errors."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.AUTH_ERROR, retryable=False)


class RateLimitError(RetryableError):
    """Rate limit exceeded."""
    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, ErrorCategory.RATE_LIMIT, retryable=True, retry_after=retry_after)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_error(error: Exception) -> Tuple[ErrorCategory, bool, Optional[float]]:
    """
    Classify an error into a category and determine if it's retryable.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (category, retryable, retry_after_seconds)
    """
    if isinstance(error, RetryableError):
        return error.category, error.retryable, error.retry_after

    if isinstance(error, (asyncio.TimeoutError, ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK, True, None

    error_str = str(error).lower()

    if any(keyword in error_str for keyword in ['connection', 'timeout', 'network', 'dns', 'refused']):
        return ErrorCategory.NETWORK, True, None

    if 'rate limit' in error_str or '429' in error_str or 'too many requests' in error_str:
        match = re.search(r'retry[_-]after[:\s]+(\d+)', error_str)
        return ErrorCategory.RATE_LIMIT, True, float(match.group(1)) if match else None

    if any(keyword in error_str for keyword in ['unauthorized', 'forbidden', '401', '403', 'authentication']):
        return ErrorCategory.AUTH_ERROR, False, None

    return ErrorCategory.UNKNOWN, False, None


async def retry_with_backoff(
    func: Callable,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Any:
    """
    Retry an async callable with exponential backoff and jitter.

    Only errors that ``classify_error`` marks retryable are retried; anything
    else is raised on the first attempt.

    Args:
        func: Zero-argument async callable
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential backoff
        retryable_exceptions: Exception types eligible for retry
        on_retry: Optional callback called on each retry (exception, attempt_number)

    Returns:
        Result of the function call

    Raises:
        Last exception if all retries fail
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except retryable_exceptions as e:
            _, retryable, retry_after = classify_error(e)
            if not retryable or attempt >= max_retries:
                raise

            if retry_after:
                delay = min(retry_after, max_delay)
            else:
                delay = min(initial_delay * (exponential_base ** attempt), max_delay)
            # Add jitter to avoid thundering herd
            delay += random.uniform(0, delay * 0.1)

            if on_retry:
                result = on_retry(e, attempt + 1)
                if asyncio.iscoroutine(result):
                    await result

            await asyncio.sleep(delay)


def wrap_llm_error(error: Exception, provider: str = "openai") -> RetryableError:
    """
    Wrap model client errors into our error types.

    Args:
        error: Original exception
        provider: Provider name used in messages

    Returns:
        RetryableError with appropriate category
    """
    if isinstance(error, RetryableError):
        return error

    if isinstance(error, openai.RateLimitError):
        headers = getattr(getattr(error, "response", None), "headers", None) or {}
        return RateLimitError(
            f"{provider} rate limit exceeded",
            retry_after=_parse_retry_after(headers.get("retry-after")),
        )

    if isinstance(error, openai.AuthenticationError):
        return AuthError(f"{provider} authentication failed")

    if isinstance(error, (openai.APITimeoutError, openai.APIConnectionError, asyncio.TimeoutError)):
        return NetworkError(f"{provider} network error: {error}")

    if isinstance(error, openai.APIStatusError):
        status_code = error.status_code
        if status_code in [401, 403]:
            return AuthError(f"{provider} auth error ({status_code})")
        if status_code >= 500:
            # Server errors are retryable
            return APIError(f"{provider} server error ({status_code})", status_code=status_code, retryable=True)
        return APIError(f"{provider} API error ({status_code})", status_code=status_code, retryable=False)

    category, retryable, retry_after = classify_error(error)
    if category == ErrorCategory.NETWORK:
        return NetworkError(f"{provider} network error: {error}")
    if category == ErrorCategory.RATE_LIMIT:
        return RateLimitError(f"{provider} rate limit exceeded", retry_after=retry_after)
    if category == ErrorCategory.AUTH_ERROR:
        return AuthError(f"{provider} authentication failed")
    return APIError(f"{provider} error: {error}", retryable=False)
