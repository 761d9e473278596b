"""Retry logic with increasing backoff for transient failures.

Used for the admin-side steps (seeding and cleanup) of each case, where a
flaky connection should not turn into a false result. The operation under
test itself is never retried here; botocore's own retry budget applies.

Transient (Retryable):
- Connection errors and timeouts
- Server errors (5xx)
- Rate limiting (429, SlowDown)

Permanent (Not Retryable):
- Access denied (401/403)
- Missing objects or buckets (404)
- Every other client error
"""

import logging
import time
from typing import Any, Callable, Optional, Sequence

import httpx

from s3grants.errors import StorageConnectionError, extract_error_code, extract_status_code

logger = logging.getLogger(__name__)

# HTTP status codes that indicate transient server issues
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

RETRYABLE_ERROR_CODES = {"SlowDown", "Throttling", "RequestTimeout", "InternalError", "ServiceUnavailable"}


class RetryExhausted(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


def is_retryable_error(error: Exception) -> bool:
    """Determine if an error is transient and worth retrying.

    Args:
        error: The exception that was raised.

    Returns:
        True if the error is transient and should trigger a retry,
        False if the error is permanent and retrying won't help.
    """
    # Network-level errors are transient
    if isinstance(error, (StorageConnectionError, httpx.ConnectError, httpx.TimeoutException)):
        return True

    if extract_error_code(error) in RETRYABLE_ERROR_CODES:
        return True

    return extract_status_code(error) in RETRYABLE_STATUS_CODES


def retry_with_backoff(
    func: Callable[..., Any],
    max_attempts: int = 3,
    delays: Sequence[float] = (1.0, 2.0, 3.0),
    args: tuple = (),
    kwargs: Optional[dict] = None,
) -> Any:
    """Execute a function, retrying transient failures.

    Args:
        func: The function to execute.
        max_attempts: Maximum number of attempts (including first try).
        delays: Sequence of delay times (seconds) between retries.
                delays[0] is used after first failure, etc.
        args: Positional arguments to pass to func.
        kwargs: Keyword arguments to pass to func.

    Returns:
        The return value of func if successful.

    Raises:
        RetryExhausted: If all attempts fail with retryable errors.
        Exception: If a non-retryable error occurs, it's raised immediately.
    """
    if kwargs is None:
        kwargs = {}

    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            last_error = e

            if not is_retryable_error(e):
                raise

            if attempt >= max_attempts:
                raise RetryExhausted(
                    f"Operation failed after {max_attempts} attempts: {e}",
                    attempts=max_attempts,
                    last_error=last_error,
                ) from last_error

            delay_index = min(attempt - 1, len(delays) - 1)
            delay = delays[delay_index] if delays else 0
            logger.warning("Attempt %d/%d failed (%s), retrying in %.1fs", attempt, max_attempts, e, delay)
            time.sleep(delay)

    raise RetryExhausted(
        f"Operation failed after {max_attempts} attempts",
        attempts=max_attempts,
        last_error=last_error,
    )
