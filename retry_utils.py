"""Retry utilities with exponential backoff for delivery calls.

Provides:
- RetryPolicy: Bounded attempt/delay settings, configurable per deployment
- exponential_backoff_delay: Calculate delay with jitter
- is_retriable_error: Classify transient failures (HTTP and SMTP)
- call_with_retry: Run a callable under a policy
"""

import os
import random
import smtplib
import sys
import time
from dataclasses import dataclass
from typing import Callable, TypeVar


# Configuration (can be overridden via environment variables)
DEFAULT_MAX_ATTEMPTS = int(os.getenv("MAIL_MAX_ATTEMPTS", "3"))
DEFAULT_BASE_DELAY_SECONDS = float(os.getenv("MAIL_RETRY_BASE_DELAY", "1.0"))
DEFAULT_MAX_DELAY_SECONDS = float(os.getenv("MAIL_RETRY_MAX_DELAY", "30.0"))
DEFAULT_EXPONENTIAL_BASE = 2.0
DEFAULT_JITTER_FACTOR = 0.1

# Errors that should trigger retry
RETRIABLE_STATUS_CODES = {429, 500, 502, 503, 504}
RETRIABLE_KEYWORDS = (
    "rate limit",
    "timeout",
    "timed out",
    "connection",
    "temporarily",
    "try again",
)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry settings.

    ``max_attempts`` counts the first call, so 1 disables retrying.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS
    exponential_base: float = DEFAULT_EXPONENTIAL_BASE
    jitter_factor: float = DEFAULT_JITTER_FACTOR


def exponential_backoff_delay(
    attempt: int,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
    exponential_base: float = DEFAULT_EXPONENTIAL_BASE,
    jitter_factor: float = DEFAULT_JITTER_FACTOR,
) -> float:
    """Calculate delay with exponential backoff and jitter.

    Formula: min(base_delay * (exponential_base ** attempt), max_delay) + jitter

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        exponential_base: Base for exponential growth (default 2)
        jitter_factor: Random jitter as fraction of delay (default 0.1)

    Returns:
        Delay in seconds to wait before next attempt
    """
    delay = min(base_delay * (exponential_base**attempt), max_delay)
    jitter = delay * jitter_factor * random.uniform(-1, 1)
    return max(0, delay + jitter)


def is_retriable_error(exc: Exception) -> bool:
    """Check if an error is transient (rate limit, server error, 4xx SMTP reply).

    Args:
        exc: Exception to check

    Returns:
        True if the error should trigger a retry
    """
    # Authentication and refused recipients never succeed on retry
    if isinstance(exc, (smtplib.SMTPAuthenticationError, smtplib.SMTPRecipientsRefused)):
        return False
    if isinstance(exc, (smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError)):
        return True
    if isinstance(exc, smtplib.SMTPResponseException):
        return 400 <= exc.smtp_code < 500
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True

    # Check HTTP status code
    status = getattr(exc, "status_code", None) or getattr(exc, "http_status", None)
    if status in RETRIABLE_STATUS_CODES:
        return True

    error_msg = str(exc).lower()
    return any(kw in error_msg for kw in RETRIABLE_KEYWORDS)


class RetryExhausted(Exception):
    """Raised by call_with_retry when the final attempt fails.

    Wraps the last error and records how many attempts were made.
    """

    def __init__(self, last_error: Exception, attempts: int) -> None:
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy = RetryPolicy(),
    sleep: Callable[[float], None] = time.sleep,
    label: str = "call",
) -> T:
    """Call ``func`` until it succeeds, a permanent error occurs or attempts run out.

    Args:
        func: Zero-argument callable
        policy: Retry settings
        sleep: Delay function (injectable for tests)
        label: Name used in progress output

    Returns:
        The value returned by ``func``

    Raises:
        RetryExhausted: Last error, after a permanent failure or the final attempt
    """
    attempts = max(policy.max_attempts, 1)
    for attempt in range(attempts):
        try:
            return func()
        except Exception as exc:  # noqa: BLE001
            is_last = attempt == attempts - 1
            if is_last or not is_retriable_error(exc):
                raise RetryExhausted(exc, attempt + 1) from exc

            delay = exponential_backoff_delay(
                attempt,
                base_delay=policy.base_delay,
                max_delay=policy.max_delay,
                exponential_base=policy.exponential_base,
                jitter_factor=policy.jitter_factor,
            )
            print(
                f"   ⏳ {label} failed ({exc}); retry {attempt + 2}/{attempts} in {delay:.1f}s",
                file=sys.stderr,
            )
            sleep(delay)

    # range() always runs at least once
    raise AssertionError("unreachable")
