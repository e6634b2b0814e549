"""Tenacity retry policy for upload transport calls."""

from __future__ import annotations

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stationdesk.utils.progress import log_warning

TRANSIENT_ERRORS = (TimeoutError, ConnectionError)


def _log_retry(state: RetryCallState) -> None:
    name = getattr(state.fn, "__name__", "transport call")
    log_warning(
        f"{name} failed ({state.outcome.exception()}), "
        f"attempt {state.attempt_number}; retrying"
    )


def retry_transport(max_attempts: int = 3, *, multiplier: float = 1.0):
    """Retry decorator for upload transport calls with exponential backoff.

    Only transient network errors are retried; anything else (including
    ``UploadError``) propagates on the first attempt. The render path is
    never wrapped.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=multiplier, min=0, max=30),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        before_sleep=_log_retry,
        reraise=True,
    )
