"""Resilient API call decorator with tenacity retry and a final-failure hook.

Retries 3 times with exponential backoff and jitter, then reports the
failure through the configured hook (the audit trail at runtime) and
re-raises the original exception.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = structlog.get_logger()

# Called as hook(api_name, attempts, exception) once retries are exhausted.
FailureHook = Callable[[str, int, BaseException | None], None]

_failure_hook: FailureHook | None = None

F = TypeVar("F", bound=Callable[..., Any])


def configure_failure_hook(hook: FailureHook | None) -> None:
    """Set the module-level hook invoked on final retry exhaustion.

    Call this at application startup, for example with a function that
    writes an ``error`` entry to the audit trail.  Pass ``None`` to clear.

    Args:
        hook: Callable receiving the API name, attempt count, and exception.
    """
    global _failure_hook
    _failure_hook = hook


def report_final_failure(retry_state: RetryCallState) -> None:
    """Log failure and invoke the failure hook on final retry exhaustion.

    Args:
        retry_state: Tenacity retry state with attempt info and exception.
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    api_name = getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"

    logger.error(
        "API call failed after all retries",
        api_name=api_name,
        attempts=retry_state.attempt_number,
        exception=str(exception),
    )

    if _failure_hook is not None:
        try:
            _failure_hook(api_name, retry_state.attempt_number, exception)
        except Exception:
            logger.exception("Failure hook raised", api_name=api_name)

    if exception is not None:
        raise exception


def _before_sleep_log(retry_state: RetryCallState) -> None:
    """Log a warning before each retry attempt.

    Args:
        retry_state: Tenacity retry state with attempt info.
    """
    api_name = getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"
    logger.warning(
        "Retrying API call",
        api_name=api_name,
        attempt=retry_state.attempt_number,
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def resilient_api_call(
    api_name: str,
    *,
    attempts: int = 3,
    initial_wait: float = 1,
    max_wait: float = 30,
    jitter: float = 5,
) -> Callable[[F], F]:
    """Create a retry decorator for an API call.

    Returns a tenacity retry decorator configured with:
    - ``attempts`` attempts maximum (default 3)
    - Exponential backoff with jitter (1s initial, 30s max, 5s jitter)
    - Warning log before each retry
    - Failure hook on final failure
    - Original exception re-raised after exhaustion

    Args:
        api_name: Human-readable name for the API (used in logs and alerts).
        attempts: Maximum number of attempts.
        initial_wait: First backoff interval in seconds.
        max_wait: Upper bound on a single backoff interval.
        jitter: Maximum random jitter added to each interval.

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def decorator(func: F) -> F:
        # Bound methods reject new attributes, so tag a plain wrapper instead
        @functools.wraps(func)
        def call(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **kwargs)

        call._api_name = api_name  # type: ignore[attr-defined]

        wrapped = retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential_jitter(initial=initial_wait, max=max_wait, jitter=jitter),
            before_sleep=_before_sleep_log,
            retry_error_callback=report_final_failure,
            reraise=True,
        )(call)

        return wrapped  # type: ignore[return-value]

    return decorator
