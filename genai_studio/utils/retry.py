"""Retry-with-delay helpers for rate-limited provider calls.

Attempts are bounded and spaced by a constant delay, or by the delay the
provider asked for. Once the attempts run out the last error is re-raised
untouched. No jitter, no exponential growth.
"""

from __future__ import annotations

import asyncio
import functools
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import openai

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings

T = TypeVar("T")

RATE_LIMIT_STATUS = 429

# Some providers only mention the delay inside the error body,
# e.g. '{"detail": "...", "retry_after":12}'.
_RETRY_AFTER_IN_MESSAGE = re.compile(r'retry_after"?\s*:\s*(\d+(?:\.\d+)?)')


def _status_code_of(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when ``exc`` signals HTTP 429 / provider rate limiting."""
    if isinstance(exc, openai.RateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == RATE_LIMIT_STATUS
    return _status_code_of(exc) == RATE_LIMIT_STATUS


def _parse_seconds(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def retry_delay_for(exc: BaseException, default: float) -> float:
    """Work out how long to wait before retrying after ``exc``.

    Order: an explicit ``retry_after`` attribute, the ``retry-after`` response
    header, a ``retry_after":N`` fragment in the message, then ``default``.
    """
    seconds = _parse_seconds(getattr(exc, "retry_after", None))
    if seconds is not None:
        return seconds

    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if headers is not None:
        try:
            seconds = _parse_seconds(headers.get("retry-after"))
        except AttributeError:
            seconds = None
        if seconds is not None:
            return seconds

    match = _RETRY_AFTER_IN_MESSAGE.search(str(exc))
    if match:
        return float(match.group(1))

    return default


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    default_delay: float = settings.RETRY_DEFAULT_DELAY_SECONDS,
    retry_on: Optional[Callable[[BaseException], bool]] = None,
    use_server_delay: bool = True,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is reached.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Upper bound on calls to ``operation`` (>= 1).
        default_delay: Seconds to wait when the error carries no delay hint.
        retry_on: Predicate selecting retryable errors. Anything it rejects is
            raised immediately. ``None`` retries every ``Exception``.
        use_server_delay: Honour ``retry_after`` hints from the error.
        sleep: Awaitable sleep, injectable for tests.
        label: Name used in log lines.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        The exception from the final attempt, unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if attempt >= max_attempts or (retry_on is not None and not retry_on(exc)):
                if attempt > 1:
                    app_logger.error(f"{label} failed after {attempt} attempt(s): {exc}")
                raise

            delay = retry_delay_for(exc, default_delay) if use_server_delay else default_delay
            reason = "Rate limit hit" if is_rate_limit_error(exc) else f"Attempt {attempt} failed ({exc})"
            app_logger.warning(
                f"{label}: {reason}. Waiting {delay:g}s before retry "
                f"({attempt}/{max_attempts})..."
            )
            await sleep(delay)


def retrying(
    *,
    max_attempts: int = 3,
    default_delay: float = settings.RETRY_DEFAULT_DELAY_SECONDS,
    retry_on: Optional[Callable[[BaseException], bool]] = None,
    use_server_delay: bool = True,
    label: Optional[str] = None,
):
    """Decorator form of :func:`retry_async` for ``async def`` callables."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry_async(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                default_delay=default_delay,
                retry_on=retry_on,
                use_server_delay=use_server_delay,
                label=label or func.__name__,
            )

        return wrapper

    return decorator
