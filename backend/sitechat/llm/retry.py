"""
Exponential backoff with jitter for any awaitable operation.

    result = await execute(lambda: client.complete(...), policy)

Attempt ``n`` (1-based) that fails with a retryable error waits
``min(max_delay, initial_delay * backoff_multiplier ** (n - 1))`` seconds,
perturbed by up to ``jitter`` of itself in either direction, before attempt
``n + 1``. When the budget is spent, or the error isn't retryable, the
original exception is re-raised untouched.
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from ..config import Settings
from ..errors import AssistantError, ErrorKind, RETRYABLE_KINDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_should_retry(error: BaseException) -> bool:
    """Retry overloaded/unreachable providers; never auth or request errors."""
    if not isinstance(error, AssistantError):
        return False
    if error.kind is ErrorKind.PROVIDER_AUTH:
        return False
    return error.kind in RETRYABLE_KINDS


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.1
    should_retry: Callable[[BaseException], bool] = field(default=default_should_retry)

    @classmethod
    def for_llm(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.llm_max_retries,
            initial_delay=settings.retry_initial_delay,
            max_delay=settings.retry_max_delay,
            backoff_multiplier=settings.retry_backoff_multiplier,
            jitter=settings.retry_jitter,
        )

    @classmethod
    def for_tools(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.tool_max_retries,
            initial_delay=settings.retry_initial_delay,
            max_delay=settings.retry_max_delay,
            backoff_multiplier=settings.retry_backoff_multiplier,
            jitter=settings.retry_jitter,
        )


def compute_delay(
    attempt: int,
    policy: RetryPolicy,
    rand: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay in seconds to wait after failed attempt number ``attempt``."""
    exponential = policy.initial_delay * (policy.backoff_multiplier ** (attempt - 1))
    capped = min(exponential, policy.max_delay)
    jitter_amount = capped * policy.jitter * rand(-1.0, 1.0)
    return max(0.0, capped + jitter_amount)


async def execute(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[float, float], float] = random.uniform,
) -> T:
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if attempt > policy.max_retries:
                logger.warning(f"{label}: giving up after {attempt} attempts ({exc!r})")
                raise
            if not policy.should_retry(exc):
                raise
            delay = compute_delay(attempt, policy, rand)
            logger.info(
                f"{label}: retry attempt {attempt}/{policy.max_retries} after {delay * 1000:.0f}ms ({exc!r})"
            )
            await sleep(delay)
