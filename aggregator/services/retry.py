"""
RetryPolicy - Bounded exponential backoff for downstream calls.

Only transient failures are retried. The n-th retry waits
``backoff_base ** n`` seconds, so with the defaults the delays are 2s, 4s
and 8s. Exhausting the retries is not an error: the last failure is
handed back to the caller, which degrades that source to its defaults.
"""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from aggregator.services.outcome import CallOutcome, Failure

SleepFn = Callable[[float], Awaitable[None]]


class RetryPolicy:
    """
    Retry wrapper for functions returning a CallOutcome.

    Usage:
        policy = RetryPolicy(max_retries=3)
        outcome = await policy.run(lambda: client.call(...), label="content")
    """

    def __init__(
        self,
        max_retries: int = 3,
        backoff_base: float = 2.0,
        sleep: SleepFn | None = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._sleep = sleep or asyncio.sleep

    def delay_for(self, retry_number: int) -> float:
        """Seconds to wait before the given (1-based) retry."""
        return self.backoff_base**retry_number

    async def run(
        self,
        attempt_fn: Callable[[], Awaitable[CallOutcome]],
        label: str = "downstream",
    ) -> CallOutcome:
        retry_number = 0
        while True:
            outcome = await attempt_fn()

            if not isinstance(outcome, Failure) or not outcome.is_transient:
                return outcome

            if retry_number >= self.max_retries:
                if self.max_retries:
                    logger.error(
                        f"Giving up on {label} after {retry_number + 1} attempts: "
                        f"{outcome.reason}"
                    )
                return outcome

            retry_number += 1
            delay = self.delay_for(retry_number)
            logger.warning(
                f"Retry {retry_number}/{self.max_retries} for {label} "
                f"after {delay:g}s due to {outcome.reason}"
            )
            await self._sleep(delay)
