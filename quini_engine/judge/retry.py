"""Generic retry policy with exponential backoff for external calls."""

import time
from collections.abc import Callable
from typing import TypeVar

import groq
from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.errors import JudgeServiceError

T = TypeVar("T")

RETRYABLE_STATUS = {408, 429}


def is_retryable(error: Exception) -> bool:
    """Timeouts, dropped connections, throttling and server errors are worth
    another attempt; anything else (bad request, auth, malformed reply) is not."""
    if isinstance(error, JudgeServiceError):
        return error.retryable
    if isinstance(error, groq.APIConnectionError):
        return True
    if isinstance(error, groq.APIStatusError):
        status = error.status_code
        return status in RETRYABLE_STATUS or status >= 500
    return False


class RetryPolicy:
    def __init__(
        self,
        max_attempts: int | None = None,
        initial_delay: float | None = None,
        max_delay: float | None = None,
        factor: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max_attempts or settings.JUDGE_MAX_RETRIES
        self.initial_delay = (
            settings.JUDGE_RETRY_INITIAL_DELAY if initial_delay is None else initial_delay
        )
        self.max_delay = settings.JUDGE_RETRY_MAX_DELAY if max_delay is None else max_delay
        self.factor = factor
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (1-based)."""
        return min(self.initial_delay * self.factor ** (attempt - 1), self.max_delay)

    def call(self, func: Callable[[], T], label: str = "call") -> T:
        attempt = 1
        while True:
            try:
                return func()
            except Exception as e:
                if not is_retryable(e) or attempt >= self.max_attempts:
                    logger.error("[retry] {} failed after {} attempt(s): {}", label, attempt, e)
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "[retry] {} attempt {}/{} failed ({}); retrying in {:.1f}s",
                    label, attempt, self.max_attempts, e, delay,
                )
                self._sleep(delay)
                attempt += 1
