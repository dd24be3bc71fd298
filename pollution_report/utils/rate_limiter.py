"""Rate limiting utilities."""

import time
from typing import Any, Callable, List, Optional

from pollution_report.utils.cache import BaseCache
from pollution_report.utils.logger import setup_logger

logger = setup_logger(__name__)

RATE_KEY = "pollu_api:rate_window"


class RateLimiter:
    """Sliding-window rate limiter whose window lives in a shared cache.

    Every process pointing at the same store cooperates on one budget. The
    read-modify-write on the window is not atomic, so concurrent callers get
    a soft cap, not mutual exclusion.
    """

    def __init__(
        self,
        cache: BaseCache,
        max_requests: int = 5,
        time_window: int = 60,
        key: str = RATE_KEY,
        window_ttl: int = 120,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize rate limiter.

        Args:
            cache: Shared store holding the request timestamps
            max_requests: Maximum number of requests allowed in the window
            time_window: Time window in seconds (default: 60 for per-minute)
            key: Cache key of the timestamp window
            window_ttl: TTL of the stored window
            clock: Source of epoch seconds
            sleep: Blocking wait used when the window is full
        """
        self.cache = cache
        self.max_requests = max_requests
        self.time_window = time_window
        self.key = key
        self.window_ttl = window_ttl
        self.clock = clock
        self.sleep = sleep

    def _current_window(self) -> List[float]:
        cutoff = self.clock() - self.time_window
        return [t for t in (self.cache.get(self.key) or []) if t > cutoff]

    def acquire_slot(self) -> None:
        """Block until a request may be sent, then record it."""
        try:
            window = self._current_window()

            if len(window) >= self.max_requests:
                wait_time = (window[0] + self.time_window) - self.clock()
                if wait_time > 0:
                    logger.info(f"Rate limit reached, waiting {wait_time:.2f} seconds")
                    self.sleep(wait_time)
                window = window[1:]

            window.append(self.clock())
            self.cache.set(self.key, window, ttl=self.window_ttl)
        except Exception as e:
            logger.warning(f"Rate limiter store unavailable, proceeding without limit: {e}")


class RetryHandler:
    """Re-issue a call while its result matches a retry predicate."""

    def __init__(
        self,
        max_retries: int = 1,
        retry_if: Optional[Callable[[Any], bool]] = None,
        before_retry: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Maximum number of extra attempts
            retry_if: Predicate on a result that asks for another attempt
            before_retry: Hook run between attempts (e.g. refresh credentials)
        """
        self.max_retries = max_retries
        self.retry_if = retry_if or (lambda result: False)
        self.before_retry = before_retry

    def execute(self, func, *args, **kwargs):
        """
        Execute function, retrying while retry_if accepts its result.

        Exceptions raised by func or before_retry propagate unchanged.

        Returns:
            Result of the last attempt
        """
        result = func(*args, **kwargs)

        for attempt in range(self.max_retries):
            if not self.retry_if(result):
                break

            logger.warning(
                f"Attempt {attempt + 1}/{self.max_retries + 1} rejected ({_describe(result)}). Retrying"
            )
            if self.before_retry is not None:
                self.before_retry()
            result = func(*args, **kwargs)

        return result


def _describe(result: Any) -> str:
    status = getattr(result, "status_code", None)
    return f"status={status}" if status is not None else type(result).__name__
