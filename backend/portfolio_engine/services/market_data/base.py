# backend/portfolio_engine/services/market_data/base.py
"""
Shared base for the upstream fetch collaborators.

Both the benchmark and the exchange rate collaborators talk to flaky free
APIs. This base class gives them one retry policy:

- exponential backoff (tenacity) for transient failures only
- transient failures are the types listed in RETRYABLE_EXCEPTIONS
- everything else (unknown ticker, malformed payload) fails immediately

Subclasses tune retries through class attributes:
    - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
    - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
    - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
    - RETRY_MULTIPLIER: Exponential multiplier (default: 1)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from portfolio_engine.services.exceptions import ProviderUnavailableError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpstreamProvider(ABC):
    """Base class for collaborators that fetch from an external API."""

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1

    RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
        ProviderUnavailableError,
        RateLimitError,
    )

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used in logs and errors ("yahoo", "frankfurter")."""

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function, retrying transient failures with exponential backoff.

        Raises:
            The last exception if all retries fail, or the first
            non-retryable one
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type(self.RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()
