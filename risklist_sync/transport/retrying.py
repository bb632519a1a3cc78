"""
Retrying Transport — bounded retry with exponential backoff.

Retries rate limiting (429, honouring Retry-After), server errors (>= 500)
and network failures. Client errors other than 429 are returned immediately.
No jitter is applied.
"""

import logging
import time
from typing import Callable, Optional

import httpx

logger = logging.getLogger(__name__)


def backoff_seconds(attempt: int) -> float:
    """Exponential backoff for a 1-based attempt number."""
    return float(2 ** attempt)


def _retry_after_seconds(response: httpx.Response, attempt: int) -> float:
    header = response.headers.get("Retry-After")
    if header is None:
        return backoff_seconds(attempt)
    try:
        return max(0.0, float(header))
    except ValueError:
        # HTTP-date form is not supported; fall back to backoff
        return backoff_seconds(attempt)


class RetryingTransport:
    """Wraps an httpx.Client with the retry policy."""

    def __init__(
        self,
        client: httpx.Client,
        max_attempts: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.max_attempts = max_attempts
        self._sleep = sleep

    def request(
        self,
        method: str,
        url: str,
        max_attempts: Optional[int] = None,
        **kwargs,
    ) -> httpx.Response:
        """
        Execute a request with retries. Returns the last response received;
        re-raises the network error if every attempt failed at transport level.
        """
        attempts = max_attempts or self.max_attempts
        response: Optional[httpx.Response] = None

        for attempt in range(1, attempts + 1):
            try:
                response = self.client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt == attempts:
                    raise
                delay = backoff_seconds(attempt)
                logger.warning(
                    "Network error on %s %s, retrying in %.1fs (attempt %d/%d): %s",
                    method, url, delay, attempt, attempts, e,
                )
                self._sleep(delay)
                continue

            if response.status_code == 429:
                if attempt == attempts:
                    break
                delay = _retry_after_seconds(response, attempt)
                logger.info(
                    "Rate limited, waiting %.1fs before retry %d/%d",
                    delay, attempt, attempts,
                )
                self._sleep(delay)
                continue

            if response.status_code >= 500 and attempt < attempts:
                delay = backoff_seconds(attempt)
                logger.warning(
                    "Server error %d, retrying in %.1fs (attempt %d/%d)",
                    response.status_code, delay, attempt, attempts,
                )
                self._sleep(delay)
                continue

            return response

        logger.error("Retries exhausted for %s %s", method, url)
        return response

    def close(self) -> None:
        self.client.close()
