"""Retrying execution of single GitHub API calls with rate limit backoff."""

import sys
import time
from collections.abc import Callable
from typing import Any

from .errors import NotFoundError, RateLimitedError, RetriesExhaustedError, StatusError, TransientError

DEFAULT_RETRIES = 5
SEARCH_RETRIES = 9999
BASE_DELAY = 1.0  # seconds, doubled after each counted failure

# Statuses that end the retry loop: found, empty, or definitely absent
TERMINAL_STATUSES = (200, 204, 404)
RATE_LIMIT_STATUSES = (403, 429)


def _log(msg: str):
    sys.stderr.write(f"\033[2K\r[executor] {msg}\n")
    sys.stderr.flush()


def is_rate_limited(response) -> bool:
    """Whether a response is GitHub telling us to slow down (primary or secondary limit)."""
    if response.status not in RATE_LIMIT_STATUSES:
        return False
    if response.status == 429 or response.rate.exhausted:
        return True
    message = getattr(response, "message", None) or ""
    return "rate limit" in message.lower()


class RequestExecutor:
    """Runs an operation until it reaches a terminal status or the retry budget is spent.

    An operation is a zero-argument callable performing one remote call and
    returning an object with ``status`` and ``rate`` attributes (``ApiResponse``
    or ``Page``). It may raise ``TransientError`` for transport failures or
    ``RateLimitedError`` when the quota is known to be exhausted.

    Rate-limited attempts wait until the reported reset and are not counted
    against the budget. The observer, if given, is called with every response
    an attempt produced.
    """

    def __init__(
        self,
        retries: int = DEFAULT_RETRIES,
        base_delay: float = BASE_DELAY,
        observer: Callable[[Any], None] | None = None,
    ):
        self.retries = retries
        self.base_delay = base_delay
        self.observer = observer
        self.rate_limit_hits = 0
        self.api_retries = 0  # count of transient failures that were retried

    def run(self, operation: Callable[[], Any], retries: int | None = None):
        """Execute ``operation``; return its terminal response.

        Raises NotFoundError on 404 and RetriesExhaustedError when every
        counted attempt failed.
        """
        budget = self.retries if retries is None else retries
        errors: list[Exception] = []
        delay = self.base_delay

        while len(errors) < budget:
            try:
                response = operation()
            except RateLimitedError as e:
                self._wait_for_reset(e.reset_at)
                continue
            except TransientError as e:
                errors.append(e)
            else:
                self._notify(response)
                if is_rate_limited(response):
                    self._wait_for_reset(response.rate.reset_at)
                    continue
                if response.status in TERMINAL_STATUSES:
                    if response.status == 404:
                        raise NotFoundError("not found")
                    return response
                errors.append(StatusError(response.status, getattr(response, "message", None)))

            if len(errors) < budget:
                self.api_retries += 1
                _log(f"{errors[-1]}, retrying ({len(errors)}/{budget}) in {delay:g}s")
                time.sleep(delay)
                delay *= 2

        raise RetriesExhaustedError(errors)

    def _notify(self, response):
        if self.observer is not None and response is not None:
            self.observer(response)

    def _wait_for_reset(self, reset_at: float | None):
        """Block until the rate limit resets, then return so the call is retried."""
        self.rate_limit_hits += 1
        if reset_at is None:
            _log(f"Rate limited without reset time, waiting {self.base_delay:g}s")
            time.sleep(self.base_delay)
            return
        # A reset already in the past (stale header, clock skew) still waits base_delay
        wait = max(self.base_delay, reset_at - time.time())
        _log(f"Rate limited, waiting {wait:.0f}s for reset")
        time.sleep(wait)
