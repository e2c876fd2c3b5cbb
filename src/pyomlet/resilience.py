"""Circuit breaker guarding the vendor login endpoint."""

from __future__ import annotations

import logging
from datetime import UTC, datetime


_LOGGER = logging.getLogger(__name__)


class CircuitBreaker:
    """Bounded-attempt guard for operations that must not be retried forever.

    Consecutive failures are counted and any success resets the count. Once
    ``failure_threshold`` failures are recorded the circuit opens and stays
    open for the life of the breaker: repeated bad logins must not hammer the
    vendor endpoint, and only a process restart (after the credentials are
    fixed) starts a fresh breaker.

    Example:
        breaker = CircuitBreaker(failure_threshold=3)

        async def login():
            if breaker.is_latched:
                raise AuthPermanentlyFailedError("Too many failed logins")

            try:
                token = await auth.login(credentials)
            except OmletError as exc:
                breaker.record_failure(exc)
                raise
            breaker.record_success()
            return token
    """

    def __init__(self, failure_threshold: int = 3) -> None:
        """Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures before the circuit latches open.
        """
        self.failure_threshold = failure_threshold
        self._failure_count = 0
        self._opened_at: datetime | None = None
        self._last_failure: Exception | None = None

    @property
    def failure_count(self) -> int:
        """Get current consecutive failure count."""
        return self._failure_count

    @property
    def last_failure(self) -> Exception | None:
        """Get the most recently recorded failure."""
        return self._last_failure

    @property
    def is_latched(self) -> bool:
        """Check if the circuit is open."""
        return self._opened_at is not None

    def record_success(self) -> None:
        """Record a successful operation, resetting the failure count."""
        if self.is_latched:
            # An open circuit admits no calls, so a success here is stale
            return

        if self._failure_count > 0:
            _LOGGER.debug("Circuit breaker resetting failure count after success")
        self._failure_count = 0

    def record_failure(self, exception: Exception) -> None:
        """Record a failed operation.

        Args:
            exception: The exception that occurred.
        """
        if self.is_latched:
            return

        self._last_failure = exception
        self._failure_count += 1

        _LOGGER.debug("Circuit breaker failure count: %d/%d", self._failure_count, self.failure_threshold)
        if self._failure_count >= self.failure_threshold:
            _LOGGER.warning("Circuit breaker opening after %d consecutive failures", self._failure_count)
            self._opened_at = datetime.now(UTC)

    def trip(self, reason: str = "") -> None:
        """Open the circuit immediately, regardless of the failure count.

        Args:
            reason: Why the circuit was opened, for logging.
        """
        if not self.is_latched:
            _LOGGER.warning("Circuit breaker tripped: %s", reason or "no reason given")
            self._opened_at = datetime.now(UTC)
