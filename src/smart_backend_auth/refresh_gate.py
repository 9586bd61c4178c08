"""Rate limiting for forced key-set refresh operations.

This module implements RefreshGate, a thread-safe rate limiter that prevents
excessive key-set refreshes. This protects against:

1. Accidental DoS from legitimate traffic spikes
2. Malicious DoS attempts using invalid kid values
3. Cascading failures from overzealous retry logic

The gate allows at most one refresh per configured interval, rejecting additional
attempts and tracking denial counts for alerting.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Final

logger = logging.getLogger(__name__)

_DEFAULT_INTERVAL: Final[float] = 60.0
"""Default minimum interval between refreshes in seconds."""

_DEFAULT_ALERT_THRESHOLD: Final[int] = 40
"""Default number of denials before alerting (per interval)."""


class RefreshGate:
    """Thread-safe rate limiter for key-set refresh operations.

    This gate ensures that forced refreshes cannot occur more frequently
    than a configured minimum interval. Additional refresh attempts within the
    interval are denied and counted for monitoring.

    Thread Safety:
        All operations are protected by an internal lock.

    Attributes:
        _min_interval: Minimum seconds between allowed refreshes.
        _alert_threshold: Number of denials before alerting.
        _lock: Thread synchronization lock.
        _next_allowed_at: Unix timestamp when next refresh is allowed.
        _retry_attempts: Count of denied attempts since last allow.
    """

    def __init__(
        self,
        min_interval: float = _DEFAULT_INTERVAL,
        alert_threshold: int = _DEFAULT_ALERT_THRESHOLD,
    ) -> None:
        """Initialize the refresh gate.

        Args:
            min_interval: Minimum seconds between allowed refreshes.
            alert_threshold: Number of denied attempts before a warning is logged.

        Raises:
            ValueError: If min_interval or alert_threshold are invalid.
        """
        if min_interval <= 0:
            raise ValueError(f"min_interval must be positive, got {min_interval}")
        if alert_threshold < 1:
            raise ValueError(f"alert_threshold must be at least 1, got {alert_threshold}")

        self._min_interval = min_interval
        self._alert_threshold = alert_threshold

        self._lock = threading.Lock()
        self._next_allowed_at: float = 0.0
        self._retry_attempts: int = 0

    @property
    def denied_attempts(self) -> int:
        """Number of refreshes denied since the last allowed one."""
        with self._lock:
            return self._retry_attempts

    def allow(self) -> bool:
        """Check if a refresh operation is allowed now.

        Returns:
            True if refresh is allowed (and interval is reset).
            False if refresh is denied (too soon since last refresh).
        """
        now = time.time()

        with self._lock:
            if now < self._next_allowed_at:
                self._retry_attempts += 1

                if self._retry_attempts == self._alert_threshold:
                    logger.warning(
                        "Key-set refresh throttled %d times within %.0fs",
                        self._retry_attempts,
                        self._min_interval,
                    )

                return False

            self._next_allowed_at = now + self._min_interval
            self._retry_attempts = 0
            return True
