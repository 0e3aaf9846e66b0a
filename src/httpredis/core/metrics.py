"""Simple in-memory probe counters: outcomes per label and average latency."""

import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ProbeMetrics:
    """Thread-safe counters; logged as one line on demand (shutdown)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._outcomes: Dict[str, int] = {}
        self._latency_sum_ms = 0.0
        self._latency_n = 0
        self._last_outcome: Optional[str] = None

    def record(self, outcome: str, latency_ms: Optional[float] = None) -> int:
        """Count one probe; returns the new count for that outcome."""
        with self._lock:
            count = self._outcomes.get(outcome, 0) + 1
            self._outcomes[outcome] = count
            self._last_outcome = outcome
            if latency_ms is not None:
                self._latency_sum_ms += latency_ms
                self._latency_n += 1
            return count

    @property
    def total(self) -> int:
        with self._lock:
            return sum(self._outcomes.values())

    def count(self, outcome: str) -> int:
        with self._lock:
            return self._outcomes.get(outcome, 0)

    @property
    def avg_latency_ms(self) -> Optional[float]:
        with self._lock:
            if self._latency_n == 0:
                return None
            return self._latency_sum_ms / self._latency_n

    @property
    def last_outcome(self) -> Optional[str]:
        with self._lock:
            return self._last_outcome

    def log_snapshot(self) -> None:
        """Log current counters."""
        with self._lock:
            parts = [f"probes={sum(self._outcomes.values())}"]
            parts.extend(f"{k}={v}" for k, v in sorted(self._outcomes.items()))
            if self._latency_n:
                parts.append(f"avg_latency_ms={self._latency_sum_ms / self._latency_n:.1f}")
        logger.info("metrics " + " ".join(parts))
