"""
tokenvest - Vesting Ledger Metrics

Prometheus counters and gauges for ledger activity. Each ledger gets its own
CollectorRegistry unless one is supplied, so several ledgers can live in one
process without metric name collisions.
"""

from __future__ import annotations

import threading
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class VestingMetrics:
    """
    Centralized metrics collector for a vesting ledger.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, enabled: bool = True):
        """
        Args:
            registry: Custom Prometheus registry (optional)
            enabled: Record observations; disabled metrics are no-ops
        """
        self.registry = registry or CollectorRegistry()
        self.enabled = enabled
        self._lock = threading.Lock()

        self.schedules_created = Counter(
            "tokenvest_schedules_created_total",
            "Total number of vesting schedules created",
            ["mode"],
            registry=self.registry,
        )

        self.tokens_locked = Counter(
            "tokenvest_tokens_locked_total",
            "Total units moved into custody by schedule creation",
            registry=self.registry,
        )

        self.tokens_claimed = Counter(
            "tokenvest_tokens_claimed_total",
            "Total units released to beneficiaries",
            registry=self.registry,
        )

        self.claims = Counter(
            "tokenvest_claims_total",
            "Total number of successful claims",
            registry=self.registry,
        )

        self.failures = Counter(
            "tokenvest_operation_failures_total",
            "Failed ledger operations by operation and error type",
            ["operation", "error"],
            registry=self.registry,
        )

        self.active_schedules = Gauge(
            "tokenvest_active_schedules",
            "Schedules with unclaimed allocation",
            registry=self.registry,
        )

    def record_created(self, amount: int, mode: str = "single") -> None:
        if not self.enabled:
            return
        with self._lock:
            self.schedules_created.labels(mode=mode).inc()
            self.tokens_locked.inc(amount)
            self.active_schedules.inc()

    def record_claim(self, amount: int, completed: bool) -> None:
        if not self.enabled:
            return
        with self._lock:
            self.claims.inc()
            self.tokens_claimed.inc(amount)
            if completed:
                self.active_schedules.dec()

    def record_failure(self, operation: str, exc: BaseException) -> None:
        if not self.enabled:
            return
        self.failures.labels(operation=operation, error=type(exc).__name__).inc()

    def get_sample(self, name: str, labels: Optional[dict] = None) -> Optional[float]:
        return self.registry.get_sample_value(name, labels or {})

    def export(self) -> bytes:
        """Render all metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
