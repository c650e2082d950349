"""
tokenvest - Ledger Metrics

Prometheus counters and gauges for the vesting ledger:
- grants and granted amount
- claims and claimed amount
- transfer failures
- rejected calls by reason

Each VestingMetrics owns a CollectorRegistry unless one is injected, so
several ledgers (and tests) can coexist in one process.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class VestingMetrics:
    """Metric set for a single ledger instance."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.grants_total = Counter(
            "tokenvest_grants_total",
            "Number of successful grant calls",
            registry=self.registry,
        )
        self.granted_amount_total = Counter(
            "tokenvest_granted_amount_total",
            "Units granted across all accounts",
            registry=self.registry,
        )
        self.claims_total = Counter(
            "tokenvest_claims_total",
            "Number of successful release calls",
            registry=self.registry,
        )
        self.claimed_amount_total = Counter(
            "tokenvest_claimed_amount_total",
            "Units released across all accounts",
            registry=self.registry,
        )
        self.transfer_failures_total = Counter(
            "tokenvest_transfer_failures_total",
            "Asset movements rejected by the transferer",
            ["operation"],
            registry=self.registry,
        )
        self.rejections_total = Counter(
            "tokenvest_rejections_total",
            "Ledger calls rejected before any state change",
            ["reason"],
            registry=self.registry,
        )
        self.progress = Gauge(
            "tokenvest_progress",
            "Highest progress counter observed by the ledger",
            registry=self.registry,
        )

    def record_grant(self, amount: int) -> None:
        self.grants_total.inc()
        self.granted_amount_total.inc(amount)

    def record_claim(self, amount: int) -> None:
        self.claims_total.inc()
        self.claimed_amount_total.inc(amount)

    def record_transfer_failure(self, operation: str) -> None:
        self.transfer_failures_total.labels(operation=operation).inc()

    def record_rejection(self, reason: str) -> None:
        self.rejections_total.labels(reason=reason).inc()

    def observe_progress(self, value: int) -> None:
        self.progress.set(value)

    def export(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
