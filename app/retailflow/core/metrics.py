from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.retailflow.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self, enabled: bool | None = None) -> None:
        self.enabled = settings.METRICS_ENABLED if enabled is None else enabled
        self._registry: CollectorRegistry | None = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._idempotency_replay_total = Counter(
            "idempotency_replay_total",
            "Idempotent replay responses.",
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )
        self._rbac_denied_total = Counter(
            "rbac_denied_total",
            "Permission denied decisions.",
            ["permission"],
            registry=self._registry,
        )
        self._pos_checkout_total = Counter(
            "pos_checkout_total",
            "POS checkout attempts by outcome.",
            ["result"],
            registry=self._registry,
        )
        self._pos_items_sold_total = Counter(
            "pos_items_sold_total",
            "Units sold through committed POS checkouts.",
            registry=self._registry,
        )
        self._inventory_clamped_total = Counter(
            "inventory_clamped_total",
            "Inventory decrements clamped at zero because the sale exceeded stock on hand.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def increment_idempotency_replay(self) -> None:
        if not self.enabled:
            return
        self._idempotency_replay_total.inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def increment_rbac_denied(self, permission: str) -> None:
        if not self.enabled:
            return
        self._rbac_denied_total.labels(permission=permission).inc()

    def record_checkout(self, result: str, *, units: int = 0) -> None:
        if not self.enabled:
            return
        self._pos_checkout_total.labels(result=result).inc()
        if units:
            self._pos_items_sold_total.inc(units)

    def increment_inventory_clamped(self, count: int = 1) -> None:
        if not self.enabled:
            return
        self._inventory_clamped_total.inc(count)

    def render(self) -> MetricsSnapshot:
        if not self.enabled or self._registry is None:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
