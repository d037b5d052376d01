"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from leasequeue.constants import (
    METRIC_LEASE_EXTENDED,
    METRIC_LEASE_LOST,
    METRIC_MESSAGES_ACKED,
    METRIC_MESSAGES_ADDED,
    METRIC_MESSAGES_CLAIMED,
    METRIC_MESSAGES_DEAD_LETTERED,
    METRIC_QUEUE_DEPTH,
)
from leasequeue.types.message import QueueStats

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queues.

    Collects metrics for:
    - Queue depth by state
    - Messages added, claimed, acknowledged and dead-lettered
    - Lease extensions and lost leases
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        # Queue depth gauge (by queue and state)
        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of messages in the queue",
            ["queue", "state"],
            registry=self._registry,
        )

        self.messages_added = Counter(
            METRIC_MESSAGES_ADDED,
            "Total number of messages added",
            ["queue"],
            registry=self._registry,
        )

        self.messages_claimed = Counter(
            METRIC_MESSAGES_CLAIMED,
            "Total number of messages claimed",
            ["queue"],
            registry=self._registry,
        )

        self.messages_acked = Counter(
            METRIC_MESSAGES_ACKED,
            "Total number of messages acknowledged",
            ["queue"],
            registry=self._registry,
        )

        self.messages_dead_lettered = Counter(
            METRIC_MESSAGES_DEAD_LETTERED,
            "Total number of messages moved to a dead-letter queue",
            ["queue"],
            registry=self._registry,
        )

        self.lease_extended = Counter(
            METRIC_LEASE_EXTENDED,
            "Total number of lease extensions",
            ["queue"],
            registry=self._registry,
        )

        # Lost leases: extend or finalize presented a dead token
        self.lease_lost = Counter(
            METRIC_LEASE_LOST,
            "Total number of operations on unknown or expired leases",
            ["queue", "operation"],
            registry=self._registry,
        )

    def record_added(self, queue: str, count: int = 1) -> None:
        self.messages_added.labels(queue=queue).inc(count)

    def record_claimed(self, queue: str) -> None:
        self.messages_claimed.labels(queue=queue).inc()

    def record_acked(self, queue: str) -> None:
        self.messages_acked.labels(queue=queue).inc()

    def record_dead_lettered(self, queue: str) -> None:
        self.messages_dead_lettered.labels(queue=queue).inc()

    def record_lease_extended(self, queue: str) -> None:
        self.lease_extended.labels(queue=queue).inc()

    def record_lease_lost(self, queue: str, operation: str) -> None:
        self.lease_lost.labels(queue=queue, operation=operation).inc()

    def update_queue_depth(self, queue: str, stats: QueueStats) -> None:
        """Update depth gauges for a queue from a stats snapshot."""
        self.queue_depth.labels(queue=queue, state="pending").set(stats.size)
        self.queue_depth.labels(queue=queue, state="in_flight").set(stats.in_flight)
        self.queue_depth.labels(queue=queue, state="done").set(stats.done)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
