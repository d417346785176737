"""
Observability metrics for the search service.

Tracks:
- Latency percentiles (p50, p95, p99)
- Facet cache hit rates
- Request counts per operation
- Error rates
"""

from typing import Dict, Optional
from collections import defaultdict, deque
from datetime import datetime
import statistics


class MetricsCollector:
    """
    In-memory metrics collector.

    Keeps a sliding window of latency samples per operation.
    """

    def __init__(self, window_size: int = 1000):
        """
        Args:
            window_size: Number of recent samples to keep for percentiles
        """
        self.window_size = window_size

        self.latencies: Dict[str, deque] = defaultdict(lambda: deque(maxlen=window_size))

        self.cache_hits = 0
        self.cache_misses = 0

        self.request_counts: Dict[str, int] = defaultdict(int)
        self.error_counts: Dict[str, int] = defaultdict(int)

        self.start_time = datetime.utcnow()
        self.last_reset = datetime.utcnow()

    def record_latency(self, operation: str, latency_ms: float):
        """Record a latency sample for an operation."""
        self.latencies[operation].append(latency_ms)
        self.request_counts[operation] += 1

    def record_cache_hit(self):
        self.cache_hits += 1

    def record_cache_miss(self):
        self.cache_misses += 1

    def record_error(self, operation: str):
        self.error_counts[operation] += 1

    def get_percentile(self, operation: str, percentile: float) -> Optional[float]:
        """
        Get a latency percentile for an operation.

        Returns:
            Latency in ms, or None if fewer than 10 samples exist
        """
        if operation not in self.latencies or len(self.latencies[operation]) == 0:
            return None

        values = sorted(self.latencies[operation])
        if len(values) < 10:
            return None

        index = int(len(values) * (percentile / 100.0))
        index = min(index, len(values) - 1)
        return values[index]

    def get_cache_hit_rate(self) -> float:
        """Get the cache hit rate as a percentage."""
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return (self.cache_hits / total) * 100.0

    def get_error_rate(self, operation: str) -> float:
        """Get the error rate for an operation as a percentage."""
        total_requests = self.request_counts[operation]
        if total_requests == 0:
            return 0.0
        return (self.error_counts[operation] / total_requests) * 100.0

    def get_summary(self) -> Dict:
        """Summary of all metrics, keyed by operation."""
        uptime_seconds = (datetime.utcnow() - self.start_time).total_seconds()

        summary = {
            "uptime_seconds": uptime_seconds,
            "cache": {
                "hit_rate_pct": round(self.get_cache_hit_rate(), 2),
                "total_hits": self.cache_hits,
                "total_misses": self.cache_misses
            },
            "operations": {}
        }

        for operation in self.request_counts.keys():
            operation_metrics = {
                "total_requests": self.request_counts[operation],
                "total_errors": self.error_counts[operation],
                "error_rate_pct": round(self.get_error_rate(operation), 2),
            }

            for pct in (50, 95, 99):
                value = self.get_percentile(operation, pct)
                if value is not None:
                    operation_metrics[f"latency_p{pct}_ms"] = round(value, 2)

            if len(self.latencies[operation]) > 0:
                operation_metrics["latency_avg_ms"] = round(
                    statistics.mean(self.latencies[operation]), 2
                )

            summary["operations"][operation] = operation_metrics

        return summary

    def reset(self):
        """Reset all metrics (useful for testing)."""
        self.latencies.clear()
        self.cache_hits = 0
        self.cache_misses = 0
        self.request_counts.clear()
        self.error_counts.clear()
        self.last_reset = datetime.utcnow()


# Global metrics collector instance
metrics_collector = MetricsCollector()


def record_request_metrics(operation: str, latency_ms: float, is_error: bool = False):
    """
    Record latency and error state for one operation call.

    Args:
        operation: Operation name (e.g. "search", "get_search_history")
        latency_ms: Total latency in milliseconds
        is_error: Whether the call failed
    """
    metrics_collector.record_latency(operation, latency_ms)
    if is_error:
        metrics_collector.record_error(operation)
