"""
Metrics Collection for the AFD import pipeline

Collects and exposes in-process metrics for:
- Queue traffic (jobs enqueued, duplicates coalesced)
- Import results (successes/failures by stage)
- Notifications (sent, skipped, failed)
- Processing times (average, p95)
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List, Optional, Any


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class QueueMetrics:
    """Producer-side queue metrics, keyed by queue name."""
    enqueued: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    coalesced: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class ImportMetrics:
    """Per-device import outcomes."""
    succeeded: int = 0
    failed: int = 0
    failed_by_stage: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class NotificationMetrics:
    """Notification worker outcomes."""
    sent: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000
    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: str = None) -> float:
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_job_enqueued("afd-import", coalesced=False)
        metrics.record_import_result("download", success=False)
    """

    _instance: Optional["MetricsCollector"] = None
    _instance_lock = Lock()

    def __init__(self):
        self._lock = Lock()
        self.reset()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def reset(self):
        """Drop every collected value."""
        with self._lock:
            self.queues = QueueMetrics()
            self.imports = ImportMetrics()
            self.notifications = NotificationMetrics()
            self.timings = TimingMetrics()

    # =========================================================================
    # Queue Metrics
    # =========================================================================

    def record_job_enqueued(self, queue_name: str, coalesced: bool = False):
        """Record an enqueue attempt; `coalesced` means the key already existed."""
        with self._lock:
            if coalesced:
                self.queues.coalesced[queue_name] += 1
            else:
                self.queues.enqueued[queue_name] += 1

    # =========================================================================
    # Import Metrics
    # =========================================================================

    def record_import_result(self, stage: str, success: bool, duration_ms: float = None):
        """Record the outcome of one per-device import."""
        with self._lock:
            if success:
                self.imports.succeeded += 1
            else:
                self.imports.failed += 1
                self.imports.failed_by_stage[stage] += 1
            if duration_ms:
                self.timings.add_sample(duration_ms, "import")

    # =========================================================================
    # Notification Metrics
    # =========================================================================

    def record_notification(self, outcome: str):
        """Record a notification outcome: "sent", "skipped" or "failed"."""
        with self._lock:
            if outcome == "sent":
                self.notifications.sent += 1
            elif outcome == "skipped":
                self.notifications.skipped += 1
            else:
                self.notifications.failed += 1

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "queues": {
                    "enqueued": dict(self.queues.enqueued),
                    "coalesced": dict(self.queues.coalesced),
                },
                "imports": {
                    "succeeded": self.imports.succeeded,
                    "failed": self.imports.failed,
                    "failed_by_stage": dict(self.imports.failed_by_stage),
                },
                "notifications": {
                    "sent": self.notifications.sent,
                    "skipped": self.notifications.skipped,
                    "failed": self.notifications.failed,
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_job_enqueued(queue_name: str, coalesced: bool = False):
    get_metrics().record_job_enqueued(queue_name, coalesced)


def record_import_result(stage: str, success: bool, duration_ms: float = None):
    get_metrics().record_import_result(stage, success, duration_ms)


def record_notification(outcome: str):
    get_metrics().record_notification(outcome)


def record_processing_time(stage: str, duration_ms: float):
    get_metrics().record_processing_time(stage, duration_ms)
