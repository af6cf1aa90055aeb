"""
Observability Module for the AFD import pipeline

Provides:
- Structured logging with correlation IDs
- Metrics collection (queues, imports, notifications, processing times)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_job_enqueued,
    record_import_result,
    record_notification,
    record_processing_time,
)

from core.observability.logging import (
    configure_logging,
    get_logger,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_job_enqueued",
    "record_import_result",
    "record_notification",
    "record_processing_time",
    # Logging
    "configure_logging",
    "get_logger",
    "CorrelationContext",
    "with_correlation",
]
