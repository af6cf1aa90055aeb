"""ERP job status reconciliation and operator notifications."""

from notifications.messages import compose_message
from notifications.processor import NotificationOutcome, NotificationProcessor
from notifications.reconciliation import ReconciliationTick, StatusReconciler

__all__ = [
    "compose_message",
    "NotificationOutcome",
    "NotificationProcessor",
    "ReconciliationTick",
    "StatusReconciler",
]
