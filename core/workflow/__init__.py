"""Core workflow module - queues, retry policies and the message bus.

Temporal workflows themselves are defined in the top-level workflows/ folder.
"""

from core.workflow.base import (
    IMPORT_QUEUE,
    NOTIFICATION_QUEUE,
    ALL_QUEUES,
    QueuePolicy,
    IMPORT_QUEUE_POLICY,
    NOTIFICATION_QUEUE_POLICY,
    QUEUE_POLICIES,
)
from core.workflow.bus import MessageBus, InMemoryMessageBus, Delivery, MessageState

__all__ = [
    "IMPORT_QUEUE",
    "NOTIFICATION_QUEUE",
    "ALL_QUEUES",
    "QueuePolicy",
    "IMPORT_QUEUE_POLICY",
    "NOTIFICATION_QUEUE_POLICY",
    "QUEUE_POLICIES",
    "MessageBus",
    "InMemoryMessageBus",
    "Delivery",
    "MessageState",
]
