"""
Message bus abstraction

Producers talk to queues through `MessageBus.enqueue`; the idempotency key
coalesces duplicates while a job with the same key is still open. Once a job
is terminal (completed or permanently failed) its key may be enqueued again.

`InMemoryMessageBus` implements the full contract (restartable deliveries,
per-queue retry/backoff, permanent failure) for local runs and tests. The
production implementation lives in `core.workflow.temporal_bus`.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from core.observability.logging import get_logger
from core.observability.metrics import record_job_enqueued
from core.workflow.base import QUEUE_POLICIES, QueuePolicy

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageBus(ABC):
    """Durable job queue contract."""

    @abstractmethod
    async def enqueue(
        self,
        queue_name: str,
        key: str,
        payload: Dict[str, Any],
        idempotent: bool = True,
    ) -> bool:
        """Add a job to a queue.

        Returns:
            True if a new job was created, False if an open job with the
            same key already existed (coalesced)
        """

    @abstractmethod
    def consume(self, queue_name: str) -> AsyncIterator["Delivery"]:
        """Yield deliveries that are ready to run."""


# =============================================================================
# In-memory implementation
# =============================================================================

class MessageState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Message:
    queue_name: str
    key: str
    payload: Dict[str, Any]
    state: MessageState = MessageState.PENDING
    attempts: int = 0
    available_at: datetime = field(default_factory=_utcnow)
    last_error: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state in (MessageState.PENDING, MessageState.IN_FLIGHT)


@dataclass
class Delivery:
    """One execution attempt of a queued job."""
    bus: "InMemoryMessageBus"
    message: Message

    @property
    def key(self) -> str:
        return self.message.key

    @property
    def payload(self) -> Dict[str, Any]:
        return self.message.payload

    @property
    def attempt(self) -> int:
        return self.message.attempts

    def ack(self):
        self.bus.ack(self)

    def fail(self, error: BaseException):
        self.bus.fail(self, error)


Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


class InMemoryMessageBus(MessageBus):
    """Single-process bus with the same semantics as the durable queues.

    Args:
        policies: Retry policy per queue name
        clock: Returns the current time; tests inject a controllable clock
    """

    def __init__(
        self,
        policies: Optional[Dict[str, QueuePolicy]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.policies = dict(policies or QUEUE_POLICIES)
        self.clock = clock
        self._messages: Dict[str, List[Message]] = {}

    def _queue(self, queue_name: str) -> List[Message]:
        return self._messages.setdefault(queue_name, [])

    def _policy(self, queue_name: str) -> QueuePolicy:
        if queue_name not in self.policies:
            raise KeyError(f"No retry policy configured for queue {queue_name!r}")
        return self.policies[queue_name]

    # ---------------------------------------------------------------------
    # Producer side
    # ---------------------------------------------------------------------

    async def enqueue(
        self,
        queue_name: str,
        key: str,
        payload: Dict[str, Any],
        idempotent: bool = True,
    ) -> bool:
        self._policy(queue_name)
        queue = self._queue(queue_name)

        if idempotent:
            if any(m.key == key and m.is_open for m in queue):
                logger.debug(f"Job {key} already queued on {queue_name}, coalescing")
                record_job_enqueued(queue_name, coalesced=True)
                return False
        else:
            key = f"{key}-{uuid.uuid4().hex[:8]}"

        queue.append(Message(queue_name=queue_name, key=key, payload=dict(payload), available_at=self.clock()))
        record_job_enqueued(queue_name, coalesced=False)
        return True

    # ---------------------------------------------------------------------
    # Consumer side
    # ---------------------------------------------------------------------

    async def consume(self, queue_name: str) -> AsyncIterator[Delivery]:
        """Yield every delivery that is ready now, then stop.

        Iteration is lazy: a message is only marked in flight when it is
        yielded. Calling `consume` again restarts from the current state.
        """
        while True:
            message = self._next_ready(queue_name)
            if message is None:
                return
            message.state = MessageState.IN_FLIGHT
            message.attempts += 1
            yield Delivery(bus=self, message=message)

    def _next_ready(self, queue_name: str) -> Optional[Message]:
        now = self.clock()
        for message in self._queue(queue_name):
            if message.state == MessageState.PENDING and message.available_at <= now:
                return message
        return None

    def ack(self, delivery: Delivery):
        delivery.message.state = MessageState.COMPLETED

    def fail(self, delivery: Delivery, error: BaseException):
        message = delivery.message
        policy = self._policy(message.queue_name)
        message.last_error = str(error)

        retryable = getattr(error, "retryable", True)
        if not retryable or type(error).__name__ in policy.non_retryable_error_types:
            message.state = MessageState.FAILED
            logger.error(f"Job {message.key} failed permanently (non-retryable): {error}")
            return

        if policy.is_exhausted(message.attempts):
            message.state = MessageState.FAILED
            logger.error(f"Job {message.key} failed permanently after {message.attempts} attempts: {error}")
            return

        delay = policy.backoff(message.attempts)
        message.state = MessageState.PENDING
        message.available_at = self.clock() + delay
        logger.warning(
            f"Job {message.key} attempt {message.attempts} failed, retrying in {delay.total_seconds():.0f}s: {error}"
        )

    def requeue_in_flight(self, queue_name: str) -> int:
        """Return abandoned in-flight deliveries to the queue (worker crash)."""
        count = 0
        for message in self._queue(queue_name):
            if message.state == MessageState.IN_FLIGHT:
                message.state = MessageState.PENDING
                message.available_at = self.clock()
                count += 1
        return count

    async def drain(self, queue_name: str, handler: Handler) -> int:
        """Run `handler` for every ready delivery, acking or failing each.

        Returns:
            Number of deliveries processed
        """
        processed = 0
        async for delivery in self.consume(queue_name):
            processed += 1
            try:
                await handler(delivery.payload)
            except Exception as e:
                delivery.fail(e)
            else:
                delivery.ack()
        return processed

    # ---------------------------------------------------------------------
    # Inspection
    # ---------------------------------------------------------------------

    def messages(self, queue_name: str, state: Optional[MessageState] = None) -> List[Message]:
        return [m for m in self._queue(queue_name) if state is None or m.state == state]

    def next_available_at(self, queue_name: str) -> Optional[datetime]:
        pending = [m.available_at for m in self._queue(queue_name) if m.state == MessageState.PENDING]
        return min(pending) if pending else None
