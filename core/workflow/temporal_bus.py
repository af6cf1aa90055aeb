"""
Temporal-backed message bus

Each job is a workflow execution whose id is the job key. Starting a
workflow whose id is still running raises WorkflowAlreadyStartedError, which
is the coalescing case. Closed workflows may be started again with the same
id (ALLOW_DUPLICATE reuse policy).
"""

import uuid
from typing import Any, AsyncIterator, Dict

from temporalio.client import Client
from temporalio.common import WorkflowIDReusePolicy
from temporalio.exceptions import WorkflowAlreadyStartedError

from core.observability.logging import get_logger
from core.observability.metrics import record_job_enqueued
from core.workflow.base import QUEUE_POLICIES, WORKFLOW_TYPES
from core.workflow.bus import Delivery, MessageBus

logger = get_logger(__name__)


class TemporalMessageBus(MessageBus):
    """Enqueue jobs by starting workflows on the queue's task queue."""

    def __init__(self, client: Client):
        self.client = client

    async def enqueue(
        self,
        queue_name: str,
        key: str,
        payload: Dict[str, Any],
        idempotent: bool = True,
    ) -> bool:
        if queue_name not in WORKFLOW_TYPES:
            raise KeyError(f"Unknown queue {queue_name!r}")

        workflow_id = key if idempotent else f"{key}-{uuid.uuid4().hex[:8]}"
        policy = QUEUE_POLICIES[queue_name]

        try:
            await self.client.start_workflow(
                WORKFLOW_TYPES[queue_name],
                payload,
                id=workflow_id,
                task_queue=queue_name,
                retry_policy=policy.to_retry_policy(),
                id_reuse_policy=WorkflowIDReusePolicy.ALLOW_DUPLICATE,
            )
        except WorkflowAlreadyStartedError:
            logger.debug(f"Workflow {workflow_id} already running on {queue_name}, coalescing")
            record_job_enqueued(queue_name, coalesced=True)
            return False

        logger.info(f"Started workflow {workflow_id} on {queue_name}")
        record_job_enqueued(queue_name, coalesced=False)
        return True

    def consume(self, queue_name: str) -> AsyncIterator[Delivery]:
        raise NotImplementedError(
            "Temporal queues are consumed by workers (see workers/worker.py)"
        )
