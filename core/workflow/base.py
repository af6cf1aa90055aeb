"""Queue names, retry policies and workflow type names."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, ApplicationError


# =============================================================================
# Queues
# =============================================================================

IMPORT_QUEUE = "afd-import"
NOTIFICATION_QUEUE = "afd-notification"

ALL_QUEUES = [IMPORT_QUEUE, NOTIFICATION_QUEUE]

# Workflow type consumed on each queue (the workflow id is the job key)
WORKFLOW_TYPES: Dict[str, str] = {
    IMPORT_QUEUE: "AfdImportWorkflow",
    NOTIFICATION_QUEUE: "NotificationWorkflow",
}


@dataclass(frozen=True)
class QueuePolicy:
    """Per-queue retry policy.

    Attributes:
        max_attempts: Total executions allowed, first one included
        initial_interval: Wait before the second attempt
        backoff_coefficient: Multiplier applied to the wait on every retry
        non_retryable_error_types: Error type names that fail the job at once
    """
    max_attempts: int
    initial_interval: timedelta
    backoff_coefficient: float = 2.0
    non_retryable_error_types: tuple = ()

    def backoff(self, failed_attempts: int) -> timedelta:
        """Delay before the next attempt after `failed_attempts` failures."""
        exponent = max(failed_attempts - 1, 0)
        return self.initial_interval * (self.backoff_coefficient ** exponent)

    def is_exhausted(self, failed_attempts: int) -> bool:
        return failed_attempts >= self.max_attempts

    def to_retry_policy(self) -> RetryPolicy:
        """Express the policy as a Temporal workflow RetryPolicy."""
        non_retryable: Optional[List[str]] = list(self.non_retryable_error_types) or None
        return RetryPolicy(
            initial_interval=self.initial_interval,
            backoff_coefficient=self.backoff_coefficient,
            maximum_attempts=self.max_attempts,
            non_retryable_error_types=non_retryable,
        )


IMPORT_QUEUE_POLICY = QueuePolicy(
    max_attempts=3,
    initial_interval=timedelta(seconds=60),
    non_retryable_error_types=("ImportRejectedError",),
)

NOTIFICATION_QUEUE_POLICY = QueuePolicy(
    max_attempts=3,
    initial_interval=timedelta(seconds=10),
)

QUEUE_POLICIES: Dict[str, QueuePolicy] = {
    IMPORT_QUEUE: IMPORT_QUEUE_POLICY,
    NOTIFICATION_QUEUE: NOTIFICATION_QUEUE_POLICY,
}

# Activities never retry on their own; the job-level policy above does.
SINGLE_ATTEMPT = RetryPolicy(maximum_attempts=1)


def as_workflow_failure(error: ActivityError, *extra_details: Any) -> BaseException:
    """Re-raise an activity's typed failure as the workflow's own failure.

    Keeps the error type and the non-retryable flag visible to the
    workflow RetryPolicy. `extra_details` are appended after the activity's
    own details.
    """
    cause = error.cause
    if isinstance(cause, ApplicationError):
        return ApplicationError(
            cause.message,
            *cause.details,
            *extra_details,
            type=cause.type,
            non_retryable=cause.non_retryable,
        )
    if extra_details:
        return ApplicationError(str(cause or error), *extra_details, type=type(cause or error).__name__)
    return error
