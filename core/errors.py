"""Error taxonomy for the AFD import pipeline.

Every pipeline failure carries the stage it happened in so that callers can
build a ProcessingResult without inspecting the exception type.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    stage: str = "lookup"
    retryable: bool = True

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ConfigurationError(Exception):
    """A required setting is missing or invalid."""
    pass


# =============================================================================
# Import stages
# =============================================================================

class AuthenticationError(PipelineError):
    """Session acquisition against the terminal API failed."""
    stage = "lookup"


class DeviceDiscoveryError(PipelineError):
    """The terminal catalog could not be read."""
    stage = "lookup"


class DeviceNotFoundError(PipelineError):
    """The device is not mapped or was not returned by the terminal API."""
    stage = "lookup"


class UnhealthyDeviceError(PipelineError):
    """The device exists but its status is not OK."""
    stage = "lookup"


class DownloadError(PipelineError):
    """The AFD feed could not be downloaded."""
    stage = "download"


class ArchiveError(PipelineError):
    """The AFD feed could not be written to the archive."""
    stage = "save"


class ErpTransportError(PipelineError):
    """The ERP process endpoint could not be reached."""
    stage = "import"


class ImportRejectedError(PipelineError):
    """The ERP answered with something other than the success sentinel.

    Not retryable: the ERP may already have created a job for the request.
    """
    stage = "import"
    retryable = False

    def __init__(self, message: str, response_body: str = ""):
        super().__init__(message)
        self.response_body = response_body


# =============================================================================
# Best-effort steps (logged, never propagated)
# =============================================================================

class CorrelationLookupError(PipelineError):
    """The ERP job created by an import could not be correlated."""
    stage = "import"


class LogHarvestError(PipelineError):
    """ERP execution logs could not be archived."""
    stage = "notification"


# =============================================================================
# Notification
# =============================================================================

class NotificationDeliveryError(PipelineError):
    """The chat webhook did not acknowledge the message."""
    stage = "notification"

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class ImportRecordNotFoundError(PipelineError):
    """The local import record for an ERP job is missing."""
    stage = "notification"
