"""Abstract ERP Import Connector Interface.

The import pipeline needs two things from the payroll ERP: start the
attendance-punch import process for a file it can read, and read back the
jobs that process created. This module defines both contracts without any
TOTVS specifics; the concrete implementations live in connectors/totvs/.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from core.models.attendance import EquipmentMapping
from core.models.records import ErpJob, ErpJobLog


# Success sentinel returned by the ERP process endpoint
ERP_SUCCESS_SENTINEL = "1"


def is_success_sentinel(response_body) -> bool:
    """True for the sentinel as a string or a number (`"1"`, `1`, `'"1"'`)."""
    if isinstance(response_body, bool):
        return False
    if isinstance(response_body, (int, float)):
        return response_body == 1
    if isinstance(response_body, str):
        text = response_body.strip()
        if len(text) >= 2 and text[0] == text[-1] == '"':
            text = text[1:-1]
        return text == ERP_SUCCESS_SENTINEL
    return False


class ErpImportConnector(ABC):
    """Triggers the ERP batch import of an AFD file."""

    @abstractmethod
    async def trigger_import(
        self,
        equipment: EquipmentMapping,
        file_name: str,
        reference_date: date,
    ) -> str:
        """Ask the ERP to import `file_name` for `equipment` and `reference_date`.

        Returns:
            The raw ERP response body

        Raises:
            ImportRejectedError: The ERP answered with anything but the sentinel
            ErpTransportError: The ERP could not be reached
        """

    async def close(self):
        """Release any open connections."""


class ErpJobReader(ABC):
    """Read model of the ERP job tables.

    Used to correlate an import with the job the ERP created for it, and by
    the notification worker to follow that job's execution.
    """

    @abstractmethod
    def find_latest_job(self, created_by: str, process_class: str) -> Optional[ErpJob]:
        """Most recent job created by `created_by` for `process_class`."""

    @abstractmethod
    def get_status(self, job_id: int) -> Optional[int]:
        """Live execution status, or None if the job has no execution yet."""

    @abstractmethod
    def list_logs(self, job_id: int) -> List[ErpJobLog]:
        """Execution logs attached to the job."""

    def close(self):
        """Release any open connections."""
