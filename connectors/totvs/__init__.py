"""TOTVS RM process API connector."""

from connectors.totvs.descriptor import PROCESS_SERVER_NAME, build_import_descriptor
from connectors.totvs.job_reader import TotvsJobReader
from connectors.totvs.process_client import TotvsProcessClient

__all__ = [
    "PROCESS_SERVER_NAME",
    "build_import_descriptor",
    "TotvsJobReader",
    "TotvsProcessClient",
]
