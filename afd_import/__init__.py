"""AFD attendance-punch import: per-device pipeline, batch runs and scheduling."""

from afd_import.batch import BatchOrchestrator
from afd_import.pipeline import AfdImportPipeline
from afd_import.scheduler import RoutineScheduler, RoutineTick

__all__ = [
    "AfdImportPipeline",
    "BatchOrchestrator",
    "RoutineScheduler",
    "RoutineTick",
]
