"""Workflow definitions module."""

from workflows.afd_import_workflow import AfdImportWorkflow
from workflows.notification_workflow import NotificationWorkflow

__all__ = ["AfdImportWorkflow", "NotificationWorkflow"]
