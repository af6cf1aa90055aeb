"""External system connectors.

- rhid/: terminal-management API (login, device catalog, AFD download)
- totvs/: payroll ERP process API (attendance-punch import trigger) and job tables
- chat/: operator chat space webhook

The pipeline depends on `ErpImportConnector` rather than on the TOTVS client
directly, so tests can substitute a fake ERP. Correlation and notification
read ERP jobs through `ErpJobReader` the same way.
"""

from connectors.erp_base import (
    ERP_SUCCESS_SENTINEL,
    ErpImportConnector,
    ErpJobReader,
    is_success_sentinel,
)

__all__ = [
    "ERP_SUCCESS_SENTINEL",
    "ErpImportConnector",
    "ErpJobReader",
    "is_success_sentinel",
]
