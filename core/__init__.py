"""Core module - domain models, configuration, storage and queue plumbing.

This module is independent of the terminal vendor (RHiD) and of the ERP
(TOTVS RM). Vendor-specific HTTP code belongs in /connectors/.
"""

__version__ = "1.0.0"
