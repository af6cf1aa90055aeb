"""Equipment catalog and company mirroring."""

from core.mapping.equipment import (
    EQUIPMENT_MAPPINGS,
    MIRROR_COMPANIES,
    EquipmentCatalog,
)

__all__ = [
    "EQUIPMENT_MAPPINGS",
    "MIRROR_COMPANIES",
    "EquipmentCatalog",
]
