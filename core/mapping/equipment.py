"""Equipment catalog: terminal id → ERP coordinates.

The catalog is static. Lookups go through a precomputed id table, and the
companies that share physical terminals are listed in an explicit mirror
table so that new pairs only need a new entry.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from core.models.attendance import EquipmentMapping


EQUIPMENT_MAPPINGS: tuple = (
    EquipmentMapping(id=6, company_code=1, branch_code=2, terminal_code=9006),
    EquipmentMapping(id=1, company_code=5, branch_code=1, terminal_code=9003),
    EquipmentMapping(id=2, company_code=5, branch_code=1, terminal_code=9004),
    EquipmentMapping(id=9, company_code=1, branch_code=5, terminal_code=9005),
    EquipmentMapping(id=3, company_code=1, branch_code=1, terminal_code=9007),
    EquipmentMapping(id=4, company_code=1, branch_code=7, terminal_code=9001),
    EquipmentMapping(id=5, company_code=1, branch_code=7, terminal_code=9002),
)

# Companies sharing one physical terminal; each needs its own import run
MIRROR_COMPANIES: Mapping[int, int] = MappingProxyType({1: 5, 5: 1})


class EquipmentCatalog:
    """Immutable lookup over the mapped terminals.

    Usage:
        catalog = EquipmentCatalog()
        mapping = catalog.get(6)
        for job_mapping in catalog.worklist():
            ...
    """

    def __init__(
        self,
        mappings: Iterable[EquipmentMapping] = EQUIPMENT_MAPPINGS,
        mirrors: Mapping[int, int] = MIRROR_COMPANIES,
    ):
        self._mappings: tuple = tuple(mappings)
        by_id: Dict[int, EquipmentMapping] = {}
        for mapping in self._mappings:
            if mapping.id in by_id:
                raise ValueError(f"Duplicate equipment id in catalog: {mapping.id}")
            by_id[mapping.id] = mapping
        self._by_id = MappingProxyType(by_id)
        self._mirrors = MappingProxyType(dict(mirrors))

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self):
        return iter(self._mappings)

    def __contains__(self, equipment_id: int) -> bool:
        return equipment_id in self._by_id

    @property
    def ids(self) -> List[int]:
        return [m.id for m in self._mappings]

    def get(self, equipment_id: int) -> Optional[EquipmentMapping]:
        return self._by_id.get(equipment_id)

    def mirror_of(self, company_code: int) -> Optional[int]:
        """Company that mirrors `company_code`, if any."""
        return self._mirrors.get(company_code)

    def worklist(self) -> List[EquipmentMapping]:
        """Every mapping plus a mirrored copy for companies in the mirror table."""
        jobs: List[EquipmentMapping] = []
        for mapping in self._mappings:
            jobs.append(mapping)
            mirror = self.mirror_of(mapping.company_code)
            if mirror is not None:
                jobs.append(mapping.with_company(mirror))
        return jobs
