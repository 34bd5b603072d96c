"""核心模型模块。"""

from ontomap.core.models.mapping import (
    ColumnMappingRecord,
    MappingResult,
    SheetDescriptor,
    Workbook,
    is_sheet_key,
    sheet_key,
)
from ontomap.core.models.ontology import (
    OntologyClass,
    OntologyProperty,
    OntologyStructure,
    PropertyKind,
)
from ontomap.core.models.snapshot import (
    ColumnChanges,
    MappingSnapshot,
    SnapshotSummary,
    StalenessDiff,
    StalenessReport,
)

__all__ = [
    "ColumnChanges",
    "ColumnMappingRecord",
    "MappingResult",
    "MappingSnapshot",
    "OntologyClass",
    "OntologyProperty",
    "OntologyStructure",
    "PropertyKind",
    "SheetDescriptor",
    "SnapshotSummary",
    "StalenessDiff",
    "StalenessReport",
    "Workbook",
    "is_sheet_key",
    "sheet_key",
]
