"""三元组预览模块。

用样本行演示映射表在下游会生成怎样的三元组，供人工审核时参考。
被标记为 ignore 的列不产生任何三元组。
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ontomap.constants import DEFAULT_PRIMARY_LABEL, PREVIEW_ENTITY_IRI
from ontomap.core.models import ColumnMappingRecord, sheet_key

RDF_TYPE = "rdf:type"
DEFAULT_LINK_LABEL = "Entity"


@dataclass(frozen=True)
class PreviewTriple:
    """预览三元组。"""

    subject: str
    predicate: str
    object: str


def lookup_mapping(
    mappings: Mapping[str, ColumnMappingRecord], column: str, sheet: str | None = None
) -> ColumnMappingRecord | None:
    """查找列的映射记录：优先 "sheet:column" 键，其次扁平列名键。"""
    if sheet:
        record = mappings.get(sheet_key(sheet, column))
        if record is not None:
            return record
    return mappings.get(column)


def build_preview_triples(
    mappings: Mapping[str, ColumnMappingRecord],
    row: Mapping[str, Any],
    primary_class_label: str = "",
    sheet: str | None = None,
) -> list[PreviewTriple]:
    """根据一行样本数据生成预览三元组。

    首个三元组声明实体类型，其后每列一个：字面量列生成 "value"，
    关联列生成 <关联类标签>:<value>。谓词取属性标签，缺省时取列名。

    Args:
        mappings: 映射表。
        row: 列名到原始值的样本行。
        primary_class_label: 实体主类标签，缺省时为 Record。
        sheet: 样本行所属工作表，用于查找 "sheet:column" 键。

    Returns:
        预览三元组列表。
    """
    triples = [PreviewTriple(PREVIEW_ENTITY_IRI, RDF_TYPE, primary_class_label or DEFAULT_PRIMARY_LABEL)]
    for column, value in row.items():
        record = lookup_mapping(mappings, column, sheet)
        if record is not None and record.ignore:
            continue
        if value is None or value == "":
            continue

        predicate = (record.property_label if record else "") or column
        if record is not None and record.is_link:
            obj = f"{record.linked_class_label or DEFAULT_LINK_LABEL}:{value}"
        else:
            obj = f'"{value}"'
        triples.append(PreviewTriple(PREVIEW_ENTITY_IRI, predicate, obj))
    return triples
