"""映射模型定义模块。

本模块定义了工作簿输入与列映射输出的 Pydantic 模型，包括：
- SheetDescriptor: 工作表描述
- Workbook: 工作簿（工作表 + 样本行）
- ColumnMappingRecord: 单列映射记录
- MappingResult: 一次匹配的完整输出
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ontomap.constants import SHEET_KEY_SEPARATOR


class SheetDescriptor(BaseModel):
    """工作表描述。

    单表数据集视为只有一个隐式工作表。

    Attributes:
        name: 工作表名称。
        headers: 有序的列名序列。
        row_count: 数据行数（不含表头）。
    """

    name: str
    headers: list[str] = Field(default_factory=list)
    row_count: int = Field(default=0, ge=0, alias="rowCount")
    model_config = ConfigDict(populate_by_name=True)


class Workbook(BaseModel):
    """工作簿。

    Attributes:
        sheets: 工作表描述序列。
        sample_rows: 工作表名称到样本行的映射，每行是列名到原始值的映射，
            仅用于预览，不参与匹配。
    """

    sheets: list[SheetDescriptor] = Field(default_factory=list)
    sample_rows: dict[str, list[dict[str, Any]]] = Field(default_factory=dict, alias="sampleRows")
    model_config = ConfigDict(populate_by_name=True)

    @property
    def headers(self) -> list[str]:
        """所有工作表列名的有序并集（去重）。"""
        return list(dict.fromkeys(h for sheet in self.sheets for h in sheet.headers))

    @property
    def is_multi_sheet(self) -> bool:
        """是否包含多个工作表。"""
        return len(self.sheets) > 1

    def get_sheet(self, name: str) -> SheetDescriptor | None:
        """按名称获取工作表。"""
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        return None

    def select(self, names: list[str] | None) -> list[SheetDescriptor]:
        """返回选中的工作表，names 为空时返回全部。"""
        if not names:
            return list(self.sheets)
        wanted = set(names)
        return [sheet for sheet in self.sheets if sheet.name in wanted]


class ColumnMappingRecord(BaseModel):
    """单列映射记录。

    空字符串表示可选 IRI 缺失。序列化时使用 camelCase 别名，
    与下游提交流水线消费的记录形态一致。

    若 linked_class_iri 非空，则 property_iri（若非空）必须指向值域为该类的对象属性；
    domain_iri 仅在字面量情形下有意义，且只用于展示。

    Attributes:
        property_iri: 匹配到的属性 IRI。
        property_label: 属性标签，未匹配时为列名本身。
        linked_class_iri: 关联类 IRI（外键情形）。
        linked_class_label: 关联类标签。
        domain_iri: 字面量属性的定义域类 IRI。
        domain_label: 定义域类标签。
        ignore: 是否在下游生成三元组时忽略该列。
    """

    property_iri: str = Field(default="", alias="property")
    property_label: str = Field(default="", alias="propertyLabel")
    linked_class_iri: str = Field(default="", alias="linkedClass")
    linked_class_label: str = Field(default="", alias="linkedClassLabel")
    domain_iri: str = Field(default="", alias="domain")
    domain_label: str = Field(default="", alias="domainLabel")
    ignore: bool = False
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @classmethod
    def auto(cls, column: str) -> ColumnMappingRecord:
        """构造以列名命名的字面量回退记录。"""
        return cls(property_label=column)

    @property
    def is_link(self) -> bool:
        """是否为指向关联实体的映射。"""
        return bool(self.linked_class_iri)

    def as_literal(self) -> ColumnMappingRecord:
        """降级为字面量：清空关联类与定义域。"""
        return self.model_copy(
            update={
                "linked_class_iri": "",
                "linked_class_label": "",
                "domain_iri": "",
                "domain_label": "",
            }
        )


class MappingResult(BaseModel):
    """一次匹配的完整输出。

    Attributes:
        mappings: 列键到映射记录的映射。多工作表时列键为 "sheet:column"。
        primary_class: 工作簿默认主类 IRI。
        sheet_classes: 工作表名称到主类 IRI 的映射（仅多工作表）。
    """

    mappings: dict[str, ColumnMappingRecord] = Field(default_factory=dict)
    primary_class: str = Field(default="", alias="primaryClass")
    sheet_classes: dict[str, str] = Field(default_factory=dict, alias="sheetClasses")
    model_config = ConfigDict(populate_by_name=True)


def sheet_key(sheet: str, column: str) -> str:
    """构造多工作表映射的列键。"""
    return f"{sheet}{SHEET_KEY_SEPARATOR}{column}"


def is_sheet_key(key: str) -> bool:
    """判断列键是否为 "sheet:column" 形式。"""
    return SHEET_KEY_SEPARATOR in key
