"""映射快照模型定义模块。

本模块定义了持久化映射快照与过期检测相关的 Pydantic 模型，包括：
- MappingSnapshot: 持久化的映射快照
- SnapshotSummary: 历史版本摘要
- StalenessDiff / StalenessReport: 本体版本过期报告
- ColumnChanges: 列变更
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ontomap.core.models.mapping import ColumnMappingRecord


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MappingSnapshot(BaseModel):
    """持久化的映射快照。

    以（ontology_id, workspace_id）为键，每次保存版本号递增。

    Attributes:
        ontology_id: 本体标识。
        workspace_id: 工作区标识。
        mappings: 映射表。
        primary_class: 默认主类 IRI。
        sheet_class_map: 工作表到主类的映射，值可以是 IRI 或类标签。
        source_headers: 保存时文档的列名（指纹）。
        ontology_version_at_save: 保存时的本体版本（结构哈希）。
        saved_at: 保存时间（UTC）。
        version: 快照版本号，从 1 开始。
    """

    ontology_id: str = Field(alias="ontologyId")
    workspace_id: str = Field(alias="workspaceId")
    mappings: dict[str, ColumnMappingRecord] = Field(default_factory=dict)
    primary_class: str = Field(default="", alias="primaryClass")
    sheet_class_map: dict[str, str] = Field(default_factory=dict, alias="sheetClassMap")
    source_headers: list[str] = Field(default_factory=list, alias="sourceHeaders")
    ontology_version_at_save: str | None = Field(default=None, alias="ontologyVersionAtSave")
    saved_at: datetime = Field(default_factory=_utcnow, alias="savedAt")
    version: int = Field(default=1, ge=1)
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("ontology_id", "workspace_id")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """验证快照键非空。"""
        if not v or not v.strip():
            raise ValueError("ontology_id and workspace_id are required")
        return v.strip()

    def summary(self) -> SnapshotSummary:
        """生成该快照的历史摘要。"""
        return SnapshotSummary(
            version=self.version,
            saved_at=self.saved_at,
            column_count=len(self.mappings),
            primary_class=self.primary_class,
            source_headers=list(self.source_headers),
            ontology_version_at_save=self.ontology_version_at_save,
        )


class SnapshotSummary(BaseModel):
    """历史版本摘要。"""

    version: int
    saved_at: datetime = Field(alias="savedAt")
    column_count: int = Field(alias="columnCount")
    primary_class: str = Field(default="", alias="primaryClass")
    source_headers: list[str] = Field(default_factory=list, alias="sourceHeaders")
    ontology_version_at_save: str | None = Field(default=None, alias="ontologyVersionAtSave")
    model_config = ConfigDict(populate_by_name=True)


class StalenessDiff(BaseModel):
    """两个本体版本之间的增删计数。"""

    classes_added: int = Field(default=0, alias="classesAdded")
    classes_removed: int = Field(default=0, alias="classesRemoved")
    properties_added: int = Field(default=0, alias="propertiesAdded")
    properties_removed: int = Field(default=0, alias="propertiesRemoved")
    model_config = ConfigDict(populate_by_name=True)


class StalenessReport(BaseModel):
    """本体版本过期报告。

    仅作提示，不阻止映射复用。

    Attributes:
        mapping_built_for_version: 映射保存时的本体版本。
        current_version: 当前本体版本。
        diff: 增删计数；保存时的版本已不在归档中时为 None。
    """

    mapping_built_for_version: str = Field(alias="mappingBuiltForVersion")
    current_version: str = Field(alias="currentVersion")
    diff: StalenessDiff | None = None
    model_config = ConfigDict(populate_by_name=True)


class ColumnChanges(BaseModel):
    """已保存表头与当前表头之间的列变更。"""

    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """是否存在新增或删除的列。"""
        return bool(self.added or self.removed)
