"""审核会话模块。

映射引擎之上的薄适配层：打开审核会话时优先复用已保存的映射，
保存时归档本体版本并写入新快照。

会话不持有引擎状态，每次打开都基于传入的本体结构重新构建索引。
存储层的任何失败都被视为缓存未命中，退回到重新计算。
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from ontomap.config import MatchingConfig
from ontomap.core.models import (
    ColumnChanges,
    ColumnMappingRecord,
    MappingSnapshot,
    OntologyStructure,
    SheetDescriptor,
    StalenessReport,
    Workbook,
    is_sheet_key,
    sheet_key,
)
from ontomap.exceptions import StoreError
from ontomap.logger import logger
from ontomap.matching import OntologyIndex, SheetContextResolver, match_workbook, resolve_primary_class
from ontomap.store import MappingStore, column_changes, compute_staleness, overlap_ratio


class MappingSource(StrEnum):
    """映射来源。"""

    SAVED = "saved"
    COMPUTED = "computed"


class ReviewSession(BaseModel):
    """一次审核会话的初始状态。

    Attributes:
        mappings: 映射表。
        primary_class: 工作簿默认主类 IRI。
        sheet_classes: 工作表主类 IRI（仅多工作表）。
        source: 映射来自已保存快照还是重新计算。
        saved_version: 复用的快照版本号。
        overlap: 当前表头与快照表头的重叠率，未找到快照时为 None。
        staleness: 本体版本过期报告。
        column_changes: 相对快照的列变更。
    """

    mappings: dict[str, ColumnMappingRecord] = Field(default_factory=dict)
    primary_class: str = Field(default="", alias="primaryClass")
    sheet_classes: dict[str, str] = Field(default_factory=dict, alias="sheetClasses")
    source: MappingSource = MappingSource.COMPUTED
    saved_version: int | None = Field(default=None, alias="savedVersion")
    overlap: float | None = None
    staleness: StalenessReport | None = None
    column_changes: ColumnChanges | None = Field(default=None, alias="columnChanges")
    model_config = ConfigDict(populate_by_name=True)


class SaveOutcome(BaseModel):
    """保存结果。

    Attributes:
        snapshot: 实际保存的快照。
        column_changes: 相对上一版本的列变更，首次保存时为 None。
    """

    snapshot: MappingSnapshot
    column_changes: ColumnChanges | None = Field(default=None, alias="columnChanges")
    model_config = ConfigDict(populate_by_name=True)


class ReviewSessionService:
    """审核会话服务。

    Attributes:
        store: 映射快照存储。
        config: 匹配配置。
    """

    def __init__(self, store: MappingStore, config: MatchingConfig | None = None):
        self.store = store
        self.config = config or MatchingConfig()

    async def open(
        self,
        ontology_id: str,
        workspace_id: str,
        structure: OntologyStructure,
        workbook: Workbook,
        *,
        primary_class: str | None = None,
        sheet_classes: dict[str, str] | None = None,
        selected_sheets: list[str] | None = None,
    ) -> ReviewSession:
        """打开审核会话。

        已保存快照与当前表头重叠率达标时复用快照，否则调用匹配引擎重新计算。
        复用时报告本体过期情况和列变更，但不阻止复用。

        Args:
            ontology_id: 本体标识。
            workspace_id: 工作区标识。
            structure: 当前本体结构。
            workbook: 当前工作簿。
            primary_class: 调用方指定的默认主类 IRI。
            sheet_classes: 调用方指定的工作表主类（IRI 或标签），优先于快照中的值。
            selected_sheets: 参与映射的工作表名称，默认全部。

        Returns:
            审核会话。
        """
        active = workbook.select(selected_sheets)
        headers = list(dict.fromkeys(h for sheet in active for h in sheet.headers))

        snapshot = await self._load_snapshot(ontology_id, workspace_id)
        if snapshot is not None:
            ratio = overlap_ratio(headers, snapshot.source_headers)
            if ratio >= self.config.overlap_threshold:
                return await self._restore(snapshot, structure, active, headers, ratio, primary_class, sheet_classes)
            logger.warning(
                f"Saved mapping v{snapshot.version} has low column overlap ({ratio:.0%}), recomputing"
            )

        result = match_workbook(
            structure,
            workbook.sheets,
            primary_class=primary_class,
            sheet_classes=sheet_classes,
            selected_sheets=selected_sheets,
            config=self.config,
        )
        return ReviewSession(
            mappings=result.mappings,
            primary_class=result.primary_class,
            sheet_classes=result.sheet_classes,
            source=MappingSource.COMPUTED,
            overlap=None if snapshot is None else overlap_ratio(headers, snapshot.source_headers),
        )

    async def save(
        self,
        ontology_id: str,
        workspace_id: str,
        structure: OntologyStructure,
        mappings: dict[str, ColumnMappingRecord],
        *,
        source_headers: list[str],
        primary_class: str = "",
        sheet_classes: dict[str, str] | None = None,
    ) -> SaveOutcome:
        """保存审核后的映射。

        以当前本体结构哈希标记快照，并归档该版本结构供之后的过期检测使用。

        Args:
            ontology_id: 本体标识。
            workspace_id: 工作区标识。
            structure: 当前本体结构。
            mappings: 审核后的映射表。
            source_headers: 当前文档的列名。
            primary_class: 默认主类 IRI。
            sheet_classes: 工作表主类映射。

        Returns:
            保存结果。

        Raises:
            StoreError: 写入失败时抛出。
        """
        previous = await self._load_snapshot(ontology_id, workspace_id)
        version_id = await self.store.record_ontology_version(ontology_id, structure)

        snapshot = MappingSnapshot(
            ontology_id=ontology_id,
            workspace_id=workspace_id,
            mappings=mappings,
            primary_class=primary_class,
            sheet_class_map=sheet_classes or {},
            source_headers=list(dict.fromkeys(source_headers)),
            ontology_version_at_save=version_id,
        )
        saved = await self.store.save(snapshot)

        changes = None
        if previous is not None:
            changes = column_changes(previous.source_headers, saved.source_headers)
            if changes.has_changes:
                logger.info(f"Columns changed since v{previous.version}: +{len(changes.added)} -{len(changes.removed)}")
        return SaveOutcome(snapshot=saved, column_changes=changes)

    async def _load_snapshot(self, ontology_id: str, workspace_id: str) -> MappingSnapshot | None:
        """读取最新快照，存储失败视为未命中。"""
        try:
            return await self.store.load(ontology_id, workspace_id)
        except StoreError as e:
            logger.warning(f"Could not load saved mapping, recomputing: {e}")
            return None

    async def _staleness(self, snapshot: MappingSnapshot, structure: OntologyStructure) -> StalenessReport | None:
        """计算过期报告，归档版本读取失败时报告不含差异。"""
        built_for = snapshot.ontology_version_at_save
        if not built_for or built_for == structure.version_id:
            return None
        try:
            archived = await self.store.get_ontology_version(snapshot.ontology_id, built_for)
        except StoreError as e:
            logger.warning(f"Could not read archived ontology version {built_for}: {e}")
            archived = None
        report = compute_staleness(snapshot, structure, archived)
        if report is not None:
            logger.info(
                f"Saved mapping was built for ontology version {built_for}, current is {report.current_version}"
            )
        return report

    async def _restore(
        self,
        snapshot: MappingSnapshot,
        structure: OntologyStructure,
        active: list[SheetDescriptor],
        headers: list[str],
        ratio: float,
        primary_class: str | None,
        sheet_classes: dict[str, str] | None,
    ) -> ReviewSession:
        """基于已保存快照构建会话。"""
        index = OntologyIndex(structure)
        default_class = resolve_primary_class(structure, primary_class or snapshot.primary_class)
        overrides = {**snapshot.sheet_class_map, **(sheet_classes or {})}

        if len(active) > 1:
            resolver = SheetContextResolver(index)
            resolved_classes = resolver.infer_primary_classes(active, default_class, overrides)
            mappings = self._merge_multi_sheet(snapshot.mappings, active, resolver, resolved_classes)
        else:
            resolved_classes = {}
            sheet_name = active[0].name if active else ""
            # 多工作表快照单独打开某个工作表时沿用该表的主类
            sheet_class = index.resolve_class(overrides.get(sheet_name))
            if primary_class is None and sheet_class is not None:
                default_class = sheet_class.iri
            mappings = self._merge_flat(snapshot.mappings, sheet_name, headers)

        logger.info(f"Restored saved mapping v{snapshot.version} ({ratio:.0%} column overlap)")
        return ReviewSession(
            mappings=mappings,
            primary_class=default_class,
            sheet_classes=resolved_classes,
            source=MappingSource.SAVED,
            saved_version=snapshot.version,
            overlap=ratio,
            staleness=await self._staleness(snapshot, structure),
            column_changes=column_changes(snapshot.source_headers, headers),
        )

    @staticmethod
    def _merge_flat(
        saved: dict[str, ColumnMappingRecord], sheet_name: str, headers: list[str]
    ) -> dict[str, ColumnMappingRecord]:
        """单工作表：沿用已保存记录，新列使用字面量回退记录。

        快照来自多工作表工作簿时记录以 "工作表:列" 为键，按当前工作表名优先查找。
        """
        return {
            column: saved.get(sheet_key(sheet_name, column)) or saved.get(column) or ColumnMappingRecord.auto(column)
            for column in headers
        }

    @staticmethod
    def _merge_multi_sheet(
        saved: dict[str, ColumnMappingRecord],
        sheets: list[SheetDescriptor],
        resolver: SheetContextResolver,
        sheet_classes: dict[str, str],
    ) -> dict[str, ColumnMappingRecord]:
        """多工作表：按工作表键沿用记录，扁平键展开到各工作表后按上下文修正。"""
        flat = {key: record for key, record in saved.items() if not is_sheet_key(key)}
        expanded = resolver.refine(flat, sheets, sheet_classes) if flat else {}

        merged: dict[str, ColumnMappingRecord] = {}
        for sheet in sheets:
            for column in sheet.headers:
                key = sheet_key(sheet.name, column)
                merged[key] = saved.get(key) or expanded.get(key) or ColumnMappingRecord.auto(column)
        return merged
