"""快照校验模块。

加载已保存映射时由调用方独立计算的两项检查：
- 表头重叠率：低于阈值说明快照来自结构不同的文档，应丢弃。
- 本体过期：保存时的本体版本与当前版本不同，报告增删计数但不阻止复用。
"""

from ontomap.core.models import (
    ColumnChanges,
    MappingSnapshot,
    OntologyStructure,
    StalenessDiff,
    StalenessReport,
)


def overlap_ratio(current_headers: list[str], saved_headers: list[str]) -> float:
    """计算当前表头与已保存表头的重叠率。

    重叠率 = |当前 ∩ 已保存| / max(len(当前), len(已保存))。

    Args:
        current_headers: 当前文档的列名。
        saved_headers: 快照保存时的列名。

    Returns:
        0 到 1 之间的重叠率，已保存表头为空时为 0。
    """
    if not saved_headers:
        return 0.0
    saved = set(saved_headers)
    shared = len({h for h in current_headers if h in saved})
    return shared / max(len(set(current_headers)), len(saved))


def column_changes(saved_headers: list[str], current_headers: list[str]) -> ColumnChanges:
    """比较已保存表头与当前表头，按原始顺序列出新增和删除的列。"""
    saved = set(saved_headers)
    current = set(current_headers)
    return ColumnChanges(
        added=[h for h in dict.fromkeys(current_headers) if h not in saved],
        removed=[h for h in dict.fromkeys(saved_headers) if h not in current],
    )


def diff_structures(old: OntologyStructure, new: OntologyStructure) -> StalenessDiff:
    """按 IRI 比较两个本体版本的类与属性增删。"""
    old_classes = {c.iri for c in old.classes}
    new_classes = {c.iri for c in new.classes}
    old_props = {p.iri for p in old.properties}
    new_props = {p.iri for p in new.properties}
    return StalenessDiff(
        classes_added=len(new_classes - old_classes),
        classes_removed=len(old_classes - new_classes),
        properties_added=len(new_props - old_props),
        properties_removed=len(old_props - new_props),
    )


def compute_staleness(
    snapshot: MappingSnapshot,
    current: OntologyStructure,
    archived: OntologyStructure | None = None,
) -> StalenessReport | None:
    """检测快照是否基于过期的本体版本。

    Args:
        snapshot: 已保存的映射快照。
        current: 当前本体结构。
        archived: 快照保存时的本体结构（来自版本归档），缺失时报告不含差异。

    Returns:
        过期报告；快照未记录版本或版本一致时返回 None。
    """
    built_for = snapshot.ontology_version_at_save
    current_version = current.version_id
    if not built_for or built_for == current_version:
        return None
    diff = diff_structures(archived, current) if archived is not None else None
    return StalenessReport(
        mapping_built_for_version=built_for,
        current_version=current_version,
        diff=diff,
    )
