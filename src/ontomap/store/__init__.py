"""映射快照存储模块。

外部持久化边界：保存/加载带版本的映射快照，并提供重叠率与过期检测。
存储失败以 StoreError 抛出，由调用方视为缓存未命中。
"""

from ontomap.store.duckdb_store import MappingStore
from ontomap.store.snapshot import column_changes, compute_staleness, diff_structures, overlap_ratio

__all__ = [
    "MappingStore",
    "column_changes",
    "compute_staleness",
    "diff_structures",
    "overlap_ratio",
]
