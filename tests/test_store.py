"""映射快照存储测试。"""

from unittest.mock import MagicMock, patch

import duckdb
import pytest

from ontomap.core.models import ColumnMappingRecord, MappingSnapshot, OntologyStructure
from ontomap.exceptions import SnapshotCorruptError, StoreError
from ontomap.store import MappingStore


def _snapshot(headers: list[str], **kwargs) -> MappingSnapshot:
    return MappingSnapshot(
        ontology_id="crm",
        workspace_id="default",
        mappings={h: ColumnMappingRecord.auto(h) for h in headers},
        source_headers=headers,
        **kwargs,
    )


class TestSaveLoad:
    """保存与加载测试。"""

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        """测试保存后加载最新快照。"""
        record = ColumnMappingRecord(property_iri="p", property_label="P", ignore=True)
        saved = await store.save(_snapshot(["a", "b"]).model_copy(update={"mappings": {"a": record}}))
        assert saved.version == 1

        loaded = await store.load("crm", "default")
        assert loaded is not None
        assert loaded.version == 1
        assert loaded.mappings["a"] == record
        assert loaded.source_headers == ["a", "b"]
        assert loaded.saved_at == saved.saved_at

    @pytest.mark.asyncio
    async def test_missing(self, store):
        """测试不存在的键返回 None。"""
        assert await store.load("crm", "other") is None

    @pytest.mark.asyncio
    async def test_version_increments_per_key(self, store):
        """测试版本号按键递增。"""
        await store.save(_snapshot(["a"]))
        second = await store.save(_snapshot(["a", "b"]))
        other = await store.save(_snapshot(["a"]).model_copy(update={"workspace_id": "team"}))

        assert second.version == 2
        assert other.version == 1
        latest = await store.load("crm", "default")
        assert latest.source_headers == ["a", "b"]

    @pytest.mark.asyncio
    async def test_history_pruned(self, store):
        """测试超出上限的旧版本被裁剪，历史按版本倒序。"""
        for i in range(5):
            await store.save(_snapshot([f"c{i}"]))

        history = await store.history("crm", "default")
        assert [s.version for s in history] == [5, 4, 3]
        assert history[0].source_headers == ["c4"]

        limited = await store.history("crm", "default", limit=1)
        assert [s.version for s in limited] == [5]


class TestOverlapGuard:
    """表头重叠校验测试。"""

    @pytest.mark.asyncio
    async def test_low_overlap_discarded(self, store):
        """测试完全不同的表头丢弃快照。"""
        await store.save(_snapshot(["a", "b", "c"]))
        assert await store.load("crm", "default", ["x", "y", "z"]) is None

    @pytest.mark.asyncio
    async def test_sufficient_overlap_kept(self, store):
        """测试重叠率达到阈值时返回快照。"""
        await store.save(_snapshot(["a", "b", "c"]))
        assert await store.load("crm", "default", ["a", "x", "y"]) is not None
        assert await store.load("crm", "default", ["a", "x", "y"], overlap_threshold=0.5) is None


class TestOntologyVersions:
    """本体版本归档测试。"""

    @pytest.mark.asyncio
    async def test_record_and_get(self, store, order_structure):
        """测试归档并读取本体结构。"""
        version_id = await store.record_ontology_version("crm", order_structure)
        assert version_id == order_structure.version_id

        again = await store.record_ontology_version("crm", order_structure)
        assert again == version_id

        archived = await store.get_ontology_version("crm", version_id)
        assert archived == order_structure

    @pytest.mark.asyncio
    async def test_missing_version(self, store):
        """测试不存在的版本返回 None。"""
        assert await store.get_ontology_version("crm", "nope") is None
        assert await store.get_ontology_version("crm", OntologyStructure().version_id) is None


class TestFailures:
    """存储失败测试。"""

    @pytest.mark.asyncio
    async def test_corrupt_payload(self, store):
        """测试无法解析的快照记录。"""
        await store.save(_snapshot(["a"]))
        conn = duckdb.connect(str(store.db_path))
        try:
            conn.execute("INSERT INTO column_mapping_snapshots VALUES ('default', 'crm', 99, 'not json')")
        finally:
            conn.close()

        with pytest.raises(SnapshotCorruptError) as exc_info:
            await store.load("crm", "default")
        assert exc_info.value.ontology_id == "crm"
        assert isinstance(exc_info.value, StoreError)

    @pytest.mark.asyncio
    async def test_unopenable_database(self, tmp_path):
        """测试数据库路径不可用时抛出 StoreError。"""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        store = MappingStore(blocker / "mappings.duckdb")
        with pytest.raises(StoreError):
            await store.load("crm", "default")

    @pytest.mark.asyncio
    async def test_begin_failure(self, store):
        """测试事务无法开始时抛出 StoreError 并关闭连接，不尝试回滚。"""
        conn = MagicMock()
        conn.begin.side_effect = duckdb.Error("cannot begin")
        with patch.object(store, "_open", return_value=conn):
            with pytest.raises(StoreError, match="cannot begin"):
                await store.load("crm", "default")
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_rollback_failure_keeps_original_error(self, store):
        """测试回滚失败时仍报告原始执行错误。"""
        conn = MagicMock()
        conn.execute.side_effect = duckdb.Error("query failed")
        conn.rollback.side_effect = duckdb.Error("no transaction is active")
        with patch.object(store, "_open", return_value=conn):
            with pytest.raises(StoreError, match="query failed"):
                await store.load("crm", "default")
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()
