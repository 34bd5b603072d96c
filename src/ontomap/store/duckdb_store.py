"""映射快照存储模块。

使用 DuckDB 文件持久化列映射快照，并归档本体结构版本用于过期检测。
每个（本体, 工作区）的快照按版本号递增保存，超出上限的旧版本被裁剪。

所有公开方法都是异步的，DuckDB 调用通过 asyncio.to_thread 执行；
同一存储实例的数据库访问由锁串行化。
"""

import asyncio
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import duckdb
import orjson
from pydantic import ValidationError

from ontomap.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_MAX_HISTORY, HEADER_OVERLAP_THRESHOLD
from ontomap.core.models import MappingSnapshot, OntologyStructure, SnapshotSummary
from ontomap.exceptions import SnapshotCorruptError, StoreError
from ontomap.logger import logger
from ontomap.store.snapshot import overlap_ratio

SCHEMA_DDL = (
    """CREATE TABLE IF NOT EXISTS column_mapping_snapshots (
    workspace_id VARCHAR NOT NULL,
    ontology_id VARCHAR NOT NULL,
    version INTEGER NOT NULL,
    payload VARCHAR NOT NULL,
    PRIMARY KEY (workspace_id, ontology_id, version)
);""",
    """CREATE TABLE IF NOT EXISTS ontology_versions (
    ontology_id VARCHAR NOT NULL,
    version_id VARCHAR NOT NULL,
    structure VARCHAR NOT NULL,
    PRIMARY KEY (ontology_id, version_id)
);""",
)


class MappingStore:
    """映射快照存储。

    Attributes:
        db_path: DuckDB 数据库文件路径。
        max_history: 每个键保留的快照版本数。
    """

    def __init__(self, db_path: Path | str, *, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        """初始化存储。

        Args:
            db_path: DuckDB 数据库文件路径，父目录不存在时自动创建。
            max_history: 每个键保留的快照版本数。
        """
        self.db_path = Path(db_path)
        self.max_history = max_history
        self._lock = threading.Lock()
        self._schema_ready = False

    def _open(self) -> duckdb.DuckDBPyConnection:
        """打开连接并在首次使用时建表。

        Raises:
            StoreError: 无法打开数据库或建表失败时抛出。
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = duckdb.connect(str(self.db_path))
        except (duckdb.Error, OSError) as e:
            raise StoreError(f"Cannot open mapping store {self.db_path}: {e}") from e

        if not self._schema_ready:
            try:
                for ddl in SCHEMA_DDL:
                    conn.execute(ddl)
            except duckdb.Error as e:
                conn.close()
                raise StoreError(f"Cannot initialize mapping store schema: {e}") from e
            self._schema_ready = True
        return conn

    @contextmanager
    def _transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """独占事务上下文。

        Yields:
            数据库连接。

        Raises:
            StoreError: 执行失败时回滚并抛出。
        """
        with self._lock:
            conn = self._open()
            try:
                conn.begin()
            except duckdb.Error as e:
                conn.close()
                raise StoreError(f"Cannot start mapping store transaction: {e}") from e

            try:
                yield conn
                conn.commit()
            except duckdb.Error as e:
                self._rollback(conn)
                raise StoreError(f"Mapping store operation failed: {e}") from e
            except Exception:
                self._rollback(conn)
                raise
            finally:
                conn.close()

    @staticmethod
    def _rollback(conn: duckdb.DuckDBPyConnection) -> None:
        """回滚事务，回滚本身失败时只记录日志，保留原始异常。"""
        try:
            conn.rollback()
        except duckdb.Error as e:
            logger.debug(f"Rollback failed: {e}")

    async def save(self, snapshot: MappingSnapshot) -> MappingSnapshot:
        """保存快照，版本号在该键已有最大版本上加一。

        Args:
            snapshot: 待保存的快照，其 version 字段会被覆盖。

        Returns:
            实际保存的快照（带新版本号）。

        Raises:
            StoreError: 写入失败时抛出。
        """

        def _execute_save() -> MappingSnapshot:
            with self._transaction() as conn:
                row = conn.execute(
                    "SELECT max(version) FROM column_mapping_snapshots "
                    "WHERE workspace_id = ? AND ontology_id = ?",
                    [snapshot.workspace_id, snapshot.ontology_id],
                ).fetchone()
                previous = row[0] if row and row[0] is not None else 0
                saved = snapshot.model_copy(update={"version": previous + 1})
                payload = orjson.dumps(saved.model_dump(mode="json", by_alias=True)).decode("utf-8")
                conn.execute(
                    "INSERT INTO column_mapping_snapshots VALUES (?, ?, ?, ?)",
                    [saved.workspace_id, saved.ontology_id, saved.version, payload],
                )
                conn.execute(
                    "DELETE FROM column_mapping_snapshots "
                    "WHERE workspace_id = ? AND ontology_id = ? AND version <= ?",
                    [saved.workspace_id, saved.ontology_id, saved.version - self.max_history],
                )
                return saved

        saved = await asyncio.to_thread(_execute_save)
        logger.info(
            f"Saved column mappings v{saved.version} for ontology {saved.ontology_id} "
            f"({len(saved.mappings)} columns)"
        )
        return saved

    async def load(
        self,
        ontology_id: str,
        workspace_id: str,
        current_headers: list[str] | None = None,
        *,
        overlap_threshold: float = HEADER_OVERLAP_THRESHOLD,
    ) -> MappingSnapshot | None:
        """加载最新快照。

        传入 current_headers 时校验表头重叠率，低于阈值的快照视为与当前文档无关，返回 None。

        Args:
            ontology_id: 本体标识。
            workspace_id: 工作区标识。
            current_headers: 当前文档的列名。
            overlap_threshold: 表头重叠率阈值。

        Returns:
            最新快照，不存在或不适用时返回 None。

        Raises:
            StoreError: 读取失败时抛出。
            SnapshotCorruptError: 快照记录无法解析时抛出。
        """

        def _execute_load() -> str | None:
            with self._transaction() as conn:
                row = conn.execute(
                    "SELECT payload FROM column_mapping_snapshots "
                    "WHERE workspace_id = ? AND ontology_id = ? "
                    "ORDER BY version DESC LIMIT 1",
                    [workspace_id, ontology_id],
                ).fetchone()
                return row[0] if row else None

        payload = await asyncio.to_thread(_execute_load)
        if payload is None:
            return None
        snapshot = self._parse_snapshot(ontology_id, workspace_id, payload)

        if current_headers is not None:
            ratio = overlap_ratio(current_headers, snapshot.source_headers)
            if ratio < overlap_threshold:
                logger.warning(
                    f"Saved mapping has low column overlap ({ratio:.0%}), ignoring: "
                    "likely from a different document"
                )
                return None
        return snapshot

    async def history(
        self, ontology_id: str, workspace_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[SnapshotSummary]:
        """列出最近的快照版本摘要，按版本号倒序。

        Raises:
            StoreError: 读取失败时抛出。
            SnapshotCorruptError: 快照记录无法解析时抛出。
        """

        def _execute_history() -> list[str]:
            with self._transaction() as conn:
                rows = conn.execute(
                    "SELECT payload FROM column_mapping_snapshots "
                    "WHERE workspace_id = ? AND ontology_id = ? "
                    f"ORDER BY version DESC LIMIT {int(limit)}",
                    [workspace_id, ontology_id],
                ).fetchall()
                return [row[0] for row in rows]

        payloads = await asyncio.to_thread(_execute_history)
        return [self._parse_snapshot(ontology_id, workspace_id, p).summary() for p in payloads]

    async def record_ontology_version(self, ontology_id: str, structure: OntologyStructure) -> str:
        """归档本体结构版本，已存在的版本保持不变。

        Returns:
            版本标识（结构哈希）。
        """
        version_id = structure.version_id

        def _execute_record() -> None:
            payload = orjson.dumps(structure.model_dump(mode="json", by_alias=True)).decode("utf-8")
            with self._transaction() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO ontology_versions VALUES (?, ?, ?)",
                    [ontology_id, version_id, payload],
                )

        await asyncio.to_thread(_execute_record)
        return version_id

    async def get_ontology_version(self, ontology_id: str, version_id: str) -> OntologyStructure | None:
        """读取归档的本体结构版本，不存在时返回 None。"""

        def _execute_get() -> str | None:
            with self._transaction() as conn:
                row = conn.execute(
                    "SELECT structure FROM ontology_versions WHERE ontology_id = ? AND version_id = ?",
                    [ontology_id, version_id],
                ).fetchone()
                return row[0] if row else None

        payload = await asyncio.to_thread(_execute_get)
        if payload is None:
            return None
        try:
            return OntologyStructure.model_validate(orjson.loads(payload))
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise StoreError(f"Corrupt ontology version {version_id} for {ontology_id}: {e}") from e

    @staticmethod
    def _parse_snapshot(ontology_id: str, workspace_id: str, payload: str) -> MappingSnapshot:
        """解析快照记录。"""
        try:
            return MappingSnapshot.model_validate(orjson.loads(payload))
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise SnapshotCorruptError(ontology_id, workspace_id, str(e)) from e
