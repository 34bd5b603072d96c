"""输入加载模块。

本模块负责将外部文件转换为匹配引擎使用的模型：
- 本体文件（YAML / JSON）→ OntologyStructure
- 数据文件（CSV、CSV 目录、XLSX）→ Workbook

所有格式错误在此边界统一包装为 OntologyLoadError / WorkbookLoadError，
匹配引擎本身不接触文件。
"""

import asyncio
import zipfile
from pathlib import Path
from typing import Any

import duckdb
import orjson
import yaml
from openpyxl import load_workbook as open_xlsx
from openpyxl.utils.exceptions import InvalidFileException

from ontomap.constants import DEFAULT_SAMPLE_SIZE
from ontomap.core.models import OntologyStructure, SheetDescriptor, Workbook
from ontomap.exceptions import OntologyLoadError, WorkbookLoadError
from ontomap.logger import logger
from ontomap.utils.file_ops import read_file

ONTOLOGY_YAML_SUFFIXES = {".yaml", ".yml"}
ONTOLOGY_JSON_SUFFIXES = {".json"}
CSV_SUFFIX = ".csv"
XLSX_SUFFIXES = {".xlsx", ".xlsm"}


async def load_ontology(path: Path | str, base_iri: str | None = None) -> OntologyStructure:
    """加载本体文件。

    文件根节点须为包含 classes / properties 的映射，条目可以是裸名称或结构化记录。

    Args:
        path: YAML 或 JSON 文件路径。
        base_iri: 条目缺少 IRI 时使用的命名空间前缀。

    Returns:
        规范化后的本体结构。

    Raises:
        OntologyLoadError: 文件不存在、格式不支持或内容不合法时抛出。
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in ONTOLOGY_YAML_SUFFIXES | ONTOLOGY_JSON_SUFFIXES:
        raise OntologyLoadError(str(path), f"unsupported file type '{suffix}'")

    try:
        content = await read_file(path)
    except OSError as e:
        raise OntologyLoadError(str(path), str(e)) from e

    try:
        if suffix in ONTOLOGY_JSON_SUFFIXES:
            data = orjson.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content) or {}
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        raise OntologyLoadError(str(path), f"parse error: {e}") from e

    if not isinstance(data, dict):
        raise OntologyLoadError(str(path), "root must be a mapping with 'classes' and 'properties'")

    try:
        structure = OntologyStructure.from_raw(data, base_iri)
    except ValueError as e:
        raise OntologyLoadError(str(path), str(e)) from e

    logger.debug(
        f"Loaded ontology {path.name}: {len(structure.classes)} classes, "
        f"{len(structure.properties)} properties"
    )
    return structure


async def load_workbook(path: Path | str, sample_size: int = DEFAULT_SAMPLE_SIZE) -> Workbook:
    """加载数据文件为工作簿。

    - 单个 CSV：一个以文件名（不含扩展名）命名的工作表。
    - CSV 目录：每个文件一个工作表，按文件名排序。
    - XLSX：每个工作表一个，首行为表头。

    Args:
        path: 数据文件或目录路径。
        sample_size: 每个工作表保留的样本行数。

    Returns:
        工作簿。

    Raises:
        WorkbookLoadError: 路径不存在、格式不支持或内容无法读取时抛出。
    """
    path = Path(path)
    if not path.exists():
        raise WorkbookLoadError(str(path), "path does not exist")

    if path.is_dir():
        csv_files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() == CSV_SUFFIX)
        if not csv_files:
            raise WorkbookLoadError(str(path), "directory contains no CSV files")
        workbook = await asyncio.to_thread(_read_csv_files, csv_files, sample_size)
    elif path.suffix.lower() == CSV_SUFFIX:
        workbook = await asyncio.to_thread(_read_csv_files, [path], sample_size)
    elif path.suffix.lower() in XLSX_SUFFIXES:
        workbook = await asyncio.to_thread(_read_xlsx, path, sample_size)
    else:
        raise WorkbookLoadError(str(path), f"unsupported file type '{path.suffix}'")

    logger.debug(f"Loaded workbook {path.name}: {[s.name for s in workbook.sheets]}")
    return workbook


def _read_csv_files(paths: list[Path], sample_size: int) -> Workbook:
    """使用 DuckDB 读取 CSV 文件，所有列按字符串读取。"""
    sheets: list[SheetDescriptor] = []
    samples: dict[str, list[dict[str, Any]]] = {}
    conn = duckdb.connect()
    try:
        for csv_path in paths:
            source = f"read_csv('{_escape_sql_literal(str(csv_path))}', header = true, all_varchar = true)"
            try:
                cursor = conn.execute(f"SELECT * FROM {source} LIMIT {int(sample_size)}")
                headers = [column[0] for column in cursor.description]
                rows = cursor.fetchall()
                count_row = conn.execute(f"SELECT count(*) FROM {source}").fetchone()
            except duckdb.Error as e:
                raise WorkbookLoadError(str(csv_path), str(e)) from e

            name = csv_path.stem
            sheets.append(SheetDescriptor(name=name, headers=headers, row_count=count_row[0] if count_row else 0))
            samples[name] = [dict(zip(headers, row, strict=False)) for row in rows]
    finally:
        conn.close()
    return Workbook(sheets=sheets, sample_rows=samples)


def _read_xlsx(path: Path, sample_size: int) -> Workbook:
    """使用 openpyxl 只读模式读取 XLSX，空白工作表被跳过。"""
    try:
        book = open_xlsx(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
        raise WorkbookLoadError(str(path), str(e)) from e

    sheets: list[SheetDescriptor] = []
    samples: dict[str, list[dict[str, Any]]] = {}
    try:
        for worksheet in book.worksheets:
            rows = worksheet.iter_rows(values_only=True)
            header_row = next(rows, None)
            if header_row is None or all(cell is None for cell in header_row):
                logger.debug(f"Skipping empty worksheet {worksheet.title}")
                continue

            headers = [
                str(cell).strip() if cell is not None else f"column_{i + 1}"
                for i, cell in enumerate(header_row)
            ]
            sample: list[dict[str, Any]] = []
            row_count = 0
            for row in rows:
                if all(cell is None for cell in row):
                    continue
                row_count += 1
                if len(sample) < sample_size:
                    sample.append(dict(zip(headers, row, strict=False)))

            sheets.append(SheetDescriptor(name=worksheet.title, headers=headers, row_count=row_count))
            samples[worksheet.title] = sample
    finally:
        book.close()

    if not sheets:
        raise WorkbookLoadError(str(path), "workbook has no non-empty worksheets")
    return Workbook(sheets=sheets, sample_rows=samples)


def _escape_sql_literal(value: str) -> str:
    """转义 SQL 字符串字面量中的单引号。"""
    return value.replace("'", "''")
