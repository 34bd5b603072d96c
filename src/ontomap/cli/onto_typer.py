"""OntoTyper - 将列映射能力暴露为 CLI 命令。"""

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ontomap import __version__
from ontomap.config import AppConfig
from ontomap.constants import DEFAULT_HISTORY_LIMIT
from ontomap.core.models import ColumnMappingRecord, MappingResult, OntologyStructure, Workbook
from ontomap.exceptions import OntoMapError
from ontomap.loaders import load_ontology, load_workbook
from ontomap.matching import match_workbook
from ontomap.preview import build_preview_triples
from ontomap.session import ReviewSession, ReviewSessionService
from ontomap.store import MappingStore
from ontomap.utils.file_ops import read_file, write_json


def _run_async(coro: Any) -> Any:
    """在同步环境中运行异步协程。

    Args:
        coro: 异步协程对象。

    Returns:
        协程执行结果。
    """
    return asyncio.run(coro)


def _parse_sheet_classes(values: list[str] | None) -> dict[str, str]:
    """解析 "工作表=类" 形式的选项值。

    Raises:
        typer.BadParameter: 格式不合法时抛出。
    """
    parsed: dict[str, str] = {}
    for value in values or []:
        sheet, sep, cls = value.partition("=")
        if not sep or not sheet.strip() or not cls.strip():
            raise typer.BadParameter(f"expected SHEET=CLASS, got '{value}'")
        parsed[sheet.strip()] = cls.strip()
    return parsed


def _mapping_table(mappings: dict[str, ColumnMappingRecord], title: str) -> Table:
    """构建映射表的 rich 表格。"""
    table = Table(title=title)
    table.add_column("Column")
    table.add_column("Property")
    table.add_column("Linked class")
    table.add_column("Domain")
    for key, record in mappings.items():
        label = escape(record.property_label)
        table.add_row(
            escape(key),
            label if record.property_iri else f"[dim]{label} (auto)[/dim]",
            escape(record.linked_class_label),
            escape(record.domain_label),
        )
    return table


class OntoTyper(typer.Typer):
    """OntoMap CLI 工具类。

    继承 typer.Typer，在全局回调中加载配置并初始化日志。

    自动注册的命令：
    - match: 计算列映射
    - load: 打开审核会话（优先复用已保存映射）
    - save: 保存映射快照
    - history: 列出快照历史
    - version: 显示版本信息

    全局选项：
    - --config, -c: 配置文件路径
    - --store, -s: 映射存储路径，覆盖配置文件

    Example:
        ```bash
        ontomap match ontology.yaml data.xlsx --output mappings.json
        ontomap -s .ontomap/mappings.duckdb save ontology.yaml data.xlsx -O crm -W default
        ontomap history -O crm -W default
        ```
    """

    def __init__(self, **kwargs: Any) -> None:
        """初始化 OntoTyper。

        Args:
            **kwargs: 传递给 typer.Typer 的参数。
        """
        kwargs.setdefault("no_args_is_help", True)
        super().__init__(**kwargs)
        self._config: AppConfig | None = None
        self._register_callback()
        self._register_commands()

    @property
    def config(self) -> AppConfig:
        """应用配置。

        Raises:
            RuntimeError: 如果 callback 尚未加载配置。
        """
        if self._config is None:
            raise RuntimeError("config not initialized, callback was not called")
        return self._config

    def _register_callback(self) -> None:
        """注册全局回调（处理配置与存储路径选项）。"""

        @self.callback()
        def main(
            config_path: Path | None = typer.Option(
                None,
                "--config",
                "-c",
                help="配置文件路径，默认为当前目录下的 ontomap.yaml",
            ),
            store_path: Path | None = typer.Option(
                None,
                "--store",
                "-s",
                help="映射存储数据库路径",
            ),
        ) -> None:
            """OntoMap：将表格列映射到本体属性与类。"""
            from ontomap.logger import setup_logging

            try:
                config = AppConfig.from_yaml(config_path)
            except OntoMapError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e
            if store_path is not None:
                config = config.model_copy(
                    update={"store": config.store.model_copy(update={"path": store_path})}
                )
            self._config = config
            setup_logging(config.log_level)

    def _register_commands(self) -> None:
        """注册 CLI 命令。"""
        self._register_version_command()
        self._register_match_command()
        self._register_load_command()
        self._register_save_command()
        self._register_history_command()

    def _service(self) -> ReviewSessionService:
        store = MappingStore(self.config.store.path, max_history=self.config.store.max_history)
        return ReviewSessionService(store, self.config.matching)

    async def _load_inputs(self, ontology: Path, data: Path) -> tuple[OntologyStructure, Workbook]:
        structure = await load_ontology(ontology)
        workbook = await load_workbook(data, sample_size=self.config.sample_size)
        return structure, workbook

    def _register_version_command(self) -> None:
        """注册 version 命令。"""

        @self.command()
        def version() -> None:
            """显示版本信息。"""
            typer.echo(f"OntoMap v{__version__}")

    def _register_match_command(self) -> None:
        """注册 match 命令。"""

        @self.command()
        def match(
            ontology: Path = typer.Argument(..., help="本体文件（YAML / JSON）"),
            data: Path = typer.Argument(..., help="数据文件（CSV、CSV 目录或 XLSX）"),
            sheets: list[str] | None = typer.Option(None, "--sheet", help="参与映射的工作表，可重复"),
            primary_class: str | None = typer.Option(None, "--primary-class", "-p", help="默认主类 IRI"),
            sheet_class: list[str] | None = typer.Option(
                None, "--sheet-class", help="工作表主类，格式 SHEET=CLASS，可重复"
            ),
            output: Path | None = typer.Option(None, "--output", "-o", help="映射结果 JSON 输出路径"),
            as_json: bool = typer.Option(False, "--json", help="以 JSON 输出到标准输出"),
            preview: bool = typer.Option(False, "--preview", help="显示首行样本的三元组预览"),
        ) -> None:
            """计算列映射（不读取已保存的映射）。"""
            overrides = _parse_sheet_classes(sheet_class)

            async def _match() -> tuple[MappingResult, OntologyStructure, Workbook]:
                structure, workbook = await self._load_inputs(ontology, data)
                result = match_workbook(
                    structure,
                    workbook.sheets,
                    primary_class=primary_class,
                    sheet_classes=overrides,
                    selected_sheets=sheets,
                    config=self.config.matching,
                )
                if output is not None:
                    await write_json(output, result.model_dump(mode="json", by_alias=True))
                return result, structure, workbook

            try:
                result, structure, workbook = _run_async(_match())
            except OntoMapError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e

            if as_json:
                typer.echo(json.dumps(result.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
                return

            console = Console()
            console.print(_mapping_table(result.mappings, f"Column mappings ({len(result.mappings)})"))
            if preview:
                self._print_preview(console, result, structure, workbook, sheets)

    def _register_load_command(self) -> None:
        """注册 load 命令。"""

        @self.command()
        def load(
            ontology: Path = typer.Argument(..., help="本体文件（YAML / JSON）"),
            data: Path = typer.Argument(..., help="数据文件（CSV、CSV 目录或 XLSX）"),
            ontology_id: str = typer.Option(..., "--ontology-id", "-O", help="本体标识"),
            workspace_id: str = typer.Option("default", "--workspace-id", "-W", help="工作区标识"),
            sheets: list[str] | None = typer.Option(None, "--sheet", help="参与映射的工作表，可重复"),
            primary_class: str | None = typer.Option(None, "--primary-class", "-p", help="默认主类 IRI"),
            sheet_class: list[str] | None = typer.Option(
                None, "--sheet-class", help="工作表主类，格式 SHEET=CLASS，可重复，优先于已保存的值"
            ),
            output: Path | None = typer.Option(None, "--output", "-o", help="会话 JSON 输出路径"),
            as_json: bool = typer.Option(False, "--json", help="以 JSON 输出到标准输出"),
        ) -> None:
            """打开审核会话：复用已保存的映射，否则重新计算。"""
            overrides = _parse_sheet_classes(sheet_class)

            async def _open() -> ReviewSession:
                structure, workbook = await self._load_inputs(ontology, data)
                session = await self._service().open(
                    ontology_id,
                    workspace_id,
                    structure,
                    workbook,
                    primary_class=primary_class,
                    sheet_classes=overrides,
                    selected_sheets=sheets,
                )
                if output is not None:
                    await write_json(output, session.model_dump(mode="json", by_alias=True))
                return session

            try:
                session = _run_async(_open())
            except OntoMapError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e

            if as_json:
                typer.echo(json.dumps(session.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
                return

            console = Console()
            if session.source == "saved":
                console.print(f"Restored saved mapping v{session.saved_version} ({session.overlap:.0%} column overlap)")
            else:
                console.print("Computed new mapping")
            if session.staleness is not None:
                diff = session.staleness.diff
                detail = (
                    f": +{diff.classes_added}/-{diff.classes_removed} classes, "
                    f"+{diff.properties_added}/-{diff.properties_removed} properties"
                    if diff is not None
                    else ""
                )
                console.print(f"[yellow]Ontology changed since this mapping was saved{detail}[/yellow]")
            if session.column_changes is not None and session.column_changes.has_changes:
                console.print(
                    f"Columns added: {session.column_changes.added}, removed: {session.column_changes.removed}"
                )
            console.print(_mapping_table(session.mappings, f"Column mappings ({len(session.mappings)})"))

    def _register_save_command(self) -> None:
        """注册 save 命令。"""

        @self.command()
        def save(
            ontology: Path = typer.Argument(..., help="本体文件（YAML / JSON）"),
            data: Path = typer.Argument(..., help="数据文件（CSV、CSV 目录或 XLSX）"),
            ontology_id: str = typer.Option(..., "--ontology-id", "-O", help="本体标识"),
            workspace_id: str = typer.Option("default", "--workspace-id", "-W", help="工作区标识"),
            mappings_file: Path | None = typer.Option(
                None, "--mappings", "-m", help="审核后的映射 JSON（match --output 的格式），缺省时自动计算"
            ),
            sheets: list[str] | None = typer.Option(None, "--sheet", help="参与映射的工作表，可重复"),
        ) -> None:
            """保存映射快照。"""

            async def _save() -> dict[str, Any]:
                structure, workbook = await self._load_inputs(ontology, data)
                service = self._service()
                if mappings_file is not None:
                    try:
                        result = MappingResult.model_validate_json(await read_file(mappings_file))
                    except (OSError, ValidationError) as e:
                        raise typer.BadParameter(f"invalid mappings file {mappings_file}: {e}") from e
                else:
                    session = await service.open(
                        ontology_id, workspace_id, structure, workbook, selected_sheets=sheets
                    )
                    result = MappingResult(
                        mappings=session.mappings,
                        primary_class=session.primary_class,
                        sheet_classes=session.sheet_classes,
                    )
                headers = list(dict.fromkeys(h for s in workbook.select(sheets) for h in s.headers))
                outcome = await service.save(
                    ontology_id,
                    workspace_id,
                    structure,
                    result.mappings,
                    source_headers=headers,
                    primary_class=result.primary_class,
                    sheet_classes=result.sheet_classes,
                )
                return {
                    "version": outcome.snapshot.version,
                    "columns": len(outcome.snapshot.mappings),
                    "ontologyVersion": outcome.snapshot.ontology_version_at_save,
                    "columnChanges": (
                        outcome.column_changes.model_dump(mode="json") if outcome.column_changes else None
                    ),
                }

            try:
                summary = _run_async(_save())
            except OntoMapError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e
            typer.echo(json.dumps(summary, ensure_ascii=False, indent=2))

    def _register_history_command(self) -> None:
        """注册 history 命令。"""

        @self.command()
        def history(
            ontology_id: str = typer.Option(..., "--ontology-id", "-O", help="本体标识"),
            workspace_id: str = typer.Option("default", "--workspace-id", "-W", help="工作区标识"),
            limit: int = typer.Option(DEFAULT_HISTORY_LIMIT, "--limit", "-l", help="返回数量"),
        ) -> None:
            """列出映射快照历史，最新版本在前。"""
            store = MappingStore(self.config.store.path, max_history=self.config.store.max_history)
            try:
                summaries = _run_async(store.history(ontology_id, workspace_id, limit))
            except OntoMapError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e
            typer.echo(
                json.dumps(
                    [s.model_dump(mode="json", by_alias=True) for s in summaries],
                    ensure_ascii=False,
                    indent=2,
                )
            )

    @staticmethod
    def _print_preview(
        console: Console,
        result: MappingResult,
        structure: OntologyStructure,
        workbook: Workbook,
        sheets: list[str] | None,
    ) -> None:
        """打印首个工作表首行样本的三元组预览。

        多工作表时实体类型取该工作表的主类。
        """
        active = workbook.select(sheets)
        if not active:
            return
        first = active[0]
        rows = workbook.sample_rows.get(first.name) or []
        if not rows:
            console.print("[dim]No sample rows to preview[/dim]")
            return
        sheet = first.name if len(active) > 1 else None
        primary = structure.get_class(result.sheet_classes.get(first.name) or result.primary_class)
        for triple in build_preview_triples(result.mappings, rows[0], primary.name if primary else "", sheet):
            console.print(f"{triple.subject}  {triple.predicate}  {triple.object}", markup=False, emoji=False)
