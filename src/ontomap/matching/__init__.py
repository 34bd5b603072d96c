"""列映射匹配模块。

纯计算库，不感知任何交互会话，也不做 I/O：
- 名称规范化（normalizer）
- 本体索引（index）
- 列匹配引擎（engine）
- 工作表上下文解析（sheets）
"""

from ontomap.config import MatchingConfig
from ontomap.core.models import MappingResult, OntologyStructure, SheetDescriptor
from ontomap.logger import logger
from ontomap.matching.engine import ColumnMatch, MatchingEngine, fuzzy_score
from ontomap.matching.index import OntologyIndex
from ontomap.matching.normalizer import fk_stem_tokens, normalize_exact, tokenize
from ontomap.matching.sheets import SheetContextResolver

__all__ = [
    "ColumnMatch",
    "MatchingEngine",
    "OntologyIndex",
    "SheetContextResolver",
    "fk_stem_tokens",
    "fuzzy_score",
    "match_workbook",
    "normalize_exact",
    "resolve_primary_class",
    "tokenize",
]


def resolve_primary_class(structure: OntologyStructure | None, preferred: str | None = None) -> str:
    """确定工作簿默认主类。

    调用方指定的类存在于本体中时沿用，否则取第一个声明的类。

    Args:
        structure: 本体结构。
        preferred: 调用方指定的主类 IRI。

    Returns:
        主类 IRI，本体没有类时返回空字符串。
    """
    if structure is None or not structure.classes:
        return ""
    if preferred and structure.get_class(preferred) is not None:
        return preferred
    return structure.classes[0].iri


def match_workbook(
    structure: OntologyStructure | None,
    sheets: list[SheetDescriptor],
    *,
    primary_class: str | None = None,
    sheet_classes: dict[str, str] | None = None,
    selected_sheets: list[str] | None = None,
    config: MatchingConfig | None = None,
) -> MappingResult:
    """对工作簿执行完整匹配。

    先按所有选中工作表的列名并集做扁平匹配；只有一个工作表时直接返回扁平结果，
    多个工作表时再由工作表上下文解析器推断主类并修正。

    Args:
        structure: 本体结构，None 表示未提供本体，所有列回退为字面量。
        sheets: 工作表描述。
        primary_class: 调用方指定的默认主类 IRI。
        sheet_classes: 调用方指定的工作表主类（IRI 或标签）。
        selected_sheets: 参与映射的工作表名称，默认全部。
        config: 匹配配置。

    Returns:
        映射结果。
    """
    structure = structure or OntologyStructure()
    if selected_sheets:
        wanted = set(selected_sheets)
        active = [sheet for sheet in sheets if sheet.name in wanted]
    else:
        active = list(sheets)

    headers = list(dict.fromkeys(h for sheet in active for h in sheet.headers))
    index = OntologyIndex(structure)
    engine = MatchingEngine(index, config)
    flat = engine.match_columns(headers)
    default_class = resolve_primary_class(structure, primary_class)

    if len(active) <= 1:
        return MappingResult(mappings=flat, primary_class=default_class)

    resolver = SheetContextResolver(index)
    resolved_classes = resolver.infer_primary_classes(active, default_class, sheet_classes)
    mappings = resolver.refine(flat, active, resolved_classes)
    logger.info(f"Mapped {len(headers)} columns across {len(active)} sheets")
    return MappingResult(mappings=mappings, primary_class=default_class, sheet_classes=resolved_classes)
