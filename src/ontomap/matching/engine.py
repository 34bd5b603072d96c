"""列匹配引擎模块。

对每一列按严格优先级解析本体属性，并判断列值是字面量还是指向关联实体的引用：

1. 精确匹配：规范化列名对属性标签、再对属性本地名称。命中后不再被模糊匹配覆盖。
2. 去后缀匹配：去掉末尾 "id" 后再与属性名比较。
3. 模糊词元匹配：按词元重叠打分，归一化后取最高分。
4. 外键检测：独立于 1-3，"<stem>id" 形式的列查找名为 stem 的类。
5. 关联类确定后，为其选择值域匹配的对象属性。
6. 字面量属性解析定义域标签，仅用于展示。

引擎是纯函数式的：相同输入必然得到相同输出，不做任何 I/O。
"""

from dataclasses import dataclass

from ontomap.config import MatchingConfig
from ontomap.constants import (
    FUZZY_EXACT_TOKEN_SCORE,
    FUZZY_PREFIX_TOKEN_SCORE,
    GENERIC_ID_TOKEN,
    HAS_PROPERTY_PREFIX,
    MIN_FK_TOKEN_LENGTH,
    MIN_SUFFIX_MATCH_LENGTH,
)
from ontomap.core.models import (
    ColumnMappingRecord,
    OntologyClass,
    OntologyProperty,
    OntologyStructure,
)
from ontomap.logger import logger
from ontomap.matching.index import OntologyIndex
from ontomap.matching.normalizer import (
    fk_stem_tokens,
    normalize_exact,
    strip_id_suffix,
    tokenize,
)


@dataclass(frozen=True)
class ColumnMatch:
    """单列匹配的中间结果。

    Attributes:
        prop: 最终属性。
        linked_class: 关联类。
        domain_class: 字面量属性的定义域类。
    """

    prop: OntologyProperty | None = None
    linked_class: OntologyClass | None = None
    domain_class: OntologyClass | None = None

    def to_record(self, column: str) -> ColumnMappingRecord:
        """转换为映射记录，未匹配属性时以列名作为属性标签。"""
        return ColumnMappingRecord(
            property_iri=self.prop.iri if self.prop else "",
            property_label=self.prop.name if self.prop else column,
            linked_class_iri=self.linked_class.iri if self.linked_class else "",
            linked_class_label=self.linked_class.name if self.linked_class else "",
            domain_iri=self.domain_class.iri if self.domain_class else "",
            domain_label=self.domain_class.name if self.domain_class else "",
        )


def fuzzy_score(column_tokens: list[str], property_tokens: list[str]) -> float:
    """计算列与属性的词元重叠得分。

    相同词元得 2 分，前缀关系得 1 分，泛化的 "id" 词元不计分；
    原始得分除以两侧词元数的较大者。

    Args:
        column_tokens: 列名词元。
        property_tokens: 属性名词元。

    Returns:
        归一化得分，任一侧为空时为 0。

    Example:
        >>> fuzzy_score(["order", "time"], ["order", "timestamp"])
        1.5
    """
    if not column_tokens or not property_tokens:
        return 0.0
    score = 0
    for ct in column_tokens:
        if ct == GENERIC_ID_TOKEN:
            continue
        for pt in property_tokens:
            if pt == ct:
                score += FUZZY_EXACT_TOKEN_SCORE
                break
            if pt.startswith(ct) or ct.startswith(pt):
                score += FUZZY_PREFIX_TOKEN_SCORE
                break
    return score / max(len(column_tokens), len(property_tokens))


class MatchingEngine:
    """列匹配引擎。

    不持有可变状态；每次匹配只读取构造时传入的本体索引与配置。

    Attributes:
        index: 本体索引。
        config: 匹配启发式配置。
    """

    def __init__(self, structure: OntologyStructure | OntologyIndex, config: MatchingConfig | None = None):
        """初始化匹配引擎。

        Args:
            structure: 本体结构或已构建的索引。
            config: 匹配配置，默认使用内置阈值。
        """
        self.index = structure if isinstance(structure, OntologyIndex) else OntologyIndex(structure)
        self.config = config or MatchingConfig()

    def match_columns(self, headers: list[str]) -> dict[str, ColumnMappingRecord]:
        """对一组列名执行扁平匹配（不考虑工作表上下文）。

        Args:
            headers: 列名序列，重复的列名只匹配一次。

        Returns:
            列名到映射记录的映射，保持输入顺序。
        """
        if self.index.structure.is_empty:
            return {column: ColumnMappingRecord.auto(column) for column in headers}

        mappings: dict[str, ColumnMappingRecord] = {}
        for column in headers:
            if column in mappings:
                continue
            mappings[column] = self.match_column(column).to_record(column)

        linked = sum(1 for record in mappings.values() if record.is_link)
        matched = sum(1 for record in mappings.values() if record.property_iri)
        logger.debug(f"Matched {matched}/{len(mappings)} columns, {linked} linked to classes")
        return mappings

    def match_column(self, column: str) -> ColumnMatch:
        """按优先级解析单列的属性与关联类。

        Args:
            column: 列名。

        Returns:
            单列匹配结果。
        """
        normalized = normalize_exact(column)
        column_tokens = tokenize(column)

        prop = self._exact_property(normalized)
        if prop is None:
            prop = self._suffix_stripped_property(normalized)
        if prop is None:
            prop = self._fuzzy_property(column_tokens)

        linked_class = self._detect_linked_class(column, normalized, prop)
        if linked_class is not None:
            prop, linked_class = self._resolve_link(prop, linked_class)

        domain_class = None
        if linked_class is None and prop is not None:
            domain_class = self.index.resolve_class(prop.domain)

        return ColumnMatch(prop=prop, linked_class=linked_class, domain_class=domain_class)

    def _exact_property(self, normalized: str) -> OntologyProperty | None:
        """步骤 1：按标签、再按本地名称精确匹配。"""
        if not normalized:
            return None
        return self.index.property_by_label(normalized) or self.index.property_by_local_name(normalized)

    def _suffix_stripped_property(self, normalized: str) -> OntologyProperty | None:
        """步骤 2：去掉 "id" 后缀后匹配，如 customerid 对应 customer。"""
        if len(normalized) < self.config.min_suffix_length:
            return None
        stripped = strip_id_suffix(normalized)
        for prop in self.index.properties:
            name = normalize_exact(prop.name)
            if len(name) >= MIN_SUFFIX_MATCH_LENGTH and name in (normalized, stripped):
                return prop
        return None

    def _fuzzy_property(self, column_tokens: list[str]) -> OntologyProperty | None:
        """步骤 3：词元重叠打分，严格大于才替换，平局保留先声明者。"""
        if not column_tokens:
            return None
        best_score = 0.0
        best: OntologyProperty | None = None
        for prop in self.index.properties:
            score = fuzzy_score(column_tokens, tokenize(prop.name))
            if score > best_score and score >= self.config.fuzzy_threshold:
                best_score = score
                best = prop
        return best

    def _detect_linked_class(
        self, column: str, normalized: str, prop: OntologyProperty | None
    ) -> OntologyClass | None:
        """步骤 4：外键检测。

        "<stem>id" 形式依次尝试：类名等于 stem；类名与 stem 互为前缀；
        stem 词元与类名比较（处理 PrimaryCustomerID 这类复合外键）。
        整列名等于类名的情况只在未匹配到数据属性时成立。
        """
        stem = strip_id_suffix(normalized)
        if stem and stem != normalized:
            cls = self.index.class_by_name(stem)
            if cls is not None:
                return cls

            for name, candidate in self.index.classes_by_name.items():
                if name.startswith(stem) or stem.startswith(name):
                    return candidate

            stem_tokens = fk_stem_tokens(column)
            for name, candidate in self.index.classes_by_name.items():
                if name in stem_tokens:
                    return candidate
                if any(
                    len(token) >= MIN_FK_TOKEN_LENGTH and (name.startswith(token) or token.startswith(name))
                    for token in stem_tokens
                ):
                    return candidate

        if prop is None or prop.is_object:
            return self.index.class_by_name(normalized)
        return None

    def _resolve_link(
        self, prop: OntologyProperty | None, linked_class: OntologyClass
    ) -> tuple[OntologyProperty | None, OntologyClass | None]:
        """步骤 5：为关联类确定对象属性。

        已匹配属性若能表示该关联则保留；否则取第一个值域为该类的对象属性，
        再退而查找未声明值域的 "has<类名>" 对象属性。
        仅剩数据属性可用时放弃关联，该列回退为无属性的字面量。
        """
        if prop is not None and self.index.links_to(prop, linked_class):
            return prop, linked_class

        candidates = self.index.object_properties_with_range(linked_class)
        if candidates:
            return candidates[0], linked_class

        has_name = f"{HAS_PROPERTY_PREFIX}{normalize_exact(linked_class.name)}"
        for candidate in self.index.properties:
            if (
                candidate.is_object
                and normalize_exact(candidate.name) == has_name
                and self.index.resolve_class(candidate.range) is None
            ):
                return candidate, linked_class

        if prop is not None and not prop.is_object:
            logger.debug(
                f"Dropping link to {linked_class.name}: only data property {prop.name} available"
            )
            return None, None
        return None, linked_class
