"""工作表上下文解析模块。

多工作表工作簿中，每个工作表的行被视为某个主类的实例。
本模块推断各工作表的主类，并利用该上下文修正扁平匹配结果：
- 自引用降级：列关联的类就是本工作表的主类时，该列是本表的标识键而非外键。
- 定义域感知：多个对象属性值域相同时，选择定义域为本工作表主类的那个。
"""

from ontomap.core.models import ColumnMappingRecord, OntologyClass, SheetDescriptor, sheet_key
from ontomap.logger import logger
from ontomap.matching.index import OntologyIndex
from ontomap.matching.normalizer import normalize_exact


class SheetContextResolver:
    """工作表上下文解析器。

    Attributes:
        index: 本体索引。
    """

    def __init__(self, index: OntologyIndex):
        """初始化解析器。

        Args:
            index: 本体索引。
        """
        self.index = index

    def infer_sheet_class(self, sheet_name: str) -> OntologyClass | None:
        """按工作表名称推断主类。

        依次尝试：类名精确匹配；去掉复数 "s" 后匹配；前缀部分匹配。

        Args:
            sheet_name: 工作表名称。

        Returns:
            推断出的类，未匹配时返回 None。
        """
        normalized = normalize_exact(sheet_name)
        if not normalized:
            return None

        cls = self.index.class_by_name(normalized)
        if cls is not None:
            return cls

        singular = normalized.removesuffix("s")
        cls = self.index.class_by_name(singular)
        if cls is not None:
            return cls

        for name, candidate in self.index.classes_by_name.items():
            if normalized.startswith(name) or (singular and name.startswith(singular)):
                return candidate
        return None

    def infer_primary_classes(
        self,
        sheets: list[SheetDescriptor],
        default_class: str = "",
        overrides: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """推断每个工作表的主类 IRI。

        调用方指定的工作表主类优先（值可以是 IRI 或类标签）；
        其余工作表按名称推断，推断失败的回退到工作簿默认主类。

        Args:
            sheets: 工作表描述。
            default_class: 工作簿默认主类 IRI。
            overrides: 工作表名称到类 IRI 或标签的映射。

        Returns:
            工作表名称到主类 IRI 的映射；无法确定主类的工作表不出现在结果中。
        """
        overrides = overrides or {}
        resolved: dict[str, str] = {}
        for sheet in sheets:
            cls = self.index.resolve_class(overrides.get(sheet.name))
            if cls is None:
                cls = self.infer_sheet_class(sheet.name)
            if cls is not None:
                resolved[sheet.name] = cls.iri
            elif default_class:
                resolved[sheet.name] = default_class
        return resolved

    def refine(
        self,
        flat: dict[str, ColumnMappingRecord],
        sheets: list[SheetDescriptor],
        sheet_classes: dict[str, str],
    ) -> dict[str, ColumnMappingRecord]:
        """将扁平映射展开为 "sheet:column" 键并按工作表上下文修正。

        Args:
            flat: 扁平匹配结果（列名为键）。
            sheets: 参与映射的工作表。
            sheet_classes: 工作表名称到主类 IRI 的映射。

        Returns:
            以 "sheet:column" 为键的映射表。
        """
        refined: dict[str, ColumnMappingRecord] = {}
        demoted = 0
        for sheet in sheets:
            sheet_class = self.index.class_by_iri(sheet_classes.get(sheet.name, ""))
            sheet_label = normalize_exact(sheet_class.name) if sheet_class else ""

            for column in sheet.headers:
                record = flat.get(column)
                if record is None:
                    continue
                key = sheet_key(sheet.name, column)

                if record.is_link and sheet_label and normalize_exact(record.linked_class_label) == sheet_label:
                    refined[key] = record.as_literal()
                    demoted += 1
                    continue

                if record.is_link and sheet_class is not None:
                    record = self._prefer_sheet_domain(record, sheet_class)
                refined[key] = record

        logger.debug(f"Expanded {len(refined)} sheet columns, {demoted} self-references demoted")
        return refined

    def _prefer_sheet_domain(self, record: ColumnMappingRecord, sheet_class: OntologyClass) -> ColumnMappingRecord:
        """在值域相同的对象属性中选择定义域为工作表主类者。"""
        linked = self.index.class_by_iri(record.linked_class_iri)
        if linked is None:
            return record
        for prop in self.index.object_properties_with_range(linked):
            if self.index.has_domain(prop, sheet_class):
                if prop.iri == record.property_iri:
                    return record
                return record.model_copy(update={"property_iri": prop.iri, "property_label": prop.name})
        return record
