"""本体索引模块。

基于一次匹配使用的本体结构构建查找表。构建复杂度为 O(类 + 属性)，查找为 O(1)。
索引构建后不可修改，本体结构变化时需重新构建。
"""

from types import MappingProxyType

from ontomap.core.models import OntologyClass, OntologyProperty, OntologyStructure
from ontomap.matching.normalizer import normalize_exact
from ontomap.utils.text import local_name_of


class OntologyIndex:
    """本体查找索引。

    同一规范化键对应多个条目时，后声明者覆盖先声明者。

    Attributes:
        structure: 被索引的本体结构。
    """

    def __init__(self, structure: OntologyStructure):
        """构建索引。

        Args:
            structure: 本体结构快照。
        """
        self.structure = structure

        by_label: dict[str, OntologyProperty] = {}
        by_local: dict[str, OntologyProperty] = {}
        for prop in structure.properties:
            label = normalize_exact(prop.label)
            local = normalize_exact(prop.local_name)
            if label:
                by_label[label] = prop
            if local:
                by_local[local] = prop

        by_name: dict[str, OntologyClass] = {}
        by_iri: dict[str, OntologyClass] = {}
        for cls in structure.classes:
            name = normalize_exact(cls.label or cls.local_name)
            if name:
                by_name[name] = cls
            by_iri[cls.iri] = cls

        self._property_by_label = MappingProxyType(by_label)
        self._property_by_local = MappingProxyType(by_local)
        self._class_by_name = MappingProxyType(by_name)
        self._class_by_iri = MappingProxyType(by_iri)

    @property
    def classes_by_name(self) -> MappingProxyType[str, OntologyClass]:
        """规范化类名到类的只读映射，保持声明顺序。"""
        return self._class_by_name

    @property
    def properties(self) -> tuple[OntologyProperty, ...]:
        """按声明顺序排列的属性。"""
        return self.structure.properties

    def property_by_label(self, normalized: str) -> OntologyProperty | None:
        """按规范化标签查找属性。"""
        return self._property_by_label.get(normalized)

    def property_by_local_name(self, normalized: str) -> OntologyProperty | None:
        """按规范化本地名称查找属性。"""
        return self._property_by_local.get(normalized)

    def class_by_name(self, normalized: str) -> OntologyClass | None:
        """按规范化类名查找类。"""
        return self._class_by_name.get(normalized)

    def class_by_iri(self, iri: str) -> OntologyClass | None:
        """按 IRI 查找类。"""
        return self._class_by_iri.get(iri)

    def resolve_class(self, ref: str | None) -> OntologyClass | None:
        """将定义域/值域引用解析为类。

        引用可以是完整 IRI，也可以是本地名称或标签。

        Args:
            ref: 类引用。

        Returns:
            解析到的类，无法解析时返回 None。
        """
        if not ref:
            return None
        cls = self._class_by_iri.get(ref)
        if cls is not None:
            return cls
        return self._class_by_name.get(normalize_exact(local_name_of(ref)))

    def links_to(self, prop: OntologyProperty, cls: OntologyClass) -> bool:
        """属性是否为值域等于给定类的对象属性。"""
        if not prop.is_object:
            return False
        target = self.resolve_class(prop.range)
        return target is not None and target.iri == cls.iri

    def object_properties_with_range(self, cls: OntologyClass) -> list[OntologyProperty]:
        """值域为给定类的对象属性，按声明顺序。"""
        return [prop for prop in self.structure.properties if self.links_to(prop, cls)]

    def has_domain(self, prop: OntologyProperty, cls: OntologyClass) -> bool:
        """属性的定义域是否为给定类。"""
        domain = self.resolve_class(prop.domain)
        return domain is not None and domain.iri == cls.iri
