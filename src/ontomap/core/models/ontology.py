"""本体结构模型定义模块。

本模块定义了一次匹配所使用的本体快照的 Pydantic 模型，包括：
- PropertyKind: 属性类别（数据属性 / 对象属性）
- OntologyClass: 类定义
- OntologyProperty: 属性定义
- OntologyStructure: 不可变的本体结构快照

本体来源中的类和属性既可能是裸名称，也可能是结构化记录，
二者在 OntologyStructure.from_raw 中统一规范化，匹配引擎只处理一种形态。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ontomap.constants import (
    DATA_KIND_ALIASES,
    DEFAULT_BASE_IRI,
    DEFAULT_LITERAL_RANGE,
    OBJECT_KIND_ALIASES,
)
from ontomap.utils.text import compute_text_hash, local_name_of


class PropertyKind(StrEnum):
    """属性类别。"""

    DATA = "data"
    OBJECT = "object"

    @classmethod
    def parse(cls, value: str) -> PropertyKind:
        """解析来源中的属性类别写法。

        支持 "object"、"objectProperty"、"owl:ObjectProperty" 等写法。

        Args:
            value: 原始类别字符串。

        Returns:
            对应的 PropertyKind。

        Raises:
            ValueError: 无法识别的类别时抛出。
        """
        key = value.strip().lower()
        if key in OBJECT_KIND_ALIASES:
            return cls.OBJECT
        if key in DATA_KIND_ALIASES:
            return cls.DATA
        raise ValueError(f"unknown property kind: {value}")


class OntologyClass(BaseModel):
    """本体类定义。

    以 iri 作为身份标识。

    Attributes:
        iri: 类的 IRI。
        label: 类的显示标签。
        local_name: IRI 的本地名称。
    """

    iri: str
    label: str = ""
    local_name: str = Field(default="", alias="localName")
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("iri")
    @classmethod
    def validate_iri(cls, v: str) -> str:
        """验证 IRI 非空。"""
        if not v or not v.strip():
            raise ValueError("class iri required")
        return v.strip()

    @property
    def name(self) -> str:
        """用于匹配和展示的名称：优先标签，其次本地名称。"""
        return self.label or self.local_name or local_name_of(self.iri)


class OntologyProperty(BaseModel):
    """本体属性定义。

    对象属性的值域是一个类，数据属性的值域是字面量类型。

    Attributes:
        iri: 属性的 IRI。
        label: 属性的显示标签。
        local_name: IRI 的本地名称。
        kind: 属性类别。
        domain: 定义域类的 IRI 或本地名称，可为空。
        range: 值域，对象属性为类引用，数据属性为字面量类型。
    """

    iri: str
    label: str = ""
    local_name: str = Field(default="", alias="localName")
    kind: PropertyKind = PropertyKind.DATA
    domain: str = ""
    range: str = ""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("iri")
    @classmethod
    def validate_iri(cls, v: str) -> str:
        """验证 IRI 非空。"""
        if not v or not v.strip():
            raise ValueError("property iri required")
        return v.strip()

    @property
    def name(self) -> str:
        """用于匹配和展示的名称：优先标签，其次本地名称。"""
        return self.label or self.local_name or local_name_of(self.iri)

    @property
    def is_object(self) -> bool:
        """是否为对象属性。"""
        return self.kind is PropertyKind.OBJECT


def _first(value: Any) -> str:
    """取定义域/值域的首个值（来源中可能是列表）。"""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    return str(value or "").strip()


def _identity_fields(raw: Mapping[str, Any], base_iri: str) -> dict[str, str]:
    """从原始记录中解析 iri、label 和 localName。

    Args:
        raw: 原始类或属性记录。
        base_iri: 记录缺少 IRI 时使用的命名空间前缀。

    Returns:
        包含 iri、label、local_name 的字典。

    Raises:
        ValueError: 记录既无 IRI 也无名称时抛出。
    """
    iri = str(raw.get("iri") or raw.get("uri") or "").strip()
    label = str(raw.get("label") or "").strip()
    local_name = str(raw.get("localName") or raw.get("local_name") or raw.get("name") or "").strip()

    if not iri:
        seed = local_name or label
        if not seed:
            raise ValueError(f"record has neither iri nor name: {dict(raw)}")
        iri = f"{base_iri}{seed.replace(' ', '')}"
    if not local_name:
        local_name = local_name_of(iri)
    return {"iri": iri, "label": label, "local_name": local_name}


class OntologyStructure(BaseModel):
    """本体结构快照。

    一次匹配过程使用的不可变快照。类和属性保持声明顺序，
    模糊匹配的平局按声明顺序取先出现者。

    Attributes:
        classes: 类定义序列。
        properties: 属性定义序列。
    """

    classes: tuple[OntologyClass, ...] = ()
    properties: tuple[OntologyProperty, ...] = ()
    model_config = ConfigDict(frozen=True)

    @property
    def is_empty(self) -> bool:
        """本体是否既无类也无属性。"""
        return not self.classes and not self.properties

    @property
    def version_id(self) -> str:
        """结构哈希。

        仅由类的 iri/label 与属性的 iri/label/kind 决定，
        用于判断已保存映射是否基于当前版本的本体。
        """
        payload = {
            "classes": [{"iri": c.iri, "label": c.label} for c in self.classes],
            "properties": [
                {"iri": p.iri, "label": p.label, "kind": p.kind.value} for p in self.properties
            ],
        }
        return compute_text_hash(orjson.dumps(payload).decode("utf-8"))

    def get_class(self, iri: str) -> OntologyClass | None:
        """根据 IRI 获取类定义。"""
        for cls in self.classes:
            if cls.iri == iri:
                return cls
        return None

    def get_property(self, iri: str) -> OntologyProperty | None:
        """根据 IRI 获取属性定义。"""
        for prop in self.properties:
            if prop.iri == iri:
                return prop
        return None

    @classmethod
    def from_raw(cls, data: Mapping[str, Any] | None, base_iri: str | None = None) -> OntologyStructure:
        """将来源数据规范化为本体结构。

        类和属性条目既可以是裸名称字符串，也可以是结构化记录：
        - 裸名称类：以名称作为标签和本地名称。
        - 裸名称属性：视为值域为 string 的数据属性。
        - 结构化属性：类别取自 kind 或 type；缺省时若值域指向已声明的类则视为对象属性。

        同一 IRI 重复出现时保留首次出现的定义。

        Args:
            data: 包含 classes、properties（以及可选 base_iri）的映射。
            base_iri: 命名空间前缀，优先于 data 中的 base_iri。

        Returns:
            规范化后的本体结构。

        Raises:
            ValueError: 条目格式不合法时抛出。
        """
        if not data:
            return cls()

        base = base_iri or data.get("base_iri") or data.get("baseIri") or DEFAULT_BASE_IRI

        classes: dict[str, OntologyClass] = {}
        for raw in data.get("classes") or []:
            if isinstance(raw, str):
                raw = {"label": raw, "localName": raw}
            if not isinstance(raw, Mapping):
                raise ValueError(f"invalid class entry: {raw!r}")
            ontology_class = OntologyClass(**_identity_fields(raw, base))
            classes.setdefault(ontology_class.iri, ontology_class)

        class_refs = _class_reference_set(classes.values())

        properties: dict[str, OntologyProperty] = {}
        for raw in data.get("properties") or []:
            if isinstance(raw, str):
                raw = {"label": raw, "localName": raw, "kind": PropertyKind.DATA.value}
            if not isinstance(raw, Mapping):
                raise ValueError(f"invalid property entry: {raw!r}")

            fields = _identity_fields(raw, base)
            domain = _first(raw.get("domain"))
            range_ = _first(raw.get("range"))
            kind_raw = raw.get("kind") or raw.get("type")
            if kind_raw:
                kind = PropertyKind.parse(str(kind_raw))
            elif range_ and (range_ in class_refs or local_name_of(range_) in class_refs):
                kind = PropertyKind.OBJECT
            else:
                kind = PropertyKind.DATA
            if kind is PropertyKind.DATA and not range_:
                range_ = DEFAULT_LITERAL_RANGE

            prop = OntologyProperty(**fields, kind=kind, domain=domain, range=range_)
            properties.setdefault(prop.iri, prop)

        return cls(classes=tuple(classes.values()), properties=tuple(properties.values()))


def _class_reference_set(classes: Iterable[OntologyClass]) -> set[str]:
    """收集可用于引用类的所有写法（IRI、标签、本地名称）。"""
    refs: set[str] = set()
    for cls in classes:
        refs.add(cls.iri)
        if cls.label:
            refs.add(cls.label)
        if cls.local_name:
            refs.add(cls.local_name)
    return refs


__all__ = [
    "OntologyClass",
    "OntologyProperty",
    "OntologyStructure",
    "PropertyKind",
]
