"""核心模型测试。"""

import pytest
from pydantic import ValidationError

from ontomap.constants import DEFAULT_BASE_IRI as BASE
from ontomap.core.models import (
    ColumnMappingRecord,
    MappingSnapshot,
    OntologyStructure,
    PropertyKind,
    SheetDescriptor,
    is_sheet_key,
    sheet_key,
)


class TestPropertyKind:
    """属性类别解析测试。"""

    @pytest.mark.parametrize("value", ["object", "objectProperty", "ObjectProperty", "owl:ObjectProperty"])
    def test_parse_object_aliases(self, value):
        """测试对象属性的各种写法。"""
        assert PropertyKind.parse(value) is PropertyKind.OBJECT

    @pytest.mark.parametrize("value", ["data", "DatatypeProperty", "dataProperty"])
    def test_parse_data_aliases(self, value):
        """测试数据属性的各种写法。"""
        assert PropertyKind.parse(value) is PropertyKind.DATA

    def test_parse_unknown(self):
        """测试无法识别的类别。"""
        with pytest.raises(ValueError, match="unknown property kind"):
            PropertyKind.parse("annotation")


class TestOntologyStructureFromRaw:
    """本体结构规范化测试。"""

    def test_bare_names(self):
        """测试裸名称条目。"""
        structure = OntologyStructure.from_raw({"classes": ["Customer"], "properties": ["amount"]})

        cls = structure.classes[0]
        assert cls.iri == f"{BASE}Customer"
        assert cls.name == "Customer"

        prop = structure.properties[0]
        assert prop.iri == f"{BASE}amount"
        assert prop.kind is PropertyKind.DATA
        assert prop.range == "string"

    def test_kind_inferred_from_range(self):
        """测试缺省类别时按值域推断对象属性。"""
        structure = OntologyStructure.from_raw(
            {
                "classes": ["Customer"],
                "properties": [{"label": "buyer", "range": "Customer"}, {"label": "total", "range": "decimal"}],
            }
        )
        buyer, total = structure.properties
        assert buyer.is_object
        assert not total.is_object
        assert total.range == "decimal"

    def test_explicit_iri_and_list_range(self):
        """测试显式 IRI 与列表形式的值域。"""
        structure = OntologyStructure.from_raw(
            {
                "classes": [{"iri": "http://acme.test/o#Vendor", "label": "Vendor"}],
                "properties": [
                    {
                        "iri": "http://acme.test/o#supplier",
                        "type": "objectProperty",
                        "range": ["http://acme.test/o#Vendor"],
                        "domain": [],
                    }
                ],
            }
        )
        prop = structure.properties[0]
        assert prop.range == "http://acme.test/o#Vendor"
        assert prop.domain == ""
        assert prop.name == "supplier"

    def test_base_iri_from_data(self):
        """测试数据中的 base_iri。"""
        structure = OntologyStructure.from_raw({"base_iri": "http://acme.test/o#", "classes": ["Order"]})
        assert structure.classes[0].iri == "http://acme.test/o#Order"

    def test_duplicates_keep_first(self):
        """测试重复 IRI 保留首次出现的定义。"""
        structure = OntologyStructure.from_raw(
            {"properties": [{"name": "amount", "label": "Amount"}, {"name": "amount", "label": "Total"}]}
        )
        assert len(structure.properties) == 1
        assert structure.properties[0].label == "Amount"

    def test_invalid_entry(self):
        """测试非法条目。"""
        with pytest.raises(ValueError):
            OntologyStructure.from_raw({"classes": [42]})

    def test_entry_without_name(self):
        """测试既无 IRI 也无名称的条目。"""
        with pytest.raises(ValueError, match="neither iri nor name"):
            OntologyStructure.from_raw({"properties": [{"range": "string"}]})

    def test_empty(self):
        """测试空输入。"""
        assert OntologyStructure.from_raw(None).is_empty
        assert OntologyStructure.from_raw({}).is_empty


class TestVersionId:
    """结构哈希测试。"""

    def test_stable(self, order_structure):
        """测试相同结构得到相同哈希。"""
        assert order_structure.version_id == OntologyStructure.from_raw(
            {"classes": ["Customer", "Order"], "properties": [
                {"label": "hasCustomer", "kind": "object", "domain": "Order", "range": "Customer"},
                "amount",
                "status",
            ]}
        ).version_id

    def test_changes_with_classes(self, order_structure):
        """测试类增删改变哈希。"""
        other = OntologyStructure.from_raw({"classes": ["Customer"], "properties": ["amount", "status"]})
        assert other.version_id != order_structure.version_id

    def test_lookup(self, order_structure):
        """测试按 IRI 查找。"""
        assert order_structure.get_class(f"{BASE}Customer").name == "Customer"
        assert order_structure.get_property(f"{BASE}amount").name == "amount"
        assert order_structure.get_class("missing") is None


class TestColumnMappingRecord:
    """映射记录测试。"""

    def test_aliases(self):
        """测试 camelCase 序列化。"""
        record = ColumnMappingRecord(property_iri="p", property_label="P", linked_class_iri="c")
        data = record.model_dump(by_alias=True)
        assert data == {
            "property": "p",
            "propertyLabel": "P",
            "linkedClass": "c",
            "linkedClassLabel": "",
            "domain": "",
            "domainLabel": "",
            "ignore": False,
        }
        assert ColumnMappingRecord.model_validate(data) == record

    def test_auto(self):
        """测试字面量回退记录。"""
        record = ColumnMappingRecord.auto("notes")
        assert record.property_iri == ""
        assert record.property_label == "notes"
        assert not record.is_link

    def test_as_literal_keeps_property(self):
        """测试降级为字面量时保留属性。"""
        record = ColumnMappingRecord(
            property_iri="p", property_label="P", linked_class_iri="c", linked_class_label="C", domain_iri="d"
        )
        literal = record.as_literal()
        assert literal.property_iri == "p"
        assert not literal.is_link
        assert literal.domain_iri == ""

    def test_frozen(self):
        """测试记录不可变。"""
        record = ColumnMappingRecord.auto("x")
        with pytest.raises(ValidationError):
            record.ignore = True


class TestWorkbook:
    """工作簿测试。"""

    def test_headers_union(self, banking_workbook):
        """测试列名有序并集。"""
        assert banking_workbook.headers == ["AccountID", "balance", "score", "CustomerID", "fullName"]
        assert banking_workbook.is_multi_sheet

    def test_select(self, banking_workbook):
        """测试选择工作表。"""
        assert [s.name for s in banking_workbook.select(["Customers"])] == ["Customers"]
        assert len(banking_workbook.select(None)) == 3
        assert banking_workbook.get_sheet("Missing") is None

    def test_alias_input(self):
        """测试别名输入。"""
        sheet = SheetDescriptor.model_validate({"name": "s", "headers": ["a"], "rowCount": 4})
        assert sheet.row_count == 4


class TestSheetKey:
    """工作表列键测试。"""

    def test_sheet_key(self):
        """测试列键构造与识别。"""
        key = sheet_key("Accounts", "AccountID")
        assert key == "Accounts:AccountID"
        assert is_sheet_key(key)
        assert not is_sheet_key("AccountID")


class TestMappingSnapshot:
    """映射快照测试。"""

    def test_requires_keys(self):
        """测试快照键不能为空。"""
        with pytest.raises(ValidationError):
            MappingSnapshot(ontology_id=" ", workspace_id="w")

    def test_summary(self):
        """测试历史摘要。"""
        snapshot = MappingSnapshot(
            ontology_id="o",
            workspace_id="w",
            mappings={"a": ColumnMappingRecord.auto("a")},
            source_headers=["a"],
            version=3,
        )
        summary = snapshot.summary()
        assert summary.version == 3
        assert summary.column_count == 1
        assert summary.source_headers == ["a"]
