"""三元组预览测试。"""

from ontomap.core.models import ColumnMappingRecord
from ontomap.preview import PreviewTriple, build_preview_triples, lookup_mapping

ENTITY = "example:entity/0"


class TestBuildPreviewTriples:
    """预览三元组生成测试。"""

    def test_literal_and_link(self):
        """测试字面量与关联列的三元组形态。"""
        mappings = {
            "customer_id": ColumnMappingRecord(
                property_iri="p:hasCustomer",
                property_label="hasCustomer",
                linked_class_iri="c:Customer",
                linked_class_label="Customer",
            ),
            "amount": ColumnMappingRecord(property_iri="p:amount", property_label="amount"),
        }
        triples = build_preview_triples(mappings, {"customer_id": "C1", "amount": "10.5"}, "Order")

        assert triples == [
            PreviewTriple(ENTITY, "rdf:type", "Order"),
            PreviewTriple(ENTITY, "hasCustomer", "Customer:C1"),
            PreviewTriple(ENTITY, "amount", '"10.5"'),
        ]

    def test_ignored_column_produces_nothing(self):
        """测试被忽略的列不产生三元组。"""
        mappings = {
            "secret": ColumnMappingRecord(property_iri="p:secret", property_label="secret", ignore=True),
            "link": ColumnMappingRecord(linked_class_iri="c:X", linked_class_label="X", ignore=True),
        }
        triples = build_preview_triples(mappings, {"secret": "s3cr3t", "link": "x1"})
        assert triples == [PreviewTriple(ENTITY, "rdf:type", "Record")]

    def test_empty_values_and_unmapped_columns(self):
        """测试空值跳过，未映射列以列名为谓词。"""
        triples = build_preview_triples({}, {"a": "", "b": None, "c": 0, "notes": "hi"})
        assert [t.predicate for t in triples] == ["rdf:type", "c", "notes"]
        assert triples[1].object == '"0"'

    def test_link_without_label(self):
        """测试关联类缺少标签时使用 Entity。"""
        mappings = {"ref": ColumnMappingRecord(linked_class_iri="c:X", property_label="ref")}
        triples = build_preview_triples(mappings, {"ref": "7"})
        assert triples[1].object == "Entity:7"

    def test_sheet_keys(self):
        """测试按工作表键查找映射。"""
        mappings = {
            "Accounts:AccountID": ColumnMappingRecord(property_label="accountId"),
            "AccountID": ColumnMappingRecord(
                property_label="hasAccount", linked_class_iri="c:Account", linked_class_label="Account"
            ),
        }
        own = build_preview_triples(mappings, {"AccountID": "A1"}, "Account", sheet="Accounts")
        other = build_preview_triples(mappings, {"AccountID": "A1"}, "RiskScore", sheet="RiskScores")
        assert own[1] == PreviewTriple(ENTITY, "accountId", '"A1"')
        assert other[1] == PreviewTriple(ENTITY, "hasAccount", "Account:A1")


def test_lookup_mapping_prefers_sheet_key():
    flat = ColumnMappingRecord(property_label="flat")
    scoped = ColumnMappingRecord(property_label="scoped")
    mappings = {"col": flat, "S:col": scoped}
    assert lookup_mapping(mappings, "col", "S") is scoped
    assert lookup_mapping(mappings, "col", "T") is flat
    assert lookup_mapping(mappings, "col") is flat
    assert lookup_mapping(mappings, "other") is None
