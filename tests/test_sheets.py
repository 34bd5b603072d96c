"""工作表上下文解析测试。"""

from ontomap.core.models import OntologyStructure, SheetDescriptor
from ontomap.matching import MatchingEngine, OntologyIndex, SheetContextResolver, match_workbook, resolve_primary_class


class TestInferSheetClass:
    """工作表主类推断测试。"""

    def test_exact_singular_and_prefix(self, banking_structure):
        """测试精确、单数化和前缀三种推断。"""
        resolver = SheetContextResolver(OntologyIndex(banking_structure))
        assert resolver.infer_sheet_class("Customer").name == "Customer"
        assert resolver.infer_sheet_class("Accounts").name == "Account"
        assert resolver.infer_sheet_class("risk_scores").name == "RiskScore"
        assert resolver.infer_sheet_class("CustomerData").name == "Customer"
        assert resolver.infer_sheet_class("Summary") is None
        assert resolver.infer_sheet_class("") is None

    def test_overrides_and_default(self, banking_structure):
        """测试调用方指定优先，推断失败回退默认主类。"""
        resolver = SheetContextResolver(OntologyIndex(banking_structure))
        account = banking_structure.classes[0]
        customer = banking_structure.classes[2]
        sheets = [SheetDescriptor(name="Accounts"), SheetDescriptor(name="Summary")]

        resolved = resolver.infer_primary_classes(sheets, account.iri, {"Accounts": "Customer"})
        assert resolved == {"Accounts": customer.iri, "Summary": account.iri}

    def test_unresolvable_override_falls_back_to_name(self, banking_structure):
        """测试无法解析的指定值回退到按名称推断。"""
        resolver = SheetContextResolver(OntologyIndex(banking_structure))
        resolved = resolver.infer_primary_classes([SheetDescriptor(name="Accounts")], "", {"Accounts": "Ledger"})
        assert resolved == {"Accounts": banking_structure.classes[0].iri}

    def test_no_default(self, banking_structure):
        """测试既无法推断也无默认主类的工作表不出现在结果中。"""
        resolver = SheetContextResolver(OntologyIndex(banking_structure))
        assert resolver.infer_primary_classes([SheetDescriptor(name="Summary")]) == {}


class TestRefine:
    """按工作表上下文修正测试。"""

    def _refine(self, structure, sheets):
        index = OntologyIndex(structure)
        headers = list(dict.fromkeys(h for s in sheets for h in s.headers))
        flat = MatchingEngine(index).match_columns(headers)
        resolver = SheetContextResolver(index)
        classes = resolver.infer_primary_classes(sheets, structure.classes[0].iri)
        return resolver.refine(flat, sheets, classes)

    def test_self_reference_demoted(self, banking_structure, banking_sheets):
        """测试工作表自身主键列降级为字面量，在其他表仍为外键。"""
        refined = self._refine(banking_structure, banking_sheets)

        own_key = refined["Accounts:AccountID"]
        assert not own_key.is_link
        assert own_key.property_label == "hasAccount"

        assert refined["RiskScores:AccountID"].linked_class_label == "Account"

        customer_key = refined["Customers:CustomerID"]
        assert not customer_key.is_link
        assert customer_key.property_label == "CustomerID"

    def test_domain_aware_property(self, banking_structure, banking_sheets):
        """测试值域相同的对象属性按工作表主类选择。"""
        refined = self._refine(banking_structure, banking_sheets)
        assert refined["RiskScores:AccountID"].property_label == "hasAccount"
        assert refined["Customers:AccountID"].property_label == "holdsAccount"
        assert refined["Customers:AccountID"].linked_class_label == "Account"

    def test_literals_unchanged(self, banking_structure, banking_sheets):
        """测试字面量列原样展开。"""
        refined = self._refine(banking_structure, banking_sheets)
        assert refined["Accounts:balance"].domain_label == "Account"
        assert refined["Customers:fullName"].property_label == "fullName"
        assert set(refined) == {
            "Accounts:AccountID",
            "Accounts:balance",
            "RiskScores:AccountID",
            "RiskScores:score",
            "Customers:CustomerID",
            "Customers:fullName",
            "Customers:AccountID",
        }


class TestMatchWorkbook:
    """工作簿匹配入口测试。"""

    def test_multi_sheet(self, banking_structure, banking_sheets):
        """测试多工作表返回 "sheet:column" 键与工作表主类。"""
        result = match_workbook(banking_structure, banking_sheets)
        assert "Customers:AccountID" in result.mappings
        assert result.sheet_classes["RiskScores"] == banking_structure.classes[1].iri
        assert result.primary_class == banking_structure.classes[0].iri

    def test_single_selected_sheet_is_flat(self, banking_structure, banking_sheets):
        """测试只选中一个工作表时返回扁平映射。"""
        result = match_workbook(banking_structure, banking_sheets, selected_sheets=["Customers"])
        assert list(result.mappings) == ["CustomerID", "fullName", "AccountID"]
        assert result.sheet_classes == {}

    def test_sheet_class_label_override(self, banking_structure, banking_sheets):
        """测试以类标签指定工作表主类。"""
        result = match_workbook(banking_structure, banking_sheets, sheet_classes={"Customers": "RiskScore"})
        assert result.sheet_classes["Customers"] == banking_structure.classes[1].iri
        assert result.mappings["Customers:AccountID"].property_label == "hasAccount"

    def test_no_ontology(self):
        """测试未提供本体时全部回退。"""
        result = match_workbook(None, [SheetDescriptor(name="s", headers=["a", "b"])])
        assert result.primary_class == ""
        assert all(not r.property_iri for r in result.mappings.values())


class TestResolvePrimaryClass:
    """默认主类测试。"""

    def test_preferred_and_first(self, banking_structure):
        """测试指定类存在时沿用，否则取首个类。"""
        customer = banking_structure.classes[2].iri
        assert resolve_primary_class(banking_structure, customer) == customer
        assert resolve_primary_class(banking_structure, "urn:missing") == banking_structure.classes[0].iri
        assert resolve_primary_class(OntologyStructure(), None) == ""
