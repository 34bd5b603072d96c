"""测试配置和共享 fixtures。"""

from pathlib import Path

import pytest
import yaml

from ontomap.core.models import OntologyStructure, SheetDescriptor, Workbook
from ontomap.store import MappingStore

ORDER_ONTOLOGY = {
    "classes": ["Customer", "Order"],
    "properties": [
        {"label": "hasCustomer", "kind": "objectProperty", "domain": "Order", "range": "Customer"},
        "amount",
        "status",
    ],
}

BANKING_ONTOLOGY = {
    "classes": ["Account", "RiskScore", "Customer"],
    "properties": [
        {"label": "accountId", "domain": "Account"},
        {"label": "balance", "domain": "Account"},
        {"label": "hasAccount", "type": "ObjectProperty", "domain": "RiskScore", "range": "Account"},
        {"label": "holdsAccount", "type": "ObjectProperty", "domain": "Customer", "range": "Account"},
        {"label": "score", "domain": "RiskScore"},
        {"label": "fullName", "domain": "Customer"},
    ],
}


@pytest.fixture
def order_structure() -> OntologyStructure:
    """订单本体：Customer 类与 hasCustomer 对象属性。"""
    return OntologyStructure.from_raw(ORDER_ONTOLOGY)


@pytest.fixture
def banking_structure() -> OntologyStructure:
    """银行本体：账户、风险评分与客户三个类。"""
    return OntologyStructure.from_raw(BANKING_ONTOLOGY)


@pytest.fixture
def banking_sheets() -> list[SheetDescriptor]:
    """与银行本体对应的三个工作表。"""
    return [
        SheetDescriptor(name="Accounts", headers=["AccountID", "balance"], row_count=2),
        SheetDescriptor(name="RiskScores", headers=["AccountID", "score"], row_count=2),
        SheetDescriptor(name="Customers", headers=["CustomerID", "fullName", "AccountID"], row_count=2),
    ]


@pytest.fixture
def banking_workbook(banking_sheets) -> Workbook:
    """银行工作簿。"""
    return Workbook(sheets=banking_sheets)


@pytest.fixture
def order_workbook() -> Workbook:
    """单工作表订单工作簿。"""
    return Workbook(
        sheets=[SheetDescriptor(name="orders", headers=["customer_id", "amount", "status"], row_count=1)],
        sample_rows={"orders": [{"customer_id": "C1", "amount": "10.5", "status": "open"}]},
    )


@pytest.fixture
def store(tmp_path) -> MappingStore:
    """临时映射存储。"""
    return MappingStore(tmp_path / "store" / "mappings.duckdb", max_history=3)


@pytest.fixture
def ontology_file(tmp_path) -> Path:
    """写入临时目录的订单本体 YAML 文件。"""
    path = tmp_path / "ontology.yaml"
    path.write_text(yaml.safe_dump(ORDER_ONTOLOGY), encoding="utf-8")
    return path


@pytest.fixture
def orders_csv(tmp_path) -> Path:
    """订单 CSV 文件。"""
    path = tmp_path / "orders.csv"
    path.write_text("customer_id,amount,status\nC1,10.5,open\nC2,20,closed\n", encoding="utf-8")
    return path


@pytest.fixture
def banking_ontology_file(tmp_path) -> Path:
    """写入临时目录的银行本体 YAML 文件。"""
    path = tmp_path / "banking.yaml"
    path.write_text(yaml.safe_dump(BANKING_ONTOLOGY), encoding="utf-8")
    return path


@pytest.fixture
def banking_csv_dir(tmp_path) -> Path:
    """客户与风险评分两个 CSV 组成的目录，按文件名排序后 Customers 在前。"""
    data_dir = tmp_path / "bank"
    data_dir.mkdir()
    (data_dir / "Customers.csv").write_text("CustomerID,fullName,AccountID\nU1,Ada,A1\n", encoding="utf-8")
    (data_dir / "RiskScores.csv").write_text("AccountID,score\nA1,7\n", encoding="utf-8")
    return data_dir
