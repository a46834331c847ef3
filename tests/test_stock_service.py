"""
Tests for Stock Services
Stock master maintenance, balance movements and issues
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gims.core.exceptions import BusinessRuleError, ConflictError, GIMSException, NotFoundError
from gims.models import IssueRecord, StockItem
from gims.schemas import IssueCreate, StockItemCreate
from gims.services.inventory import StockMasterService, StockIssueService


def issue_payload(*lines, issue_date: date = date(2025, 4, 1)) -> IssueCreate:
    return IssueCreate(
        issue_date=issue_date,
        issued_by={"name": "Ram", "staffId": "S-12"},
        items=[{"nacCode": nac, "quantity": qty, "equipmentNumber": "101"} for nac, qty in lines],
    )


class TestStockMasterService:

    def test_create_item_expands_equipment(self, db_session: Session):
        item = StockMasterService(db_session).create_item(StockItemCreate(
            nac_code="GT01000", item_name="Brake Pad", part_number="BP-1", equipment_number="101-103,GPU1",
            current_balance=Decimal("5"), location="R1", card_number="C1",
        ))

        assert item.applicable_equipments == "101,102,103,GPU1"
        assert item.part_numbers == "BP-1"

    def test_create_duplicate_code(self, db_session: Session, stock_item):
        with pytest.raises(ConflictError, match="NAC Code already exists"):
            StockMasterService(db_session).create_item(StockItemCreate(
                nac_code="GT04552", item_name="Filter", part_number="HF-1", equipment_number="101",
                current_balance=Decimal("1"), location="R1", card_number="C1",
            ))

    def test_apply_receipt_merges_names_in_front(self, db_session: Session, stock_item):
        service = StockMasterService(db_session)

        item = service.apply_receipt("GT04552", Decimal("2"), item_name="Oil Filter",
                                     part_number="HF-200", equipment_number="103")

        assert item.current_balance == Decimal("12")
        assert item.item_name == "Oil Filter,Hydraulic Filter"
        assert item.part_numbers == "HF-200,HF-100"
        assert item.applicable_equipments == "103,101,102"

    def test_apply_receipt_requires_code(self, db_session: Session):
        with pytest.raises(BusinessRuleError):
            StockMasterService(db_session).apply_receipt("  ", Decimal("1"))

    def test_deduct_refuses_negative_balance(self, db_session: Session, stock_item):
        service = StockMasterService(db_session)

        with pytest.raises(BusinessRuleError, match="Insufficient stock"):
            service.deduct("GT04552", Decimal("11"))
        assert service.deduct("GT04552", Decimal("11"), clamp=True).current_balance == Decimal("0")


class TestStockIssueService:

    def test_issue_deducts_and_numbers_slip(self, db_session: Session, app_config, stock_item):
        result = StockIssueService(db_session).create_issue(issue_payload(("GT04552", "4")))

        assert result["issueSlipNumber"] == "1Y2081/82"
        issue = db_session.query(IssueRecord).one()
        assert issue.remaining_balance == Decimal("6")
        assert issue.issued_by == {"name": "Ram", "staffId": "S-12"}

    def test_slip_number_counts_days_in_fiscal_year(self, db_session: Session, app_config, stock_item):
        service = StockIssueService(db_session)
        service.create_issue(issue_payload(("GT04552", "1")))

        result = service.create_issue(issue_payload(("GT04552", "1"), issue_date=date(2025, 4, 10)))

        assert result["issueSlipNumber"] == "10Y2081/82"

    def test_backdated_issue_uses_day_one(self, db_session: Session, app_config, stock_item):
        service = StockIssueService(db_session)
        service.create_issue(issue_payload(("GT04552", "1"), issue_date=date(2025, 4, 10)))

        result = service.create_issue(issue_payload(("GT04552", "1"), issue_date=date(2025, 4, 1)))

        assert result["issueSlipNumber"] == "1Y2081/82"

    def test_decision_with_unknown_id_names_it(self, db_session: Session, app_config, stock_item):
        service = StockIssueService(db_session)
        ids = service.create_issue(issue_payload(("GT04552", "4")))["issueIds"]

        with pytest.raises(NotFoundError, match="Issue records not found: 999"):
            service.approve_issues(ids + [999], "manager")

        issue = db_session.query(IssueRecord).one()
        assert issue.approval_status == "PENDING"

    def test_lines_checked_against_running_balance(self, db_session: Session, app_config, stock_item):
        with pytest.raises(GIMSException) as exc_info:
            StockIssueService(db_session).create_issue(issue_payload(("GT04552", "6"), ("GT04552", "6"), ("GT00000", "1")))

        details = exc_info.value.details
        assert [d["originalIndex"] for d in details] == [1, 2]
        assert "Available: 4" in details[0]["message"]
        db_session.refresh(stock_item)
        assert stock_item.current_balance == Decimal("10")

    def test_reject_restores_balance(self, db_session: Session, app_config, stock_item):
        service = StockIssueService(db_session)
        ids = service.create_issue(issue_payload(("GT04552", "4")))["issueIds"]

        service.reject_issues(ids, "manager", "Not needed")

        db_session.refresh(stock_item)
        assert stock_item.current_balance == Decimal("10")
        with pytest.raises(ConflictError):
            service.approve_issues(ids, "manager")

    def test_requires_current_fy(self, db_session: Session, stock_item):
        with pytest.raises(GIMSException, match="Current FY configuration not found"):
            StockIssueService(db_session).create_issue(issue_payload(("GT04552", "1")))


class TestStockAPI:

    def test_search_and_get(self, client: TestClient, auth_headers: Dict[str, str], stock_item):
        body = client.get("/api/stock/?search=HF-100", headers=auth_headers).json()

        assert body["pagination"]["totalCount"] == 1
        assert body["data"][0]["nac_code"] == "GT04552"

        item = client.get(f"/api/stock/{stock_item.id}", headers=auth_headers).json()
        assert item["part_numbers"] == "HF-100"

    def test_create_requires_all_fields(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/stock/", json={"nacCode": "GT01000"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "All fields are required"

    def test_delete_requires_permission(self, client: TestClient, user_headers: Dict[str, str], stock_item):
        assert client.delete(f"/api/stock/{stock_item.id}", headers=user_headers).status_code == 403

    def test_issue_validation_failure_body(
        self, client: TestClient, auth_headers: Dict[str, str], app_config, stock_item
    ):
        payload = {
            "issueDate": "2025-04-01",
            "issuedBy": {"name": "Ram", "staffId": "S-12"},
            "items": [{"nacCode": "GT04552", "quantity": 50, "equipmentNumber": "101"}],
        }
        response = client.post("/api/issue/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation Failed"
        assert body["details"][0]["nacCode"] == "GT04552"

    def test_issue_approve(
        self, client: TestClient, auth_headers: Dict[str, str], db_session: Session, app_config, stock_item
    ):
        payload = {
            "issueDate": "2025-04-01",
            "issuedBy": {"name": "Ram", "staffId": "S-12"},
            "items": [{"nacCode": "GT04552", "quantity": 2, "equipmentNumber": "101"}],
        }
        ids = client.post("/api/issue/", json=payload, headers=auth_headers).json()["issueIds"]

        response = client.put("/api/issue/approve", json={"ids": ids}, headers=auth_headers)

        assert response.json()["count"] == 1
        assert db_session.query(IssueRecord).one().approved_by == "admin"
        assert client.get("/api/issue/pending", headers=auth_headers).json() == []
