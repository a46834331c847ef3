"""
Record Maintenance Tests
Receive records, spare issue records, item details and location phrases
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gims.core.exceptions import BusinessRuleError, NotFoundError
from gims.models import IssueRecord, ReceiveRecord, RRPHeader, RRPLine, StockItem
from gims.schemas import IssueCreate, IssueRecordUpdate, ReceiveRecordUpdate
from gims.services.inventory import IssueRecordService, StockIssueService, StockMasterService
from gims.services.procurement import ReceiveRecordService


@pytest.fixture
def approved_receive(db_session: Session, approved_request, stock_item) -> ReceiveRecord:
    """Approved receive of 5 against the request, already counted in the stock balance"""
    receive = ReceiveRecord(
        receive_date=date(2025, 1, 20), request_fk=approved_request.id, nac_code="GT04552",
        part_number="HF-100", item_name="Hydraulic Filter", received_quantity=Decimal("5"),
        unit="EA", received_by="storekeeper", approval_status="APPROVED",
    )
    db_session.add(receive)
    db_session.commit()
    return receive


@pytest.fixture
def second_item(db_session: Session) -> StockItem:
    item = StockItem(nac_code="GT09999", item_name="Filter Element", current_balance=Decimal("5"), unit="EA")
    db_session.add(item)
    db_session.commit()
    return item


def issue(db: Session, quantity: str = "4", nac_code: str = "GT04552") -> IssueRecord:
    ids = StockIssueService(db).create_issue(IssueCreate(
        issue_date=date(2025, 4, 1),
        issued_by={"name": "Ram", "staffId": "S-12"},
        items=[{"nacCode": nac_code, "quantity": quantity, "equipmentNumber": "101"}],
    ))["issueIds"]
    return db.query(IssueRecord).filter(IssueRecord.id == ids[0]).one()


class TestReceiveRecords:

    def test_quantity_change_moves_stock(self, db_session: Session, approved_receive, stock_item):
        ReceiveRecordService(db_session).update_record(
            approved_receive.id, ReceiveRecordUpdate(received_quantity=Decimal("7"))
        )

        db_session.refresh(stock_item)
        assert stock_item.current_balance == Decimal("12")

    def test_quantity_above_request_refused(self, db_session: Session, approved_receive):
        with pytest.raises(BusinessRuleError, match="cannot be more than the requested quantity"):
            ReceiveRecordService(db_session).update_record(
                approved_receive.id, ReceiveRecordUpdate(received_quantity=Decimal("11"))
            )

    def test_reduction_below_zero_balance_refused(self, db_session: Session, approved_receive, stock_item):
        stock_item.current_balance = Decimal("1")
        db_session.commit()

        with pytest.raises(BusinessRuleError, match="Current balance: 1"):
            ReceiveRecordService(db_session).update_record(
                approved_receive.id, ReceiveRecordUpdate(received_quantity=Decimal("1"))
            )

        db_session.refresh(approved_receive)
        assert approved_receive.received_quantity == Decimal("5")

    def test_costed_receive_cannot_be_deleted(self, db_session: Session, approved_receive):
        approved_receive.rrp_fk = 1
        db_session.commit()

        with pytest.raises(BusinessRuleError, match="RRP has already been made"):
            ReceiveRecordService(db_session).delete_record(approved_receive.id)

    def test_delete_takes_stock_back_and_reopens_request(
        self, db_session: Session, approved_receive, approved_request, stock_item
    ):
        approved_request.is_received = True
        approved_request.receive_fk = approved_receive.id
        db_session.commit()

        ReceiveRecordService(db_session).delete_record(approved_receive.id)

        db_session.refresh(stock_item)
        db_session.refresh(approved_request)
        assert stock_item.current_balance == Decimal("5")
        assert approved_request.is_received is False
        assert approved_request.receive_fk is None

    def test_list_numbers_and_filters(
        self, client: TestClient, auth_headers: Dict[str, str], db_session: Session, approved_receive
    ):
        db_session.add(ReceiveRecord(
            receive_date=date(2025, 2, 1), nac_code="GT04552", received_quantity=Decimal("1"),
            received_by="tender clerk", approval_status="PENDING", receive_source="tender",
            tender_reference_number="T-77",
        ))
        db_session.commit()

        body = client.get("/api/receive-records/?status=APPROVED", headers=auth_headers).json()
        assert body["totalCount"] == 1
        assert body["data"][0]["receiveNumber"] == f"REC-{approved_receive.id}"
        assert body["data"][0]["requestNumber"] == "GSEY82T1F81RN1"

        body = client.get("/api/receive-records/?universal=T-77", headers=auth_headers).json()
        assert body["data"][0]["requestNumber"] == "TENDER-T-77"

        filters = client.get("/api/receive-records/filters", headers=auth_headers).json()
        assert filters == {"statuses": ["APPROVED", "PENDING"], "receivedBy": ["storekeeper", "tender clerk"]}

    def test_get_missing(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get("/api/receive-records/99", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Receive record not found"


class TestIssueRecords:

    def test_quantity_increase_takes_more_stock(self, db_session: Session, app_config, stock_item):
        record = issue(db_session, "4")

        updated = IssueRecordService(db_session).update_record(record.id, IssueRecordUpdate(issue_quantity=Decimal("6")))

        db_session.refresh(stock_item)
        assert stock_item.current_balance == Decimal("4")
        assert updated.remaining_balance == Decimal("4")

    def test_quantity_increase_beyond_stock(self, db_session: Session, app_config, stock_item):
        record = issue(db_session, "4")

        with pytest.raises(BusinessRuleError, match="Available: 6, Additional needed: 16"):
            IssueRecordService(db_session).update_record(record.id, IssueRecordUpdate(issue_quantity=Decimal("20")))

    def test_nac_change_moves_quantity(self, db_session: Session, app_config, stock_item, second_item):
        record = issue(db_session, "4")

        updated = IssueRecordService(db_session).update_record(record.id, IssueRecordUpdate(nac_code="GT09999"))

        db_session.refresh(stock_item)
        db_session.refresh(second_item)
        assert stock_item.current_balance == Decimal("10")
        assert second_item.current_balance == Decimal("1")
        assert updated.nac_code == "GT09999"
        assert updated.remaining_balance == Decimal("1")

    def test_nac_change_to_unknown_code(self, db_session: Session, app_config, stock_item):
        record = issue(db_session, "4")

        with pytest.raises(NotFoundError, match="New NAC code not found in stock"):
            IssueRecordService(db_session).update_record(record.id, IssueRecordUpdate(nac_code="GT00001"))

    def test_delete_restores_balance(self, db_session: Session, app_config, stock_item):
        record = issue(db_session, "4")

        IssueRecordService(db_session).delete_record(record.id)

        db_session.refresh(stock_item)
        assert stock_item.current_balance == Decimal("10")
        assert db_session.query(IssueRecord).count() == 0

    def test_list_leaves_out_fuel(
        self, client: TestClient, auth_headers: Dict[str, str], db_session: Session, app_config, stock_item
    ):
        db_session.add(StockItem(nac_code="GT 07986", item_name="Diesel", current_balance=Decimal("50")))
        db_session.commit()
        issue(db_session, "4")
        issue(db_session, "10", nac_code="GT 07986")

        body = client.get("/api/issue-records/?issuedBy=ram", headers=auth_headers).json()

        assert body["pagination"]["total"] == 1
        assert body["records"][0]["nac_code"] == "GT04552"
        assert body["records"][0]["item_name"] == "Hydraulic Filter"
        filters = client.get("/api/issue-records/filters", headers=auth_headers).json()
        assert filters["nacCodes"] == [{"nacCode": "GT04552", "itemName": "Hydraulic Filter"}]

    def test_update_requires_permission(self, client: TestClient, user_headers: Dict[str, str]):
        response = client.put("/api/issue-records/1", json={"issueQuantity": 2}, headers=user_headers)

        assert response.status_code == 403


class TestItemDetails:

    def test_true_balance_and_average_cost(self, db_session: Session, app_config, approved_receive, stock_item):
        header = RRPHeader(rrp_number="L001T1", supplier_name="Himalayan Traders", rrp_date=date(2025, 1, 25),
                           created_by="officer", approval_status="APPROVED")
        db_session.add(header)
        db_session.flush()
        line = RRPLine(rrp_id=header.id, receive_fk=approved_receive.id, total_amount=Decimal("500"),
                       approval_status="APPROVED")
        db_session.add(line)
        db_session.flush()
        approved_receive.rrp_fk = line.id
        db_session.commit()
        issue(db_session, "2")

        details = StockMasterService(db_session).item_details(stock_item.id)

        assert details["rrpQuantity"] == Decimal("5")
        assert details["issueQuantity"] == Decimal("2")
        assert details["trueBalance"] == Decimal("3")
        assert details["averageCostPerUnit"] == Decimal("100.00")
        assert details["altText"] == "Hydraulic Filter"

    def test_api_missing_item(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get("/api/stock/99/details", headers=auth_headers)

        assert response.status_code == 404


class TestLocationPhrasesAPI:

    def test_lifecycle(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/settings/location-phrases/", json={"phrase": " Rack A "}, headers=auth_headers)
        assert response.status_code == 201
        phrase_id = response.json()["id"]
        assert client.get("/api/settings/location-phrases/active", headers=auth_headers).json() == {"phrases": ["Rack A"]}

        response = client.put(
            f"/api/settings/location-phrases/{phrase_id}",
            json={"phrase": "Rack A", "isActive": False},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert client.get("/api/settings/location-phrases/active", headers=auth_headers).json() == {"phrases": []}

        assert client.delete(f"/api/settings/location-phrases/{phrase_id}", headers=auth_headers).status_code == 200
        assert client.get("/api/settings/location-phrases/", headers=auth_headers).json() == {"data": []}

    def test_phrase_required(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/settings/location-phrases/", json={"phrase": "  "}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Phrase is required"

    def test_update_missing(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.put("/api/settings/location-phrases/9", json={"phrase": "Rack B"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Location phrase not found"
