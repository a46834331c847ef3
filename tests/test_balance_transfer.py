"""
Balance Transfer Tests
Moving costed quantity between NAC codes and reverting it
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gims.core.exceptions import BusinessRuleError, NotFoundError
from gims.models import BalanceTransfer, IssueRecord, ReceiveRecord, RRPHeader, RRPLine, StockItem
from gims.schemas import BalanceTransferCreate
from gims.services.inventory import BalanceTransferService


@pytest.fixture
def costed_receive(db_session: Session, stock_item) -> ReceiveRecord:
    """Approved receive of 10 GT04552 costed at 1000 on an approved RRP"""
    header = RRPHeader(
        rrp_number="L001T1", supplier_name="Himalayan Traders", rrp_date=date(2025, 1, 25),
        created_by="officer", approval_status="APPROVED",
    )
    db_session.add(header)
    db_session.flush()
    receive = ReceiveRecord(
        receive_date=date(2025, 1, 20), nac_code="GT04552", part_number="HF-100", item_name="Hydraulic Filter",
        received_quantity=Decimal("10"), unit="EA", received_by="storekeeper", approval_status="APPROVED",
    )
    db_session.add(receive)
    db_session.flush()
    line = RRPLine(rrp_id=header.id, receive_fk=receive.id, total_amount=Decimal("1000"), approval_status="APPROVED")
    db_session.add(line)
    db_session.flush()
    receive.rrp_fk = line.id
    db_session.commit()
    return receive


@pytest.fixture
def destination(db_session: Session) -> StockItem:
    item = StockItem(nac_code="GT09999", item_name="Filter Element,Element", part_numbers="FE-1",
                     current_balance=Decimal("0"), unit="EA")
    db_session.add(item)
    db_session.commit()
    return item


def transfer_payload(quantity: str = "4", to_nac_code: str = "GT09999") -> BalanceTransferCreate:
    return BalanceTransferCreate(
        from_nac_code="GT04552",
        to_nac_code=to_nac_code,
        transfer_quantity=Decimal(quantity),
        transfer_date=date(2025, 4, 1),
        transferred_by="Ram",
    )


class TestBalanceTransferService:

    def test_transfer_moves_balance_at_unit_cost(
        self, db_session: Session, app_config, stock_item, costed_receive, destination
    ):
        result = BalanceTransferService(db_session).transfer_balance(transfer_payload())

        assert result["transferCost"] == Decimal("400.00")
        assert result["issueSlipNumber"] == "2025-04-01-001"
        db_session.refresh(stock_item)
        db_session.refresh(destination)
        db_session.refresh(costed_receive)
        assert stock_item.current_balance == Decimal("6")
        assert destination.current_balance == Decimal("4")
        assert costed_receive.transferred_quantity == Decimal("4")

        issue = db_session.query(IssueRecord).one()
        assert issue.approval_status == "APPROVED"
        assert issue.issued_for == "code_transfer_to_GT09999"
        receive = db_session.query(ReceiveRecord).filter(ReceiveRecord.nac_code == "GT09999").one()
        assert receive.approval_status == "APPROVED"
        assert receive.item_name == "Filter Element"
        line = db_session.query(RRPLine).filter(RRPLine.receive_fk == receive.id).one()
        assert line.header.rrp_number == "Code Transfer"
        assert line.total_amount == Decimal("400")

    def test_second_transfer_same_day_numbers_slip(
        self, db_session: Session, app_config, stock_item, costed_receive, destination
    ):
        service = BalanceTransferService(db_session)
        service.transfer_balance(transfer_payload("2"))

        result = service.transfer_balance(transfer_payload("2"))

        assert result["issueSlipNumber"] == "2025-04-01-002"

    def test_transferred_receive_is_not_transferable_again(
        self, db_session: Session, app_config, stock_item, costed_receive, destination
    ):
        service = BalanceTransferService(db_session)
        service.transfer_balance(transfer_payload("4"))

        items = service.transferable_items()

        assert [item["receiveId"] for item in items] == [costed_receive.id]
        assert items[0]["transferableQuantity"] == Decimal("6")

    def test_more_than_transferable_refused(
        self, db_session: Session, app_config, stock_item, costed_receive, destination
    ):
        with pytest.raises(BusinessRuleError, match="Insufficient transferrable quantity"):
            BalanceTransferService(db_session).transfer_balance(transfer_payload("11"))

    def test_destination_must_exist(self, db_session: Session, app_config, stock_item, costed_receive):
        with pytest.raises(NotFoundError, match="Destination NAC code does not exist"):
            BalanceTransferService(db_session).transfer_balance(transfer_payload(to_nac_code="GT00001"))

        db_session.refresh(stock_item)
        assert stock_item.current_balance == Decimal("10")

    def test_revert_restores_everything(
        self, db_session: Session, app_config, stock_item, costed_receive, destination
    ):
        service = BalanceTransferService(db_session)
        transfer_id = service.transfer_balance(transfer_payload())["transferId"]

        result = service.revert_transfer(transfer_id)

        assert result["details"]["quantity"] == Decimal("4")
        assert result["details"]["toNacCode"] == "GT09999"
        db_session.refresh(stock_item)
        db_session.refresh(destination)
        db_session.refresh(costed_receive)
        assert stock_item.current_balance == Decimal("10")
        assert destination.current_balance == Decimal("0")
        assert costed_receive.transferred_quantity == Decimal("0")
        assert db_session.query(BalanceTransfer).count() == 0
        assert db_session.query(IssueRecord).count() == 0
        assert db_session.query(ReceiveRecord).count() == 1

    def test_revert_missing(self, db_session: Session):
        with pytest.raises(NotFoundError, match="Balance transfer record not found"):
            BalanceTransferService(db_session).revert_transfer(99)


class TestBalanceTransferAPI:

    def test_same_code_rejected(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/balance-transfer/", json={
            "fromNacCode": "GT04552", "toNacCode": "GT04552", "transferQuantity": 1,
            "transferDate": "2025-04-01", "transferredBy": "Ram",
        }, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot transfer to the same NAC code"

    def test_missing_fields(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/balance-transfer/", json={"fromNacCode": "GT04552"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "All fields are required"

    def test_transfer_and_list(
        self, client: TestClient, auth_headers: Dict[str, str], app_config, stock_item, costed_receive, destination
    ):
        response = client.post("/api/balance-transfer/", json={
            "fromNacCode": "GT04552", "toNacCode": "GT09999", "transferQuantity": 3,
            "transferDate": "2025-04-01", "transferredBy": "Ram",
        }, headers=auth_headers)

        assert response.status_code == 201
        transfers = client.get("/api/balance-transfer/", headers=auth_headers).json()
        assert transfers[0]["fromNacCode"] == "GT04552"
        assert transfers[0]["issueSlipNumber"] == "2025-04-01-001"

    def test_revert_requires_permission(self, client: TestClient, user_headers: Dict[str, str]):
        assert client.delete("/api/balance-transfer/1", headers=user_headers).status_code == 403
