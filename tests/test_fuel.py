"""
Fuel Tests
Fuel issues, odometer configuration and fuel receipts
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gims.core.exceptions import BusinessRuleError, ConflictError, ValidationError, NotFoundError
from gims.models import AppConfig, FuelRecord, IssueRecord, StockItem
from gims.schemas import FuelCreate, FuelReceiveCreate, FuelUpdate
from gims.services.inventory import FuelService, StockIssueService


@pytest.fixture
def diesel_stock(db_session: Session) -> StockItem:
    item = StockItem(nac_code="GT 07986", item_name="Diesel", current_balance=Decimal("100"), unit="L")
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture
def diesel_equipment(db_session: Session):
    db_session.add(AppConfig(
        config_type="fuel", config_name="valid_equipment_list_diesel", config_value="101, 102,Fork Lift,Cleaning"
    ))
    db_session.commit()


def fuel_payload(*lines, fuel_type: str = "diesel", issue_date: date = date(2025, 4, 2), price: str = "150") -> FuelCreate:
    return FuelCreate(
        issue_date=issue_date,
        issued_by="Ram",
        fuel_type=fuel_type,
        price=Decimal(price),
        records=[
            {"equipmentNumber": equipment, "kilometers": km, "quantity": qty}
            for equipment, km, qty in lines
        ],
    )


class TestFuelIssues:

    def test_records_are_backed_by_issues(self, db_session: Session, app_config, diesel_stock):
        result = FuelService(db_session).create_fuel_records(
            fuel_payload(("101", "1200", "20"), ("Cleaning", "0", "5"))
        )

        assert len(result["issueIds"]) == 2
        db_session.refresh(diesel_stock)
        assert diesel_stock.current_balance == Decimal("75")

        issue = db_session.query(IssueRecord).filter(IssueRecord.issued_for == "101").one()
        assert issue.nac_code == "GT 07986"
        assert issue.part_number == "N/A"
        assert issue.issued_by == {"name": "Ram", "staffId": "Ram"}
        record = db_session.query(FuelRecord).filter(FuelRecord.issue_fk == issue.id).one()
        assert record.kilometers == Decimal("1200")
        assert record.fuel_price == Decimal("150")
        assert record.week_number == 1
        assert record.fy == "2081/82"

    def test_week_number_follows_first_fuel_date(self, db_session: Session, app_config, diesel_stock):
        service = FuelService(db_session)
        service.create_fuel_records(fuel_payload(("101", "100", "1")))

        service.create_fuel_records(fuel_payload(("101", "150", "1"), issue_date=date(2025, 4, 13)))

        weeks = sorted(r.week_number for r in db_session.query(FuelRecord).all())
        assert weeks == [1, 3]

    def test_second_diesel_entry_same_day_refused(self, db_session: Session, app_config, diesel_stock):
        service = FuelService(db_session)
        service.create_fuel_records(fuel_payload(("101", "1200", "20")))

        with pytest.raises(ConflictError, match='Diesel entry already exists for equipment "101"'):
            service.create_fuel_records(fuel_payload(("101", "1250", "5")))

    def test_cleaning_may_repeat(self, db_session: Session, app_config, diesel_stock):
        service = FuelService(db_session)
        service.create_fuel_records(fuel_payload(("Cleaning", "0", "5")))

        service.create_fuel_records(fuel_payload(("Cleaning", "0", "5"), ("cleaning", "0", "5")))

        assert db_session.query(FuelRecord).count() == 3

    def test_total_checked_against_stock(self, db_session: Session, app_config, diesel_stock):
        with pytest.raises(BusinessRuleError, match="Total requested: 110L, Available: 100L"):
            FuelService(db_session).create_fuel_records(fuel_payload(("101", "0", "60"), ("102", "0", "50")))

        assert db_session.query(IssueRecord).count() == 0

    def test_unknown_fuel_type(self, db_session: Session, app_config, diesel_stock):
        with pytest.raises(ValidationError, match="Invalid fuel type"):
            FuelService(db_session).create_fuel_records(fuel_payload(("101", "0", "1"), fuel_type="kerosene"))

    def test_delete_restores_balance_and_issue(self, db_session: Session, app_config, diesel_stock):
        service = FuelService(db_session)
        service.create_fuel_records(fuel_payload(("101", "1200", "20")))
        record = db_session.query(FuelRecord).one()

        service.delete_fuel_record(record.id)

        db_session.refresh(diesel_stock)
        assert diesel_stock.current_balance == Decimal("100")
        assert db_session.query(IssueRecord).count() == 0

    def test_approve_marks_record_and_issue(self, db_session: Session, app_config, diesel_stock):
        service = FuelService(db_session)
        service.create_fuel_records(fuel_payload(("101", "1200", "20")))
        record = db_session.query(FuelRecord).one()

        service.approve_fuel_record(record.id, "manager")

        db_session.refresh(record)
        assert record.approval_status == "APPROVED"
        assert record.issue.approval_status == "APPROVED"
        assert record.issue.approved_by == "manager"
        with pytest.raises(ConflictError):
            service.approve_fuel_record(record.id, "manager")

    def test_issue_rejection_reaches_fuel_record(self, db_session: Session, app_config, diesel_stock):
        ids = FuelService(db_session).create_fuel_records(fuel_payload(("101", "1200", "20")))["issueIds"]

        StockIssueService(db_session).reject_issues(ids, "manager", "Wrong vehicle")

        record = db_session.query(FuelRecord).one()
        db_session.refresh(record)
        assert record.approval_status == "REJECTED"
        db_session.refresh(diesel_stock)
        assert diesel_stock.current_balance == Decimal("100")

    def test_update_odometer(self, db_session: Session, app_config, diesel_stock):
        service = FuelService(db_session)
        service.create_fuel_records(fuel_payload(("101", "1200", "20")))
        record = db_session.query(FuelRecord).one()

        updated = service.update_fuel_record(record.id, FuelUpdate(kilometers=Decimal("1300"), is_kilometer_reset=True))

        assert updated.kilometers == Decimal("1300")
        assert updated.is_kilometer_reset is True


class TestFuelConfigAndReceipts:

    def test_config_lists_equipment_with_last_reading(
        self, db_session: Session, app_config, diesel_stock, diesel_equipment
    ):
        FuelService(db_session).create_fuel_records(fuel_payload(("101", "1200", "20"), price="152.5"))

        config = FuelService(db_session).get_fuel_config("diesel")

        assert config["equipmentList"] == ["101", "102", "Cleaning"]
        assert config["equipmentKilometers"]["101"] == Decimal("1200")
        assert config["equipmentKilometers"]["102"] == Decimal("0")
        assert config["latestFuelPrice"] == Decimal("152.5")

    def test_missing_config(self, db_session: Session):
        with pytest.raises(NotFoundError, match="Fuel configuration not found"):
            FuelService(db_session).get_fuel_config("petrol")

    def test_receive_creates_fuel_stock(self, db_session: Session):
        service = FuelService(db_session)

        service.receive_fuel(FuelReceiveCreate(receive_date=date(2025, 4, 1), received_by="Ram", quantity=Decimal("50")))
        service.receive_fuel(FuelReceiveCreate(receive_date=date(2025, 4, 8), received_by="Ram", quantity=Decimal("30")))

        stock = db_session.query(StockItem).filter(StockItem.nac_code == "GT 00000").one()
        assert stock.current_balance == Decimal("80")
        assert stock.item_name == "Petrol"
        last = service.last_receive("petrol")
        assert last == {"lastReceiveDate": date(2025, 4, 8), "lastReceiveQuantity": Decimal("30")}


class TestFuelAPI:

    def test_create_and_list(self, client: TestClient, auth_headers: Dict[str, str], app_config, diesel_stock):
        payload = {
            "issueDate": "2025-04-02",
            "issuedBy": "Ram",
            "fuelType": "Diesel",
            "price": 150,
            "records": [{"equipmentNumber": "101", "kilometers": 1200, "quantity": 20}],
        }
        response = client.post("/api/fuel/", json=payload, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["message"] == "Fuel records created successfully"
        body = client.get("/api/fuel/?fuelType=diesel", headers=auth_headers).json()
        assert body["pagination"]["totalCount"] == 1
        assert body["data"][0]["equipmentNumber"] == "101"

    def test_missing_fields(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/fuel/", json={"issuedBy": "Ram"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"].startswith("Missing required fields")

    def test_receive_requires_petrol_permission(self, client: TestClient, user_headers: Dict[str, str]):
        response = client.post("/api/fuel/receive", json={
            "receiveDate": "2025-04-01", "receivedBy": "Ram", "quantity": 10,
        }, headers=user_headers)

        assert response.status_code == 403

    def test_approve_missing_record(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.put("/api/fuel/99/approve", json={}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Fuel record not found"
