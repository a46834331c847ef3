"""
RRP Tests
Numbering, costing and approval of receive reconciliation documents
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict, List

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gims.core.config import settings
from gims.core.exceptions import BusinessRuleError, ConflictError, GIMSException
from gims.models import ReceiveRecord, RRPHeader, RRPLine
from gims.schemas import RRPCreate
from gims.services.procurement import RRPService


@pytest.fixture
def approved_receives(db_session: Session, approved_request) -> List[ReceiveRecord]:
    receives = [
        ReceiveRecord(
            receive_date=date(2025, 1, 20), request_fk=approved_request.id, nac_code="GT04552",
            part_number="HF-100", item_name="Hydraulic Filter", received_quantity=Decimal(qty),
            unit="EA", received_by="storekeeper", approval_status="APPROVED",
        )
        for qty in ("2", "3")
    ]
    db_session.add_all(receives)
    db_session.commit()
    return receives


def rrp_payload(receives: List[ReceiveRecord], number: str = "L001", **overrides) -> RRPCreate:
    data = {
        "type": "local",
        "rrp_number": number,
        "rrp_date": date(2025, 1, 25),
        "supplier": "Himalayan Traders",
        "created_by": "officer",
        "inspection_user": "inspector",
        "freight_charge": Decimal("50"),
        "vat_rate": Decimal("13"),
    }
    if "items" not in overrides:
        data["items"] = [
            {"receive_id": receives[0].id, "price": Decimal("100"), "vat_status": True},
            {"receive_id": receives[1].id, "price": Decimal("400"), "vat_status": False},
        ]
    data.update(overrides)
    return RRPCreate(**data)


class TestRRPCreation:

    def test_base_number_gets_counter(self, db_session: Session, app_config, approved_receives):
        result = RRPService(db_session).create_rrp(rrp_payload(approved_receives))

        assert result["rrp_number"] == "L001T1"
        header = db_session.query(RRPHeader).one()
        assert header.current_fy == "2081/82"
        assert header.inspection_details == {"inspection_user": "inspector"}
        assert all(r.rrp_fk is not None for r in db_session.query(ReceiveRecord).all())

    def test_line_costs(self, db_session: Session, app_config, approved_receives):
        RRPService(db_session).create_rrp(rrp_payload(approved_receives))

        first, second = db_session.query(RRPLine).order_by(RRPLine.id).all()
        assert first.freight_charge == Decimal("10.00")
        assert first.total_amount == Decimal("124.30")
        assert second.freight_charge == Decimal("40.00")
        assert second.total_amount == Decimal("440.00")
        assert second.vat_percentage == Decimal("0")

    def test_local_rrp_uses_default_currency(self, db_session: Session, app_config, approved_receives, monkeypatch):
        monkeypatch.setattr(settings, "DEFAULT_CURRENCY", "INR")

        RRPService(db_session).create_rrp(rrp_payload(approved_receives, currency="USD"))

        assert db_session.query(RRPHeader).one().currency == "INR"

    def test_requires_current_fy(self, db_session: Session, approved_receives):
        with pytest.raises(GIMSException, match="Current FY configuration not found"):
            RRPService(db_session).create_rrp(rrp_payload(approved_receives))

    def test_receive_cannot_join_two_rrps(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives))

        with pytest.raises(ConflictError):
            service.create_rrp(rrp_payload(approved_receives, "L002"))

    def test_rejected_number_reused(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives))
        service.reject_rrp("L001T1", "manager", "Wrong supplier")

        result = service.create_rrp(rrp_payload(approved_receives, "L001T1", supplier="Everest Supplies"))

        assert result["rrp_number"] == "L001T1"
        header = db_session.query(RRPHeader).one()
        assert header.supplier_name == "Everest Supplies"
        assert header.approval_status == "PENDING"

    def test_existing_number_not_rejected(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives[:1], items=[
            {"receive_id": approved_receives[0].id, "price": Decimal("100")},
        ]))

        with pytest.raises(BusinessRuleError, match="already exists and is not rejected"):
            service.create_rrp(rrp_payload(approved_receives, "L001T1", items=[
                {"receive_id": approved_receives[1].id, "price": Decimal("100")},
            ]))

    def test_foreign_rrp_converts_prices(self, db_session: Session, app_config, approved_receives):
        RRPService(db_session).create_rrp(rrp_payload(
            approved_receives, "F001", type="foreign", currency="USD", forex_rate=Decimal("133"),
            freight_charge=Decimal("0"), vat_rate=Decimal("0"),
        ))

        first = db_session.query(RRPLine).order_by(RRPLine.id).first()
        assert first.item_price == Decimal("100")
        assert first.total_amount == Decimal("13300.00")


class TestRRPTransitions:

    def test_approve_and_guard(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives))

        service.approve_rrp("L001T1", "manager")

        assert {line.approval_status for line in db_session.query(RRPLine).all()} == {"APPROVED"}
        with pytest.raises(BusinessRuleError, match="already approved"):
            service.reject_rrp("L001T1", "manager")

    def test_reject_releases_receives(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives))

        service.reject_rrp("L001T1", "manager", "Price mismatch")

        assert all(r.rrp_fk is None for r in db_session.query(ReceiveRecord).all())

    def test_line_rejection_releases_receive(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives))
        line = db_session.query(RRPLine).order_by(RRPLine.id).first()

        service.update_line_status(line.id, "REJECTED")

        db_session.refresh(approved_receives[0])
        assert approved_receives[0].rrp_fk is None
        with pytest.raises(ConflictError):
            service.update_line_status(line.id, "APPROVED")


class TestRRPNumbering:

    def test_verify_format(self, db_session: Session):
        with pytest.raises(BusinessRuleError, match="Invalid RRP number format"):
            RRPService(db_session).verify_rrp_number("X12", date(2025, 1, 1))

    def test_verify_duplicate_in_current_fy(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives))

        with pytest.raises(BusinessRuleError, match="Duplicate RRP number in current fiscal year"):
            service.verify_rrp_number("L001", date(2025, 2, 1))
        assert service.verify_rrp_number("L002", date(2025, 2, 1)) == {}

    def test_verify_counter_requires_rejected_rrp(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        service.create_rrp(rrp_payload(approved_receives))

        with pytest.raises(BusinessRuleError, match="Invalid RRP Number"):
            service.verify_rrp_number("L001T1", date(2025, 2, 1))

        service.reject_rrp("L001T1", "manager")
        assert service.verify_rrp_number("L001T1", date(2025, 2, 1)) == {"rrpNumber": "L001T1"}

    def test_latest_rrp(self, db_session: Session, app_config, approved_receives):
        service = RRPService(db_session)
        assert service.latest_rrp("local")["nextRRPNumber"] == "L001"

        service.create_rrp(rrp_payload(approved_receives))

        latest = service.latest_rrp("local")
        assert latest["rrpNumber"] == "L001T1"
        assert latest["nextRRPNumber"] == "L002"
        with pytest.raises(BusinessRuleError):
            service.latest_rrp("domestic")


class TestRRPAPI:

    def test_create_search_and_approve(
        self, client: TestClient, auth_headers: Dict[str, str], app_config, approved_receives
    ):
        payload = {
            "type": "local",
            "rrpNumber": "L001",
            "rrpDate": "2025-01-25",
            "supplier": "Himalayan Traders",
            "createdBy": "officer",
            "items": [{"receiveId": approved_receives[0].id, "price": 100}],
        }
        response = client.post("/api/rrp/", json=payload, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["rrp_number"] == "L001T1"

        pending = client.get("/api/rrp/pending", headers=auth_headers).json()["pendingRRPs"]
        assert [p["rrpNumber"] for p in pending] == ["L001T1"]

        found = client.get("/api/rrp/search?universal=Hydraulic", headers=auth_headers).json()
        assert found["pagination"]["totalCount"] == 1
        assert found["data"][0]["items"][0]["requestNumber"] == "GSEY82T1F81RN1"

        response = client.put("/api/rrp/L001T1/approve", json={"approvedBy": "manager"}, headers=auth_headers)
        assert response.status_code == 200

    def test_foreign_requires_currency(self, client: TestClient, auth_headers: Dict[str, str]):
        payload = {
            "type": "foreign",
            "rrpNumber": "F001",
            "rrpDate": "2025-01-25",
            "supplier": "Boeing",
            "createdBy": "officer",
            "items": [{"receiveId": 1, "price": 100}],
        }
        response = client.post("/api/rrp/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Currency is required for foreign RRP"

    def test_missing_rrp_is_not_found(self, client: TestClient, auth_headers: Dict[str, str]):
        assert client.get("/api/rrp/L999T1", headers=auth_headers).status_code == 404
