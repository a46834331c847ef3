"""
Request Record Tests
Line maintenance guarded by received quantities
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gims.core.exceptions import BusinessRuleError
from gims.models import ReceiveRecord, RequestRecord, PredictionMetrics
from gims.schemas import RequestRecordUpdate
from gims.services.procurement import RequestRecordService


def add_receive(db: Session, request: RequestRecord, quantity: str, status: str = "APPROVED") -> ReceiveRecord:
    receive = ReceiveRecord(
        receive_date=date(2025, 1, 20),
        request_fk=request.id,
        nac_code=request.nac_code,
        received_quantity=Decimal(quantity),
        received_by="storekeeper",
        approval_status=status,
    )
    db.add(receive)
    db.commit()
    return receive


class TestRequestRecordService:

    def test_quantity_below_received_rejected(self, db_session: Session, approved_request):
        add_receive(db_session, approved_request, "5")
        service = RequestRecordService(db_session)
        data = RequestRecordUpdate(
            request_number=approved_request.request_number,
            nac_code="GT04552",
            request_date=date(2025, 1, 10),
            part_number="HF-100",
            item_name="Hydraulic Filter",
            unit="EA",
            requested_quantity=Decimal("3"),
            equipment_number="101",
            requested_by="requester",
        )

        with pytest.raises(BusinessRuleError, match="Received quantity: 5"):
            service.update_record(approved_request.id, data)

    def test_received_request_cannot_be_deleted(self, db_session: Session, approved_request):
        receive = add_receive(db_session, approved_request, "10")
        approved_request.is_received = True
        approved_request.receive_fk = receive.id
        db_session.commit()

        with pytest.raises(BusinessRuleError, match="already been received"):
            RequestRecordService(db_session).delete_record(approved_request.id)

    def test_delete_detaches_pending_receives(self, db_session: Session, approved_request):
        receive = add_receive(db_session, approved_request, "2", status="PENDING")

        RequestRecordService(db_session).delete_record(approved_request.id)

        db_session.refresh(receive)
        assert receive.request_fk is None
        assert receive.approval_status == "PENDING"
        assert db_session.query(RequestRecord).count() == 0

    def test_delete_detaches_rejected_receives(self, db_session: Session, approved_request):
        receive = add_receive(db_session, approved_request, "2", status="REJECTED")

        RequestRecordService(db_session).delete_record(approved_request.id)

        db_session.refresh(receive)
        assert receive.request_fk is None
        assert db_session.query(RequestRecord).count() == 0

    def test_old_image_removed_when_replaced(self, db_session: Session, approved_request, upload_dir):
        folder = upload_dir / "request"
        folder.mkdir()
        (folder / "old.png").write_bytes(b"png")
        approved_request.image_path = "/images/request/old.png"
        db_session.commit()

        data = RequestRecordUpdate(
            request_number=approved_request.request_number,
            nac_code="GT04552",
            request_date=date(2025, 1, 10),
            part_number="HF-100",
            item_name="Hydraulic Filter",
            unit="EA",
            requested_quantity=Decimal("12"),
            equipment_number="101",
            requested_by="requester",
            image_path="/images/request/new.png",
        )
        record = RequestRecordService(db_session).update_record(approved_request.id, data)

        assert record.requested_quantity == Decimal("12")
        assert not (folder / "old.png").exists()


class TestRequestRecordsAPI:

    @pytest.mark.parametrize("approved, label", [
        ("6", "Partially Received"),
        ("10", "Received"),
        (None, "Not Received"),
    ])
    def test_receive_status_label(
        self, client: TestClient, auth_headers: Dict[str, str], db_session: Session,
        approved_request, approved, label
    ):
        if approved:
            add_receive(db_session, approved_request, approved)

        body = client.get("/api/request-records/", headers=auth_headers).json()

        assert body["totalCount"] == 1
        assert body["data"][0]["receive_status_label"] == label

    def test_pending_quantity_and_prediction_summary(
        self, client: TestClient, auth_headers: Dict[str, str], db_session: Session, approved_request
    ):
        add_receive(db_session, approved_request, "4")
        add_receive(db_session, approved_request, "3", status="PENDING")
        db_session.add(PredictionMetrics(
            nac_code="GT04552", sample_size=4, mean_days=12, weighted_average_days=11,
            percentile_10_days=5, percentile_90_days=20, confidence_level="LOW",
        ))
        db_session.commit()

        item = client.get("/api/request-records/", headers=auth_headers).json()["data"][0]

        assert Decimal(str(item["total_approved_quantity"])) == Decimal("4")
        assert Decimal(str(item["total_pending_quantity"])) == Decimal("3")
        assert item["prediction_summary"]["predicted_days"] == 11.0
        assert item["prediction_summary"]["confidence"] == "LOW"

    def test_filters_and_paging(
        self, client: TestClient, auth_headers: Dict[str, str], sample_request_record_data
    ):
        for n in range(3):
            payload = dict(sample_request_record_data, requestNumber=f"GSEY82T{n}F81RN{n}", equipmentNumber=f"10{n}")
            assert client.post("/api/request-records/", json=payload, headers=auth_headers).status_code == 201

        body = client.get("/api/request-records/?equipmentNumber=101", headers=auth_headers).json()
        assert body["totalCount"] == 1

        body = client.get("/api/request-records/?page=2&pageSize=2", headers=auth_headers).json()
        assert body["totalPages"] == 2
        assert len(body["data"]) == 1

        filters = client.get("/api/request-records/filters", headers=auth_headers).json()
        assert filters == {"statuses": ["PENDING"], "requestedBy": ["requester"]}

    def test_create_requires_fields(self, client: TestClient, auth_headers: Dict[str, str], sample_request_record_data):
        payload = dict(sample_request_record_data)
        del payload["itemName"]

        response = client.post("/api/request-records/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Required fields are missing"

    def test_update_below_received_is_bad_request(
        self, client: TestClient, auth_headers: Dict[str, str], db_session: Session,
        approved_request, sample_request_record_data
    ):
        add_receive(db_session, approved_request, "5")
        payload = dict(sample_request_record_data, requestedQuantity=3)

        response = client.put(f"/api/request-records/{approved_request.id}", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert "Received quantity: 5" in response.json()["message"]

    def test_requires_token(self, client: TestClient):
        response = client.get("/api/request-records/")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authenticated"
