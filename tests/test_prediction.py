"""
Tests for Lead-Time Prediction
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gims.core.exceptions import NotFoundError
from gims.models import PredictionMetrics, ReceiveRecord, RequestRecord
from gims.services.prediction import PredictionService


def add_lead_time(db: Session, nac_code: str, requested: date, received: date, status: str = "APPROVED"):
    request = RequestRecord(
        request_number=f"R{requested.isoformat()}", request_date=requested, nac_code=nac_code,
        part_number="P1", item_name="Item", unit="EA", requested_quantity=Decimal("1"),
        current_balance="0", previous_rate="N/A", equipment_number="101", requested_by="requester",
        approval_status="APPROVED", is_received=True,
    )
    db.add(request)
    db.flush()
    db.add(ReceiveRecord(
        receive_date=received, request_fk=request.id, nac_code=nac_code, part_number="P1",
        item_name="Item", received_quantity=Decimal("1"), unit="EA", received_by="store",
        approval_status=status,
    ))
    db.commit()


@pytest.fixture
def lead_times(db_session: Session):
    add_lead_time(db_session, "GT04552", date(2025, 1, 1), date(2025, 1, 11))
    add_lead_time(db_session, "GT04552", date(2025, 2, 1), date(2025, 2, 21))
    add_lead_time(db_session, "GT04552", date(2025, 3, 1), date(2025, 3, 2), status="PENDING")
    add_lead_time(db_session, "GT09999", date(2025, 1, 5), date(2025, 1, 10))


class TestPredictionService:

    def test_refresh_all(self, db_session: Session, lead_times):
        assert PredictionService(db_session).refresh() == 2

        result = PredictionService(db_session).get_metrics("GT04552")
        assert result["sampleSize"] == 2
        assert result["predictedDays"] == 17
        assert result["rangeLowerDays"] == pytest.approx(11.0)
        assert result["rangeUpperDays"] == pytest.approx(19.0)
        assert result["stats"]["averageDays"] == pytest.approx(15.0)
        assert result["confidence"] == "LOW"

    def test_refresh_single_code_removes_stale_row(self, db_session: Session):
        db_session.add(PredictionMetrics(nac_code="GT00001", sample_size=1, confidence_level="LOW"))
        db_session.commit()

        assert PredictionService(db_session).refresh("GT00001") == 0
        assert db_session.query(PredictionMetrics).count() == 0

    def test_missing_metrics(self, db_session: Session):
        with pytest.raises(NotFoundError, match="No prediction metrics found for NAC code: GT00001"):
            PredictionService(db_session).get_metrics("GT00001")


class TestPredictionAPI:

    def test_refresh_then_batch(self, client: TestClient, auth_headers: Dict[str, str], lead_times):
        refreshed = client.post("/api/prediction/refresh", json={}, headers=auth_headers).json()
        assert refreshed == {"message": "Prediction metrics refreshed successfully", "updated": 2}

        body = client.post(
            "/api/prediction/batch", json={"nacCodes": ["GT09999", " ", "GT09999", "NOPE"]}, headers=auth_headers
        ).json()
        assert [row["nacCode"] for row in body["data"]] == ["GT09999"]
        assert body["data"][0]["predictedDays"] == 5

    def test_batch_needs_codes(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/prediction/batch", json={"nacCodes": []}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "nacCodes must be a non-empty array"

    def test_unknown_code(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get("/api/prediction/GT00001", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {
            "error": "Not Found",
            "message": "No prediction metrics found for NAC code: GT00001",
        }

    def test_list_with_search(self, client: TestClient, auth_headers: Dict[str, str], lead_times):
        client.post("/api/prediction/refresh", json={}, headers=auth_headers)

        body = client.get("/api/prediction/?search=4552", headers=auth_headers).json()

        assert body["pagination"]["total"] == 1
        assert body["data"][0]["nacCode"] == "GT04552"

    def test_list_requires_permission(self, client: TestClient, user_headers: Dict[str, str]):
        assert client.get("/api/prediction/", headers=user_headers).status_code == 403
