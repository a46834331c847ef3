"""
Tests for Uploads, Image Serving and Excel Exports
"""

import io
import pytest
from typing import Dict

from fastapi.testclient import TestClient
from openpyxl import load_workbook

from gims.core.exceptions import NotFoundError, ValidationError
from gims.services.file_storage import FileStorageService


class TestFileStorage:

    def test_resolve_refuses_paths_outside_root(self, upload_dir):
        (upload_dir.parent / "secret.txt").write_text("x")

        with pytest.raises(NotFoundError):
            FileStorageService().resolve("../secret.txt")

    def test_delete_public_path(self, upload_dir):
        (upload_dir / "request").mkdir()
        (upload_dir / "request" / "old.png").write_bytes(b"png")
        storage = FileStorageService()

        assert storage.delete_public_path("/images/request/old.png") is True
        assert not (upload_dir / "request" / "old.png").exists()
        assert storage.delete_public_path("/images/request/old.png") is False
        assert storage.delete_public_path("https://elsewhere/old.png") is False

    def test_folder_names_are_checked(self, upload_dir):
        class Upload:
            filename = "a.png"
            file = io.BytesIO(b"png")

        with pytest.raises(ValidationError, match="Invalid folder name"):
            FileStorageService().save_upload(Upload(), folder="../etc")


class TestUploadAPI:

    def test_upload_and_serve(self, client: TestClient, auth_headers: Dict[str, str], upload_dir):
        response = client.post(
            "/api/upload",
            files={"file": ("filter.png", b"\x89PNG data", "image/png")},
            data={"folder": "receive", "customName": "GT04552"},
            headers=auth_headers,
        )

        assert response.json() == {"success": True, "path": "/images/receive/GT04552.png"}
        assert (upload_dir / "receive" / "GT04552.png").read_bytes() == b"\x89PNG data"

        image = client.get("/api/images/receive/GT04552.png")
        assert image.status_code == 200
        assert image.headers["content-type"] == "image/png"
        assert image.headers["cache-control"] == "public, max-age=60, stale-while-revalidate=600"

    def test_upload_without_file(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/upload", data={"folder": "request"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "No file provided"

    def test_missing_image(self, client: TestClient):
        response = client.get("/api/images/request/none.png")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found", "message": "Not found"}


class TestExportAPI:

    def test_current_stock_workbook(self, client: TestClient, auth_headers: Dict[str, str], stock_item):
        response = client.get("/api/report/current-stock/excel", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "Current_Stock_Report_" in response.headers["content-disposition"]
        sheet = load_workbook(io.BytesIO(response.content)).active
        assert sheet.title == "Stock Report"
        assert sheet["A1"].value == "NAC Code"
        assert sheet["A2"].value == "GT04552"
        assert sheet["G2"].value == 10

    def test_empty_receive_rrp_workbook(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get(
            "/api/report/receive-rrp/excel?fromDate=2025-01-01&toDate=2025-01-31", headers=auth_headers
        )

        assert response.status_code == 200
        sheet = load_workbook(io.BytesIO(response.content)).active
        assert sheet["A1"].value == "No records found for the selected criteria"
        assert 'filename="Receive_RRP_Report_2025-01-01_2025-01-31.xlsx"' in response.headers["content-disposition"]

    def test_receive_rrp_needs_dates(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get("/api/report/receive-rrp/excel?fromDate=2025-01-01", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "fromDate and toDate are required"

    def test_export_requires_permission(self, client: TestClient, user_headers: Dict[str, str]):
        assert client.get("/api/report/current-stock/excel", headers=user_headers).status_code == 403
