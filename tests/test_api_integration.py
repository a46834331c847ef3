"""
API Integration Tests
Application wiring, authentication and error response format
"""

from datetime import datetime, timedelta
from typing import Dict

from fastapi.testclient import TestClient
from jose import jwt

from gims.core.config import settings
from gims.core.security import Permissions


class TestSystemEndpoints:

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "connected"

    def test_info(self, client: TestClient):
        body = client.get("/info").json()

        assert body["application"] == settings.APP_NAME
        assert body["api_prefix"] == "/api"


class TestAuthentication:

    def test_missing_token(self, client: TestClient):
        response = client.get("/api/stock/")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized", "message": "Not authenticated"}

    def test_tampered_token(self, client: TestClient):
        response = client.get("/api/stock/", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401
        assert response.json()["message"] == "Could not validate credentials"

    def test_expired_token(self, client: TestClient):
        token = jwt.encode(
            {"sub": "admin", "permissions": [], "exp": datetime.utcnow() - timedelta(minutes=1)},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )

        response = client.get("/api/stock/", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_missing_permission(self, client: TestClient, headers_for):
        response = client.get("/api/asset-types/", headers=headers_for(Permissions.ISSUE_ITEMS))

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden", "message": "Insufficient permissions"}


class TestErrorFormat:

    def test_unknown_route(self, client: TestClient):
        response = client.get("/api/no-such-thing")

        assert response.status_code == 404
        assert response.json()["message"] == "Not Found"

    def test_malformed_body(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post("/api/issue/", json={"items": "many"}, headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Bad Request"
        assert body["details"]

    def test_wrong_method(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.patch("/api/stock/", headers=auth_headers)

        assert response.status_code == 405
        assert response.json()["error"] == "Error"
