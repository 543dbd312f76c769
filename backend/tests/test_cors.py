from fastapi import status
from fastapi.testclient import TestClient

from vietadmin.main import app


def test_cors_preflight_options_admin_login() -> None:
    """Preflight to the login route answers with the configured origin."""
    client = TestClient(app)

    response = client.options(
        "/admin/auth/login",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_preflight_allows_authorization_header() -> None:
    client = TestClient(app)

    response = client.options(
        "/admin/modules",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "authorization",
        },
    )

    assert response.status_code == status.HTTP_200_OK
    assert "authorization" in response.headers["access-control-allow-headers"].lower()


def test_cors_rejects_unknown_origin() -> None:
    client = TestClient(app)

    response = client.options(
        "/admin/auth/login",
        headers={
            "Origin": "http://evil.example.com",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "access-control-allow-origin" not in response.headers


def test_healthcheck() -> None:
    client = TestClient(app)

    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}
