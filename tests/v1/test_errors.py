# tests/v1/test_errors.py
"""Tests for the error envelope and system endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from inspira.services import posts as post_service


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client) -> None:
    body = client.get("/").json()

    assert body["name"]
    assert body["docs"] == "/docs"


def test_unknown_route_uses_envelope(client) -> None:
    response = client.get("/api/v1/nowhere")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "E_NOT_FOUND"


def test_malformed_body_is_400(client, make_user, make_post) -> None:
    user = make_user("User")
    post_id = make_post(user)

    response = client.post(
        f"/api/v1/posts/{post_id}/comments",
        content=b"{not json",
        headers={**user.headers, "Content-Type": "application/json"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "E_INVALID_REQUEST"


def test_invalid_path_parameter_is_400(client) -> None:
    response = client.get("/api/v1/posts/not-a-number")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "E_INVALID_REQUEST"


def test_unexpected_error_is_generic_500(app, monkeypatch) -> None:
    def explode(db):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(post_service, "home_stats", explode)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/v1/posts/home")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {
        "error": {"code": "E_INTERNAL", "message": "Internal server error"}
    }
