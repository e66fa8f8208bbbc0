"""Tests for the access gate and CORS handling on the request path."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI
from fastapi.testclient import TestClient

ORIGIN = "http://app.example"


def _enable_cors(client: TestClient, headers: dict[str, str] | None = None) -> None:
    response = client.put("/_config/httpd/enable_cors", json="true", headers=headers)
    assert response.status_code == 200


def test_cors_disabled_by_default(client: TestClient) -> None:
    response = client.get("/", headers={"Origin": ORIGIN})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


def test_enabling_cors_applies_to_following_requests(client: TestClient) -> None:
    # The request that flips the flag was admitted under the old policy.
    response = client.put(
        "/_config/httpd/enable_cors", json="true", headers={"Origin": ORIGIN}
    )
    assert response.json() == ""
    assert "access-control-allow-origin" not in response.headers

    response = client.get("/", headers={"Origin": ORIGIN})

    assert response.headers["access-control-allow-origin"] == ORIGIN
    assert response.headers["access-control-allow-credentials"] == "true"
    assert "Origin" in response.headers["vary"]


def test_wildcard_without_credentials_sends_star(client: TestClient) -> None:
    _enable_cors(client)
    client.put("/_config/cors/credentials", json="false")

    response = client.get("/", headers={"Origin": ORIGIN})

    assert response.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in response.headers


def test_origin_allow_list(client: TestClient) -> None:
    _enable_cors(client)
    client.put("/_config/cors/origins", json=f"{ORIGIN}, http://other.example")

    allowed = client.get("/", headers={"Origin": ORIGIN})
    rejected = client.get("/", headers={"Origin": "http://evil.example"})

    assert allowed.headers["access-control-allow-origin"] == ORIGIN
    assert rejected.status_code == 200
    assert "access-control-allow-origin" not in rejected.headers


def test_disabling_cors_again_removes_headers(client: TestClient) -> None:
    _enable_cors(client)
    assert "access-control-allow-origin" in client.get("/", headers={"Origin": ORIGIN}).headers

    client.put("/_config/httpd/enable_cors", json="false")

    assert "access-control-allow-origin" not in client.get("/", headers={"Origin": ORIGIN}).headers


def test_preflight_answered_without_routing(client: TestClient) -> None:
    _enable_cors(client)
    client.put("/_config/cors/methods", json="GET, PUT")

    response = client.options(
        "/anydb",
        headers={
            "Origin": ORIGIN,
            "Access-Control-Request-Method": "PUT",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == 204
    assert response.headers["access-control-allow-methods"] == "GET, PUT"
    assert "content-type" in response.headers["access-control-allow-headers"]
    assert response.headers["access-control-allow-origin"] == ORIGIN


def test_open_gate_allows_mutations(client: TestClient) -> None:
    assert client.put("/open").status_code == 201


def test_guarded_gate_rejects_anonymous_mutations(
    make_app: Callable[..., FastAPI],
) -> None:
    with TestClient(make_app(username="admin", password="pw")) as client:
        response = client.put("/secret")

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"
    assert response.headers["www-authenticate"].startswith("Basic")


def test_guarded_gate_admits_reads_and_valid_credentials(
    make_app: Callable[..., FastAPI],
    basic_auth: Callable[[str, str], dict[str, str]],
) -> None:
    with TestClient(make_app(username="admin", password="pw")) as client:
        assert client.get("/_all_dbs").status_code == 200
        assert client.put("/secret", headers=basic_auth("admin", "pw")).status_code == 201
        assert client.put("/other", headers=basic_auth("admin", "nope")).status_code == 401
        assert client.get("/_all_dbs").json() == ["secret"]


def test_unauthorized_responses_carry_cors_headers(
    make_app: Callable[..., FastAPI],
    basic_auth: Callable[[str, str], dict[str, str]],
) -> None:
    with TestClient(make_app(username="admin", password="pw")) as client:
        _enable_cors(client, headers=basic_auth("admin", "pw"))

        response = client.delete("/anything", headers={"Origin": ORIGIN})

    assert response.status_code == 401
    assert response.headers["access-control-allow-origin"] == ORIGIN


def test_guarded_preflight_needs_no_credentials(
    make_app: Callable[..., FastAPI],
    basic_auth: Callable[[str, str], dict[str, str]],
) -> None:
    with TestClient(make_app(username="admin", password="pw")) as client:
        _enable_cors(client, headers=basic_auth("admin", "pw"))

        response = client.options(
            "/db", headers={"Origin": ORIGIN, "Access-Control-Request-Method": "PUT"}
        )

    assert response.status_code == 204
