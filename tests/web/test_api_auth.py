"""Web API tests for registration and per-API-key rosters."""

from __future__ import annotations

from typing import Dict

import pytest
from flask import Flask
from flask.testing import FlaskClient

from tests.helpers import make_applicant, passports, register_user


@pytest.mark.web
class TestRegister:
    """Test POST /api/auth/register."""

    def test_register_returns_key(self, keyed_client: FlaskClient) -> None:
        response = keyed_client.post(
            "/api/auth/register", json={"email": "a@example.com", "password": "pw"}
        )

        assert response.status_code == 200
        body = response.get_json()
        assert set(body) == {"apiKey", "userId", "email"}
        assert body["email"] == "a@example.com"

    def test_register_is_idempotent(self, keyed_client: FlaskClient) -> None:
        first = register_user(keyed_client, "a@example.com", "pw")
        second = register_user(keyed_client, "a@example.com", "pw")
        assert first == second

    def test_wrong_password_is_401(self, keyed_client: FlaskClient) -> None:
        register_user(keyed_client, "a@example.com", "pw")

        response = keyed_client.post(
            "/api/auth/register", json={"email": "a@example.com", "password": "other"}
        )

        assert response.status_code == 401
        assert "error" in response.get_json()

    def test_missing_fields_is_400(self, keyed_client: FlaskClient) -> None:
        response = keyed_client.post("/api/auth/register", json={"email": "a@example.com"})
        assert response.status_code == 400

    def test_register_works_in_shared_mode(self, client: FlaskClient) -> None:
        response = client.post(
            "/api/auth/register", json={"email": "a@example.com", "password": "pw"}
        )
        assert response.status_code == 200


@pytest.mark.web
class TestCredentialGate:
    """Test API key enforcement."""

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/applicants"),
        ("post", "/api/applicants/sync"),
        ("put", "/api/applicants"),
        ("delete", "/api/applicants"),
        ("get", "/api/sync/status"),
    ])
    def test_missing_key_is_401(self, keyed_client: FlaskClient, method: str, path: str) -> None:
        response = getattr(keyed_client, method)(path, json={"applicants": []})

        assert response.status_code == 401
        assert response.get_json() == {"error": "API key required"}

    def test_unknown_key_is_401(self, keyed_client: FlaskClient) -> None:
        response = keyed_client.get("/api/applicants", headers={"X-API-Key": "rsk_nope"})

        assert response.status_code == 401
        assert response.get_json() == {"error": "Invalid API key"}

    def test_auth_checked_before_body(self, keyed_client: FlaskClient) -> None:
        response = keyed_client.post("/api/applicants/sync", json={"applicants": "bad"})
        assert response.status_code == 401

    def test_bearer_token_accepted(self, keyed_client: FlaskClient, auth_headers: Dict[str, str]) -> None:
        headers = {"Authorization": f"Bearer {auth_headers['X-API-Key']}"}
        assert keyed_client.get("/api/applicants", headers=headers).status_code == 200

    def test_health_needs_no_key(self, keyed_client: FlaskClient) -> None:
        assert keyed_client.get("/api/health").status_code == 200

    def test_shared_mode_ignores_keys(self, client: FlaskClient) -> None:
        response = client.get("/api/applicants", headers={"X-API-Key": "anything"})
        assert response.status_code == 200


@pytest.mark.web
class TestPartitions:
    """Test that each key sees its own roster."""

    def test_new_user_sees_empty_roster(
        self, keyed_client: FlaskClient, auth_headers: Dict[str, str]
    ) -> None:
        response = keyed_client.get("/api/applicants", headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()["applicants"] == []

    def test_users_are_isolated(self, keyed_client: FlaskClient) -> None:
        alice = register_user(keyed_client, "alice@example.com")
        bob = register_user(keyed_client, "bob@example.com")

        keyed_client.post(
            "/api/applicants/sync", json={"applicants": [make_applicant("A1")]}, headers=alice
        )
        keyed_client.post(
            "/api/applicants/sync", json={"applicants": [make_applicant("B1")]}, headers=bob
        )

        alice_data = keyed_client.get("/api/applicants", headers=alice).get_json()
        bob_data = keyed_client.get("/api/applicants", headers=bob).get_json()
        assert passports(alice_data["applicants"]) == ["A1"]
        assert passports(bob_data["applicants"]) == ["B1"]

    def test_delete_only_affects_caller(self, keyed_client: FlaskClient) -> None:
        alice = register_user(keyed_client, "alice@example.com")
        bob = register_user(keyed_client, "bob@example.com")
        for headers, key in ((alice, "A1"), (bob, "B1")):
            keyed_client.post(
                "/api/applicants/sync", json={"applicants": [make_applicant(key)]}, headers=headers
            )

        keyed_client.delete("/api/applicants", headers=alice)

        assert keyed_client.get("/api/applicants", headers=alice).get_json()["applicants"] == []
        assert len(keyed_client.get("/api/applicants", headers=bob).get_json()["applicants"]) == 1

    def test_health_totals_across_users(self, keyed_client: FlaskClient) -> None:
        alice = register_user(keyed_client, "alice@example.com")
        bob = register_user(keyed_client, "bob@example.com")
        keyed_client.post(
            "/api/applicants/sync",
            json={"applicants": [make_applicant("A1")], "groups": ["G"]},
            headers=alice,
        )
        keyed_client.post(
            "/api/applicants/sync",
            json={"applicants": [make_applicant("B1"), make_applicant("B2")]},
            headers=bob,
        )

        health = keyed_client.get("/api/health").get_json()

        assert health == {"status": "ok", "applicants": 3, "groups": 1}

    @pytest.mark.parametrize("method,body", [
        ("post", {"applicants": "P1"}),
        ("post", {"applicants": [], "groups": "Morning"}),
        ("put", {"applicants": {"PassportNo": "P1"}}),
        ("put", {"groups": 5}),
    ])
    def test_rejected_write_creates_no_partition(
        self,
        keyed_app: Flask,
        keyed_client: FlaskClient,
        auth_headers: Dict[str, str],
        method: str,
        body: Dict,
    ) -> None:
        path = "/api/applicants/sync" if method == "post" else "/api/applicants"

        response = getattr(keyed_client, method)(path, json=body, headers=auth_headers)

        assert response.status_code == 400
        tenants = keyed_app.extensions["rostersync"]["tenants"]
        assert auth_headers["X-API-Key"] not in tenants
        assert len(tenants) == 0

    def test_accepted_write_creates_partition(
        self, keyed_app: Flask, keyed_client: FlaskClient, auth_headers: Dict[str, str]
    ) -> None:
        keyed_client.post(
            "/api/applicants/sync", json={"applicants": []}, headers=auth_headers
        )

        assert auth_headers["X-API-Key"] in keyed_app.extensions["rostersync"]["tenants"]
