"""
API tests for the user endpoints, end to end through UserService.
"""

import pytest

from core.process_manager import FailureKind
from conftest import failed, ok

LISTING = """\
Status    Name          Expiration
Valid     alice         Jan 01 2030
"""


class TestUserRoutes:
    """Test cases for /api/users."""

    @pytest.fixture
    def runner(self, panel_app):
        return panel_app.runner

    def test_list_users(self, client, auth_headers, runner):
        runner.on(["pivpn", "-l"], ok(LISTING))
        response = client.get("/api/users", headers=auth_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["data"][0]["username"] == "alice"
        assert body["data"][0]["status"] == "active"

    def test_list_users_sudo_misconfigured(self, client, auth_headers, runner):
        runner.on(["pivpn"], failed(FailureKind.AUTH_REQUIRED, "sudo: a password is required"))
        response = client.get("/api/users", headers=auth_headers)
        assert response.status_code == 503
        assert response.get_json()["error"] == "auth_required"

    def test_add_user(self, client, auth_headers, runner, tmp_path):
        runner.on(["pivpn", "-l"], ok(LISTING))
        runner.on(["pivpn", "-a"], ok(), effect=lambda argv: (tmp_path / "bob.ovpn").write_text("client\n"))
        response = client.post("/api/users/add", json={"username": "bob", "days": "90"}, headers=auth_headers)
        assert response.status_code == 201
        assert response.get_json()["data"]["username"] == "bob"
        assert runner.commands()[-1] == ["pivpn", "-a", "-n", "bob", "-d", "90"]

    @pytest.mark.parametrize("payload", [
        {"username": "../etc"},
        {"username": "a b"},
        {},
        {"username": "bob", "days": "soon"},
        {"username": "bob", "days": 0},
        {"username": "bob", "days": 1.5},
        {"username": "bob", "days": True},
        {"username": "bob", "days": "1.5"},
    ])
    def test_add_user_invalid_input(self, client, auth_headers, runner, payload):
        response = client.post("/api/users/add", json=payload, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_input"
        assert runner.calls == []

    def test_add_existing_user(self, client, auth_headers, runner):
        runner.on(["pivpn", "-l"], ok(LISTING))
        response = client.post("/api/users/add", json={"username": "alice"}, headers=auth_headers)
        assert response.status_code == 409

    def test_add_user_timeout(self, client, auth_headers, runner):
        runner.on(["pivpn", "-l"], ok(LISTING))
        runner.on(["pivpn", "-a"], failed(FailureKind.TIMEOUT))
        response = client.post("/api/users/add", json={"username": "bob"}, headers=auth_headers)
        assert response.status_code == 504

    def test_revoke_user(self, client, auth_headers, runner, tmp_path):
        (tmp_path / "alice.ovpn").write_text("client\n")
        runner.on(["pivpn", "-r"], ok())
        response = client.post("/api/users/revoke", json={"username": "alice"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()["message"] == "User alice revoked successfully"
        assert not (tmp_path / "alice.ovpn").exists()

    def test_revoke_unknown_user(self, client, auth_headers, runner):
        runner.on(["pivpn", "-l"], ok(LISTING))
        response = client.post("/api/users/revoke", json={"username": "ghost"}, headers=auth_headers)
        assert response.status_code == 404

    def test_download_profile(self, client, auth_headers, tmp_path):
        (tmp_path / "alice.ovpn").write_text("client\nremote vpn.example 1194\n")
        response = client.get("/api/users/download/alice", headers=auth_headers)
        assert response.status_code == 200
        assert response.mimetype == "application/x-openvpn-profile"
        assert "alice.ovpn" in response.headers["Content-Disposition"]
        assert b"remote vpn.example" in response.data
        response.close()

    def test_download_missing_profile(self, client, auth_headers):
        response = client.get("/api/users/download/ghost", headers=auth_headers)
        assert response.status_code == 404

    def test_download_rejects_invalid_name(self, client, auth_headers):
        response = client.get("/api/users/download/a.b", headers=auth_headers)
        assert response.status_code == 400
