import pytest

from core.process_manager import FailureKind
from conftest import failed, ok


@pytest.fixture
def runner(panel_app):
    return panel_app.runner


def test_status(client, auth_headers, runner):
    runner.on(["systemctl", "is-active"], ok("active\n"))
    response = client.get("/api/status", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["data"] == {
        "status": "active", "active": True, "serviceName": "openvpn-server@server"
    }


def test_logs_query_parameter(client, auth_headers, runner):
    runner.on(["journalctl"], ok("Nov 14 vpn started\n"))
    response = client.get("/api/logs?lines=20", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["logs"] == "Nov 14 vpn started\n"
    assert runner.commands()[0][-2:] == ["-n", "20"]


def test_logs_auth_required(client, auth_headers, runner):
    runner.on(["journalctl"], failed(FailureKind.AUTH_REQUIRED, "sudo: a password is required"))
    response = client.get("/api/logs", headers=auth_headers)
    assert response.status_code == 503


def test_restart(client, auth_headers, runner):
    runner.on(["systemctl", "restart"], ok())
    runner.on(["systemctl", "is-active"], ok("active\n"))
    response = client.post("/api/service/restart", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["serviceName"] == "openvpn-server@server"


def test_restart_failure(client, auth_headers, runner):
    runner.on(["systemctl", "restart"], failed(stderr="Unit not found."))
    response = client.post("/api/service/restart", headers=auth_headers)
    assert response.status_code == 502
    assert response.get_json()["error"] == "external_tool_failure"


def test_server_info(client, auth_headers, runner):
    runner.on(["hostname"], ok("vpn-host\n"))
    response = client.get("/api/server-info", headers=auth_headers)
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["hostname"] == "vpn-host"
    assert data["publicIp"] == "Unknown"


def test_clients_from_status_log(client, auth_headers, tmp_path):
    (tmp_path / "status.log").write_text(
        "CLIENT_LIST,alice,10.0.0.5:1194,10.8.0.2,1000,2000,1700000000\nROUTING_TABLE\n"
    )
    response = client.get("/api/clients", headers=auth_headers)
    data = response.get_json()["data"]
    assert data["count"] == 1
    assert data["clients"][0]["realAddress"] == "10.0.0.5"
    assert data["clients"][0]["connectedSince"] == "2023-11-14T22:13:20+00:00"


def test_clients_without_source(client, auth_headers):
    response = client.get("/api/clients", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["data"] == {"clients": [], "count": 0, "source": None}
