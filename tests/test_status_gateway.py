import pytest

from config.app_config import AppConfig, PathsConfig, ServiceConfig
from core.exceptions import ConfigurationError
from core.process_manager import FailureKind
from core.results import ErrorKind
from service.status_gateway import StatusGateway
from conftest import failed, ok

ALIASES = ("openvpn-server@server", "openvpn@server", "openvpn")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def gateway(fake_runner, sleeps, tmp_path):
    return StatusGateway(
        fake_runner,
        service_config=ServiceConfig(aliases=ALIASES, restart_settle_seconds=2.0),
        paths=PathsConfig(ovpn_config_dir=str(tmp_path),
                          status_log_paths=(str(tmp_path / "missing.log"), str(tmp_path / "status.log"))),
        sleep=sleeps.append
    )


class TestStatusGateway:
    """Alias walking, log retrieval, restart verification and client sources."""

    def test_status_first_active_alias_wins(self, gateway, fake_runner):
        fake_runner.on(["systemctl", "is-active"], failed(stdout="inactive\n", return_code=3))
        fake_runner.on(["systemctl", "is-active", "openvpn@server"], ok("active\n"))
        result = gateway.get_service_status()
        assert result.success
        assert result.data.active
        assert result.data.service_alias == "openvpn@server"
        assert fake_runner.commands() == [
            ["systemctl", "is-active", "openvpn-server@server"],
            ["systemctl", "is-active", "openvpn@server"],
        ]

    def test_status_inactive_when_no_alias_answers(self, gateway, fake_runner):
        fake_runner.on(["systemctl", "is-active"], failed(stdout="inactive\n", return_code=3))
        result = gateway.get_service_status()
        assert result.success
        assert result.data.to_dict() == {"status": "inactive", "active": False, "serviceName": None}
        assert len(fake_runner.calls) == 3

    @pytest.mark.parametrize("requested,expected", [
        (None, "200"), (0, "1"), (-5, "1"), (50, "50"), ("25", "25"), ("abc", "200"), (10 ** 6, "5000"),
    ])
    def test_logs_line_count_is_clamped(self, gateway, fake_runner, requested, expected):
        fake_runner.on(["journalctl"], ok("line\n"))
        gateway.get_logs(requested)
        assert fake_runner.commands()[0] == [
            "journalctl", "-u", "openvpn-server@server", "--no-pager", "-n", expected
        ]

    def test_logs_fall_through_empty_aliases(self, gateway, fake_runner):
        fake_runner.on(["journalctl"], ok("-- No entries --\n"))
        fake_runner.on(["journalctl", "-u", "openvpn"], ok("Nov 14 started\n"))
        result = gateway.get_logs(10)
        assert result.success
        assert result.data == "Nov 14 started\n"
        assert len(fake_runner.calls) == 3

    def test_logs_empty_when_every_alias_is_empty(self, gateway, fake_runner):
        fake_runner.on(["journalctl"], ok("-- No entries --\n"))
        result = gateway.get_logs()
        assert result.success
        assert result.data == ""
        assert result.message == "No log entries found"

    def test_logs_abort_on_auth_failure(self, gateway, fake_runner):
        fake_runner.on(["journalctl"], failed(FailureKind.AUTH_REQUIRED, "sudo: a password is required"))
        result = gateway.get_logs()
        assert result.error_kind is ErrorKind.AUTH_REQUIRED
        assert len(fake_runner.calls) == 1

    def test_logs_failure_when_nothing_answers(self, gateway, fake_runner):
        fake_runner.on(["journalctl"], failed(stderr="No journal files were found."))
        result = gateway.get_logs()
        assert result.error_kind is ErrorKind.EXTERNAL_TOOL_FAILURE
        assert "No journal files" in result.message

    def test_restart_verifies_alias(self, gateway, fake_runner, sleeps):
        fake_runner.on(["systemctl", "restart"], failed(stderr="Unit not found."))
        fake_runner.on(["systemctl", "restart", "openvpn@server"], ok())
        fake_runner.on(["systemctl", "is-active", "openvpn@server"], ok("active\n"))
        result = gateway.restart()
        assert result.success
        assert result.data.service_alias == "openvpn@server"
        assert sleeps == [2.0]
        assert fake_runner.commands()[-1] == ["systemctl", "is-active", "openvpn@server"]

    def test_restart_reports_inactive_after_restart(self, gateway, fake_runner):
        fake_runner.on(["systemctl", "restart"], ok())
        fake_runner.on(["systemctl", "is-active"], failed(stdout="failed\n", return_code=3))
        result = gateway.restart()
        assert not result.success
        assert result.error_kind is ErrorKind.EXTERNAL_TOOL_FAILURE
        assert ["systemctl", "restart", "openvpn@server"] not in fake_runner.commands()

    def test_restart_auth_failure_stops(self, gateway, fake_runner):
        fake_runner.on(["systemctl", "restart"], failed(FailureKind.AUTH_REQUIRED, "sudo: a password is required"))
        result = gateway.restart()
        assert result.error_kind is ErrorKind.AUTH_REQUIRED
        assert len(fake_runner.calls) == 1

    def test_restart_all_aliases_fail(self, gateway, fake_runner):
        fake_runner.on(["systemctl", "restart"], failed(stderr="Unit not found."))
        result = gateway.restart()
        assert result.error_kind is ErrorKind.EXTERNAL_TOOL_FAILURE
        assert len(fake_runner.calls) == 3

    def test_server_info_fields_fail_independently(self, gateway, fake_runner):
        fake_runner.on(["curl"], ok("<html>blocked</html>"))
        fake_runner.on(["hostname"], ok("vpn-host\n"))
        fake_runner.on(["hostname", "-I"], ok("192.168.1.10 10.8.0.1 \n"))
        fake_runner.on(["uptime"], failed(FailureKind.TIMEOUT))
        fake_runner.on(["cat"], ok('NAME="Debian"\nPRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\n'))
        result = gateway.get_server_info()
        assert result.success
        assert result.data.to_dict() == {
            "publicIp": "Unknown",
            "localIp": "192.168.1.10",
            "hostname": "vpn-host",
            "uptime": "Unknown",
            "os": "Debian GNU/Linux 12 (bookworm)",
        }

    def test_server_info_public_ip(self, gateway, fake_runner):
        fake_runner.on(["curl"], ok("203.0.113.9"))
        assert gateway.get_server_info().data.public_ip == "203.0.113.9"

    def test_clients_from_status_log(self, gateway, fake_runner, tmp_path):
        (tmp_path / "status.log").write_text(
            "CLIENT_LIST,alice,10.0.0.5:1194,10.8.0.2,1000,2000,1700000000\nROUTING_TABLE\nEND\n"
        )
        result = gateway.get_connected_clients()
        assert result.success
        assert result.data.source == str(tmp_path / "status.log")
        assert [client.username for client in result.data.clients] == ["alice"]
        assert fake_runner.calls == []

    def test_clients_fall_back_to_tool(self, gateway, fake_runner):
        fake_runner.on(["pivpn", "-c"], ok(
            "Name  Remote IP  Virtual IP  Bytes Received  Bytes Sent  Connected Since\n"
            "bob   1.2.3.4:1194  10.8.0.3  1KiB  2KiB  Nov 14 2023 - 22:13:20\n"
        ))
        result = gateway.get_connected_clients()
        assert result.data.source == "cli"
        assert result.data.clients[0].bytes_out == 2048

    def test_clients_empty_when_no_source(self, gateway, fake_runner):
        result = gateway.get_connected_clients()
        assert result.success
        assert result.data.clients == []
        assert result.data.source is None


def test_empty_alias_list_is_rejected(fake_runner, monkeypatch):
    with pytest.raises(ConfigurationError):
        StatusGateway(fake_runner, service_config=ServiceConfig(aliases=()))

    monkeypatch.setenv("OPENVPN_SERVICE_ALIASES", " , ")
    monkeypatch.setenv("JWT_SECRET", "x" * 32)
    monkeypatch.setenv("ADMIN_PASSWORD_HASH", "hash")
    config = AppConfig.from_env()
    assert config.service.aliases == ()
    with pytest.raises(ValueError, match="service alias"):
        config.validate()
