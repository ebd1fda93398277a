import os
import sys
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import bcrypt

from api.app import create_app
from config.app_config import (
    AppConfig,
    CommandConfig,
    PathsConfig,
    SecurityConfig,
    ServiceConfig,
    ToolDialect,
    set_config
)
from core.dependency_container import cleanup_container, get_container
from core.process_manager import CommandOptions, CommandResult, CommandRunner, FailureKind


def ok(stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(command="", success=True, stdout=stdout, stderr=stderr, return_code=0)


def failed(kind: FailureKind = FailureKind.NON_ZERO_EXIT, stderr: str = "",
           stdout: str = "", return_code: Optional[int] = 1) -> CommandResult:
    return CommandResult(command="", success=False, stdout=stdout, stderr=stderr,
                         failure_kind=kind, return_code=return_code)


class FakeRunner(CommandRunner):
    """CommandRunner double that answers scripted argv prefixes and spawns nothing."""

    def __init__(self, use_sudo: bool = False):
        super().__init__(CommandConfig(use_sudo=use_sudo))
        self.calls: List[Tuple[List[str], Optional[CommandOptions]]] = []
        self._routes: List[Tuple[List[str], object, Optional[Callable]]] = []

    def on(self, prefix: Sequence[str], response, effect: Optional[Callable] = None) -> None:
        """Register a response (CommandResult or list of them, consumed in order)."""
        self._routes.append((list(prefix), response, effect))

    def execute(self, command, options=None) -> CommandResult:
        argv = self._normalize(command)
        self.calls.append((argv, options))
        for prefix, response, effect in reversed(self._routes):
            if argv[:len(prefix)] != prefix:
                continue
            if effect is not None:
                effect(argv)
            if isinstance(response, list):
                return response.pop(0) if len(response) > 1 else response[0]
            return response
        return failed(FailureKind.COMMAND_NOT_FOUND, stderr=f"{argv[0]}: command not found", return_code=127)

    def commands(self) -> List[List[str]]:
        return [argv for argv, _ in self.calls]


@pytest.fixture
def fake_runner():
    return FakeRunner()


ADMIN_PASSWORD = "panel-password"


@pytest.fixture
def panel_app(tmp_path):
    """Full application wired to a scripted runner and a temporary profile directory."""
    config = AppConfig(
        security=SecurityConfig(
            admin_username="admin",
            admin_password_hash=bcrypt.hashpw(ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode(),
            jwt_secret="a" * 32
        ),
        dialect=ToolDialect(structured_list=False),
        service=ServiceConfig(restart_settle_seconds=0),
        paths=PathsConfig(ovpn_config_dir=str(tmp_path), status_log_paths=(str(tmp_path / "status.log"),))
    )
    app = create_app(config)
    app.config['TESTING'] = True
    runner = FakeRunner()
    get_container().register_instance('command_runner', runner)
    app.runner = runner
    yield app
    cleanup_container()
    set_config(None)


@pytest.fixture
def client(panel_app):
    return panel_app.test_client()


@pytest.fixture
def auth_headers(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.get_json()['data']['token']}"}
