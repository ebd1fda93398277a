import ipaddress
import os
import time
from typing import Callable, List, Optional, Union

from config.app_config import PathsConfig, ServiceConfig, ToolDialect
from config.constants import UNKNOWN
from core.client_parser import ConnectedClientParser
from core.exceptions import ConfigurationError
from core.logging_config import get_logger
from core.process_manager import CommandResult, CommandRunner, FailureKind
from core.results import ErrorKind, OperationResult, guarded
from core.types import ClientSnapshot, ServerInfo, ServiceStatus

NO_ENTRIES_MARKER = "-- No entries --"
DIAGNOSTIC_TIMEOUT_SECONDS = 10


class StatusGateway:
    """Service status, journal logs, host diagnostics and connected clients.

    Every service operation walks the configured alias list in order and
    stops at the first alias that answers.
    """

    def __init__(self, runner: CommandRunner, service_config: Optional[ServiceConfig] = None,
                 paths: Optional[PathsConfig] = None, dialect: Optional[ToolDialect] = None,
                 client_parser: Optional[ConnectedClientParser] = None,
                 sleep: Callable[[float], None] = time.sleep, logger=None):
        self.runner = runner
        self.config = service_config or ServiceConfig()
        if not self.config.aliases:
            raise ConfigurationError("At least one OpenVPN service alias is required")
        self.paths = paths or PathsConfig()
        self.dialect = dialect or ToolDialect()
        self.logger = logger or get_logger(self.__class__.__name__)
        self.client_parser = client_parser or ConnectedClientParser(self.dialect.tool, logger=self.logger)
        self.sleep = sleep

    @guarded("get service status")
    def get_service_status(self) -> OperationResult[ServiceStatus]:
        for alias in self.config.aliases:
            if self._is_active(alias):
                self.logger.debug("Service is active", service=alias)
                return OperationResult.ok(ServiceStatus(active=True, service_alias=alias))
        self.logger.info("No OpenVPN service alias is active", aliases=list(self.config.aliases))
        return OperationResult.ok(ServiceStatus(active=False, service_alias=None))

    def _is_active(self, alias: str) -> bool:
        result = self.runner.execute(["systemctl", "is-active", alias])
        return result.stdout.strip() == "active"

    def clamp_line_count(self, line_count: Union[int, str, None]) -> int:
        try:
            count = int(line_count) if line_count is not None else self.config.default_log_lines
        except (TypeError, ValueError):
            count = self.config.default_log_lines
        return max(1, min(count, self.config.max_log_lines))

    @guarded("read service logs")
    def get_logs(self, line_count: Union[int, str, None] = None) -> OperationResult[str]:
        count = self.clamp_line_count(line_count)
        last_failure: Optional[CommandResult] = None
        answered = False

        for alias in self.config.aliases:
            result = self.runner.execute(self.runner.privileged(
                ["journalctl", "-u", alias, "--no-pager", "-n", str(count)]
            ))
            if result.failure_kind is FailureKind.AUTH_REQUIRED:
                return OperationResult.from_command(result, "Failed to read logs")
            if not result.success:
                last_failure = result
                continue
            answered = True
            text = result.stdout.strip()
            if text and text != NO_ENTRIES_MARKER:
                return OperationResult.ok(result.stdout, message=f"Logs for {alias}")

        if answered:
            return OperationResult.ok("", message="No log entries found")
        return OperationResult.from_command(last_failure, "Failed to read logs")

    @guarded("restart service")
    def restart(self) -> OperationResult[ServiceStatus]:
        last_failure: Optional[CommandResult] = None

        for alias in self.config.aliases:
            result = self.runner.execute(self.runner.privileged(["systemctl", "restart", alias]))
            if result.failure_kind is FailureKind.AUTH_REQUIRED:
                return OperationResult.from_command(result, "Failed to restart service")
            if not result.success:
                last_failure = result
                continue

            self.logger.info("Service restarted", service=alias)
            if self.config.verify_restart:
                if self.config.restart_settle_seconds > 0:
                    self.sleep(self.config.restart_settle_seconds)
                if not self._is_active(alias):
                    self.logger.error("Service not active after restart", service=alias)
                    return OperationResult.fail(
                        ErrorKind.EXTERNAL_TOOL_FAILURE,
                        f"Service {alias} restarted but is not active"
                    )
            return OperationResult.ok(
                ServiceStatus(active=True, service_alias=alias),
                message=f"Service {alias} restarted successfully"
            )

        return OperationResult.from_command(last_failure, "Failed to restart service")

    @guarded("get server info")
    def get_server_info(self) -> OperationResult[ServerInfo]:
        info = ServerInfo(
            public_ip=self._public_ip(),
            local_ip=self._first_token(self._probe(["hostname", "-I"])),
            hostname=self._probe(["hostname"]) or UNKNOWN,
            uptime=self._probe(["uptime", "-p"]) or UNKNOWN,
            os=self._os_name()
        )
        return OperationResult.ok(info)

    def _probe(self, argv: List[str]) -> Optional[str]:
        result = self.runner.execute(
            argv, self.runner.default_options(timeout_seconds=DIAGNOSTIC_TIMEOUT_SECONDS)
        )
        if not result.success:
            return None
        return result.stdout.strip() or None

    def _public_ip(self) -> str:
        output = self._probe(["curl", "-s", "-m", "5", self.config.public_ip_endpoint])
        candidate = self._first_token(output)
        try:
            ipaddress.ip_address(candidate)
        except ValueError:
            return UNKNOWN
        return candidate

    @staticmethod
    def _first_token(output: Optional[str]) -> str:
        if not output:
            return UNKNOWN
        return output.split()[0]

    def _os_name(self) -> str:
        output = self._probe(["cat", self.config.os_release_file])
        if not output:
            return UNKNOWN
        for line in output.splitlines():
            key, _, value = line.partition("=")
            if key.strip() == "PRETTY_NAME":
                return value.strip().strip('"').strip("'") or UNKNOWN
        return UNKNOWN

    @guarded("get connected clients")
    def get_connected_clients(self) -> OperationResult[ClientSnapshot]:
        for path in self.paths.status_log_paths:
            text = self._read_status_log(path)
            if text is None:
                continue
            clients = self.client_parser.parse_status_log(text)
            self.logger.info("Read connected clients from status log", path=path, count=len(clients))
            return OperationResult.ok(ClientSnapshot(clients=clients, source=path))

        result = self.runner.execute(self.runner.privileged(self.dialect.connections_command()))
        if result.success:
            clients = self.client_parser.parse(result.stdout)
            self.logger.info("Read connected clients from tool", count=len(clients))
            return OperationResult.ok(ClientSnapshot(clients=clients, source="cli"))

        self.logger.warning("No connected-client source available",
                            failure_kind=result.failure_kind.value, error=result.error_text())
        return OperationResult.ok(ClientSnapshot(clients=[], source=None))

    def _read_status_log(self, path: str) -> Optional[str]:
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as handle:
                return handle.read(self.runner.config.max_output_bytes)
        except PermissionError:
            result = self.runner.execute(
                self.runner.privileged(["cat", path]), self.runner.default_options(keep_tabs=True)
            )
            return result.stdout if result.success else None
        except OSError as e:
            self.logger.warning("Failed to read status log", path=path, error=str(e))
            return None
