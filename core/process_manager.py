"""
Bounded execution of external system commands.

Commands run without a shell, under a fixed locale, with a hard timeout and a
per-stream output cap. Expected failures come back as a CommandResult with a
FailureKind; only contract violations (an empty command) raise.
"""

import os
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

import psutil

from config.app_config import CommandConfig
from core.exceptions import CommandContractError
from core.logging_config import get_logger
from core.sanitizer import sanitize

_READ_CHUNK = 4096
_POLL_INTERVAL = 0.05
_KILL_GRACE = 1.0

AUTH_MARKERS = (
    "password is required",
    "a terminal is required",
    "no tty present",
    "[sudo] password for",
    "no askpass program",
)
NOT_FOUND_MARKERS = ("command not found",)


class FailureKind(Enum):
    NONE = "none"
    TIMEOUT = "timeout"
    AUTH_REQUIRED = "auth_required"
    COMMAND_NOT_FOUND = "command_not_found"
    NON_ZERO_EXIT = "non_zero_exit"


@dataclass
class CommandOptions:
    timeout_seconds: float = 30.0
    max_output_bytes: int = 512 * 1024
    working_dir: Optional[str] = None
    env: Optional[Dict[str, str]] = None
    input_text: Optional[str] = None
    keep_tabs: bool = False


@dataclass
class CommandResult:
    command: str
    success: bool
    stdout: str = ""
    stderr: str = ""
    failure_kind: FailureKind = FailureKind.NONE
    return_code: Optional[int] = None
    truncated: bool = False
    duration_ms: float = 0.0
    pid: Optional[int] = None
    message: str = ""

    def error_text(self) -> str:
        """Best human-readable explanation of a failure."""
        return self.stderr.strip() or self.message or self.stdout.strip()


class _StreamCollector(threading.Thread):
    """Drains one pipe, keeping at most ``limit`` bytes."""

    def __init__(self, stream, limit: int, overflow: threading.Event):
        super().__init__(daemon=True)
        self.stream = stream
        self.limit = limit
        self.overflow = overflow
        self.buffer = bytearray()

    def run(self) -> None:
        try:
            while True:
                chunk = self.stream.read1(_READ_CHUNK)
                if not chunk:
                    break
                room = self.limit - len(self.buffer)
                if len(chunk) > room:
                    self.buffer.extend(chunk[:max(room, 0)])
                    self.overflow.set()
                else:
                    self.buffer.extend(chunk)
        except (OSError, ValueError):
            # Pipe closed underneath us after the process tree was killed.
            pass
        finally:
            try:
                self.stream.close()
            except OSError:
                pass

    def text(self) -> str:
        return bytes(self.buffer).decode("utf-8", errors="replace")


def _feed_stdin(stream, data: bytes) -> None:
    try:
        stream.write(data)
    except (BrokenPipeError, OSError):
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass


class CommandRunner:
    """Runs external commands and classifies how they failed."""

    def __init__(self, config: Optional[CommandConfig] = None, logger=None):
        self.config = config or CommandConfig()
        self.logger = logger or get_logger(self.__class__.__name__)

    def default_options(self, **overrides) -> CommandOptions:
        options = CommandOptions(
            timeout_seconds=self.config.timeout_seconds,
            max_output_bytes=self.config.max_output_bytes
        )
        for key, value in overrides.items():
            setattr(options, key, value)
        return options

    def privileged(self, argv: Sequence[str]) -> List[str]:
        """Prefix a non-interactive sudo when configured to."""
        if self.config.use_sudo:
            return ["sudo", "-n", *argv]
        return list(argv)

    def execute(self, command: Union[str, Sequence[str]],
                options: Optional[CommandOptions] = None) -> CommandResult:
        argv = self._normalize(command)
        options = options or self.default_options()
        command_text = shlex.join(argv)
        started = time.monotonic()

        self.logger.info("Executing command", command=command_text)

        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE if options.input_text is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=options.working_dir,
                env=self._build_env(options.env),
                start_new_session=True
            )
        except FileNotFoundError as e:
            missing_binary = e.filename in (None, argv[0])
            kind = FailureKind.COMMAND_NOT_FOUND if missing_binary else FailureKind.NON_ZERO_EXIT
            message = f"{argv[0]}: command not found" if missing_binary else str(e)
            self.logger.error("Command could not be started", command=command_text, error=message)
            return CommandResult(command=command_text, success=False, failure_kind=kind, message=message)
        except OSError as e:
            self.logger.error("Command could not be started", command=command_text, error=str(e))
            return CommandResult(command=command_text, success=False,
                                 failure_kind=FailureKind.NON_ZERO_EXIT, message=str(e))

        overflow = threading.Event()
        stdout_reader = _StreamCollector(proc.stdout, options.max_output_bytes, overflow)
        stderr_reader = _StreamCollector(proc.stderr, options.max_output_bytes, overflow)
        stdout_reader.start()
        stderr_reader.start()
        if options.input_text is not None:
            threading.Thread(
                target=_feed_stdin,
                args=(proc.stdin, options.input_text.encode("utf-8")),
                daemon=True
            ).start()

        timed_out = self._wait(proc, options.timeout_seconds, overflow)
        truncated = overflow.is_set()
        if timed_out or (truncated and proc.returncode is None):
            self._kill_tree(proc)

        stdout_reader.join(_KILL_GRACE)
        stderr_reader.join(_KILL_GRACE)

        duration_ms = (time.monotonic() - started) * 1000
        stdout = sanitize(stdout_reader.text(), keep_tabs=options.keep_tabs)
        stderr = sanitize(stderr_reader.text())
        return_code = proc.returncode

        if timed_out:
            kind = FailureKind.TIMEOUT
            message = f"Command timed out after {options.timeout_seconds:g}s"
        elif truncated:
            kind = FailureKind.NON_ZERO_EXIT
            message = f"Command output exceeded {options.max_output_bytes} bytes"
        else:
            kind = self._classify(return_code, stderr)
            message = ""

        result = CommandResult(
            command=command_text,
            success=kind is FailureKind.NONE,
            stdout=stdout,
            stderr=stderr,
            failure_kind=kind,
            return_code=return_code,
            truncated=truncated,
            duration_ms=round(duration_ms, 1),
            pid=proc.pid,
            message=message
        )

        if result.success:
            self.logger.info("Command completed", command=command_text,
                             return_code=return_code, duration_ms=result.duration_ms)
        else:
            self.logger.warning("Command failed", command=command_text,
                                failure_kind=kind.value, return_code=return_code,
                                duration_ms=result.duration_ms, error=result.error_text())
        return result

    def _normalize(self, command: Union[str, Sequence[str]]) -> List[str]:
        if isinstance(command, str):
            argv = shlex.split(command)
        elif command is None:
            argv = []
        else:
            argv = [str(part) for part in command]
        if not argv or not argv[0].strip():
            raise CommandContractError("Command must not be empty")
        return argv

    def _build_env(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        env = dict(os.environ)
        if extra:
            env.update(extra)
        # Parsers depend on English, C-locale formatting.
        env["LANG"] = self.config.locale
        env["LC_ALL"] = self.config.locale
        return env

    def _wait(self, proc: subprocess.Popen, timeout: float, overflow: threading.Event) -> bool:
        """Wait for exit; return True when the deadline passed first."""
        deadline = time.monotonic() + timeout
        while True:
            try:
                proc.wait(timeout=_POLL_INTERVAL)
                return False
            except subprocess.TimeoutExpired:
                pass
            if overflow.is_set():
                return False
            if time.monotonic() >= deadline:
                return True

    def _kill_tree(self, proc: subprocess.Popen) -> None:
        """Terminate the process and every descendant, then reap it."""
        try:
            parent = psutil.Process(proc.pid)
            family = parent.children(recursive=True) + [parent]
        except psutil.NoSuchProcess:
            family = []

        for member in family:
            try:
                member.terminate()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                pass
        _, alive = psutil.wait_procs(family, timeout=_KILL_GRACE)
        for member in alive:
            try:
                member.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                self.logger.warning("Could not kill process", pid=member.pid, error=str(e))
        if alive:
            psutil.wait_procs(alive, timeout=_KILL_GRACE)

        try:
            proc.wait(timeout=_KILL_GRACE)
        except subprocess.TimeoutExpired:
            self.logger.error("Process did not exit after kill", pid=proc.pid)

    @staticmethod
    def _classify(return_code: Optional[int], stderr: str) -> FailureKind:
        text = stderr.lower()
        if any(marker in text for marker in AUTH_MARKERS):
            return FailureKind.AUTH_REQUIRED
        if return_code == 0:
            return FailureKind.NONE
        if return_code == 127 or any(marker in text for marker in NOT_FOUND_MARKERS):
            return FailureKind.COMMAND_NOT_FOUND
        return FailureKind.NON_ZERO_EXIT
