import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from config.app_config import ToolDialect
from core.artifact_store import ArtifactStore
from core.exceptions import UserAlreadyExistsError, UserNotFoundError
from core.logging_config import get_logger
from core.process_manager import CommandResult, CommandRunner, FailureKind
from core.results import ErrorKind, OperationResult, guarded
from core.types import FilePath, Username, UserRecord
from core.user_list_parser import UserListParser
from core.validators import validate_username

DUPLICATE_MARKERS = ("already exists", "name is already in use")
# The tool never ran; deleting its artifact would destroy a live profile.
_NOT_EXECUTED = (FailureKind.AUTH_REQUIRED, FailureKind.COMMAND_NOT_FOUND)


class KeyedLock:
    """One mutex per key, dropped once no thread holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class UserService:
    """Lists, creates and revokes VPN users through the client-management tool.

    The tool is the only source of truth. Outcomes are verified against the
    generated profile and a fresh listing rather than exit codes alone.
    """

    def __init__(self, runner: CommandRunner, artifacts: ArtifactStore,
                 dialect: Optional[ToolDialect] = None,
                 parser: Optional[UserListParser] = None, logger=None):
        self.runner = runner
        self.artifacts = artifacts
        self.dialect = dialect or ToolDialect()
        self.logger = logger or get_logger(self.__class__.__name__)
        self.parser = parser or UserListParser(self.dialect.tool, logger=self.logger)
        self.locks = KeyedLock()

    @guarded("list users")
    def list_users(self) -> OperationResult[List[UserRecord]]:
        users, failure = self._fetch_users()
        if failure is not None:
            return OperationResult.from_command(failure, "Failed to list users")
        return OperationResult.ok(users)

    def _fetch_users(self) -> Tuple[List[UserRecord], Optional[CommandResult]]:
        if self.dialect.structured_list:
            result = self.runner.execute(self.runner.privileged(self.dialect.list_command(structured=True)))
            if result.failure_kind is FailureKind.AUTH_REQUIRED:
                return [], result
            if result.success:
                users = self.parser.parse_json(result.stdout)
                if users is not None:
                    return users, None
            self.logger.debug("Structured listing unavailable, falling back to text")

        result = self.runner.execute(self.runner.privileged(self.dialect.list_command()))
        if not result.success:
            return [], result
        return self.parser.parse(result.stdout), None

    def _find(self, username: Username) -> Tuple[Optional[UserRecord], Optional[CommandResult]]:
        users, failure = self._fetch_users()
        match = next((user for user in users if user.username == username and user.is_active), None)
        if match is None:
            match = next((user for user in users if user.username == username), None)
        return match, failure

    @guarded("create user")
    def create(self, username: str, days: Optional[int] = None) -> OperationResult[UserRecord]:
        username = validate_username(username)
        if days is not None and (not isinstance(days, int) or isinstance(days, bool) or days < 1):
            return OperationResult.fail(ErrorKind.INVALID_INPUT, "Validity days must be a positive integer")

        with self.locks.hold(username):
            if self.artifacts.exists(username):
                raise UserAlreadyExistsError(username)
            existing, failure = self._find(username)
            if failure is not None:
                if failure.failure_kind is FailureKind.AUTH_REQUIRED:
                    return OperationResult.from_command(failure, "Failed to create user")
                self.logger.warning("Could not list users before creation",
                                    username=username, error=failure.error_text())
            if existing is not None and existing.is_active:
                raise UserAlreadyExistsError(username)

            self.logger.info("Creating user", username=username, days=days)
            result = self.runner.execute(self.runner.privileged(self.dialect.add_command(username, days)))
            output = f"{result.stdout}\n{result.stderr}".lower()
            if any(marker in output for marker in DUPLICATE_MARKERS):
                raise UserAlreadyExistsError(username)

            artifact_present = self.artifacts.exists(username)
            if not result.success:
                if artifact_present:
                    self.logger.warning("Create command failed but profile exists", username=username)
                    return OperationResult.fail(
                        ErrorKind.PARTIAL_SUCCESS,
                        f"User {username} may have been created; the tool reported: {result.error_text()}",
                        data=UserRecord(username=username)
                    )
                return OperationResult.from_command(result, f"Failed to create user {username}")

            if not artifact_present:
                self.logger.error("Create command succeeded but no profile was generated", username=username)
                return OperationResult.fail(
                    ErrorKind.PARTIAL_SUCCESS,
                    f"User {username} was not verified: configuration file was not generated"
                )

            self.logger.info("User created", username=username)
            return OperationResult.ok(UserRecord(username=username),
                                      message=f"User {username} created successfully")

    @guarded("revoke user")
    def revoke(self, username: str) -> OperationResult[UserRecord]:
        username = validate_username(username)

        with self.locks.hold(username):
            had_artifact = self.artifacts.exists(username)
            if not had_artifact:
                existing, failure = self._find(username)
                if failure is not None:
                    return OperationResult.from_command(failure, "Failed to revoke user")
                if existing is None or not existing.is_active:
                    raise UserNotFoundError(username)

            self.logger.info("Revoking user", username=username)
            confirmations = "y\n" * self.dialect.revoke_confirmations
            result = self.runner.execute(
                self.runner.privileged(self.dialect.revoke_command(username)),
                self.runner.default_options(input_text=confirmations)
            )

            if result.failure_kind in _NOT_EXECUTED:
                return OperationResult.from_command(result, f"Failed to revoke user {username}")

            if had_artifact and not self.artifacts.delete(username):
                self.logger.warning("Profile could not be removed after revoke", username=username)

            if not result.success:
                remaining, failure = self._find(username)
                if failure is None and (remaining is None or not remaining.is_active):
                    self.logger.info("Revoke reported failure but user is gone", username=username)
                    return OperationResult.ok(message=f"User {username} revoked successfully")
                return OperationResult.fail(
                    ErrorKind.PARTIAL_SUCCESS,
                    f"Revoke of {username} could not be confirmed: {result.error_text()}"
                )

            self.logger.info("User revoked", username=username)
            return OperationResult.ok(message=f"User {username} revoked successfully")

    @guarded("locate configuration file")
    def get_config_path(self, username: str) -> OperationResult[FilePath]:
        username = validate_username(username)
        return OperationResult.ok(self.artifacts.require(username))
