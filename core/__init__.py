# Core module exports
from .types import *
from .exceptions import *
from .process_manager import CommandRunner, CommandOptions, CommandResult, FailureKind
from .results import ErrorKind, OperationResult
from .sanitizer import sanitize
from .validators import is_valid_username, validate_username

__all__ = [
    'CommandRunner',
    'CommandOptions',
    'CommandResult',
    'FailureKind',
    'ErrorKind',
    'OperationResult',
    'sanitize',
    'is_valid_username',
    'validate_username',
    'UserRecord',
    'UserStatus',
    'ConnectedClientRecord',
    'ClientSnapshot',
    'ServiceStatus',
    'ServerInfo',
    'PanelError',
    'UserAlreadyExistsError',
    'UserNotFoundError',
    'ConfigurationError',
    'ValidationError'
]
