"""
Custom exception classes for the OpenVPN admin panel.
Orchestrators convert these to result objects; they never reach a client raw.
"""

class PanelError(Exception):
    """Base exception for panel operations."""
    pass

class CommandContractError(PanelError):
    """Raised when a command is invoked with an invalid shape (e.g. empty)."""
    pass

class UserAlreadyExistsError(PanelError):
    """Raised when trying to create a user that already exists."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User '{username}' already exists")

class UserNotFoundError(PanelError):
    """Raised when trying to access a non-existent user."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User '{username}' not found")

class ArtifactNotFoundError(PanelError):
    """Raised when a user's configuration file is missing."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Configuration file for '{username}' not found")

class ConfigurationError(PanelError):
    """Raised when configuration is invalid or missing."""
    pass

class ValidationError(PanelError):
    """Raised when input validation fails."""

    def __init__(self, field: str, value: str, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(reason)

class AuthenticationError(PanelError):
    """Raised when admin authentication fails."""
    pass

class TokenError(AuthenticationError):
    """Raised when JWT token operations fail."""
    pass
