"""
Location of generated client profiles (``<dir>/<username>.ovpn``).
"""

import os
from typing import Optional

from config.app_config import PathsConfig
from core.exceptions import ArtifactNotFoundError, ValidationError
from core.logging_config import get_logger
from core.types import FilePath
from core.validators import is_safe_path_component, validate_username


class ArtifactStore:
    """Builds traversal-safe profile paths and removes stale profiles."""

    def __init__(self, config: Optional[PathsConfig] = None, logger=None):
        self.config = config or PathsConfig()
        self.logger = logger or get_logger(self.__class__.__name__)

    @property
    def directory(self) -> str:
        return os.path.realpath(self.config.ovpn_config_dir)

    def path_for(self, username: str) -> FilePath:
        if not isinstance(username, str) or not is_safe_path_component(username):
            raise ValidationError("username", str(username), "Invalid username")
        username = validate_username(username)

        path = os.path.join(self.directory, f"{username}{self.config.artifact_extension}")
        if os.path.dirname(os.path.realpath(path)) != self.directory:
            raise ValidationError("username", username, "Invalid username")
        return path

    def exists(self, username: str) -> bool:
        return os.path.isfile(self.path_for(username))

    def require(self, username: str) -> FilePath:
        """Path of an existing profile; raises ArtifactNotFoundError otherwise."""
        path = self.path_for(username)
        if not os.path.isfile(path):
            raise ArtifactNotFoundError(username)
        return path

    def delete(self, username: str) -> bool:
        """Remove a profile. Returns False when it could not be removed."""
        path = self.path_for(username)
        try:
            os.remove(path)
        except FileNotFoundError:
            return True
        except OSError as e:
            self.logger.warning("Failed to delete profile", username=username, path=path, error=str(e))
            return False
        self.logger.info("Deleted profile", username=username, path=path)
        return True
