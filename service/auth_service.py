"""
Authentication service for the single panel administrator.
"""

import hmac
import threading
import time
from typing import Dict, Any, List, Optional

import bcrypt

from config.app_config import SecurityConfig
from core.exceptions import AuthenticationError, ConfigurationError, ValidationError
from core.jwt_service import JWTService
from core.logging_config import get_logger


class AuthService:
    """
    Verifies admin credentials against a bcrypt hash and manages JWT sessions.
    """

    def __init__(self, security: SecurityConfig, jwt_service: JWTService,
                 max_attempts: int = 5, window_seconds: int = 600, logger=None):
        if not security.admin_password_hash:
            raise ConfigurationError("ADMIN_PASSWORD_HASH is not configured")
        self.security = security
        self.jwt_service = jwt_service
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.logger = logger or get_logger(self.__class__.__name__)
        self._attempts: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def login(self, username: str, password: str, client_ip: str = "unknown") -> Dict[str, Any]:
        username, password = self._validate_credentials(username, password)

        if not self._check_login_rate_limit(client_ip):
            self.logger.warning("Login rate limit exceeded", client_ip=client_ip)
            raise AuthenticationError("Too many login attempts. Please try again later.")

        if not self._verify(username, password):
            self.logger.warning("Failed login attempt", username=username, client_ip=client_ip)
            raise AuthenticationError("Invalid username or password")

        with self._lock:
            self._attempts.pop(client_ip, None)

        token_data = self.jwt_service.generate_token(username)
        self.logger.info("Admin logged in", username=username, client_ip=client_ip)
        return {
            'token': token_data['token'],
            'expires_in': token_data['expires_in'],
            'username': username
        }

    def logout(self, token: str) -> Dict[str, Any]:
        payload = self.jwt_service.validate_token(token)
        self.jwt_service.blacklist_token(payload['jti'])
        self.logger.info("Admin logged out", username=payload['sub'])
        return {'success': True, 'message': 'Logged out successfully'}

    def verify_token(self, token: str) -> Dict[str, Any]:
        payload = self.jwt_service.validate_token(token)
        if not hmac.compare_digest(str(payload['sub']).encode(), self.security.admin_username.encode()):
            raise AuthenticationError("Admin user not found")
        return {'username': payload['sub'], 'expires_at': payload['exp']}

    def _verify(self, username: str, password: str) -> bool:
        username_ok = hmac.compare_digest(username.encode(), self.security.admin_username.encode())
        try:
            password_ok = bcrypt.checkpw(password.encode()[:72], self.security.admin_password_hash.encode())
        except ValueError:
            self.logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
            return False
        return username_ok and password_ok

    def _validate_credentials(self, username: Optional[str], password: Optional[str]) -> tuple:
        username = str(username).strip()[:50] if username else ""
        password = str(password)[:100] if password else ""
        if not username or not password:
            raise ValidationError("credentials", username, "Username and password are required")
        return username, password

    def _check_login_rate_limit(self, client_ip: str) -> bool:
        """
        Allow at most max_attempts logins per client within the window.
        """
        now = time.time()
        with self._lock:
            attempts = [stamp for stamp in self._attempts.get(client_ip, []) if now - stamp < self.window_seconds]
            if len(attempts) >= self.max_attempts:
                self._attempts[client_ip] = attempts
                return False
            attempts.append(now)
            self._attempts[client_ip] = attempts
            return True
