"""
JWT service for the panel administrator session with in-memory revocation.
"""

import jwt
import uuid
import threading
from typing import Dict, Any, Optional, Set
from datetime import datetime, timedelta, timezone
from core.exceptions import ConfigurationError, TokenError

MIN_SECRET_LENGTH = 32


class JWTService:
    """
    Issues and validates HS256 tokens for the single panel administrator.
    Logged-out token IDs are kept in a bounded in-memory blacklist.
    """

    def __init__(self, secret_key: str, token_expiry_hours: int = 24):
        if not secret_key:
            raise ConfigurationError("JWT secret is not configured")
        self.secret_key = secret_key
        self.algorithm = 'HS256'
        self.token_expiry_hours = token_expiry_hours
        self._blacklisted_tokens: Set[str] = set()
        self._max_blacklist_size = 1000
        self._lock = threading.Lock()

    def generate_token(self, username: str) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        token_id = str(uuid.uuid4())
        expires = now + timedelta(hours=self.token_expiry_hours)

        payload = {
            'jti': token_id,
            'sub': username,
            'iat': int(now.timestamp()),
            'exp': int(expires.timestamp())
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

        return {
            'token': token,
            'token_id': token_id,
            'expires_in': self.token_expiry_hours * 3600,
            'expires_at': payload['exp']
        }

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Decode a token and reject expired, malformed or revoked ones.
        """
        if not token:
            raise TokenError("Token is required")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenError("Token has expired")
        except jwt.InvalidTokenError:
            raise TokenError("Invalid token")

        token_id = payload.get('jti')
        if not token_id:
            raise TokenError("Token missing unique identifier")
        if not payload.get('sub'):
            raise TokenError("Token missing subject")
        if self.is_token_blacklisted(token_id):
            raise TokenError("Token has been revoked")
        return payload

    def blacklist_token(self, token_id: str) -> None:
        with self._lock:
            if len(self._blacklisted_tokens) >= self._max_blacklist_size:
                for old_token in list(self._blacklisted_tokens)[:100]:
                    self._blacklisted_tokens.discard(old_token)
            self._blacklisted_tokens.add(token_id)

    def is_token_blacklisted(self, token_id: str) -> bool:
        return token_id in self._blacklisted_tokens

    @staticmethod
    def create_service(secret_key: Optional[str], token_expiry_hours: int = 24) -> 'JWTService':
        """
        Factory enforcing a minimum secret length.
        """
        if not secret_key:
            raise ConfigurationError("JWT_SECRET is not configured")
        if len(secret_key) < MIN_SECRET_LENGTH:
            raise ConfigurationError(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters long")
        return JWTService(secret_key, token_expiry_hours)
