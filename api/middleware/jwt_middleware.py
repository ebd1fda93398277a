"""
JWT middleware protecting the panel API.
"""

from functools import wraps
from typing import Optional
from flask import request, jsonify, g
from core.dependency_container import get_service
from core.exceptions import AuthenticationError
from service.auth_service import AuthService


class JWTMiddleware:
    """
    Bearer-token authentication for protected endpoints.
    """

    @staticmethod
    def require_auth(f):
        """Decorator to require JWT authentication for protected endpoints."""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            token = JWTMiddleware._extract_token(request)
            if not token:
                return jsonify({
                    'success': False,
                    'error': 'authentication_required',
                    'message': 'Please provide Authorization header with Bearer token'
                }), 401

            auth_service = JWTMiddleware._get_auth_service()
            try:
                admin_data = auth_service.verify_token(token)
            except AuthenticationError as e:
                return jsonify({
                    'success': False,
                    'error': 'authentication_failed',
                    'message': str(e)
                }), 401

            g.current_admin = admin_data
            g.auth_service = auth_service
            g.token = token
            return f(*args, **kwargs)

        return decorated_function

    @staticmethod
    def _extract_token(request) -> Optional[str]:
        """Extract JWT token from Authorization header."""
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            return None

        parts = auth_header.split(' ')
        if len(parts) != 2 or parts[0].lower() != 'bearer':
            return None

        return parts[1]

    @staticmethod
    def _get_auth_service() -> AuthService:
        return get_service('auth_service')
