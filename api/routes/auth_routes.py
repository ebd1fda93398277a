"""
Authentication routes for JWT-based login, logout and token verification.
"""

from flask import Blueprint, request, jsonify, g
from api.middleware.jwt_middleware import JWTMiddleware
from core.dependency_container import get_service
from core.exceptions import AuthenticationError, ValidationError
from service.auth_service import AuthService

auth_bp = Blueprint('auth', __name__)


def get_auth_service() -> AuthService:
    return get_service('auth_service')


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Authenticate the administrator and return a JWT token.

    Request body:
    {
        "username": "string",
        "password": "string"
    }
    """
    data = request.get_json(silent=True) or {}

    if not data.get('username') or not data.get('password'):
        return jsonify({
            'success': False,
            'error': 'invalid_input',
            'message': 'Username and password are required'
        }), 400

    try:
        result = get_auth_service().login(data['username'], data['password'], request.remote_addr or 'unknown')
    except AuthenticationError as e:
        return jsonify({
            'success': False,
            'error': 'authentication_failed',
            'message': str(e)
        }), 401
    except ValidationError as e:
        return jsonify({
            'success': False,
            'error': 'invalid_input',
            'message': str(e)
        }), 400

    return jsonify({'success': True, 'data': result}), 200


@auth_bp.route('/logout', methods=['POST'])
@JWTMiddleware.require_auth
def logout():
    result = g.auth_service.logout(g.token)
    return jsonify(result), 200


@auth_bp.route('/verify', methods=['GET'])
@JWTMiddleware.require_auth
def verify_token():
    """
    Verify the current JWT token and return the admin identity.
    """
    return jsonify({
        'success': True,
        'data': {
            'valid': True,
            'username': g.current_admin['username'],
            'expires_at': g.current_admin['expires_at']
        }
    }), 200
