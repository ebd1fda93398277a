from flask import Blueprint, request, send_file
from api.middleware.jwt_middleware import JWTMiddleware
from api.middleware.error_handler import error_response, result_response
from core.dependency_container import get_service
from core.results import ErrorKind
from service.user_service import UserService

user_bp = Blueprint('users', __name__)

OVPN_MIMETYPE = 'application/x-openvpn-profile'


def get_user_service() -> UserService:
    return get_service('user_service')


@user_bp.route('', methods=['GET'])
@JWTMiddleware.require_auth
def list_users():
    """List VPN users as reported by the client-management tool."""
    result = get_user_service().list_users()
    users = [user.to_dict() for user in result.data] if result.success else None
    return result_response(result, data=users)


@user_bp.route('/add', methods=['POST'])
@JWTMiddleware.require_auth
def add_user():
    """
    Create a VPN user and its client profile.

    Request body:
    {
        "username": "string",
        "days": integer (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    days = data.get('days')
    if isinstance(days, str) and days.strip().isdecimal():
        days = int(days)
    elif days is not None and (isinstance(days, bool) or not isinstance(days, int)):
        return error_response(ErrorKind.INVALID_INPUT, 'Validity days must be a positive integer')

    result = get_user_service().create(data.get('username'), days)
    record = result.data.to_dict() if result.data is not None else None
    return result_response(result, data=record, success_status=201)


@user_bp.route('/revoke', methods=['POST'])
@JWTMiddleware.require_auth
def revoke_user():
    """
    Revoke a VPN user and remove its client profile.

    Request body:
    {
        "username": "string"
    }
    """
    data = request.get_json(silent=True) or {}
    result = get_user_service().revoke(data.get('username'))
    return result_response(result)


@user_bp.route('/download/<username>', methods=['GET'])
@JWTMiddleware.require_auth
def download_config(username: str):
    """Download the user's .ovpn client profile."""
    result = get_user_service().get_config_path(username)
    if not result.success:
        return result_response(result)
    return send_file(
        result.data,
        mimetype=OVPN_MIMETYPE,
        as_attachment=True,
        download_name=f"{username}.ovpn"
    )
