from flask import Blueprint, request
from api.middleware.jwt_middleware import JWTMiddleware
from api.middleware.error_handler import result_response
from core.dependency_container import get_service
from service.status_gateway import StatusGateway

system_bp = Blueprint('system', __name__)


def get_status_gateway() -> StatusGateway:
    return get_service('status_gateway')


@system_bp.route('/status', methods=['GET'])
@JWTMiddleware.require_auth
def service_status():
    result = get_status_gateway().get_service_status()
    return result_response(result, data=result.data.to_dict() if result.success else None)


@system_bp.route('/server-info', methods=['GET'])
@JWTMiddleware.require_auth
def server_info():
    result = get_status_gateway().get_server_info()
    return result_response(result, data=result.data.to_dict() if result.success else None)


@system_bp.route('/logs', methods=['GET'])
@JWTMiddleware.require_auth
def service_logs():
    """Recent journal lines for the VPN service (?lines=N, clamped)."""
    result = get_status_gateway().get_logs(request.args.get('lines'))
    return result_response(result, data={'logs': result.data} if result.success else None)


@system_bp.route('/service/restart', methods=['POST', 'GET'])
@JWTMiddleware.require_auth
def restart_service():
    result = get_status_gateway().restart()
    return result_response(result, data=result.data.to_dict() if result.success else None)


@system_bp.route('/clients', methods=['GET'])
@JWTMiddleware.require_auth
def connected_clients():
    result = get_status_gateway().get_connected_clients()
    return result_response(result, data=result.data.to_dict() if result.success else None)
