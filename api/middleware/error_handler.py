from typing import Any, Optional
from flask import jsonify
from werkzeug.exceptions import HTTPException
from core.exceptions import (
    PanelError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ArtifactNotFoundError,
    ConfigurationError,
    ValidationError,
    CommandContractError
)
from core.logging_config import get_logger
from core.results import ErrorKind, OperationResult

STATUS_CODES = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.AUTH_REQUIRED: 503,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.EXTERNAL_TOOL_FAILURE: 502,
    ErrorKind.PARTIAL_SUCCESS: 502,
    ErrorKind.INTERNAL_ERROR: 500,
}


def error_response(kind: ErrorKind, message: str, status: Optional[int] = None):
    return jsonify({
        'success': False,
        'error': kind.value,
        'message': message
    }), status or STATUS_CODES[kind]


def result_response(result: OperationResult, data: Any = None, success_status: int = 200):
    """
    Render an OperationResult as the panel's JSON envelope.
    """
    body = result.to_dict()
    if data is not None:
        body['data'] = data
    if result.success:
        return jsonify(body), success_status
    return jsonify(body), STATUS_CODES.get(result.error_kind, 500)


class ErrorHandler:
    """
    Centralized error handling for the panel API.
    """

    @staticmethod
    def init_app(app, logger=None) -> None:
        """Initialize error handlers with Flask app."""
        logger = logger or get_logger('ErrorHandler')

        @app.errorhandler(UserAlreadyExistsError)
        def handle_user_exists(e):
            return error_response(ErrorKind.ALREADY_EXISTS, str(e))

        @app.errorhandler(UserNotFoundError)
        def handle_user_not_found(e):
            return error_response(ErrorKind.NOT_FOUND, str(e))

        @app.errorhandler(ArtifactNotFoundError)
        def handle_artifact_not_found(e):
            return error_response(ErrorKind.NOT_FOUND, str(e))

        @app.errorhandler(ValidationError)
        def handle_validation_error(e):
            return error_response(ErrorKind.INVALID_INPUT, str(e))

        @app.errorhandler(ConfigurationError)
        def handle_config_error(e):
            logger.error("Configuration error", error=str(e))
            return error_response(ErrorKind.INTERNAL_ERROR, str(e))

        @app.errorhandler(CommandContractError)
        def handle_contract_error(e):
            logger.error("Invalid command invocation", error=str(e))
            return error_response(ErrorKind.INTERNAL_ERROR, 'An unexpected error occurred')

        @app.errorhandler(PanelError)
        def handle_panel_error(e):
            logger.error("Panel error", error=str(e))
            return error_response(ErrorKind.INTERNAL_ERROR, str(e))

        @app.errorhandler(404)
        def handle_not_found(e):
            return error_response(ErrorKind.NOT_FOUND, 'The requested endpoint does not exist')

        @app.errorhandler(405)
        def handle_method_not_allowed(e):
            return jsonify({
                'success': False,
                'error': 'method_not_allowed',
                'message': 'The HTTP method is not allowed for this endpoint'
            }), 405

        @app.errorhandler(Exception)
        def handle_generic_error(e):
            if isinstance(e, HTTPException):
                return jsonify({
                    'success': False,
                    'error': 'http_error',
                    'message': e.description
                }), e.code
            logger.exception("Unhandled error", error=str(e))
            return error_response(ErrorKind.INTERNAL_ERROR, 'An unexpected error occurred')
