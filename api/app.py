#!/usr/bin/env python3
import os
import logging
from typing import Optional
from flask import Flask
from flask_cors import CORS

from config.app_config import AppConfig, get_config, set_config
from core.dependency_container import initialize_container
from core.logging_config import setup_structured_logging, shutdown_logging, get_logger
from .routes.user_routes import user_bp
from .routes.system_routes import system_bp
from .routes.auth_routes import auth_bp
from .middleware.error_handler import ErrorHandler


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """
    Creates and configures the Flask application serving the panel API.
    """
    config = config or get_config()
    set_config(config)
    initialize_container(config)

    app = Flask(__name__)
    app.config['JSON_SORT_KEYS'] = False

    CORS(app)
    ErrorHandler.init_app(app, logger=get_logger('ErrorHandler'))

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(user_bp, url_prefix='/api/users')
    app.register_blueprint(system_bp, url_prefix='/api')

    @app.route("/api/health")
    def health_check():
        return {"success": True, "status": "healthy", "message": "OpenVPN panel API is running"}

    return app


def calculate_optimal_threads(configured: int = 0) -> int:
    """Determine a sensible Waitress thread count based on CPU cores."""
    if configured > 0:
        return configured
    cores = os.cpu_count() or 1
    # Command execution blocks a worker; keep a few spare per core
    return max(4, min(32, cores * 2))


def main() -> None:
    config = get_config()
    setup_structured_logging(config.monitoring.log_level)
    logger = get_logger('api')

    app = create_app(config)
    threads = calculate_optimal_threads(config.server.threads)

    from waitress import serve

    # Suppress Waitress queue warnings
    logging.getLogger('waitress.queue').setLevel(logging.ERROR)

    logger.info("Starting OpenVPN panel API", host=config.server.host,
                port=config.server.port, threads=threads)
    try:
        serve(app, host=config.server.host, port=config.server.port, threads=threads)
    finally:
        logger.info("OpenVPN panel API stopped")
        shutdown_logging()


if __name__ == "__main__":
    main()
