"""
Flask application factory and main entry point
"""
import signal
from typing import Optional
from flask import Flask, Response, request
from werkzeug.exceptions import HTTPException
from .config.settings import settings
from .config.logging_config import setup_logging, get_logger
from .controllers import health_bp
from .controllers.health_controller import server_scope
from .core.handler import ResponseWriter
from .core.scope import Scope
from .middleware import render_error

# Setup logging first
setup_logging()
logger = get_logger(__name__)


def create_app() -> Flask:
    """
    Flask application factory

    Returns:
        Configured Flask application instance
    """
    logger.info("Creating Flask application...")

    app = Flask(__name__)

    configure_app(app)
    register_blueprints(app)
    register_error_handlers(app)

    logger.info("Flask application created successfully")
    return app


def configure_app(app: Flask) -> None:
    """
    Configure Flask application settings

    Args:
        app: Flask application instance
    """
    app.config['DEBUG'] = settings.debug
    app.config['MAX_CONTENT_LENGTH'] = settings.max_content_length

    logger.info(f"App configured - Debug: {settings.debug}, Environment: {settings.environment}")


def register_blueprints(app: Flask) -> None:
    """
    Register application blueprints (route groups)

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='')
    logger.info("Blueprints registered")


def register_error_handlers(app: Flask) -> None:
    """
    Render errors raised by Flask itself (404, 405, ...) the same way as handler failures

    Args:
        app: Flask application instance
    """
    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Response:
        logger.warning(f"HTTP error {error.code} on {request.path}: {error.description}")
        writer = ResponseWriter()
        render_error(writer, request, error)
        return writer.finish()


def shutdown(scope: Optional[Scope] = None) -> None:
    """Cancel the server scope, and with it every request in progress"""
    (scope or server_scope).cancel()


def _terminate(_signum, _frame) -> None:
    logger.info("Received SIGTERM, cancelling requests in progress")
    shutdown()
    raise SystemExit(0)


def main():
    """
    Main entry point for the application
    """
    logger.info("Starting httpscope demo server...")

    app = create_app()

    signal.signal(signal.SIGTERM, _terminate)

    logger.info(f"Starting server on {settings.host}:{settings.port}")
    try:
        app.run(
            host=settings.host,
            port=settings.port,
            debug=settings.debug,
            threaded=True
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    finally:
        shutdown()


if __name__ == '__main__':
    main()
