"""
API Key authentication middleware
"""
import hmac
from http import HTTPStatus
from typing import Optional
from werkzeug.wrappers import Request
from ..config.settings import settings
from ..config.logging_config import get_context_logger
from ..core.diagnostics import diagnostics_from
from ..core.handler import Handler, HandlerFunc, ResponseWriter
from ..core.scope import Scope
from ..exceptions.custom_exceptions import HTTPScopeError

API_KEY_HEADER = 'X-API-Key'


class AuthenticationError(HTTPScopeError):
    """Raised when a request cannot be authenticated"""

    def __init__(self, message: str, code: str):
        super().__init__(message, HTTPStatus.UNAUTHORIZED, code)


def require_api_key(handler: Handler) -> Handler:
    """
    Middleware that requires API key authentication

    Expects API key in header: X-API-Key: your-api-key
    """

    def serve(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
        log = get_context_logger(__name__, diagnostics_from(request))

        # Skip authentication in development if no API key is configured
        if settings.is_development and not settings.api_key:
            log.debug(f"Skipping API key check in development mode for {request.path}")
            return handler.serve(scope, writer, request)

        if not settings.api_key:
            log.error("API key not configured but authentication is required")
            return HTTPScopeError("authentication not configured", HTTPStatus.INTERNAL_SERVER_ERROR)

        api_key = request.headers.get(API_KEY_HEADER)
        if not api_key:
            log.warning(f"API key missing for {request.path} from {request.remote_addr}")
            return AuthenticationError("API key required", "API_KEY_MISSING")

        if not validate_api_key(api_key):
            log.warning(f"Invalid API key for {request.path} from {request.remote_addr}")
            return AuthenticationError("invalid API key", "API_KEY_INVALID")

        return handler.serve(scope, writer, request)

    return HandlerFunc(serve)


def validate_api_key(api_key: str) -> bool:
    """
    Validate API key against configured value

    Args:
        api_key: API key to validate

    Returns:
        True if valid, False otherwise
    """
    if not api_key or not settings.api_key:
        return False

    return hmac.compare_digest(api_key, settings.api_key)
