"""
Middleware layer: stacks, error rendering and common middleware
"""
from .error_handler import render_error, should_render_json
from .stack import EMPTY_STACK, Middleware, Stack, context, use
from .request_validation import request_logging, security_headers, get_request_id
from .auth_middleware import require_api_key, AuthenticationError

__all__ = [
    'render_error',
    'should_render_json',
    'EMPTY_STACK',
    'Middleware',
    'Stack',
    'context',
    'use',
    'request_logging',
    'security_headers',
    'get_request_id',
    'require_api_key',
    'AuthenticationError',
]
