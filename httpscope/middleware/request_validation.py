"""
Request logging and response header middleware
"""
import time
import uuid
from typing import Optional
from werkzeug.wrappers import Request
from ..config.logging_config import get_context_logger
from ..core.diagnostics import bind_diagnostics, diagnostics_from
from ..core.handler import Handler, HandlerFunc, ResponseWriter
from ..core.scope import Scope

REQUEST_ID_HEADER = 'X-Request-ID'

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
}


def request_logging(handler: Handler) -> Handler:
    """
    Middleware that assigns a request ID and logs each request

    The request ID is taken from the X-Request-ID header, or generated,
    and bound to the request's diagnostic context so that every message
    logged for the request carries it.
    """

    def serve(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
        started = time.monotonic()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        context = diagnostics_from(request).with_value('request_id', request_id)
        bind_diagnostics(request, context)
        writer.headers[REQUEST_ID_HEADER] = request_id

        log = get_context_logger(__name__, context)
        log.info(f"{request.method} {request.path} from {request.remote_addr}")

        failure = handler.serve(scope, writer, request)

        duration = time.monotonic() - started
        writer.headers['X-Response-Time'] = f"{duration:.3f}s"
        if failure is not None:
            log.warning(f"{request.method} {request.path} failed ({duration:.3f}s): {failure}")
        elif scope.cancelled:
            log.info(f"{request.method} {request.path} cancelled ({duration:.3f}s)")
        else:
            log.info(f"{writer.status or 200} {request.method} {request.path} ({duration:.3f}s)")
        return failure

    return HandlerFunc(serve)


def security_headers(handler: Handler) -> Handler:
    """Middleware that adds security headers to every response"""

    def serve(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
        for name, value in SECURITY_HEADERS.items():
            writer.headers[name] = value
        return handler.serve(scope, writer, request)

    return HandlerFunc(serve)


def get_request_id(request: Request) -> str:
    """
    Get the request ID assigned by request_logging

    Returns:
        Request ID string, or 'unknown' outside request_logging
    """
    return dict(diagnostics_from(request).fields()).get('request_id', 'unknown')
