"""
Dispatch entry points: run a scope-aware handler for a WSGI or Flask request
"""
from typing import Callable, Iterable, Optional, Union

from flask import request as current_request
from werkzeug.wrappers import Request, Response

from ..config.logging_config import get_context_logger
from ..config.settings import settings
from .diagnostics import diagnostics_from
from .handler import Handler, HandlerCallable, ResponseWriter, as_handler, writer_for
from .scope import Scope, create_scope


def serve(handler: Union[Handler, HandlerCallable], writer: ResponseWriter, request: Request,
          parent: Optional[Scope] = None, timeout: Optional[float] = None) -> None:
    """
    Process one request with a handler

    Creates the request scope, runs the handler and renders any failure
    it returns. The scope is released on every exit path. An exception
    raised by the handler is treated as a returned failure.

    Args:
        handler: Handler to run
        writer: Response sink for the request
        request: The request
        parent: Parent scope, eg one cancelled on shutdown
        timeout: Optional deadline in seconds
    """
    from ..middleware.error_handler import render_error

    handler = as_handler(handler)
    scope, release = create_scope(parent, writer, request, timeout=timeout)
    try:
        try:
            failure = handler.serve(scope, writer, request)
        except Exception as e:
            log = get_context_logger(__name__, diagnostics_from(request))
            log.error(f"Unhandled exception on {request.path}: {e}", exc_info=True)
            failure = e

        if failure is not None:
            render_error(writer, request, failure)
    finally:
        release()


def _request_timeout(timeout: Optional[float]) -> Optional[float]:
    if timeout is None:
        timeout = settings.request_timeout
    return timeout or None


def handle(handler: Union[Handler, HandlerCallable], parent: Optional[Scope] = None,
           timeout: Optional[float] = None) -> Callable[[dict, Callable], Iterable[bytes]]:
    """
    Convert a handler into a WSGI application

    Args:
        handler: Handler, usually composed by a middleware stack
        parent: Parent scope for every request
        timeout: Per-request deadline in seconds, defaults to settings.request_timeout

    Returns:
        WSGI application
    """
    handler = as_handler(handler)

    def application(environ: dict, start_response: Callable) -> Iterable[bytes]:
        request = Request(environ)
        writer = writer_for(environ)
        serve(handler, writer, request, parent=parent, timeout=_request_timeout(timeout))
        response = writer.finish()
        return response(environ, start_response)

    application.handler = handler
    return application


def handle_func(func: HandlerCallable, parent: Optional[Scope] = None,
                timeout: Optional[float] = None) -> Callable[[dict, Callable], Iterable[bytes]]:
    """Convert a handler function into a WSGI application"""
    return handle(as_handler(func), parent=parent, timeout=timeout)


def as_view(handler: Union[Handler, HandlerCallable], parent: Optional[Scope] = None,
            timeout: Optional[float] = None) -> Callable[..., Response]:
    """
    Convert a handler into a Flask view function

    URL variables are available to the handler as request.view_args.

    Args:
        handler: Handler, usually composed by a middleware stack
        parent: Parent scope for every request
        timeout: Per-request deadline in seconds, defaults to settings.request_timeout

    Returns:
        View function for Flask's add_url_rule
    """
    handler = as_handler(handler)

    def view(**_view_args) -> Response:
        request = current_request._get_current_object()
        writer = writer_for(request.environ)
        serve(handler, writer, request, parent=parent, timeout=_request_timeout(timeout))
        return writer.finish()

    view.__name__ = getattr(handler, "__name__", "view")
    view.handler = handler
    return view
