"""
httpscope: cancellable request scopes, middleware stacks and error rendering
for Flask and WSGI applications
"""
from .core.scope import CloseNotifier, Scope, background, create_scope
from .core.handler import Handler, HandlerFunc, ResponseWriter, SocketResponseWriter, as_handler
from .core.dispatch import as_view, handle, handle_func, serve
from .core.diagnostics import DiagnosticContext, bind_diagnostics, diagnostics_from
from .middleware.stack import Middleware, Stack, context, use
from .middleware.error_handler import render_error, should_render_json
from .exceptions.custom_exceptions import (
    DeadlineExceeded,
    HasErrorCode,
    HasStatusCode,
    HTTPScopeError,
    ScopeCancelled,
)

__all__ = [
    'CloseNotifier',
    'Scope',
    'background',
    'create_scope',
    'Handler',
    'HandlerFunc',
    'ResponseWriter',
    'SocketResponseWriter',
    'as_handler',
    'as_view',
    'handle',
    'handle_func',
    'serve',
    'DiagnosticContext',
    'bind_diagnostics',
    'diagnostics_from',
    'Middleware',
    'Stack',
    'context',
    'use',
    'render_error',
    'should_render_json',
    'DeadlineExceeded',
    'HasErrorCode',
    'HasStatusCode',
    'HTTPScopeError',
    'ScopeCancelled',
]
