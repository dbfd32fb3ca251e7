"""
Middleware stacks

A middleware is any callable that accepts a Handler and returns a Handler.
A Stack is an immutable list of middleware shared by one or more handlers:

    public = use(request_logging, security_headers)
    admin = public.use(require_api_key)

    app.add_url_rule("/", view_func=public.view(index))
    app.add_url_rule("/admin", view_func=admin.view(admin_page))

The first middleware passed to use() is the outermost: it runs first on the
way in and last on the way out. Extending a stack returns a new stack and
leaves the original untouched, so stacks can be shared freely between
threads and derived stacks.
"""
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Union

from werkzeug.wrappers import Request

from ..core.dispatch import as_view, handle
from ..core.handler import Handler, HandlerCallable, HandlerFunc, ResponseWriter, as_handler
from ..core.scope import Scope, background, create_scope

Middleware = Callable[[Handler], Union[Handler, HandlerCallable]]


@dataclass(frozen=True, eq=False)
class Stack:
    """One node of a middleware stack, linked to the stack it extends"""

    middleware: Optional[Middleware] = None
    previous: Optional["Stack"] = None

    def use(self, *middleware: Optional[Middleware]) -> "Stack":
        """
        Create a new stack by appending middleware to this one

        None entries are skipped.

        Returns:
            The new stack; this stack is not modified
        """
        stack = self
        for m in middleware:
            if m is not None:
                stack = Stack(m, stack)
        return stack

    def compose(self, handler: Union[Handler, HandlerCallable]) -> Handler:
        """
        Wrap handler in every middleware of the stack

        Walks from the most recently added middleware to the first one,
        so the first middleware ends up outermost.
        """
        composed = as_handler(handler)
        stack: Optional[Stack] = self
        while stack is not None:
            if stack.middleware is not None:
                composed = as_handler(stack.middleware(composed))
            stack = stack.previous
        return composed

    def handle(self, handler: Union[Handler, HandlerCallable], parent: Optional[Scope] = None,
               timeout: Optional[float] = None):
        """Create a WSGI application from the stack and a handler"""
        return handle(self.compose(handler), parent=parent, timeout=timeout)

    def handle_func(self, func: HandlerCallable, parent: Optional[Scope] = None,
                    timeout: Optional[float] = None):
        """Create a WSGI application from the stack and a handler function"""
        return self.handle(HandlerFunc(func), parent=parent, timeout=timeout)

    def view(self, handler: Union[Handler, HandlerCallable], parent: Optional[Scope] = None,
             timeout: Optional[float] = None):
        """Create a Flask view function from the stack and a handler"""
        view = as_view(self.compose(handler), parent=parent, timeout=timeout)
        view.__name__ = getattr(handler, "__name__", view.__name__)
        return view

    def __iter__(self) -> Iterator[Middleware]:
        """Iterate over the middleware, outermost first"""
        chain = []
        stack: Optional[Stack] = self
        while stack is not None:
            if stack.middleware is not None:
                chain.append(stack.middleware)
            stack = stack.previous
        return reversed(chain)

    def __len__(self) -> int:
        return sum(1 for _ in self)


EMPTY_STACK = Stack()


def use(*middleware: Optional[Middleware]) -> Stack:
    """Create a stack of middleware; None entries are skipped"""
    return EMPTY_STACK.use(*middleware)


def context(parent: Optional[Scope] = None) -> Stack:
    """
    Create a stack that runs its handlers in scopes derived from parent

    Useful when the program owns a base scope, eg one cancelled on
    SIGTERM, that every request should be part of. The incoming scope is
    replaced by a new request scope derived from parent. The new scope is
    cancelled along with the incoming one, so a client disconnect seen by
    the dispatcher still reaches it without watching the connection twice.

    Args:
        parent: Base scope for every request, None for the background scope

    Returns:
        Stack whose first middleware seeds the request scope
    """

    def seed_scope(handler: Handler) -> Handler:
        def serve(incoming: Scope, writer: ResponseWriter, request: Request):
            scope, release = create_scope(parent, None, request)
            if incoming is not None and incoming is not background():
                incoming.add_done_callback(lambda s: scope.cancel(s.err))
            try:
                return handler.serve(scope, writer, request)
            finally:
                release()
        return HandlerFunc(serve)

    return EMPTY_STACK.use(seed_scope)
