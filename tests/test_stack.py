"""Middleware stacks: ordering, immutability and scope seeding."""

import threading
from concurrent import futures

from werkzeug.test import Client

from httpscope.core import scope as scope_module
from httpscope.core.dispatch import serve
from httpscope.core.handler import Handler, HandlerFunc, ResponseWriter
from httpscope.core.scope import background
from httpscope.middleware.stack import EMPTY_STACK, Stack, context, use


def recorder(log, name):
    """Middleware that records entering and leaving the handler it wraps"""

    def middleware(handler):
        def serve(scope, writer, request):
            log.append(f"{name}pre")
            failure = handler.serve(scope, writer, request)
            log.append(f"{name}post")
            return failure
        return HandlerFunc(serve)

    middleware.__name__ = name
    return middleware


def terminal(log):
    def serve(scope, writer, request):
        log.append("terminal")
        writer.write(b"done")
        return None
    return serve


def test_onion_ordering(make_request, metrics_service):
    log = []
    handler = use(recorder(log, "m1"), recorder(log, "m2")).compose(terminal(log))

    handler.serve(background(), ResponseWriter(metrics_service), make_request())

    assert log == ["m1pre", "m2pre", "terminal", "m2post", "m1post"]


def test_use_returns_new_stack(make_request, metrics_service):
    log = []
    m1, m2, m3 = recorder(log, "m1"), recorder(log, "m2"), recorder(log, "m3")
    base = use(m1, m2)
    extended = base.use(m3)

    assert list(base) == [m1, m2]
    assert list(extended) == [m1, m2, m3]

    base.compose(terminal(log)).serve(background(), ResponseWriter(metrics_service), make_request())
    assert log == ["m1pre", "m2pre", "terminal", "m2post", "m1post"]


def test_derived_stacks_share_prefix():
    log = []
    m1 = recorder(log, "m1")
    base = use(m1)
    left = base.use(recorder(log, "left"))
    right = base.use(recorder(log, "right"))

    assert left.previous is base
    assert right.previous is base
    assert [m.__name__ for m in left] == ["m1", "left"]
    assert [m.__name__ for m in right] == ["m1", "right"]


def test_none_middleware_is_skipped():
    log = []
    m1 = recorder(log, "m1")
    assert list(use(None, m1, None)) == [m1]
    assert use(None) is EMPTY_STACK
    assert len(EMPTY_STACK) == 0
    assert len(use(m1, m1)) == 2


def test_empty_stack_returns_handler_itself():
    class Terminal(Handler):
        def serve(self, scope, writer, request):
            return None

    handler = Terminal()
    assert Stack().compose(handler) is handler


def test_middleware_may_return_plain_function(make_request, metrics_service):
    def add_header(handler):
        def serve(scope, writer, request):
            writer.headers["X-Test"] = "1"
            return handler.serve(scope, writer, request)
        return serve

    writer = ResponseWriter(metrics_service)
    use(add_header).compose(terminal([])).serve(background(), writer, make_request())
    assert writer.headers["X-Test"] == "1"
    assert writer.body == b"done"


def test_stack_as_wsgi_application():
    log = []
    app = use(recorder(log, "m1")).handle_func(terminal(log))

    response = Client(app).get("/")

    assert response.status_code == 200
    assert response.data == b"done"
    assert log == ["m1pre", "terminal", "m1post"]


def test_context_seeds_scope_from_parent(make_request, metrics_service):
    parent = background().with_cancel()
    seen = []

    def handler(scope, writer, request):
        seen.append(scope)
        parent.cancel()
        return None

    incoming = background().with_cancel()
    context(parent).compose(handler).serve(incoming, ResponseWriter(metrics_service), make_request())

    assert seen[0] is not incoming
    assert seen[0].parent is parent
    assert seen[0].cancelled
    assert not incoming.cancelled
    incoming.cancel()


def test_context_releases_scope_after_handler(make_request, metrics_service):
    seen = []

    def handler(scope, writer, request):
        seen.append(scope.cancelled)
        seen.append(scope)
        return None

    context().compose(handler).serve(background(), ResponseWriter(metrics_service), make_request())

    assert seen[0] is False
    assert seen[1].cancelled


def test_context_stack_can_be_extended(make_request, metrics_service):
    log = []
    stack = context().use(recorder(log, "m1"))
    assert len(stack) == 2
    stack.compose(terminal(log)).serve(background(), ResponseWriter(metrics_service), make_request())
    assert log == ["m1pre", "terminal", "m1post"]


class ClosableWriter(ResponseWriter):
    """Response writer whose connection can be closed by the test."""

    def __init__(self, metrics_service):
        super().__init__(metrics_service)
        self.notification = futures.Future()

    def close_notify(self):
        return self.notification


def test_context_request_has_one_connection_watcher(make_request, metrics_service, monkeypatch):
    watchers = []
    original_thread = threading.Thread

    class RecordingThread(original_thread):
        def start(self):
            if self.name == "scope-watcher":
                watchers.append(self)
            super().start()

    monkeypatch.setattr(scope_module.threading, "Thread", RecordingThread)

    def noop(scope, writer, request):
        return None

    parent = background().with_cancel()
    serve(context(parent).compose(noop), ClosableWriter(metrics_service), make_request())

    assert len(watchers) == 1
    parent.cancel()


def test_context_scope_cancelled_on_client_close(make_request, metrics_service):
    writer = ClosableWriter(metrics_service)
    parent = background().with_cancel()
    seen = []

    def handler(scope, writer, request):
        writer.notification.set_result(True)
        seen.append(scope.wait(timeout=2))
        seen.append(str(scope.err))
        return None

    serve(context(parent).compose(handler), writer, make_request())

    assert seen == [True, "client closed connection"]
    assert not parent.cancelled
    parent.cancel()
