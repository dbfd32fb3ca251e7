"""
Scope-aware handlers and the response sink they write to
"""
import functools
import io
import select
import socket
import threading
import time
from abc import ABC, abstractmethod
from concurrent import futures
from typing import Callable, Optional, Union

from werkzeug.datastructures import Headers
from werkzeug.wrappers import Request, Response

from ..config.logging_config import get_logger
from ..config.settings import settings
from ..services.metrics_service import MetricsService, metrics
from .scope import Scope

logger = get_logger(__name__)


class ResponseWriter:
    """
    Response sink for one request

    Handlers set headers, call write_header() once with the status code and
    then write() the body. Writing the body without a status implies 200.
    The first status written and the request duration are recorded in the
    metrics service.
    """

    def __init__(self, metrics_service: Optional[MetricsService] = None):
        self.headers = Headers()
        self.status: Optional[int] = None
        self._body = io.BytesIO()
        self._metrics = metrics if metrics_service is None else metrics_service
        self._started = time.monotonic()
        self._finished = False

    @property
    def wrote_header(self) -> bool:
        return self.status is not None

    @property
    def body(self) -> bytes:
        return self._body.getvalue()

    def write_header(self, status: int) -> None:
        """
        Set the response status code

        Only the first call has an effect.

        Args:
            status: HTTP status code
        """
        if self.status is not None:
            logger.warning(f"Superfluous write_header({status}), status already {self.status}")
            return
        self.status = int(status)
        self._metrics.record_status(self.status)

    def write(self, data: Union[bytes, str]) -> int:
        """
        Append data to the response body

        Returns:
            Number of bytes written
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self.status is None:
            self.write_header(200)
        return self._body.write(data)

    def finish(self) -> Response:
        """
        Complete the response and convert it for the WSGI server

        Returns:
            werkzeug Response holding status, headers and body
        """
        if self.status is None:
            self.write_header(200)
        if not self._finished:
            self._finished = True
            self._metrics.record_duration(time.monotonic() - self._started)
        return Response(self.body, status=self.status, headers=self.headers)


class SocketResponseWriter(ResponseWriter):
    """
    Response writer that can tell when the client closes the connection

    The connection socket is polled by a monitor thread, started on the
    first close_notify() call and stopped by finish(). The returned future
    completes if the peer closes the connection before then.
    """

    def __init__(self, sock: socket.socket, poll_interval: Optional[float] = None,
                 metrics_service: Optional[MetricsService] = None):
        super().__init__(metrics_service)
        self._socket = sock
        self._poll_interval = poll_interval or settings.close_poll_interval
        self._closed: futures.Future = futures.Future()
        self._closed.set_running_or_notify_cancel()
        self._stop = threading.Event()
        self._monitor: Optional[threading.Thread] = None

    def close_notify(self) -> futures.Future:
        if self._monitor is None and not self._stop.is_set():
            self._monitor = threading.Thread(
                target=self._watch_socket,
                name="connection-monitor",
                daemon=True,
            )
            self._monitor.start()
        return self._closed

    def finish(self) -> Response:
        self._stop.set()
        return super().finish()

    def _watch_socket(self) -> None:
        while not self._stop.is_set():
            try:
                readable, _, _ = select.select([self._socket], [], [], self._poll_interval)
                if not readable:
                    continue
                if self._socket.recv(1, socket.MSG_PEEK):
                    # Unread request data or a pipelined request; a close
                    # cannot be detected from here on.
                    return
            except BlockingIOError:
                continue
            except ValueError:
                # Peeking is not supported, eg on TLS sockets
                return
            except OSError as e:
                logger.debug(f"Connection error while monitoring socket: {e}")

            if not self._stop.is_set():
                self._closed.set_result(True)
            return


def writer_for(environ: dict) -> ResponseWriter:
    """
    Create the response writer for a WSGI request

    Uses a SocketResponseWriter when the server exposes the connection
    socket (werkzeug's development server does), otherwise a plain writer.
    """
    sock = environ.get("werkzeug.socket")
    if isinstance(sock, socket.socket):
        return SocketResponseWriter(sock)
    return ResponseWriter()


class Handler(ABC):
    """
    A scope-aware request handler

    serve() writes the response to writer and returns None, or returns
    the exception describing why the request failed. A returned failure
    is rendered to the client by the dispatcher.
    """

    @abstractmethod
    def serve(self, scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
        ...


HandlerCallable = Callable[[Scope, ResponseWriter, Request], Optional[BaseException]]


class HandlerFunc(Handler):
    """Adapter to use an ordinary function as a Handler"""

    def __init__(self, func: HandlerCallable):
        self.func = func
        functools.update_wrapper(self, func, updated=())

    def serve(self, scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
        return self.func(scope, writer, request)

    def __repr__(self) -> str:
        return f"HandlerFunc({getattr(self.func, '__name__', self.func)!r})"


def as_handler(handler: Union[Handler, HandlerCallable]) -> Handler:
    """
    Coerce a handler or a plain function into a Handler

    Raises:
        TypeError: If handler is neither a Handler nor callable
    """
    if isinstance(handler, Handler):
        return handler
    if callable(handler):
        return HandlerFunc(handler)
    raise TypeError(f"not a handler: {handler!r}")
