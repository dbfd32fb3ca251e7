"""
Cancellable execution scopes for requests

A Scope carries a done-signal that fires exactly once: when the scope is
cancelled explicitly, when its parent is cancelled, when its deadline passes,
or when the client closes the connection while the request is in progress.
Cancellation is cooperative; handlers check scope.cancelled, wait on
scope.done(), or call scope.raise_if_cancelled().
"""
import threading
import time
from concurrent import futures
from typing import Any, Callable, Optional, Protocol, Set, Tuple, runtime_checkable

from ..config.logging_config import get_logger
from ..exceptions.custom_exceptions import DeadlineExceeded, ScopeCancelled

logger = get_logger(__name__)


@runtime_checkable
class CloseNotifier(Protocol):
    """A response sink that can report the client closing the connection"""

    def close_notify(self) -> futures.Future:
        ...


class Scope:
    """
    Cancellable scope for the processing of one request

    Scopes form a tree. Cancelling a scope cancels all of its children,
    but never its parent. Use create_scope() to create a request scope,
    or with_cancel()/with_timeout() to derive a child scope.
    """

    def __init__(self, parent: Optional["Scope"] = None, deadline: Optional[float] = None):
        self.parent = parent
        self._lock = threading.Lock()
        self._err: Optional[ScopeCancelled] = None
        self._children: Set["Scope"] = set()
        self._timer: Optional[threading.Timer] = None

        # A running future cannot be cancelled by listeners holding a
        # reference to it, so only Scope.cancel() can complete it.
        self._done: futures.Future = futures.Future()
        self._done.set_running_or_notify_cancel()

        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        if parent is not None:
            parent._add_child(self)

    def done(self) -> futures.Future:
        """Future that completes, with the cancellation cause, when the scope is cancelled"""
        return self._done

    @property
    def cancelled(self) -> bool:
        return self._done.done()

    @property
    def err(self) -> Optional[ScopeCancelled]:
        """Why the scope was cancelled, or None while it is still active"""
        with self._lock:
            return self._err

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the scope is cancelled

        Args:
            timeout: Maximum time to wait in seconds, or None to wait forever

        Returns:
            True if the scope was cancelled, False if the timeout elapsed first
        """
        try:
            self._done.result(timeout)
        except futures.TimeoutError:
            return False
        return True

    def add_done_callback(self, callback: Callable[["Scope"], Any]) -> None:
        """Call callback(scope) once the scope is cancelled (immediately if it already is)"""
        self._done.add_done_callback(lambda _future: callback(self))

    def raise_if_cancelled(self) -> None:
        """Raise the cancellation cause if the scope has been cancelled"""
        err = self.err
        if err is not None:
            raise err

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None if the scope has no deadline"""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self, cause: Optional[ScopeCancelled] = None) -> bool:
        """
        Cancel the scope and all of its children

        Safe to call any number of times from any thread; only the first
        call has an effect.

        Args:
            cause: Reason for cancellation, defaults to ScopeCancelled

        Returns:
            True if this call cancelled the scope, False if it was already cancelled
        """
        with self._lock:
            if self._err is not None:
                return False
            self._err = cause or ScopeCancelled("scope cancelled")
            children = list(self._children)
            self._children.clear()
            timer, self._timer = self._timer, None

        # Listeners run outside the lock so they may use the scope freely
        self._done.set_result(self._err)
        if timer is not None:
            timer.cancel()
        for child in children:
            child.cancel(self._err)
        if self.parent is not None:
            self.parent._remove_child(self)
        return True

    def with_cancel(self) -> "Scope":
        """Derive a child scope that is cancelled along with this one"""
        return Scope(self)

    def with_timeout(self, seconds: float) -> "Scope":
        """
        Derive a child scope that is cancelled after a number of seconds

        Args:
            seconds: Time until the child scope is cancelled with DeadlineExceeded

        Returns:
            The child scope
        """
        child = Scope(self, deadline=time.monotonic() + seconds)
        remaining = child.remaining()
        if remaining <= 0:
            child.cancel(DeadlineExceeded("deadline exceeded"))
            return child

        timer = threading.Timer(remaining, child.cancel, args=(DeadlineExceeded("deadline exceeded"),))
        timer.daemon = True
        with child._lock:
            if child._err is None:
                child._timer = timer
                timer.start()
        return child

    def _add_child(self, child: "Scope") -> None:
        with self._lock:
            err = self._err
            if err is None:
                self._children.add(child)
        if err is not None:
            child.cancel(err)

    def _remove_child(self, child: "Scope") -> None:
        with self._lock:
            self._children.discard(child)

    def __repr__(self) -> str:
        state = f"cancelled: {self._err!r}" if self.cancelled else "active"
        return f"<Scope {state}>"


class _BackgroundScope(Scope):
    """Root scope that is never cancelled and does not track its children"""

    def cancel(self, cause: Optional[ScopeCancelled] = None) -> bool:
        return False

    def _add_child(self, child: Scope) -> None:
        pass

    def _remove_child(self, child: Scope) -> None:
        pass

    def __repr__(self) -> str:
        return "<Scope background>"


_background = _BackgroundScope()


def background() -> Scope:
    """The root scope: never cancelled, no deadline"""
    return _background


def create_scope(parent: Optional[Scope], writer: Any, request: Any = None,
                 timeout: Optional[float] = None) -> Tuple[Scope, Callable[[], bool]]:
    """
    Create a scope for processing one request

    The scope is cancelled when the release function is called, when
    parent is cancelled, when the timeout elapses, or when the client
    closes the connection early. Detecting a closed connection relies
    on writer implementing CloseNotifier.

    The caller must call the release function once the request is
    finished, otherwise the thread watching the connection is leaked.

    Args:
        parent: Parent scope, or None for the background scope
        writer: Response sink for the request, may be None
        request: The request being processed, may be None
        timeout: Optional deadline in seconds

    Returns:
        Tuple of (scope, release). Calling release more than once is harmless.
    """
    if parent is None:
        parent = background()

    if timeout:
        scope = parent.with_timeout(timeout)
    else:
        scope = parent.with_cancel()

    if isinstance(writer, CloseNotifier):
        # Acquire the notification before starting the watcher: once the
        # request has finished the transport may no longer provide it.
        close_notification = writer.close_notify()
        watcher = threading.Thread(
            target=_watch_connection,
            args=(scope, close_notification),
            name="scope-watcher",
            daemon=True,
        )
        watcher.start()

    return scope, scope.cancel


def _watch_connection(scope: Scope, close_notification: futures.Future) -> None:
    """Cancel scope if the connection closes before the scope is released"""
    done, _ = futures.wait(
        [close_notification, scope.done()],
        return_when=futures.FIRST_COMPLETED,
    )
    if close_notification in done and not close_notification.cancelled():
        if scope.cancel(ScopeCancelled("client closed connection")):
            logger.debug("Client closed connection, request scope cancelled")
