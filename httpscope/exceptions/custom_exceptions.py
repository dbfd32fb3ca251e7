"""
Exception classes and error capabilities for the request-processing layer
"""
from http import HTTPStatus
from typing import Optional, Protocol, runtime_checkable

from werkzeug.exceptions import HTTPException


@runtime_checkable
class HasStatusCode(Protocol):
    """An error that suggests the HTTP status code to send to the client"""

    def status_code(self) -> int:
        ...


@runtime_checkable
class HasErrorCode(Protocol):
    """An error that carries an application-level error code"""

    def error_code(self) -> str:
        ...


class HTTPScopeError(Exception):
    """
    Error with an HTTP status code and an optional application error code

    The message is returned to the client verbatim, so it must not contain
    sensitive information.
    """

    def __init__(self, message: str, status: int = HTTPStatus.INTERNAL_SERVER_ERROR,
                 code: Optional[str] = None):
        self.message = message
        self.status = int(status)
        self.code = code
        super().__init__(self.message)

    def status_code(self) -> int:
        return self.status

    def error_code(self) -> str:
        return self.code or ""


class ScopeCancelled(Exception):
    """Raised when a request scope has been cancelled"""
    pass


class DeadlineExceeded(ScopeCancelled):
    """Raised when a request scope was cancelled because its deadline passed"""
    pass


def new_error(message: str, status: int) -> HTTPScopeError:
    """Create an error with the given message and HTTP status code"""
    return HTTPScopeError(message, status)


def bad_request(message: str) -> HTTPScopeError:
    return new_error(message, HTTPStatus.BAD_REQUEST)


def forbidden(message: str) -> HTTPScopeError:
    return new_error(message, HTTPStatus.FORBIDDEN)


def server_error(message: str) -> HTTPScopeError:
    return new_error(message, HTTPStatus.INTERNAL_SERVER_ERROR)


NOT_IMPLEMENTED = new_error("not implemented", HTTPStatus.NOT_IMPLEMENTED)


def status_code_of(err: BaseException) -> int:
    """
    Get the HTTP status code suggested by an error

    Args:
        err: Any exception

    Returns:
        The declared status code, or 0 if the error does not declare a
        numeric one
    """
    if isinstance(err, HasStatusCode):
        # some libraries expose status_code as a plain attribute
        value = err.status_code
        if callable(value):
            value = value()
        try:
            return int(value or 0)
        except (TypeError, ValueError):
            return 0
    if isinstance(err, HTTPException):
        return err.code or 0
    return 0


def error_code_of(err: BaseException) -> str:
    """
    Get the application error code of an error

    Returns:
        The error code, or a blank string if the error does not have one
    """
    if isinstance(err, HasErrorCode):
        value = err.error_code
        return (value() if callable(value) else value) or ""
    return ""


def has_error_code(err: BaseException, code: str) -> bool:
    """Check whether an error has the specified application error code"""
    return error_code_of(err) == code
