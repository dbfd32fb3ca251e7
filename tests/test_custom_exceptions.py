"""Error capabilities and helper constructors."""

import pytest
from werkzeug.exceptions import MethodNotAllowed

from httpscope.exceptions.custom_exceptions import (
    NOT_IMPLEMENTED,
    DeadlineExceeded,
    HasErrorCode,
    HasStatusCode,
    HTTPScopeError,
    ScopeCancelled,
    bad_request,
    error_code_of,
    forbidden,
    has_error_code,
    new_error,
    server_error,
    status_code_of,
)


@pytest.mark.parametrize("factory, status", [
    (bad_request, 400),
    (forbidden, 403),
    (server_error, 500),
])
def test_helpers_set_status(factory, status):
    err = factory("message")
    assert err.status_code() == status
    assert str(err) == "message"
    assert err.error_code() == ""


def test_new_error():
    err = new_error("teapot", 418)
    assert isinstance(err, HasStatusCode)
    assert isinstance(err, HasErrorCode)
    assert status_code_of(err) == 418


def test_not_implemented():
    assert status_code_of(NOT_IMPLEMENTED) == 501
    assert str(NOT_IMPLEMENTED) == "not implemented"


def test_plain_exception_declares_nothing():
    err = ValueError("nope")
    assert not isinstance(err, HasStatusCode)
    assert status_code_of(err) == 0
    assert error_code_of(err) == ""


def test_werkzeug_exception_status():
    assert status_code_of(MethodNotAllowed()) == 405


def test_error_code_attribute():
    class Coded(Exception):
        error_code = "E_ATTR"

    assert error_code_of(Coded()) == "E_ATTR"
    assert has_error_code(Coded(), "E_ATTR")
    assert not has_error_code(Coded(), "E_OTHER")


def test_has_error_code():
    err = HTTPScopeError("quota", 429, "QUOTA_EXCEEDED")
    assert has_error_code(err, "QUOTA_EXCEEDED")
    assert not has_error_code(ValueError(), "QUOTA_EXCEEDED")


def test_deadline_exceeded_is_scope_cancelled():
    assert issubclass(DeadlineExceeded, ScopeCancelled)
    assert status_code_of(DeadlineExceeded("deadline exceeded")) == 0


@pytest.mark.parametrize("value, expected", [
    ("E_THROTTLED", 0),
    (None, 0),
    ([], 0),
    ("404", 404),
])
def test_status_code_attribute_values(value, expected):
    class VendorError(Exception):
        status_code = value

    assert status_code_of(VendorError()) == expected
