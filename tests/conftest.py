"""Root conftest: shared test configuration."""

import os

import pytest

# Settings are read at import time; tests run in a test environment
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("API_KEY", None)
os.environ.pop("REQUEST_TIMEOUT", None)

from werkzeug.wrappers import Request  # noqa: E402

from httpscope.services.metrics_service import MetricsService, metrics  # noqa: E402


@pytest.fixture
def make_request():
    """Build a werkzeug request for a path and headers."""

    def _make(path="/", headers=None, **kwargs):
        return Request.from_values(path=path, headers=headers or {}, **kwargs)

    return _make


@pytest.fixture
def metrics_service():
    """A private metrics service, so tests do not share counters."""
    return MetricsService()


@pytest.fixture
def global_metrics():
    """The global metrics service, cleared before and after the test."""
    metrics.reset()
    yield metrics
    metrics.reset()
