"""Settings: environment names and environment-specific helpers."""

import pytest
from pydantic import ValidationError

from httpscope.config.settings import Settings
from httpscope.exceptions.custom_exceptions import HTTPScopeError


def make_settings(**kwargs):
    return Settings(_env_file=None, **kwargs)


def test_defaults_in_test_environment():
    settings = make_settings()
    assert settings.environment == "test"
    assert settings.is_test
    assert not settings.is_production
    assert settings.request_timeout == 0
    assert settings.api_key is None


@pytest.mark.parametrize("environment", ["production", "production2", "test", "testing", "development", "developmentx1"])
def test_valid_environment_names(environment):
    assert make_settings(environment=environment).environment == environment


@pytest.mark.parametrize("environment", ["", "p", "Production", "staging", "test-1", "9test", "test_env"])
def test_invalid_environment_names(environment):
    with pytest.raises(ValidationError):
        make_settings(environment=environment)


def test_environment_kinds():
    assert make_settings(environment="production").is_production
    assert make_settings(environment="development").is_development
    assert make_settings(environment="production", debug=True).is_development
    assert not make_settings(environment="production").is_development


def test_check_test():
    make_settings(environment="test2").check_test()
    with pytest.raises(HTTPScopeError) as exc_info:
        make_settings(environment="production").check_test()
    assert exc_info.value.status_code() == 403


@pytest.mark.parametrize("name, expected", [
    ("tablename", "tablename_test"),
    ("table_name", "table_name_test"),
    ("queue-name", "queue-name-test"),
    ("bucket.name", "bucket.name.test"),
    ("mixed-name_x", "mixed-name_x_test"),
])
def test_name_for(name, expected):
    assert make_settings(environment="test").name_for(name) == expected


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("API_KEY", "secret")
    settings = make_settings()
    assert settings.request_timeout == 2.5
    assert settings.api_key == "secret"


def test_negative_timeout_rejected():
    with pytest.raises(ValidationError):
        make_settings(request_timeout=-1)
