"""
Unit tests for log redaction.
"""

from shared.logging.logger import _censor_secrets


def censor(**event: object) -> dict:
    return _censor_secrets(None, "info", dict(event))


def test_secrets_are_redacted() -> None:
    event = censor(
        event="login",
        password="hunter2",
        refresh_token="eyJ...",
        Authorization="Bearer abc",
        user_id="u1",
    )

    assert event["password"] == "***REDACTED***"
    assert event["refresh_token"] == "***REDACTED***"
    assert event["Authorization"] == "***REDACTED***"
    assert event["user_id"] == "u1"
    assert event["event"] == "login"


def test_nested_dicts_are_redacted() -> None:
    event = censor(request={"headers": {"authorization": "Bearer abc"}, "path": "/api/auth/me"})

    assert event["request"]["headers"]["authorization"] == "***REDACTED***"
    assert event["request"]["path"] == "/api/auth/me"


def test_token_type_is_not_a_secret() -> None:
    assert censor(token_type="refresh")["token_type"] == "refresh"
