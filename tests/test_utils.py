from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from certprep import config
from certprep.utils import time_utils, validation


def test_time_utils_parsing() -> None:
    timestamp = time_utils.utc_now()
    parsed = time_utils.parse_iso_timestamp(timestamp.isoformat())
    assert parsed == timestamp

    zulu = "2024-01-01T12:00:00Z"
    parsed_zulu = time_utils.parse_iso_timestamp(zulu)
    assert parsed_zulu is not None
    assert parsed_zulu.tzinfo is not None

    assert time_utils.parse_iso_timestamp("") is None
    assert time_utils.parse_iso_timestamp("yesterday") is None
    assert time_utils.parse_iso_timestamp(123) is None


def test_naive_datetimes_are_utc() -> None:
    naive = datetime(2024, 5, 1, 8, 30)
    aware = time_utils.ensure_aware(naive)
    assert aware.tzinfo is timezone.utc
    assert time_utils.isoformat(naive) == "2024-05-01T08:30:00+00:00"
    assert time_utils.isoformat(None) is None
    assert time_utils.seconds_between(naive, aware + timedelta(seconds=90)) == 90
    assert time_utils.seconds_between(None, aware) is None


def test_validate_id() -> None:
    assert validation.validate_id("testId", " abc ") == "abc"
    with pytest.raises(HTTPException):
        validation.validate_id("testId", "")
    with pytest.raises(HTTPException):
        validation.validate_id("testId", None)
    with pytest.raises(HTTPException):
        validation.validate_id("testId", "../bad")
    with pytest.raises(HTTPException):
        validation.validate_id("testId", "x" * 65)


def test_production_requires_secret_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "APP_ENV", "production")
    monkeypatch.setattr(config, "SECRET_KEY", config.DEFAULT_SECRET_KEY)
    with pytest.raises(config.ConfigurationError):
        config.validate_settings()

    monkeypatch.setattr(config, "SECRET_KEY", "a-real-secret")
    config.validate_settings()


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert "error" in response.json()
