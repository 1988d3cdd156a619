"""Settings tests: fail-fast validation and schedule construction."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from questkit.core.config import Settings, ValidationSchedule


def test_missing_kraxel_url_fails_outside_tests(monkeypatch):
    monkeypatch.delenv("KRAXEL_API_URL", raising=False)

    with pytest.raises(ValidationError, match="KRAXEL_API_URL"):
        Settings(DATABASE_URL="sqlite+aiosqlite://", APP_ENV="production")


def test_test_environment_skips_required_checks(monkeypatch):
    monkeypatch.delenv("KRAXEL_API_URL", raising=False)

    settings = Settings(DATABASE_URL="sqlite+aiosqlite://", APP_ENV="test")

    assert settings.kraxel_api_url == ""


def test_validation_schedule_from_settings():
    settings = Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        APP_ENV="development",
        KRAXEL_API_URL="https://kraxel.test",
        VALIDATION_SUCCESS_INTERVAL_SECONDS=60,
        VALIDATION_ERROR_INTERVAL_SECONDS=120,
        QUEST_TIMEOUT_SECONDS=0,
        VALIDATION_CONCURRENCY=4,
    )

    schedule = settings.validation_schedule()

    assert schedule == ValidationSchedule(
        success_interval=timedelta(seconds=60),
        error_interval=timedelta(seconds=120),
        quest_timeout=None,
        concurrency=4,
    )


def test_default_schedule():
    schedule = ValidationSchedule()

    assert schedule.success_interval == timedelta(minutes=10)
    assert schedule.error_interval == timedelta(minutes=15)
    assert schedule.error_interval > schedule.success_interval
    assert schedule.concurrency == 1
