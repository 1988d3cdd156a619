"""Quest validation worker tests."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from questkit.core.config import Settings, ValidationSchedule
from questkit.services.quest_validator import QuestValidator, SweepSummary
from questkit.workers.quest_validation_worker import run_quest_validation_worker

real_sleep = asyncio.sleep


def make_settings() -> Settings:
    return Settings(DATABASE_URL="sqlite+aiosqlite://", APP_ENV="test", SWEEP_INTERVAL_SECONDS=1)


async def fast_sleep(seconds):
    await real_sleep(0)


def stub_validator() -> AsyncMock:
    validator = AsyncMock(spec=QuestValidator)
    validator.schedule = ValidationSchedule()
    return validator


@pytest.mark.asyncio
async def test_worker_sweeps_until_cancelled():
    swept = asyncio.Event()
    validator = stub_validator()

    async def sweep():
        swept.set()
        return SweepSummary(total=1, validated=1)

    validator.validate_all_active_quests.side_effect = sweep

    with patch(
        "questkit.workers.quest_validation_worker.build_quest_validator", return_value=validator
    ):
        task = asyncio.create_task(run_quest_validation_worker(None, make_settings()))
        await asyncio.wait_for(swept.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    validator.validate_all_active_quests.assert_awaited()


@pytest.mark.asyncio
async def test_worker_survives_sweep_errors():
    calls = 0
    recovered = asyncio.Event()
    validator = stub_validator()

    async def sweep():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("database unavailable")
        recovered.set()
        return SweepSummary()

    validator.validate_all_active_quests.side_effect = sweep

    with (
        patch(
            "questkit.workers.quest_validation_worker.build_quest_validator",
            return_value=validator,
        ),
        patch("questkit.workers.quest_validation_worker.asyncio.sleep", new=fast_sleep),
    ):
        task = asyncio.create_task(run_quest_validation_worker(None, make_settings()))
        await asyncio.wait_for(recovered.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    assert calls >= 2


@pytest.mark.asyncio
async def test_supervisor_restarts_crashed_worker():
    from questkit.app import supervise_worker

    runs = 0
    restarted = asyncio.Event()

    async def worker():
        nonlocal runs
        runs += 1
        if runs == 1:
            raise RuntimeError("boom")
        restarted.set()
        await asyncio.Event().wait()

    task = asyncio.create_task(supervise_worker("test", worker, restart_delay=0))
    await asyncio.wait_for(restarted.wait(), timeout=1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert runs == 2


@pytest.mark.asyncio
async def test_supervisor_restarts_worker_that_returns():
    from questkit.app import supervise_worker

    runs = 0
    restarted = asyncio.Event()

    async def worker():
        nonlocal runs
        runs += 1
        if runs >= 3:
            restarted.set()
            await asyncio.Event().wait()

    task = asyncio.create_task(supervise_worker("test", worker, restart_delay=0))
    await asyncio.wait_for(restarted.wait(), timeout=1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert runs == 3
