"""CLI tests for questkit.cli.validate_quests."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from questkit.cli.validate_quests import async_main, parse_args
from questkit.models.quest import Quest
from questkit.services.quest_validator import QuestOutcome, QuestValidator, SweepSummary


def test_parse_args():
    quest_id = uuid4()

    args = parse_args(["--quest-id", str(quest_id), "--force", "-v"])

    assert args.quest_id == quest_id
    assert args.force is True
    assert args.verbose is True


def patched_cli(validator):
    return patch.multiple(
        "questkit.cli.validate_quests",
        setup_db_session=lambda *a, **kw: None,
        build_quest_validator=lambda *a, **kw: validator,
    )


@pytest.mark.asyncio
async def test_sweep_exits_zero(capsys):
    validator = AsyncMock(spec=QuestValidator)
    validator.validate_all_active_quests.return_value = SweepSummary(total=2, validated=2)

    with patched_cli(validator):
        exit_code = await async_main([])

    assert exit_code == 0
    assert "Validated: 2" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_single_quest_forced(uow_factory):
    async with await uow_factory() as uow:
        quest = await uow.quests.add(
            Quest(
                title="Buy T",
                description="Swap into T",
                criteria={"type": "swappedFor", "params": {"tokenPrincipal": "T"}},
                network="mainnet",
                token_address="T",
                user_id=uuid4(),
            )
        )

    validator = AsyncMock(spec=QuestValidator)
    validator.uow_factory = uow_factory
    validator.validate_single_quest.return_value = QuestOutcome.ERRORED

    with patched_cli(validator):
        exit_code = await async_main(["--quest-id", str(quest.id), "--force"])

    assert exit_code == 1
    validated_quest = validator.validate_single_quest.await_args.args[0]
    assert validated_quest.id == quest.id
    assert validator.validate_single_quest.await_args.kwargs == {"force": True}


@pytest.mark.asyncio
async def test_unknown_quest_exits_one(uow_factory):
    validator = AsyncMock(spec=QuestValidator)
    validator.uow_factory = uow_factory

    with patched_cli(validator):
        exit_code = await async_main(["--quest-id", str(uuid4())])

    assert exit_code == 1
    validator.validate_single_quest.assert_not_awaited()
