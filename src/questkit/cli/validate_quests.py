"""CLI command for running quest validation once.

Usage:
    python -m questkit.cli.validate_quests [OPTIONS]

Examples:
    # Sweep all active quests that are due
    python -m questkit.cli.validate_quests

    # Validate one quest now, ignoring its schedule
    python -m questkit.cli.validate_quests --quest-id 6f1c... --force

    # Verbose logging
    python -m questkit.cli.validate_quests -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from uuid import UUID

import structlog

from questkit.core import timezone  # noqa: F401
from questkit.core.config import Settings, configure_logging
from questkit.core.database import setup_db_session
from questkit.services.quest_validator import QuestOutcome, build_quest_validator

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Validate active quests against on-chain activity",
        epilog="Without --quest-id, runs one sweep over all active quests",
    )

    parser.add_argument(
        "--quest-id",
        type=UUID,
        help="Validate a single quest instead of sweeping all active quests",
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore next_validation_at and validate immediately",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    validator = build_quest_validator(settings, session_factory)

    logger.info("cli.started", quest_id=str(args.quest_id) if args.quest_id else None)

    try:
        if args.quest_id is not None:
            async with await validator.uow_factory() as uow:
                quest = await uow.quests.get_by_id(args.quest_id)

            if quest is None:
                logger.error("cli.quest_not_found", quest_id=str(args.quest_id))
                print(f"Error: Quest {args.quest_id} not found", file=sys.stderr)
                return 1

            outcome = await validator.validate_single_quest(quest, force=args.force)
            print(f"Quest {quest.id}: {outcome.value}")
            return 1 if outcome == QuestOutcome.ERRORED else 0

        summary = await validator.validate_all_active_quests()

        print("\n" + "=" * 60)
        print("Quest Validation Summary")
        print("=" * 60)
        print(f"Active quests: {summary.total}")
        print(f"Validated: {summary.validated}")
        print(f"Skipped (not due): {summary.skipped}")
        print(f"Errored: {summary.errored}")
        print("=" * 60 + "\n")
        return 0

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nValidation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
