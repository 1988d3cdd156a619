"""Quest validation worker.

Optional in-process alternative to the external cron trigger: runs a
validation sweep every SWEEP_INTERVAL_SECONDS. Per-quest scheduling still
comes from each quest's next_validation_at, so a short sweep interval only
makes the worker notice due quests sooner.
"""

import asyncio
from typing import Callable

import structlog

from questkit.core.config import Settings
from questkit.services.quest_validator import build_quest_validator

logger = structlog.get_logger()


async def run_quest_validation_worker(
    session_factory: Callable,
    settings: Settings,
) -> None:
    """Main entry point for the quest validation worker.

    Worker lifecycle:
    - Started from the FastAPI lifespan when VALIDATION_WORKER_ENABLED is set
    - Runs until asyncio.CancelledError (app shutdown)

    Error handling:
    - Per-quest errors are recorded by the runner and never reach this loop
    - Sweep-level errors (e.g. database unavailable) are logged, then the
      worker backs off and tries again on the next cycle

    Args:
        session_factory: Factory function to create new database sessions
        settings: Application settings (sweep interval, Kraxel and schedule config)
    """
    sweep_interval = settings.sweep_interval_seconds
    validator = build_quest_validator(settings, session_factory)

    logger.info(
        "worker.started",
        worker="quest_validation_worker",
        sweep_interval=sweep_interval,
        concurrency=validator.schedule.concurrency,
    )

    try:
        while True:
            try:
                summary = await validator.validate_all_active_quests()
                if summary.errored:
                    logger.warning(
                        "worker.sweep_errors",
                        worker="quest_validation_worker",
                        errored=summary.errored,
                        total=summary.total,
                    )

            except asyncio.CancelledError:
                # Propagate cancellation for graceful shutdown
                raise

            except Exception as e:
                logger.error(
                    "worker.error",
                    worker_type="quest_validation_worker",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    exc_info=True,
                )
                # Back off 5 seconds before retrying
                await asyncio.sleep(5)

            await asyncio.sleep(sweep_interval)

    except asyncio.CancelledError:
        logger.info(
            "worker.stopped",
            worker="quest_validation_worker",
            message="Graceful shutdown requested",
        )
        raise
