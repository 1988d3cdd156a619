"""questkit HTTP service.

Serves the cron trigger, read-only validation history and a health probe.
The in-process sweep worker is optional; deployments normally rely on an
external scheduler calling /api/cron/validate-quests.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

import structlog
from fastapi import FastAPI, Response, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from questkit.api.routes import cron, quests
from questkit.core import timezone  # noqa: F401  (pins TZ=UTC)
from questkit.core.config import Settings, configure_logging
from questkit.core.database import setup_db_session
from questkit.services.quest_validator import build_quest_validator
from questkit.workers.quest_validation_worker import run_quest_validation_worker

logger = structlog.get_logger()

RESTART_DELAY = 1.0  # seconds between a worker exit and its restart


async def supervise_worker(
    worker_name: str,
    start: Callable[[], Awaitable[None]],
    restart_delay: float = RESTART_DELAY,
) -> None:
    """Keep a long-running worker alive until the supervisor is cancelled.

    Crashes and unexpected returns are logged and followed by a restart after
    ``restart_delay``. Cancellation propagates to the running worker.
    """
    while True:
        try:
            await start()
            logger.warning(
                "worker.stopped_unexpectedly",
                worker=worker_name,
                retry_in_seconds=restart_delay,
            )
        except asyncio.CancelledError:
            logger.info("worker.shutdown_complete", worker=worker_name)
            raise
        except Exception as e:
            logger.error(
                "worker.crashed",
                worker=worker_name,
                error=str(e),
                error_type=type(e).__name__,
                retry_in_seconds=restart_delay,
                exc_info=True,
            )

        await asyncio.sleep(restart_delay)
        logger.info("worker.restarting", worker=worker_name)


async def check_database(session_factory: async_sessionmaker[AsyncSession]) -> Exception | None:
    """Run ``SELECT 1``; return the failure, or None when the store answers."""
    try:
        async with session_factory() as session:
            await session.scalar(text("SELECT 1"))
    except Exception as e:
        return e
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire settings, database and the quest validator into app.state.

    The sweep worker only runs when VALIDATION_WORKER_ENABLED is set and is
    cancelled on shutdown.
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    quest_validator = build_quest_validator(settings, session_factory)

    app.state.session_factory = session_factory
    app.state.uow_factory = quest_validator.uow_factory
    app.state.quest_validator = quest_validator

    supervisor = None
    if settings.validation_worker_enabled:
        supervisor = asyncio.create_task(
            supervise_worker(
                "quest_validation",
                lambda: run_quest_validation_worker(session_factory, settings),
            )
        )

    logger.info(
        "application.startup",
        db_host=settings.database_url.rsplit("@", 1)[-1],
        worker_enabled=supervisor is not None,
    )

    try:
        yield
    finally:
        logger.info("application.shutdown")
        if supervisor is not None:
            supervisor.cancel()
            await asyncio.gather(supervisor, return_exceptions=True)


def create_app() -> FastAPI:
    app = FastAPI(
        title="questkit API",
        description="On-chain quest validation service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(cron.router)
    app.include_router(quests.router)

    @app.get("/health")
    async def health_check(response: Response):
        """200 with ``{"status": "healthy"}`` when the database answers, 503 otherwise."""
        error = await check_database(app.state.session_factory)
        if error is None:
            return {"status": "healthy"}

        logger.error("health_check.failed", error=str(error), error_type=type(error).__name__)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "unhealthy",
            "error": {"type": type(error).__name__, "message": str(error)},
        }

    return app


app = create_app()
