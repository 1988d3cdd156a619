"""Unit of Work for questkit.

One UnitOfWork wraps one session and therefore one transaction. The quest
validation runner opens several in sequence per quest so that each step
(pending record, result rows, finalization) commits independently.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from questkit.repositories.quest import QuestRepository
from questkit.repositories.quest_validation import QuestValidationRepository
from questkit.repositories.quest_validation_result import QuestValidationResultRepository

logger = structlog.get_logger()


class UnitOfWork:
    """Transaction scope exposing the quest store repositories.

    Example:
        async with await uow_factory() as uow:
            quests = await uow.quests.get_active()
        # committed here; an exception inside the block rolls back instead
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.quests = QuestRepository(session)
        self.validations = QuestValidationRepository(session)
        self.validation_results = QuestValidationResultRepository(session)

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Commit on clean exit, roll back on error, always release the session.

        Exceptions from the block are never suppressed.
        """
        try:
            if exc_type is not None:
                await self.session.rollback()
                logger.debug("transaction.rolled_back", exc_type=exc_type.__name__)
            else:
                await self.session.commit()
                logger.debug("transaction.committed")
        finally:
            await self.session.close()
        return False


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Bind a session factory into an async UnitOfWork factory.

    The returned coroutine function opens a fresh session per call:

        uow_factory = create_uow_factory(setup_db_session(db_url))
        async with await uow_factory() as uow:
            await uow.quests.add(quest)
    """

    async def _create_uow() -> UnitOfWork:
        return UnitOfWork(session_factory())

    return _create_uow
