"""FastAPI dependencies shared by the API routes.

Both dependencies read objects built once in the application lifespan
from app.state.
"""

from typing import Awaitable, Callable

from fastapi import Request

from questkit.services.quest_validator import QuestValidator
from questkit.uow import UnitOfWork


def get_uow_factory(request: Request) -> Callable[[], Awaitable[UnitOfWork]]:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.quests.get_by_id(quest_id)
    """
    return request.app.state.uow_factory


def get_quest_validator(request: Request) -> QuestValidator:
    """Get the quest validation runner from app state."""
    return request.app.state.quest_validator
