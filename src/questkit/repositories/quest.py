"""Quest repository for questkit.

Provides data access methods for Quest entities.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from questkit.models.quest import Quest, QuestStatus
from questkit.models.quest_validation import QuestValidation
from questkit.models.quest_validation_result import QuestValidationResult


class QuestRepository:
    """Repository for Quest entities."""

    # Columns that may be changed through update(); identity and ownership are fixed
    UPDATABLE_FIELDS = frozenset(
        {
            "title",
            "description",
            "status",
            "criteria",
            "network",
            "token_address",
            "start_date",
            "end_date",
        }
    )

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, quest: Quest) -> Quest:
        """Persist new quest to database.

        Args:
            quest: Quest entity to persist

        Returns:
            Persisted quest with generated ID
        """
        self.session.add(quest)
        await self.session.flush()
        return quest

    async def get_by_id(self, quest_id: UUID) -> Quest | None:
        """Retrieve quest by UUID.

        Args:
            quest_id: Quest's unique identifier

        Returns:
            Quest if found, None otherwise
        """
        result = await self.session.execute(select(Quest).where(Quest.id == quest_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: UUID, limit: int = 100, offset: int = 0) -> list[Quest]:
        """Retrieve quests owned by a user, newest first.

        Args:
            user_id: Owning user's identifier
            limit: Maximum number of quests to return (default: 100)
            offset: Number of quests to skip (default: 0)
        """
        result = await self.session.execute(
            select(Quest)
            .where(Quest.user_id == user_id)  # type: ignore[arg-type]
            .order_by(Quest.created_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def get_active(self) -> list[Quest]:
        """Retrieve all quests eligible for periodic validation.

        Returns:
            Active quests ordered by creation time (oldest first)
        """
        result = await self.session.execute(
            select(Quest)
            .where(Quest.status == QuestStatus.ACTIVE)  # type: ignore[arg-type]
            .order_by(Quest.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def update(self, quest: Quest, **changes: Any) -> Quest:
        """Apply a partial update to a quest.

        Only keys present in ``changes`` are written; ``None`` values are applied
        as given (e.g. clearing an end date).

        Raises:
            ValueError: If a key is not an updatable quest field
        """
        unknown = set(changes) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update quest fields: {', '.join(sorted(unknown))}")

        for field, value in changes.items():
            setattr(quest, field, value)
        self.session.add(quest)
        await self.session.flush()
        await self.session.refresh(quest)
        return quest

    async def delete(self, quest_id: UUID) -> bool:
        """Delete a quest together with its validation history.

        Result rows are removed first, then validations, then the quest itself.

        Returns:
            True if the quest existed and was deleted, False otherwise
        """
        validation_ids = select(QuestValidation.id).where(
            QuestValidation.quest_id == quest_id  # type: ignore[arg-type]
        )
        await self.session.execute(
            delete(QuestValidationResult).where(
                QuestValidationResult.validation_id.in_(validation_ids)  # type: ignore[attr-defined]
            )
        )
        await self.session.execute(
            delete(QuestValidation).where(QuestValidation.quest_id == quest_id)  # type: ignore[arg-type]
        )
        result = await self.session.execute(delete(Quest).where(Quest.id == quest_id))  # type: ignore[arg-type]
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]
