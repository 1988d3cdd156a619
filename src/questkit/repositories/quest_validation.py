"""QuestValidation repository for questkit.

Provides data access methods for QuestValidation entities.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questkit.models.quest_validation import QuestValidation, ValidationStatus


class QuestValidationRepository:
    """Repository for QuestValidation entities.

    Validation rows are created pending and finalized exactly once through
    complete() or fail().
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create(
        self,
        quest_id: UUID,
        validation_data: dict[str, Any],
        next_validation_at: datetime | None = None,
    ) -> QuestValidation:
        """Create a pending validation record for a quest.

        Args:
            quest_id: Quest being validated
            validation_data: Snapshot of the criteria and run start time
            next_validation_at: Optional pre-set eligibility time

        Returns:
            Persisted validation with generated ID
        """
        validation = QuestValidation(
            quest_id=quest_id,
            validation_data=validation_data,
            status=ValidationStatus.PENDING,
            next_validation_at=next_validation_at,
            processing_time_ms=0,
        )
        self.session.add(validation)
        await self.session.flush()
        return validation

    async def get_by_id(self, validation_id: UUID) -> QuestValidation | None:
        """Retrieve validation by UUID."""
        result = await self.session.execute(
            select(QuestValidation).where(QuestValidation.id == validation_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_latest_for_quest(self, quest_id: UUID) -> QuestValidation | None:
        """Retrieve the most recent validation attempt of a quest.

        Args:
            quest_id: Quest's unique identifier

        Returns:
            Latest validation by validated_at, None if the quest was never validated
        """
        result = await self.session.execute(
            select(QuestValidation)
            .where(QuestValidation.quest_id == quest_id)  # type: ignore[arg-type]
            .order_by(QuestValidation.validated_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_quest(
        self, quest_id: UUID, limit: int = 100, offset: int = 0
    ) -> list[QuestValidation]:
        """Retrieve validation history of a quest, newest first."""
        result = await self.session.execute(
            select(QuestValidation)
            .where(QuestValidation.quest_id == quest_id)  # type: ignore[arg-type]
            .order_by(QuestValidation.validated_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def complete(
        self,
        validation: QuestValidation,
        status: ValidationStatus,
        valid_addresses: list[str],
        processing_time_ms: int,
        next_validation_at: datetime,
    ) -> None:
        """Finalize a validation with the outcome of its query.

        Raises:
            InvalidStateTransition: If the validation was already finalized
        """
        validation.mark_finished(
            status=status,
            valid_addresses=valid_addresses,
            processing_time_ms=processing_time_ms,
            next_validation_at=next_validation_at,
        )
        self.session.add(validation)
        await self.session.flush()
        await self.session.refresh(validation)

    async def fail(
        self,
        validation: QuestValidation,
        error_message: str,
        processing_time_ms: int,
        next_validation_at: datetime,
    ) -> None:
        """Finalize a validation whose run raised an error.

        Raises:
            InvalidStateTransition: If the validation was already finalized
        """
        validation.mark_errored(
            error_message=error_message,
            processing_time_ms=processing_time_ms,
            next_validation_at=next_validation_at,
        )
        self.session.add(validation)
        await self.session.flush()
        await self.session.refresh(validation)
