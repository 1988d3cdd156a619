"""QuestValidationResult repository for questkit.

Result rows are append-only; no update methods are provided.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questkit.models.quest_validation_result import QuestValidationResult


class QuestValidationResultRepository:
    """Repository for QuestValidationResult entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create(
        self,
        validation_id: UUID,
        user_address: str,
        is_valid: bool,
        result_data: dict[str, Any],
        criteria_type: str,
    ) -> QuestValidationResult:
        """Append a per-address result row to a validation run.

        Args:
            validation_id: Validation run the row belongs to
            user_address: Address that was checked
            is_valid: Whether the address satisfied the criteria
            result_data: Matched transaction details and query metadata
            criteria_type: Top-level criteria type of the quest

        Returns:
            Persisted result row
        """
        row = QuestValidationResult(
            validation_id=validation_id,
            user_address=user_address,
            is_valid=is_valid,
            result_data=result_data,
            criteria_type=criteria_type,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_by_validation(self, validation_id: UUID) -> list[QuestValidationResult]:
        """Retrieve all result rows of a validation run in insertion order."""
        result = await self.session.execute(
            select(QuestValidationResult)
            .where(QuestValidationResult.validation_id == validation_id)  # type: ignore[arg-type]
            .order_by(QuestValidationResult.validated_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
