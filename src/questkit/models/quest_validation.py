"""QuestValidation entity - one row per validation attempt of a quest."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from questkit.core.timezone import UTCDateTime, utcnow
from questkit.models.quest import InvalidStateTransition


class ValidationStatus(str, Enum):
    """Validation attempt status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


class QuestValidation(SQLModel, table=True):
    """QuestValidation records one run of a quest's criteria.

    Created as pending at the start of a run and finalized exactly once.
    A pending row left behind by a crashed run is never resumed; the next
    run creates a fresh record.
    """

    __tablename__ = "quest_validations"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    quest_id: UUID = Field(foreign_key="quests.id", index=True)
    validated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False, index=True)
    )
    status: ValidationStatus = Field(default=ValidationStatus.PENDING, index=True)
    validation_data: dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    error_message: Optional[str] = Field(default=None)
    next_validation_at: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime())
    )
    valid_addresses: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    processing_time_ms: int = Field(default=0, ge=0)

    def _require_pending(self) -> None:
        if self.status != ValidationStatus.PENDING:
            raise InvalidStateTransition(
                f"Cannot finalize validation from {self.status.value}. "
                "Validation must be in pending state."
            )

    def mark_finished(
        self,
        status: ValidationStatus,
        valid_addresses: list[str],
        processing_time_ms: int,
        next_validation_at: datetime,
    ) -> None:
        """Finalize a completed run with its outcome.

        Args:
            status: Terminal status (success, failed or partial)
            valid_addresses: Addresses that satisfied the criteria
            processing_time_ms: Wall-clock duration of the run
            next_validation_at: Earliest time the quest may be validated again

        Raises:
            InvalidStateTransition: If not pending or status is not terminal
        """
        self._require_pending()
        if status == ValidationStatus.PENDING:
            raise InvalidStateTransition("Cannot finalize validation as pending.")
        self.status = status
        self.valid_addresses = list(valid_addresses)
        self.processing_time_ms = processing_time_ms
        self.next_validation_at = next_validation_at

    def mark_errored(
        self,
        error_message: str,
        processing_time_ms: int,
        next_validation_at: datetime,
    ) -> None:
        """Finalize a run that raised before producing a result.

        Raises:
            InvalidStateTransition: If validation is not pending
        """
        self._require_pending()
        self.status = ValidationStatus.FAILED
        self.error_message = error_message[:2000]
        self.processing_time_ms = processing_time_ms
        self.next_validation_at = next_validation_at
