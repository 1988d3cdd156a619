"""Quest entity - operator-defined on-chain criteria with lifecycle status."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from questkit.core.timezone import UTCDateTime, utcnow


class QuestStatus(str, Enum):
    """Quest lifecycle status."""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid quest or validation state transition."""

    pass


class Quest(SQLModel, table=True):
    """Quest holds validation criteria that are periodically re-evaluated while active."""

    __tablename__ = "quests"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=255)
    description: str
    status: QuestStatus = Field(default=QuestStatus.DRAFT, index=True)
    criteria: dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    network: str = Field(max_length=64)
    token_address: str = Field(max_length=256)
    start_date: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime()))
    end_date: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime()))
    user_id: UUID = Field(index=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )

    @property
    def criteria_type(self) -> str:
        """Top-level criteria tag (e.g. "swappedFor", "and")."""
        return str(self.criteria.get("type", "")) if isinstance(self.criteria, dict) else ""

    def activate(self) -> None:
        """Transition from draft to active, enabling periodic validation.

        Raises:
            InvalidStateTransition: If current status is not draft
        """
        if self.status != QuestStatus.DRAFT:
            raise InvalidStateTransition(
                f"Cannot activate quest from {self.status.value}. Quest must be in draft state."
            )
        self.status = QuestStatus.ACTIVE

    def complete(self) -> None:
        """Transition from active to completed.

        Raises:
            InvalidStateTransition: If current status is not active
        """
        if self.status != QuestStatus.ACTIVE:
            raise InvalidStateTransition(
                f"Cannot complete quest from {self.status.value}. Quest must be in active state."
            )
        self.status = QuestStatus.COMPLETED

    def archive(self) -> None:
        """Transition from any non-archived state to archived.

        Raises:
            InvalidStateTransition: If quest is already archived
        """
        if self.status == QuestStatus.ARCHIVED:
            raise InvalidStateTransition("Quest is already archived.")
        self.status = QuestStatus.ARCHIVED
