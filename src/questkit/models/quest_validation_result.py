"""QuestValidationResult entity - per-address outcome of a validation run (append-only)."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from questkit.core.timezone import UTCDateTime, utcnow


class QuestValidationResult(SQLModel, table=True):
    """QuestValidationResult stores one matched address of a validation run."""

    __tablename__ = "quest_validation_results"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    validation_id: UUID = Field(foreign_key="quest_validations.id", index=True)
    user_address: str = Field(max_length=256, index=True)
    is_valid: bool
    result_data: dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    criteria_type: str = Field(max_length=64)
    validated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )
