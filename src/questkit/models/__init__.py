"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from questkit.models.quest import InvalidStateTransition, Quest, QuestStatus
from questkit.models.quest_validation import QuestValidation, ValidationStatus
from questkit.models.quest_validation_result import QuestValidationResult

__all__ = [
    "Quest",
    "QuestStatus",
    "InvalidStateTransition",
    "QuestValidation",
    "ValidationStatus",
    "QuestValidationResult",
]
