"""Repository layer for questkit.

Provides data access abstractions for all domain entities.
Each repository is self-contained; there are no base classes.
"""

from questkit.repositories.quest import QuestRepository
from questkit.repositories.quest_validation import QuestValidationRepository
from questkit.repositories.quest_validation_result import QuestValidationResultRepository

__all__ = [
    "QuestRepository",
    "QuestValidationRepository",
    "QuestValidationResultRepository",
]
