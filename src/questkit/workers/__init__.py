"""Background workers for async processing tasks."""

from questkit.workers.quest_validation_worker import run_quest_validation_worker

__all__ = [
    "run_quest_validation_worker",
]
