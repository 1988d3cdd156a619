"""Quest validation history API endpoints.

- GET /api/quests/{quest_id}/validations - Validation runs of a quest, newest first
- GET /api/quests/{quest_id}/validations/{validation_id}/results - Matched
  addresses recorded by one run

Both endpoints are read-only. Authentication is left to the deployment.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from questkit.api.dependencies import get_uow_factory
from questkit.models.quest_validation import ValidationStatus

logger = structlog.get_logger()
router = APIRouter(prefix="/api/quests", tags=["quests"])


# Response Models


class QuestValidationResponse(BaseModel):
    """One validation run of a quest."""

    id: UUID
    quest_id: UUID
    validated_at: datetime
    status: ValidationStatus
    validation_data: dict[str, Any]
    error_message: Optional[str] = None
    next_validation_at: Optional[datetime] = None
    valid_addresses: list[str]
    processing_time_ms: int


class QuestValidationResultResponse(BaseModel):
    """One matched address of a validation run."""

    id: UUID
    validation_id: UUID
    user_address: str
    is_valid: bool
    result_data: dict[str, Any]
    criteria_type: str
    validated_at: datetime


# API Endpoints


@router.get(
    "/{quest_id}/validations",
    response_model=list[QuestValidationResponse],
    status_code=status.HTTP_200_OK,
)
async def list_quest_validations(
    quest_id: UUID,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    uow_factory=Depends(get_uow_factory),
) -> list[QuestValidationResponse]:
    """List validation runs of a quest, newest first.

    Raises:
        HTTPException 404: Quest does not exist
    """
    async with await uow_factory() as uow:
        quest = await uow.quests.get_by_id(quest_id)
        if quest is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quest not found")

        validations = await uow.validations.get_by_quest(quest_id, limit=limit, offset=offset)

    logger.debug("quest_validations_listed", quest_id=str(quest_id), count=len(validations))
    return [QuestValidationResponse.model_validate(v, from_attributes=True) for v in validations]


@router.get(
    "/{quest_id}/validations/{validation_id}/results",
    response_model=list[QuestValidationResultResponse],
    status_code=status.HTTP_200_OK,
)
async def list_validation_results(
    quest_id: UUID,
    validation_id: UUID,
    uow_factory=Depends(get_uow_factory),
) -> list[QuestValidationResultResponse]:
    """List result rows of one validation run.

    Raises:
        HTTPException 404: Quest or validation does not exist, or the
            validation belongs to another quest
    """
    async with await uow_factory() as uow:
        validation = await uow.validations.get_by_id(validation_id)
        if validation is None or validation.quest_id != quest_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Validation not found"
            )

        results = await uow.validation_results.get_by_validation(validation_id)

    return [
        QuestValidationResultResponse.model_validate(r, from_attributes=True) for r in results
    ]
