"""Scheduled trigger endpoints.

GET /api/cron/validate-quests runs one validation sweep over all active
quests. It is meant to be called by an external scheduler every few minutes;
quests that are not yet due are skipped by the runner.
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from questkit.api.dependencies import get_quest_validator
from questkit.services.quest_validator import QuestValidator

logger = structlog.get_logger()
router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.get("/validate-quests")
async def validate_quests(
    validator: QuestValidator = Depends(get_quest_validator),
) -> JSONResponse:
    """Run one validation sweep.

    Per-quest failures are recorded on the quest's validation row and do not
    fail the request; only a sweep-level error (e.g. the database is down)
    returns 500.

    Returns:
        200: {"success": true, "message": ..., "summary": {...}}
        500: {"success": false, "message": ..., "error": ...}
    """
    logger.info("cron.validate_quests_started")

    try:
        summary = await validator.validate_all_active_quests()
    except Exception as e:
        logger.error(
            "cron.validate_quests_failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "Quest validation failed",
                "error": str(e) or type(e).__name__,
            },
        )

    logger.info("cron.validate_quests_completed", total=summary.total, errored=summary.errored)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "message": "Quest validation completed successfully",
            "summary": {
                "total": summary.total,
                "validated": summary.validated,
                "skipped": summary.skipped,
                "errored": summary.errored,
            },
        },
    )
