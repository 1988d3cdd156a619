"""Quest validation runner.

Sweeps active quests, runs each quest's criteria against the Kraxel API and
records the outcome as a validation row plus one result row per match.

Per quest:
1. Skip if the latest validation is not yet due (unless forced)
2. Commit a pending validation record
3. Parse criteria, build and execute the query (bounded by the quest timeout)
4. Finalize as success/failed and schedule the next run

Each step that touches the database uses its own unit of work, so a pending
record survives a crash mid-run and one quest's failure never affects another.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from questkit.core.config import Settings, ValidationSchedule
from questkit.core.timezone import as_utc, utcnow
from questkit.models.quest import Quest
from questkit.models.quest_validation import QuestValidation, ValidationStatus
from questkit.services.exceptions import QuestTimeoutError
from questkit.services.kraxel.client import KraxelClient
from questkit.services.kraxel.types import Transaction
from questkit.services.validation.criteria import build_query, parse_criteria
from questkit.services.validation.query import ValidationResult
from questkit.uow import UnitOfWork, create_uow_factory

logger = structlog.get_logger(__name__)


class QuestOutcome(str, Enum):
    """What happened to a quest during a sweep."""

    VALIDATED = "validated"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass
class SweepSummary:
    """Counts for one sweep over active quests."""

    total: int = 0
    validated: int = 0
    skipped: int = 0
    errored: int = 0

    def record(self, outcome: QuestOutcome) -> None:
        if outcome == QuestOutcome.VALIDATED:
            self.validated += 1
        elif outcome == QuestOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.errored += 1


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.monotonic() - started) * 1000))


def _result_data(match: Transaction, metadata: dict[str, Any]) -> dict[str, Any]:
    swap_details = None
    if match.swap_details is not None:
        swap_details = [leg.model_dump(mode="json") for leg in match.swap_details]
    return {
        "tx_id": match.tx_id,
        "block_height": match.block_height,
        "block_time": match.block_time,
        "swap_details": swap_details,
        "metadata": metadata,
    }


class QuestValidator:
    """Runs quest criteria and persists validation outcomes."""

    def __init__(
        self,
        client: KraxelClient,
        uow_factory: Callable[[], Awaitable[UnitOfWork]],
        schedule: ValidationSchedule | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the runner.

        Args:
            client: Kraxel API client used by every query
            uow_factory: Factory producing a fresh UnitOfWork per transaction
            schedule: Backoff intervals, quest timeout and concurrency
            clock: Returns the current aware UTC time (injectable for tests)
        """
        self.client = client
        self.uow_factory = uow_factory
        self.schedule = schedule or ValidationSchedule()
        self.clock = clock

    async def validate_all_active_quests(self) -> SweepSummary:
        """Validate every active quest that is due.

        Quests run sequentially unless the schedule allows more concurrency,
        in which case at most ``schedule.concurrency`` run at once.

        Returns:
            Summary of validated, skipped and errored quests
        """
        async with await self.uow_factory() as uow:
            quests = await uow.quests.get_active()

        summary = SweepSummary(total=len(quests))
        logger.info(
            "validation.sweep_started",
            quest_count=len(quests),
            concurrency=self.schedule.concurrency,
        )

        semaphore = asyncio.Semaphore(max(1, self.schedule.concurrency))

        async def guarded(quest: Quest) -> QuestOutcome:
            async with semaphore:
                return await self.validate_single_quest(quest)

        outcomes = await asyncio.gather(*(guarded(quest) for quest in quests))
        for outcome in outcomes:
            summary.record(outcome)

        logger.info(
            "validation.sweep_completed",
            total=summary.total,
            validated=summary.validated,
            skipped=summary.skipped,
            errored=summary.errored,
        )
        return summary

    async def validate_single_quest(self, quest: Quest, force: bool = False) -> QuestOutcome:
        """Validate one quest and record the outcome.

        Errors are recorded on the validation row and logged; they never
        propagate to the caller.

        Args:
            quest: Quest to validate
            force: Ignore next_validation_at and run immediately

        Returns:
            VALIDATED when the query ran (satisfied or not), SKIPPED when the
            quest was not due, ERRORED when the run or its bookkeeping failed
        """
        log = logger.bind(quest_id=str(quest.id), criteria_type=quest.criteria_type)

        try:
            if not force and not await self._is_due(quest):
                return QuestOutcome.SKIPPED

            started = time.monotonic()
            async with await self.uow_factory() as uow:
                validation = await uow.validations.create(
                    quest.id,
                    {"criteria": quest.criteria, "started_at": self.clock().isoformat()},
                )
        except Exception as e:
            log.error("validation.start_failed", error=str(e), exc_info=True)
            return QuestOutcome.ERRORED

        validation_id = validation.id
        log = log.bind(validation_id=str(validation_id))
        log.info("validation.quest_started")

        try:
            result = await self._execute_criteria(quest)
            processing_time_ms = await self._record_success(quest, validation, result, started)
        except Exception as e:
            await self._record_failure(validation_id, e, started, log)
            return QuestOutcome.ERRORED

        log.info(
            "validation.quest_completed",
            satisfied=result.satisfied,
            match_count=len(result.matches),
            processing_time_ms=processing_time_ms,
        )
        return QuestOutcome.VALIDATED

    async def _is_due(self, quest: Quest) -> bool:
        async with await self.uow_factory() as uow:
            latest = await uow.validations.get_latest_for_quest(quest.id)

        if latest is None or latest.next_validation_at is None:
            return True

        if as_utc(latest.next_validation_at) > as_utc(self.clock()):
            logger.debug(
                "validation.quest_skipped",
                quest_id=str(quest.id),
                next_validation_at=latest.next_validation_at.isoformat(),
            )
            return False
        return True

    async def _execute_criteria(self, quest: Quest) -> ValidationResult:
        """Parse, build and run the quest's query within the quest timeout.

        Raises:
            UnsupportedCriteriaError: Unknown criteria type
            InvalidCriteriaError: Malformed criteria params
            QuestTimeoutError: Query exceeded the quest timeout
            RequestFailedError: Upstream request failed after retries
        """
        criteria = parse_criteria(quest.criteria)
        query = build_query(self.client, criteria)

        timeout = self.schedule.quest_timeout
        if timeout is None:
            return await query.execute()

        try:
            return await asyncio.wait_for(query.execute(), timeout=timeout)
        except TimeoutError as e:
            raise QuestTimeoutError(f"Quest validation timed out after {timeout}s") from e

    async def _record_success(
        self,
        quest: Quest,
        validation: QuestValidation,
        result: ValidationResult,
        started: float,
    ) -> int:
        """Write one result row per match and finalize the run in one transaction.

        Returns:
            Processing time stored on the validation
        """
        processing_time_ms = _elapsed_ms(started)
        async with await self.uow_factory() as uow:
            for match in result.matches:
                await uow.validation_results.create(
                    validation_id=validation.id,
                    user_address=match.user_address or "",
                    is_valid=True,
                    result_data=_result_data(match, result.metadata),
                    criteria_type=quest.criteria_type,
                )

            await uow.validations.complete(
                validation,
                status=ValidationStatus.SUCCESS if result.satisfied else ValidationStatus.FAILED,
                valid_addresses=result.addresses,
                processing_time_ms=processing_time_ms,
                next_validation_at=self.clock() + self.schedule.success_interval,
            )
        return processing_time_ms

    async def _record_failure(
        self,
        validation_id: UUID,
        error: Exception,
        started: float,
        log: Any,
    ) -> None:
        """Finalize the run as failed with the error backoff.

        The row is reloaded in a fresh unit of work: when persisting the
        results failed, that transaction rolled back and the in-memory record
        may already carry a terminal status.
        """
        message = str(error) or type(error).__name__
        log.error("validation.quest_failed", error_type=type(error).__name__, error=message)

        try:
            async with await self.uow_factory() as uow:
                validation = await uow.validations.get_by_id(validation_id)
                if validation is None:
                    raise LookupError(f"Validation {validation_id} not found")
                await uow.validations.fail(
                    validation,
                    error_message=message,
                    processing_time_ms=_elapsed_ms(started),
                    next_validation_at=self.clock() + self.schedule.error_interval,
                )
        except Exception as e:
            log.error("validation.finalize_failed", error=str(e), exc_info=True)


def build_quest_validator(settings: Settings, session_factory: async_sessionmaker) -> QuestValidator:
    """Wire a QuestValidator from application settings.

    Args:
        settings: Application settings (Kraxel connection and schedule)
        session_factory: Database session factory

    Returns:
        Runner using a Kraxel client and UoW factory built from settings
    """
    client = KraxelClient(
        base_url=settings.kraxel_api_url,
        api_key=settings.kraxel_api_key,
        max_retries=settings.kraxel_max_retries,
        timeout=settings.kraxel_timeout_seconds,
        backoff_base=settings.kraxel_backoff_base_seconds,
    )
    return QuestValidator(
        client=client,
        uow_factory=create_uow_factory(session_factory),
        schedule=settings.validation_schedule(),
    )
