"""Validation query model.

A ValidationQuery is a deferred check: nothing is fetched until execute()
is awaited, and every execute() starts from scratch (no result caching).
Queries compose with and_/or_/not_ (or the &, |, ~ operators) into new
queries without modifying their operands.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from questkit.services.kraxel.types import Transaction


@dataclass
class ValidationResult:
    """Outcome of executing a validation query.

    Attributes:
        satisfied: Whether the criteria hold
        matches: Evidence transactions (no duplicate tx_id within one result)
        metadata: Validator-specific details for auditing
    """

    satisfied: bool
    matches: list[Transaction] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def addresses(self) -> list[str]:
        """Distinct user addresses of the matches, in match order."""
        seen: dict[str, None] = {}
        for match in self.matches:
            if match.user_address:
                seen.setdefault(match.user_address, None)
        return list(seen)


class ValidationQuery(ABC):
    """Composable, re-executable validation check."""

    @abstractmethod
    async def execute(self) -> ValidationResult:
        """Run the check against current upstream data."""

    def and_(self, other: "ValidationQuery") -> "ValidationQuery":
        """Query satisfied only when both sides are satisfied on shared matches."""
        from questkit.services.validation.combinators import and_

        return and_(self, other)

    def or_(self, other: "ValidationQuery") -> "ValidationQuery":
        """Query satisfied when either side is satisfied."""
        from questkit.services.validation.combinators import or_

        return or_(self, other)

    def not_(self) -> "ValidationQuery":
        """Query negating this one."""
        from questkit.services.validation.combinators import not_

        return not_(self)

    def __and__(self, other: "ValidationQuery") -> "ValidationQuery":
        return self.and_(other)

    def __or__(self, other: "ValidationQuery") -> "ValidationQuery":
        return self.or_(other)

    def __invert__(self) -> "ValidationQuery":
        return self.not_()


class FunctionQuery(ValidationQuery):
    """ValidationQuery backed by an async function."""

    def __init__(self, fn: Callable[[], Awaitable[ValidationResult]], name: str = "query"):
        self._fn = fn
        self.name = name

    async def execute(self) -> ValidationResult:
        return await self._fn()

    def __repr__(self) -> str:
        return f"FunctionQuery({self.name})"
