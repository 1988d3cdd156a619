"""AND / OR / NOT combinators over validation queries.

Both operands of and_/or_ run concurrently. Combinators are queries
themselves, so they nest freely (an AND of ORs, a NOT of an AND, ...).
"""

import asyncio

from questkit.services.kraxel.types import Transaction
from questkit.services.validation.query import ValidationQuery, ValidationResult


def _same_record(left: Transaction, right: Transaction) -> bool:
    """Two matches refer to the same evidence by tx_id or by user_address.

    The address check applies even when both sides carry different tx_ids, so
    an AND of "bought T" and "bought U" keeps a user who did both in separate
    transactions. That is intentional.
    """
    if left.tx_id and right.tx_id and left.tx_id == right.tx_id:
        return True
    return bool(left.user_address and right.user_address and left.user_address == right.user_address)


class AndQuery(ValidationQuery):
    """Intersection of two queries."""

    def __init__(self, left: ValidationQuery, right: ValidationQuery):
        self.left = left
        self.right = right

    async def execute(self) -> ValidationResult:
        left_result, right_result = await asyncio.gather(
            self.left.execute(), self.right.execute()
        )

        combined = [
            match
            for match in left_result.matches
            if any(_same_record(match, other) for other in right_result.matches)
        ]

        # An empty intersection never satisfies, even if both sides do
        return ValidationResult(
            satisfied=left_result.satisfied and right_result.satisfied and len(combined) > 0,
            matches=combined,
            metadata={
                "left_count": len(left_result.matches),
                "right_count": len(right_result.matches),
                "combined_count": len(combined),
            },
        )

    def __repr__(self) -> str:
        return f"AndQuery({self.left!r}, {self.right!r})"


class OrQuery(ValidationQuery):
    """Union of two queries, de-duplicated by tx_id.

    Matches without a tx_id are always kept, so duplicates of id-less
    records can appear in the union.
    """

    def __init__(self, left: ValidationQuery, right: ValidationQuery):
        self.left = left
        self.right = right

    async def execute(self) -> ValidationResult:
        left_result, right_result = await asyncio.gather(
            self.left.execute(), self.right.execute()
        )

        seen_tx_ids: set[str] = set()
        combined: list[Transaction] = []
        for match in [*left_result.matches, *right_result.matches]:
            if match.tx_id:
                if match.tx_id in seen_tx_ids:
                    continue
                seen_tx_ids.add(match.tx_id)
            combined.append(match)

        return ValidationResult(
            satisfied=left_result.satisfied or right_result.satisfied,
            matches=combined,
            metadata={
                "left_count": len(left_result.matches),
                "right_count": len(right_result.matches),
                "combined_count": len(combined),
            },
        )

    def __repr__(self) -> str:
        return f"OrQuery({self.left!r}, {self.right!r})"


class NotQuery(ValidationQuery):
    """Negation of a query. Never produces matches."""

    def __init__(self, operand: ValidationQuery):
        self.operand = operand

    async def execute(self) -> ValidationResult:
        result = await self.operand.execute()
        return ValidationResult(
            satisfied=not result.satisfied,
            matches=[],
            metadata={
                "original": result.metadata,
                "originally_matched": len(result.matches) > 0,
            },
        )

    def __repr__(self) -> str:
        return f"NotQuery({self.operand!r})"


def and_(left: ValidationQuery, right: ValidationQuery) -> ValidationQuery:
    """Require both queries, keeping only matches present on both sides."""
    return AndQuery(left, right)


def or_(left: ValidationQuery, right: ValidationQuery) -> ValidationQuery:
    """Accept either query, merging their matches."""
    return OrQuery(left, right)


def not_(operand: ValidationQuery) -> ValidationQuery:
    """Negate a query's satisfaction."""
    return NotQuery(operand)
