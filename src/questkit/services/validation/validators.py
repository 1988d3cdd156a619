"""Primitive validators.

Each factory captures its arguments and returns a ValidationQuery; the
upstream calls only happen when the query is executed. Client errors are
not caught here, so a failing upstream surfaces to the caller instead of
looking like an unsatisfied check.
"""

import math
import time
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable

import structlog

from questkit.services.kraxel.client import KraxelClient
from questkit.services.kraxel.types import Transaction
from questkit.services.validation.query import FunctionQuery, ValidationQuery, ValidationResult
from questkit.services.validation.tokens import normalize_token_principal, strip_asset_suffix

logger = structlog.get_logger(__name__)

SWAP_FETCH_LIMIT = 100

Normalizer = Callable[[str], list[str]]
TransactionLoader = Callable[[], Awaitable[list[Transaction]]]


def parse_block_time(value: Any) -> datetime | None:
    """Parse an upstream block time into an aware UTC datetime.

    Accepts ISO-8601 strings (with or without a Z suffix) and unix seconds.
    Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz=UTC)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _to_amount(value: Any) -> float:
    """Convert an upstream amount to float; unparseable values count as 0."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(amount) or math.isinf(amount) else amount


def swap_value_usd(transaction: Transaction, prices: dict[str, float | None]) -> float:
    """USD value of a swap: per leg, the larger of the in and out sides."""
    total = 0.0
    for leg in transaction.swap_details or []:
        in_value = _to_amount(leg.in_amount) * (prices.get(leg.in_asset) or 0.0)
        out_value = _to_amount(leg.out_amount) * (prices.get(leg.out_asset) or 0.0)
        total += max(in_value, out_value)
    return total


def _bought_token(transaction: Transaction, principal: str) -> bool:
    """Whether the final leg of the swap paid out the given token."""
    if not transaction.swap_details:
        return False
    return strip_asset_suffix(transaction.swap_details[-1].out_asset) == principal


def _in_window(transaction: Transaction, start: datetime, end: datetime) -> bool:
    block_time = parse_block_time(transaction.block_time)
    # Unknown times are left to the upstream date filter
    if block_time is None:
        return True
    return start <= block_time <= end


def swapped_for(
    client: KraxelClient,
    token_principal: str,
    start_time: float = 0,
    end_time: float | None = None,
    normalize: Normalizer = normalize_token_principal,
) -> ValidationQuery:
    """Match swaps whose final output is the given token within a time window.

    Args:
        client: Kraxel API client
        token_principal: Token the swap must pay out
        start_time: Window start in unix seconds (default: epoch)
        end_time: Window end in unix seconds (default: now, at execution time)
        normalize: Principal normalizer yielding variants to try in order

    Returns:
        Query whose matches are the qualifying swaps of the first variant
        that has any
    """
    variants = normalize(token_principal)

    async def run() -> ValidationResult:
        start = datetime.fromtimestamp(start_time, tz=UTC)
        end = datetime.fromtimestamp(time.time() if end_time is None else end_time, tz=UTC)

        matches: list[Transaction] = []
        matched_variant = None
        for variant in variants:
            response = await client.get_swaps_by_contract(
                variant, limit=SWAP_FETCH_LIMIT, start_date=start, end_date=end
            )
            matches = [
                tx
                for tx in response.data or []
                if _bought_token(tx, variant) and _in_window(tx, start, end)
            ]
            if matches:
                matched_variant = variant
                break

        logger.debug(
            "validator.swapped_for",
            token_principal=token_principal,
            matched_variant=matched_variant,
            match_count=len(matches),
        )

        return ValidationResult(
            satisfied=len(matches) > 0,
            matches=matches,
            metadata={
                "token_principal": token_principal,
                "variants_tried": variants,
                "matched_variant": matched_variant,
                "start_time": start_time,
                "end_time": end_time,
            },
        )

    return FunctionQuery(run, name=f"swapped_for({token_principal})")


def min_value_swap(
    client: KraxelClient,
    min_value_usd: float,
    get_transactions: TransactionLoader | None = None,
) -> ValidationQuery:
    """Match swaps whose USD value reaches a threshold.

    Args:
        client: Kraxel API client
        min_value_usd: Minimum USD value (inclusive)
        get_transactions: Loader for the candidate swaps
            (default: the 100 most recent swaps)
    """

    async def load_recent() -> list[Transaction]:
        response = await client.get_recent_swaps(limit=SWAP_FETCH_LIMIT)
        return response.data or []

    loader = get_transactions or load_recent

    async def run() -> ValidationResult:
        transactions = await loader()
        price_response = await client.get_latest_prices()
        prices = price_response.data or {}

        matches = [tx for tx in transactions if swap_value_usd(tx, prices) >= min_value_usd]

        return ValidationResult(
            satisfied=len(matches) > 0,
            matches=matches,
            metadata={
                "min_value_usd": min_value_usd,
                "checked_count": len(transactions),
                "matched_count": len(matches),
            },
        )

    return FunctionQuery(run, name=f"min_value_swap({min_value_usd})")


def first_n_buyers(
    client: KraxelClient,
    token_principal: str,
    n: int,
    min_value_usd: float = 0,
    start_time: float = 0,
    normalize: Normalizer = normalize_token_principal,
) -> ValidationQuery:
    """Match the earliest n distinct buyers of a token.

    Raises:
        ValueError: If n < 1
    """
    if n < 1:
        raise ValueError(f"n must be at least 1, got {n}")

    swaps = swapped_for(client, token_principal, start_time=start_time, normalize=normalize)

    async def run() -> ValidationResult:
        swap_result = await swaps.execute()
        if not swap_result.matches:
            return ValidationResult(
                satisfied=False,
                metadata={"reason": "No swaps found for token", "token_principal": token_principal},
            )

        candidates = swap_result.matches
        if min_value_usd > 0:

            async def fetched() -> list[Transaction]:
                return swap_result.matches

            value_result = await min_value_swap(client, min_value_usd, fetched).execute()
            if not value_result.matches:
                return ValidationResult(
                    satisfied=False,
                    metadata={
                        "reason": f"No swaps found with minimum value of ${min_value_usd}",
                        "token_principal": token_principal,
                    },
                )
            candidates = value_result.matches

        epoch = datetime.fromtimestamp(0, tz=UTC)
        ordered = sorted(
            candidates,
            key=lambda tx: (tx.block_height, parse_block_time(tx.block_time) or epoch),
        )

        buyers: list[Transaction] = []
        seen: set[str] = set()
        for tx in ordered:
            if not tx.user_address or tx.user_address in seen:
                continue
            seen.add(tx.user_address)
            buyers.append(tx)
            if len(buyers) >= n:
                break

        return ValidationResult(
            satisfied=len(buyers) >= n,
            matches=buyers,
            metadata={
                "token_principal": token_principal,
                "requested_count": n,
                "found_count": len(buyers),
                "buyer_addresses": [tx.user_address for tx in buyers],
            },
        )

    return FunctionQuery(run, name=f"first_n_buyers({token_principal}, {n})")


def holds_token(
    client: KraxelClient,
    user_address: str,
    token_principal: str,
    normalize: Normalizer = normalize_token_principal,
) -> ValidationQuery:
    """Match when the address has any transfer of the token.

    Any recorded transfer counts as holding; balances are not computed.
    """
    variants = normalize(token_principal)

    async def run() -> ValidationResult:
        for variant in variants:
            response = await client.get_token_transfers(
                user_address, variant, limit=SWAP_FETCH_LIMIT
            )
            transfers = response.data or []
            if transfers:
                matches = [
                    Transaction.model_validate(
                        {
                            **{k: v for k, v in transfer.items() if v is not None},
                            "user_address": transfer.get("user_address") or user_address,
                        }
                    )
                    for transfer in transfers
                ]
                return ValidationResult(
                    satisfied=True,
                    matches=matches,
                    metadata={
                        "user_address": user_address,
                        "token_principal": token_principal,
                        "matched_variant": variant,
                        "transfer_count": len(transfers),
                    },
                )

        return ValidationResult(
            satisfied=False,
            metadata={
                "user_address": user_address,
                "token_principal": token_principal,
                "variants_tried": variants,
            },
        )

    return FunctionQuery(run, name=f"holds_token({user_address}, {token_principal})")
