"""Kraxel API client for transaction, swap, token and price queries.

Every call is a fresh round trip bounded by a per-attempt timeout and a small
exponential-backoff retry budget. Nothing is cached.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any, Literal
from urllib.parse import quote

import httpx
import structlog

from questkit.services.exceptions import RequestFailedError
from questkit.services.kraxel.types import KraxelResponse, PriceInfo, TokenInfo, Transaction

logger = structlog.get_logger(__name__)

DateParam = datetime | str | None


def format_datetime(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with a Z suffix (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def serialize_params(params: dict[str, Any] | None, for_query: bool = True) -> dict[str, Any]:
    """Normalize request parameters before transmission.

    - None values are dropped
    - datetime values become ISO-8601 strings
    - booleans become "true"/"false" in query strings

    Args:
        params: Raw parameters (may be None)
        for_query: True for GET query strings, False for JSON bodies

    Returns:
        New dictionary safe to send
    """
    serialized: dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, datetime):
            value = format_datetime(value)
        elif isinstance(value, bool) and for_query:
            value = "true" if value else "false"
        serialized[key] = value
    return serialized


def _segment(value: str | int) -> str:
    """Escape a value used as a URL path segment."""
    return quote(str(value), safe=":")


class KraxelClient:
    """Async client for the Kraxel blockchain data API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        max_retries: int = 3,
        timeout: float = 10.0,
        backoff_base: float = 0.1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Kraxel client.

        Args:
            base_url: API root URL (from KRAXEL_API_URL env var)
            api_key: API key sent as X-Api-Key (from KRAXEL_API_KEY env var)
            max_retries: Total attempts per request (default: 3)
            timeout: Per-attempt timeout in seconds (default: 10)
            backoff_base: Base delay in seconds; attempt k waits base * 2**k
            transport: Optional httpx transport (used by tests)
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff_base = backoff_base
        self.headers = {
            "X-Api-Key": api_key,
            "Content-Type": "application/json",
        }
        self._transport = transport

    async def _request(
        self,
        endpoint: str,
        method: Literal["GET", "POST"] = "GET",
        params: dict[str, Any] | None = None,
        data_type: Any = Any,
    ) -> KraxelResponse:
        """Issue one logical request with retries.

        Any error (network, timeout, non-2xx status, undecodable body) counts
        as a failed attempt.

        Raises:
            RequestFailedError: All attempts failed; carries the last cause
        """
        url = f"{self.base_url}{endpoint}"
        payload = serialize_params(params, for_query=(method == "GET"))
        response_model = KraxelResponse[data_type]
        last_error: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                async with asyncio.timeout(self.timeout):
                    async with httpx.AsyncClient(
                        headers=self.headers,
                        timeout=self.timeout,
                        transport=self._transport,
                    ) as client:
                        if method == "GET":
                            response = await client.get(url, params=payload)
                        else:
                            response = await client.post(url, json=payload)

                        response.raise_for_status()
                        body = response.json()

                return response_model.model_validate(body)

            except (httpx.HTTPError, TimeoutError, ValueError) as e:
                # ValueError covers invalid JSON and envelope validation errors
                last_error = e
                if attempt >= self.max_retries:
                    break

                delay = self.backoff_base * 2**attempt
                logger.warning(
                    "kraxel.request_retry",
                    endpoint=endpoint,
                    method=method,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    retry_in_seconds=delay,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                await asyncio.sleep(delay)

        logger.error(
            "kraxel.request_failed",
            endpoint=endpoint,
            method=method,
            attempts=self.max_retries,
            error_type=type(last_error).__name__,
            error=str(last_error),
        )
        raise RequestFailedError(
            f"Kraxel request {method} {endpoint} failed after {self.max_retries} attempts: "
            f"{last_error}",
            cause=last_error,
        ) from last_error

    # ==== System ====

    async def get_api_root(self) -> KraxelResponse:
        """Get API root information."""
        return await self._request("/")

    async def get_api_health(self) -> KraxelResponse:
        """Check API health status."""
        return await self._request("/health")

    async def get_cache_stats(self) -> KraxelResponse:
        """Get upstream cache statistics."""
        return await self._request("/stats/cache")

    async def clear_cache(self) -> KraxelResponse:
        """Clear the upstream API cache."""
        return await self._request("/stats/cache/clear", "POST")

    # ==== Transactions ====

    async def get_transaction(
        self, tx_id: str, include_events: bool = True
    ) -> KraxelResponse[Transaction]:
        """Get details of a specific transaction by its ID."""
        return await self._request(
            f"/transactions/{_segment(tx_id)}",
            params={"include_events": include_events},
            data_type=Transaction,
        )

    async def list_transactions(
        self,
        limit: int | None = None,
        offset: int | None = None,
        block_height: int | None = None,
    ) -> KraxelResponse[list[Transaction]]:
        """List transactions with optional filtering."""
        return await self._request(
            "/transactions",
            params={"limit": limit, "offset": offset, "block_height": block_height},
            data_type=list[Transaction],
        )

    async def get_transactions_by_block(
        self, block_height: int, limit: int | None = None, offset: int | None = None
    ) -> KraxelResponse[list[Transaction]]:
        """Get transactions from a specific block."""
        return await self._request(
            f"/transactions/block/{block_height}",
            params={"limit": limit, "offset": offset},
            data_type=list[Transaction],
        )

    async def get_transactions_by_address(
        self, address: str, limit: int | None = None, offset: int | None = None
    ) -> KraxelResponse[list[Transaction]]:
        """Get all transactions for a blockchain address."""
        return await self._request(
            f"/transactions/address/{_segment(address)}",
            params={"limit": limit, "offset": offset},
            data_type=list[Transaction],
        )

    async def get_token_transfers(
        self,
        address: str,
        contract_principal: str,
        limit: int | None = None,
        offset: int | None = None,
        event_type: str | None = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[dict[str, Any]]]:
        """Get token transfers for an address and a specific token."""
        return await self._request(
            f"/transactions/token-transfers/{_segment(address)}/{_segment(contract_principal)}",
            params={"limit": limit, "offset": offset, "event_type": event_type, "debug": debug},
            data_type=list[dict[str, Any]],
        )

    async def get_all_token_transfers(
        self,
        address: str,
        limit: int | None = None,
        offset: int | None = None,
        event_type: str | None = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[dict[str, Any]]]:
        """Get token transfers for an address across all tokens."""
        return await self._request(
            f"/transactions/token-transfers/all/{_segment(address)}",
            params={"limit": limit, "offset": offset, "event_type": event_type, "debug": debug},
            data_type=list[dict[str, Any]],
        )

    # ==== Tokens ====

    async def list_tokens(
        self, limit: int | None = None, offset: int | None = None
    ) -> KraxelResponse[list[TokenInfo]]:
        """List tokens with pagination."""
        return await self._request(
            "/tokens", params={"limit": limit, "offset": offset}, data_type=list[TokenInfo]
        )

    async def get_token(self, contract_principal: str) -> KraxelResponse[TokenInfo]:
        """Get details for a token by its principal identifier."""
        return await self._request(f"/tokens/{_segment(contract_principal)}", data_type=TokenInfo)

    # ==== Swaps ====

    async def get_recent_swaps(
        self,
        limit: int | None = None,
        offset: int | None = None,
        start_date: DateParam = None,
        end_date: DateParam = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[Transaction]]:
        """Get recent swap transactions."""
        return await self._request(
            "/swaps",
            params={
                "limit": limit,
                "offset": offset,
                "start_date": start_date,
                "end_date": end_date,
                "debug": debug,
            },
            data_type=list[Transaction],
        )

    async def get_swaps_by_contract(
        self,
        contract_principal: str,
        limit: int | None = None,
        offset: int | None = None,
        start_date: DateParam = None,
        end_date: DateParam = None,
        user_address: str | None = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[Transaction]]:
        """Get swap transactions for a token contract."""
        return await self._request(
            f"/swaps/contract/{_segment(contract_principal)}",
            params={
                "limit": limit,
                "offset": offset,
                "start_date": start_date,
                "end_date": end_date,
                "user_address": user_address,
                "debug": debug,
            },
            data_type=list[Transaction],
        )

    async def get_swaps_by_user(
        self,
        user_address: str,
        limit: int | None = None,
        offset: int | None = None,
        start_date: DateParam = None,
        end_date: DateParam = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[Transaction]]:
        """Get swap transactions made by a user."""
        return await self._request(
            f"/swaps/user/{_segment(user_address)}",
            params={
                "limit": limit,
                "offset": offset,
                "start_date": start_date,
                "end_date": end_date,
                "debug": debug,
            },
            data_type=list[Transaction],
        )

    async def filter_swaps(
        self,
        token_x: str | None = None,
        token_y: str | None = None,
        min_amount: float | None = None,
        max_amount: float | None = None,
        limit: int | None = None,
        offset: int | None = None,
        start_date: DateParam = None,
        end_date: DateParam = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[Transaction]]:
        """Filter swap transactions by token pair and amount range."""
        return await self._request(
            "/swaps/filter",
            params={
                "token_x": token_x,
                "token_y": token_y,
                "min_amount": min_amount,
                "max_amount": max_amount,
                "limit": limit,
                "offset": offset,
                "start_date": start_date,
                "end_date": end_date,
                "debug": debug,
            },
            data_type=list[Transaction],
        )

    async def get_swap_stats(
        self,
        period: Literal["day", "week", "month"] | None = None,
        token: str | None = None,
        start_date: DateParam = None,
        end_date: DateParam = None,
        debug: bool | None = None,
    ) -> KraxelResponse:
        """Get aggregate statistics about swap transactions."""
        return await self._request(
            "/swaps/stats",
            params={
                "period": period,
                "token": token,
                "start_date": start_date,
                "end_date": end_date,
                "debug": debug,
            },
        )

    async def get_swaps_by_address_and_contract(
        self,
        user_address: str | None = None,
        contract_principal: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        start_date: DateParam = None,
        end_date: DateParam = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[Transaction]]:
        """Get swaps filtered by user address and/or token contract."""
        return await self._request(
            "/swaps/address-contract",
            params={
                "user_address": user_address,
                "contract_principal": contract_principal,
                "limit": limit,
                "offset": offset,
                "start_date": start_date,
                "end_date": end_date,
                "debug": debug,
            },
            data_type=list[Transaction],
        )

    # ==== Prices ====

    async def get_prices(
        self,
        contract_principal: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[PriceInfo]]:
        """Get price information for tokens."""
        return await self._request(
            "/prices",
            params={
                "contract_principal": contract_principal,
                "limit": limit,
                "offset": offset,
                "debug": debug,
            },
            data_type=list[PriceInfo],
        )

    async def get_latest_prices(
        self, debug: bool | None = None
    ) -> KraxelResponse[dict[str, float | None]]:
        """Get the latest USD price of every known token, keyed by principal."""
        return await self._request(
            "/prices/latest", params={"debug": debug}, data_type=dict[str, float | None]
        )

    async def get_price_history(
        self,
        contract_principal: str,
        limit: int | None = None,
        offset: int | None = None,
        debug: bool | None = None,
    ) -> KraxelResponse[list[PriceInfo]]:
        """Get price history of a token."""
        return await self._request(
            f"/prices/{_segment(contract_principal)}",
            params={"limit": limit, "offset": offset, "debug": debug},
            data_type=list[PriceInfo],
        )
