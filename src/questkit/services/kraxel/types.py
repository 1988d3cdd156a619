"""Typed records returned by the Kraxel blockchain data API.

Records are opaque beyond the fields named here; unknown fields are kept
as extras so they survive into persisted result data.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class SwapDetail(BaseModel):
    """One leg of a (possibly multi-hop) swap.

    Amounts are kept as the upstream strings; consumers parse them.
    """

    model_config = ConfigDict(extra="allow")

    in_asset: str = ""
    in_amount: str | float = "0"
    out_asset: str = ""
    out_amount: str | float = "0"
    swap_index: Optional[int] = None
    contract_address: Optional[str] = None


class Transaction(BaseModel):
    """Blockchain transaction keyed by tx_id.

    block_height is the primary ordering key and block_time (ISO timestamp,
    or unix seconds) the secondary one. When swap_details is present its last
    leg is the net effect of the swap.
    """

    model_config = ConfigDict(extra="allow")

    tx_id: Optional[str] = None
    user_address: Optional[str] = None
    block_height: int = 0
    block_time: Optional[str | int] = None
    swap_details: Optional[list[SwapDetail]] = None


class TokenInfo(BaseModel):
    """Token metadata."""

    model_config = ConfigDict(extra="allow")

    contract_principal: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    total_supply: Optional[str] = None


class PriceInfo(BaseModel):
    """Point-in-time token price."""

    model_config = ConfigDict(extra="allow")

    contract_principal: str
    price_usd: float
    price_btc: Optional[float] = None
    timestamp: Optional[str] = None


class KraxelResponse(BaseModel, Generic[T]):
    """Response envelope: {status, data, meta?}.

    data may be None or empty; callers must not assume otherwise.
    """

    model_config = ConfigDict(extra="allow")

    status: str = "success"
    data: Optional[T] = None
    meta: Optional[dict[str, Any]] = None
