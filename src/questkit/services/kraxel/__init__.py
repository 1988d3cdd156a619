"""Client for the Kraxel blockchain data API."""

from questkit.services.kraxel.client import KraxelClient
from questkit.services.kraxel.types import (
    KraxelResponse,
    PriceInfo,
    SwapDetail,
    TokenInfo,
    Transaction,
)

__all__ = [
    "KraxelClient",
    "KraxelResponse",
    "PriceInfo",
    "SwapDetail",
    "TokenInfo",
    "Transaction",
]
