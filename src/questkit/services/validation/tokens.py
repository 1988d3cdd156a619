"""Token principal normalization.

Upstream naming of the same token varies (tickers, partial principals,
sub-token suffixes). normalize_token_principal expands a user-supplied
principal into the ordered identifiers validators should try.
"""

# Lower-case keyword found in a principal -> canonical contract principal
TOKEN_ALIASES: dict[str, str] = {
    "welsh": "SP3NE50GEXFG9SZGTT51P40X2CKYSZ5CC4ZTZ7A2G.welshcorgicoin-token",
}


def strip_asset_suffix(asset: str) -> str:
    """Drop a ``::sub-token`` suffix from an asset identifier."""
    return asset.split("::", 1)[0]


def normalize_token_principal(
    principal: str, aliases: dict[str, str] | None = None
) -> list[str]:
    """Expand a token principal into candidate identifiers.

    The trimmed principal always comes first, followed by the canonical
    principal of every alias keyword it mentions. Duplicates are removed.

    Args:
        principal: Token principal as supplied by the quest
        aliases: Alias table override (default: TOKEN_ALIASES)

    Returns:
        Ordered, non-empty list of identifiers to try

    Raises:
        ValueError: If principal is empty
    """
    normalized = principal.strip()
    if not normalized:
        raise ValueError("Token principal cannot be empty")

    variations = [normalized]
    lowered = normalized.lower()
    for keyword, canonical in (aliases if aliases is not None else TOKEN_ALIASES).items():
        if keyword in lowered and canonical not in variations:
            variations.append(canonical)

    return variations
