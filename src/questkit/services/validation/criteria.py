"""Quest criteria: parsing stored JSON and building validation queries.

Stored criteria are ``{"type": <kind>, "params": {...}}`` documents with
camelCase parameter names. They are parsed into a discriminated union so
that every kind is handled explicitly, and unknown kinds are rejected
before any upstream call is made.
"""

from functools import reduce
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from questkit.services.exceptions import InvalidCriteriaError, UnsupportedCriteriaError
from questkit.services.kraxel.client import KraxelClient
from questkit.services.validation.combinators import and_, not_, or_
from questkit.services.validation.query import ValidationQuery
from questkit.services.validation.validators import (
    first_n_buyers,
    holds_token,
    min_value_swap,
    swapped_for,
)

SUPPORTED_CRITERIA_TYPES = frozenset(
    {"swappedFor", "firstNBuyers", "minValueSwap", "holdsToken", "and", "or", "not"}
)


class _Params(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SwappedForParams(_Params):
    token_principal: str = Field(
        min_length=1, validation_alias=AliasChoices("tokenPrincipal", "token_principal")
    )
    start_time: float = Field(default=0, validation_alias=AliasChoices("startTime", "start_time"))
    end_time: float | None = Field(
        default=None, validation_alias=AliasChoices("endTime", "end_time")
    )


class FirstNBuyersParams(_Params):
    token_principal: str = Field(
        min_length=1,
        validation_alias=AliasChoices("tokenPrincipal", "token", "token_principal"),
    )
    num_users: int = Field(
        default=10, ge=1, validation_alias=AliasChoices("numUsers", "n", "num_users")
    )
    min_value_usd: float = Field(
        default=0, validation_alias=AliasChoices("minValueUsd", "min_value_usd")
    )
    start_time: float = Field(default=0, validation_alias=AliasChoices("startTime", "start_time"))


class MinValueSwapParams(_Params):
    min_value_usd: float = Field(
        default=0, validation_alias=AliasChoices("minValueUsd", "minValue", "min_value_usd")
    )


class HoldsTokenParams(_Params):
    user_address: str = Field(
        min_length=1, validation_alias=AliasChoices("userAddress", "user_address")
    )
    token_principal: str = Field(
        min_length=1,
        validation_alias=AliasChoices("tokenPrincipal", "token", "token_principal"),
    )


class CombinationParams(_Params):
    conditions: list["Criteria"] = Field(min_length=1)


class NegationParams(_Params):
    condition: "Criteria"


class SwappedForCriteria(BaseModel):
    type: Literal["swappedFor"]
    params: SwappedForParams


class FirstNBuyersCriteria(BaseModel):
    type: Literal["firstNBuyers"]
    params: FirstNBuyersParams


class MinValueSwapCriteria(BaseModel):
    type: Literal["minValueSwap"]
    params: MinValueSwapParams = Field(default_factory=MinValueSwapParams)


class HoldsTokenCriteria(BaseModel):
    type: Literal["holdsToken"]
    params: HoldsTokenParams


class AndCriteria(BaseModel):
    type: Literal["and"]
    params: CombinationParams


class OrCriteria(BaseModel):
    type: Literal["or"]
    params: CombinationParams


class NotCriteria(BaseModel):
    type: Literal["not"]
    params: NegationParams


Criteria = Annotated[
    Union[
        SwappedForCriteria,
        FirstNBuyersCriteria,
        MinValueSwapCriteria,
        HoldsTokenCriteria,
        AndCriteria,
        OrCriteria,
        NotCriteria,
    ],
    Field(discriminator="type"),
]

CombinationParams.model_rebuild()
NegationParams.model_rebuild()
AndCriteria.model_rebuild()
OrCriteria.model_rebuild()
NotCriteria.model_rebuild()

_criteria_adapter: TypeAdapter[Criteria] = TypeAdapter(Criteria)


def _unsupported_tag(error: dict[str, Any]) -> str | None:
    """String tag of a node rejected by the criteria union, None for malformed tags."""
    if error["type"] != "union_tag_invalid":
        return None
    node = error.get("input")
    tag = node.get("type") if isinstance(node, dict) else None
    return tag if isinstance(tag, str) else None


def parse_criteria(raw: Any) -> Criteria:
    """Parse stored criteria JSON into a typed criteria tree.

    Raises:
        UnsupportedCriteriaError: If any node has an unknown type
        InvalidCriteriaError: If the document or its params are malformed,
            including a ``type`` that is not a string
    """
    if isinstance(raw, dict):
        kind = raw.get("type")
        if kind is not None and not isinstance(kind, str):
            raise InvalidCriteriaError(f"Invalid criteria: type must be a string, got {kind!r}")
        if kind is not None and kind not in SUPPORTED_CRITERIA_TYPES:
            raise UnsupportedCriteriaError(f"Unsupported criteria type: {kind}")

    try:
        return _criteria_adapter.validate_python(raw)
    except ValidationError as e:
        # Unknown tags nested inside and/or/not surface as union tag errors
        for error in e.errors():
            tag = _unsupported_tag(error)
            if tag is not None:
                raise UnsupportedCriteriaError(f"Unsupported criteria type: {tag}") from e
        raise InvalidCriteriaError(f"Invalid criteria: {e}") from e


def build_query(client: KraxelClient, criteria: Criteria) -> ValidationQuery:
    """Translate a parsed criteria tree into an executable validation query.

    Lists of and/or conditions are folded left to right, so
    ``[a, b, c]`` becomes ``(a op b) op c``.
    """
    if isinstance(criteria, SwappedForCriteria):
        params = criteria.params
        return swapped_for(
            client, params.token_principal, start_time=params.start_time, end_time=params.end_time
        )

    if isinstance(criteria, FirstNBuyersCriteria):
        params = criteria.params
        return first_n_buyers(
            client,
            params.token_principal,
            params.num_users,
            min_value_usd=params.min_value_usd,
            start_time=params.start_time,
        )

    if isinstance(criteria, MinValueSwapCriteria):
        return min_value_swap(client, criteria.params.min_value_usd)

    if isinstance(criteria, HoldsTokenCriteria):
        return holds_token(client, criteria.params.user_address, criteria.params.token_principal)

    if isinstance(criteria, AndCriteria):
        return reduce(and_, [build_query(client, c) for c in criteria.params.conditions])

    if isinstance(criteria, OrCriteria):
        return reduce(or_, [build_query(client, c) for c in criteria.params.conditions])

    if isinstance(criteria, NotCriteria):
        return not_(build_query(client, criteria.params.condition))

    raise UnsupportedCriteriaError(f"Unsupported criteria type: {type(criteria).__name__}")
