"""Criteria parsing and query building tests.

Tests focus on:
- Every criteria kind parses, including the alternate parameter names
- Unknown kinds raise UnsupportedCriteriaError, at any nesting depth
- Malformed params raise InvalidCriteriaError
- build_query folds and/or condition lists left to right
"""

import pytest

from questkit.services.exceptions import InvalidCriteriaError, UnsupportedCriteriaError
from questkit.services.kraxel.types import KraxelResponse, SwapDetail, Transaction
from questkit.services.validation.combinators import AndQuery, NotQuery, OrQuery
from questkit.services.validation.criteria import (
    AndCriteria,
    FirstNBuyersCriteria,
    HoldsTokenCriteria,
    MinValueSwapCriteria,
    NotCriteria,
    SwappedForCriteria,
    build_query,
    parse_criteria,
)
from questkit.services.validation.query import FunctionQuery


def test_parse_swapped_for():
    criteria = parse_criteria(
        {"type": "swappedFor", "params": {"tokenPrincipal": "T", "startTime": 1000, "endTime": 2000}}
    )

    assert isinstance(criteria, SwappedForCriteria)
    assert criteria.params.token_principal == "T"
    assert criteria.params.start_time == 1000
    assert criteria.params.end_time == 2000


def test_parse_swapped_for_defaults():
    criteria = parse_criteria({"type": "swappedFor", "params": {"tokenPrincipal": "T"}})

    assert criteria.params.start_time == 0
    assert criteria.params.end_time is None


def test_parse_first_n_buyers_aliases():
    criteria = parse_criteria({"type": "firstNBuyers", "params": {"token": "T", "n": 5}})

    assert isinstance(criteria, FirstNBuyersCriteria)
    assert criteria.params.token_principal == "T"
    assert criteria.params.num_users == 5
    assert criteria.params.min_value_usd == 0


def test_parse_first_n_buyers_default_count():
    criteria = parse_criteria({"type": "firstNBuyers", "params": {"tokenPrincipal": "T"}})

    assert criteria.params.num_users == 10


def test_parse_min_value_swap_alias_and_missing_params():
    aliased = parse_criteria({"type": "minValueSwap", "params": {"minValue": 250}})
    bare = parse_criteria({"type": "minValueSwap"})

    assert isinstance(aliased, MinValueSwapCriteria)
    assert aliased.params.min_value_usd == 250
    assert bare.params.min_value_usd == 0


def test_parse_holds_token():
    criteria = parse_criteria(
        {"type": "holdsToken", "params": {"userAddress": "SP1", "token": "T"}}
    )

    assert isinstance(criteria, HoldsTokenCriteria)
    assert criteria.params.user_address == "SP1"
    assert criteria.params.token_principal == "T"


def test_parse_nested_combinations():
    criteria = parse_criteria(
        {
            "type": "and",
            "params": {
                "conditions": [
                    {"type": "swappedFor", "params": {"tokenPrincipal": "T"}},
                    {
                        "type": "not",
                        "params": {"condition": {"type": "minValueSwap", "params": {}}},
                    },
                ]
            },
        }
    )

    assert isinstance(criteria, AndCriteria)
    assert isinstance(criteria.params.conditions[1], NotCriteria)
    assert isinstance(criteria.params.conditions[1].params.condition, MinValueSwapCriteria)


def test_unknown_type_is_unsupported():
    with pytest.raises(UnsupportedCriteriaError, match="Unsupported criteria type: bridgedTo"):
        parse_criteria({"type": "bridgedTo", "params": {}})


def test_nested_unknown_type_is_unsupported():
    with pytest.raises(UnsupportedCriteriaError, match="bridgedTo"):
        parse_criteria(
            {
                "type": "or",
                "params": {
                    "conditions": [
                        {"type": "swappedFor", "params": {"tokenPrincipal": "T"}},
                        {"type": "bridgedTo", "params": {}},
                    ]
                },
            }
        )


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "swappedFor", "params": {}},
        {"type": "holdsToken", "params": {"tokenPrincipal": "T"}},
        {"type": "firstNBuyers", "params": {"tokenPrincipal": "T", "numUsers": 0}},
        {"type": "and", "params": {"conditions": []}},
        {"type": "not", "params": {}},
        {"params": {"tokenPrincipal": "T"}},
        "swappedFor",
        {"type": ["swappedFor"], "params": {"tokenPrincipal": "T"}},
        {"type": {"kind": "swappedFor"}, "params": {}},
        {"type": 3, "params": {}},
        {"type": "not", "params": {"condition": {"type": ["holdsToken"], "params": {}}}},
    ],
)
def test_malformed_criteria_is_invalid(raw):
    with pytest.raises(InvalidCriteriaError):
        parse_criteria(raw)


def test_criteria_errors_are_permanent():
    from questkit.services.exceptions import PermanentError

    with pytest.raises(PermanentError):
        parse_criteria({"type": "bridgedTo"})


def _leaf(token: str) -> dict:
    return {"type": "swappedFor", "params": {"tokenPrincipal": token}}


def test_build_query_folds_left(kraxel):
    criteria = parse_criteria(
        {"type": "and", "params": {"conditions": [_leaf("A"), _leaf("B"), _leaf("C")]}}
    )

    query = build_query(kraxel, criteria)

    assert isinstance(query, AndQuery)
    assert isinstance(query.left, AndQuery)
    assert isinstance(query.right, FunctionQuery)


def test_build_query_single_condition_is_the_condition(kraxel):
    criteria = parse_criteria({"type": "or", "params": {"conditions": [_leaf("A")]}})

    query = build_query(kraxel, criteria)

    assert isinstance(query, FunctionQuery)


def test_build_query_or_and_not(kraxel):
    or_query = build_query(
        kraxel, parse_criteria({"type": "or", "params": {"conditions": [_leaf("A"), _leaf("B")]}})
    )
    not_query = build_query(
        kraxel, parse_criteria({"type": "not", "params": {"condition": _leaf("A")}})
    )

    assert isinstance(or_query, OrQuery)
    assert isinstance(not_query, NotQuery)


@pytest.mark.asyncio
async def test_built_query_executes_against_client(kraxel):
    kraxel.get_swaps_by_contract.return_value = KraxelResponse(
        data=[
            Transaction(
                tx_id="s1",
                user_address="SP1",
                swap_details=[SwapDetail(in_asset="STX", out_asset="T")],
            )
        ]
    )
    kraxel.get_token_transfers.return_value = KraxelResponse(data=[{"tx_id": "t1"}])

    criteria = parse_criteria(
        {
            "type": "and",
            "params": {
                "conditions": [
                    _leaf("T"),
                    {"type": "holdsToken", "params": {"userAddress": "SP1", "tokenPrincipal": "T"}},
                ]
            },
        }
    )
    result = await build_query(kraxel, criteria).execute()

    assert result.satisfied is True
    assert [m.tx_id for m in result.matches] == ["s1"]
