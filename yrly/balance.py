"""Querying an account balance with IBC denominations resolved to their paths."""

from __future__ import annotations

from typing import Any

from .chain import QueryContext
from .ibc import Coin, Height

_DENOM_TRACE_OFFSET = 0
_DENOM_TRACE_LIMIT = 1000


def query_balance(chain: Any, height: Height, address: Any, show_denoms: bool) -> list[Coin]:
    """Return the coins held by ``address``.

    Unless ``show_denoms`` is set, zero amounts are dropped and IBC
    denominations are replaced by their full trace paths.
    """
    ctx = QueryContext(height)
    coins = chain.query_balance(ctx, address)
    if show_denoms:
        return coins

    traces = chain.query_denom_traces(ctx, _DENOM_TRACE_OFFSET, _DENOM_TRACE_LIMIT).denom_traces
    if not traces:
        return coins

    out: list[Coin] = []
    for coin in coins:
        if coin.amount == 0:
            continue
        for trace in traces:
            if coin.denom == trace.ibc_denom():
                out.append(Coin(denom=trace.full_denom_path(), amount=coin.amount))
                break
        else:
            out.append(coin)
    return out