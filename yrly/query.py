"""Queries of the same state on two chains, run concurrently."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, TypeVar

from .chain import QueryContext
from .ibc import (
    Height,
    QueryChannelResponse,
    QueryClientStateResponse,
    QueryConnectionResponse,
    QueryConsensusStateResponse,
)

T = TypeVar("T")
U = TypeVar("U")


def _run_pair(src_call: Callable[[], T], dst_call: Callable[[], U]) -> tuple[T, U]:
    """Run both calls at once; raise the first error to occur after both finish."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        src_future = pool.submit(src_call)
        dst_future = pool.submit(dst_call)
        first_error: BaseException | None = None
        for future in as_completed((src_future, dst_future)):
            error = future.exception()
            if error is not None and first_error is None:
                first_error = error
    if first_error is not None:
        raise first_error
    return src_future.result(), dst_future.result()


def query_client_state_pair(
    src_ctx: QueryContext, dst_ctx: QueryContext, src: Any, dst: Any
) -> tuple[QueryClientStateResponse, QueryClientStateResponse]:
    return _run_pair(
        lambda: src.query_client_state_with_proof(src_ctx),
        lambda: dst.query_client_state_with_proof(dst_ctx),
    )


def query_client_consensus_state_pair(
    src_ctx: QueryContext,
    dst_ctx: QueryContext,
    src: Any,
    dst: Any,
    src_client_cons_height: Height,
    dst_client_cons_height: Height,
) -> tuple[QueryConsensusStateResponse, QueryConsensusStateResponse]:
    return _run_pair(
        lambda: src.query_client_consensus_state_with_proof(src_ctx, src_client_cons_height),
        lambda: dst.query_client_consensus_state_with_proof(dst_ctx, dst_client_cons_height),
    )


def query_connection_pair(
    src_ctx: QueryContext, dst_ctx: QueryContext, src: Any, dst: Any
) -> tuple[QueryConnectionResponse, QueryConnectionResponse]:
    return _run_pair(
        lambda: src.query_connection_with_proof(src_ctx),
        lambda: dst.query_connection_with_proof(dst_ctx),
    )


def query_channel_pair(
    src_ctx: QueryContext, dst_ctx: QueryContext, src: Any, dst: Any
) -> tuple[QueryChannelResponse, QueryChannelResponse]:
    return _run_pair(
        lambda: src.query_channel_with_proof(src_ctx),
        lambda: dst.query_channel_with_proof(dst_ctx),
    )