"""Connection handshake between two chains."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from .headers import SyncHeaders
from .ibc import ConnectionState, Height, QueryConnectionResponse, RelayerError
from .query import (
    query_client_consensus_state_pair,
    query_client_state_pair,
    query_connection_pair,
)
from .relay_msgs import RelayMsgs
from .retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY, retry

logger = logging.getLogger(__name__)

_FAILURE_PAUSE = 5.0
_MAX_FAILURES = 2


def validate_paths(src: Any, dst: Any) -> None:
    """Raise RelayerError if the path of either chain is invalid."""
    for chain in (src, dst):
        try:
            chain.path().validate()
        except RelayerError as exc:
            raise RelayerError(f"path on chain {chain.chain_id()} failed to set: {exc}") from exc


def _must_get_height(height: Any) -> int:
    if not isinstance(height, Height):
        raise TypeError("height is not an instance of Height")
    return height.revision_height


def _setup_update_headers(sh: SyncHeaders, src: Any, dst: Any) -> tuple[list[Any], list[Any]]:
    """Headers for updating both clients, refreshing the headers after each failure."""
    return retry(
        lambda: sh.setup_both_headers_for_update(src, dst),
        DEFAULT_ATTEMPTS,
        DEFAULT_DELAY,
        lambda n, err: sh.updates(src, dst),
    )


def _await_tick(next_tick: float, interval: float) -> float:
    """Wait for the next tick and return the time of the one after it."""
    now = time.monotonic()
    if now < next_tick:
        time.sleep(next_tick - now)
        return next_tick + interval
    # a tick is already pending; ticks missed meanwhile are dropped
    while next_tick <= now:
        next_tick += interval
    return next_tick


def _run_handshake(
    step: Callable[[], RelayMsgs],
    src: Any,
    dst: Any,
    timeout: float,
    on_created: Callable[[], None],
    on_failed: Callable[[], RelayerError],
) -> None:
    """Run handshake steps every ``timeout`` seconds until done or failed three times."""
    if timeout <= 0:
        raise ValueError("timeout must be positive")
    failures = 0
    next_tick = time.monotonic() + timeout
    while True:
        steps = step()
        if not steps.ready():
            return
        steps.send(src, dst)
        if steps.success() and steps.last:
            on_created()
            return
        if steps.success():
            failures = 0
        else:
            failures += 1
            logger.info("retrying transaction...")
            time.sleep(_FAILURE_PAUSE)
            if failures > _MAX_FAILURES:
                raise on_failed()
        next_tick = _await_tick(next_tick, timeout)


def _log_connection_states(
    src: Any, dst: Any, src_conn: QueryConnectionResponse, dst_conn: QueryConnectionResponse
) -> None:
    logger.info(
        "- [%s]@{%d}conn(%s)-{%s} : [%s]@{%d}conn(%s)-{%s}",
        src.chain_id(),
        _must_get_height(src_conn.proof_height),
        src.path().connection_id,
        src_conn.connection.state,
        dst.chain_id(),
        _must_get_height(dst_conn.proof_height),
        dst.path().connection_id,
        dst_conn.connection.state,
    )


def create_connection_step(src: Any, dst: Any) -> RelayMsgs:
    """Return the messages that advance the connection handshake by one step."""
    out = RelayMsgs()
    validate_paths(src, dst)
    sh = SyncHeaders(src, dst)
    src_update_headers, dst_update_headers = _setup_update_headers(sh, src, dst)

    src_ctx = sh.query_context(src.chain_id())
    dst_ctx = sh.query_context(dst.chain_id())
    src_conn, dst_conn = query_connection_pair(src_ctx, dst_ctx, src, dst)
    src_state = src_conn.connection.state
    dst_state = dst_conn.connection.state

    src_cs_res = dst_cs_res = src_cons = dst_cons = None
    if not (
        src_state == ConnectionState.UNINITIALIZED and dst_state == ConnectionState.UNINITIALIZED
    ):
        src_cs_res, dst_cs_res = query_client_state_pair(src_ctx, dst_ctx, src, dst)
        src_cons_height = src_cs_res.client_state.get_latest_height()
        dst_cons_height = dst_cs_res.client_state.get_latest_height()
        src_cons, dst_cons = query_client_consensus_state_pair(
            src_ctx, dst_ctx, src, dst, src_cons_height, dst_cons_height
        )

    match (src_state, dst_state):
        case (ConnectionState.UNINITIALIZED, ConnectionState.UNINITIALIZED):
            _log_connection_states(src, dst, src_conn, dst_conn)
            addr = src.get_address()
            if dst_update_headers:
                out.src.extend(src.path().update_clients(dst_update_headers, addr))
            out.src.append(src.path().conn_init(dst.path(), addr))
        case (ConnectionState.UNINITIALIZED, ConnectionState.INIT):
            _log_connection_states(src, dst, src_conn, dst_conn)
            addr = src.get_address()
            if dst_update_headers:
                out.src.extend(src.path().update_clients(dst_update_headers, addr))
            out.src.append(src.path().conn_try(dst.path(), dst_cs_res, dst_conn, dst_cons, addr))
        case (ConnectionState.INIT, ConnectionState.UNINITIALIZED):
            _log_connection_states(dst, src, dst_conn, src_conn)
            addr = dst.get_address()
            if src_update_headers:
                out.dst.extend(dst.path().update_clients(src_update_headers, addr))
            out.dst.append(dst.path().conn_try(src.path(), src_cs_res, src_conn, src_cons, addr))
        case (ConnectionState.TRYOPEN, ConnectionState.INIT):
            _log_connection_states(dst, src, dst_conn, src_conn)
            addr = dst.get_address()
            if src_update_headers:
                out.dst.extend(dst.path().update_clients(src_update_headers, addr))
            out.dst.append(dst.path().conn_ack(src.path(), src_cs_res, src_conn, src_cons, addr))
        case (ConnectionState.INIT, ConnectionState.TRYOPEN):
            _log_connection_states(src, dst, src_conn, dst_conn)
            addr = src.get_address()
            if dst_update_headers:
                out.src.extend(src.path().update_clients(dst_update_headers, addr))
            out.src.append(src.path().conn_ack(dst.path(), dst_cs_res, dst_conn, dst_cons, addr))
        case (ConnectionState.TRYOPEN, ConnectionState.OPEN):
            _log_connection_states(src, dst, src_conn, dst_conn)
            addr = src.get_address()
            if dst_update_headers:
                out.src.extend(src.path().update_clients(dst_update_headers, addr))
            out.src.append(src.path().conn_confirm(dst_conn, addr))
            out.last = True
        case (ConnectionState.OPEN, ConnectionState.TRYOPEN):
            _log_connection_states(dst, src, dst_conn, src_conn)
            addr = dst.get_address()
            if src_update_headers:
                out.dst.extend(dst.path().update_clients(src_update_headers, addr))
            out.dst.append(dst.path().conn_confirm(src_conn, addr))
            out.last = True
        case _:
            raise RelayerError(f"not implemented error: {src_state} {dst_state}")
    return out


def create_connection(src: Any, dst: Any, timeout: float) -> None:
    """Run the connection handshake every ``timeout`` seconds until it completes."""

    def created() -> None:
        logger.info(
            "★ Connection created: [%s]client{%s}conn{%s} -> [%s]client{%s}conn{%s}",
            src.chain_id(),
            src.path().client_id,
            src.path().connection_id,
            dst.chain_id(),
            dst.path().client_id,
            dst.path().connection_id,
        )

    def failed() -> RelayerError:
        return RelayerError(
            f"! Connection failed: [{src.chain_id()}]client{{{src.path().client_id}}}"
            f"conn{{{src.path().connection_id}}} -> [{dst.chain_id()}]"
            f"client{{{dst.path().client_id}}}conn{{{dst.path().connection_id}}}"
        )

    _run_handshake(lambda: create_connection_step(src, dst), src, dst, timeout, created, failed)