"""Channel handshake between two chains."""

from __future__ import annotations

import logging
from typing import Any

from .connection import _must_get_height, _run_handshake, _setup_update_headers, validate_paths
from .headers import SyncHeaders
from .ibc import ChannelState, Order, QueryChannelResponse, RelayerError
from .query import query_channel_pair
from .relay_msgs import RelayMsgs

logger = logging.getLogger(__name__)


def _log_channel_states(
    src: Any, dst: Any, src_chan: QueryChannelResponse, dst_chan: QueryChannelResponse
) -> None:
    logger.info(
        "- [%s]@{%d}chan(%s)-{%s} : [%s]@{%d}chan(%s)-{%s}",
        src.chain_id(),
        _must_get_height(src_chan.proof_height),
        src.path().channel_id,
        src_chan.channel.state,
        dst.chain_id(),
        _must_get_height(dst_chan.proof_height),
        dst.path().channel_id,
        dst_chan.channel.state,
    )


def create_channel_step(src: Any, dst: Any, ordering: Order) -> RelayMsgs:
    """Return the messages that advance the channel handshake by one step."""
    out = RelayMsgs()
    validate_paths(src, dst)
    sh = SyncHeaders(src, dst)
    src_update_headers, dst_update_headers = _setup_update_headers(sh, src, dst)

    src_chan, dst_chan = query_channel_pair(
        sh.query_context(src.chain_id()), sh.query_context(dst.chain_id()), src, dst
    )
    src_state = src_chan.channel.state
    dst_state = dst_chan.channel.state

    match (src_state, dst_state):
        case (ChannelState.UNINITIALIZED, ChannelState.UNINITIALIZED):
            _log_channel_states(src, dst, src_chan, dst_chan)
            addr = src.get_address()
            out.src.append(src.path().chan_init(dst.path(), addr))
        case (ChannelState.UNINITIALIZED, ChannelState.INIT):
            _log_channel_states(src, dst, src_chan, dst_chan)
            addr = src.get_address()
            if dst_update_headers:
                out.src.extend(src.path().update_clients(dst_update_headers, addr))
            out.src.append(src.path().chan_try(dst.path(), dst_chan, addr))
        case (ChannelState.INIT, ChannelState.UNINITIALIZED):
            _log_channel_states(dst, src, dst_chan, src_chan)
            addr = dst.get_address()
            if src_update_headers:
                out.dst.extend(dst.path().update_clients(src_update_headers, addr))
            out.dst.append(dst.path().chan_try(src.path(), src_chan, addr))
        case (ChannelState.TRYOPEN, ChannelState.INIT):
            _log_channel_states(dst, src, dst_chan, src_chan)
            addr = dst.get_address()
            if src_update_headers:
                out.dst.extend(dst.path().update_clients(src_update_headers, addr))
            out.dst.append(dst.path().chan_ack(src.path(), src_chan, addr))
        case (ChannelState.INIT, ChannelState.TRYOPEN):
            _log_channel_states(src, dst, src_chan, dst_chan)
            addr = src.get_address()
            if dst_update_headers:
                out.src.extend(src.path().update_clients(dst_update_headers, addr))
            out.src.append(src.path().chan_ack(dst.path(), dst_chan, addr))
        case (ChannelState.TRYOPEN, ChannelState.OPEN):
            _log_channel_states(src, dst, src_chan, dst_chan)
            addr = src.get_address()
            if dst_update_headers:
                out.src.extend(src.path().update_clients(dst_update_headers, addr))
            out.src.append(src.path().chan_confirm(dst_chan, addr))
            out.last = True
        case (ChannelState.OPEN, ChannelState.TRYOPEN):
            _log_channel_states(dst, src, dst_chan, src_chan)
            addr = dst.get_address()
            if src_update_headers:
                out.dst.extend(dst.path().update_clients(src_update_headers, addr))
            out.dst.append(dst.path().chan_confirm(src_chan, addr))
            out.last = True
        case _:
            raise RelayerError(f"not implemented error: {src_state} <=> {dst_state}")
    return out


def create_channel(src: Any, dst: Any, ordered: bool, timeout: float) -> None:
    """Run the channel handshake every ``timeout`` seconds until it completes."""
    order = Order.ORDERED if ordered else Order.UNORDERED

    def created() -> None:
        logger.info(
            "★ Channel created: [%s]chan{%s}port{%s} -> [%s]chan{%s}port{%s}",
            src.chain_id(),
            src.path().channel_id,
            src.path().port_id,
            dst.chain_id(),
            dst.path().channel_id,
            dst.path().port_id,
        )

    def failed() -> RelayerError:
        return RelayerError(
            f"! Channel failed: [{src.chain_id()}]chan{{{src.path().client_id}}}"
            f"port{{{src.path().channel_id}}} -> [{dst.chain_id()}]"
            f"chan{{{dst.path().client_id}}}port{{{dst.path().channel_id}}}"
        )

    _run_handshake(lambda: create_channel_step(src, dst, order), src, dst, timeout, created, failed)