"""Sending a fungible token transfer from one chain to another."""

from __future__ import annotations

import time
from typing import Any

from .ibc import RelayerError
from .relay_msgs import RelayMsgs

_DEFAULT_HEIGHT_OFFSET = 1000


def send_transfer_msg(
    src: Any,
    dst: Any,
    amount: Any,
    dst_addr: Any,
    to_height_offset: int = 0,
    to_time_offset: float = 0.0,
) -> None:
    """Send a transfer of ``amount`` from ``src`` to ``dst_addr`` on ``dst``.

    The timeout is either a height offset on ``dst`` or a time offset in
    seconds; with neither, the height offset defaults to 1000 blocks.
    """
    height = dst.latest_height()
    dst_addr_string = str(dst_addr)

    timeout_height = 0
    timeout_timestamp = 0
    if to_height_offset > 0 and to_time_offset > 0:
        raise RelayerError("cant set both timeout height and time offset")
    if to_height_offset > 0:
        timeout_height = height.revision_height + to_height_offset
    elif to_time_offset > 0:
        timeout_timestamp = time.time_ns() + int(to_time_offset * 1_000_000_000)
    elif to_height_offset == 0 and to_time_offset == 0:
        timeout_height = height.revision_height + _DEFAULT_HEIGHT_OFFSET

    src_addr = src.get_address()
    txs = RelayMsgs(
        src=[
            src.path().msg_transfer(
                dst.path(), amount, dst_addr_string, src_addr, timeout_height, timeout_timestamp
            )
        ]
    )
    txs.send(src, dst)
    if not txs.success():
        raise RelayerError("failed to send transfer message")