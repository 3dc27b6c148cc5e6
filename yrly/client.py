"""Creating and updating the light clients of two chains on each other."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from .headers import SyncHeaders
from .relay_msgs import RelayMsgs

logger = logging.getLogger(__name__)


def _latest_finalized_headers(src: Any, dst: Any) -> tuple[Any, Any]:
    """Fetch the latest finalized header of both chains at once."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        src_future = pool.submit(src.get_latest_finalized_header)
        dst_future = pool.submit(dst.get_latest_finalized_header)
    for future in (src_future, dst_future):
        error = future.exception()
        if error is not None:
            raise error
    return src_future.result(), dst_future.result()


def create_clients(src: Any, dst: Any) -> None:
    """Create a client of each chain on the other chain."""
    clients = RelayMsgs()
    src_header, dst_header = _latest_finalized_headers(src, dst)
    src_addr = src.get_address()
    dst_addr = dst.get_address()

    clients.src.append(dst.create_msg_create_client(src.path().client_id, dst_header, src_addr))
    clients.dst.append(src.create_msg_create_client(dst.path().client_id, src_header, dst_addr))

    if clients.ready():
        clients.send(src, dst)
        if clients.success():
            logger.info(
                "★ Clients created: [%s]client(%s) and [%s]client(%s)",
                src.chain_id(),
                src.path().client_id,
                dst.chain_id(),
                dst.path().client_id,
            )


def update_clients(src: Any, dst: Any) -> None:
    """Update the client of each chain on the other chain to the latest header."""
    clients = RelayMsgs()
    sh = SyncHeaders(src, dst)
    src_update_headers, dst_update_headers = sh.setup_both_headers_for_update(src, dst)
    if dst_update_headers:
        clients.src.extend(src.path().update_clients(dst_update_headers, src.get_address()))
    if src_update_headers:
        clients.dst.extend(dst.path().update_clients(src_update_headers, dst.get_address()))

    if clients.ready():
        clients.send(src, dst)
        if clients.success():
            logger.info(
                "★ Clients updated: [%s]client(%s) and [%s]client(%s)",
                src.chain_id(),
                src.path().client_id,
                dst.chain_id(),
                dst.path().client_id,
            )