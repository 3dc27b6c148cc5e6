"""Latest finalized headers of a pair of chains and the headers needed to update clients."""

from __future__ import annotations

from typing import Any

from .chain import QueryContext
from .ibc import RelayerError


def ensure_different_chains(src: Any, dst: Any) -> None:
    """Raise RelayerError if both chains have the same chain ID."""
    if src.chain_id() == dst.chain_id():
        raise RelayerError(
            f"the two chains are probably the same.: src={src.chain_id()} dst={dst.chain_id()}"
        )


class SyncHeaders:
    """Keeps the latest finalized headers of a ``src`` and ``dst`` chain."""

    def __init__(self, src: Any, dst: Any) -> None:
        ensure_different_chains(src, dst)
        self._headers: dict[str, Any] = {src.chain_id(): None, dst.chain_id(): None}
        self.updates(src, dst)

    def updates(self, src: Any, dst: Any) -> None:
        """Fetch the latest finalized headers of both chains."""
        ensure_different_chains(src, dst)
        src_header = src.get_latest_finalized_header()
        dst_header = dst.get_latest_finalized_header()
        self._headers[src.chain_id()] = src_header
        self._headers[dst.chain_id()] = dst_header

    def latest_finalized_header(self, chain_id: str) -> Any:
        """Return the stored header of a chain, or None if it has none."""
        return self._headers.get(chain_id)

    def query_context(self, chain_id: str) -> QueryContext:
        """Build a query context at the height of the latest finalized header."""
        header = self.latest_finalized_header(chain_id)
        if header is None:
            raise RelayerError(f"no finalized header for chain {chain_id}")
        return QueryContext(header.get_height())

    def setup_headers_for_update(self, src: Any, dst: Any) -> list[Any]:
        """Return ``src`` headers needed to update its client on ``dst``."""
        ensure_different_chains(src, dst)
        return src.setup_headers_for_update(dst, self.latest_finalized_header(src.chain_id()))

    def setup_both_headers_for_update(self, src: Any, dst: Any) -> tuple[list[Any], list[Any]]:
        """Return the headers for updating the clients on both chains."""
        src_headers = self.setup_headers_for_update(src, dst)
        dst_headers = self.setup_headers_for_update(dst, src)
        return src_headers, dst_headers