import threading

import pytest

from yrly.chain import QueryContext
from yrly.ibc import (
    Channel,
    ChannelState,
    ConnectionEnd,
    ConnectionState,
    Height,
    QueryChannelResponse,
    QueryClientStateResponse,
    QueryConnectionResponse,
    QueryConsensusStateResponse,
    RelayerError,
)
from yrly.query import (
    query_channel_pair,
    query_client_consensus_state_pair,
    query_client_state_pair,
    query_connection_pair,
)


class FakeProver:
    def __init__(self, name, barrier=None, fail=False):
        self.name = name
        self.barrier = barrier
        self.fail = fail
        self.seen = []

    def _enter(self, *args):
        self.seen.append(args)
        if self.barrier is not None:
            self.barrier.wait()
        if self.fail:
            raise RelayerError(f"{self.name} query failed")

    def query_client_state_with_proof(self, ctx):
        self._enter(ctx)
        return QueryClientStateResponse(self.name, b"p", ctx.height)

    def query_client_consensus_state_with_proof(self, ctx, height):
        self._enter(ctx, height)
        return QueryConsensusStateResponse(self.name, b"p", height)

    def query_connection_with_proof(self, ctx):
        self._enter(ctx)
        return QueryConnectionResponse(ConnectionEnd(ConnectionState.OPEN, client_id=self.name))

    def query_channel_with_proof(self, ctx):
        self._enter(ctx)
        return QueryChannelResponse(Channel(ChannelState.INIT, version=self.name))


SRC_CTX = QueryContext(Height(0, 10))
DST_CTX = QueryContext(Height(0, 20))


def test_client_state_pair_runs_concurrently_with_own_contexts():
    barrier = threading.Barrier(2, timeout=5)
    src, dst = FakeProver("src", barrier), FakeProver("dst", barrier)
    src_res, dst_res = query_client_state_pair(SRC_CTX, DST_CTX, src, dst)
    assert (src_res.client_state, src_res.proof_height) == ("src", SRC_CTX.height)
    assert (dst_res.client_state, dst_res.proof_height) == ("dst", DST_CTX.height)


def test_consensus_state_pair_passes_heights():
    src, dst = FakeProver("src"), FakeProver("dst")
    src_h, dst_h = Height(1, 3), Height(2, 4)
    src_res, dst_res = query_client_consensus_state_pair(SRC_CTX, DST_CTX, src, dst, src_h, dst_h)
    assert src.seen == [(SRC_CTX, src_h)]
    assert dst.seen == [(DST_CTX, dst_h)]
    assert (src_res.proof_height, dst_res.proof_height) == (src_h, dst_h)


def test_connection_pair_returns_in_order():
    src_res, dst_res = query_connection_pair(SRC_CTX, DST_CTX, FakeProver("src"), FakeProver("dst"))
    assert src_res.connection.client_id == "src"
    assert dst_res.connection.client_id == "dst"


def test_channel_pair_returns_in_order():
    src_res, dst_res = query_channel_pair(SRC_CTX, DST_CTX, FakeProver("src"), FakeProver("dst"))
    assert [src_res.channel.version, dst_res.channel.version] == ["src", "dst"]


def test_error_is_raised_after_both_queries_ran():
    src, dst = FakeProver("src"), FakeProver("dst", fail=True)
    with pytest.raises(RelayerError, match="dst query failed"):
        query_channel_pair(SRC_CTX, DST_CTX, src, dst)
    assert src.seen == [(SRC_CTX,)]
    assert dst.seen == [(DST_CTX,)]


def test_src_error_is_raised():
    with pytest.raises(RelayerError, match="src query failed"):
        query_connection_pair(SRC_CTX, DST_CTX, FakeProver("src", fail=True), FakeProver("dst"))