from dataclasses import dataclass
from unittest import mock

import pytest

from yrly.headers import SyncHeaders
from yrly.ibc import (
    Height,
    MsgAcknowledgement,
    MsgRecvPacket,
    MsgUpdateClient,
    Packet,
    PacketState,
    QueryPacketAcknowledgementResponse,
    QueryPacketAcknowledgementsResponse,
    QueryPacketCommitmentResponse,
    QueryPacketCommitmentsResponse,
    RelayerError,
)
from yrly.path_end import PathEnd
from yrly.relay_msgs import RelaySequences
from yrly.strategy import (
    NaiveStrategy,
    StrategyConfig,
    collect_acks,
    collect_packets,
    get_strategy,
)


@dataclass(frozen=True)
class FakeHeader:
    height: Height

    def get_height(self):
        return self.height

    def validate_basic(self):
        return None


class FakeChain:
    def __init__(self, name, height, commitments=(), received=(), acks=(), acked=()):
        self._id = name
        self._path = PathEnd(
            chain_id=name,
            client_id=f"client-{name}",
            connection_id=f"connection-{name}",
            channel_id=f"channel-{name}",
            port_id="transfer",
            order="UNORDERED",
            version="ics20-1",
        )
        self.header = FakeHeader(Height(0, height))
        self.commitments = list(commitments)
        self.received = set(received)
        self.acks = list(acks)
        self.acked = set(acked)
        self.update_headers = True
        self.sent = []
        self.setup_calls = 0
        self.header_calls = 0
        self.commitment_queries = []
        self.failures = 0
        self.nil_responses = False
        self.unreceived_none = False

    def chain_id(self):
        return self._id

    def path(self):
        return self._path

    def get_address(self):
        return f"addr-{self._id}"

    def setup_for_relay(self):
        self.setup_calls += 1

    def get_latest_finalized_header(self):
        self.header_calls += 1
        return self.header

    def setup_headers_for_update(self, dst, header):
        return [header] if self.update_headers else []

    def _maybe_fail(self):
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("temporary failure")

    def query_packet_commitments(self, ctx, offset, limit):
        self.commitment_queries.append((offset, limit))
        self._maybe_fail()
        if self.nil_responses:
            return None
        states = [PacketState("transfer", self._path.channel_id, s) for s in self.commitments]
        return QueryPacketCommitmentsResponse(states, ctx.height)

    def query_packet_acknowledgement_commitments(self, ctx, offset, limit):
        self._maybe_fail()
        if self.nil_responses:
            return None
        states = [PacketState("transfer", self._path.channel_id, s) for s in self.acks]
        return QueryPacketAcknowledgementsResponse(states, ctx.height)

    def query_unreceived_packets(self, ctx, seqs):
        if self.unreceived_none:
            return None
        return [s for s in seqs if s not in self.received]

    def query_unreceived_acknowledgements(self, ctx, seqs):
        return [s for s in seqs if s not in self.acked]

    def query_packet(self, ctx, seq):
        return Packet(
            sequence=seq,
            source_port="transfer",
            source_channel=self._path.channel_id,
            destination_port="transfer",
            destination_channel="channel-other",
            data=b"data",
            timeout_height=Height(0, 1000),
        )

    def query_packet_commitment_with_proof(self, ctx, seq):
        return QueryPacketCommitmentResponse(b"commit", f"proof-{seq}".encode(), ctx.height)

    def query_packet_acknowledgement(self, ctx, seq):
        return f"ack-{seq}".encode()

    def query_packet_acknowledgement_commitment_with_proof(self, ctx, seq):
        return QueryPacketAcknowledgementResponse(
            b"ackcommit", f"ackproof-{seq}".encode(), ctx.height
        )

    def send(self, msgs):
        self.sent.append(list(msgs))
        return True


@pytest.fixture
def chains():
    return FakeChain("ibc0", 10), FakeChain("ibc1", 20)


def test_get_strategy_naive():
    strategy = get_strategy(StrategyConfig(type="naive"))
    assert isinstance(strategy, NaiveStrategy)
    assert strategy.get_type() == "naive"


def test_get_strategy_unknown():
    with pytest.raises(RelayerError, match="unknown strategy type 'foo'"):
        get_strategy(StrategyConfig(type="foo"))


def test_setup_relay_calls_both(chains):
    src, dst = chains
    NaiveStrategy().setup_relay(src, dst)
    assert (src.setup_calls, dst.setup_calls) == (1, 1)


def test_unrelayed_sequences():
    src = FakeChain("ibc0", 10, commitments=[1, 2, 3])
    dst = FakeChain("ibc1", 20, commitments=[5, 6], received=[1])
    src.received = {6}
    sh = SyncHeaders(src, dst)
    rs = NaiveStrategy().unrelayed_sequences(src, dst, sh)
    assert rs.src == [2, 3]
    assert rs.dst == [5]
    assert src.commitment_queries == [(0, 1000)]


def test_unrelayed_sequences_none_result_keeps_empty():
    src = FakeChain("ibc0", 10, commitments=[1])
    dst = FakeChain("ibc1", 20)
    dst.unreceived_none = True
    rs = NaiveStrategy().unrelayed_sequences(src, dst, SyncHeaders(src, dst))
    assert rs.src == []


@mock.patch("yrly.retry.time.sleep")
def test_unrelayed_sequences_retries_then_succeeds(sleep):
    src = FakeChain("ibc0", 10, commitments=[4])
    dst = FakeChain("ibc1", 20)
    src.failures = 2
    rs = NaiveStrategy().unrelayed_sequences(src, dst, SyncHeaders(src, dst))
    assert rs.src == [4]
    assert len(src.commitment_queries) == 3


@mock.patch("yrly.retry.time.sleep")
def test_unrelayed_sequences_nil_response_raises(sleep):
    src = FakeChain("ibc0", 10)
    dst = FakeChain("ibc1", 20)
    src.nil_responses = True
    with pytest.raises(RelayerError, match="however response is nil"):
        NaiveStrategy().unrelayed_sequences(src, dst, SyncHeaders(src, dst))
    assert len(src.commitment_queries) == 5


def test_unrelayed_acknowledgements():
    src = FakeChain("ibc0", 10, acks=[1, 2], acked=[7])
    dst = FakeChain("ibc1", 20, acks=[7, 8], acked=[2])
    rs = NaiveStrategy().unrelayed_acknowledgements(src, dst, SyncHeaders(src, dst))
    assert rs.src == [1]
    assert rs.dst == [8]


@mock.patch("yrly.retry.time.sleep")
def test_unrelayed_acknowledgements_updates_headers_on_retry(sleep):
    src = FakeChain("ibc0", 10, acks=[3])
    dst = FakeChain("ibc1", 20)
    sh = SyncHeaders(src, dst)
    before = src.header_calls
    src.failures = 1
    rs = NaiveStrategy().unrelayed_acknowledgements(src, dst, sh)
    assert rs.src == [3]
    assert src.header_calls == before + 1


def test_collect_packets(chains):
    src, _ = chains
    ctx = SyncHeaders(*chains).query_context("ibc0")
    msgs = collect_packets(ctx, src, [1, 2], "addr-ibc1")
    assert [m.packet.sequence for m in msgs] == [1, 2]
    assert all(isinstance(m, MsgRecvPacket) for m in msgs)
    assert msgs[0].proof_commitment == b"proof-1"
    assert msgs[0].proof_height == src.header.height
    assert msgs[1].signer == "addr-ibc1"


def test_collect_acks(chains):
    src, dst = chains
    sh = SyncHeaders(src, dst)
    msgs = collect_acks(
        sh.query_context("ibc1"), sh.query_context("ibc0"), dst, src, [5], "addr-ibc1"
    )
    assert len(msgs) == 1
    msg = msgs[0]
    assert isinstance(msg, MsgAcknowledgement)
    assert msg.acknowledgement == b"ack-5"
    assert msg.proof_acked == b"ackproof-5"
    assert msg.packet.source_channel == "channel-ibc1"
    assert msg.proof_height == src.header.height


def test_relay_packets_nothing_to_relay(chains):
    src, dst = chains
    NaiveStrategy().relay_packets(src, dst, RelaySequences(), SyncHeaders(src, dst))
    assert src.sent == [] and dst.sent == []


def test_relay_packets_sends_updates_and_packets(chains):
    src, dst = chains
    sp = RelaySequences(src=[1, 2], dst=[])
    NaiveStrategy().relay_packets(src, dst, sp, SyncHeaders(src, dst))
    assert src.sent == []
    assert len(dst.sent) == 1
    batch = dst.sent[0]
    assert isinstance(batch[0], MsgUpdateClient)
    assert batch[0].client_id == "client-ibc1"
    assert batch[0].header == src.header
    assert [m.packet.sequence for m in batch[1:]] == [1, 2]
    assert all(m.signer == "addr-ibc1" for m in batch[1:])


def test_relay_packets_without_update_headers(chains):
    src, dst = chains
    dst.update_headers = False
    sp = RelaySequences(src=[], dst=[9])
    NaiveStrategy().relay_packets(src, dst, sp, SyncHeaders(src, dst))
    assert len(src.sent) == 1
    assert [type(m) for m in src.sent[0]] == [MsgRecvPacket]
    assert src.sent[0][0].packet.sequence == 9


def test_relay_packets_batches_by_message_length(chains):
    src, dst = chains
    src.update_headers = False
    sp = RelaySequences(src=[1, 2, 3], dst=[])
    NaiveStrategy(max_msg_length=1).relay_packets(src, dst, sp, SyncHeaders(src, dst))
    assert [len(batch) for batch in dst.sent] == [1, 1, 1]
    assert [batch[0].packet.sequence for batch in dst.sent] == [1, 2, 3]


def test_relay_acknowledgements(chains):
    src, dst = chains
    sp = RelaySequences(src=[], dst=[4])
    NaiveStrategy().relay_acknowledgements(src, dst, sp, SyncHeaders(src, dst))
    assert dst.sent == []
    assert len(src.sent) == 1
    update, ack = src.sent[0]
    assert isinstance(update, MsgUpdateClient)
    assert update.client_id == "client-ibc0"
    assert isinstance(ack, MsgAcknowledgement)
    assert ack.acknowledgement == b"ack-4"
    assert ack.packet.source_channel == "channel-ibc0"
    assert ack.signer == "addr-ibc0"


def test_relay_acknowledgements_nothing(chains):
    src, dst = chains
    NaiveStrategy().relay_acknowledgements(src, dst, RelaySequences(), SyncHeaders(src, dst))
    assert (src.sent, dst.sent) == ([], [])