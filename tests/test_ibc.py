import json

import pytest

from yrly.ibc import (
    ConnectionState,
    DenomTrace,
    FungibleTokenPacketData,
    Height,
    MsgChannelCloseInit,
    Order,
    Packet,
    RelayerError,
    get_compatible_versions,
    parse_chain_id,
)


def make_packet(**overrides):
    values = dict(
        sequence=1,
        source_port="transfer",
        source_channel="channel-0",
        destination_port="transfer",
        destination_channel="channel-1",
        data=b"payload",
        timeout_height=Height(0, 100),
        timeout_timestamp=0,
    )
    values.update(overrides)
    return Packet(**values)


def test_parse_chain_id_reads_revision():
    assert parse_chain_id("testchain-7") == 7


@pytest.mark.parametrize("chain_id", ["gaia", "chain-01", "chain-", "-5"])
def test_parse_chain_id_without_revision(chain_id):
    assert not parse_chain_id(chain_id)


def test_height_ordering_and_zero():
    assert Height(0, 5) < Height(0, 6) < Height(1, 0)
    assert Height().is_zero()
    assert not Height(0, 1).is_zero()


def test_state_names():
    state = ConnectionState(ConnectionState.OPEN.value)
    assert state is ConnectionState.OPEN
    assert str(state) == "STATE_OPEN"


def test_compatible_versions_support_both_orderings():
    versions = get_compatible_versions()
    assert versions
    assert str(Order.ORDERED) in versions[0].features
    assert str(Order.UNORDERED) in versions[0].features


def test_valid_packet_passes():
    packet = make_packet()
    packet.validate_basic()
    assert packet.sequence == 1


def test_packet_zero_sequence_rejected():
    with pytest.raises(RelayerError, match="sequence cannot be 0"):
        make_packet(sequence=0).validate_basic()


def test_packet_without_timeout_rejected():
    with pytest.raises(RelayerError, match="cannot both be 0"):
        make_packet(timeout_height=Height(), timeout_timestamp=0).validate_basic()


def test_packet_timestamp_only_is_enough():
    packet = make_packet(timeout_height=Height(), timeout_timestamp=10)
    packet.validate_basic()
    assert packet.timeout_height.is_zero()


def test_packet_empty_data_rejected():
    with pytest.raises(RelayerError, match="data bytes cannot be empty"):
        make_packet(data=b"").validate_basic()


def test_packet_bad_port_rejected():
    with pytest.raises(RelayerError, match="invalid source port ID"):
        make_packet(source_port="a/b").validate_basic()


def test_denom_trace_paths():
    trace = DenomTrace("transfer/channel-0", "uatom")
    assert trace.full_denom_path() == "transfer/channel-0/uatom"
    denom = trace.ibc_denom()
    assert denom.startswith("ibc/")
    digest = denom[len("ibc/"):]
    assert len(digest) == 64
    assert digest == digest.upper()
    assert DenomTrace("transfer/channel-1", "uatom").ibc_denom() != denom


def test_denom_trace_without_path_is_base():
    trace = DenomTrace("", "stake")
    assert trace.ibc_denom() == "stake"
    assert trace.full_denom_path() == "stake"


def test_fungible_token_packet_data_bytes():
    data = FungibleTokenPacketData("stake", "100", "alice", "bob")
    assert data.get_bytes() == b'{"amount":"100","denom":"stake","receiver":"bob","sender":"alice"}'


def test_msg_to_bytes_is_deterministic():
    first = MsgChannelCloseInit("transfer", "channel-0", "signer")
    same = MsgChannelCloseInit("transfer", "channel-0", "signer")
    other = MsgChannelCloseInit("transfer", "channel-1", "signer")
    assert first.to_bytes() == same.to_bytes()
    assert first.to_bytes() != other.to_bytes()
    decoded = json.loads(first.to_bytes())
    assert decoded["@type"] == MsgChannelCloseInit.type_url
    assert decoded["value"]["channel_id"] == "channel-0"