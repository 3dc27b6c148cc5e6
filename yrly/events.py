"""Extracting packets and acknowledgements from transaction events."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .ibc import Height, Packet, RelayerError

EVENT_TYPE_SEND_PACKET = "send_packet"
EVENT_TYPE_WRITE_ACK = "write_acknowledgement"

ATTRIBUTE_KEY_DATA = "packet_data"
ATTRIBUTE_KEY_DATA_HEX = "packet_data_hex"
ATTRIBUTE_KEY_ACK = "packet_ack"
ATTRIBUTE_KEY_TIMEOUT_HEIGHT = "packet_timeout_height"
ATTRIBUTE_KEY_TIMEOUT_TIMESTAMP = "packet_timeout_timestamp"
ATTRIBUTE_KEY_SEQUENCE = "packet_sequence"
ATTRIBUTE_KEY_SRC_PORT = "packet_src_port"
ATTRIBUTE_KEY_SRC_CHANNEL = "packet_src_channel"
ATTRIBUTE_KEY_DST_PORT = "packet_dst_port"
ATTRIBUTE_KEY_DST_CHANNEL = "packet_dst_channel"

_UINT64_LIMIT = 2**64
_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class EventAttribute:
    """A key and value attached to an event."""

    key: str
    value: bytes

    def __post_init__(self) -> None:
        if isinstance(self.key, (bytes, bytearray)):
            object.__setattr__(self, "key", bytes(self.key).decode("utf-8"))
        if isinstance(self.value, str):
            object.__setattr__(self, "value", self.value.encode("utf-8"))


@dataclass(frozen=True)
class Event:
    """An event emitted by a transaction."""

    type: str
    attributes: list[EventAttribute] = field(default_factory=list)


@dataclass
class PacketAcknowledgement:
    """An acknowledgement written for a received packet."""

    src_port_id: str = ""
    src_channel_id: str = ""
    dst_port_id: str = ""
    dst_channel_id: str = ""
    sequence: int = 0
    data: bytes = b""


def _assert_index(actual: int, expected: int) -> None:
    if actual != expected:
        raise RelayerError(f"assertion error: {actual} != {expected}")


def _to_uint64(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise RelayerError(f"invalid unsigned integer: {text!r}")
    value = int(text)
    if value >= _UINT64_LIMIT:
        raise RelayerError(f"value out of range: {text!r}")
    return value


def _parse_height(text: str) -> Height:
    parts = text.split("-")
    if len(parts) < 2:
        raise RelayerError(f"invalid height: {text!r}")
    return Height(_to_uint64(parts[0]), _to_uint64(parts[1]))


def _decode_hex(text: str) -> bytes:
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise RelayerError(f"invalid hex data: {exc}") from exc


def get_packets_from_events(events: list[Event]) -> list[Packet]:
    """Return the packets described by the send-packet events, in order."""
    packets: list[Packet] = []
    for event in events:
        if event.type != EVENT_TYPE_SEND_PACKET:
            continue
        packet = Packet()
        for index, attr in enumerate(event.attributes):
            value = attr.value.decode("utf-8", errors="replace")
            key = attr.key
            if key == ATTRIBUTE_KEY_DATA:
                # the data attribute starts a new packet
                packet = Packet(data=bytes(attr.value))
                _assert_index(index, 0)
            elif key == ATTRIBUTE_KEY_DATA_HEX:
                packet.data = _decode_hex(value)
                _assert_index(index, 1)
            elif key == ATTRIBUTE_KEY_TIMEOUT_HEIGHT:
                packet.timeout_height = _parse_height(value)
                _assert_index(index, 2)
            elif key == ATTRIBUTE_KEY_TIMEOUT_TIMESTAMP:
                packet.timeout_timestamp = _to_uint64(value)
                _assert_index(index, 3)
            elif key == ATTRIBUTE_KEY_SEQUENCE:
                packet.sequence = _to_uint64(value)
                _assert_index(index, 4)
            elif key == ATTRIBUTE_KEY_SRC_PORT:
                packet.source_port = value
                _assert_index(index, 5)
            elif key == ATTRIBUTE_KEY_SRC_CHANNEL:
                packet.source_channel = value
                _assert_index(index, 6)
            elif key == ATTRIBUTE_KEY_DST_PORT:
                packet.destination_port = value
                _assert_index(index, 7)
            elif key == ATTRIBUTE_KEY_DST_CHANNEL:
                packet.destination_channel = value
                _assert_index(index, 8)
        packet.validate_basic()
        packets.append(packet)
    return packets


def find_packet_from_events_by_sequence(events: list[Event], seq: int) -> Packet | None:
    """Return the sent packet with the given sequence, or None."""
    return next(
        (packet for packet in get_packets_from_events(events) if packet.sequence == seq),
        None,
    )


def get_packet_acknowledgements_from_events(events: list[Event]) -> list[PacketAcknowledgement]:
    """Return the acknowledgements described by the write-ack events, in order."""
    acks: list[PacketAcknowledgement] = []
    for event in events:
        if event.type != EVENT_TYPE_WRITE_ACK:
            continue
        ack = PacketAcknowledgement()
        for index, attr in enumerate(event.attributes):
            value = attr.value.decode("utf-8", errors="replace")
            key = attr.key
            if key == ATTRIBUTE_KEY_SEQUENCE:
                ack.sequence = _to_uint64(value)
                _assert_index(index, 4)
            elif key == ATTRIBUTE_KEY_SRC_PORT:
                ack.src_port_id = value
                _assert_index(index, 5)
            elif key == ATTRIBUTE_KEY_SRC_CHANNEL:
                ack.src_channel_id = value
                _assert_index(index, 6)
            elif key == ATTRIBUTE_KEY_DST_PORT:
                ack.dst_port_id = value
                _assert_index(index, 7)
            elif key == ATTRIBUTE_KEY_DST_CHANNEL:
                ack.dst_channel_id = value
                _assert_index(index, 8)
            elif key == ATTRIBUTE_KEY_ACK:
                ack.data = bytes(attr.value)
                _assert_index(index, 9)
        acks.append(ack)
    return acks


def find_packet_acknowledgement_from_events_by_sequence(
    events: list[Event], seq: int
) -> PacketAcknowledgement | None:
    """Return the acknowledgement with the given sequence, or None."""
    return next(
        (ack for ack in get_packet_acknowledgements_from_events(events) if ack.sequence == seq),
        None,
    )