"""IBC data types used by the relayer: heights, orderings, states, packets and messages."""

from __future__ import annotations

import dataclasses
import enum
import hashlib
import json
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar

_UINT64_LIMIT = 2**64
_EPOCH_FORMAT = re.compile(r".*[^\n-]-[1-9][0-9]*")


class RelayerError(Exception):
    """Raised when a relayer operation cannot be carried out."""


@dataclass(frozen=True, order=True)
class Height:
    """A height on a chain, made of a revision number and a block height."""

    revision_number: int = 0
    revision_height: int = 0

    def is_zero(self) -> bool:
        return self.revision_number == 0 and self.revision_height == 0

    def __str__(self) -> str:
        return f"{self.revision_number}-{self.revision_height}"


def parse_chain_id(chain_id: str) -> int:
    """Return the revision number carried by a chain ID such as ``name-3``, or 0."""
    if not _EPOCH_FORMAT.fullmatch(chain_id):
        return 0
    revision = int(chain_id.rsplit("-", 1)[1])
    return revision if revision < _UINT64_LIMIT else 0


class Order(enum.IntEnum):
    """Channel ordering."""

    NONE = 0
    UNORDERED = 1
    ORDERED = 2

    def __str__(self) -> str:
        if self is Order.NONE:
            return "ORDER_NONE_UNSPECIFIED"
        return f"ORDER_{self.name}"


class ConnectionState(enum.IntEnum):
    """State of a connection end."""

    UNINITIALIZED = 0
    INIT = 1
    TRYOPEN = 2
    OPEN = 3

    def __str__(self) -> str:
        if self is ConnectionState.UNINITIALIZED:
            return "STATE_UNINITIALIZED_UNSPECIFIED"
        return f"STATE_{self.name}"


class ChannelState(enum.IntEnum):
    """State of a channel end."""

    UNINITIALIZED = 0
    INIT = 1
    TRYOPEN = 2
    OPEN = 3
    CLOSED = 4

    def __str__(self) -> str:
        if self is ChannelState.UNINITIALIZED:
            return "STATE_UNINITIALIZED_UNSPECIFIED"
        return f"STATE_{self.name}"


@dataclass(frozen=True)
class Coin:
    """An amount of a single denomination."""

    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass
class Packet:
    """An IBC packet sent from a source channel to a destination channel."""

    sequence: int = 0
    source_port: str = ""
    source_channel: str = ""
    destination_port: str = ""
    destination_channel: str = ""
    data: bytes = b""
    timeout_height: Height = field(default_factory=Height)
    timeout_timestamp: int = 0

    def validate_basic(self) -> None:
        """Raise RelayerError if the packet is malformed."""
        from .path_end import validate_channel_identifier, validate_port_identifier

        checks = (
            (validate_port_identifier, self.source_port, "invalid source port ID"),
            (validate_port_identifier, self.destination_port, "invalid destination port ID"),
            (validate_channel_identifier, self.source_channel, "invalid source channel ID"),
            (validate_channel_identifier, self.destination_channel, "invalid destination channel ID"),
        )
        for validator, identifier, message in checks:
            try:
                validator(identifier)
            except RelayerError as exc:
                raise RelayerError(f"{message}: {exc}") from exc
        if self.sequence == 0:
            raise RelayerError("packet sequence cannot be 0")
        if self.timeout_height.is_zero() and self.timeout_timestamp == 0:
            raise RelayerError(
                "packet timeout height and packet timeout timestamp cannot both be 0"
            )
        if not self.data:
            raise RelayerError("packet data bytes cannot be empty")


def _encode(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _encode(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, enum.Enum):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _encode(item) for key, item in value.items()}
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


class Msg:
    """Base of every message submitted to a chain."""

    type_url: ClassVar[str] = ""

    def to_bytes(self) -> bytes:
        """Deterministic serialisation, used to measure transaction size."""
        body = {"@type": self.type_url, "value": _encode(self)}
        return json.dumps(
            body, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")


@dataclass(frozen=True)
class MsgUpdateClient(Msg):
    type_url: ClassVar[str] = "/ibc.core.client.v1.MsgUpdateClient"
    client_id: str
    header: Any
    signer: str


@dataclass(frozen=True)
class MsgCreateClient(Msg):
    type_url: ClassVar[str] = "/ibc.core.client.v1.MsgCreateClient"
    client_state: Any
    consensus_state: Any
    signer: str


@dataclass(frozen=True)
class ConnectionVersion:
    """A connection version identifier and the orderings it supports."""

    identifier: str
    features: tuple[str, ...] = ()


def get_compatible_versions() -> list[ConnectionVersion]:
    """Return the connection versions this relayer supports."""
    return [ConnectionVersion("1", (str(Order.ORDERED), str(Order.UNORDERED)))]


@dataclass(frozen=True)
class MsgConnectionOpenInit(Msg):
    type_url: ClassVar[str] = "/ibc.core.connection.v1.MsgConnectionOpenInit"
    client_id: str
    counterparty_client_id: str
    counterparty_prefix: bytes
    version: ConnectionVersion | None
    delay_period: int
    signer: str


@dataclass(frozen=True)
class MsgConnectionOpenTry(Msg):
    type_url: ClassVar[str] = "/ibc.core.connection.v1.MsgConnectionOpenTry"
    client_id: str
    counterparty_connection_id: str
    counterparty_client_id: str
    client_state: Any
    counterparty_prefix: bytes
    counterparty_versions: tuple[ConnectionVersion, ...]
    delay_period: int
    proof_init: bytes
    proof_client: bytes
    proof_consensus: bytes
    proof_height: Height
    consensus_height: Height
    signer: str


@dataclass(frozen=True)
class MsgConnectionOpenAck(Msg):
    type_url: ClassVar[str] = "/ibc.core.connection.v1.MsgConnectionOpenAck"
    connection_id: str
    counterparty_connection_id: str
    client_state: Any
    proof_try: bytes
    proof_client: bytes
    proof_consensus: bytes
    proof_height: Height
    consensus_height: Height
    version: ConnectionVersion
    signer: str


@dataclass(frozen=True)
class MsgConnectionOpenConfirm(Msg):
    type_url: ClassVar[str] = "/ibc.core.connection.v1.MsgConnectionOpenConfirm"
    connection_id: str
    proof_ack: bytes
    proof_height: Height
    signer: str


@dataclass(frozen=True)
class MsgChannelOpenInit(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgChannelOpenInit"
    port_id: str
    version: str
    ordering: Order
    connection_hops: tuple[str, ...]
    counterparty_port_id: str
    signer: str


@dataclass(frozen=True)
class MsgChannelOpenTry(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgChannelOpenTry"
    port_id: str
    version: str
    ordering: Order
    connection_hops: tuple[str, ...]
    counterparty_port_id: str
    counterparty_channel_id: str
    counterparty_version: str
    proof_init: bytes
    proof_height: Height
    signer: str


@dataclass(frozen=True)
class MsgChannelOpenAck(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgChannelOpenAck"
    port_id: str
    channel_id: str
    counterparty_channel_id: str
    counterparty_version: str
    proof_try: bytes
    proof_height: Height
    signer: str


@dataclass(frozen=True)
class MsgChannelOpenConfirm(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgChannelOpenConfirm"
    port_id: str
    channel_id: str
    proof_ack: bytes
    proof_height: Height
    signer: str


@dataclass(frozen=True)
class MsgChannelCloseInit(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgChannelCloseInit"
    port_id: str
    channel_id: str
    signer: str


@dataclass(frozen=True)
class MsgChannelCloseConfirm(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgChannelCloseConfirm"
    port_id: str
    channel_id: str
    proof_init: bytes
    proof_height: Height
    signer: str


@dataclass(frozen=True)
class MsgTransfer(Msg):
    type_url: ClassVar[str] = "/ibc.applications.transfer.v1.MsgTransfer"
    source_port: str
    source_channel: str
    token: Coin
    sender: str
    receiver: str
    timeout_height: Height
    timeout_timestamp: int


@dataclass(frozen=True)
class MsgRecvPacket(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgRecvPacket"
    packet: Packet
    proof_commitment: bytes
    proof_height: Height
    signer: str


@dataclass(frozen=True)
class MsgAcknowledgement(Msg):
    type_url: ClassVar[str] = "/ibc.core.channel.v1.MsgAcknowledgement"
    packet: Packet
    acknowledgement: bytes
    proof_acked: bytes
    proof_height: Height
    signer: str


@dataclass(frozen=True)
class ConnectionEnd:
    state: ConnectionState
    client_id: str = ""
    versions: tuple[ConnectionVersion, ...] = ()
    counterparty_client_id: str = ""
    counterparty_connection_id: str = ""
    delay_period: int = 0


@dataclass(frozen=True)
class Channel:
    state: ChannelState
    ordering: Order = Order.NONE
    counterparty_port_id: str = ""
    counterparty_channel_id: str = ""
    connection_hops: tuple[str, ...] = ()
    version: str = ""


@dataclass(frozen=True)
class QueryClientStateResponse:
    client_state: Any
    proof: bytes = b""
    proof_height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class QueryConsensusStateResponse:
    consensus_state: Any
    proof: bytes = b""
    proof_height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class QueryConnectionResponse:
    connection: ConnectionEnd
    proof: bytes = b""
    proof_height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class QueryChannelResponse:
    channel: Channel
    proof: bytes = b""
    proof_height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class QueryPacketCommitmentResponse:
    commitment: bytes
    proof: bytes = b""
    proof_height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class QueryPacketAcknowledgementResponse:
    acknowledgement: bytes
    proof: bytes = b""
    proof_height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class PacketState:
    port_id: str
    channel_id: str
    sequence: int
    data: bytes = b""


@dataclass(frozen=True)
class QueryPacketCommitmentsResponse:
    commitments: list[PacketState] = field(default_factory=list)
    height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class QueryPacketAcknowledgementsResponse:
    acknowledgements: list[PacketState] = field(default_factory=list)
    height: Height = field(default_factory=Height)


@dataclass(frozen=True)
class DenomTrace:
    """The trace of a token denomination across channels."""

    path: str
    base_denom: str

    def full_denom_path(self) -> str:
        if not self.path:
            return self.base_denom
        return f"{self.path}/{self.base_denom}"

    def ibc_denom(self) -> str:
        if not self.path:
            return self.base_denom
        digest = hashlib.sha256(self.full_denom_path().encode("utf-8")).hexdigest()
        return f"ibc/{digest.upper()}"


@dataclass(frozen=True)
class QueryDenomTracesResponse:
    denom_traces: list[DenomTrace] = field(default_factory=list)


@dataclass(frozen=True)
class FungibleTokenPacketData:
    """Payload of an ICS-20 token transfer packet."""

    denom: str
    amount: str
    sender: str
    receiver: str

    def get_bytes(self) -> bytes:
        """Sorted, compact JSON encoding of the packet data."""
        body = {
            "denom": self.denom,
            "amount": self.amount,
            "sender": self.sender,
            "receiver": self.receiver,
        }
        return json.dumps(
            body, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")