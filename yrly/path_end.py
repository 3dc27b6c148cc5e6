"""One end of a relay path: identifiers, validation and message builders."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .ibc import (
    Coin,
    FungibleTokenPacketData,
    Height,
    Msg,
    MsgChannelCloseConfirm,
    MsgChannelCloseInit,
    MsgChannelOpenAck,
    MsgChannelOpenConfirm,
    MsgChannelOpenInit,
    MsgChannelOpenTry,
    MsgConnectionOpenAck,
    MsgConnectionOpenConfirm,
    MsgConnectionOpenInit,
    MsgConnectionOpenTry,
    MsgTransfer,
    MsgUpdateClient,
    Order,
    Packet,
    QueryChannelResponse,
    QueryClientStateResponse,
    QueryConnectionResponse,
    QueryConsensusStateResponse,
    RelayerError,
    get_compatible_versions,
    parse_chain_id,
)

DEFAULT_CHAIN_PREFIX = b"ibc"
DEFAULT_DELAY_PERIOD = 0

_MAX_IDENTIFIER_LENGTH = 64
_MAX_PORT_LENGTH = 128
_VALID_ID = re.compile(r"[a-zA-Z0-9._+\-#\[\]<>]+")

_FIELD_KEYS = (
    ("chain_id", "chain-id"),
    ("client_id", "client-id"),
    ("connection_id", "connection-id"),
    ("channel_id", "channel-id"),
    ("port_id", "port-id"),
    ("order", "order"),
    ("version", "version"),
)


def _validate_identifier(identifier: str, min_length: int, max_length: int) -> None:
    if not identifier.strip():
        raise RelayerError("identifier cannot be blank")
    if "/" in identifier:
        raise RelayerError(f"identifier {identifier} cannot contain separator '/'")
    length = len(identifier.encode("utf-8"))
    if not min_length <= length <= max_length:
        raise RelayerError(
            f"identifier {identifier} has invalid length: {length}, "
            f"must be between {min_length}-{max_length} characters"
        )
    if not _VALID_ID.fullmatch(identifier):
        raise RelayerError(
            f"identifier {identifier} must contain only alphanumeric or the following "
            "characters: '.', '_', '+', '-', '#', '[', ']', '<', '>'"
        )


def validate_client_identifier(identifier: str) -> None:
    _validate_identifier(identifier, 9, _MAX_IDENTIFIER_LENGTH)


def validate_connection_identifier(identifier: str) -> None:
    _validate_identifier(identifier, 10, _MAX_IDENTIFIER_LENGTH)


def validate_channel_identifier(identifier: str) -> None:
    _validate_identifier(identifier, 8, _MAX_IDENTIFIER_LENGTH)


def validate_port_identifier(identifier: str) -> None:
    _validate_identifier(identifier, 2, _MAX_PORT_LENGTH)


def order_from_string(order: str) -> Order:
    """Parse an upper-case order name; anything else is Order.NONE."""
    if order == "UNORDERED":
        return Order.UNORDERED
    if order == "ORDERED":
        return Order.ORDERED
    return Order.NONE


def _unpack_client_state(response: QueryClientStateResponse) -> Any:
    if response.client_state is None:
        raise RelayerError("client state is nil")
    return response.client_state


def _validate_conn_try(msg: MsgConnectionOpenTry) -> None:
    validate_client_identifier(msg.client_id)
    if msg.counterparty_connection_id:
        validate_connection_identifier(msg.counterparty_connection_id)
    validate_client_identifier(msg.counterparty_client_id)
    if not msg.counterparty_prefix:
        raise RelayerError("counterparty prefix cannot be empty")
    if not msg.counterparty_versions:
        raise RelayerError("empty counterparty versions")
    for version in msg.counterparty_versions:
        if not version.identifier.strip():
            raise RelayerError("version identifier cannot be blank")
    if not msg.proof_init:
        raise RelayerError("cannot submit an empty proof init")
    if not msg.proof_client:
        raise RelayerError("cannot submit empty proof client")
    if not msg.proof_consensus:
        raise RelayerError("cannot submit an empty proof of consensus state")
    if msg.proof_height.is_zero():
        raise RelayerError("proof height must be non-zero")
    if msg.consensus_height.is_zero():
        raise RelayerError("consensus height must be non-zero")
    if not msg.signer:
        raise RelayerError("signer cannot be empty")


@dataclass
class PathEnd:
    """The local identifiers of one end of a relay path."""

    chain_id: str = ""
    client_id: str = ""
    connection_id: str = ""
    channel_id: str = ""
    port_id: str = ""
    order: str = ""
    version: str = ""

    def __str__(self) -> str:
        return (
            f"{self.chain_id}:cl({self.client_id}):co({self.connection_id})"
            f":ch({self.channel_id}):pt({self.port_id})"
        )

    def to_dict(self) -> dict[str, str]:
        """Serialise, leaving out empty fields."""
        return {key: getattr(self, attr) for attr, key in _FIELD_KEYS if getattr(self, attr)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PathEnd:
        return cls(**{attr: str(data.get(key) or "") for attr, key in _FIELD_KEYS})

    def get_order(self) -> Order:
        return order_from_string(self.order.upper())

    def vclient(self) -> None:
        validate_client_identifier(self.client_id)

    def vconn(self) -> None:
        validate_connection_identifier(self.connection_id)

    def vchan(self) -> None:
        validate_channel_identifier(self.channel_id)

    def vport(self) -> None:
        validate_port_identifier(self.port_id)

    def vversion(self) -> None:
        """Versions are not validated."""

    def validate(self) -> None:
        """Raise RelayerError on invalid identifiers or order."""
        self.vclient()
        self.vconn()
        self.vchan()
        self.vport()
        if self.order.upper() not in ("ORDERED", "UNORDERED"):
            raise RelayerError(
                f"channel must be either 'ORDERED' or 'UNORDERED' is '{self.order}'"
            )

    def update_client(self, dst_header: Any, signer: Any) -> Msg:
        """Build a message updating this end's client with a header from dst."""
        dst_header.validate_basic()
        return MsgUpdateClient(self.client_id, dst_header, str(signer))

    def update_clients(self, dst_headers: list[Any], signer: Any) -> list[Msg]:
        return [self.update_client(header, signer) for header in dst_headers]

    def conn_init(self, dst: PathEnd, signer: Any) -> Msg:
        return MsgConnectionOpenInit(
            client_id=self.client_id,
            counterparty_client_id=dst.client_id,
            counterparty_prefix=DEFAULT_CHAIN_PREFIX,
            version=None,
            delay_period=DEFAULT_DELAY_PERIOD,
            signer=str(signer),
        )

    def conn_try(
        self,
        dst: PathEnd,
        dst_client_state: QueryClientStateResponse,
        dst_conn_state: QueryConnectionResponse,
        dst_cons_state: QueryConsensusStateResponse,
        signer: Any,
    ) -> Msg:
        client_state = _unpack_client_state(dst_client_state)
        msg = MsgConnectionOpenTry(
            client_id=self.client_id,
            counterparty_connection_id=dst.connection_id,
            counterparty_client_id=dst.client_id,
            client_state=client_state,
            counterparty_prefix=DEFAULT_CHAIN_PREFIX,
            counterparty_versions=tuple(get_compatible_versions()),
            delay_period=DEFAULT_DELAY_PERIOD,
            proof_init=dst_conn_state.proof,
            proof_client=dst_client_state.proof,
            proof_consensus=dst_cons_state.proof,
            proof_height=dst_conn_state.proof_height,
            consensus_height=client_state.latest_height,
            signer=str(signer),
        )
        _validate_conn_try(msg)
        return msg

    def conn_ack(
        self,
        dst: PathEnd,
        dst_client_state: QueryClientStateResponse,
        dst_conn_state: QueryConnectionResponse,
        dst_cons_state: QueryConsensusStateResponse,
        signer: Any,
    ) -> Msg:
        client_state = _unpack_client_state(dst_client_state)
        return MsgConnectionOpenAck(
            connection_id=self.connection_id,
            counterparty_connection_id=dst.connection_id,
            client_state=client_state,
            proof_try=dst_conn_state.proof,
            proof_client=dst_client_state.proof,
            proof_consensus=dst_cons_state.proof,
            proof_height=dst_cons_state.proof_height,
            consensus_height=client_state.latest_height,
            version=get_compatible_versions()[0],
            signer=str(signer),
        )

    def conn_confirm(self, dst_conn_state: QueryConnectionResponse, signer: Any) -> Msg:
        return MsgConnectionOpenConfirm(
            connection_id=self.connection_id,
            proof_ack=dst_conn_state.proof,
            proof_height=dst_conn_state.proof_height,
            signer=str(signer),
        )

    def chan_init(self, dst: PathEnd, signer: Any) -> Msg:
        return MsgChannelOpenInit(
            port_id=self.port_id,
            version=self.version,
            ordering=self.get_order(),
            connection_hops=(self.connection_id,),
            counterparty_port_id=dst.port_id,
            signer=str(signer),
        )

    def chan_try(self, dst: PathEnd, dst_chan_state: QueryChannelResponse, signer: Any) -> Msg:
        return MsgChannelOpenTry(
            port_id=self.port_id,
            version=self.version,
            ordering=dst_chan_state.channel.ordering,
            connection_hops=(self.connection_id,),
            counterparty_port_id=dst.port_id,
            counterparty_channel_id=dst.channel_id,
            counterparty_version=dst_chan_state.channel.version,
            proof_init=dst_chan_state.proof,
            proof_height=dst_chan_state.proof_height,
            signer=str(signer),
        )

    def chan_ack(self, dst: PathEnd, dst_chan_state: QueryChannelResponse, signer: Any) -> Msg:
        return MsgChannelOpenAck(
            port_id=self.port_id,
            channel_id=self.channel_id,
            counterparty_channel_id=dst.channel_id,
            counterparty_version=dst_chan_state.channel.version,
            proof_try=dst_chan_state.proof,
            proof_height=dst_chan_state.proof_height,
            signer=str(signer),
        )

    def chan_confirm(self, dst_chan_state: QueryChannelResponse, signer: Any) -> Msg:
        return MsgChannelOpenConfirm(
            port_id=self.port_id,
            channel_id=self.channel_id,
            proof_ack=dst_chan_state.proof,
            proof_height=dst_chan_state.proof_height,
            signer=str(signer),
        )

    def chan_close_init(self, signer: Any) -> Msg:
        return MsgChannelCloseInit(self.port_id, self.channel_id, str(signer))

    def chan_close_confirm(self, dst_chan_state: QueryChannelResponse, signer: Any) -> Msg:
        return MsgChannelCloseConfirm(
            port_id=self.port_id,
            channel_id=self.channel_id,
            proof_init=dst_chan_state.proof,
            proof_height=dst_chan_state.proof_height,
            signer=str(signer),
        )

    def msg_transfer(
        self,
        dst: PathEnd,
        amount: Coin,
        dst_addr: str,
        signer: Any,
        timeout_height: int,
        timeout_timestamp: int,
    ) -> Msg:
        revision = parse_chain_id(dst.chain_id)
        return MsgTransfer(
            source_port=self.port_id,
            source_channel=self.channel_id,
            token=amount,
            sender=str(signer),
            receiver=dst_addr,
            timeout_height=Height(revision, timeout_height),
            timeout_timestamp=timeout_timestamp,
        )

    def new_packet(
        self,
        dst: PathEnd,
        sequence: int,
        packet_data: bytes,
        timeout_height: int,
        timeout_stamp: int,
    ) -> Packet:
        revision = parse_chain_id(dst.chain_id)
        return Packet(
            sequence=sequence,
            source_port=self.port_id,
            source_channel=self.channel_id,
            destination_port=dst.port_id,
            destination_channel=dst.channel_id,
            data=packet_data,
            timeout_height=Height(revision, timeout_height),
            timeout_timestamp=timeout_stamp,
        )

    def xfer_packet(self, amount: Coin, sender: str, receiver: str) -> bytes:
        return FungibleTokenPacketData(
            amount.denom, str(amount.amount), sender, receiver
        ).get_bytes()