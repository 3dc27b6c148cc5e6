"""Chain and prover interfaces, and the chain-with-prover pair the relayer drives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from .ibc import (
    Coin,
    Height,
    Msg,
    MsgCreateClient,
    Packet,
    QueryChannelResponse,
    QueryClientStateResponse,
    QueryConnectionResponse,
    QueryConsensusStateResponse,
    QueryDenomTracesResponse,
    QueryPacketAcknowledgementResponse,
    QueryPacketAcknowledgementsResponse,
    QueryPacketCommitmentResponse,
    QueryPacketCommitmentsResponse,
)
from .path_end import PathEnd


@dataclass(frozen=True)
class QueryContext:
    """The height of the target chain at which its state is queried."""

    height: Height


class MsgEventListener(Protocol):
    """Listener told about messages sent to a chain."""

    def on_sent_msg(self, msgs: list[Msg]) -> None:
        ...


class Chain(Protocol):
    """A chain that accepts transactions and answers state queries."""

    def chain_id(self) -> str:
        ...

    def latest_height(self) -> Height:
        """Latest height; it need not be finalized."""
        ...

    def get_address(self) -> Any:
        ...

    def path(self) -> PathEnd:
        ...

    def init(self, home_path: str, timeout: float, debug: bool) -> None:
        ...

    def set_relay_info(
        self, path: PathEnd, counterparty: ProvableChain, counterparty_path: PathEnd
    ) -> None:
        ...

    def setup_for_relay(self) -> None:
        ...

    def send_msgs(self, msgs: list[Msg]) -> bytes:
        ...

    def send(self, msgs: list[Msg]) -> bool:
        """Send and log the result; return whether it succeeded."""
        ...

    def register_msg_event_listener(self, listener: MsgEventListener) -> None:
        ...

    def query_client_consensus_state(
        self, ctx: QueryContext, dst_client_cons_height: Height
    ) -> QueryConsensusStateResponse:
        ...

    def query_client_state(self, ctx: QueryContext) -> QueryClientStateResponse:
        ...

    def query_connection(self, ctx: QueryContext) -> QueryConnectionResponse:
        ...

    def query_channel(self, ctx: QueryContext) -> QueryChannelResponse:
        ...

    def query_packet_commitment(
        self, ctx: QueryContext, seq: int
    ) -> QueryPacketCommitmentResponse:
        ...

    def query_packet_acknowledgement_commitment(
        self, ctx: QueryContext, seq: int
    ) -> QueryPacketAcknowledgementResponse:
        ...

    def query_packet_commitments(
        self, ctx: QueryContext, offset: int, limit: int
    ) -> QueryPacketCommitmentsResponse:
        ...

    def query_unreceived_packets(self, ctx: QueryContext, seqs: list[int]) -> list[int]:
        ...

    def query_packet_acknowledgement_commitments(
        self, ctx: QueryContext, offset: int, limit: int
    ) -> QueryPacketAcknowledgementsResponse:
        ...

    def query_unreceived_acknowledgements(
        self, ctx: QueryContext, seqs: list[int]
    ) -> list[int]:
        ...

    def query_packet(self, ctx: QueryContext, sequence: int) -> Packet:
        ...

    def query_packet_acknowledgement(self, ctx: QueryContext, sequence: int) -> bytes:
        ...

    def query_balance(self, ctx: QueryContext, address: Any) -> list[Coin]:
        ...

    def query_denom_traces(
        self, ctx: QueryContext, offset: int, limit: int
    ) -> QueryDenomTracesResponse:
        ...


class Prover(Protocol):
    """Produces commitment proofs and light-client headers for a chain."""

    def init(self, home_path: str, timeout: float, debug: bool) -> None:
        ...

    def set_relay_info(
        self, path: PathEnd, counterparty: ProvableChain, counterparty_path: PathEnd
    ) -> None:
        ...

    def setup_for_relay(self) -> None:
        ...

    def create_msg_create_client(
        self, client_id: str, dst_header: Any, signer: Any
    ) -> MsgCreateClient:
        ...

    def get_latest_finalized_header(self) -> Any:
        ...

    def setup_headers_for_update(self, dst_chain: Any, latest_finalized_header: Any) -> list[Any]:
        """Headers to apply on the counterparty: intermediates first, update header last."""
        ...

    def query_client_consensus_state_with_proof(
        self, ctx: QueryContext, dst_client_cons_height: Height
    ) -> QueryConsensusStateResponse:
        ...

    def query_client_state_with_proof(self, ctx: QueryContext) -> QueryClientStateResponse:
        ...

    def query_connection_with_proof(self, ctx: QueryContext) -> QueryConnectionResponse:
        ...

    def query_channel_with_proof(self, ctx: QueryContext) -> QueryChannelResponse:
        ...

    def query_packet_commitment_with_proof(
        self, ctx: QueryContext, seq: int
    ) -> QueryPacketCommitmentResponse:
        ...

    def query_packet_acknowledgement_commitment_with_proof(
        self, ctx: QueryContext, seq: int
    ) -> QueryPacketAcknowledgementResponse:
        ...


class ProvableChain:
    """A chain paired with its prover.

    Attributes not defined here are looked up on the chain first, then on the prover.
    """

    def __init__(self, chain: Any, prover: Any) -> None:
        self.chain = chain
        self.prover = prover

    def __getattr__(self, name: str) -> Any:
        if name in ("chain", "prover"):
            raise AttributeError(name)
        for target in (self.chain, self.prover):
            try:
                return getattr(target, name)
            except AttributeError:
                continue
        raise AttributeError(f"{type(self).__name__} has no attribute {name!r}")

    def init(self, home_path: str, timeout: float, debug: bool) -> None:
        self.chain.init(home_path, timeout, debug)
        self.prover.init(home_path, timeout, debug)

    def set_relay_info(
        self, path: PathEnd, counterparty: ProvableChain, counterparty_path: PathEnd
    ) -> None:
        self.chain.set_relay_info(path, counterparty, counterparty_path)
        self.prover.set_relay_info(path, counterparty, counterparty_path)

    def setup_for_relay(self) -> None:
        self.chain.setup_for_relay()
        self.prover.setup_for_relay()