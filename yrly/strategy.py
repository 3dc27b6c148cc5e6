"""Relay strategies: finding unrelayed packets and acknowledgements and relaying them."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

from .chain import QueryContext
from .headers import SyncHeaders
from .ibc import Msg, MsgAcknowledgement, MsgRecvPacket, RelayerError
from .relay_msgs import RelayMsgs, RelaySequences
from .retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY, retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

_QUERY_OFFSET = 0
_QUERY_LIMIT = 1000


class Strategy(Protocol):
    """A way of relaying packets and acknowledgements between two chains."""

    def get_type(self) -> str:
        ...

    def setup_relay(self, src: Any, dst: Any) -> None:
        ...

    def unrelayed_sequences(self, src: Any, dst: Any, sh: SyncHeaders) -> RelaySequences:
        ...

    def relay_packets(self, src: Any, dst: Any, sp: RelaySequences, sh: SyncHeaders) -> None:
        ...

    def unrelayed_acknowledgements(
        self, src: Any, dst: Any, sh: SyncHeaders
    ) -> RelaySequences:
        ...

    def relay_acknowledgements(
        self, src: Any, dst: Any, sp: RelaySequences, sh: SyncHeaders
    ) -> None:
        ...


@dataclass
class StrategyConfig:
    """Which relaying strategy to use for a path."""

    type: str = ""


def _in_parallel(*calls: Callable[[], T]) -> list[T]:
    """Run the calls at once and raise the first error once all have finished."""
    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(call) for call in calls]
    for future in futures:
        error = future.exception()
        if error is not None:
            raise error
    return [future.result() for future in futures]


def _query_sequences(
    chain: Any,
    ctx: QueryContext,
    query: Callable[[], Any],
    extract: Callable[[Any], list[Any]],
    name: str,
    description: str,
    on_failure: Callable[[], Any] | None = None,
) -> list[int]:
    def attempt() -> Any:
        response = query()
        if response is None:
            raise RelayerError(
                f"no error on {name} for {chain.chain_id()}, however response is nil"
            )
        return response

    def on_retry(n: int, err: Exception) -> None:
        logger.info(
            "- [%s]@{%d} - try(%d/%d) query packet %s: %s",
            chain.chain_id(),
            ctx.height.revision_height,
            n + 1,
            DEFAULT_ATTEMPTS,
            description,
            err,
        )
        if on_failure is not None:
            try:
                on_failure()
            except Exception:  # the next attempt reports any lasting failure
                logger.debug("failed to update headers", exc_info=True)

    response = retry(attempt, DEFAULT_ATTEMPTS, DEFAULT_DELAY, on_retry)
    return [state.sequence for state in extract(response)]


def collect_packets(
    ctx: QueryContext, chain: Any, seqs: list[int], signer: Any
) -> list[Msg]:
    """Build MsgRecvPacket messages for packets committed on ``chain``."""
    msgs: list[Msg] = []
    for seq in seqs:
        try:
            packet = chain.query_packet(ctx, seq)
        except Exception as exc:
            logger.error("failed to QueryPacket: %s %d %s", ctx.height, seq, exc)
            raise
        try:
            res = chain.query_packet_commitment_with_proof(ctx, seq)
        except Exception as exc:
            logger.error("failed to QueryPacketCommitment: %s %d %s", ctx.height, seq, exc)
            raise
        msgs.append(MsgRecvPacket(packet, res.proof, res.proof_height, str(signer)))
    return msgs


def collect_acks(
    sender_ctx: QueryContext,
    receiver_ctx: QueryContext,
    sender_chain: Any,
    receiver_chain: Any,
    seqs: list[int],
    signer: Any,
) -> list[Msg]:
    """Build MsgAcknowledgement messages for acknowledgements written on the receiver."""
    msgs: list[Msg] = []
    for seq in seqs:
        packet = sender_chain.query_packet(sender_ctx, seq)
        ack = receiver_chain.query_packet_acknowledgement(receiver_ctx, seq)
        res = receiver_chain.query_packet_acknowledgement_commitment_with_proof(
            receiver_ctx, seq
        )
        msgs.append(
            MsgAcknowledgement(packet, ack, res.proof, res.proof_height, str(signer))
        )
    return msgs


def _log_packets_relayed(src: Any, dst: Any, num: int) -> None:
    logger.info(
        "★ Relayed %d packets: [%s]port{%s}->[%s]port{%s}",
        num,
        dst.chain_id(),
        dst.path().port_id,
        src.chain_id(),
        src.path().port_id,
    )


@dataclass
class NaiveStrategy:
    """Relays every unrelayed packet and acknowledgement it finds."""

    ordered: bool = False
    max_tx_size: int = 0
    max_msg_length: int = 0

    def get_type(self) -> str:
        return "naive"

    def setup_relay(self, src: Any, dst: Any) -> None:
        src.setup_for_relay()
        dst.setup_for_relay()

    def unrelayed_sequences(self, src: Any, dst: Any, sh: SyncHeaders) -> RelaySequences:
        """Packets committed on each side that the other side has not received."""
        src_ctx = sh.query_context(src.chain_id())
        dst_ctx = sh.query_context(dst.chain_id())

        def commitments(chain: Any, ctx: QueryContext) -> Callable[[], list[int]]:
            return lambda: _query_sequences(
                chain,
                ctx,
                lambda: chain.query_packet_commitments(ctx, _QUERY_OFFSET, _QUERY_LIMIT),
                lambda res: res.commitments,
                "QueryPacketCommitments",
                "commitments",
            )

        src_seqs, dst_seqs = _in_parallel(commitments(src, src_ctx), commitments(dst, dst_ctx))

        unreceived_src, unreceived_dst = _in_parallel(
            lambda: dst.query_unreceived_packets(dst_ctx, src_seqs),
            lambda: src.query_unreceived_packets(src_ctx, dst_seqs),
        )
        rs = RelaySequences()
        if unreceived_src is not None:
            rs.src = list(unreceived_src)
        if unreceived_dst is not None:
            rs.dst = list(unreceived_dst)
        return rs

    def unrelayed_acknowledgements(
        self, src: Any, dst: Any, sh: SyncHeaders
    ) -> RelaySequences:
        """Acknowledgements written on each side not yet relayed to the other."""
        src_ctx = sh.query_context(src.chain_id())
        dst_ctx = sh.query_context(dst.chain_id())

        def acknowledgements(chain: Any, ctx: QueryContext) -> Callable[[], list[int]]:
            return lambda: _query_sequences(
                chain,
                ctx,
                lambda: chain.query_packet_acknowledgement_commitments(
                    ctx, _QUERY_OFFSET, _QUERY_LIMIT
                ),
                lambda res: res.acknowledgements,
                "QueryPacketUnrelayedAcknowledgements",
                "acknowledgements",
                on_failure=lambda: sh.updates(src, dst),
            )

        src_seqs, dst_seqs = _in_parallel(
            acknowledgements(src, src_ctx), acknowledgements(dst, dst_ctx)
        )

        unreceived_src, unreceived_dst = _in_parallel(
            lambda: dst.query_unreceived_acknowledgements(dst_ctx, src_seqs),
            lambda: src.query_unreceived_acknowledgements(src_ctx, dst_seqs),
        )
        rs = RelaySequences()
        if unreceived_src is not None:
            rs.src = list(unreceived_src)
        if unreceived_dst is not None:
            rs.dst = list(unreceived_dst)
        return rs

    def _new_msgs(
        self, src: Any, dst: Any, sp: RelaySequences, sh: SyncHeaders, src_address: Any,
        dst_address: Any,
    ) -> RelayMsgs:
        msgs = RelayMsgs(max_tx_size=self.max_tx_size, max_msg_length=self.max_msg_length)
        if sp.src:
            headers = sh.setup_headers_for_update(src, dst)
            if headers:
                msgs.dst = dst.path().update_clients(headers, dst_address)
        if sp.dst:
            headers = sh.setup_headers_for_update(dst, src)
            if headers:
                msgs.src = src.path().update_clients(headers, src_address)
        return msgs

    def _submit(
        self, src: Any, dst: Any, msgs: RelayMsgs, for_dst: list[Msg], for_src: list[Msg],
        kind: str,
    ) -> None:
        if not for_dst and not for_src:
            logger.info(
                "- No %s to relay between [%s]port{%s} and [%s]port{%s}",
                kind,
                src.chain_id(),
                src.path().port_id,
                dst.chain_id(),
                dst.path().port_id,
            )
            return
        msgs.dst.extend(for_dst)
        msgs.src.extend(for_src)
        msgs.send(src, dst)
        if msgs.success():
            if for_dst:
                _log_packets_relayed(dst, src, len(for_dst))
            if for_src:
                _log_packets_relayed(src, dst, len(for_src))

    def relay_packets(self, src: Any, dst: Any, sp: RelaySequences, sh: SyncHeaders) -> None:
        src_ctx = sh.query_context(src.chain_id())
        dst_ctx = sh.query_context(dst.chain_id())
        src_address = src.get_address()
        dst_address = dst.get_address()

        msgs = self._new_msgs(src, dst, sp, sh, src_address, dst_address)
        packets_for_dst = collect_packets(src_ctx, src, sp.src, dst_address)
        packets_for_src = collect_packets(dst_ctx, dst, sp.dst, src_address)
        self._submit(src, dst, msgs, packets_for_dst, packets_for_src, "packets")

    def relay_acknowledgements(
        self, src: Any, dst: Any, sp: RelaySequences, sh: SyncHeaders
    ) -> None:
        src_ctx = sh.query_context(src.chain_id())
        dst_ctx = sh.query_context(dst.chain_id())
        src_address = src.get_address()
        dst_address = dst.get_address()

        msgs = self._new_msgs(src, dst, sp, sh, src_address, dst_address)
        acks_for_dst = collect_acks(dst_ctx, src_ctx, dst, src, sp.src, dst_address)
        acks_for_src = collect_acks(src_ctx, dst_ctx, src, dst, sp.dst, src_address)
        self._submit(src, dst, msgs, acks_for_dst, acks_for_src, "acknowledgements")


def get_strategy(cfg: StrategyConfig) -> NaiveStrategy:
    """Return the strategy named by the configuration."""
    if cfg.type == "naive":
        return NaiveStrategy()
    raise RelayerError(f"unknown strategy type '{cfg.type}'")