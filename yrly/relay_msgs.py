"""Messages collected during a relay round and their batched submission."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .ibc import Msg


@dataclass
class RelaySequences:
    """Unrelayed packet sequences on the source and destination chains."""

    src: list[int] = field(default_factory=list)
    dst: list[int] = field(default_factory=list)


@dataclass
class RelayMsgs:
    """Messages to send to the source and destination chains in one round.

    ``max_tx_size`` and ``max_msg_length`` are ignored when zero.
    """

    src: list[Msg] = field(default_factory=list)
    dst: list[Msg] = field(default_factory=list)
    max_tx_size: int = 0
    max_msg_length: int = 0
    last: bool = False
    succeeded: bool = False

    def ready(self) -> bool:
        """Return True if there are messages to relay."""
        return bool(self.src or self.dst)

    def success(self) -> bool:
        return self.succeeded

    def is_max_tx(self, msg_len: int, tx_size: int) -> bool:
        return (self.max_msg_length != 0 and msg_len > self.max_msg_length) or (
            self.max_tx_size != 0 and tx_size > self.max_tx_size
        )

    def send(self, src: Any, dst: Any) -> None:
        """Send the messages to both chains in batches within the limits."""
        self.succeeded = True
        self._send_batches(self.src, src)
        self._send_batches(self.dst, dst)

    def _send_batches(self, msgs: list[Msg], chain: Any) -> None:
        msg_len = 0
        tx_size = 0
        batch: list[Msg] = []
        for msg in msgs:
            size = len(msg.to_bytes())
            msg_len += 1
            tx_size += size
            if self.is_max_tx(msg_len, tx_size):
                self.succeeded = self.succeeded and chain.send(batch)
                msg_len, tx_size = 1, size
                batch = []
            batch.append(msg)
        if batch and not chain.send(batch):
            self.succeeded = False