"""A service that relays packets and acknowledgements at a fixed interval."""

from __future__ import annotations

import logging
import threading
from typing import Any

from .headers import SyncHeaders
from .retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY, Unrecoverable, retry

logger = logging.getLogger(__name__)


class _Stopped(Exception):
    """Raised inside a relay round when the service was asked to stop."""


class RelayService:
    """Relays between two chains with a strategy until stopped."""

    def __init__(
        self,
        strategy: Any,
        src: Any,
        dst: Any,
        sh: SyncHeaders,
        interval: float,
        retry_delay: float = DEFAULT_DELAY,
    ) -> None:
        self.strategy = strategy
        self.src = src
        self.dst = dst
        self.sh = sh
        self.interval = interval
        self.retry_delay = retry_delay

    def start(self, stop: threading.Event | None = None) -> None:
        """Serve every ``interval`` seconds until ``stop`` is set.

        A round that keeps failing after all retries raises its last error.
        """
        if stop is None:
            stop = threading.Event()

        def attempt() -> None:
            if stop.is_set():
                raise Unrecoverable(_Stopped())
            self.serve()

        def on_retry(n: int, err: Exception) -> None:
            logger.info(
                "- [%s][%s]try(%d/%d) relay-service: %s",
                self.src.chain_id(),
                self.dst.chain_id(),
                n + 1,
                DEFAULT_ATTEMPTS,
                err,
            )

        while True:
            try:
                retry(attempt, DEFAULT_ATTEMPTS, self.retry_delay, on_retry)
            except _Stopped:
                return
            if stop.wait(self.interval):
                return

    def serve(self) -> None:
        """Run one relay round: packets first, then acknowledgements."""
        self.sh.updates(self.src, self.dst)

        pseqs = self.strategy.unrelayed_sequences(self.src, self.dst, self.sh)
        self.strategy.relay_packets(self.src, self.dst, pseqs, self.sh)

        aseqs = self.strategy.unrelayed_acknowledgements(self.src, self.dst, self.sh)
        self.strategy.relay_acknowledgements(self.src, self.dst, aseqs, self.sh)


def start_service(
    strategy: Any,
    src: Any,
    dst: Any,
    relay_interval: float,
    stop: threading.Event | None = None,
) -> None:
    """Start relaying between ``src`` and ``dst`` until ``stop`` is set."""
    sh = SyncHeaders(src, dst)
    RelayService(strategy, src, dst, sh, relay_interval).start(stop)