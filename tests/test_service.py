import threading

import pytest

from yrly.headers import SyncHeaders
from yrly.ibc import RelayerError
from yrly.relay_msgs import RelaySequences
from yrly.retry import DEFAULT_ATTEMPTS
from yrly.service import RelayService, start_service


class FakeChain:
    def __init__(self, chain_id):
        self._id = chain_id
        self.header_calls = 0

    def chain_id(self):
        return self._id

    def get_latest_finalized_header(self):
        self.header_calls += 1
        return f"header-{self._id}-{self.header_calls}"


class RecordingStrategy:
    def __init__(self, stop=None, stop_after=None, fail_with=None):
        self.calls = []
        self.stop = stop
        self.stop_after = stop_after
        self.fail_with = fail_with
        self.rounds = 0

    def unrelayed_sequences(self, src, dst, sh):
        self.calls.append("unrelayed_sequences")
        if self.fail_with is not None:
            raise self.fail_with
        return RelaySequences(src=[1], dst=[])

    def relay_packets(self, src, dst, sp, sh):
        self.calls.append(("relay_packets", tuple(sp.src)))

    def unrelayed_acknowledgements(self, src, dst, sh):
        self.calls.append("unrelayed_acknowledgements")
        return RelaySequences(src=[], dst=[2])

    def relay_acknowledgements(self, src, dst, sp, sh):
        self.calls.append(("relay_acknowledgements", tuple(sp.dst)))
        self.rounds += 1
        if self.stop is not None and self.rounds >= self.stop_after:
            self.stop.set()


def _service(strategy, src=None, dst=None):
    src = src or FakeChain("ibc0")
    dst = dst or FakeChain("ibc1")
    sh = SyncHeaders(src, dst)
    return RelayService(strategy, src, dst, sh, 0.0, retry_delay=0.0), src, dst


def test_serve_updates_headers_then_relays_packets_and_acks():
    strategy = RecordingStrategy()
    service, src, dst = _service(strategy)
    before = src.header_calls
    service.serve()
    assert src.header_calls == before + 1
    assert service.sh.latest_finalized_header("ibc0") == f"header-ibc0-{src.header_calls}"
    assert strategy.calls == [
        "unrelayed_sequences",
        ("relay_packets", (1,)),
        "unrelayed_acknowledgements",
        ("relay_acknowledgements", (2,)),
    ]


def test_start_runs_rounds_until_stopped():
    stop = threading.Event()
    strategy = RecordingStrategy(stop=stop, stop_after=2)
    service, _, _ = _service(strategy)
    service.start(stop)
    assert strategy.rounds == 2


def test_start_returns_at_once_when_already_stopped():
    stop = threading.Event()
    stop.set()
    strategy = RecordingStrategy()
    service, _, _ = _service(strategy)
    service.start(stop)
    assert strategy.calls == []


def test_start_raises_after_all_attempts_fail():
    strategy = RecordingStrategy(fail_with=RuntimeError("query failed"))
    service, _, _ = _service(strategy)
    with pytest.raises(RuntimeError, match="query failed"):
        service.start(threading.Event())
    assert strategy.calls.count("unrelayed_sequences") == DEFAULT_ATTEMPTS


def test_start_service_rejects_the_same_chain():
    with pytest.raises(RelayerError):
        start_service(RecordingStrategy(), FakeChain("ibc0"), FakeChain("ibc0"), 0.0)


def test_start_service_relays_until_stopped():
    stop = threading.Event()
    strategy = RecordingStrategy(stop=stop, stop_after=1)
    start_service(strategy, FakeChain("ibc0"), FakeChain("ibc1"), 0.0, stop)
    assert strategy.rounds == 1