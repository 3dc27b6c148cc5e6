import pytest

from yrly.client import create_clients, update_clients
from yrly.ibc import RelayerError


class FakeMsg:
    def __init__(self, *args):
        self.args = args

    def to_bytes(self):
        return repr(self.args).encode()


class FakePathEnd:
    def __init__(self, client_id):
        self.client_id = client_id

    def update_clients(self, headers, signer):
        return [FakeMsg("update", self.client_id, header, signer) for header in headers]


class FakeChain:
    def __init__(self, chain_id, client_id, send_ok=True, update_headers=(), header_error=None):
        self._id = chain_id
        self._path = FakePathEnd(client_id)
        self._send_ok = send_ok
        self._update_headers = list(update_headers)
        self._header_error = header_error
        self.sent = []

    def chain_id(self):
        return self._id

    def path(self):
        return self._path

    def get_address(self):
        return f"addr-{self._id}"

    def get_latest_finalized_header(self):
        if self._header_error is not None:
            raise self._header_error
        return f"header-{self._id}"

    def create_msg_create_client(self, client_id, dst_header, signer):
        return FakeMsg("create", client_id, dst_header, signer)

    def setup_headers_for_update(self, dst, latest_header):
        return list(self._update_headers)

    def send(self, msgs):
        self.sent.append(list(msgs))
        return self._send_ok


def test_create_clients_sends_one_create_message_to_each_chain():
    src = FakeChain("ibc0", "clientsrc")
    dst = FakeChain("ibc1", "clientdst")
    create_clients(src, dst)
    assert [m.args for batch in src.sent for m in batch] == [
        ("create", "clientsrc", "header-ibc1", "addr-ibc0")
    ]
    assert [m.args for batch in dst.sent for m in batch] == [
        ("create", "clientdst", "header-ibc0", "addr-ibc1")
    ]


def test_create_clients_propagates_header_errors():
    src = FakeChain("ibc0", "clientsrc", header_error=RuntimeError("down"))
    dst = FakeChain("ibc1", "clientdst")
    with pytest.raises(RuntimeError, match="down"):
        create_clients(src, dst)
    assert dst.sent == []


def test_update_clients_sends_headers_of_the_counterparty():
    src = FakeChain("ibc0", "clientsrc", update_headers=["s1", "s2"])
    dst = FakeChain("ibc1", "clientdst", update_headers=["d1"])
    update_clients(src, dst)
    assert [m.args for batch in src.sent for m in batch] == [
        ("update", "clientsrc", "d1", "addr-ibc0")
    ]
    assert [m.args for batch in dst.sent for m in batch] == [
        ("update", "clientdst", "s1", "addr-ibc1"),
        ("update", "clientdst", "s2", "addr-ibc1"),
    ]


def test_update_clients_sends_nothing_without_headers():
    src = FakeChain("ibc0", "clientsrc")
    dst = FakeChain("ibc1", "clientdst")
    update_clients(src, dst)
    assert src.sent == [] and dst.sent == []


def test_update_clients_rejects_the_same_chain():
    src = FakeChain("ibc0", "clientsrc")
    dst = FakeChain("ibc0", "clientdst")
    with pytest.raises(RelayerError):
        update_clients(src, dst)