"""Relay paths between two chains, their collection and their status."""

from __future__ import annotations

import secrets
import string
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import yaml

from .chain import QueryContext
from .ibc import ChannelState, ConnectionState, Order, RelayerError
from .path_end import PathEnd
from .strategy import NaiveStrategy, StrategyConfig

T = TypeVar("T")
U = TypeVar("U")

CHECK = "✔"
X_ICON = "✘"

_ID_LENGTH = 10


def rand_lower_case_letter_string(length: int) -> str:
    """Return a random string of lower-case ASCII letters."""
    return "".join(secrets.choice(string.ascii_lowercase) for _ in range(length))


def _both(src_call: Callable[[], T], dst_call: Callable[[], U]) -> tuple[T, U]:
    """Run both calls at once; raise the first error once both have finished."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        src_future = pool.submit(src_call)
        dst_future = pool.submit(dst_call)
    for future in (src_future, dst_future):
        error = future.exception()
        if error is not None:
            raise error
    return src_future.result(), dst_future.result()


def _checkmark(status: bool) -> str:
    return CHECK if status else X_ICON


@dataclass
class PathStatus:
    """Which parts of a path are established."""

    chains: bool = False
    clients: bool = False
    connection: bool = False
    channel: bool = False


@dataclass
class PathWithStatus:
    """A path together with its status."""

    path: Path
    status: PathStatus = field(default_factory=PathStatus)

    def print_string(self, name: str) -> str:
        pth = self.path
        strategy_type = pth.strategy.type if pth.strategy is not None else ""
        st = self.status
        return (
            f'Path "{name}" strategy({strategy_type}):\n'
            f"  SRC({pth.src.chain_id})\n"
            f"    ClientID:     {pth.src.client_id}\n"
            f"    ConnectionID: {pth.src.connection_id}\n"
            f"    ChannelID:    {pth.src.channel_id}\n"
            f"    PortID:       {pth.src.port_id}\n"
            f"  DST({pth.dst.chain_id})\n"
            f"    ClientID:     {pth.dst.client_id}\n"
            f"    ConnectionID: {pth.dst.connection_id}\n"
            f"    ChannelID:    {pth.dst.channel_id}\n"
            f"    PortID:       {pth.dst.port_id}\n"
            f"  STATUS:\n"
            f"    Chains:       {_checkmark(st.chains)}\n"
            f"    Clients:      {_checkmark(st.clients)}\n"
            f"    Connection:   {_checkmark(st.connection)}\n"
            f"    Channel:      {_checkmark(st.channel)}"
        )


@dataclass
class Path:
    """A pair of path ends and the strategy used to relay over them."""

    src: PathEnd = field(default_factory=PathEnd)
    dst: PathEnd = field(default_factory=PathEnd)
    strategy: StrategyConfig | None = None

    def __str__(self) -> str:
        return f"[ ] {self.src} ->\n {self.dst}"

    def gen_src_client_id(self) -> None:
        self.src.client_id = rand_lower_case_letter_string(_ID_LENGTH)

    def gen_dst_client_id(self) -> None:
        self.dst.client_id = rand_lower_case_letter_string(_ID_LENGTH)

    def gen_src_conn_id(self) -> None:
        self.src.connection_id = rand_lower_case_letter_string(_ID_LENGTH)

    def gen_dst_conn_id(self) -> None:
        self.dst.connection_id = rand_lower_case_letter_string(_ID_LENGTH)

    def gen_src_chan_id(self) -> None:
        self.src.channel_id = rand_lower_case_letter_string(_ID_LENGTH)

    def gen_dst_chan_id(self) -> None:
        self.dst.channel_id = rand_lower_case_letter_string(_ID_LENGTH)

    def ordered(self) -> bool:
        return self.src.get_order() == Order.ORDERED

    def get_strategy(self) -> NaiveStrategy:
        """Return the strategy the path is configured with."""
        strategy_type = self.strategy.type if self.strategy is not None else ""
        if strategy_type == NaiveStrategy().get_type():
            return NaiveStrategy()
        raise RelayerError(f"invalid strategy: {strategy_type}")

    def validate(self) -> None:
        """Raise RelayerError if the path is not usable."""
        self.src.validate()
        if not self.src.version:
            raise RelayerError("source must specify a version")
        self.dst.validate()
        self.get_strategy()
        if self.src.order != self.dst.order:
            raise RelayerError(
                "both sides must have same order ('ORDERED' or 'UNORDERED'), "
                f"got src({self.src.order}) and dst({self.dst.order})"
            )

    def end(self, chain_id: str) -> PathEnd:
        """Return the end on the given chain, or an empty end."""
        if self.dst.chain_id == chain_id:
            return self.dst
        if self.src.chain_id == chain_id:
            return self.src
        return PathEnd()

    def to_dict(self) -> dict[str, Any]:
        return {
            "src": self.src.to_dict(),
            "dst": self.dst.to_dict(),
            "strategy": None if self.strategy is None else {"type": self.strategy.type},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Path:
        strategy_data = data.get("strategy")
        strategy = (
            None
            if strategy_data is None
            else StrategyConfig(type=str(strategy_data.get("type") or ""))
        )
        return cls(
            src=PathEnd.from_dict(data.get("src") or {}),
            dst=PathEnd.from_dict(data.get("dst") or {}),
            strategy=strategy,
        )

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    def query_path_status(self, src: Any, dst: Any) -> PathWithStatus:
        """Query both chains and report how far the path is established."""
        out = PathWithStatus(self)
        try:
            src_height, dst_height = _both(src.latest_height, dst.latest_height)
        except Exception:
            return out
        out.status.chains = True

        src_ctx = QueryContext(src_height)
        dst_ctx = QueryContext(dst_height)

        try:
            src_cs, dst_cs = _both(
                lambda: src.query_client_state(src_ctx),
                lambda: dst.query_client_state(dst_ctx),
            )
        except Exception:
            return out
        if src_cs is None or dst_cs is None:
            return out
        out.status.clients = True

        try:
            src_conn, dst_conn = _both(
                lambda: src.query_connection(src_ctx),
                lambda: dst.query_connection(dst_ctx),
            )
        except Exception:
            return out
        if (
            src_conn.connection.state != ConnectionState.OPEN
            or dst_conn.connection.state != ConnectionState.OPEN
        ):
            return out
        out.status.connection = True

        try:
            src_chan, dst_chan = _both(
                lambda: src.query_channel(src_ctx),
                lambda: dst.query_channel(dst_ctx),
            )
        except Exception:
            return out
        if (
            src_chan.channel.state != ChannelState.OPEN
            or dst_chan.channel.state != ChannelState.OPEN
        ):
            return out
        out.status.channel = True
        return out


def gen_path(
    src_chain_id: str,
    dst_chain_id: str,
    src_port_id: str,
    dst_port_id: str,
    order: str,
    version: str,
) -> Path:
    """Build a path with random client, connection and channel identifiers."""

    def end(chain_id: str, port_id: str) -> PathEnd:
        return PathEnd(
            chain_id=chain_id,
            client_id=rand_lower_case_letter_string(_ID_LENGTH),
            connection_id=rand_lower_case_letter_string(_ID_LENGTH),
            channel_id=rand_lower_case_letter_string(_ID_LENGTH),
            port_id=port_id,
            order=order,
            version=version,
        )

    return Path(
        src=end(src_chain_id, src_port_id),
        dst=end(dst_chain_id, dst_port_id),
        strategy=StrategyConfig(type="naive"),
    )


class Paths(dict):
    """Named relay paths."""

    def get_path(self, name: str) -> Path:
        try:
            return self[name]
        except KeyError:
            raise RelayerError(f"path with name {name} does not exist") from None

    def add(self, name: str, path: Path) -> None:
        """Add a valid path under a name not yet used."""
        path.validate()
        if name in self:
            raise RelayerError(f"path with name {name} already exists")
        self[name] = path

    def add_force(self, name: str, path: Path) -> None:
        """Add a valid path, replacing any path of the same name."""
        path.validate()
        if name in self:
            print(f"overwriting path {name} with new path...")
        self[name] = path

    def to_yaml(self) -> str:
        body = {name: self[name].to_dict() for name in sorted(self)}
        return yaml.safe_dump(body, sort_keys=False, allow_unicode=True)

    def paths_from_chains(self, src: str, dst: str) -> Paths:
        """Return the paths that join the two chains."""
        out = Paths(
            (name, path)
            for name, path in self.items()
            if src in (path.dst.chain_id, path.src.chain_id)
            and dst in (path.dst.chain_id, path.src.chain_id)
        )
        if not out:
            raise RelayerError(f"failed to find path in config between chains {src} and {dst}")
        return out