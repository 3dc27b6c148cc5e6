"""Relayer configuration: chains with their provers, paths and global settings."""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from .chain import ProvableChain
from .ibc import RelayerError
from .path import Path, Paths

_TYPE_KEY = "@type"


class TypeRegistry:
    """Maps type URLs to configuration classes, and classes back to their URLs."""

    def __init__(self) -> None:
        self._by_url: dict[str, type] = {}
        self._by_type: dict[type, str] = {}

    def register(self, type_url: str, cls: type) -> None:
        self._by_url[type_url] = cls
        self._by_type[cls] = type_url

    def _type_url(self, msg: Any) -> str:
        try:
            return self._by_type[type(msg)]
        except KeyError:
            raise RelayerError(f"type {type(msg).__name__} is not registered") from None

    def _resolve(self, type_url: str) -> type:
        try:
            return self._by_url[type_url]
        except KeyError:
            raise RelayerError(f"no concrete type registered for type URL {type_url}") from None


def _fields_of(msg: Any) -> dict[str, Any]:
    if hasattr(msg, "to_dict"):
        return dict(msg.to_dict())
    if dataclasses.is_dataclass(msg) and not isinstance(msg, type):
        return dataclasses.asdict(msg)
    raise RelayerError(f"cannot serialise {type(msg).__name__}")


def marshal_json_any(registry: TypeRegistry, msg: Any) -> bytes:
    """Encode ``msg`` as a JSON object tagged with its type URL."""
    body = {_TYPE_KEY: registry._type_url(msg)}
    body.update(_fields_of(msg))
    return json.dumps(body).encode("utf-8")


def unmarshal_json_any(registry: TypeRegistry, data: bytes | str | Mapping[str, Any]) -> Any:
    """Decode a JSON object tagged with a type URL into its registered class."""
    if isinstance(data, (bytes, bytearray, str)):
        try:
            obj = json.loads(data)
        except ValueError as exc:
            raise RelayerError(f"invalid JSON: {exc}") from exc
    else:
        obj = data
    if not isinstance(obj, Mapping):
        raise RelayerError("expected a JSON object")
    body = dict(obj)
    type_url = body.pop(_TYPE_KEY, None)
    if type_url is None:
        raise RelayerError(f"missing {_TYPE_KEY} in JSON object")
    cls = registry._resolve(type_url)
    try:
        if hasattr(cls, "from_dict"):
            return cls.from_dict(body)
        return cls(**body)
    except TypeError as exc:
        raise RelayerError(f"cannot decode {type_url}: {exc}") from exc


@dataclass
class ChainProverConfig:
    """A chain configuration and a prover configuration, kept as tagged JSON."""

    chain: Any = None
    prover: Any = None
    _chain_config: Any = field(default=None, repr=False, compare=False)
    _prover_config: Any = field(default=None, repr=False, compare=False)

    def init(self, registry: TypeRegistry) -> None:
        """Decode the chain and prover configurations."""
        chain = unmarshal_json_any(registry, self.chain)
        prover = unmarshal_json_any(registry, self.prover)
        self._chain_config = chain
        self._prover_config = prover

    def build(self) -> ProvableChain:
        """Build the chain and its prover from the decoded configurations."""
        if self._chain_config is None:
            raise RelayerError("chain is nil")
        if self._prover_config is None:
            raise RelayerError("client is nil")
        chain = self._chain_config.build()
        prover = self._prover_config.build(chain)
        return ProvableChain(chain, prover)


def new_chain_prover_config(registry: TypeRegistry, chain: Any, prover: Any) -> ChainProverConfig:
    """Return a configuration holding ``chain`` and ``prover`` in encoded form."""
    chain_json = json.loads(marshal_json_any(registry, chain))
    prover_json = json.loads(marshal_json_any(registry, prover))
    return ChainProverConfig(
        chain=chain_json, prover=prover_json, _chain_config=chain, _prover_config=prover
    )


class Chains(list):
    """Built chains, looked up by chain ID."""

    def get_chain(self, chain_id: str) -> ProvableChain:
        for chain in self:
            if chain.chain_id() == chain_id:
                return chain
        raise RelayerError(f"chain with ID {chain_id} is not configured")

    def gets(self, *args: str) -> dict[str, ProvableChain]:
        """Map each given chain ID to its chain."""
        return {chain_id: self.get_chain(chain_id) for chain_id in args}


@dataclass
class GlobalConfig:
    """Settings shared by all chains."""

    timeout: str = "10s"
    light_cache_size: int = 20


@dataclass
class Config:
    """The whole relayer configuration with its built chains."""

    global_: GlobalConfig = field(default_factory=GlobalConfig)
    chains: list[ChainProverConfig] = field(default_factory=list)
    paths: Paths = field(default_factory=Paths)
    _provable: Chains = field(default_factory=Chains, repr=False, compare=False)

    def get_chain(self, chain_id: str) -> ProvableChain:
        return self._provable.get_chain(chain_id)

    def get_chains(self, *args: str) -> dict[str, ProvableChain]:
        return self._provable.gets(*args)

    def add_chain(self, config: ChainProverConfig) -> None:
        """Build the chain and add it; its chain ID must be new."""
        chain = config.build()
        chain_id = chain.chain_id()
        if any(existing.chain_id() == chain_id for existing in self._provable):
            raise RelayerError(f"chain with ID {chain_id} already exists in config")
        self.chains.append(config)
        self._provable.append(chain)

    def add_path(self, name: str, path: Path) -> None:
        self.paths.add(name, path)

    def delete_chain(self, chain_id: str) -> Config:
        """Remove every chain with the given ID."""
        kept = [
            (chain, config)
            for chain, config in zip(self._provable, self.chains)
            if chain.chain_id() != chain_id
        ]
        self._provable = Chains(chain for chain, _ in kept)
        self.chains = [config for _, config in kept]
        return self

    def chains_from_path(self, path: str) -> tuple[dict[str, ProvableChain], str, str]:
        """Return the chains of a path, set up to relay over it, and their IDs."""
        pth = self.paths.get_path(path)
        src, dst = pth.src.chain_id, pth.dst.chain_id
        chains = self._provable.gets(src, dst)
        chains[src].set_relay_info(pth.src, chains[dst], pth.dst)
        chains[dst].set_relay_info(pth.dst, chains[src], pth.src)
        return chains, src, dst


def default_config() -> Config:
    return Config()


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _parse_duration(text: str) -> float:
    """Parse a duration such as ``10s`` or ``1h30m`` into seconds."""
    rest = text
    sign = 1.0
    if rest.startswith(("+", "-")):
        sign = -1.0 if rest[0] == "-" else 1.0
        rest = rest[1:]
    if rest == "0":
        return 0.0
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')
    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _DURATION_COMPONENT.match(rest, pos)
        if match is None:
            raise ValueError(f'time: invalid duration "{text}"')
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def init_chains(config: Config, home_path: str, debug: bool) -> None:
    """Initialise every built chain with the global timeout."""
    try:
        timeout = _parse_duration(config.global_.timeout)
    except ValueError as exc:
        raise RelayerError(f"did you remember to run 'rly config init' error:{exc}") from exc
    for chain in config._provable:
        try:
            chain.init(home_path, timeout, debug)
        except Exception as exc:
            raise RelayerError(
                f"did you remember to run 'rly config init' error:{exc}"
            ) from exc


def marshal_config(config: Config) -> bytes:
    """Encode the configuration as JSON."""
    body = {
        "global": {
            "timeout": config.global_.timeout,
            "light-cache-size": config.global_.light_cache_size,
        },
        "chains": [{"chain": c.chain, "prover": c.prover} for c in config.chains],
        "paths": {name: config.paths[name].to_dict() for name in sorted(config.paths)},
    }
    return json.dumps(body).encode("utf-8")


def unmarshal_config(registry: TypeRegistry, data: bytes | str) -> Config:
    """Decode a JSON configuration and build its chains."""
    try:
        body = json.loads(data)
    except ValueError as exc:
        raise RelayerError(f"invalid JSON: {exc}") from exc
    if not isinstance(body, dict):
        raise RelayerError("expected a JSON object")

    config = default_config()
    global_body = body.get("global") or {}
    if "timeout" in global_body:
        config.global_.timeout = str(global_body["timeout"])
    if "light-cache-size" in global_body:
        config.global_.light_cache_size = int(global_body["light-cache-size"])

    config.paths = Paths(
        (name, Path.from_dict(path_body or {}))
        for name, path_body in (body.get("paths") or {}).items()
    )

    for chain_body in body.get("chains") or []:
        chain_config = ChainProverConfig(
            chain=chain_body.get("chain"), prover=chain_body.get("prover")
        )
        chain_config.init(registry)
        config._provable.append(chain_config.build())
        config.chains.append(chain_config)
    return config