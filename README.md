# yrly

`yrly` is the core of a relayer for the inter-blockchain communication
protocol. It connects two chains. It drives the light-client, connection
and channel handshakes between them, and it moves packets and
acknowledgements from each chain to the other.

The package has no chain-specific code. You supply chain and prover
objects that follow the `Chain` and `Prover` protocols in `yrly.chain`.
`yrly` decides which messages go to which chain and in what order, and
it sends them through your objects.

## Installation

```
pip install .
```

The only runtime dependency is PyYAML. To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `yrly.ibc` holds the data types: `Height`, `Order`, `ConnectionState`,
  `ChannelState`, `Coin`, `Packet`, the query responses, `DenomTrace`,
  `FungibleTokenPacketData` and the message classes (`MsgUpdateClient`,
  `MsgConnectionOpenInit`, `MsgChannelOpenTry`, `MsgTransfer`,
  `MsgRecvPacket`, `MsgAcknowledgement`, and others). It also defines
  `RelayerError`. `Msg.to_bytes()` gives a deterministic JSON encoding,
  and the relayer uses its length as the message size.
- `yrly.path_end` defines `PathEnd`, one side of a relay path. It holds
  the chain ID, client, connection, channel and port identifiers, the
  ordering and the version. `validate()` checks the identifiers and the
  ordering. The `conn_*`, `chan_*`, `update_client(s)`, `msg_transfer`,
  `new_packet` and `xfer_packet` methods build this side's messages.
- `yrly.path` defines `Path` (two ends and a `StrategyConfig`) and
  `Paths` (a `dict` of named paths with `get_path`, `add`, `add_force`,
  `paths_from_chains` and `to_yaml`). `gen_path(...)` builds a path with
  random ten-letter identifiers and the `naive` strategy.
  `Path.query_path_status(src, dst)` returns a `PathWithStatus`, and its
  `print_string(name)` renders the status.
- `yrly.chain` defines `QueryContext(height)` and the `Chain`, `Prover`
  and `MsgEventListener` protocols. It also defines `ProvableChain`,
  which pairs a chain with its prover. Attributes that `ProvableChain`
  does not define are looked up on the chain first, then on the prover.
- `yrly.headers.SyncHeaders` keeps the latest finalized header of both
  chains. It works out the headers needed to update each counterparty's
  client, and it raises `RelayerError` if the two chains have the same ID.
- `yrly.query` runs the same query on both chains concurrently.
- `yrly.relay_msgs.RelayMsgs` collects the messages for each side.
  `send(src, dst)` splits them into batches bounded by `max_tx_size` and
  `max_msg_length`; a limit of zero means no limit. It then calls each
  chain's `send`. `RelaySequences` lists unrelayed sequences per side.
- `yrly.strategy.NaiveStrategy` finds unrelayed packets and
  acknowledgements and relays all of them. `get_strategy(cfg)` accepts
  only the type `"naive"`.
- `yrly.client`: `create_clients(src, dst)` and `update_clients(src, dst)`.
- `yrly.connection`: `create_connection(src, dst, timeout)`.
  `yrly.channel`: `create_channel(src, dst, ordered, timeout)`.
  Both repeat a handshake step every `timeout` seconds until the
  handshake completes. After a failed send they wait 5 seconds. After
  the third failure in a row they raise `RelayerError`.
- `yrly.transfer.send_transfer_msg(src, dst, amount, dst_addr,
  to_height_offset=0, to_time_offset=0.0)` sends a token transfer. You
  may give a height offset or a time offset in seconds, but not both.
  With neither, the timeout is 1000 blocks past the latest height of `dst`.
- `yrly.service`: `RelayService` and `start_service(...)` run relay rounds
  at a fixed interval until a `threading.Event` is set. Each round relays
  packets first, then acknowledgements.
- `yrly.retry.retry(func, attempts, delay, on_retry)` retries with a
  doubling delay plus a small jitter. The defaults are 5 attempts and a
  0.4 s delay. An error wrapped in `Unrecoverable` is not retried.
- `yrly.events` extracts `Packet` and `PacketAcknowledgement` values from
  `send_packet` and `write_acknowledgement` events.
- `yrly.config` holds `Config`, `GlobalConfig`, `ChainProverConfig`,
  `Chains` and `TypeRegistry`. It also has `default_config()`,
  `init_chains(...)`, `marshal_config(...)` and `unmarshal_config(...)`.
- `yrly.balance.query_balance(chain, height, address, show_denoms)`
  returns an account's coins. Unless `show_denoms` is set, it drops zero
  amounts and replaces IBC denominations with their full trace paths.

## Typical flow

```python
import threading

from yrly.channel import create_channel
from yrly.client import create_clients
from yrly.config import TypeRegistry, init_chains, unmarshal_config
from yrly.connection import create_connection
from yrly.service import start_service
from yrly.strategy import get_strategy

registry = TypeRegistry()
registry.register("/my.chain.ChainConfig", MyChainConfig)     # your classes
registry.register("/my.prover.ProverConfig", MyProverConfig)

config = unmarshal_config(registry, config_bytes)
init_chains(config, home_path, debug=False)

chains, src_id, dst_id = config.chains_from_path("demo")
src, dst = chains[src_id], chains[dst_id]

create_clients(src, dst)
create_connection(src, dst, timeout=10.0)
create_channel(src, dst, ordered=False, timeout=10.0)

stop = threading.Event()
path = config.paths.get_path("demo")
start_service(get_strategy(path.strategy), src, dst, relay_interval=5.0, stop=stop)
```

`start_service` returns when `stop` is set. It raises the last error of
a relay round that fails on every retry.

## Configuration

`default_config()` returns a configuration with a global timeout of
`"10s"`, a light-cache size of 20, and no chains or paths. The timeout
is a duration string such as `"10s"` or `"1m30s"`. Chain and prover
settings are JSON objects with a `@type` field. The class registered
for that type in the `TypeRegistry` is built with `from_dict` if it has
one, otherwise with keyword arguments. Its `build()` method (for a
prover, `build(chain)`) must return the chain or prover object.
`marshal_config` and `unmarshal_config` convert a configuration to and
from JSON.

## Logging

Progress goes to the standard `logging` module under the `yrly.*`
loggers: handshake states, created clients, connections and channels,
and relayed packets. `Paths.add_force` prints a notice to standard
output when it replaces a path.

## What the package does not do

- It has no command-line program. Use it as a library.
- It has no chain or prover implementations, no key management, and no
  network access of its own. All of these come from the objects you pass in.
- It does not relay packet timeouts. It relays only packets that were
  received and acknowledgements that were written.
- It does not read or write configuration files. You pass it the JSON
  content.

## Errors

Failures raise `yrly.ibc.RelayerError`. Examples are invalid
identifiers or orderings, unknown chains, paths or strategies, a source
and destination that are the same chain, and handshake states that
cannot be advanced. A handshake that fails three times in a row also
raises it. Errors raised by your chain and prover objects pass through
unchanged, except in `init_chains`, which wraps them.