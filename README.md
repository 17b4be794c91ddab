# ckgen

`ckgen` holds the work-generator pieces of a mining pool: a `ServerGenerator`
that keeps a live bitcoind selected and answers requests for block work with
it, helpers for building and parsing stratum messages exchanged with an
upstream pool, and a JSON encoder whose output matches the compact wire
format the rest of the pool expects.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## What is in the package

| Module | Purpose |
| --- | --- |
| `ckgen.jsondump` | JSON encoding (`dumps`, `dump`, `dump_file`) controlled by `DumpFlags` together with `indent_flags` and `precision_flags`. Failures raise `JsonError`; `truncate_source` shortens a source description for an error record. |
| `ckgen.jsontree` | `describe` renders a JSON value as an indented tree of its types and contents; `main` is the interactive reader behind the `ckgen-jsontree` command. |
| `ckgen.stratum` | Building stratum requests and replies (`subscribe_request`, `authorize_request`, `passthrough_request`, `node_request`, `suggest_request`, `submit_request`, `version_response`, `pong_response`) and parsing what upstream sends (`message_result`, `find_notify`, `parse_subscribe_result`, `parse_notify`, `parse_diff`, `parse_reconnect`). Unusable input raises `StratumError`. |
| `ckgen.generator` | `ServerGenerator` for bitcoind failover and block work over a list of `ServerInstance`s, each using an object that provides the `Bitcoind` calls. `getbest` returns a `GetBest` outcome. |

## Encoding JSON

```python
from ckgen.jsondump import DumpFlags, dumps, indent_flags

print(dumps({"id": 0, "method": "mining.subscribe", "params": []}, indent_flags(4)))
print(dumps({"b": 1, "a": "x/y"}, DumpFlags.COMPACT | DumpFlags.SORT_KEYS | DumpFlags.ESCAPE_SLASH))
```

`indent_flags(n)` and `precision_flags(n)` give flag values that combine with
the members of `DumpFlags` using `|`. Reals are written with 17 significant
digits unless a precision is given. Without `DumpFlags.ENCODE_ANY` the
top-level value must be a list, tuple or dict, otherwise `JsonError` is
raised; circular references, integers outside the signed 64-bit range and
non-finite reals raise it too. `DumpFlags.EOL` makes `dumps` end its output
with a newline; `DumpFlags.EMBED` leaves out the outermost brackets.

## Inspecting JSON from the command line

```
ckgen-jsontree
```

Type one JSON array or object per line at the `Type some JSON >` prompt and
the tree of its values is printed back, for example:

```
Type some JSON > [true, null, 1, 0.0, "", {"name": "barney"}]
JSON Array of 6 elements:
  JSON True
  JSON Null
  JSON Integer: "1"
  JSON Real: 0.000000
  JSON String: ""
  JSON Object of 1 pair:
    JSON Key: "name"
    JSON String: "barney"
```

Lines that are not valid JSON are reported on standard error as
`json error on line N: reason`, and reading continues. End input with
Ctrl-D. The command takes no arguments.

## Stratum messages

```python
from ckgen.stratum import authorize_request, message_result, parse_subscribe_result, subscribe_request

request = subscribe_request(True)
password = "password"
auth = authorize_request("worker.example", password)

result, error = message_result('{"id":0,"result":[[["mining.notify","ab"]],"f000000f",4],"error":null}')
subscription = parse_subscribe_result(result)
print(subscription.enonce1, subscription.nonce2len, subscription.clients_per_proxy)
```

`parse_notify` turns `mining.notify` parameters into a `Notify`,
`parse_diff` reads the difficulty from `mining.set_difficulty` parameters,
and `parse_reconnect` works out a `ReconnectTarget` for `client.reconnect`,
raising `StratumError` when the new host is not in the same domain.

## Generating work from bitcoind

`ServerGenerator` takes `ServerInstance`s in priority order. Each one holds
an `rpc` object that you supply, with the methods described by the `Bitcoind`
protocol (`get_block_template`, `best_block_hash`, `block_count`,
`block_hash`, `validate_address`, `submit_block`), raising `OSError` when the
server cannot be reached.

```python
from ckgen.generator import GetBest, ServerGenerator, ServerInstance

password = "password"
server = ServerInstance("localhost:8332", "user", password, rpc=my_bitcoind)
generator = ServerGenerator([server], btcaddress="your-payout-address", retry_limit=3)

generator.live_server()
template = generator.getbase()
outcome, block_hash = generator.getbest()
reply = generator.handle("ping")          # "pong"
```

`handle` answers the text commands `getbase`, `getbest`, `getlast`,
`submitblock:<hash>:<data>`, `reconnect`, `loglevel=N` and `ping`, failing
over to the next live server when the current one stops answering.
`check_servers` makes one watchdog pass and reports whether a higher-priority
server has come up. Optional `to_connector` and `to_stratifier` callables
receive the `accept` and `block:`/`noblock:` messages.

## What the package does not do

- It has no bitcoind RPC client of its own: the `rpc` object given to each
  `ServerInstance` has to be provided by the caller.
- It does not open connections to upstream stratum pools or run a proxy:
  `ckgen.stratum` only builds and parses the messages, and there is no
  bookkeeping of proxies, subproxies, shares or notifies, and no command
  interface for managing proxies.
- It starts no background threads; a watchdog or request loop has to call
  `check_servers` and `handle` itself.