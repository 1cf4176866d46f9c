# alpenglow

Building blocks for experimenting with the Alpenglow consensus protocol:
turning slices of a block into signed, erasure-coded shreds and back again,
rate-limited network interfaces for simulated nodes, a plain UDP interface,
and loaders for real-world ping and stake datasets.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Shredding

A `Slice` (in `alpenglow.shred`) holds up to 32 KiB of payload. A shredder
from `alpenglow.shredder` splits it into 64 shreds, each carrying a Merkle
proof and an Ed25519 signature over the Merkle root. Any 32 of them are
enough to rebuild the slice.

```python
import os

from alpenglow.shred import Slice, generate_signing_key
from alpenglow.shredder import RegularShredder

signing_key = generate_signing_key()
slice_ = Slice(slot=0, slice_index=0, is_last=True, merkle_root=None,
               data=os.urandom(32 * 1024))

shredder = RegularShredder()
shreds = shredder.shred(slice_, signing_key)
restored = shredder.deshred(shreds[16:48])
assert restored.data == slice_.data
assert shreds[0].verify(signing_key.public_key())
```

Four shredders are available, all subclasses of `Shredder`:

- `RegularShredder`: 32 data shreds plus 32 coding shreds.
- `CodingOnlyShredder`: 64 coding shreds only.
- `AontShredder`: the RAONT-RS all-or-nothing construction (AES-128 in CTR
  mode, with the key masked by a SHA-256 digest of the ciphertext).
- `PetsShredder`: the PETS all-or-nothing construction (the data shred that
  holds the key is withheld and replaced by an extra coding shred).

Each shredder's `MAX_DATA_SIZE` gives the largest payload it accepts; the
all-or-nothing shredders accept 16 bytes less than the others. The bytes
that get split (for the all-or-nothing shredders, payload plus 16 key bytes)
must be a non-empty multiple of 32, since they are cut into 32 equal parts.

Shredding an oversized or unsplittable slice raises `ShredError`.
Deshredding raises `DeshredError`, whose `reason` is a `DeshredReason`:
`NOT_ENOUGH_SHREDS`, `TOO_MANY_SHREDS`, `TOO_MUCH_DATA`, `BAD_ENCODING` or
`INVALID_MERKLE_TREE`. The last one is raised when the restored shreds do
not rebuild the Merkle root the shreds claim.

`Shred.verify(public_key, cached_merkle_root)` checks the shred's Merkle
proof and, unless the root equals the cached one, the signature on the
root. `alpenglow.shred` also exposes `MerkleTree` (`root`, `create_proof`,
`check_proof`), `ShredPayload`, `ShredKind` and `build_shreds`.

## Erasure coding

`alpenglow.erasure` is a systematic Reed-Solomon code over GF(2^8), with
at most 256 shards in total.

```python
from alpenglow.erasure import decode, encode

parts = [b"abcd", b"efgh", b"ijkl"]
coding = encode(3, 2, parts)                     # two coding shards
restored = decode(3, 2, [(0, parts[0])], list(enumerate(coding)))
assert restored == {1: b"efgh", 2: b"ijkl"}
```

`decode` returns only the original shards that were missing. Bad shard
counts, mismatched lengths, duplicate or out-of-range indices and too few
shards raise `ErasureError`.

## Simulated node interface

`SimulatedNetwork` (in `alpenglow.simulated_network`) is one node's
interface to a simulated network. It passes every outgoing packet to a core
object, which must provide an async `send(payload, from_node, to_node)`,
and reads incoming packets from an `asyncio.Queue`. Putting `None` on the
queue closes the channel: `receive` then raises `NetworkError`. Addresses are
node ids written in decimal; `parse_node_id` parses them.

An optional `TokenBucket` (in `alpenglow.token_bucket`) limits upload
bandwidth. A bucket refills at the given rate in bytes per second, starts
with 1500 tokens and holds at most 1,500,000.

```python
import asyncio

from alpenglow.simulated_network import SimulatedNetwork
from alpenglow.token_bucket import TokenBucket


class LoopbackCore:
    def __init__(self):
        self.queues = {}

    async def send(self, payload, from_node, to_node):
        await self.queues[to_node].put(payload)


async def main():
    core = LoopbackCore()
    core.queues = {0: asyncio.Queue(), 1: asyncio.Queue()}
    net0 = SimulatedNetwork(0, core, core.queues[0], TokenBucket(32_768))
    net1 = SimulatedNetwork(1, core, core.queues[1])
    await net0.send(b"ping", "1")
    print(await net1.receive())

asyncio.run(main())
```

## UDP

`UdpNetwork` (in `alpenglow.udp`) offers the same `send`/`receive`
interface over a UDP socket bound to all interfaces on the given port, or
on a port the OS picks when given `0`. Addresses are `ip:port` or
`[ipv6]:port` strings, parsed by `parse_address`. It works as a context
manager that closes the socket.

```python
import asyncio

from alpenglow.udp import UdpNetwork


async def main():
    with UdpNetwork() as a, UdpNetwork() as b:
        await b.send(b"ping", f"127.0.0.1:{a.port()}")
        print(await a.receive())

asyncio.run(main())
```

Datagrams are read into a 1500-byte buffer.

## Real-world data

`PingDataset.load(servers_path, pings_path)` in `alpenglow.ping_data` reads
a CSV of servers and a CSV of ping measurements, by default from
`data/servers-2020-07-19.csv` and `data/pings-2020-07-19-2020-07-20.csv`.
Measurements for the same pair are averaged. The dataset answers
`get_ping(source, destination)`, which gives `0.0` for unmeasured pairs
inside the table and `None` beyond it. It also answers
`find_closest_ping_server(lat, lon)`, by haversine distance, and
`coordinates_for_city(city)`.

`alpenglow.stake_distribution` loads validator stake data:

- `load_validator_data(path)` reads a JSON list of `ValidatorData`
  records (default `data/mainnet_validators_validatorsdotapp.json`).
- `load_sui_validator_data(path)` reads a CSV of `SuiValidatorData`
  (default `data/sui_validators.csv`) and converts it to `ValidatorData`.
- `hub_validator_data(hubs, dataset)` builds an artificial distribution
  of 30 validators per `(city, stake fraction)` hub, placed at the city's
  ping server; `five_hubs_validator_data(dataset)` and
  `stock_exchanges_validator_data(dataset)` use fixed hub lists.

The data files are not shipped with the package.

## What is not included

The package has no network core of its own: nothing here routes packets
between `SimulatedNetwork` instances or applies latency, jitter or packet
loss. A core must be supplied by the caller, as in the example above.
Payloads are plain bytes. There is no message format, no consensus logic,
and no command-line tool.