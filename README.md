# astria

Python tools for working with a shared sequencer network.

| module | what it holds |
| --- | --- |
| `astria.primitive` | `Uint128`, the 128-bit unsigned integer wire type split into `lo` and `hi` 64-bit halves |
| `astria.raw` | protobuf wire encoding and decoding: `encode_varint`, `decode_varint`, `RawSequenceAction`, `RawTransferAction`, `RawSudoAddressChangeAction`, `RawMintAction`, `RawValidatorUpdate`, `RawAction`, `RawUnsignedTransaction`, `RawSignedTransaction`, `RawBalanceResponse`, `RawNonceResponse`; malformed input raises `DecodeError` |
| `astria.address` | `Address` (exactly 20 bytes), `BalanceResponse`, `NonceResponse`, `IncorrectAddressLength` |
| `astria.transaction` | native actions (`SequenceAction`, `TransferAction`, `MintAction`, `SudoAddressChangeAction`, `ValidatorUpdate`), `action_to_raw` / `action_from_raw`, `UnsignedTransaction` and ed25519-signed `SignedTransaction` |
| `astria.sequencer_client` | `SequencerClient`, an async HTTP JSON-RPC client for balances, nonces and broadcasting signed transactions |
| `astria.config` | `Config`, `CommitLevel` and `get`, reading settings from environment variables |
| `astria.quorum` | `Validator`, `total_voting_power`, `get_proposer` and `does_commit_voting_power_have_quorum` |
| `astria.executor` | `Executor`, which feeds sequencer blocks to an `ExecutionClient` and finalizes them |
| `astria.sequencer_sync` | `run`, which fetches a range of heights and forwards the blocks in order |

Install with the `test` extra to run the test suite with pytest.

## Examples

### 128-bit amounts

```python
from astria.primitive import Uint128

amount = Uint128.from_int(10**18)
assert amount.to_int() == 10**18
```

### Addresses

```python
from astria.address import Address, IncorrectAddressLength

address = Address.from_slice(bytes(20))
assert address.to_bytes() == bytes(20)

try:
    Address.from_slice(bytes(19))
except IncorrectAddressLength as err:
    print(err)  # expected 20 bytes, got 19
```

`Address.from_verification_key` derives an address from a 32-byte ed25519
verification key: the first 20 bytes of its SHA-256 hash. `str(address)` is the
lower-case hex form.

### Signing a transaction

```python
from nacl.signing import SigningKey

from astria.address import Address
from astria.transaction import SignedTransaction, TransferAction, UnsignedTransaction

unsigned = UnsignedTransaction(
    nonce=1,
    actions=[TransferAction(to=Address(bytes(20)), amount=333_333)],
)
signed = unsigned.sign(SigningKey.generate())

# Decoding checks the signature and every action.
wire = signed.to_raw().encode()
```

`SignedTransaction.from_raw` raises `SignedTransactionError` when the signature
or key is malformed, the transaction is missing, the signature does not verify,
or an action cannot be converted.

### Querying the sequencer

```python
import asyncio

from astria.sequencer_client import SequencerClient


async def main() -> None:
    async with SequencerClient("http://localhost:26657") as client:
        nonce = await client.get_latest_nonce(bytes(20))
        balance = await client.get_balance(bytes(20), 10)
        print(nonce.nonce, balance.balance)


asyncio.run(main())
```

`submit_transaction_sync` returns a `TxSyncResponse`; `submit_transaction_commit`
returns a `TxCommitResponse`. Failures raise subclasses of
`SequencerClientError`: `TendermintRpcError` (with `is_transport()` telling
connection failures apart), `AbciQueryDeserializationError` and
`DeserializationError`.

### Quorum

```python
from astria.quorum import does_commit_voting_power_have_quorum

assert does_commit_voting_power_have_quorum(101, 150)
assert not does_commit_voting_power_have_quorum(100, 150)
```

`get_proposer` returns the validator with the highest proposer priority;
`total_voting_power` raises `VerificationError` if the sum exceeds 64 bits.

### Configuration

`get` reads variables prefixed with `ASTRIA_CONDUCTOR_`:

| variable | meaning |
| --- | --- |
| `ASTRIA_CONDUCTOR_CELESTIA_NODE_URL` | URL of the Celestia node |
| `ASTRIA_CONDUCTOR_CELESTIA_BEARER_TOKEN` | bearer token sent with each JSON-RPC call |
| `ASTRIA_CONDUCTOR_SEQUENCER_URL` | URL of the sequencer |
| `ASTRIA_CONDUCTOR_CHAIN_ID` | the rollup chain ID |
| `ASTRIA_CONDUCTOR_EXECUTION_RPC_URL` | address of the execution service |
| `ASTRIA_CONDUCTOR_LOG` | log filter directive (`RUST_LOG` is read too; the prefixed variable wins) |
| `ASTRIA_CONDUCTOR_DISABLE_EMPTY_BLOCK_EXECUTION` | `true` or `false`: skip blocks without rollup transactions |
| `ASTRIA_CONDUCTOR_INITIAL_SEQUENCER_BLOCK_HEIGHT` | sequencer height holding the rollup genesis (unsigned 32-bit) |
| `ASTRIA_CONDUCTOR_EXECUTION_COMMIT_LEVEL` | `SoftOnly`, `FirmOnly` or `SoftAndFirm` |

Missing, malformed or unknown variables under the prefix raise `ConfigError`.

```python
import os

from astria.config import get

config = get(os.environ)
print(config.to_json())
```

### Executing blocks

`Executor.create` takes an `ExecutionClient`, the rollup chain ID, the
empty-block setting, an `asyncio.Queue` of commands and an `asyncio.Event` for
shutdown. `run_until_stopped` processes `FromSequencer` commands (execute the
block) and `FromCelestia` commands (finalize the first block, executing it first
if needed) until the event is set or `None` is read from the queue.
`astria.sequencer_sync.run(start, end, fetch_block, executor_queue)` fetches
heights `start` to `end - 1` with up to about twenty requests in flight, retries
a height whose fetch raised `RequestError`, and puts each block on the queue in
height order; other failures raise `SyncError`.

## What this package does not do

- There is no command-line program and no long-running service that wires the
  configuration, sync, executor and data-availability reading together; the
  pieces are library code.
- `ExecutionClient` is an abstract class: no gRPC client for an execution
  service is included, so you supply your own implementation.
- `SequencerClient` speaks HTTP only; there is no websocket subscription to new
  blocks and no fetching of whole sequencer blocks.
- Nothing here reads blobs from a data availability layer, and `astria.quorum`
  does not verify commit signatures, block hashes or inclusion proofs.