"""Executes sequencer blocks on the execution layer and finalizes them."""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional, Protocol, Sequence, Union

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class SequencerBlockSubset:
    """The part of a sequencer block needed to execute one rollup's transactions."""

    block_hash: bytes
    height: int
    time: datetime = _EPOCH
    rollup_transactions: list[bytes] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.block_hash = bytes(self.block_hash)


class _SequencerBlock(Protocol):
    block_hash: bytes
    height: int
    time: datetime
    rollup_data: Mapping[bytes, Sequence[bytes]]


@dataclass
class FromSequencer:
    """A block received from the sequencer's new-block stream or sync."""

    block: _SequencerBlock


@dataclass
class FromCelestia:
    """Blocks read from the data availability layer."""

    blocks: list[SequencerBlockSubset] = field(default_factory=list)


Command = Union[FromSequencer, FromCelestia]


class ExecutionClient(abc.ABC):
    """The execution service the executor drives."""

    @abc.abstractmethod
    async def call_do_block(
        self,
        prev_block_hash: bytes,
        transactions: list[bytes],
        timestamp: Optional[tuple[int, int]],
    ) -> bytes:
        """Execute ``transactions`` on top of ``prev_block_hash``; return the new block hash."""

    @abc.abstractmethod
    async def call_finalize_block(self, block_hash: bytes) -> None:
        """Mark the execution block ``block_hash`` as final."""

    @abc.abstractmethod
    async def call_init_state(self) -> bytes:
        """Return the hash of the current head of the execution chain."""


def _to_timestamp(value: datetime) -> tuple[int, int]:
    """Convert a point in time to protobuf ``(seconds, nanos)``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - _EPOCH
    seconds = delta.days * 86400 + delta.seconds
    return seconds, delta.microseconds * 1000


def _subset_from_block(block: _SequencerBlock, chain_id: bytes) -> SequencerBlockSubset:
    transactions = list(block.rollup_data.get(chain_id, []))
    return SequencerBlockSubset(
        block_hash=block.block_hash,
        height=block.height,
        time=block.time,
        rollup_transactions=transactions,
    )


class Executor:
    """Forwards sequencer blocks to the execution layer and finalizes them."""

    def __init__(
        self,
        client: ExecutionClient,
        chain_id: bytes,
        execution_state: bytes,
        disable_empty_block_execution: bool,
        commands: "asyncio.Queue[Optional[Command]]",
        shutdown: asyncio.Event,
    ) -> None:
        self.client = client
        self.chain_id = bytes(chain_id)
        self.execution_state = bytes(execution_state)
        self.disable_empty_block_execution = disable_empty_block_execution
        self.sequencer_hash_to_execution_hash: dict[bytes, bytes] = {}
        self._commands = commands
        self._shutdown = shutdown

    @classmethod
    async def create(
        cls,
        client: ExecutionClient,
        chain_id: bytes,
        disable_empty_block_execution: bool,
        commands: "asyncio.Queue[Optional[Command]]",
        shutdown: asyncio.Event,
    ) -> Executor:
        """Build an executor, reading the initial state from the execution service."""
        try:
            execution_state = await client.call_init_state()
        except Exception as err:
            raise RuntimeError("could not initialize execution rpc client state") from err
        return cls(
            client, chain_id, execution_state, disable_empty_block_execution, commands, shutdown
        )

    async def run_until_stopped(self) -> None:
        """Process commands until shut down or until the command queue yields ``None``."""
        while True:
            if self._shutdown.is_set():
                logger.info("received shutdown signal; shutting down")
                break
            get_task = asyncio.ensure_future(self._commands.get())
            stop_task = asyncio.ensure_future(self._shutdown.wait())
            try:
                done, _ = await asyncio.wait(
                    {get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                for task in (get_task, stop_task):
                    if not task.done():
                        task.cancel()
            if stop_task in done:
                logger.info("received shutdown signal; shutting down")
                break
            command = get_task.result()
            if command is None:
                logger.error("cmd channel closed unexpectedly; shutting down")
                break
            if isinstance(command, FromSequencer):
                height = command.block.height
                subset = _subset_from_block(command.block, self.chain_id)
                try:
                    await self.execute_block(subset)
                except Exception:
                    logger.exception(
                        "failed to execute block (sequencer block height %d)", height
                    )
            elif isinstance(command, FromCelestia):
                try:
                    await self.execute_and_finalize_blocks_from_celestia(command.blocks)
                except Exception:
                    logger.exception("failed to finalize block; stopping executor")
                    break
            else:
                logger.error("ignoring unknown command of type %s", type(command).__name__)

    async def execute_block(self, block: SequencerBlockSubset) -> Optional[bytes]:
        """Execute ``block`` and return the execution block hash.

        Returns the stored hash if the block was already executed, and ``None``
        if empty blocks are skipped and the block has no transactions.
        """
        if self.disable_empty_block_execution and not block.rollup_transactions:
            logger.debug(
                "no transactions in block at height %d, skipping execution", block.height
            )
            return None

        known = self.sequencer_hash_to_execution_hash.get(block.block_hash)
        if known is not None:
            logger.debug("block at height %d already executed", block.height)
            return known

        prev_block_hash = self.execution_state
        logger.info(
            "executing block at height %d with parent block %s",
            block.height,
            prev_block_hash.hex(),
        )
        try:
            timestamp = _to_timestamp(block.time)
        except (OverflowError, TypeError, ValueError) as err:
            raise ValueError("failed parsing str as protobuf timestamp") from err

        block_hash = bytes(
            await self.client.call_do_block(
                prev_block_hash, list(block.rollup_transactions), timestamp
            )
        )
        self.execution_state = block_hash
        logger.info(
            "executed sequencer block at height %d into execution block %s",
            block.height,
            block_hash.hex(),
        )
        self.sequencer_hash_to_execution_hash[block.block_hash] = block_hash
        return block_hash

    async def execute_and_finalize_blocks_from_celestia(
        self, blocks: Sequence[SequencerBlockSubset]
    ) -> None:
        """Finalize the first of ``blocks``, executing it first if that has not happened."""
        # Only the first block is processed.
        if not blocks:
            logger.info(
                "received a message from data availability without blocks; skipping execution"
            )
            return
        block = blocks[0]
        sequencer_block_hash = block.block_hash
        execution_block_hash = self.sequencer_hash_to_execution_hash.get(sequencer_block_hash)
        if execution_block_hash is None:
            try:
                execution_block_hash = await self.execute_block(block)
            except Exception as err:
                raise RuntimeError("failed to execute block") from err
            if execution_block_hash is None:
                logger.debug("execute_block returned None; skipping finalize_block")
                return
        await self.finalize_block(execution_block_hash, sequencer_block_hash)

    async def finalize_block(
        self, execution_block_hash: bytes, sequencer_block_hash: bytes
    ) -> None:
        """Finalize an execution block and forget its sequencer block mapping."""
        try:
            await self.client.call_finalize_block(execution_block_hash)
        except Exception as err:
            raise RuntimeError("failed to finalize block") from err
        self.sequencer_hash_to_execution_hash.pop(sequencer_block_hash, None)