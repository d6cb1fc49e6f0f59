"""Interfaces of the chain collaborator.

The bot never talks to a node directly. Reading state, signing and
broadcasting transactions and checking VRF fulfilments are delegated to
an object satisfying ``ChainClient``; the execution loop depends only on
this protocol.

Implementations report transport or signing failures by raising
``SubmissionError`` (with ``retriable`` set accordingly). A transaction
that made it on-chain but reverted is reported through the receipt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


if TYPE_CHECKING:
    from survivor_bot.engine.calls import ContractCall


class TransactionReceipt(BaseModel):
    """Outcome of one submitted multicall.

    Attributes:
        transaction_hash: Hash of the included transaction.
        reverted: Whether execution reverted.
        revert_reason: Reason reported by the node when reverted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    transaction_hash: str = Field(description="Hex transaction hash")
    reverted: bool = False
    revert_reason: str = ""


@runtime_checkable
class ChainClient(Protocol):
    """What the execution loop needs from the chain."""

    async def read_game_state(self, game_id: int) -> Sequence[str]:
        """Raw ``get_game_state`` words for ``game_id``."""
        ...

    async def submit(self, calls: Sequence[ContractCall]) -> TransactionReceipt:
        """Sign and broadcast ``calls`` as one multicall and wait for inclusion."""
        ...

    async def is_randomness_fulfilled(self, salt: int) -> bool:
        """Whether the VRF provider has fulfilled the request with ``salt``."""
        ...

    async def latest_game_id(self, owner: str) -> int | None:
        """Most recent game token owned by ``owner``, if any."""
        ...


__all__ = [
    "TransactionReceipt",
    "ChainClient",
]
