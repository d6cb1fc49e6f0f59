"""Randomness request salts.

The VRF provider matches a fulfilment to its pending request by salt,
and the game contract recomputes that salt itself when the dependent
action executes. Both sides must therefore agree bit for bit: the
Starknet Poseidon hash over the STARK field, with the elements in the
exact order below. A salt that differs by a single bit leaves the action
waiting on a fulfilment that never matches.

    explore: poseidon(xp, game_id)
    battle:  poseidon(xp, game_id, action_count + 1)
"""

from __future__ import annotations

from typing import Final

from poseidon_py.poseidon_hash import poseidon_hash_many


STARK_PRIME: Final = 2**251 + 17 * 2**192 + 1
"""Order of the field every salt input and output lives in."""


def _assert_felt(name: str, value: int) -> None:
    assert 0 <= value < STARK_PRIME, f"{name} is not a field element: {value}"


def explore_salt(game_id: int, xp: int) -> int:
    """Salt of the randomness request consumed by ``explore``.

    Args:
        game_id: Adventurer token id.
        xp: Current adventurer xp.

    Returns:
        The Poseidon hash of ``[xp, game_id]``.
    """
    _assert_felt("game_id", game_id)
    _assert_felt("xp", xp)
    return poseidon_hash_many([xp, game_id])


def battle_salt(game_id: int, xp: int, action_count: int) -> int:
    """Salt of the randomness request consumed by ``attack`` / ``flee``.

    The contract salts with the action count the action *will* have, so
    the current on-chain ``action_count`` is passed and one is added here.

    Args:
        game_id: Adventurer token id.
        xp: Current adventurer xp.
        action_count: Current on-chain action count.

    Returns:
        The Poseidon hash of ``[xp, game_id, action_count + 1]``.
    """
    _assert_felt("game_id", game_id)
    _assert_felt("xp", xp)
    _assert_felt("action_count", action_count + 1)
    return poseidon_hash_many([xp, game_id, action_count + 1])


__all__ = [
    "STARK_PRIME",
    "explore_salt",
    "battle_salt",
]
