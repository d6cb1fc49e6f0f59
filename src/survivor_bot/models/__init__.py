"""Data models for survivor-bot.

Immutable pydantic models describing one on-chain game snapshot, the
string enums shared across the engine, and the static item and beast
catalog.

Example:
    >>> from survivor_bot.models import decode_game_state
    >>> state = decode_game_state(words)
    >>> state.adventurer.level
    1
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from survivor_bot.models.enums import (
    ARMOR_SLOTS,
    ActionKind,
    BeastType,
    GamePhase,
    ItemSlot,
    ItemType,
)

# =============================================================================
# Game State
# =============================================================================
from survivor_bot.models.game_state import (
    MAX_BAG_SIZE,
    MAX_STAT_VALUE,
    MIN_STATE_WORDS,
    Adventurer,
    Bag,
    Beast,
    BeastSpecials,
    Equipment,
    GameState,
    Item,
    Stats,
    decode_game_state,
)


__all__ = [
    # Enumerations
    "GamePhase",
    "ActionKind",
    "ItemType",
    "ItemSlot",
    "ARMOR_SLOTS",
    "BeastType",
    # Game State
    "MAX_BAG_SIZE",
    "MAX_STAT_VALUE",
    "MIN_STATE_WORDS",
    "Stats",
    "Item",
    "Equipment",
    "Bag",
    "Adventurer",
    "BeastSpecials",
    "Beast",
    "GameState",
    "decode_game_state",
]
