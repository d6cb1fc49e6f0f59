"""Enumeration types for survivor-bot.

String enums shared by the models, the calculator and the decision
engine. Values match the names the game contract and its client use.
"""

from __future__ import annotations

from enum import StrEnum


class GamePhase(StrEnum):
    """Logical phase of an adventurer, derived from a state snapshot."""

    IDLE = "idle"
    """No game yet, or a purchased game the loop is about to start."""

    STARTER_BEAST = "starter_beast"
    """First fight against the guaranteed level 1 beast."""

    IN_BATTLE = "in_battle"
    """Engaged with a beast."""

    STAT_UPGRADE = "stat_upgrade"
    """Stat points are waiting to be allocated."""

    SHOPPING = "shopping"
    """The market holds an upgrade the adventurer can afford."""

    EXPLORING = "exploring"
    """Nothing pending; explore the dungeon."""

    DEAD = "dead"
    """Terminal. No calls are ever produced from here."""


class ActionKind(StrEnum):
    """Every action the call builder can encode."""

    REQUEST_RANDOM_FOR_EXPLORE = "request_random_for_explore"
    REQUEST_RANDOM_FOR_BATTLE = "request_random_for_battle"
    APPROVE_TICKET = "approve_ticket"
    BUY_GAME = "buy_game"
    START_GAME = "start_game"
    EXPLORE = "explore"
    ATTACK = "attack"
    FLEE = "flee"
    SELECT_STAT_UPGRADES = "select_stat_upgrades"
    BUY_ITEMS = "buy_items"
    EQUIP = "equip"
    DROP = "drop"
    NONE = "none"

    @property
    def is_randomness_request(self) -> bool:
        """Whether this action is itself a VRF randomness request."""
        return self in (
            ActionKind.REQUEST_RANDOM_FOR_EXPLORE,
            ActionKind.REQUEST_RANDOM_FOR_BATTLE,
        )


class ItemType(StrEnum):
    """Weapon and armor categories of the elemental triangle, plus jewelry."""

    MAGIC = "Magic"
    BLADE = "Blade"
    BLUDGEON = "Bludgeon"
    CLOTH = "Cloth"
    HIDE = "Hide"
    METAL = "Metal"
    RING = "Ring"
    NECKLACE = "Necklace"
    NONE = "None"


class ItemSlot(StrEnum):
    """The eight equipment slots, in on-chain order."""

    WEAPON = "weapon"
    CHEST = "chest"
    HEAD = "head"
    WAIST = "waist"
    FOOT = "foot"
    HAND = "hand"
    NECK = "neck"
    RING = "ring"
    NONE = "none"


ARMOR_SLOTS: tuple[ItemSlot, ...] = (
    ItemSlot.CHEST,
    ItemSlot.HEAD,
    ItemSlot.WAIST,
    ItemSlot.FOOT,
    ItemSlot.HAND,
)
"""Slots a beast can strike, each with equal probability."""


class BeastType(StrEnum):
    """Beast families; each attacks with one weapon type and wears one armor type."""

    MAGICAL = "Magic"
    HUNTER = "Hunter"
    BRUTE = "Brute"
    NONE = "None"


__all__ = [
    "GamePhase",
    "ActionKind",
    "ItemType",
    "ItemSlot",
    "ARMOR_SLOTS",
    "BeastType",
]
