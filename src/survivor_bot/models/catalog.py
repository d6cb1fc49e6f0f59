"""Static item and beast catalog.

Read-only lookups from catalog ids to the attributes the calculator
needs: item category, slot and tier, and beast family and tier. The
tables mirror the contract's id layout and never change while the
process runs, so they are exposed as ``MappingProxyType`` views.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final, Mapping

from survivor_bot.models.enums import BeastType, ItemSlot, ItemType


NUM_ITEMS: Final = 101
NUM_BEASTS: Final = 75

STARTER_WEAPONS: Final = (12, 16, 46, 76)
"""Wand, Book, Short Sword and Club."""

NECKLACE_ARMOR_TYPE: Mapping[int, ItemType] = MappingProxyType(
    {1: ItemType.HIDE, 2: ItemType.METAL, 3: ItemType.CLOTH}
)
"""Armor material each necklace (Pendant, Necklace, Amulet) reinforces."""


def _build_tier_table() -> dict[int, int]:
    tiers: dict[int, int] = {1: 1, 2: 1, 3: 1, 4: 2, 5: 3, 6: 1, 7: 1, 8: 1}
    # Magic / cloth block (9-41): wands and books come in runs of four
    for item_id in (9, 13, 17, 22, 27, 32, 37):
        tiers[item_id] = 1
    for item_id in (10, 14, 18, 23, 28, 33, 38):
        tiers[item_id] = 2
    for item_id in (11, 15, 19, 24, 29, 34, 39):
        tiers[item_id] = 3
    for item_id in (20, 25, 30, 35, 40):
        tiers[item_id] = 4
    # Blade / hide (42-71) and bludgeon / metal (72-101) are regular runs of five
    for start in range(42, NUM_ITEMS + 1, 5):
        for offset in range(5):
            tiers[start + offset] = offset + 1
    for item_id in range(9, 42):
        tiers.setdefault(item_id, 5)
    return tiers


ITEM_TIERS: Mapping[int, int] = MappingProxyType(_build_tier_table())

_SLOT_RANGES: tuple[tuple[ItemSlot, tuple[range, ...]], ...] = (
    (ItemSlot.NECK, (range(1, 4),)),
    (ItemSlot.RING, (range(4, 9),)),
    (ItemSlot.WEAPON, (range(9, 17), range(42, 47), range(72, 77))),
    (ItemSlot.CHEST, (range(17, 22), range(47, 52), range(77, 82))),
    (ItemSlot.HEAD, (range(22, 27), range(52, 57), range(82, 87))),
    (ItemSlot.WAIST, (range(27, 32), range(57, 62), range(87, 92))),
    (ItemSlot.FOOT, (range(32, 37), range(62, 67), range(92, 97))),
    (ItemSlot.HAND, (range(37, 42), range(67, 72), range(97, 102))),
)


def item_slot(item_id: int) -> ItemSlot:
    """Equipment slot an item id belongs to (``NONE`` for unknown ids)."""
    for slot, ranges in _SLOT_RANGES:
        if any(item_id in r for r in ranges):
            return slot
    return ItemSlot.NONE


def item_type(item_id: int) -> ItemType:
    """Elemental category of an item id.

    Ids 9-41 are magic weapons or cloth armor, 42-71 blades or hide and
    72-101 bludgeons or metal; 1-3 are necklaces and 4-8 rings.
    """
    if 1 <= item_id <= 3:
        return ItemType.NECKLACE
    if 4 <= item_id <= 8:
        return ItemType.RING
    is_weapon = item_slot(item_id) is ItemSlot.WEAPON
    if 9 <= item_id <= 41:
        return ItemType.MAGIC if is_weapon else ItemType.CLOTH
    if 42 <= item_id <= 71:
        return ItemType.BLADE if is_weapon else ItemType.HIDE
    if 72 <= item_id <= NUM_ITEMS:
        return ItemType.BLUDGEON if is_weapon else ItemType.METAL
    return ItemType.NONE


def item_tier(item_id: int) -> int:
    """Tier of an item id, 1 (strongest) to 5; 0 for the empty id."""
    return ITEM_TIERS.get(item_id, 0)


_BEAST_TYPES: tuple[tuple[range, BeastType], ...] = (
    (range(1, 26), BeastType.MAGICAL),
    (range(26, 51), BeastType.HUNTER),
    (range(51, 76), BeastType.BRUTE),
)

BEAST_ATTACK_TYPE: Mapping[BeastType, ItemType] = MappingProxyType(
    {
        BeastType.MAGICAL: ItemType.MAGIC,
        BeastType.HUNTER: ItemType.BLADE,
        BeastType.BRUTE: ItemType.BLUDGEON,
        BeastType.NONE: ItemType.NONE,
    }
)

BEAST_ARMOR_TYPE: Mapping[BeastType, ItemType] = MappingProxyType(
    {
        BeastType.MAGICAL: ItemType.CLOTH,
        BeastType.HUNTER: ItemType.HIDE,
        BeastType.BRUTE: ItemType.METAL,
        BeastType.NONE: ItemType.NONE,
    }
)


def beast_type(beast_id: int) -> BeastType:
    """Family of a beast id."""
    for ids, kind in _BEAST_TYPES:
        if beast_id in ids:
            return kind
    return BeastType.NONE


def beast_tier(beast_id: int) -> int:
    """Tier of a beast id; each family lists five beasts per tier, strongest first."""
    if not 1 <= beast_id <= NUM_BEASTS:
        return 0
    return (beast_id - 1) % 25 // 5 + 1


__all__ = [
    "NUM_ITEMS",
    "NUM_BEASTS",
    "STARTER_WEAPONS",
    "NECKLACE_ARMOR_TYPE",
    "ITEM_TIERS",
    "BEAST_ATTACK_TYPE",
    "BEAST_ARMOR_TYPE",
    "item_slot",
    "item_type",
    "item_tier",
    "beast_type",
    "beast_tier",
]
