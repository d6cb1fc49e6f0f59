"""Tests for the static item and beast catalog."""

from __future__ import annotations

import pytest

from survivor_bot.models import catalog
from survivor_bot.models.enums import BeastType, ItemSlot, ItemType


class TestItems:
    """Tests for item lookups."""

    @pytest.mark.parametrize(
        ("item_id", "slot", "item_type", "tier"),
        [
            (1, ItemSlot.NECK, ItemType.NECKLACE, 1),
            (8, ItemSlot.RING, ItemType.RING, 1),
            (12, ItemSlot.WEAPON, ItemType.MAGIC, 5),
            (16, ItemSlot.WEAPON, ItemType.MAGIC, 5),
            (17, ItemSlot.CHEST, ItemType.CLOTH, 1),
            (42, ItemSlot.WEAPON, ItemType.BLADE, 1),
            (46, ItemSlot.WEAPON, ItemType.BLADE, 5),
            (52, ItemSlot.HEAD, ItemType.HIDE, 1),
            (76, ItemSlot.WEAPON, ItemType.BLUDGEON, 5),
            (101, ItemSlot.HAND, ItemType.METAL, 5),
        ],
    )
    def test_lookup(self, item_id: int, slot: ItemSlot, item_type: ItemType, tier: int) -> None:
        """Test slot, category and tier of known ids."""
        assert catalog.item_slot(item_id) is slot
        assert catalog.item_type(item_id) is item_type
        assert catalog.item_tier(item_id) == tier

    def test_every_item_has_a_tier(self) -> None:
        """Test the tier table covers the whole catalog."""
        assert all(1 <= catalog.item_tier(i) <= 5 for i in range(1, catalog.NUM_ITEMS + 1))

    def test_empty_and_unknown_ids(self) -> None:
        """Test id 0 and ids past the catalog have no slot or tier."""
        assert catalog.item_tier(0) == 0
        assert catalog.item_slot(0) is ItemSlot.NONE
        assert catalog.item_type(102) is ItemType.NONE

    def test_starter_weapons_are_weapons(self) -> None:
        """Test all starter weapons sit in the weapon slot."""
        assert all(catalog.item_slot(i) is ItemSlot.WEAPON for i in catalog.STARTER_WEAPONS)

    def test_tables_are_read_only(self) -> None:
        """Test the tier table cannot be mutated."""
        with pytest.raises(TypeError):
            catalog.ITEM_TIERS[1] = 5  # type: ignore[index]


class TestBeasts:
    """Tests for beast lookups."""

    @pytest.mark.parametrize(
        ("beast_id", "beast_type", "tier"),
        [
            (1, BeastType.MAGICAL, 1),
            (25, BeastType.MAGICAL, 5),
            (26, BeastType.HUNTER, 1),
            (30, BeastType.HUNTER, 1),
            (31, BeastType.HUNTER, 2),
            (75, BeastType.BRUTE, 5),
        ],
    )
    def test_lookup(self, beast_id: int, beast_type: BeastType, tier: int) -> None:
        """Test family and tier of known ids."""
        assert catalog.beast_type(beast_id) is beast_type
        assert catalog.beast_tier(beast_id) == tier

    def test_unknown_beast(self) -> None:
        """Test ids outside the catalog."""
        assert catalog.beast_type(0) is BeastType.NONE
        assert catalog.beast_tier(76) == 0

    def test_family_types(self) -> None:
        """Test each family's weapon and armor category."""
        assert catalog.BEAST_ATTACK_TYPE[BeastType.HUNTER] is ItemType.BLADE
        assert catalog.BEAST_ARMOR_TYPE[BeastType.HUNTER] is ItemType.HIDE
        assert catalog.BEAST_ARMOR_TYPE[BeastType.BRUTE] is ItemType.METAL
        assert catalog.BEAST_ATTACK_TYPE[BeastType.MAGICAL] is ItemType.MAGIC
