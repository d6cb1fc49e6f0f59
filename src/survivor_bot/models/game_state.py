"""Game state models for survivor-bot.

Typed, immutable snapshot of everything the decision engine looks at:
the adventurer, the bag, the engaged beast and the market. A snapshot
is decoded from the fixed-layout word sequence returned by the game
contract's ``get_game_state`` view and is never mutated; every polling
cycle decodes a fresh one.

Models:
    Stats: The seven adventurer attributes.
    Item: A catalog id plus the xp it has accumulated.
    Equipment: The eight equipment slots.
    Bag: Up to fifteen carried items.
    Adventurer: Health, xp, gold, stats, equipment and the action nonce.
    Beast: The beast currently engaged (or the last one met).
    GameState: The aggregate consumed by the decision engine.
"""

from __future__ import annotations

from math import isqrt
from typing import Annotated, Final, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field

from survivor_bot.core.exceptions import DecodeError
from survivor_bot.models import catalog
from survivor_bot.models.enums import ARMOR_SLOTS, BeastType, ItemSlot, ItemType


MAX_STAT_VALUE: Final = 31
MAX_BAG_SIZE: Final = 15
MAX_HEALTH: Final = 1023
MAX_GOLD: Final = 511
MAX_GREATNESS: Final = 20

StatValue = Annotated[int, Field(ge=0, le=MAX_STAT_VALUE)]

_FROZEN = ConfigDict(frozen=True, extra="forbid")


# =============================================================================
# Items
# =============================================================================


class Stats(BaseModel):
    """Adventurer attributes, each in [0, 31].

    Also used as the payload of ``select_stat_upgrades``, where each field
    is the number of points added to that attribute.
    """

    model_config = _FROZEN

    strength: StatValue = 0
    dexterity: StatValue = 0
    vitality: StatValue = 0
    intelligence: StatValue = 0
    wisdom: StatValue = 0
    charisma: StatValue = 0
    luck: StatValue = 0

    @property
    def total(self) -> int:
        """Sum of all seven attributes."""
        return (
            self.strength
            + self.dexterity
            + self.vitality
            + self.intelligence
            + self.wisdom
            + self.charisma
            + self.luck
        )

    def as_tuple(self) -> tuple[int, int, int, int, int, int, int]:
        """Attributes in on-chain order."""
        return (
            self.strength,
            self.dexterity,
            self.vitality,
            self.intelligence,
            self.wisdom,
            self.charisma,
            self.luck,
        )


class Item(BaseModel):
    """An item: catalog id and accumulated xp. Id 0 is the empty sentinel."""

    model_config = _FROZEN

    id: int = Field(default=0, ge=0, description="Catalog id (0 = empty)")
    xp: int = Field(default=0, ge=0, description="Accumulated item xp")

    @classmethod
    def empty(cls) -> "Item":
        """The empty-slot sentinel."""
        return cls(id=0, xp=0)

    @property
    def is_empty(self) -> bool:
        """Whether this is the empty sentinel."""
        return self.id == 0

    @property
    def greatness(self) -> int:
        """Item power level: ``floor(sqrt(xp))`` clamped to [1, 20]."""
        return max(1, min(MAX_GREATNESS, isqrt(self.xp)))

    @property
    def tier(self) -> int:
        """Catalog tier, 1 (strongest) to 5; 0 when empty."""
        return catalog.item_tier(self.id)

    @property
    def item_type(self) -> ItemType:
        """Elemental category from the catalog."""
        return catalog.item_type(self.id)

    @property
    def slot(self) -> ItemSlot:
        """Equipment slot from the catalog."""
        return catalog.item_slot(self.id)


class Equipment(BaseModel):
    """The eight equipment slots."""

    model_config = _FROZEN

    weapon: Item = Field(default_factory=Item.empty)
    chest: Item = Field(default_factory=Item.empty)
    head: Item = Field(default_factory=Item.empty)
    waist: Item = Field(default_factory=Item.empty)
    foot: Item = Field(default_factory=Item.empty)
    hand: Item = Field(default_factory=Item.empty)
    neck: Item = Field(default_factory=Item.empty)
    ring: Item = Field(default_factory=Item.empty)

    def get(self, slot: ItemSlot) -> Item:
        """Item equipped in ``slot``."""
        return getattr(self, slot.value)

    def armor(self) -> tuple[Item, ...]:
        """Items in the five armor slots, in strike order."""
        return tuple(self.get(slot) for slot in ARMOR_SLOTS)

    def owned_ids(self) -> frozenset[int]:
        """Ids of all equipped (non-empty) items."""
        return frozenset(
            item.id for item in (self.get(slot) for slot in ItemSlot if slot is not ItemSlot.NONE)
            if not item.is_empty
        )


class Bag(BaseModel):
    """Carried items and the contract's mutation flag."""

    model_config = _FROZEN

    items: tuple[Item, ...] = Field(default=(), max_length=MAX_BAG_SIZE)
    mutated: bool = False

    @property
    def is_full(self) -> bool:
        """Whether no more items fit."""
        return len(self.items) >= MAX_BAG_SIZE


# =============================================================================
# Adventurer and Beast
# =============================================================================


class Adventurer(BaseModel):
    """On-chain adventurer record."""

    model_config = _FROZEN

    health: int = Field(default=0, ge=0, le=MAX_HEALTH)
    xp: int = Field(default=0, ge=0)
    gold: int = Field(default=0, ge=0, le=MAX_GOLD)
    beast_health: int = Field(default=0, ge=0, le=MAX_HEALTH)
    stat_upgrades_available: int = Field(default=0, ge=0)
    stats: Stats = Field(default_factory=Stats)
    equipment: Equipment = Field(default_factory=Equipment)
    item_specials_seed: int = Field(default=0, ge=0)
    action_count: int = Field(default=0, ge=0)

    @computed_field(description="Level derived from xp")
    @property
    def level(self) -> int:
        """Adventurer level, ``xp // 4 + 1``."""
        from survivor_bot.engine.calculator import level

        return level(self.xp)

    @property
    def max_health(self) -> int:
        """Health cap granted by vitality."""
        from survivor_bot.engine.calculator import max_health

        return max_health(self.stats.vitality)

    @property
    def is_dead(self) -> bool:
        """Whether health has reached zero."""
        return self.health <= 0

    @property
    def in_battle(self) -> bool:
        """Whether a beast is engaged."""
        return self.beast_health > 0


class BeastSpecials(BaseModel):
    """The three special trait slots of a beast."""

    model_config = _FROZEN

    special1: int = Field(default=0, ge=0)
    special2: int = Field(default=0, ge=0)
    special3: int = Field(default=0, ge=0)


class Beast(BaseModel):
    """A beast; family, tier and elemental types are derived from its id."""

    model_config = _FROZEN

    id: int = Field(default=0, ge=0)
    seed: int = Field(default=0, ge=0)
    health: int = Field(default=0, ge=0)
    level: int = Field(default=0, ge=0)
    specials: BeastSpecials = Field(default_factory=BeastSpecials)
    is_collectable: bool = False

    @property
    def beast_type(self) -> BeastType:
        """Beast family."""
        return catalog.beast_type(self.id)

    @property
    def tier(self) -> int:
        """Beast tier, 1 (strongest) to 5; 0 for an unknown id."""
        return catalog.beast_tier(self.id)

    @property
    def attack_type(self) -> ItemType:
        """Weapon category the beast strikes with."""
        return catalog.BEAST_ATTACK_TYPE[self.beast_type]

    @property
    def armor_type(self) -> ItemType:
        """Armor category the beast wears."""
        return catalog.BEAST_ARMOR_TYPE[self.beast_type]

    @property
    def name(self) -> str:
        """Display name. Proper names live in the client's lookup tables."""
        return f"Beast #{self.id}"


# =============================================================================
# Aggregate
# =============================================================================


class GameState(BaseModel):
    """Immutable snapshot: the sole input of the decision engine."""

    model_config = _FROZEN

    adventurer: Adventurer = Field(default_factory=Adventurer)
    bag: Bag = Field(default_factory=Bag)
    beast: Beast = Field(default_factory=Beast)
    market: tuple[int, ...] = Field(default=())

    def fingerprint(self) -> tuple[int, ...]:
        """Fields that change whenever a transaction lands."""
        a = self.adventurer
        return (a.health, a.xp, a.gold, a.beast_health, a.stat_upgrades_available, a.action_count)

    def owned_item_ids(self) -> frozenset[int]:
        """Ids equipped or carried."""
        return self.adventurer.equipment.owned_ids() | {item.id for item in self.bag.items}


# =============================================================================
# Decoding
# =============================================================================

_EQUIPMENT_OFFSET: Final = 12
_SPECIALS_SEED_INDEX: Final = 28
_ACTION_COUNT_INDEX: Final = 29
_BAG_OFFSET: Final = 30
_BAG_MUTATED_INDEX: Final = 60
_BEAST_OFFSET: Final = 61
_MARKET_LENGTH_INDEX: Final = 69
_MARKET_OFFSET: Final = 70

MIN_STATE_WORDS: Final = _MARKET_LENGTH_INDEX
"""Fixed part of the layout: adventurer, bag and beast words."""

_EQUIPMENT_SLOTS: Final = (
    ItemSlot.WEAPON,
    ItemSlot.CHEST,
    ItemSlot.HEAD,
    ItemSlot.WAIST,
    ItemSlot.FOOT,
    ItemSlot.HAND,
    ItemSlot.NECK,
    ItemSlot.RING,
)


def _parse_words(words: Sequence[str]) -> list[int]:
    values: list[int] = []
    for index, word in enumerate(words):
        try:
            values.append(int(str(word), 16))
        except ValueError as exc:
            raise DecodeError(
                f"Word {word!r} is not a hexadecimal integer",
                word_count=len(words),
                index=index,
            ) from exc
    return values


def decode_game_state(words: Sequence[str]) -> GameState:
    """Decode the ``get_game_state`` response into a GameState.

    Args:
        words: Hex-encoded field elements in contract order.

    Returns:
        A fresh, immutable snapshot.

    Raises:
        DecodeError: If the sequence is shorter than the fixed layout, a
            word is not numeric, or a value is out of range.
    """
    if len(words) < MIN_STATE_WORDS:
        raise DecodeError(
            f"State snapshot has {len(words)} words, expected at least {MIN_STATE_WORDS}",
            word_count=len(words),
        )

    r = _parse_words(words)

    try:
        equipment = Equipment(
            **{
                slot.value: Item(id=r[_EQUIPMENT_OFFSET + 2 * i], xp=r[_EQUIPMENT_OFFSET + 2 * i + 1])
                for i, slot in enumerate(_EQUIPMENT_SLOTS)
            }
        )
        adventurer = Adventurer(
            health=r[0],
            xp=r[1],
            gold=r[2],
            beast_health=r[3],
            stat_upgrades_available=r[4],
            stats=Stats(
                strength=r[5],
                dexterity=r[6],
                vitality=r[7],
                intelligence=r[8],
                wisdom=r[9],
                charisma=r[10],
                luck=r[11],
            ),
            equipment=equipment,
            item_specials_seed=r[_SPECIALS_SEED_INDEX],
            action_count=r[_ACTION_COUNT_INDEX],
        )

        bag_items = tuple(
            Item(id=r[_BAG_OFFSET + 2 * i], xp=r[_BAG_OFFSET + 2 * i + 1])
            for i in range(MAX_BAG_SIZE)
            if r[_BAG_OFFSET + 2 * i] > 0
        )
        bag = Bag(items=bag_items, mutated=r[_BAG_MUTATED_INDEX] == 1)

        b = _BEAST_OFFSET
        beast = Beast(
            id=r[b],
            seed=r[b + 1],
            health=r[b + 2],
            level=r[b + 3],
            specials=BeastSpecials(special1=r[b + 4], special2=r[b + 5], special3=r[b + 6]),
            is_collectable=r[b + 7] == 1,
        )
    except ValidationError as exc:
        raise DecodeError(
            f"State snapshot holds an out-of-range value: {exc.errors()[0]['msg']}",
            word_count=len(words),
        ) from exc

    market: tuple[int, ...] = ()
    if len(r) > _MARKET_LENGTH_INDEX:
        declared = r[_MARKET_LENGTH_INDEX]
        market = tuple(r[_MARKET_OFFSET:_MARKET_OFFSET + declared])

    return GameState(adventurer=adventurer, bag=bag, beast=beast, market=market)


__all__ = [
    "MAX_STAT_VALUE",
    "MAX_BAG_SIZE",
    "MAX_HEALTH",
    "MAX_GOLD",
    "MAX_GREATNESS",
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
