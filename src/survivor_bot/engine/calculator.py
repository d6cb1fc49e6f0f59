"""Combat and economy calculator.

Integer mirrors of the game contract's arithmetic. Every function here is
pure and truncates the way the contract does; nothing rounds. Inputs
outside the contract's domain (negative stats, a tier outside 1..5) are
programming errors and trip an ``assert`` instead of being clamped, so a
drifting mirror fails loudly in tests.

Combat against a beast follows the contract:

    greatness x tier multiplier -> elemental triangle -> + strength
        -> (+ critical bonus) -> - beast armor -> floor at MIN_DAMAGE

and the beast strikes one of five armor slots at random, with the
armor's power (and a matching necklace) subtracted from its attack.

Example:
    >>> from survivor_bot.engine.calculator import level, flee_chance
    >>> level(8)
    3
    >>> flee_chance(dexterity=1, level=2)
    49
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Mapping

from survivor_bot.models.catalog import NECKLACE_ARMOR_TYPE
from survivor_bot.models.enums import ItemType


if TYPE_CHECKING:
    from survivor_bot.models.game_state import Adventurer, Beast, Item


# =============================================================================
# Constants
# =============================================================================

MIN_DAMAGE: Final = 4
BEAST_MIN_DAMAGE: Final = 2
BASE_DAMAGE_REDUCTION_PCT: Final = 75
MAX_HEALTH_CAP: Final = 1023
STARTING_HEALTH: Final = 100
HEALTH_PER_VITALITY: Final = 15
MAX_STAT_VALUE: Final = 31
TIER_PRICE: Final = 4
POTION_HEAL_AMOUNT: Final = 10
MINIMUM_XP_REWARD: Final = 4
XP_REWARD_DIVISOR: Final = 2
MAX_XP_DECAY: Final = 95
ITEM_XP_MULTIPLIER_BEASTS: Final = 2
ITEM_XP_MULTIPLIER_OBSTACLES: Final = 1
STRENGTH_BONUS_PCT: Final = 10
EMPTY_ARMOR_PENALTY_PCT: Final = 150
JEWELRY_CRIT_BONUS_PCT: Final = 3
NECKLACE_ARMOR_BONUS_PCT: Final = 3
TITANIUM_RING_ID: Final = 7

TIER_MULTIPLIER: Mapping[int, int] = MappingProxyType({1: 5, 2: 4, 3: 3, 4: 2, 5: 1})

# weapon type -> armor type it beats / armor type it is weak against
_STRONG_AGAINST: Mapping[ItemType, ItemType] = MappingProxyType(
    {
        ItemType.MAGIC: ItemType.METAL,
        ItemType.BLADE: ItemType.CLOTH,
        ItemType.BLUDGEON: ItemType.HIDE,
    }
)
_WEAK_AGAINST: Mapping[ItemType, ItemType] = MappingProxyType(
    {
        ItemType.MAGIC: ItemType.HIDE,
        ItemType.BLADE: ItemType.METAL,
        ItemType.BLUDGEON: ItemType.CLOTH,
    }
)


def _assert_tier(tier: int) -> None:
    assert 1 <= tier <= 5, f"tier out of range: {tier}"


# =============================================================================
# Progression
# =============================================================================


def level(xp: int) -> int:
    """Adventurer level for an xp total: ``xp // 4 + 1``."""
    assert xp >= 0, f"negative xp: {xp}"
    return xp // 4 + 1


def max_health(vitality: int) -> int:
    """Health cap for a vitality value, at most 1023."""
    assert 0 <= vitality <= MAX_STAT_VALUE, f"vitality out of range: {vitality}"
    return min(MAX_HEALTH_CAP, STARTING_HEALTH + vitality * HEALTH_PER_VITALITY)


def flee_chance(dexterity: int, level: int) -> int:
    """Percent chance that a flee succeeds.

    Certain once dexterity reaches the adventurer level; otherwise the
    contract compares a byte roll against ``255 * dex / level``.

    Args:
        dexterity: Adventurer dexterity.
        level: Adventurer level (at least 1).

    Returns:
        Integer percentage in [0, 100].
    """
    assert dexterity >= 0, f"negative dexterity: {dexterity}"
    assert level >= 1, f"level must be positive: {level}"
    if dexterity >= level:
        return 100
    return 255 * dexterity * 100 // (level * 256)


# =============================================================================
# Economy
# =============================================================================


def potion_cost(level: int, charisma: int) -> int:
    """Gold price of one health potion."""
    assert level >= 1, f"level must be positive: {level}"
    assert charisma >= 0, f"negative charisma: {charisma}"
    return max(1, level - charisma * 2)


def item_price(tier: int, charisma: int) -> int:
    """Gold price of a market item of the given tier."""
    _assert_tier(tier)
    assert charisma >= 0, f"negative charisma: {charisma}"
    return max(1, TIER_MULTIPLIER[tier] * TIER_PRICE - charisma)


def gold_reward(tier: int, level: int) -> int:
    """Gold dropped by a slain beast."""
    _assert_tier(tier)
    assert level >= 1, f"level must be positive: {level}"
    return max(1, level * TIER_MULTIPLIER[tier] // 2)


def xp_reward(tier: int, level: int, adventurer_level: int) -> int:
    """Adventurer xp earned from a beast or obstacle.

    The base reward decays by two percent per adventurer level, capped
    at ``MAX_XP_DECAY`` percent, and never drops below
    ``MINIMUM_XP_REWARD``.
    """
    _assert_tier(tier)
    assert level >= 1, f"level must be positive: {level}"
    assert adventurer_level >= 1, f"adventurer level must be positive: {adventurer_level}"
    base = TIER_MULTIPLIER[tier] * level // XP_REWARD_DIVISOR
    decay = min(2 * adventurer_level, MAX_XP_DECAY)
    return max(MINIMUM_XP_REWARD, base * (100 - decay) // 100)


def item_xp_reward(tier: int, level: int, adventurer_level: int, *, is_beast: bool) -> int:
    """Xp gained by each equipped item; beasts count double."""
    multiplier = ITEM_XP_MULTIPLIER_BEASTS if is_beast else ITEM_XP_MULTIPLIER_OBSTACLES
    return xp_reward(tier, level, adventurer_level) * multiplier


# =============================================================================
# Damage
# =============================================================================


def elemental_adjust(value: int, weapon_type: ItemType, armor_type: ItemType) -> int:
    """Apply the elemental triangle: +50% when strong, -50% when weak."""
    assert value >= 0, f"negative damage: {value}"
    if _STRONG_AGAINST.get(weapon_type) is armor_type:
        return value + value // 2
    if _WEAK_AGAINST.get(weapon_type) is armor_type:
        return value - value // 2
    return value


def damage(
    weapon_type: ItemType,
    armor_type: ItemType,
    tier: int,
    base_roll: int,
    minimum: int = MIN_DAMAGE,
) -> int:
    """Nominal damage of one strike before armor is subtracted.

    Used for rough estimates where no armor piece is known, such as
    obstacles. Combat against a known beast goes through
    ``attack_damage`` and ``beast_damage``.

    Args:
        weapon_type: Category of the attacking weapon.
        armor_type: Category of the armor being struck.
        tier: Attacker's tier, 1..5.
        base_roll: Base power before any multiplier.
        minimum: Damage floor (``MIN_DAMAGE`` or ``BEAST_MIN_DAMAGE``).

    Returns:
        Integer damage, at least ``minimum``.
    """
    _assert_tier(tier)
    assert base_roll >= 0, f"negative base roll: {base_roll}"
    adjusted = elemental_adjust(base_roll, weapon_type, armor_type)
    scaled = adjusted * TIER_MULTIPLIER[tier]
    mitigated = scaled * BASE_DAMAGE_REDUCTION_PCT // 100
    return max(minimum, mitigated)


def item_power(item: Item) -> int:
    """Comparable strength of an item: greatness times tier multiplier."""
    if item.is_empty or item.tier == 0:
        return 0
    return item.greatness * TIER_MULTIPLIER[item.tier]


def beast_power(beast: Beast) -> int:
    """Level times tier multiplier: both the strength of a beast's strike and its armor."""
    return beast.level * TIER_MULTIPLIER[beast.tier or 1]


def attack_damage(adventurer: Adventurer, beast: Beast, *, critical: bool = False) -> int:
    """Damage the adventurer deals per attack against ``beast``.

    The weapon's power goes through the elemental triangle, strength
    adds ten percent of that per point, and the beast's armor is
    subtracted. A critical hit adds the elemental damage once more,
    boosted by a Titanium Ring. Bare hands (or an unknown weapon id)
    deal ``MIN_DAMAGE``.

    Args:
        adventurer: The attacker.
        beast: The beast being struck.
        critical: Whether the strike is a critical hit.

    Returns:
        Integer damage, at least ``MIN_DAMAGE``.
    """
    weapon = adventurer.equipment.weapon
    if weapon.is_empty or weapon.tier == 0:
        return MIN_DAMAGE
    elemental = elemental_adjust(item_power(weapon), weapon.item_type, beast.armor_type)
    total = elemental + elemental * adventurer.stats.strength * STRENGTH_BONUS_PCT // 100
    if critical:
        bonus = elemental
        ring = adventurer.equipment.ring
        if ring.id == TITANIUM_RING_ID:
            bonus += bonus * JEWELRY_CRIT_BONUS_PCT * ring.greatness // 100
        total += bonus
    return max(MIN_DAMAGE, total - beast_power(beast))


def necklace_reduction(armor: Item, neck: Item | None) -> int:
    """Damage absorbed by a necklace matching the struck armor's material."""
    if neck is None or neck.is_empty or armor.is_empty:
        return 0
    if NECKLACE_ARMOR_TYPE.get(neck.id) is not armor.item_type:
        return 0
    return item_power(armor) * neck.greatness * NECKLACE_ARMOR_BONUS_PCT // 100


def beast_damage(
    beast: Beast,
    armor: Item,
    neck: Item | None = None,
    *,
    critical: bool = False,
) -> int:
    """Damage ``beast`` deals when it strikes one armor slot.

    The armor's power is subtracted from the elemental-adjusted strike and
    a matching necklace absorbs a share of it. An empty slot takes half
    as much again, with no elemental adjustment. A critical strike
    doubles the attack before armor.

    Args:
        beast: The attacking beast.
        armor: Armor worn in the struck slot (empty item for none).
        neck: Equipped necklace, if any.
        critical: Whether the strike is a critical hit.

    Returns:
        Integer damage, at least ``BEAST_MIN_DAMAGE``.
    """
    attack = beast_power(beast)
    if armor.is_empty:
        unarmored = attack * EMPTY_ARMOR_PENALTY_PCT // 100
        if critical:
            unarmored *= 2
        return max(BEAST_MIN_DAMAGE, unarmored)
    elemental = elemental_adjust(attack, beast.attack_type, armor.item_type)
    if critical:
        elemental *= 2
    return max(BEAST_MIN_DAMAGE, elemental - item_power(armor) - necklace_reduction(armor, neck))


def expected_damage_dealt(adventurer: Adventurer, beast: Beast) -> int:
    """Mean damage per attack, weighting critical hits by luck percent."""
    chance = min(adventurer.stats.luck, 100)
    normal = attack_damage(adventurer, beast)
    critical = attack_damage(adventurer, beast, critical=True)
    return (normal * (100 - chance) + critical * chance) // 100


def expected_damage_taken(adventurer: Adventurer, beast: Beast) -> int:
    """Mean damage per beast strike over the five armor slots, floored.

    The beast crits with a chance of the adventurer's level in percent.
    """
    chance = min(adventurer.level, 100)
    equipment = adventurer.equipment
    neck = equipment.neck
    armor = equipment.armor()
    total = 0
    for piece in armor:
        normal = beast_damage(beast, piece, neck)
        critical = beast_damage(beast, piece, neck, critical=True)
        total += normal * (100 - chance) + critical * chance
    return total // (len(armor) * 100)


def rounds_to_kill(health: int, damage_per_round: int) -> int:
    """Strikes needed to bring ``health`` to zero."""
    assert damage_per_round > 0, f"damage per round must be positive: {damage_per_round}"
    assert health >= 0, f"negative health: {health}"
    return -(-health // damage_per_round)


__all__ = [
    "MIN_DAMAGE",
    "BEAST_MIN_DAMAGE",
    "BASE_DAMAGE_REDUCTION_PCT",
    "MAX_HEALTH_CAP",
    "TIER_PRICE",
    "POTION_HEAL_AMOUNT",
    "MINIMUM_XP_REWARD",
    "XP_REWARD_DIVISOR",
    "MAX_XP_DECAY",
    "ITEM_XP_MULTIPLIER_BEASTS",
    "ITEM_XP_MULTIPLIER_OBSTACLES",
    "JEWELRY_CRIT_BONUS_PCT",
    "NECKLACE_ARMOR_BONUS_PCT",
    "TITANIUM_RING_ID",
    "TIER_MULTIPLIER",
    "level",
    "max_health",
    "flee_chance",
    "potion_cost",
    "item_price",
    "gold_reward",
    "xp_reward",
    "item_xp_reward",
    "elemental_adjust",
    "damage",
    "item_power",
    "beast_power",
    "attack_damage",
    "necklace_reduction",
    "beast_damage",
    "expected_damage_dealt",
    "expected_damage_taken",
    "rounds_to_kill",
]
