"""Market and gear planning.

Decides what the adventurer should do with gear: put on better gear
already sitting in the bag, make room when the bag is full, buy market
items that strictly beat what is equipped, top up health with potions,
and switch weapons mid-battle when the bag holds a better matchup.

Items are compared by ``item_power`` (greatness times tier multiplier).
A freshly bought item has no xp, so a market item is an upgrade only if
its tier alone beats the equipped item's grown power.
"""

from __future__ import annotations

from dataclasses import dataclass

from survivor_bot.core.logging import get_logger
from survivor_bot.engine.calculator import (
    POTION_HEAL_AMOUNT,
    TIER_MULTIPLIER,
    beast_power,
    elemental_adjust,
    item_power,
    item_price,
    potion_cost,
)
from survivor_bot.engine.calls import ItemPurchase
from survivor_bot.models.enums import ItemSlot, ItemType
from survivor_bot.models.game_state import MAX_BAG_SIZE, GameState, Item


logger = get_logger(__name__)

LOW_HEALTH_PCT = 50
MAX_DROPS = 3
HIGH_GREATNESS = 12
SWAP_HEALTH_RESERVE_PCT = 30
MIN_COUNTER_ATTACK = 10

_JEWELRY = frozenset({ItemSlot.NECK, ItemSlot.RING})


@dataclass(frozen=True)
class ShoppingPlan:
    """What to do in the market this cycle.

    Attributes:
        equip_ids: Bag items to equip; when present nothing is bought.
        drop_ids: Bag items to drop to make room; when present nothing is bought.
        purchases: Market items to buy.
        potions: Health potions to buy.
        cost: Total gold spent.
    """

    equip_ids: tuple[int, ...] = ()
    drop_ids: tuple[int, ...] = ()
    purchases: tuple[ItemPurchase, ...] = ()
    potions: int = 0
    cost: int = 0

    @property
    def is_empty(self) -> bool:
        """Whether the plan does nothing."""
        return (
            not self.equip_ids
            and not self.drop_ids
            and not self.purchases
            and self.potions == 0
        )


def plan_bag_upgrades(state: GameState) -> tuple[int, ...]:
    """Bag items that beat the item equipped in their slot, best per slot."""
    equipment = state.adventurer.equipment
    best: dict[ItemSlot, Item] = {}
    for item in state.bag.items:
        slot = item.slot
        if slot is ItemSlot.NONE:
            continue
        contender = best.get(slot, equipment.get(slot))
        if item_power(item) > item_power(contender):
            best[slot] = item
    return tuple(item.id for item in best.values())


# =============================================================================
# Bag cleanup
# =============================================================================


def bag_item_score(item: Item, state: GameState) -> int:
    """How much a carried item is worth keeping; the lowest are dropped first.

    Tier and greatness count most. Items whose weapon type or armor
    material is rare among the adventurer's gear score extra, since they
    cover matchups nothing else does.
    """
    tier_score = TIER_MULTIPLIER.get(item.tier, 0) * 10
    greatness_score = item.greatness * 3
    kind = item.item_type
    equipment = state.adventurer.equipment
    gear = (equipment.weapon, *equipment.armor(), *state.bag.items)
    # weapon types and armor materials never overlap, so matching the type is enough
    same = sum(
        1 for other in gear if not other.is_empty and other.id != item.id and other.item_type is kind
    )
    if item.slot is ItemSlot.WEAPON:
        versatility = max(0, 15 - 5 * same)
    elif kind in (ItemType.CLOTH, ItemType.HIDE, ItemType.METAL):
        versatility = max(0, 15 - 3 * same)
    else:
        versatility = 0
    return tier_score + greatness_score + versatility


def plan_item_drops(state: GameState) -> tuple[int, ...]:
    """Lowest-scored bag items to drop once the bag is full.

    Jewelry is never dropped. At most ``MAX_DROPS`` items go at once.

    Args:
        state: Current snapshot.

    Returns:
        Item ids to drop; empty while the bag has room.
    """
    if not state.bag.is_full:
        return ()
    candidates = [item for item in state.bag.items if item.slot not in _JEWELRY]
    candidates.sort(key=lambda item: (bag_item_score(item, state), item.id))
    drops = tuple(item.id for item in candidates[:MAX_DROPS])
    if drops:
        logger.debug("Bag full, dropping items", item_ids=drops)
    return drops


# =============================================================================
# Shopping
# =============================================================================


def _potions_for(state: GameState, gold: int) -> tuple[int, int]:
    adventurer = state.adventurer
    missing = adventurer.max_health - adventurer.health
    if missing <= 0:
        return 0, 0
    price = potion_cost(adventurer.level, adventurer.stats.charisma)
    wanted = -(-missing // POTION_HEAL_AMOUNT)
    count = min(wanted, gold // price)
    return count, count * price


def plan_shopping(state: GameState) -> ShoppingPlan:
    """Plan gear swaps and purchases for an adventurer out of battle.

    Bag upgrades come first since they cost nothing, then dropping the
    weakest items of a full bag. Otherwise every affordable market item
    that strictly beats the equipped item of its slot is bought and
    equipped, best first, one per slot, and the gold left over buys
    potions. With no item upgrade, potions are bought only when health
    is below half of maximum.

    Args:
        state: Current snapshot.

    Returns:
        The plan; ``is_empty`` when nothing is worth doing.
    """
    equip_ids = plan_bag_upgrades(state)
    if equip_ids:
        logger.debug("Bag upgrades found", item_ids=equip_ids)
        return ShoppingPlan(equip_ids=equip_ids)

    drop_ids = plan_item_drops(state)
    if drop_ids:
        return ShoppingPlan(drop_ids=drop_ids)

    if not state.market:
        return ShoppingPlan()

    adventurer = state.adventurer
    equipment = adventurer.equipment
    charisma = adventurer.stats.charisma
    owned = state.owned_item_ids()
    gold = adventurer.gold
    room = MAX_BAG_SIZE - len(state.bag.items)

    offered = (Item(id=item_id) for item_id in dict.fromkeys(state.market) if item_id not in owned)
    candidates = [item for item in offered if item.tier > 0 and item.slot is not ItemSlot.NONE]
    candidates.sort(key=lambda item: (-item_power(item), item.id))

    purchases: list[ItemPurchase] = []
    filled: set[ItemSlot] = set()
    spent = 0
    for item in candidates:
        if len(purchases) >= room or item.slot in filled:
            continue
        if item_power(item) <= item_power(equipment.get(item.slot)):
            continue
        price = item_price(item.tier, charisma)
        if price > gold - spent:
            continue
        purchases.append(ItemPurchase(item_id=item.id, equip=True))
        filled.add(item.slot)
        spent += price

    if not purchases and adventurer.health * 100 >= adventurer.max_health * LOW_HEALTH_PCT:
        return ShoppingPlan()

    potions, potion_spend = _potions_for(state, gold - spent)
    plan = ShoppingPlan(
        purchases=tuple(purchases),
        potions=potions,
        cost=spent + potion_spend,
    )
    if not plan.is_empty:
        logger.debug(
            "Market plan",
            items=[p.item_id for p in purchases],
            potions=potions,
            cost=plan.cost,
            gold=gold,
        )
    return plan


# =============================================================================
# Battle swap
# =============================================================================


def weapon_matchup_score(weapon: Item, armor_type: ItemType) -> int:
    """Tier multiplier weighted 3 / 2 / 1 for a strong / neutral / weak matchup."""
    if weapon.is_empty or weapon.tier == 0:
        return 0
    return TIER_MULTIPLIER[weapon.tier] * elemental_adjust(2, weapon.item_type, armor_type)


def plan_battle_swap(state: GameState) -> int | None:
    """Bag weapon worth switching to against the engaged beast.

    Equipping in battle gives the beast a free strike, so a swap is only
    planned when the adventurer keeps more than ``SWAP_HEALTH_RESERVE_PCT``
    percent of max health after a pessimistic (critical, strong) hit.
    Weapons at ``HIGH_GREATNESS`` or above are close to unlocking their
    suffix and are neither swapped out nor in.

    Args:
        state: Current snapshot, with a beast engaged.

    Returns:
        Id of the weapon to equip, or None to keep the current one.
    """
    adventurer = state.adventurer
    beast = state.beast
    current = adventurer.equipment.weapon
    if beast.tier == 0 or current.is_empty or current.greatness >= HIGH_GREATNESS:
        return None

    counter_attack = max(MIN_COUNTER_ATTACK, beast_power(beast) * 3)
    if (adventurer.health - counter_attack) * 100 <= adventurer.max_health * SWAP_HEALTH_RESERVE_PCT:
        return None

    best: Item | None = None
    best_score = weapon_matchup_score(current, beast.armor_type)
    for item in state.bag.items:
        if item.slot is not ItemSlot.WEAPON or item.greatness >= HIGH_GREATNESS:
            continue
        score = weapon_matchup_score(item, beast.armor_type)
        if score > best_score:
            best, best_score = item, score
    return None if best is None else best.id


__all__ = [
    "ShoppingPlan",
    "bag_item_score",
    "plan_bag_upgrades",
    "plan_item_drops",
    "plan_shopping",
    "weapon_matchup_score",
    "plan_battle_swap",
]
