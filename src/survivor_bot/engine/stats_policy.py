"""Stat point allocation policies.

A policy turns ``stat_upgrades_available`` into a ``Stats`` payload for
``select_stat_upgrades``. Points are handed out one at a time, each
going to the attribute the policy wants most that is still below the
attribute cap, so the payload always sums to exactly the available
points and no attribute ever exceeds 31.

Policies:
    BalancedStatPolicy: Vitality and strength in step (default).
    EvasiveStatPolicy: Dexterity and charisma early, vitality later.
"""

from __future__ import annotations

import math
from typing import Protocol, runtime_checkable

from survivor_bot.core.exceptions import ConfigurationError
from survivor_bot.core.logging import get_logger
from survivor_bot.engine.calculator import HEALTH_PER_VITALITY, MAX_STAT_VALUE, max_health
from survivor_bot.models.game_state import Adventurer, Stats


logger = get_logger(__name__)

_STAT_NAMES = (
    "strength",
    "dexterity",
    "vitality",
    "intelligence",
    "wisdom",
    "charisma",
    "luck",
)

EMERGENCY_HEALTH_PCT = 25
EVASIVE_LATE_LEVEL = 15
EVASIVE_DEX_FLOOR_PCT = 55


@runtime_checkable
class StatPolicy(Protocol):
    """Chooses which attribute receives the next stat point."""

    name: str

    def pick(self, current: dict[str, int], level: int, health: int) -> str:
        """Name of the attribute to raise next.

        Args:
            current: Attribute values including points already handed out.
            level: Adventurer level.
            health: Adventurer health including vitality already handed out.
        """
        ...


def _first_open(current: dict[str, int], *names: str) -> str | None:
    for name in names:
        if current[name] < MAX_STAT_VALUE:
            return name
    return None


def _is_emergency(current: dict[str, int], health: int) -> bool:
    return health * 100 < max_health(current["vitality"]) * EMERGENCY_HEALTH_PCT


class BalancedStatPolicy:
    """Keeps vitality and strength level, vitality first.

    More health absorbs more beast strikes and more strength ends fights
    sooner; anything left over once both are capped goes to dexterity.
    """

    name = "balanced"

    def pick(self, current: dict[str, int], level: int, health: int) -> str:
        if _is_emergency(current, health):
            choice = _first_open(current, "vitality")
            if choice:
                return choice
        if current["vitality"] <= current["strength"]:
            preferred = ("vitality", "strength")
        else:
            preferred = ("strength", "vitality")
        choice = _first_open(current, *preferred, "dexterity", "charisma", "wisdom", "intelligence", "luck")
        return choice or "vitality"


class EvasiveStatPolicy:
    """Flee-and-potion build observed in the highest-scoring games.

    Before level 15 points go to charisma until potions cost one gold
    (``charisma >= ceil(level / 2)``), then to dexterity. From level 15
    dexterity is held at 55% of the level and vitality takes the rest.
    Health under a quarter of maximum always buys vitality first.
    """

    name = "evasive"

    def pick(self, current: dict[str, int], level: int, health: int) -> str:
        if _is_emergency(current, health) and current["vitality"] < MAX_STAT_VALUE:
            return "vitality"
        if current["dexterity"] == 0:
            return "dexterity"
        if current["charisma"] < max(1, math.ceil(level / 2)) and current["charisma"] < MAX_STAT_VALUE:
            return "charisma"
        if level < EVASIVE_LATE_LEVEL:
            choice = _first_open(current, "dexterity", "vitality")
            if choice:
                return choice
        dex_floor = math.ceil(level * EVASIVE_DEX_FLOOR_PCT / 100)
        if current["dexterity"] < min(dex_floor, MAX_STAT_VALUE):
            return "dexterity"
        choice = _first_open(
            current, "vitality", "dexterity", "charisma", "wisdom", "intelligence", "strength", "luck"
        )
        return choice or "vitality"


def allocate_stats(policy: StatPolicy, adventurer: Adventurer) -> Stats:
    """Hand out every available stat point according to ``policy``.

    Args:
        policy: The allocation policy.
        adventurer: Adventurer whose pending points are spent.

    Returns:
        Points per attribute, summing to ``stat_upgrades_available``
        unless every attribute is already capped.
    """
    current = {name: getattr(adventurer.stats, name) for name in _STAT_NAMES}
    allocation = dict.fromkeys(_STAT_NAMES, 0)
    health = adventurer.health
    level = adventurer.level

    for _ in range(adventurer.stat_upgrades_available):
        name = policy.pick(current, level, health)
        if current[name] >= MAX_STAT_VALUE:
            logger.warning("All attributes capped, points left unspent", policy=policy.name)
            break
        current[name] += 1
        allocation[name] += 1
        if name == "vitality":
            health += HEALTH_PER_VITALITY

    logger.debug(
        "Stat points allocated",
        policy=policy.name,
        points=adventurer.stat_upgrades_available,
        allocation={k: v for k, v in allocation.items() if v},
    )
    return Stats(**allocation)


_POLICIES: dict[str, type[StatPolicy]] = {
    BalancedStatPolicy.name: BalancedStatPolicy,
    EvasiveStatPolicy.name: EvasiveStatPolicy,
}


def get_stat_policy(name: str) -> StatPolicy:
    """Look up a policy by its configured name.

    Raises:
        ConfigurationError: If no policy has that name.
    """
    try:
        return _POLICIES[name]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown stat policy {name!r}; choose from {sorted(_POLICIES)}",
            config_key="stat_policy",
        ) from None


__all__ = [
    "StatPolicy",
    "BalancedStatPolicy",
    "EvasiveStatPolicy",
    "allocate_stats",
    "get_stat_policy",
]
