"""Gameplay engine for survivor-bot.

Submodules:
    calculator: Integer mirrors of the contract's combat and economy math
    salt: Poseidon salts binding randomness requests to their consumers
    calls: Call variants and the builder that produces them
    stats_policy: Stat point allocation policies
    market: Gear swaps, purchases and potions
    decision: The phase state machine producing one BotDecision per snapshot
    transport: Protocol of the chain collaborator
    loop: The async fetch-decide-act loop

Example:
    >>> from survivor_bot.engine import DecisionEngine, GameLoop
    >>> engine = DecisionEngine.from_settings(get_settings())
    >>> summary = asyncio.run(GameLoop(chain, engine, game_id=207649).run())
"""

from __future__ import annotations

# =============================================================================
# Calculator
# =============================================================================
from survivor_bot.engine.calculator import (
    attack_damage,
    beast_damage,
    beast_power,
    damage,
    elemental_adjust,
    expected_damage_dealt,
    expected_damage_taken,
    flee_chance,
    gold_reward,
    item_power,
    item_price,
    item_xp_reward,
    level,
    max_health,
    potion_cost,
    xp_reward,
)

# =============================================================================
# Randomness
# =============================================================================
from survivor_bot.engine.salt import STARK_PRIME, battle_salt, explore_salt

# =============================================================================
# Calls
# =============================================================================
from survivor_bot.engine.calls import (
    CallBuilder,
    ContractCall,
    ItemPurchase,
    encode_short_string,
)

# =============================================================================
# Strategy
# =============================================================================
from survivor_bot.engine.stats_policy import (
    BalancedStatPolicy,
    EvasiveStatPolicy,
    StatPolicy,
    allocate_stats,
    get_stat_policy,
)
from survivor_bot.engine.market import ShoppingPlan, plan_battle_swap, plan_shopping
from survivor_bot.engine.decision import BotDecision, DecisionEngine

# =============================================================================
# Execution
# =============================================================================
from survivor_bot.engine.transport import ChainClient, TransactionReceipt
from survivor_bot.engine.loop import CycleResult, GameLoop, GameSummary, run_games


__all__ = [
    # Calculator
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
    "beast_damage",
    "expected_damage_dealt",
    "expected_damage_taken",
    # Randomness
    "STARK_PRIME",
    "explore_salt",
    "battle_salt",
    # Calls
    "CallBuilder",
    "ContractCall",
    "ItemPurchase",
    "encode_short_string",
    # Strategy
    "StatPolicy",
    "BalancedStatPolicy",
    "EvasiveStatPolicy",
    "allocate_stats",
    "get_stat_policy",
    "ShoppingPlan",
    "plan_shopping",
    "plan_battle_swap",
    "BotDecision",
    "DecisionEngine",
    # Execution
    "ChainClient",
    "TransactionReceipt",
    "CycleResult",
    "GameSummary",
    "GameLoop",
    "run_games",
]
