"""Integration tests for a full game.

Drives the execution loop against a scripted chain from buying a game
through the starter beast, a stat upgrade and exploring until death.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from survivor_bot.core.config import LoopSettings
from survivor_bot.engine.decision import DecisionEngine
from survivor_bot.engine.loop import GameLoop
from survivor_bot.engine.salt import battle_salt, explore_salt
from survivor_bot.models.enums import ActionKind, GamePhase
from survivor_bot.models.game_state import GameState


class TestGameFlow:
    """Test complete games against a scripted chain."""

    def test_buy_start_upgrade_explore_die(
        self,
        engine: DecisionEngine,
        fast_loop_settings: LoopSettings,
        make_words: Callable[..., list[str]],
        fake_chain_factory: Any,
        instant_sleep: Callable[[float], Any],
    ) -> None:
        """Play a game from purchase to death."""
        # Before start_game the adventurer has no health, weapon or actions
        unstarted = make_words(health=0, equipment={})
        # Starter beast slain, first level reached
        levelled = make_words(health=90, xp=4, stat_upgrades_available=1, action_count=2)
        upgraded = make_words(health=90, xp=4, stats={"vitality": 1}, action_count=2)
        # Killed by an ambush while exploring
        dead = make_words(health=0, xp=6, beast_health=20, stats={"vitality": 1}, action_count=3)

        chain = fake_chain_factory(
            [unstarted, unstarted, levelled, levelled, upgraded, upgraded, upgraded, dead],
            latest_game=11,
        )
        loop = GameLoop(chain, engine, fast_loop_settings, sleep=instant_sleep)

        summary = asyncio.run(loop.run())

        assert chain.submitted == [
            ("approve", "buy_game"),
            ("request_random",),
            ("start_game", "attack"),
            ("select_stat_upgrades",),
            ("request_random",),
            ("explore",),
        ]
        assert chain.randomness_checks == [battle_salt(11, 0, 1), explore_salt(11, 4)]
        assert summary.game_id == 11
        assert summary.is_dead
        assert summary.cycles == 5
        assert summary.level == 2
        assert summary.stats["vitality"] == 1

    def test_restart_mid_battle(
        self,
        engine: DecisionEngine,
        fast_loop_settings: LoopSettings,
        battle_state: GameState,
        make_words: Callable[..., list[str]],
        fake_chain_factory: Any,
        instant_sleep: Callable[[float], Any],
    ) -> None:
        """A fresh loop picks up a battle where a previous process left it."""
        in_battle = make_words(
            health=50,
            xp=4,
            beast_health=30,
            stats={"dexterity": 5},
            equipment={"weapon": (42, 100)},
            action_count=3,
            beast=(30, 7, 30, 1, 0, 0, 0, 0),
        )
        won = make_words(
            health=50,
            xp=8,
            gold=6,
            stats={"dexterity": 5},
            equipment={"weapon": (42, 102)},
            action_count=4,
        )
        settings = fast_loop_settings.model_copy(update={"mode": "single"})

        results = []
        for _ in range(2):
            chain = fake_chain_factory([in_battle, in_battle, won])
            loop = GameLoop(chain, engine, settings, game_id=3, sleep=instant_sleep)
            asyncio.run(loop.run())
            results.append(chain.submitted)

        assert results[0] == results[1] == [("request_random",), ("attack",)]
        assert engine.decide(battle_state, game_id=3).phase is GamePhase.IN_BATTLE
        assert engine.decide(battle_state, game_id=3).action is ActionKind.ATTACK
