"""Tests for the execution loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from survivor_bot.core.config import LoopSettings
from survivor_bot.core.exceptions import (
    DecodeError,
    RandomnessTimeoutError,
    RetriesExhaustedError,
    SaltMismatchError,
    SubmissionError,
    TransactionRevertedError,
)
from survivor_bot.engine.decision import DecisionEngine
from survivor_bot.engine.loop import (
    GameLoop,
    GameSummary,
    is_game_finished,
    is_stale_state,
    run_games,
)
from survivor_bot.engine.salt import battle_salt, explore_salt
from survivor_bot.models.enums import ActionKind, GamePhase


WordsFactory = Callable[..., list[str]]


@pytest.fixture
def make_loop(
    engine: DecisionEngine,
    fast_loop_settings: LoopSettings,
    instant_sleep: Callable[[float], Any],
) -> Callable[..., GameLoop]:
    """Factory wiring a chain into a loop with instant sleeps."""

    def _make(chain: Any, *, game_id: int | None = 7, **overrides: Any) -> GameLoop:
        settings = fast_loop_settings.model_copy(update=overrides)
        return GameLoop(chain, engine, settings, game_id=game_id, sleep=instant_sleep)

    return _make


class TestRevertClassification:
    """Tests for revert reason matching."""

    def test_game_finished(self) -> None:
        """Test finished-game reasons are recognised case-insensitively."""
        assert is_game_finished("Game Over")
        assert is_game_finished("Adventurer is already dead")
        assert not is_game_finished("Not enough gold")

    def test_stale_state(self) -> None:
        """Test stale-state reasons are recognised."""
        assert is_stale_state("Not enough gold")
        assert is_stale_state("Market is closed")
        assert not is_stale_state("out of gas")


class TestRandomnessFlow:
    """Tests for randomness-consuming cycles."""

    def test_request_submitted_before_action(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test the request lands and is fulfilled before explore is sent."""
        before = make_words(xp=12, action_count=5)
        after = make_words(xp=13, action_count=6)
        chain = fake_chain_factory([before, before, after])

        result = asyncio.run(make_loop(chain).run_cycle())

        assert chain.submitted == [("request_random",), ("explore",)]
        assert chain.randomness_checks == [explore_salt(7, 12)]
        assert result.submitted
        assert len(result.receipts) == 2
        assert result.decision.action is ActionKind.EXPLORE

    def test_lost_request_resubmitted_then_surfaced(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test an unfulfilled request is resent and the action never goes out."""
        chain = fake_chain_factory([make_words(xp=12, action_count=5)], fulfilled=False)

        with pytest.raises(RandomnessTimeoutError):
            asyncio.run(make_loop(chain, max_randomness_retries=1).run_cycle())

        assert chain.submitted == [("request_random",), ("request_random",)]

    def test_action_landed_while_waiting(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a moved action count after a timeout is not resubmitted."""
        before = make_words(xp=12, action_count=5)
        after = make_words(xp=13, action_count=6)
        chain = fake_chain_factory([before, after], fulfilled=False)

        result = asyncio.run(make_loop(chain).run_cycle())

        assert chain.submitted == [("request_random",)]
        assert len(result.receipts) == 1

    def test_state_moved_while_waiting(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a changed snapshot after fulfilment is a salt mismatch."""
        before = make_words(xp=12, action_count=5)
        after = make_words(xp=12, gold=3, action_count=5)
        chain = fake_chain_factory([before, after])

        with pytest.raises(SaltMismatchError) as exc_info:
            asyncio.run(make_loop(chain).run_cycle())

        assert chain.submitted == [("request_random",)]
        assert exc_info.value.details["salt"] == hex(explore_salt(7, 12))
        assert "State moved" in exc_info.value.message


class TestSubmission:
    """Tests for transaction submission and retries."""

    def test_transient_failure_retried(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a retriable failure is retried with backoff."""
        before = make_words(xp=12, stat_upgrades_available=1, action_count=5)
        after = make_words(xp=12, action_count=6, stats={"vitality": 1})
        chain = fake_chain_factory(
            [before, after],
            submit_errors=[SubmissionError("node unavailable", retriable=True)],
        )

        asyncio.run(make_loop(chain).run_cycle())

        assert chain.submitted == [("select_stat_upgrades",)]

    def test_permanent_failure_not_retried(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a non-retriable failure surfaces at once."""
        chain = fake_chain_factory(
            [make_words(xp=12, stat_upgrades_available=1, action_count=5)],
            submit_errors=[SubmissionError("bad signature", retriable=False)],
        )

        with pytest.raises(SubmissionError, match="bad signature"):
            asyncio.run(make_loop(chain).run_cycle())

        assert chain.submitted == []

    def test_revert_not_resubmitted(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a reverted transaction raises without a second attempt."""
        chain = fake_chain_factory(
            [make_words(xp=12, stat_upgrades_available=1, action_count=5)],
            revert_reasons=["Stat upgrade available"],
        )

        with pytest.raises(TransactionRevertedError) as exc_info:
            asyncio.run(make_loop(chain).run_cycle())

        assert exc_info.value.revert_reason == "Stat upgrade available"
        assert chain.submitted == [("select_stat_upgrades",)]


class TestNewGame:
    """Tests for buying and adopting a game."""

    def test_buys_and_adopts_game(
        self, make_loop: Callable[..., GameLoop], fake_chain_factory: Any
    ) -> None:
        """Test a loop with no game buys one and adopts its id."""
        chain = fake_chain_factory(latest_game=5)
        loop = make_loop(chain, game_id=None)

        result = asyncio.run(loop.run_cycle())

        assert result.decision.action is ActionKind.BUY_GAME
        assert chain.submitted == [("approve", "buy_game")]
        assert chain.reads == 0
        assert loop.game_id == 5

    def test_missing_game_after_purchase(
        self, make_loop: Callable[..., GameLoop], fake_chain_factory: Any
    ) -> None:
        """Test a purchase with no resulting game is an error."""
        chain = fake_chain_factory(latest_game=None)

        with pytest.raises(SubmissionError):
            asyncio.run(make_loop(chain, game_id=None).run_cycle())

    def test_starts_adopted_game(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test the cycle after a purchase starts the game although it looks dead."""
        unstarted = make_words(health=0, equipment={})
        started = make_words(health=100, xp=1, beast_health=2, action_count=1)
        chain = fake_chain_factory([unstarted, unstarted, started], latest_game=5)
        loop = make_loop(chain, game_id=None)

        asyncio.run(loop.run_cycle())
        result = asyncio.run(loop.run_cycle())

        assert result.decision.action is ActionKind.START_GAME
        assert chain.submitted == [
            ("approve", "buy_game"),
            ("request_random",),
            ("start_game", "attack"),
        ]
        assert chain.randomness_checks == [battle_salt(5, 0, 1)]

    def test_handed_unstarted_game_is_started(
        self,
        engine: DecisionEngine,
        fast_loop_settings: LoopSettings,
        make_words: WordsFactory,
        fake_chain_factory: Any,
        instant_sleep: Callable[[float], Any],
    ) -> None:
        """Test a game flagged as never started is started, not reported dead."""
        unstarted = make_words(health=0, equipment={})
        started = make_words(health=100, xp=1, beast_health=2, action_count=1)
        chain = fake_chain_factory([unstarted, unstarted, started])
        loop = GameLoop(
            chain, engine, fast_loop_settings, game_id=8, needs_start=True, sleep=instant_sleep
        )

        result = asyncio.run(loop.run_cycle())

        assert result.decision.action is ActionKind.START_GAME
        assert chain.submitted == [("request_random",), ("start_game", "attack")]

    def test_started_game_not_restarted(
        self,
        engine: DecisionEngine,
        fast_loop_settings: LoopSettings,
        make_words: WordsFactory,
        fake_chain_factory: Any,
        instant_sleep: Callable[[float], Any],
    ) -> None:
        """Test the start flag is dropped once the snapshot shows actions."""
        chain = fake_chain_factory([make_words(health=0, xp=40, action_count=20)])
        loop = GameLoop(
            chain, engine, fast_loop_settings, game_id=8, needs_start=True, sleep=instant_sleep
        )

        summary = asyncio.run(loop.run())

        assert summary.is_dead
        assert chain.submitted == []


class TestRun:
    """Tests for the run loop."""

    def test_dead_adventurer_ends_run(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a dead adventurer ends the loop without sending anything."""
        chain = fake_chain_factory([make_words(health=0, xp=40, action_count=20)])

        summary = asyncio.run(make_loop(chain).run())

        assert summary.is_dead
        assert summary.game_id == 7
        assert summary.level == 11
        assert summary.cycles == 1
        assert chain.submitted == []

    def test_single_mode_runs_one_cycle(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test single mode stops after one cycle."""
        before = make_words(xp=12, action_count=5)
        after = make_words(xp=13, action_count=6)
        chain = fake_chain_factory([before, before, after])

        summary = asyncio.run(make_loop(chain, mode="single").run())

        assert summary.cycles == 1
        assert summary.cause == "single cycle completed"
        assert summary.last_action is ActionKind.EXPLORE

    def test_single_mode_raises_cycle_failure(
        self, make_loop: Callable[..., GameLoop], fake_chain_factory: Any
    ) -> None:
        """Test single mode surfaces the failure instead of retrying."""
        chain = fake_chain_factory([["0x1"]])

        with pytest.raises(DecodeError, match="expected at least"):
            asyncio.run(make_loop(chain, mode="single").run())

    def test_finished_game_revert_ends_run(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a game-over revert stops the loop cleanly."""
        chain = fake_chain_factory(
            [make_words(xp=12, action_count=5)],
            revert_reasons=["Game is not in progress"],
        )

        summary = asyncio.run(make_loop(chain).run())

        assert summary.cause == "Game is not in progress"
        assert summary.phase is GamePhase.EXPLORING
        assert chain.submitted == [("request_random",)]

    def test_consecutive_failures_exhaust_retries(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test the loop gives up after too many failed cycles in a row."""
        errors = [SubmissionError("node unavailable", retriable=True) for _ in range(20)]
        chain = fake_chain_factory(
            [make_words(xp=12, stat_upgrades_available=1, action_count=5)],
            submit_errors=errors,
        )

        with pytest.raises(RetriesExhaustedError) as exc_info:
            asyncio.run(make_loop(chain).run())

        assert exc_info.value.details["attempts"] == 3
        assert len(chain.submit_errors) == 20 - 3 * 3

    def test_stale_revert_decides_again(
        self, make_loop: Callable[..., GameLoop], make_words: WordsFactory, fake_chain_factory: Any
    ) -> None:
        """Test a stale-state revert is followed by a fresh decision."""
        stats_pending = make_words(xp=12, stat_upgrades_available=1, action_count=5)
        dead = make_words(health=0, xp=12, action_count=6)
        chain = fake_chain_factory([stats_pending, dead], revert_reasons=["Stat upgrade available"])

        summary = asyncio.run(make_loop(chain).run())

        assert summary.is_dead
        assert summary.cycles == 2
        assert chain.submitted == [("select_stat_upgrades",)]


class TestRunGames:
    """Tests for running several games concurrently."""

    def test_games_run_side_by_side(
        self,
        engine: DecisionEngine,
        fast_loop_settings: LoopSettings,
        make_words: WordsFactory,
        fake_chain_factory: Any,
    ) -> None:
        """Test each game gets its own summary in order."""
        chain = fake_chain_factory([make_words(health=0, xp=40, action_count=20)])

        results = asyncio.run(run_games(chain, engine, [1, 2], fast_loop_settings))

        assert [r.game_id for r in results if isinstance(r, GameSummary)] == [1, 2]

    def test_failure_returned_not_raised(
        self,
        engine: DecisionEngine,
        fast_loop_settings: LoopSettings,
        fake_chain_factory: Any,
    ) -> None:
        """Test a failing game is reported in place of its summary."""
        chain = fake_chain_factory([["0x1"]])

        results = asyncio.run(run_games(chain, engine, [3], fast_loop_settings))

        assert isinstance(results[0], RetriesExhaustedError)
