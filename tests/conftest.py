"""Pytest configuration and shared fixtures.

This module provides common fixtures for the survivor-bot test suite:
a builder for raw ``get_game_state`` words, decoded sample states, the
call builder and decision engine wired to default contracts, and an
in-memory chain client.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Sequence
from typing import Any

import pytest

from survivor_bot.core.config import ContractSettings, LoopSettings
from survivor_bot.engine.calls import CallBuilder, ContractCall
from survivor_bot.engine.decision import DecisionEngine
from survivor_bot.engine.transport import TransactionReceipt
from survivor_bot.models.game_state import GameState, decode_game_state


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from survivor_bot.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "SURVIVOR_BOT_DEBUG": "true",
        "SURVIVOR_BOT_LOG_LEVEL": "DEBUG",
        "SURVIVOR_BOT_LOOP_MODE": "continuous",
        "SURVIVOR_BOT_STRATEGY_STAT_POLICY": "evasive",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def fast_loop_settings() -> LoopSettings:
    """Loop settings with every delay at zero."""
    return LoopSettings(
        mode="continuous",
        loop_delay=0,
        state_poll_interval=0,
        stale_poll_attempts=2,
        randomness_poll_interval=0,
        randomness_timeout=0,
        max_randomness_retries=1,
        max_submit_attempts=3,
        backoff_min=0,
        backoff_max=0,
        max_consecutive_errors=3,
    )


# =============================================================================
# State Fixtures
# =============================================================================

_SLOT_ORDER = ("weapon", "chest", "head", "waist", "foot", "hand", "neck", "ring")
_STAT_ORDER = ("strength", "dexterity", "vitality", "intelligence", "wisdom", "charisma", "luck")


def build_words(
    *,
    health: int = 100,
    xp: int = 0,
    gold: int = 0,
    beast_health: int = 0,
    stat_upgrades_available: int = 0,
    stats: dict[str, int] | None = None,
    equipment: dict[str, tuple[int, int]] | None = None,
    item_specials_seed: int = 0,
    action_count: int = 0,
    bag: Sequence[tuple[int, int]] = (),
    bag_mutated: bool = False,
    beast: Sequence[int] = (0, 0, 0, 0, 0, 0, 0, 0),
    market: Sequence[int] | None = None,
) -> list[str]:
    """Lay out adventurer, bag, beast and market words the way the contract does."""
    stats = stats or {}
    equipment = equipment if equipment is not None else {"weapon": (46, 0)}
    values: list[int] = [health, xp, gold, beast_health, stat_upgrades_available]
    values += [stats.get(name, 0) for name in _STAT_ORDER]
    for slot in _SLOT_ORDER:
        values += list(equipment.get(slot, (0, 0)))
    values += [item_specials_seed, action_count]
    padded_bag = list(bag) + [(0, 0)] * (15 - len(bag))
    for item_id, item_xp in padded_bag:
        values += [item_id, item_xp]
    values.append(1 if bag_mutated else 0)
    values += list(beast)
    if market is not None:
        values.append(len(market))
        values += list(market)
    return [hex(value) for value in values]


@pytest.fixture
def make_words() -> Callable[..., list[str]]:
    """Factory for raw state words."""
    return build_words


@pytest.fixture
def make_state() -> Callable[..., GameState]:
    """Factory for decoded states."""

    def _make(**kwargs: Any) -> GameState:
        return decode_game_state(build_words(**kwargs))

    return _make


@pytest.fixture
def exploring_state(make_state: Callable[..., GameState]) -> GameState:
    """A healthy adventurer with nothing pending."""
    return make_state(health=100, xp=12, action_count=5)


@pytest.fixture
def battle_state(make_state: Callable[..., GameState]) -> GameState:
    """An adventurer with a Katana engaged with a weak hunter."""
    return make_state(
        health=50,
        xp=4,
        beast_health=30,
        stats={"dexterity": 5},
        equipment={"weapon": (42, 100)},
        action_count=3,
        beast=(30, 7, 30, 1, 0, 0, 0, 0),
    )


@pytest.fixture
def dead_state(make_state: Callable[..., GameState]) -> GameState:
    """An adventurer killed in battle."""
    return make_state(health=0, xp=40, beast_health=12, action_count=20)


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def contracts() -> ContractSettings:
    """Default (mainnet) contract addresses."""
    return ContractSettings()


@pytest.fixture
def builder(contracts: ContractSettings) -> CallBuilder:
    """Call builder for the default contracts."""
    return CallBuilder(contracts)


@pytest.fixture
def engine(builder: CallBuilder) -> DecisionEngine:
    """Decision engine with the default policy."""
    return DecisionEngine(builder, recipient="0x1234")


# =============================================================================
# Chain Fixtures
# =============================================================================


class FakeChain:
    """In-memory ChainClient.

    ``states`` is consumed one snapshot per read; the last one repeats.
    ``submit_errors`` are raised by successive submissions before any
    succeeds, and ``revert_reasons`` turn successive receipts into reverts.
    """

    def __init__(
        self,
        states: Sequence[Sequence[str]] = (),
        *,
        fulfilled: bool = True,
        submit_errors: Sequence[Exception] = (),
        revert_reasons: Sequence[str] = (),
        latest_game: int | None = None,
    ) -> None:
        self.states = list(states)
        self.fulfilled = fulfilled
        self.submit_errors = list(submit_errors)
        self.revert_reasons = list(revert_reasons)
        self.latest_game = latest_game
        self.submitted: list[tuple[str, ...]] = []
        self.reads = 0
        self.randomness_checks: list[int] = []

    async def read_game_state(self, game_id: int) -> Sequence[str]:
        self.reads += 1
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]

    async def submit(self, calls: Sequence[ContractCall]) -> TransactionReceipt:
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        self.submitted.append(tuple(call.entrypoint for call in calls))
        tx_hash = hex(len(self.submitted))
        if self.revert_reasons:
            return TransactionReceipt(
                transaction_hash=tx_hash,
                reverted=True,
                revert_reason=self.revert_reasons.pop(0),
            )
        return TransactionReceipt(transaction_hash=tx_hash)

    async def is_randomness_fulfilled(self, salt: int) -> bool:
        self.randomness_checks.append(salt)
        return self.fulfilled

    async def latest_game_id(self, owner: str) -> int | None:
        return self.latest_game


async def no_sleep(delay: float) -> None:
    """Sleep replacement that returns immediately."""
    return None


@pytest.fixture
def fake_chain_factory() -> type[FakeChain]:
    """The FakeChain class, for tests that script their own chain."""
    return FakeChain


@pytest.fixture
def instant_sleep() -> Callable[[float], Any]:
    """Sleep coroutine that never waits."""
    return no_sleep
