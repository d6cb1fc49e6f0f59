"""Decision engine: one snapshot in, one decision out.

The engine is a pure function of the current ``GameState``. It keeps no
memory between cycles, so a restarted bot facing the same on-chain state
makes the same decision. Phases are checked in strict priority order:

1. idle: no game yet
2. dead: terminal, no calls
3. starter_beast / in_battle: a beast is engaged (cannot be deferred)
4. stat_upgrade: points waiting to be spent
5. shopping: gear upgrades or potions worth buying
6. exploring: everything else

Every action that consumes randomness is preceded, in the same
decision, by the randomness request it consumes. The engine reads
``action_count`` from the snapshot and never advances it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel, ConfigDict, Field

from survivor_bot.core.exceptions import IllegalActionError
from survivor_bot.core.logging import get_logger
from survivor_bot.engine.calculator import (
    expected_damage_dealt,
    expected_damage_taken,
    flee_chance,
    rounds_to_kill,
)
from survivor_bot.engine.calls import CallBuilder, ContractCall
from survivor_bot.engine.market import plan_battle_swap, plan_shopping
from survivor_bot.engine.stats_policy import (
    BalancedStatPolicy,
    StatPolicy,
    allocate_stats,
    get_stat_policy,
)
from survivor_bot.models.catalog import STARTER_WEAPONS
from survivor_bot.models.enums import ActionKind, GamePhase


if TYPE_CHECKING:
    from survivor_bot.core.config import Settings
    from survivor_bot.models.game_state import GameState

logger = get_logger(__name__)

STARTER_WEAPON_ID = STARTER_WEAPONS[2]
TICKETS_PER_GAME = 1


# =============================================================================
# Decision
# =============================================================================


class BotDecision(BaseModel):
    """The single next step for one game.

    Attributes:
        phase: Phase the snapshot was classified into.
        action: The action the calls carry out.
        reason: Human-readable justification for the log.
        calls: Calls to submit, in order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    phase: GamePhase
    action: ActionKind
    reason: str = ""
    calls: tuple[ContractCall, ...] = Field(default=())

    @property
    def needs_randomness(self) -> bool:
        """Whether the first call is a randomness request."""
        return bool(self.calls) and self.calls[0].is_randomness_request

    @property
    def is_terminal(self) -> bool:
        """Whether the game is over."""
        return self.phase is GamePhase.DEAD


# =============================================================================
# Engine
# =============================================================================


class DecisionEngine:
    """Maps a GameState snapshot to the next BotDecision.

    Attributes:
        builder: Call builder for the configured contracts.
        stat_policy: Stat allocation policy.
        adventurer_name: Name used when buying a game.
        starter_weapon_id: Weapon picked at ``start_game``.
        recipient: Account that receives purchased games.
    """

    def __init__(
        self,
        builder: CallBuilder,
        stat_policy: StatPolicy | None = None,
        *,
        adventurer_name: str = "BOT",
        starter_weapon_id: int = STARTER_WEAPON_ID,
        recipient: str = "0x0",
    ) -> None:
        """Initialize the engine.

        Args:
            builder: Call builder for the configured contracts.
            stat_policy: Stat allocation policy (balanced by default).
            adventurer_name: Name used when buying a game.
            starter_weapon_id: Weapon picked at ``start_game``.
            recipient: Account that receives purchased games.
        """
        self.builder = builder
        self.stat_policy = stat_policy or BalancedStatPolicy()
        self.adventurer_name = adventurer_name
        self.starter_weapon_id = starter_weapon_id
        self.recipient = recipient

    @classmethod
    def from_settings(cls, settings: Settings) -> "DecisionEngine":
        """Build an engine from application settings."""
        return cls(
            CallBuilder(settings.contracts),
            get_stat_policy(settings.strategy.stat_policy),
            adventurer_name=settings.strategy.adventurer_name,
            starter_weapon_id=settings.strategy.starter_weapon_id,
            recipient=settings.network.account_address,
        )

    # -------------------------------------------------------------------------
    # Phase detection
    # -------------------------------------------------------------------------

    def phase_of(self, state: GameState | None) -> GamePhase:
        """Classify a snapshot into a game phase.

        Args:
            state: Current snapshot, or None when no game exists yet.

        Returns:
            The highest-priority phase that applies.
        """
        if state is None:
            return GamePhase.IDLE
        adventurer = state.adventurer
        if adventurer.is_dead:
            return GamePhase.DEAD
        if adventurer.in_battle:
            return GamePhase.STARTER_BEAST if adventurer.level == 1 else GamePhase.IN_BATTLE
        if adventurer.stat_upgrades_available > 0:
            return GamePhase.STAT_UPGRADE
        if not plan_shopping(state).is_empty:
            return GamePhase.SHOPPING
        return GamePhase.EXPLORING

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def decide(self, state: GameState | None, *, game_id: int = 0) -> BotDecision:
        """Produce the next decision for ``game_id``.

        Args:
            state: Current snapshot, or None when no game exists yet.
            game_id: Adventurer token id the calls act on.

        Returns:
            A fresh BotDecision.

        Raises:
            IllegalActionError: If the decision would submit a
                randomness-consuming call without its request first.
        """
        phase = self.phase_of(state)
        handlers: dict[GamePhase, Callable[[GameState, int], BotDecision]] = {
            GamePhase.DEAD: self._decide_dead,
            GamePhase.STARTER_BEAST: self.decide_battle,
            GamePhase.IN_BATTLE: self.decide_battle,
            GamePhase.STAT_UPGRADE: self._decide_stats,
            GamePhase.SHOPPING: self._decide_shopping,
            GamePhase.EXPLORING: self._decide_explore,
        }
        if state is None:
            return self._checked(self._decide_buy_game())
        return self._checked(handlers[phase](state, game_id))

    def decide_start_game(self, state: GameState, game_id: int) -> BotDecision:
        """Start a purchased game and attack the starter beast.

        The loop calls this right after it buys (or is handed) a game that
        was never started, whatever the snapshot looks like: before
        ``start_game`` the on-chain adventurer has no health yet.
        ``start_game`` counts as the first action, so the starter beast
        attack that follows is salted with action count 1.
        """
        return self._checked(
            BotDecision(
                phase=GamePhase.IDLE,
                action=ActionKind.START_GAME,
                reason=f"Starting game with weapon {self.starter_weapon_id}",
                calls=(
                    self.builder.request_random_for_battle(game_id, state.adventurer.xp, 1),
                    self.builder.start_game(game_id, self.starter_weapon_id),
                    self.builder.attack(game_id),
                ),
            )
        )

    def decide_battle(self, state: GameState, game_id: int) -> BotDecision:
        """Attack or flee the engaged beast.

        Attack when the expected damage dealt per round is at least the
        expected damage taken, or when the beast falls in no more rounds
        than the adventurer. Otherwise flee, unless fleeing cannot
        succeed. The starter beast is always fought to the death. Before
        any of that, a bag weapon with a clearly better matchup is
        equipped when the adventurer can afford the beast's free strike.

        Raises:
            IllegalActionError: If the adventurer is dead or no beast is engaged.
        """
        adventurer = state.adventurer
        if adventurer.is_dead or not adventurer.in_battle:
            raise IllegalActionError(
                "Battle action requested outside of a battle",
                phase=self.phase_of(state),
                action=ActionKind.ATTACK,
            )

        phase = GamePhase.STARTER_BEAST if adventurer.level == 1 else GamePhase.IN_BATTLE
        request = self.builder.request_random_for_battle(
            game_id, adventurer.xp, adventurer.action_count
        )
        beast = state.beast

        if phase is GamePhase.STARTER_BEAST:
            return BotDecision(
                phase=phase,
                action=ActionKind.ATTACK,
                reason="Starter beast, attacking to the death",
                calls=(request, self.builder.attack(game_id, to_the_death=True)),
            )

        if beast.tier == 0:
            return BotDecision(
                phase=phase,
                action=ActionKind.ATTACK,
                reason=f"Unknown beast id {beast.id}, attacking",
                calls=(request, self.builder.attack(game_id)),
            )

        swap_id = plan_battle_swap(state)
        if swap_id is not None:
            return BotDecision(
                phase=phase,
                action=ActionKind.EQUIP,
                reason=f"Switching to weapon {swap_id} against {beast.armor_type} armor",
                calls=(request, self.builder.equip(game_id, (swap_id,))),
            )

        dealt = expected_damage_dealt(adventurer, beast)
        taken = expected_damage_taken(adventurer, beast)
        beast_rounds = rounds_to_kill(adventurer.beast_health, dealt)
        own_rounds = rounds_to_kill(adventurer.health, taken)
        chance = flee_chance(adventurer.stats.dexterity, adventurer.level)

        if dealt >= taken or beast_rounds <= own_rounds:
            action = ActionKind.ATTACK
            reason = (
                f"Dealing {dealt} vs taking {taken}; "
                f"beast down in {beast_rounds} rounds, us in {own_rounds}"
            )
        elif chance > 0:
            action = ActionKind.FLEE
            reason = f"Outmatched ({dealt} vs {taken}), fleeing at {chance}%"
        else:
            action = ActionKind.ATTACK
            reason = f"Outmatched ({dealt} vs {taken}) but fleeing cannot succeed"

        call = self.builder.flee(game_id) if action is ActionKind.FLEE else self.builder.attack(game_id)
        return BotDecision(phase=phase, action=action, reason=reason, calls=(request, call))

    def _decide_buy_game(self) -> BotDecision:
        return BotDecision(
            phase=GamePhase.IDLE,
            action=ActionKind.BUY_GAME,
            reason="No game yet, buying one",
            calls=(
                self.builder.approve_ticket(TICKETS_PER_GAME),
                self.builder.buy_game(self.adventurer_name, self.recipient),
            ),
        )

    def _decide_dead(self, state: GameState, game_id: int) -> BotDecision:
        return BotDecision(
            phase=GamePhase.DEAD,
            action=ActionKind.NONE,
            reason=f"Adventurer died at level {state.adventurer.level}",
        )

    def _decide_stats(self, state: GameState, game_id: int) -> BotDecision:
        adventurer = state.adventurer
        allocation = allocate_stats(self.stat_policy, adventurer)
        return BotDecision(
            phase=GamePhase.STAT_UPGRADE,
            action=ActionKind.SELECT_STAT_UPGRADES,
            reason=f"Allocating {adventurer.stat_upgrades_available} stat points ({self.stat_policy.name})",
            calls=(self.builder.select_stat_upgrades(game_id, allocation),),
        )

    def _decide_shopping(self, state: GameState, game_id: int) -> BotDecision:
        plan = plan_shopping(state)
        if plan.equip_ids:
            return BotDecision(
                phase=GamePhase.SHOPPING,
                action=ActionKind.EQUIP,
                reason=f"Equipping {len(plan.equip_ids)} upgrades from the bag",
                calls=(self.builder.equip(game_id, plan.equip_ids),),
            )
        if plan.drop_ids:
            return BotDecision(
                phase=GamePhase.SHOPPING,
                action=ActionKind.DROP,
                reason=f"Bag full, dropping {len(plan.drop_ids)} items",
                calls=(self.builder.drop(game_id, plan.drop_ids),),
            )
        return BotDecision(
            phase=GamePhase.SHOPPING,
            action=ActionKind.BUY_ITEMS,
            reason=f"Spending {plan.cost}g on {len(plan.purchases)} items and {plan.potions} potions",
            calls=(self.builder.buy_items(game_id, plan.potions, plan.purchases),),
        )

    def _decide_explore(self, state: GameState, game_id: int) -> BotDecision:
        return BotDecision(
            phase=GamePhase.EXPLORING,
            action=ActionKind.EXPLORE,
            reason="Nothing pending, exploring",
            calls=(
                self.builder.request_random_for_explore(game_id, state.adventurer.xp),
                self.builder.explore(game_id, till_beast=False),
            ),
        )

    def _checked(self, decision: BotDecision) -> BotDecision:
        self._check_sequencing(decision)
        logger.info(
            "Decision made",
            phase=decision.phase,
            action=decision.action,
            reason=decision.reason,
            calls=len(decision.calls),
        )
        return decision

    @staticmethod
    def _check_sequencing(decision: BotDecision) -> None:
        """Every randomness-consuming call must follow a randomness request."""
        requested = False
        for call in decision.calls:
            if call.is_randomness_request:
                requested = True
            elif call.needs_randomness and not requested:
                raise IllegalActionError(
                    f"{call.entrypoint} submitted without a randomness request",
                    phase=decision.phase,
                    action=call.action,
                )


__all__ = [
    "BotDecision",
    "DecisionEngine",
]
