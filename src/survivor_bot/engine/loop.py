"""Execution loop: fetch, decide, act, repeat.

One ``GameLoop`` drives one game as a single asyncio task. Each cycle is
strictly sequential because every decision depends on the outcome of the
previous transaction:

    fetch state -> decide -> [request randomness -> wait for fulfilment]
                -> submit action -> wait for the state to move

A freshly bought game is started by the loop itself: the snapshot of an
unstarted game cannot be told apart from a dead one, so the loop keeps
a start pending from the purchase until ``start_game`` lands.

Several games run side by side with ``run_games``; loops share nothing
mutable, each holding only its own latest snapshot.

Failure policy:
    - DecodeError: back off and fetch again.
    - RandomnessTimeoutError: re-read the state once. If the action count
      did not move the request was lost and the request + action pair
      is resubmitted; otherwise the action already landed.
    - SaltMismatchError: the state moved while waiting, so the salt no
      longer matches; the next cycle decides again.
    - SubmissionError: retried with exponential backoff (tenacity), then
      surfaced to the run loop.
    - TransactionRevertedError: never resubmitted; treated as stale state.
    - IllegalActionError: a defect; logged and the cycle skipped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from survivor_bot.core.config import LoopSettings, get_settings
from survivor_bot.core.exceptions import (
    DecodeError,
    IllegalActionError,
    RandomnessError,
    RandomnessTimeoutError,
    RetriesExhaustedError,
    SaltMismatchError,
    SubmissionError,
    TransactionRevertedError,
)
from survivor_bot.core.logging import bind_context, clear_context, get_logger
from survivor_bot.engine.decision import BotDecision, DecisionEngine
from survivor_bot.models.enums import ActionKind, GamePhase
from survivor_bot.models.game_state import GameState, decode_game_state


if TYPE_CHECKING:
    from survivor_bot.engine.calls import ContractCall
    from survivor_bot.engine.transport import ChainClient, TransactionReceipt

logger = get_logger(__name__)

GAME_FINISHED_PATTERNS = (
    "not owner",
    "not playable",
    "game over",
    "game is not in progress",
    "already dead",
)
"""Revert reasons meaning this game can no longer be played."""

STALE_STATE_PATTERNS = (
    "item already owned",
    "not enough gold",
    "market is closed",
    "not in battle",
    "action not allowed",
    "in battle",
    "stat upgrade available",
    "transaction reverted",
)
"""Revert reasons meaning the decision was made on outdated state."""


def is_game_finished(reason: str) -> bool:
    """Whether a revert reason means the game cannot continue."""
    lowered = reason.lower()
    return any(pattern in lowered for pattern in GAME_FINISHED_PATTERNS)


def is_stale_state(reason: str) -> bool:
    """Whether a revert reason points at a decision made on old state."""
    lowered = reason.lower()
    return any(pattern in lowered for pattern in STALE_STATE_PATTERNS)


# =============================================================================
# Results
# =============================================================================


@dataclass
class CycleResult:
    """Outcome of one fetch-decide-act cycle.

    Attributes:
        decision: The decision that was made.
        submitted: Whether any transaction was sent.
        receipts: Receipts of the transactions sent, in order.
        state: Snapshot the decision was made on.
    """

    decision: BotDecision
    submitted: bool = False
    receipts: list[TransactionReceipt] = field(default_factory=list)
    state: GameState | None = None


@dataclass
class GameSummary:
    """Final report of a game loop.

    Attributes:
        game_id: Adventurer token id (None if no game was bought).
        phase: Last observed phase.
        last_action: Last action decided.
        level: Adventurer level.
        xp: Adventurer xp.
        gold: Adventurer gold.
        health: Adventurer health.
        cycles: Cycles run.
        stats: Final attribute values.
        cause: Why the loop ended.
    """

    game_id: int | None
    phase: GamePhase = GamePhase.IDLE
    last_action: ActionKind = ActionKind.NONE
    level: int = 0
    xp: int = 0
    gold: int = 0
    health: int = 0
    cycles: int = 0
    stats: dict[str, int] = field(default_factory=dict)
    cause: str = ""

    @property
    def is_dead(self) -> bool:
        """Whether the adventurer died."""
        return self.phase is GamePhase.DEAD


# =============================================================================
# Game Loop
# =============================================================================


class GameLoop:
    """Plays one game until it ends (or for one cycle in single mode).

    Attributes:
        game_id: Adventurer token id; None until a game is bought.
        chain: Chain collaborator.
        engine: Decision engine.
        settings: Loop timing and retry policy.
    """

    def __init__(
        self,
        chain: ChainClient,
        engine: DecisionEngine,
        settings: LoopSettings | None = None,
        *,
        game_id: int | None = None,
        needs_start: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the loop.

        Args:
            chain: Chain collaborator.
            engine: Decision engine.
            settings: Loop policy (application settings by default).
            game_id: Game to play; None buys a new one first.
            needs_start: Whether ``game_id`` was bought but never started.
                Ignored once its snapshot shows any action.
            sleep: Coroutine used for every wait.
        """
        self.chain = chain
        self.engine = engine
        self.settings = settings or get_settings().loop
        self.game_id = game_id
        self._sleep = sleep
        self._needs_start = needs_start
        self._state: GameState | None = None
        self._decision: BotDecision | None = None
        self._cycles = 0

    @property
    def state(self) -> GameState | None:
        """Latest snapshot, held until the next fetch completes."""
        return self._state

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    async def run_cycle(self) -> CycleResult:
        """Fetch the state, decide and carry out the decision once.

        Returns:
            What was decided and sent.

        Raises:
            DecodeError: If the snapshot cannot be decoded.
            RandomnessError: If randomness was lost or no longer matches.
            SubmissionError: If submission failed after retries, or reverted.
            IllegalActionError: If the engine produced an illegal decision.
        """
        self._cycles += 1
        state = await self._fetch_state() if self.game_id is not None else None
        decision = self._decide(state)
        self._decision = decision
        result = CycleResult(decision=decision, state=state)

        if not decision.calls:
            return result

        if decision.needs_randomness:
            result.receipts = await self._execute_with_randomness(decision, state)
        else:
            result.receipts = [await self._submit(decision.calls, decision.action)]
        result.submitted = True
        if decision.action is ActionKind.START_GAME:
            self._needs_start = False

        if state is None:
            await self._adopt_new_game()
        else:
            await self._wait_for_fresh_state(state)
        return result

    def _decide(self, state: GameState | None) -> BotDecision:
        if self._needs_start and state is not None:
            if state.adventurer.action_count == 0:
                return self.engine.decide_start_game(state, self.game_id or 0)
            self._needs_start = False
        return self.engine.decide(state, game_id=self.game_id or 0)

    async def _fetch_state(self) -> GameState:
        assert self.game_id is not None
        words = await self.chain.read_game_state(self.game_id)
        state = decode_game_state(words)
        self._state = state
        return state

    async def _adopt_new_game(self) -> None:
        owner = self.engine.recipient
        game_id = await self.chain.latest_game_id(owner)
        if game_id is None:
            raise SubmissionError(
                "Game purchase landed but no game is owned",
                action=ActionKind.BUY_GAME,
                details={"owner": owner},
            )
        self.game_id = game_id
        self._needs_start = True
        bind_context(game_id=game_id)
        logger.info("Adopted new game", owner=owner)

    async def _wait_for_fresh_state(self, before: GameState) -> GameState | None:
        """Poll until the state fingerprint moves, within the configured attempts."""
        fingerprint = before.fingerprint()
        for attempt in range(1, self.settings.stale_poll_attempts + 1):
            await self._sleep(self.settings.state_poll_interval)
            state = await self._fetch_state()
            if state.fingerprint() != fingerprint:
                logger.debug("Fresh state observed", attempt=attempt)
                return state
        logger.warning(
            "State unchanged after transaction",
            attempts=self.settings.stale_poll_attempts,
        )
        return None

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def _submit(self, calls: Sequence[ContractCall], action: ActionKind) -> TransactionReceipt:
        """Submit one multicall, retrying transport failures with backoff.

        Raises:
            TransactionRevertedError: If the transaction reverted (never retried).
            SubmissionError: If every attempt failed.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception(
                lambda exc: isinstance(exc, SubmissionError) and exc.retriable
            ),
            stop=stop_after_attempt(self.settings.max_submit_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self.settings.backoff_min,
                max=self.settings.backoff_max,
            ),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                logger.info(
                    "Submitting transaction",
                    action=action,
                    entrypoints=[call.entrypoint for call in calls],
                    attempt=attempt.retry_state.attempt_number,
                )
                receipt = await self.chain.submit(calls)
                if receipt.reverted:
                    raise TransactionRevertedError(
                        f"Transaction {receipt.transaction_hash} reverted",
                        action=action,
                        revert_reason=receipt.revert_reason,
                    )
        logger.info("Transaction accepted", action=action, tx=receipt.transaction_hash)
        return receipt

    async def _execute_with_randomness(
        self,
        decision: BotDecision,
        state: GameState | None,
    ) -> list[TransactionReceipt]:
        """Request randomness, wait for it, then submit the consuming calls.

        The consuming calls are only ever sent once. A lost request is
        resubmitted, up to ``max_randomness_retries`` times.

        Raises:
            SaltMismatchError: If the state moved between the request and
                its fulfilment; the consuming calls are not sent.
            RandomnessTimeoutError: If every request went unfulfilled.
        """
        assert state is not None
        request, consumers = decision.calls[0], decision.calls[1:]
        receipts: list[TransactionReceipt] = []

        for attempt in range(self.settings.max_randomness_retries + 1):
            receipts.append(await self._submit((request,), request.action))
            try:
                await self._await_randomness(request.salt)
            except RandomnessTimeoutError:
                fresh = await self._fetch_state()
                if fresh.adventurer.action_count != state.adventurer.action_count:
                    logger.info("Action landed while waiting for randomness")
                    return receipts
                if attempt >= self.settings.max_randomness_retries:
                    raise
                logger.warning(
                    "Randomness request lost, resubmitting",
                    salt=hex(request.salt),
                    attempt=attempt + 1,
                )
                continue

            fresh = await self._fetch_state()
            if fresh.fingerprint() != state.fingerprint():
                raise SaltMismatchError(
                    "State moved while waiting for randomness; the salt no longer matches it",
                    salt=request.salt,
                    details={"action": decision.action},
                )
            receipts.append(await self._submit(consumers, decision.action))
            return receipts

        raise RandomnessTimeoutError("Randomness never fulfilled", salt=request.salt)

    async def _await_randomness(self, salt: int) -> None:
        """Poll the VRF provider until ``salt`` is fulfilled.

        Raises:
            RandomnessTimeoutError: If the timeout elapses first.
        """
        interval = self.settings.randomness_poll_interval
        polls = max(1, int(self.settings.randomness_timeout // interval)) if interval > 0 else 1
        for _ in range(polls):
            if await self.chain.is_randomness_fulfilled(salt):
                logger.debug("Randomness fulfilled", salt=hex(salt))
                return
            await self._sleep(interval)
        raise RandomnessTimeoutError(
            f"Randomness not fulfilled within {self.settings.randomness_timeout}s",
            salt=salt,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(self) -> GameSummary:
        """Run cycles according to the configured mode.

        ``single`` runs one cycle; ``continuous`` runs until the adventurer
        dies or the game can no longer be played.

        Returns:
            Summary of the game when the loop ends.

        Raises:
            RetriesExhaustedError: After too many failed cycles in a row.
            SurvivorBotError: In single mode, the cycle's failure.
        """
        if self.game_id is not None:
            bind_context(game_id=self.game_id)
        continuous = self.settings.mode == "continuous"
        consecutive_errors = 0
        cause = ""

        try:
            while True:
                try:
                    result = await self.run_cycle()
                except TransactionRevertedError as exc:
                    if is_game_finished(exc.revert_reason):
                        cause = exc.revert_reason
                        logger.warning("Game can no longer be played", reason=cause)
                        break
                    if not continuous:
                        raise
                    logger.warning(
                        "Transaction reverted, refetching state",
                        reason=exc.revert_reason,
                        stale=is_stale_state(exc.revert_reason),
                    )
                    consecutive_errors = await self._back_off(consecutive_errors, exc)
                    continue
                except (DecodeError, RandomnessError, SubmissionError, IllegalActionError) as exc:
                    logger.error(
                        "Cycle failed",
                        error=type(exc).__name__,
                        message=exc.message,
                        details=exc.details,
                    )
                    if not continuous:
                        raise
                    consecutive_errors = await self._back_off(consecutive_errors, exc)
                    continue

                consecutive_errors = 0
                if result.decision.is_terminal:
                    cause = result.decision.reason
                    break
                if not continuous:
                    cause = "single cycle completed"
                    break
                if not result.submitted:
                    await self._sleep(self.settings.loop_delay)
        finally:
            summary = self._summary(cause)
            logger.info(
                "Game loop finished",
                phase=summary.phase,
                level=summary.level,
                xp=summary.xp,
                cycles=summary.cycles,
                cause=summary.cause,
            )
            clear_context()
        return summary

    async def _back_off(self, consecutive_errors: int, exc: Exception) -> int:
        consecutive_errors += 1
        if consecutive_errors >= self.settings.max_consecutive_errors:
            raise RetriesExhaustedError(
                f"Giving up after {consecutive_errors} failed cycles",
                attempts=consecutive_errors,
            ) from exc
        delay = min(
            self.settings.backoff_max,
            self.settings.backoff_min * 2 ** (consecutive_errors - 1),
        )
        logger.info("Backing off", delay=delay, consecutive_errors=consecutive_errors)
        await self._sleep(delay)
        return consecutive_errors

    def _summary(self, cause: str) -> GameSummary:
        summary = GameSummary(game_id=self.game_id, cycles=self._cycles, cause=cause)
        if self._decision is not None:
            summary.phase = self._decision.phase
            summary.last_action = self._decision.action
        if self._state is not None:
            adventurer = self._state.adventurer
            summary.level = adventurer.level
            summary.xp = adventurer.xp
            summary.gold = adventurer.gold
            summary.health = adventurer.health
            summary.stats = adventurer.stats.model_dump()
        return summary


async def run_games(
    chain: ChainClient,
    engine: DecisionEngine,
    game_ids: Sequence[int],
    settings: LoopSettings | None = None,
) -> list[GameSummary | BaseException]:
    """Play several games concurrently, one task per game.

    A failure in one game does not cancel the others; it is returned in
    that game's position instead of a summary.

    Args:
        chain: Chain collaborator shared by all loops.
        engine: Stateless decision engine shared by all loops.
        game_ids: Games to play.
        settings: Loop policy for every game.

    Returns:
        Summaries (or exceptions) in ``game_ids`` order.
    """
    loops = [GameLoop(chain, engine, settings, game_id=game_id) for game_id in game_ids]
    results = await asyncio.gather(*(loop.run() for loop in loops), return_exceptions=True)
    for game_id, outcome in zip(game_ids, results):
        if isinstance(outcome, BaseException):
            logger.error("Game loop failed", game_id=game_id, error=repr(outcome))
    return list(results)


__all__ = [
    "GAME_FINISHED_PATTERNS",
    "STALE_STATE_PATTERNS",
    "is_game_finished",
    "is_stale_state",
    "CycleResult",
    "GameSummary",
    "GameLoop",
    "run_games",
]
