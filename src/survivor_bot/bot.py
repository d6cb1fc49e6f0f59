"""Bot entry point.

Wires settings, logging, the decision engine and one execution loop per
game around a chain client supplied by the caller:

    >>> summaries = asyncio.run(run_bot(chain))
    >>> summaries = asyncio.run(run_bot(chain, game_ids=[207649, 207650]))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from survivor_bot.core.config import Settings, get_settings
from survivor_bot.core.logging import configure_logging, get_logger
from survivor_bot.engine.decision import DecisionEngine
from survivor_bot.engine.loop import GameLoop, GameSummary, run_games


if TYPE_CHECKING:
    from survivor_bot.engine.transport import ChainClient

logger = get_logger(__name__)


async def run_bot(
    chain: ChainClient,
    settings: Settings | None = None,
    *,
    game_ids: Sequence[int] | None = None,
) -> list[GameSummary | BaseException]:
    """Play the given games, or buy and play a new one.

    Args:
        chain: Chain collaborator that reads state and signs transactions.
        settings: Application settings (loaded from the environment by default).
        game_ids: Existing games to resume; None or empty buys a new game.

    Returns:
        One summary per game. With several games, a game whose loop
        failed has its exception in place of the summary.
    """
    settings = settings or get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        log_file=settings.log_file,
    )
    engine = DecisionEngine.from_settings(settings)
    logger.info(
        "Bot starting",
        version=settings.app_version,
        mode=settings.loop.mode,
        stat_policy=settings.strategy.stat_policy,
        games=list(game_ids or []),
    )

    if not game_ids:
        return [await GameLoop(chain, engine, settings.loop).run()]
    if len(game_ids) == 1:
        return [await GameLoop(chain, engine, settings.loop, game_id=game_ids[0]).run()]
    return await run_games(chain, engine, game_ids, settings.loop)


__all__ = ["run_bot"]
