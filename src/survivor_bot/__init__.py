"""survivor-bot: autonomous player for the Loot Survivor dungeon crawler.

Reads an adventurer's on-chain state, decides the next legal action and
submits the transactions that carry it out, requesting VRF randomness
first whenever the action consumes it.
"""

from __future__ import annotations

__version__ = "0.1.0"
__all__ = ["__version__"]
