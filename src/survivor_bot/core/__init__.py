"""Core infrastructure for survivor-bot: configuration, errors and logging."""

from __future__ import annotations

from survivor_bot.core.config import Settings, clear_settings_cache, get_settings
from survivor_bot.core.exceptions import (
    ConfigurationError,
    DecodeError,
    IllegalActionError,
    RandomnessError,
    RandomnessTimeoutError,
    RetriesExhaustedError,
    SaltMismatchError,
    SubmissionError,
    SurvivorBotError,
    TransactionRevertedError,
    ValidationError,
)
from survivor_bot.core.logging import bind_context, clear_context, configure_logging, get_logger


__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "SurvivorBotError",
    "ConfigurationError",
    "ValidationError",
    "DecodeError",
    "RandomnessError",
    "SaltMismatchError",
    "RandomnessTimeoutError",
    "SubmissionError",
    "TransactionRevertedError",
    "RetriesExhaustedError",
    "IllegalActionError",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
