"""Configuration management for survivor-bot.

Centralized configuration using pydantic-settings, read from environment
variables and an optional ``.env`` file. The core never owns these
values: contract addresses, the RPC endpoint and the run mode are
consumed by the call builder and the execution loop.

Example:
    >>> from survivor_bot.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.loop.mode
    'single'

Environment Variables:
    SURVIVOR_BOT_CONTRACT_GAME_ADDRESS: Game systems contract
    SURVIVOR_BOT_CONTRACT_DUNGEON_ADDRESS: Dungeon (game token) contract
    SURVIVOR_BOT_CONTRACT_VRF_PROVIDER_ADDRESS: VRF provider contract
    SURVIVOR_BOT_CONTRACT_TICKET_TOKEN_ADDRESS: Ticket ERC-20 contract
    SURVIVOR_BOT_NETWORK_RPC_URL: Starknet JSON-RPC endpoint
    SURVIVOR_BOT_LOOP_MODE: ``single`` or ``continuous``
    SURVIVOR_BOT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SURVIVOR_BOT_LOG_FILE: Append JSON log lines to this file
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from survivor_bot.core.exceptions import ConfigurationError
from survivor_bot.models.catalog import STARTER_WEAPONS


_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


class ContractSettings(BaseSettings):
    """Addresses of the contracts the bot talks to.

    Attributes:
        game_address: Game systems contract (explore, attack, market...).
        dungeon_address: Dungeon contract that mints game tokens.
        vrf_provider_address: VRF provider that fulfils randomness requests.
        ticket_token_address: ERC-20 ticket spent to buy a game.
    """

    model_config = SettingsConfigDict(
        env_prefix="SURVIVOR_BOT_CONTRACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    game_address: str = Field(
        default="0x06f7c4350d6d5ee926b3ac4fa0c9c351055456e75c92227468d84232fc493a9c",
        description="Game systems contract address",
    )
    dungeon_address: str = Field(
        default="0x00a67ef20b61a9846e1c82b411175e6ab167ea9f8632bd6c2091823c3629ec42",
        description="Dungeon contract address",
    )
    vrf_provider_address: str = Field(
        default="0x051fea4450da9d6aee758bdeba88b2f665bcbf549d2c61421aa724e9ac0ced8f",
        description="VRF provider contract address",
    )
    ticket_token_address: str = Field(
        default="0x0452810188C4Cb3AEbD63711a3b445755BC0D6C4f27B923fDd99B1A118858136",
        description="Ticket token contract address",
    )

    @field_validator(
        "game_address",
        "dungeon_address",
        "vrf_provider_address",
        "ticket_token_address",
        mode="after",
    )
    @classmethod
    def validate_address(cls, value: str, info: ValidationInfo) -> str:
        """Reject missing or malformed contract addresses.

        Args:
            value: The configured address.
            info: Validation info carrying the field name.

        Returns:
            The address, unchanged.

        Raises:
            ConfigurationError: If the address is empty or not hexadecimal.
        """
        field_name = info.field_name
        if not value:
            raise ConfigurationError(
                "Contract address is not configured",
                config_key=field_name,
            )
        if not _HEX_ADDRESS.match(value):
            raise ConfigurationError(
                f"Contract address {value!r} is not a 0x-prefixed hex string",
                config_key=field_name,
            )
        return value


class NetworkSettings(BaseSettings):
    """Configuration of the node the transport collaborator connects to.

    Attributes:
        rpc_url: Starknet JSON-RPC endpoint.
        chain_id: Chain id as a hex-encoded short string.
        account_address: Account that owns the games and receives new ones.
    """

    model_config = SettingsConfigDict(
        env_prefix="SURVIVOR_BOT_NETWORK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    rpc_url: str = Field(
        default="https://api.cartridge.gg/x/starknet/mainnet/rpc/v0_9",
        description="Starknet JSON-RPC endpoint",
    )
    chain_id: str = Field(
        default="0x534e5f4d41494e",
        description="Chain id (SN_MAIN)",
    )
    account_address: str = Field(
        default="0x0",
        description="Account owning the adventurers",
    )

    @field_validator("rpc_url", mode="after")
    @classmethod
    def validate_rpc_url(cls, value: str) -> str:
        """Ensure the endpoint is an http(s) URL.

        Raises:
            ConfigurationError: If the URL scheme is not http or https.
        """
        if not value.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"RPC endpoint {value!r} must be an http(s) URL",
                config_key="rpc_url",
            )
        return value


class LoopSettings(BaseSettings):
    """Timing and retry policy of the execution loop.

    Attributes:
        mode: ``single`` runs one decision and exits, ``continuous`` plays until death.
        loop_delay: Seconds to sleep between cycles that issued no calls.
        state_poll_interval: Seconds between reads while waiting for fresh state.
        stale_poll_attempts: Reads before giving up on a state change after a transaction.
        randomness_poll_interval: Seconds between randomness fulfilment checks.
        randomness_timeout: Seconds to wait for a randomness fulfilment.
        max_randomness_retries: Resubmissions of a lost request + action pair.
        max_submit_attempts: Submission attempts before surfacing the failure.
        backoff_min: Lower bound of the exponential backoff, in seconds.
        backoff_max: Upper bound of the exponential backoff, in seconds.
        max_consecutive_errors: Failed cycles in a row before the loop stops.
    """

    model_config = SettingsConfigDict(
        env_prefix="SURVIVOR_BOT_LOOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mode: Literal["single", "continuous"] = Field(
        default="single",
        description="Run mode",
    )
    loop_delay: float = Field(default=0.5, ge=0, le=60, description="Idle delay between cycles")
    state_poll_interval: float = Field(
        default=1.5,
        ge=0,
        le=60,
        description="Delay between state reads while waiting for fresh state",
    )
    stale_poll_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="State reads before proceeding with stale state",
    )
    randomness_poll_interval: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="Delay between randomness fulfilment checks",
    )
    randomness_timeout: float = Field(
        default=30.0,
        ge=0,
        le=600,
        description="Maximum wait for a randomness fulfilment",
    )
    max_randomness_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Resubmissions of a lost randomness request",
    )
    max_submit_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Submission attempts before surfacing the failure",
    )
    backoff_min: float = Field(default=0.5, ge=0, le=60, description="Minimum backoff")
    backoff_max: float = Field(default=30.0, ge=0, le=600, description="Maximum backoff")
    max_consecutive_errors: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Failed cycles in a row before the loop stops",
    )

    @model_validator(mode="after")
    def validate_backoff_bounds(self) -> "LoopSettings":
        """Ensure the backoff window is not inverted.

        Raises:
            ConfigurationError: If backoff_min exceeds backoff_max.
        """
        if self.backoff_min > self.backoff_max:
            raise ConfigurationError(
                f"backoff_min ({self.backoff_min}) must not exceed "
                f"backoff_max ({self.backoff_max})",
                config_key="backoff_min",
            )
        return self


class StrategySettings(BaseSettings):
    """Knobs of the decision engine.

    Attributes:
        stat_policy: Stat allocation policy name.
        adventurer_name: Name written on newly bought games.
        starter_weapon_id: Weapon picked at ``start_game``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SURVIVOR_BOT_STRATEGY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    stat_policy: Literal["balanced", "evasive"] = Field(
        default="balanced",
        description="Stat allocation policy",
    )
    adventurer_name: str = Field(default="BOT", description="Adventurer name")
    starter_weapon_id: int = Field(
        default=46,
        description="Starter weapon: Wand(12), Book(16), Short Sword(46), Club(76)",
    )

    @field_validator("starter_weapon_id", mode="after")
    @classmethod
    def validate_starter_weapon(cls, value: int) -> int:
        """Only the four starter weapons can be picked at start_game.

        Raises:
            ConfigurationError: If the id is not a starter weapon.
        """
        if value not in STARTER_WEAPONS:
            raise ConfigurationError(
                f"Weapon {value} is not a starter weapon {STARTER_WEAPONS}",
                config_key="starter_weapon_id",
            )
        return value


class Settings(BaseSettings):
    """Main settings aggregating all configuration groups.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Render logs as JSON lines.
        log_file: File that receives JSON log lines instead of stdout.
        contracts: Contract addresses.
        network: Node connection settings.
        loop: Execution loop policy.
        strategy: Decision engine knobs.
    """

    model_config = SettingsConfigDict(
        env_prefix="SURVIVOR_BOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="survivor-bot", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Render logs as JSON")
    log_file: str | None = Field(
        default=None,
        description="Append JSON log lines to this file instead of stdout",
    )

    contracts: ContractSettings = Field(default_factory=ContractSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)
    loop: LoopSettings = Field(default_factory=LoopSettings)
    strategy: StrategySettings = Field(default_factory=StrategySettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "ContractSettings",
    "NetworkSettings",
    "LoopSettings",
    "StrategySettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
