"""Contract call descriptors and the builder that produces them.

Every action the bot can take is a closed, frozen call variant tagged by
its ``action`` field. The decision engine only ever hands the execution
loop a sequence of these variants; the loop turns them into the wire
shape ``{contractAddress, entrypoint, calldata}`` at the last moment.

The builder formats and encodes only. Whether an action is legal in the
current game phase is the decision engine's business; the builder checks
structure (non-negative ids, a name that fits in one short string).

Example:
    >>> builder = CallBuilder(get_settings().contracts)
    >>> call = builder.explore(game_id=207649, till_beast=False)
    >>> call.to_wire()["calldata"]
    ['207649', '0']
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Final, Literal, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from survivor_bot.core.config import ContractSettings
from survivor_bot.core.exceptions import ValidationError
from survivor_bot.core.logging import get_logger
from survivor_bot.engine.salt import battle_salt, explore_salt
from survivor_bot.models.enums import ActionKind
from survivor_bot.models.game_state import Stats


logger = get_logger(__name__)

DEFAULT_ADVENTURER_NAME: Final = "BOT"
MAX_SHORT_STRING_LENGTH: Final = 31
TICKET_DECIMALS: Final = 10**18

_RANDOMNESS_SOURCE_SALT: Final = "1"


def _felt(address: str) -> str:
    """Hex address to a decimal field-element string."""
    return str(int(address, 16))


def _flag(value: bool) -> str:
    return "1" if value else "0"


def encode_short_string(text: str) -> int:
    """Encode ASCII text of at most 31 characters as one field element.

    Raises:
        ValidationError: If the text is empty, too long or not ASCII.
    """
    if not text or len(text) > MAX_SHORT_STRING_LENGTH:
        raise ValidationError(
            f"Short string must hold 1 to {MAX_SHORT_STRING_LENGTH} characters",
            field_name="name",
            invalid_value=text,
        )
    if not text.isascii():
        raise ValidationError(
            "Short string must be ASCII",
            field_name="name",
            invalid_value=text,
        )
    return int.from_bytes(text.encode("ascii"), "big")


# =============================================================================
# Call Variants
# =============================================================================


class _ContractCall(BaseModel):
    """Shared shape of every call variant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entrypoint: ClassVar[str]
    needs_randomness: ClassVar[bool] = False

    contract_address: str = Field(description="Hex address of the target contract")

    @computed_field(description="Ordered decimal field-element strings")
    @property
    def calldata(self) -> tuple[str, ...]:
        return self._encode()

    def _encode(self) -> tuple[str, ...]:
        raise NotImplementedError

    @property
    def is_randomness_request(self) -> bool:
        """Whether this call asks the VRF provider for randomness."""
        return False

    def to_wire(self) -> dict[str, Any]:
        """The descriptor handed to the signing collaborator."""
        return {
            "contractAddress": self.contract_address,
            "entrypoint": self.entrypoint,
            "calldata": list(self.calldata),
        }


class _RequestRandomCall(_ContractCall):
    entrypoint: ClassVar[str] = "request_random"

    caller: str = Field(description="Contract that will consume the randomness")
    salt: int = Field(ge=0, description="Salt the consumer recomputes")

    @property
    def is_randomness_request(self) -> bool:
        return True

    def _encode(self) -> tuple[str, ...]:
        return (_felt(self.caller), _RANDOMNESS_SOURCE_SALT, str(self.salt))


class RequestRandomForExploreCall(_RequestRandomCall):
    """VRF request salted for the next ``explore``."""

    action: Literal[ActionKind.REQUEST_RANDOM_FOR_EXPLORE] = ActionKind.REQUEST_RANDOM_FOR_EXPLORE


class RequestRandomForBattleCall(_RequestRandomCall):
    """VRF request salted for the next ``attack``, ``flee`` or ``start_game``."""

    action: Literal[ActionKind.REQUEST_RANDOM_FOR_BATTLE] = ActionKind.REQUEST_RANDOM_FOR_BATTLE


class ApproveTicketCall(_ContractCall):
    """ERC-20 approval letting the dungeon spend game tickets."""

    entrypoint: ClassVar[str] = "approve"
    action: Literal[ActionKind.APPROVE_TICKET] = ActionKind.APPROVE_TICKET

    spender: str
    amount: int = Field(ge=0, description="Whole tickets")

    def _encode(self) -> tuple[str, ...]:
        # u256 as (low, high)
        return (_felt(self.spender), str(self.amount * TICKET_DECIMALS), "0")


class BuyGameCall(_ContractCall):
    """Mint a new adventurer token paid with a ticket."""

    entrypoint: ClassVar[str] = "buy_game"
    action: Literal[ActionKind.BUY_GAME] = ActionKind.BUY_GAME

    name: int = Field(ge=0, description="Adventurer name as a short string")
    recipient: str

    def _encode(self) -> tuple[str, ...]:
        # payment type ticket, Some(name), recipient, not soulbound
        return ("0", "0", str(self.name), _felt(self.recipient), "0")


class StartGameCall(_ContractCall):
    """Start a purchased game with a starter weapon."""

    entrypoint: ClassVar[str] = "start_game"
    needs_randomness: ClassVar[bool] = True
    action: Literal[ActionKind.START_GAME] = ActionKind.START_GAME

    game_id: int = Field(ge=0)
    weapon_id: int = Field(ge=0)

    def _encode(self) -> tuple[str, ...]:
        return (str(self.game_id), str(self.weapon_id))


class ExploreCall(_ContractCall):
    """Explore the dungeon."""

    entrypoint: ClassVar[str] = "explore"
    needs_randomness: ClassVar[bool] = True
    action: Literal[ActionKind.EXPLORE] = ActionKind.EXPLORE

    game_id: int = Field(ge=0)
    till_beast: bool = False

    def _encode(self) -> tuple[str, ...]:
        return (str(self.game_id), _flag(self.till_beast))


class AttackCall(_ContractCall):
    """Attack the engaged beast."""

    entrypoint: ClassVar[str] = "attack"
    needs_randomness: ClassVar[bool] = True
    action: Literal[ActionKind.ATTACK] = ActionKind.ATTACK

    game_id: int = Field(ge=0)
    to_the_death: bool = False

    def _encode(self) -> tuple[str, ...]:
        return (str(self.game_id), _flag(self.to_the_death))


class FleeCall(_ContractCall):
    """Try to escape the engaged beast."""

    entrypoint: ClassVar[str] = "flee"
    needs_randomness: ClassVar[bool] = True
    action: Literal[ActionKind.FLEE] = ActionKind.FLEE

    game_id: int = Field(ge=0)
    to_the_death: bool = False

    def _encode(self) -> tuple[str, ...]:
        return (str(self.game_id), _flag(self.to_the_death))


class SelectStatUpgradesCall(_ContractCall):
    """Spend pending stat points; ``stats`` holds the points per attribute."""

    entrypoint: ClassVar[str] = "select_stat_upgrades"
    action: Literal[ActionKind.SELECT_STAT_UPGRADES] = ActionKind.SELECT_STAT_UPGRADES

    game_id: int = Field(ge=0)
    stats: Stats

    def _encode(self) -> tuple[str, ...]:
        return (str(self.game_id), *(str(points) for points in self.stats.as_tuple()))


class ItemPurchase(BaseModel):
    """One market item to buy, optionally equipping it straight away."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item_id: int = Field(gt=0)
    equip: bool = True


class BuyItemsCall(_ContractCall):
    """Buy potions and market items in one transaction."""

    entrypoint: ClassVar[str] = "buy_items"
    action: Literal[ActionKind.BUY_ITEMS] = ActionKind.BUY_ITEMS

    game_id: int = Field(ge=0)
    potions: int = Field(default=0, ge=0)
    items: tuple[ItemPurchase, ...] = ()

    def _encode(self) -> tuple[str, ...]:
        encoded = [str(self.game_id), str(self.potions), str(len(self.items))]
        for purchase in self.items:
            encoded.extend((str(purchase.item_id), _flag(purchase.equip)))
        return tuple(encoded)


class EquipCall(_ContractCall):
    """Move items from the bag into their equipment slots."""

    entrypoint: ClassVar[str] = "equip"
    action: Literal[ActionKind.EQUIP] = ActionKind.EQUIP

    game_id: int = Field(ge=0)
    item_ids: tuple[int, ...]

    def _encode(self) -> tuple[str, ...]:
        return (str(self.game_id), str(len(self.item_ids)), *map(str, self.item_ids))


class DropCall(_ContractCall):
    """Discard items from the bag or equipment."""

    entrypoint: ClassVar[str] = "drop"
    action: Literal[ActionKind.DROP] = ActionKind.DROP

    game_id: int = Field(ge=0)
    item_ids: tuple[int, ...]

    def _encode(self) -> tuple[str, ...]:
        return (str(self.game_id), str(len(self.item_ids)), *map(str, self.item_ids))


ContractCall = Annotated[
    Union[
        RequestRandomForExploreCall,
        RequestRandomForBattleCall,
        ApproveTicketCall,
        BuyGameCall,
        StartGameCall,
        ExploreCall,
        AttackCall,
        FleeCall,
        SelectStatUpgradesCall,
        BuyItemsCall,
        EquipCall,
        DropCall,
    ],
    Field(discriminator="action"),
]
"""Any call the builder produces, discriminated by ``action``."""


# =============================================================================
# Builder
# =============================================================================


def _require_non_negative(field_name: str, value: int) -> None:
    if value < 0:
        raise ValidationError(
            f"{field_name} must not be negative",
            field_name=field_name,
            invalid_value=value,
        )


def _require_item_ids(item_ids: Sequence[int]) -> tuple[int, ...]:
    ids = tuple(item_ids)
    if not ids:
        raise ValidationError("At least one item id is required", field_name="item_ids")
    for item_id in ids:
        if item_id <= 0:
            raise ValidationError(
                "Item ids must be positive",
                field_name="item_ids",
                invalid_value=item_id,
            )
    return ids


class CallBuilder:
    """Produces call variants addressed to the configured contracts.

    Attributes:
        contracts: Contract addresses the calls target.
    """

    def __init__(self, contracts: ContractSettings) -> None:
        """Initialize the builder.

        Args:
            contracts: Contract addresses the calls target.
        """
        self.contracts = contracts

    # -------------------------------------------------------------------------
    # Randomness
    # -------------------------------------------------------------------------

    def request_random_for_explore(self, game_id: int, xp: int) -> RequestRandomForExploreCall:
        """VRF request whose salt the next ``explore`` recomputes."""
        _require_non_negative("game_id", game_id)
        _require_non_negative("xp", xp)
        return RequestRandomForExploreCall(
            contract_address=self.contracts.vrf_provider_address,
            caller=self.contracts.game_address,
            salt=explore_salt(game_id, xp),
        )

    def request_random_for_battle(
        self,
        game_id: int,
        xp: int,
        action_count: int,
    ) -> RequestRandomForBattleCall:
        """VRF request whose salt the next battle action recomputes.

        Args:
            game_id: Adventurer token id.
            xp: Current adventurer xp.
            action_count: Current on-chain action count, never advanced here.
        """
        _require_non_negative("game_id", game_id)
        _require_non_negative("xp", xp)
        _require_non_negative("action_count", action_count)
        return RequestRandomForBattleCall(
            contract_address=self.contracts.vrf_provider_address,
            caller=self.contracts.game_address,
            salt=battle_salt(game_id, xp, action_count),
        )

    # -------------------------------------------------------------------------
    # Bootstrap
    # -------------------------------------------------------------------------

    def approve_ticket(self, amount: int = 1) -> ApproveTicketCall:
        """Approve the dungeon to spend ``amount`` whole tickets."""
        _require_non_negative("amount", amount)
        return ApproveTicketCall(
            contract_address=self.contracts.ticket_token_address,
            spender=self.contracts.dungeon_address,
            amount=amount,
        )

    def buy_game(self, name: str, recipient: str) -> BuyGameCall:
        """Buy a game for ``recipient``.

        Names that do not fit in one short string are replaced by
        ``DEFAULT_ADVENTURER_NAME``.
        """
        try:
            encoded = encode_short_string(name)
        except ValidationError:
            logger.warning(
                "Adventurer name rejected, using default",
                name=name,
                default=DEFAULT_ADVENTURER_NAME,
            )
            encoded = encode_short_string(DEFAULT_ADVENTURER_NAME)
        return BuyGameCall(
            contract_address=self.contracts.dungeon_address,
            name=encoded,
            recipient=recipient,
        )

    def start_game(self, game_id: int, weapon_id: int) -> StartGameCall:
        """Start ``game_id`` with a starter weapon."""
        _require_non_negative("game_id", game_id)
        _require_non_negative("weapon_id", weapon_id)
        return StartGameCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            weapon_id=weapon_id,
        )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def explore(self, game_id: int, till_beast: bool = False) -> ExploreCall:
        """Explore once (or until a beast when ``till_beast``)."""
        _require_non_negative("game_id", game_id)
        return ExploreCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            till_beast=till_beast,
        )

    def attack(self, game_id: int, to_the_death: bool = False) -> AttackCall:
        """Attack once (or until someone dies when ``to_the_death``)."""
        _require_non_negative("game_id", game_id)
        return AttackCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            to_the_death=to_the_death,
        )

    def flee(self, game_id: int, to_the_death: bool = False) -> FleeCall:
        """Try to flee once (or until escaped or dead when ``to_the_death``)."""
        _require_non_negative("game_id", game_id)
        return FleeCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            to_the_death=to_the_death,
        )

    def select_stat_upgrades(self, game_id: int, stats: Stats) -> SelectStatUpgradesCall:
        """Spend stat points as given per attribute."""
        _require_non_negative("game_id", game_id)
        return SelectStatUpgradesCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            stats=stats,
        )

    def buy_items(
        self,
        game_id: int,
        potions: int,
        items: Sequence[ItemPurchase] = (),
    ) -> BuyItemsCall:
        """Buy ``potions`` health potions and the listed market items."""
        _require_non_negative("game_id", game_id)
        _require_non_negative("potions", potions)
        return BuyItemsCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            potions=potions,
            items=tuple(items),
        )

    def equip(self, game_id: int, item_ids: Sequence[int]) -> EquipCall:
        """Equip bag items."""
        _require_non_negative("game_id", game_id)
        return EquipCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            item_ids=_require_item_ids(item_ids),
        )

    def drop(self, game_id: int, item_ids: Sequence[int]) -> DropCall:
        """Drop owned items."""
        _require_non_negative("game_id", game_id)
        return DropCall(
            contract_address=self.contracts.game_address,
            game_id=game_id,
            item_ids=_require_item_ids(item_ids),
        )


__all__ = [
    "DEFAULT_ADVENTURER_NAME",
    "MAX_SHORT_STRING_LENGTH",
    "encode_short_string",
    "RequestRandomForExploreCall",
    "RequestRandomForBattleCall",
    "ApproveTicketCall",
    "BuyGameCall",
    "StartGameCall",
    "ExploreCall",
    "AttackCall",
    "FleeCall",
    "SelectStatUpgradesCall",
    "ItemPurchase",
    "BuyItemsCall",
    "EquipCall",
    "DropCall",
    "ContractCall",
    "CallBuilder",
]
