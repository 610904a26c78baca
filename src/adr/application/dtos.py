from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from adr.domain.errors import ValidationError
from adr.domain.models.battle import BattleAction, BattleSession, TurnLogEntry
from adr.domain.models.character import Character
from adr.domain.models.item import EquipmentSlot, Item, Shop
from adr.domain.models.jail import JailRecord
from adr.domain.models.monster import MonsterTemplate
from adr.domain.models.stats import STAT_NAMES, AbilityScores
from adr.domain.models.vault import Stock, StockMarket, VaultAccount


def _require_positive(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer.", {name: value})
    if value <= 0:
        raise ValidationError(f"{name} must be positive.", {name: value})
    return value


def _require_id(name: str, value: int) -> int:
    return _require_positive(name, value)


# Requests


@dataclass(frozen=True)
class StartBattleRequest:
    now: int = 0
    monster_id: Optional[int] = None


@dataclass(frozen=True)
class BattleTurnRequest:
    action: BattleAction

    def __post_init__(self) -> None:
        try:
            action = BattleAction(self.action)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown battle action '{self.action}'.",
                {"allowed": [member.value for member in BattleAction]},
            ) from exc
        object.__setattr__(self, "action", action)


@dataclass(frozen=True)
class CreateCharacterRequest:
    character_id: int
    user_id: int
    name: str
    race_id: int
    class_id: int
    element_id: int
    alignment_id: int
    stats: AbilityScores

    def __post_init__(self) -> None:
        _require_id("character_id", self.character_id)
        _require_id("user_id", self.user_id)
        name = str(self.name or "").strip()
        if not 2 <= len(name) <= 30:
            raise ValidationError("Character name must be 2-30 characters.", {"name": self.name})
        object.__setattr__(self, "name", name)


@dataclass(frozen=True)
class TrainStatRequest:
    stat: str

    def __post_init__(self) -> None:
        if self.stat not in STAT_NAMES:
            raise ValidationError(f"Unknown characteristic '{self.stat}'.", {"allowed": list(STAT_NAMES)})


@dataclass(frozen=True)
class LearnSkillRequest:
    skill_id: int

    def __post_init__(self) -> None:
        _require_id("skill_id", self.skill_id)


@dataclass(frozen=True)
class ChangeClassRequest:
    class_id: int

    def __post_init__(self) -> None:
        _require_id("class_id", self.class_id)


@dataclass(frozen=True)
class ItemRequest:
    item_id: int

    def __post_init__(self) -> None:
        _require_id("item_id", self.item_id)


@dataclass(frozen=True)
class TradeRequest:
    item_id: int
    now: int

    def __post_init__(self) -> None:
        _require_id("item_id", self.item_id)


@dataclass(frozen=True)
class UnequipRequest:
    slot: EquipmentSlot

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "slot", EquipmentSlot(self.slot))
        except ValueError as exc:
            raise ValidationError(f"Unknown equipment slot '{self.slot}'.") from exc


@dataclass(frozen=True)
class StealRequest:
    item_id: int
    now: int

    def __post_init__(self) -> None:
        _require_id("item_id", self.item_id)


@dataclass(frozen=True)
class VaultAmountRequest:
    amount: int
    now: int

    def __post_init__(self) -> None:
        _require_positive("amount", self.amount)


@dataclass(frozen=True)
class StockTradeRequest:
    stock_id: int
    shares: int
    now: int

    def __post_init__(self) -> None:
        _require_id("stock_id", self.stock_id)
        _require_positive("shares", self.shares)


@dataclass(frozen=True)
class ForgeItemRequest:
    recipe_id: int
    material_ids: Tuple[int, ...]

    def __post_init__(self) -> None:
        _require_id("recipe_id", self.recipe_id)
        ids = tuple(self.material_ids)
        if not ids:
            raise ValidationError("Forging needs at least one material.")
        if len(set(ids)) != len(ids):
            raise ValidationError("A material cannot be used twice.", {"material_ids": list(ids)})
        for item_id in ids:
            _require_id("material_id", item_id)
        object.__setattr__(self, "material_ids", ids)


# Results

@dataclass(frozen=True)
class ShopItemView:
    item_id: int
    name: str
    type_id: int
    quality_id: int
    base_price: int
    price: int
    quantity: Optional[int]
    slot: Optional[EquipmentSlot]



@dataclass(frozen=True)
class LevelUpView:
    from_level: int
    to_level: int
    hp_gain: int
    mp_gain: int


@dataclass
class VictoryRewards:
    xp: int
    gold: int
    sp: int
    level_ups: List[LevelUpView] = field(default_factory=list)
    dropped_item: Optional[Item] = None


@dataclass
class BattleStartResult:
    character: Character
    session: BattleSession
    monster: MonsterTemplate
    scaling: float


@dataclass
class BattleTurnResult:
    character: Character
    session: BattleSession
    entry: TurnLogEntry
    rewards: Optional[VictoryRewards] = None


@dataclass
class CharacterResult:
    character: Character
    message: str = ""
    gold_spent: int = 0


@dataclass
class TradeResult:
    character: Character
    shop: Optional[Shop]
    item: Optional[Item]
    price: int
    tax: int = 0
    message: str = ""


@dataclass
class GiveResult:
    giver: Character
    receiver: Character
    item: Item


@dataclass(frozen=True)
class StealableItemView:
    item_id: int
    name: str
    price: int
    difficulty: int
    roll_needed: int


@dataclass
class StealResult:
    character: Character
    shop: Shop
    success: bool
    difficulty: int
    stolen_item: Optional[Item] = None
    fine: int = 0
    jail_record: Optional[JailRecord] = None
    released_record: Optional[JailRecord] = None
    message: str = ""


@dataclass(frozen=True)
class JailStatus:
    is_jailed: bool
    record_id: Optional[int] = None
    reason: str = ""
    jailed_at: Optional[int] = None
    release_at: Optional[int] = None
    bail_cost: int = 0
    remaining_seconds: int = 0
    remaining_formatted: str = ""


@dataclass
class JailStatusResult:
    record: Optional[JailRecord]
    status: JailStatus


@dataclass
class BailResult:
    character: Character
    record: JailRecord
    cost: int


@dataclass(frozen=True)
class JailHistoryRow:
    record_id: int
    reason: str
    jailed_at: int
    release_at: int
    bail_cost: int
    status: str


@dataclass
class AccrualResult:
    account: VaultAccount
    interest: int = 0
    loan_interest: int = 0


@dataclass
class VaultResult:
    character: Character
    account: VaultAccount
    amount: int
    interest_applied: int = 0
    message: str = ""


@dataclass(frozen=True)
class VaultStatus:
    balance: int
    loan_amount: int
    loan_payoff: int
    loan_overdue: bool
    next_interest_in: int
    interest_rate: int
    loan_interest_rate: int


@dataclass
class StockTradeResult:
    character: Character
    account: VaultAccount
    stock: Stock
    shares: int
    total: int
    profit: int = 0
    message: str = ""


@dataclass
class StockUpdateResult:
    market: StockMarket
    periods_applied: int


@dataclass
class DailyLimitResult:
    character: Character
    reset: bool


@dataclass
class ForgeResult:
    character: Character
    outcome: str
    item: Optional[Item] = None
    gold_spent: int = 0
    message: str = ""
