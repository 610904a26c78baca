from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from adr.domain.errors import ConfigurationError


DAY_SECONDS = 86400

# Keys that appear in legacy configuration dumps but drive features this engine does not model.
_IGNORED_LEGACY_KEYS = frozenset(
    {
        "pvpEnable",
        "pvpDefiesMax",
        "itemModifierPower",
        "trainingSkillCost",
        "trainingUpgradeCost",
        "newShopPrice",
    }
)

_PERCENT_FIELDS = (
    "warehouse_tax",
    "shop_tax",
    "interest_rate",
    "loan_interest",
    "stock_min_change",
    "stock_max_change",
    "jail_chance",
    "critical_failure_chance",
    "mining_success_cap",
    "stone_cutting_success_cap",
    "forge_success_cap",
    "enchant_success_cap",
    "trading_modifier_cap",
)

_POSITIVE_FIELDS = (
    "interest_time",
    "loan_interest_time",
    "stock_update_time",
    "limit_reset_time",
    "skill_uses_per_level",
    "max_shares_per_transaction",
    "next_level_penalty",
)

_NON_NEGATIVE_FIELDS = (
    "battle_limit",
    "skill_limit",
    "trading_limit",
    "thief_limit",
    "monster_stats_modifier",
    "base_exp_min",
    "base_exp_max",
    "base_exp_modifier",
    "base_reward_min",
    "base_reward_max",
    "base_reward_modifier",
    "base_sp_modifier",
    "skill_trading_power",
    "training_charac_cost",
    "training_change_cost",
    "thief_failure_damage",
    "thief_failure_time",
    "shop_steal_min_level",
    "loan_max_sum",
    "temple_heal_cost",
    "temple_resurrect_cost",
    "bail_multiplier",
    "bail_minimum",
    "jail_max_duration",
    "theft_max_difficulty",
    "enchant_base_cost",
    "enchant_cost_per_power",
    "monster_level_window",
    "starting_gold",
)


def _camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass(frozen=True)
class GameConfig:
    """Every tunable the rules engine reads.

    Defaults reproduce the legacy game's shipped configuration. Build one with
    ``GameConfig.from_mapping`` when values come from an operator-supplied
    source so that names and types are checked.
    """

    max_characteristic: int = 20
    min_characteristic: int = 3
    allow_reroll: bool = True
    allow_character_delete: bool = True

    battle_limit: int = 20
    skill_limit: int = 30
    trading_limit: int = 30
    thief_limit: int = 10
    limit_reset_time: int = DAY_SECONDS

    battle_enable: bool = True
    monster_stats_modifier: int = 150
    base_exp_min: int = 10
    base_exp_max: int = 40
    base_exp_modifier: int = 120
    base_reward_min: int = 10
    base_reward_max: int = 40
    base_reward_modifier: int = 120
    base_sp_modifier: int = 120
    battle_calc_type: int = 1
    flee_chance: Optional[int] = None
    monster_level_window: int = 0

    skill_trading_power: int = 2
    trading_modifier_cap: int = 30
    training_charac_cost: int = 3000
    training_change_cost: int = 100
    warehouse_tax: int = 10
    shop_tax: int = 10
    starting_gold: int = 100

    thief_failure_damage: int = 2000
    thief_failure_punishment: bool = True
    thief_failure_time: int = 21600
    shop_steal_min_level: int = 5
    theft_difficulty_tiers: Tuple[Tuple[int, int], ...] = (
        (50, 7),
        (100, 12),
        (200, 20),
        (350, 30),
        (500, 45),
        (800, 75),
        (1500, 100),
    )
    theft_max_difficulty: int = 150

    jail_chance: int = 40
    bail_multiplier: int = 3
    bail_minimum: int = 500
    jail_duration_tiers: Tuple[Tuple[int, int], ...] = (
        (100, 300),
        (300, 900),
        (500, 1800),
        (1000, 3600),
    )
    jail_max_duration: int = 7200

    vault_enable: bool = True
    loan_enable: bool = True
    interest_rate: int = 4
    interest_time: int = DAY_SECONDS
    loan_interest: int = 15
    loan_interest_time: int = 10 * DAY_SECONDS
    loan_max_sum: int = 5000
    stock_max_change: int = 10
    stock_min_change: int = 0
    stock_update_time: int = DAY_SECONDS
    max_shares_per_transaction: int = 50

    temple_heal_cost: int = 100
    temple_resurrect_cost: int = 300
    next_level_penalty: int = 10

    skill_uses_per_level: int = 10
    critical_failure_chance: int = 5
    mining_success_cap: int = 90
    stone_cutting_success_cap: int = 85
    forge_success_cap: int = 85
    enchant_success_cap: int = 75
    enchant_base_cost: int = 50
    enchant_cost_per_power: int = 20

    def validate(self) -> "GameConfig":
        for name in _NON_NEGATIVE_FIELDS:
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative.", {"option": name})
        for name in _POSITIVE_FIELDS:
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive.", {"option": name})
        for name in _PERCENT_FIELDS:
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigurationError(f"{name} must be a percentage between 0 and 100.", {"option": name})
        if self.flee_chance is not None and not 0 <= self.flee_chance <= 100:
            raise ConfigurationError("flee_chance must be a percentage between 0 and 100.", {"option": "flee_chance"})
        if not 1 <= self.min_characteristic <= self.max_characteristic:
            raise ConfigurationError(
                "Characteristic range is inverted.",
                {"min_characteristic": self.min_characteristic, "max_characteristic": self.max_characteristic},
            )
        for low, high in (
            ("base_exp_min", "base_exp_max"),
            ("base_reward_min", "base_reward_max"),
            ("stock_min_change", "stock_max_change"),
        ):
            if getattr(self, low) > getattr(self, high):
                raise ConfigurationError(f"{low} must not exceed {high}.", {"option": low})
        if self.battle_calc_type not in (0, 1):
            raise ConfigurationError("battle_calc_type must be 0 or 1.", {"option": "battle_calc_type"})
        _check_tiers("jail_duration_tiers", self.jail_duration_tiers)
        _check_tiers("theft_difficulty_tiers", self.theft_difficulty_tiers)
        return self

    def with_overrides(self, **overrides: Any) -> "GameConfig":
        return replace(self, **overrides).validate()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "GameConfig":
        """Build a config from snake_case or legacy camelCase option names."""
        known = {field.name: field for field in fields(cls)}
        values: Dict[str, Any] = {}
        for key, raw in mapping.items():
            if key in _IGNORED_LEGACY_KEYS:
                continue
            name = key if key in known else _camel_to_snake(str(key))
            if name not in known:
                raise ConfigurationError(f"Unknown configuration option '{key}'.", {"option": key})
            values[name] = _coerce(name, raw, getattr(cls, name))
        return cls(**values).validate()


def _check_tiers(name: str, tiers: Tuple[Tuple[int, int], ...]) -> None:
    previous = None
    for row in tiers:
        if len(row) != 2:
            raise ConfigurationError(f"{name} rows must be (max_price, value) pairs.", {"option": name})
        if previous is not None and row[0] <= previous:
            raise ConfigurationError(f"{name} price breaks must be ascending.", {"option": name})
        previous = row[0]


def _coerce(name: str, raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off"}:
            return False
        raise ConfigurationError(f"{name} expects a boolean, got {raw!r}.", {"option": name})
    if isinstance(default, tuple):
        try:
            return tuple((int(limit), int(value)) for limit, value in raw)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{name} expects (max_price, value) pairs.", {"option": name}) from exc
    if raw is None:
        if name == "flee_chance":
            return None
        raise ConfigurationError(f"{name} is required.", {"option": name})
    if isinstance(raw, bool):
        raise ConfigurationError(f"{name} expects an integer, got a boolean.", {"option": name})
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if name == "flee_chance" and text == "":
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise ConfigurationError(f"{name} expects an integer, got {raw!r}.", {"option": name}) from exc
