from __future__ import annotations

import random
from typing import Sequence, Tuple

from adr.domain.models.stats import ability_modifier


STEAL_DC_SCALE = 7.5
STEAL_DC_CAP = 20


def scaled_difficulty(item_difficulty: int) -> int:
    """Rescale a native 7..150 difficulty rating onto the d20 range."""
    return min(STEAL_DC_CAP, int(item_difficulty // STEAL_DC_SCALE))


def steal_total(roll: int, dexterity: int, thief_skill_level: int) -> int:
    dex_mod = max(0, ability_modifier(dexterity))
    return int(roll) + dex_mod + int(thief_skill_level) * 3


def classify_steal_roll(roll: int, dexterity: int, thief_skill_level: int, item_difficulty: int) -> bool:
    return steal_total(roll, dexterity, thief_skill_level) >= scaled_difficulty(item_difficulty)


def steal_check(thief_skill_level: int, dexterity: int, item_difficulty: int, rng: random.Random) -> bool:
    return classify_steal_roll(rng.randint(1, 20), dexterity, thief_skill_level, item_difficulty)


def tier_value(price: int, tiers: Sequence[Tuple[int, int]], above_all: int) -> int:
    """First value whose ascending price break is >= price, else ``above_all``."""
    for max_price, value in tiers:
        if price <= max_price:
            return int(value)
    return int(above_all)


def theft_difficulty(item_price: int, tiers: Sequence[Tuple[int, int]], above_all: int) -> int:
    return tier_value(item_price, tiers, above_all)


def jail_duration(item_price: int, tiers: Sequence[Tuple[int, int]], above_all: int) -> int:
    return tier_value(item_price, tiers, above_all)


def bail_cost(item_price: int, multiplier: int = 3, minimum: int = 500) -> int:
    return max(int(minimum), int(item_price) * int(multiplier))


def theft_fine(item_price: int, failure_damage: int, gold: int) -> int:
    return min(max(int(item_price), int(failure_damage)), max(0, int(gold)))


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"
