from __future__ import annotations

import math
import random

from adr.domain.models.stats import ability_modifier


DEFAULT_LEVEL_PENALTY = 10
BASE_LEVEL_XP = 100


def xp_for_level(level: int, penalty_percent: int = DEFAULT_LEVEL_PENALTY) -> int:
    """Total XP at which ``level`` is reached: ``floor(100 * (1 + penalty) ** (level - 1))``."""
    penalty = penalty_percent / 100
    return math.floor(BASE_LEVEL_XP * math.pow(1 + penalty, int(level) - 1))


def xp_to_next_level(level: int, xp: int, penalty_percent: int = DEFAULT_LEVEL_PENALTY) -> int:
    return max(0, xp_for_level(int(level) + 1, penalty_percent) - int(xp))


def should_level_up(level: int, xp: int, penalty_percent: int = DEFAULT_LEVEL_PENALTY) -> bool:
    return int(xp) >= xp_for_level(int(level) + 1, penalty_percent)


def hp_gain_on_level_up(constitution: int, class_hp_bonus: int, rng: random.Random) -> int:
    con_mod = max(1, ability_modifier(constitution))
    return max(1, con_mod + int(class_hp_bonus) + rng.randint(1, 4))


def mp_gain_on_level_up(intelligence: int, class_mp_bonus: int, rng: random.Random) -> int:
    int_mod = max(0, ability_modifier(intelligence))
    return max(0, int_mod + int(class_mp_bonus) + rng.randint(0, 2))


def starting_hp(constitution: int, race_hp_bonus: int, class_hp_bonus: int) -> int:
    return max(10, 10 + int(constitution) // 2 + int(race_hp_bonus) + int(class_hp_bonus))


def starting_mp(intelligence: int, race_mp_bonus: int, class_mp_bonus: int) -> int:
    return max(5, 5 + int(intelligence) // 3 + int(race_mp_bonus) + int(class_mp_bonus))


def skill_level_after_use(current_level: int, uses: int, uses_per_level: int) -> int:
    """Skills never drop; every ``uses_per_level`` uses can lift the level by one."""
    return max(int(current_level), int(uses) // max(1, int(uses_per_level)))
