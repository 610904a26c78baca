"""Success and quality rolls for gathering and crafting.

Each check comes in two forms: a pure ``classify_*``/``*_threshold`` function
over an explicit roll on [0, 100), and a wrapper drawing that roll from the
supplied RNG.
"""

from __future__ import annotations

import math
import random
from enum import Enum

from adr.domain.services.dice import percent_roll


CRITICAL_FAILURE_CHANCE = 5

# (minimum forge skill, roll strictly below, quality id), best quality first.
FORGE_QUALITY_BUCKETS = (
    (10, 5, 6),
    (7, 15, 5),
    (5, 30, 4),
    (3, 50, 3),
    (0, 70, 2),
)
FORGE_QUALITY_FLOOR = 1


class ForgeOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CRITICAL_FAILURE = "critical_failure"


class MiningFind(str, Enum):
    ORE = "ore"
    GEM = "gem"
    RARE = "rare"


def mining_threshold(skill_level: int, cap: int = 90) -> int:
    return min(cap, 30 + int(skill_level) * 5)


def stone_cutting_threshold(skill_level: int, cap: int = 85) -> int:
    return min(cap, 25 + int(skill_level) * 5)


def enchant_threshold(skill_level: int, cap: int = 75) -> int:
    return min(cap, 15 + int(skill_level) * 4)


def forge_threshold(skill_level: int, cap: int = 85) -> int:
    return min(cap, 20 + int(skill_level) * 6)


def mining_success(skill_level: int, rng: random.Random, cap: int = 90) -> bool:
    return percent_roll(rng) < mining_threshold(skill_level, cap)


def stone_cutting_success(skill_level: int, rng: random.Random, cap: int = 85) -> bool:
    return percent_roll(rng) < stone_cutting_threshold(skill_level, cap)


def enchant_success(skill_level: int, rng: random.Random, cap: int = 75) -> bool:
    return percent_roll(rng) < enchant_threshold(skill_level, cap)


def critical_failure(rng: random.Random, chance: int = CRITICAL_FAILURE_CHANCE) -> bool:
    return percent_roll(rng) < chance


def classify_mining_find(roll: float, skill_level: int) -> MiningFind:
    rare_threshold = min(15, int(skill_level) * 2)
    gem_threshold = rare_threshold + min(25, 10 + int(skill_level) * 3)
    if roll < rare_threshold:
        return MiningFind.RARE
    if roll < gem_threshold:
        return MiningFind.GEM
    return MiningFind.ORE


def mining_find(skill_level: int, rng: random.Random) -> MiningFind:
    return classify_mining_find(percent_roll(rng), skill_level)


def classify_forging_roll(
    roll: float,
    skill_level: int,
    cap: int = 85,
    critical_chance: int = CRITICAL_FAILURE_CHANCE,
) -> ForgeOutcome:
    """The first ``critical_chance`` points of the roll always destroy the materials."""
    if roll < critical_chance:
        return ForgeOutcome.CRITICAL_FAILURE
    if roll < critical_chance + forge_threshold(skill_level, cap):
        return ForgeOutcome.SUCCESS
    return ForgeOutcome.FAILURE


def forging_result(
    skill_level: int,
    rng: random.Random,
    cap: int = 85,
    critical_chance: int = CRITICAL_FAILURE_CHANCE,
) -> ForgeOutcome:
    return classify_forging_roll(percent_roll(rng), skill_level, cap, critical_chance)


def classify_forge_quality(roll: float, skill_level: int) -> int:
    for minimum_skill, below, quality in FORGE_QUALITY_BUCKETS:
        if int(skill_level) >= minimum_skill and roll < below:
            return quality
    return FORGE_QUALITY_FLOOR


def forge_quality(skill_level: int, rng: random.Random) -> int:
    return classify_forge_quality(percent_roll(rng), skill_level)


def repair_cost(item_price: int, current_duration: int, max_duration: int) -> int:
    if current_duration >= max_duration:
        return 0
    damage_fraction = 1 - (current_duration / max_duration)
    return max(1, math.floor(item_price * 0.3 * damage_fraction))


def enchant_cost(add_power: int, base_cost: int = 50, cost_per_power: int = 20) -> int:
    return int(base_cost) + int(add_power) * int(cost_per_power)
