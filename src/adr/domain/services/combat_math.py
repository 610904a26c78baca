from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from adr.domain.models.element import element_multiplier
from adr.domain.models.stats import combat_modifier
from adr.domain.services.dice import percent_roll, rand_range


NATURAL_MISS = 1
NATURAL_HIT = 20
MONSTER_MAGIC_ROLL_ABOVE = 16


class MonsterAttackKind(str, Enum):
    PHYSICAL = "physical"
    MAGIC = "magic"


@dataclass(frozen=True)
class AttackRoll:
    hit: bool
    roll: int


@dataclass(frozen=True)
class FleeRoll:
    success: bool
    player_roll: float
    monster_roll: int = 0


@dataclass(frozen=True)
class RewardRoll:
    xp: int
    gold: int
    sp: int


def physical_attack(might: int, constitution: int) -> int:
    return math.ceil((might + might * 0.5) + combat_modifier(constitution))


def magic_attack(intelligence: int) -> int:
    return math.ceil(intelligence + intelligence * 0.75)


def physical_defense(ac: int, dexterity: int) -> int:
    return math.ceil((ac + ac * 0.5) + combat_modifier(dexterity))


def magic_defense(wisdom: int) -> int:
    return math.ceil(wisdom + wisdom * 0.75)


def roll_d20(rng: random.Random) -> int:
    return rng.randint(1, 20)


def player_attack_roll(
    attack: int, quality: int, level: int, opponent_defense: int, opponent_level: int, rng: random.Random
) -> AttackRoll:
    roll = roll_d20(rng)
    if roll == NATURAL_MISS:
        return AttackRoll(False, roll)
    if roll == NATURAL_HIT:
        return AttackRoll(True, roll)
    return AttackRoll(attack + quality + roll + level > opponent_defense + opponent_level, roll)


def crit_confirm(
    attack: int,
    quality: int,
    level: int,
    opponent_defense: int,
    opponent_level: int,
    threat_range: int,
    rng: random.Random,
) -> bool:
    confirm = roll_d20(rng)
    if confirm == NATURAL_MISS:
        return False
    if confirm >= threat_range:
        return True
    return attack + quality + confirm + level > opponent_defense + opponent_level


def magic_attack_roll(spell_power: int, attacker_int: int, defender_wis: int, rng: random.Random) -> AttackRoll:
    roll = roll_d20(rng)
    if roll == NATURAL_MISS:
        return AttackRoll(False, roll)
    if roll == NATURAL_HIT:
        return AttackRoll(True, roll)
    magic_check = math.ceil(roll + spell_power + combat_modifier(attacker_int))
    fortitude_save = 11 + combat_modifier(defender_wis)
    return AttackRoll(magic_check >= fortitude_save, roll)


def monster_attack_roll(monster_attack: int, player_defense: int, player_dex: int, rng: random.Random) -> AttackRoll:
    roll = roll_d20(rng)
    if roll == NATURAL_MISS:
        return AttackRoll(False, roll)
    if roll == NATURAL_HIT:
        return AttackRoll(True, roll)
    return AttackRoll(monster_attack + roll >= player_defense + combat_modifier(player_dex), roll)


def monster_decision(monster_mp: int, monster_mp_power: int, rng: random.Random) -> MonsterAttackKind:
    if monster_mp <= 0 or monster_mp < monster_mp_power:
        return MonsterAttackKind.PHYSICAL
    if roll_d20(rng) > MONSTER_MAGIC_ROLL_ABOVE:
        return MonsterAttackKind.MAGIC
    return MonsterAttackKind.PHYSICAL


def flee_check(rng: random.Random, flee_chance: Optional[int] = None) -> FleeRoll:
    """Flat percentage when ``flee_chance`` is set, otherwise the opposed d20 roll."""
    if flee_chance is not None:
        roll = percent_roll(rng)
        return FleeRoll(roll < flee_chance, roll)
    player_roll = roll_d20(rng)
    monster_roll = roll_d20(rng)
    if player_roll == NATURAL_HIT:
        return FleeRoll(True, player_roll, monster_roll)
    if player_roll == NATURAL_MISS:
        return FleeRoll(False, player_roll, monster_roll)
    return FleeRoll(player_roll > monster_roll, player_roll, monster_roll)


def monster_scaling(player_level: int, monster_level: int, stats_modifier: int = 150, calc_type: int = 1) -> float:
    if monster_level >= player_level:
        return 1
    if calc_type == 1:
        return ((stats_modifier - 100) / 100) * (player_level - monster_level) + 1
    return (stats_modifier / 100) * (player_level - monster_level)


def scale_stat(value: int, scaling: float) -> int:
    return math.ceil(value * scaling)


def apply_element(damage: int, attacker_element: int, defender_element: int) -> int:
    return math.floor(damage * element_multiplier(attacker_element, defender_element))


def monster_damage(
    monster_level: int,
    player_defending: bool,
    kind: MonsterAttackKind,
    monster_str: int,
    mp_power: int,
    rng: random.Random,
) -> int:
    base_power = monster_level * rand_range(1, 3, rng)
    if player_defending:
        base_power = base_power // 2
    if kind == MonsterAttackKind.PHYSICAL:
        damage = math.ceil(base_power / 2) + combat_modifier(monster_str)
    else:
        damage = math.ceil(base_power) + combat_modifier(mp_power)
    if damage < 1:
        damage = rand_range(1, 3, rng)
    return max(damage, 1)


def monster_combat_stat(monster_level: int, rng: random.Random) -> int:
    """Monsters carry no characteristics; strength and intelligence are rolled per turn from level."""
    return 10 + rand_range(1, max(1, monster_level), rng) * 2


def calculate_rewards(
    monster_level: int,
    player_level: int,
    monster_sp: int,
    rng: random.Random,
    *,
    exp_min: int,
    exp_max: int,
    exp_modifier: int,
    reward_min: int,
    reward_max: int,
    reward_modifier: int,
    sp_modifier: int,
) -> RewardRoll:
    """Monsters two or more levels above the player pay a fixed modifier-scaled amount; otherwise roll the band."""
    level_diff = monster_level - player_level
    if level_diff > 1:
        xp = math.floor(level_diff * exp_modifier / 100)
        gold = math.floor(level_diff * reward_modifier / 100)
        sp = math.floor(monster_sp * sp_modifier / 100)
    else:
        xp = rand_range(exp_min, exp_max, rng)
        gold = rand_range(reward_min, reward_max, rng)
        sp = monster_sp
    return RewardRoll(xp=max(1, xp), gold=max(1, gold), sp=max(0, sp))
