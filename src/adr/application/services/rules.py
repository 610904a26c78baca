"""Guards shared by the resolvers.

Every check raises before the working copy is touched, and every helper that
mutates expects a working copy, never the caller's snapshot.
"""

from __future__ import annotations

import copy
from typing import Optional, TypeVar

from adr.domain.errors import (
    InsufficientFunds,
    LimitReached,
    PlayerJailed,
    RequirementNotMet,
    StateConflict,
)
from adr.domain.models.character import Character, DailyCounter, SkillKind
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import Item, ItemRestrictions
from adr.domain.models.jail import JailRecord
from adr.domain.models.stats import STAT_NAMES
from adr.domain.services.leveling import skill_level_after_use


T = TypeVar("T")

_COUNTER_LIMITS = {
    DailyCounter.BATTLE: "battle_limit",
    DailyCounter.SKILL: "skill_limit",
    DailyCounter.TRADING: "trading_limit",
    DailyCounter.THIEF: "thief_limit",
}


def working_copy(snapshot: T) -> T:
    return copy.deepcopy(snapshot)


def counter_limit(counter: DailyCounter, config: GameConfig) -> int:
    return int(getattr(config, _COUNTER_LIMITS[counter]))


def require_not_battling(character: Character) -> None:
    if character.is_battling:
        raise StateConflict("Not available during a battle.", {"character_id": character.id})


def require_alive(character: Character) -> None:
    if character.is_dead or character.hp <= 0:
        raise StateConflict("Your character is dead. Visit the temple to resurrect.", {"character_id": character.id})


def require_counter(character: Character, counter: DailyCounter, config: GameConfig) -> None:
    limit = counter_limit(counter, config)
    if character.counter(counter) >= limit:
        raise LimitReached(
            f"No {counter.value} actions remaining today.",
            {"counter": counter.value, "limit": limit},
        )


def consume_counter(character: Character, counter: DailyCounter) -> None:
    character.daily_counters[counter.value] += 1


def require_gold(character: Character, amount: int) -> None:
    if character.gold < amount:
        raise InsufficientFunds(
            f"Not enough gold: {amount}g needed, you have {character.gold}g.",
            {"needed": amount, "gold": character.gold},
        )


def spend_gold(character: Character, amount: int) -> None:
    require_gold(character, amount)
    character.gold -= amount


def require_owned_item(character: Character, item_id: int) -> Item:
    item = character.find_item(item_id)
    if item is None:
        raise StateConflict("Item not found in your inventory.", {"item_id": item_id})
    return item


def require_unequipped(item: Item) -> None:
    if item.equipped:
        raise StateConflict(f"{item.name} is equipped; unequip it first.", {"item_id": item.id})


def require_skill(character: Character, kind: SkillKind) -> int:
    level = character.skill_level(kind)
    if level < 1:
        raise RequirementNotMet(f"You have not learned the {kind.value} skill.", {"skill": kind.value})
    return level


def train_skill(character: Character, kind: SkillKind, config: GameConfig) -> bool:
    """Record one use of a skill; returns True when the level went up."""
    character.skill_uses[kind.value] += 1
    before = character.skills[kind.value]
    after = skill_level_after_use(before, character.skill_uses[kind.value], config.skill_uses_per_level)
    character.skills[kind.value] = after
    return after > before


def unmet_restrictions(character: Character, restrictions: ItemRestrictions) -> list[str]:
    problems = []
    if character.level < restrictions.level:
        problems.append(f"level {restrictions.level}")
    for name in STAT_NAMES:
        required = int(getattr(restrictions, name))
        if required and character.stat(name) < required:
            problems.append(f"{name} {required}")
    for label, allowed, value in (
        ("class", restrictions.class_ids, character.class_id),
        ("race", restrictions.race_ids, character.race_id),
        ("element", restrictions.element_ids, character.element_id),
        ("alignment", restrictions.alignment_ids, character.alignment_id),
    ):
        if allowed and value not in allowed:
            problems.append(label)
    return problems


def require_restrictions(character: Character, item: Item) -> None:
    problems = unmet_restrictions(character, item.restrictions)
    if problems:
        raise RequirementNotMet(
            f"You do not meet the requirements for {item.name}.",
            {"item_id": item.id, "unmet": problems},
        )


def require_not_jailed(record: Optional[JailRecord], now: int) -> None:
    """An open record whose release time has passed no longer blocks; the next status read closes it."""
    if record is not None and record.is_open and now < record.release_at:
        raise PlayerJailed(
            "You are in jail.",
            {"record_id": record.id, "release_at": record.release_at, "bail_cost": record.bail_cost},
        )


def require_in_inventory(character: Character, item_id: int) -> Item:
    item = require_owned_item(character, item_id)
    if item.in_warehouse:
        raise StateConflict(f"{item.name} is in the warehouse.", {"item_id": item.id})
    return item
