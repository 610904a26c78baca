from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MonsterTemplate:
    """Read-only monster definition. Reward ranges of 0 defer to the configured bands."""

    id: int
    name: str
    level: int = 1
    hp: int = 10
    mp: int = 10
    attack: int = 5
    defense: int = 5
    mp_power: int = 1
    magic_attack: int = 10
    magic_resistance: int = 10
    sp: int = 0
    element_id: int = 1
    custom_spell: str = "a magical spell"
    thief_skill: int = 0
    drop_item_id: int = 0
    drop_rate: int = 0
    xp_reward_min: int = 0
    xp_reward_max: int = 0
    gold_reward_min: int = 0
    gold_reward_max: int = 0
