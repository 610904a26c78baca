from dataclasses import dataclass


@dataclass
class BattleStarted:
    character_id: int
    monster_id: int
    monster_level: int


@dataclass
class BattleEnded:
    character_id: int
    monster_id: int
    status: str
    turns: int


@dataclass
class LevelUpApplied:
    character_id: int
    from_level: int
    to_level: int
    hp_gain: int
    mp_gain: int


@dataclass
class PlayerJailed:
    user_id: int
    reason: str
    release_at: int
    bail_cost: int


@dataclass
class PlayerReleased:
    user_id: int
    record_id: int
    outcome: str


@dataclass
class ItemForged:
    character_id: int
    item_id: int
    quality_id: int
