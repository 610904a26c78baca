from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class BattleAction(str, Enum):
    ATTACK = "attack"
    DEFEND = "defend"
    FLEE = "flee"


class BattleStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    WON = "won"
    LOST = "lost"
    FLED = "fled"


TERMINAL_STATUSES = frozenset({BattleStatus.WON, BattleStatus.LOST, BattleStatus.FLED})


@dataclass
class CombatantState:
    """Live battle figures; HP/MP here diverge from the persisted character until the battle ends."""

    hp: int
    hp_max: int
    mp: int
    mp_max: int
    attack: int
    defense: int
    magic_attack: int
    magic_defense: int
    element_id: int = 0


@dataclass(frozen=True)
class TurnLogEntry:
    turn: int
    action: BattleAction
    player_hit: bool
    player_damage: int
    player_crit: bool
    monster_acted: bool
    monster_used_magic: bool
    monster_damage: int
    monster_crit: bool
    player_hp: int
    player_mp: int
    monster_hp: int
    monster_mp: int
    battle_over: bool
    status: BattleStatus
    messages: Tuple[str, ...] = ()


@dataclass
class BattleSession:
    character_id: int
    monster_id: int
    monster_name: str
    monster_level: int
    player: CombatantState
    monster: CombatantState
    monster_mp_power: int = 1
    monster_sp: int = 0
    monster_spell: str = "a magical spell"
    weapon_power: int = 1
    crit_range: int = 20
    crit_multiplier: int = 2
    weapon_element: int = 0
    hp_regen: int = 0
    mp_regen: int = 0
    status: BattleStatus = BattleStatus.IN_PROGRESS
    turn: int = 0
    player_defending: bool = False
    log: List[TurnLogEntry] = field(default_factory=list)
    winner: Optional[str] = None
    started_at: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self.status == BattleStatus.IN_PROGRESS
