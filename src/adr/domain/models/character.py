from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from adr.domain.models.item import EquipmentSlot, Item
from adr.domain.models.stats import STAT_NAMES, AbilityScores


class SkillKind(str, Enum):
    MINING = "mining"
    STONE_CUTTING = "stone_cutting"
    FORGE = "forge"
    ENCHANTMENT = "enchantment"
    TRADING = "trading"
    THIEF = "thief"


# Reference-data skill ids as seeded by the legacy game.
SKILL_KIND_BY_ID: Dict[int, SkillKind] = {
    1: SkillKind.MINING,
    2: SkillKind.STONE_CUTTING,
    3: SkillKind.FORGE,
    4: SkillKind.ENCHANTMENT,
    5: SkillKind.TRADING,
    6: SkillKind.THIEF,
}


class DailyCounter(str, Enum):
    BATTLE = "battle"
    SKILL = "skill"
    TRADING = "trading"
    THIEF = "thief"


@dataclass
class Character:
    id: int
    user_id: int
    name: str
    race_id: int = 1
    class_id: int = 1
    element_id: int = 1
    alignment_id: int = 1
    might: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10
    hp: int = 20
    hp_max: int = 20
    mp: int = 10
    mp_max: int = 10
    sp: int = 0
    ac: int = 0
    gold: int = 100
    level: int = 1
    xp: int = 0
    equipment: Dict[str, int] = field(default_factory=dict)
    skills: Dict[str, int] = field(default_factory=dict)
    skill_uses: Dict[str, int] = field(default_factory=dict)
    daily_counters: Dict[str, int] = field(default_factory=dict)
    limit_update: int = 0
    inventory: List[Item] = field(default_factory=list)
    victories: int = 0
    defeats: int = 0
    flees: int = 0
    is_battling: bool = False
    is_dead: bool = False

    def __post_init__(self) -> None:
        self.equipment = {slot.value: int(self.equipment.get(slot.value, 0)) for slot in EquipmentSlot}
        self.skills = {kind.value: int(self.skills.get(kind.value, 0)) for kind in SkillKind}
        self.skill_uses = {kind.value: int(self.skill_uses.get(kind.value, 0)) for kind in SkillKind}
        self.daily_counters = {
            counter.value: int(self.daily_counters.get(counter.value, 0)) for counter in DailyCounter
        }

    @property
    def scores(self) -> AbilityScores:
        return AbilityScores(**{name: getattr(self, name) for name in STAT_NAMES})

    def stat(self, name: str) -> int:
        if name not in STAT_NAMES:
            raise KeyError(name)
        return int(getattr(self, name))

    def skill_level(self, kind: SkillKind) -> int:
        return self.skills[kind.value]

    def counter(self, counter: DailyCounter) -> int:
        return self.daily_counters[counter.value]

    def find_item(self, item_id: int) -> Optional[Item]:
        for item in self.inventory:
            if item.id == int(item_id):
                return item
        return None

    def equipped_item(self, slot: EquipmentSlot) -> Optional[Item]:
        item_id = self.equipment.get(slot.value, 0)
        if not item_id:
            return None
        item = self.find_item(item_id)
        if item is None or not item.equipped:
            return None
        return item

    def equipped_items(self) -> Dict[EquipmentSlot, Item]:
        rows = {}
        for slot in EquipmentSlot:
            item = self.equipped_item(slot)
            if item is not None:
                rows[slot] = item
        return rows
