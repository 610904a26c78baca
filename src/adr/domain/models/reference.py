from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from adr.domain.models.stats import STAT_NAMES


@dataclass(frozen=True)
class Race:
    id: int
    name: str
    bonuses: Dict[str, int] = field(default_factory=dict)
    maluses: Dict[str, int] = field(default_factory=dict)
    hp_bonus: int = 0
    mp_bonus: int = 0

    def adjustment(self, stat: str) -> int:
        return int(self.bonuses.get(stat, 0)) - int(self.maluses.get(stat, 0))


@dataclass(frozen=True)
class CharacterClass:
    id: int
    name: str
    selectable: bool = True
    requirements: Dict[str, int] = field(default_factory=dict)
    base_hp: int = 0
    base_mp: int = 0
    base_ac: int = 0
    update_hp: int = 0
    update_mp: int = 0
    update_ac: int = 0

    def unmet_requirements(self, stats: Dict[str, int]) -> Tuple[str, ...]:
        return tuple(
            name
            for name in STAT_NAMES
            if int(stats.get(name, 0)) < int(self.requirements.get(name, 0))
        )


@dataclass(frozen=True)
class SkillDefinition:
    id: int
    name: str
    required_sp: int = 0


@dataclass(frozen=True)
class NamedReference:
    """Elements and alignments: the engine only needs to know they exist."""

    id: int
    name: str


@dataclass(frozen=True)
class ForgeRecipe:
    """A forgeable item: base figures are scaled by the quality tier the forge roll lands on."""

    id: int
    name: str
    type_id: int
    materials_required: int = 1
    base_power: int = 0
    base_bonus_ac: int = 0
    base_price: int = 0
    duration_max: int = 100
    weight: int = 10
    required_skill_level: int = 1
