from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping


STAT_NAMES = ("might", "dexterity", "constitution", "intelligence", "wisdom", "charisma")


def ability_modifier(score: int | None) -> int:
    """Standard ``floor((score - 10) / 2)`` modifier used by leveling, trading and theft."""
    if score is None:
        return 0
    return (int(score) - 10) // 2


def combat_modifier(score: int) -> int:
    """Battle modifier: zero up to 11, then +1 for every two points from 12."""
    score = int(score)
    if score > 11:
        return (score - 12) // 2 + 1
    return 0


def clamp_stat(value: int, minimum: int, maximum: int) -> int:
    return max(int(minimum), min(int(maximum), int(value)))


@dataclass(frozen=True)
class AbilityScores:
    """Six core characteristics as rolled or stored on a character."""

    might: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10

    def as_dict(self) -> Dict[str, int]:
        return {name: int(getattr(self, name)) for name in STAT_NAMES}

    def out_of_range(self, minimum: int, maximum: int) -> list[str]:
        return [name for name, value in self.as_dict().items() if not minimum <= value <= maximum]

    @classmethod
    def from_mapping(cls, values: Mapping[str, int]) -> "AbilityScores":
        return cls(**{name: int(values.get(name, 10)) for name in STAT_NAMES})
