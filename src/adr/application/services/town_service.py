from __future__ import annotations

import logging

from adr.application.dtos import ChangeClassRequest, CharacterResult, LearnSkillRequest, TrainStatRequest
from adr.application.services.rules import require_gold, require_not_battling, spend_gold, working_copy
from adr.domain.errors import ConfigurationError, RequirementNotMet, StateConflict, ValidationError
from adr.domain.models.character import SKILL_KIND_BY_ID, Character
from adr.domain.models.game_config import GameConfig
from adr.domain.models.reference import CharacterClass
from adr.domain.repositories import ReferenceDataProvider


logger = logging.getLogger(__name__)


class TownService:
    """Temple, training grounds and guild: the side operations outside battle."""

    def __init__(self, reference: ReferenceDataProvider, config: GameConfig) -> None:
        self.reference = reference
        self.config = config

    def heal_cost(self, character: Character) -> int:
        return self.config.temple_heal_cost * character.level

    def resurrect_cost(self, character: Character) -> int:
        return self.config.temple_resurrect_cost * character.level

    def training_cost(self, character: Character, stat: str) -> int:
        return character.stat(stat) * self.config.training_charac_cost

    def temple_heal(self, character: Character) -> CharacterResult:
        require_not_battling(character)
        if character.is_dead or character.hp <= 0:
            raise StateConflict("Your character is dead! You need to resurrect first.", {"character_id": character.id})
        if character.hp >= character.hp_max and character.mp >= character.mp_max:
            raise StateConflict("Already at full health and mana!", {"character_id": character.id})
        cost = self.heal_cost(character)

        updated = working_copy(character)
        spend_gold(updated, cost)
        updated.hp = updated.hp_max
        updated.mp = updated.mp_max
        return CharacterResult(
            character=updated,
            message=f"Healed to full health for {cost}g! HP: {updated.hp}/{updated.hp_max}, MP: {updated.mp}/{updated.mp_max}",
            gold_spent=cost,
        )

    def temple_resurrect(self, character: Character) -> CharacterResult:
        require_not_battling(character)
        if not character.is_dead and character.hp > 0:
            raise StateConflict("Your character is alive!", {"character_id": character.id})
        cost = self.resurrect_cost(character)

        updated = working_copy(character)
        spend_gold(updated, cost)
        updated.is_dead = False
        updated.hp = updated.hp_max
        updated.mp = updated.mp_max
        logger.info("Character resurrected", extra={"character_id": character.id, "cost": cost})
        return CharacterResult(
            character=updated,
            message=f"Resurrected for {cost}g! HP: {updated.hp}/{updated.hp_max}, MP: {updated.mp}/{updated.mp_max}",
            gold_spent=cost,
        )

    def train_stat(self, character: Character, request: TrainStatRequest) -> CharacterResult:
        require_not_battling(character)
        current = character.stat(request.stat)
        if current >= self.config.max_characteristic:
            raise StateConflict(
                f"{request.stat} is already at maximum ({self.config.max_characteristic}).",
                {"stat": request.stat, "value": current},
            )
        cost = self.training_cost(character, request.stat)

        updated = working_copy(character)
        spend_gold(updated, cost)
        setattr(updated, request.stat, current + 1)
        if request.stat == "constitution":
            updated.hp_max += 1
            updated.hp += 1
        elif request.stat == "intelligence":
            updated.mp_max += 1
            updated.mp += 1
        return CharacterResult(
            character=updated,
            message=f"Trained {request.stat} from {current} to {current + 1} for {cost}g!",
            gold_spent=cost,
        )

    def learn_skill(self, character: Character, request: LearnSkillRequest) -> CharacterResult:
        require_not_battling(character)
        skill = self.reference.get_skill(request.skill_id)
        kind = SKILL_KIND_BY_ID.get(request.skill_id)
        if skill is None or kind is None:
            raise ValidationError("Skill not found.", {"skill_id": request.skill_id})
        if character.skill_level(kind) > 0:
            raise StateConflict(f"You already know {skill.name}!", {"skill_id": skill.id})
        if character.sp < skill.required_sp:
            raise RequirementNotMet(
                f"Not enough SP! Need {skill.required_sp} SP, have {character.sp} SP.",
                {"required_sp": skill.required_sp, "sp": character.sp},
            )

        updated = working_copy(character)
        updated.sp -= skill.required_sp
        updated.skills[kind.value] = 1
        updated.skill_uses[kind.value] = 0
        return CharacterResult(character=updated, message=f"Learned {skill.name} for {skill.required_sp} SP!")

    def change_class(self, character: Character, request: ChangeClassRequest) -> CharacterResult:
        require_not_battling(character)
        if character.class_id == request.class_id:
            raise StateConflict("You are already that class!", {"class_id": request.class_id})
        new_class = self.reference.get_class(request.class_id)
        if new_class is None:
            raise ValidationError("Class not found.", {"class_id": request.class_id})
        if not new_class.selectable:
            raise RequirementNotMet("That class is not available.", {"class_id": new_class.id})
        unmet = new_class.unmet_requirements(character.scores.as_dict())
        if unmet:
            raise RequirementNotMet(
                f"You do not meet the requirements for {new_class.name}.",
                {"class_id": new_class.id, "unmet": list(unmet)},
            )
        require_gold(character, self.config.training_change_cost)
        old_class = self.reference.get_class(character.class_id)
        if old_class is None:
            raise ConfigurationError(f"Unknown class {character.class_id}.", {"class_id": character.class_id})

        updated = working_copy(character)
        spend_gold(updated, self.config.training_change_cost)
        levels = updated.level - 1
        updated.hp_max = max(1, updated.hp_max + _contribution(new_class, "hp", levels) - _contribution(old_class, "hp", levels))
        updated.mp_max = max(0, updated.mp_max + _contribution(new_class, "mp", levels) - _contribution(old_class, "mp", levels))
        updated.ac = max(0, updated.ac + _contribution(new_class, "ac", levels) - _contribution(old_class, "ac", levels))
        updated.hp = min(updated.hp, updated.hp_max)
        updated.mp = min(updated.mp, updated.mp_max)
        updated.class_id = new_class.id
        logger.info(
            "Class changed",
            extra={"character_id": character.id, "from_class": old_class.id, "to_class": new_class.id},
        )
        return CharacterResult(
            character=updated,
            message=f"Changed class from {old_class.name} to {new_class.name} for {self.config.training_change_cost}g!",
            gold_spent=self.config.training_change_cost,
        )


def _contribution(character_class: CharacterClass, figure: str, levels: int) -> int:
    return getattr(character_class, f"base_{figure}") + getattr(character_class, f"update_{figure}") * levels
