from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from adr.application.dtos import CharacterResult, CreateCharacterRequest
from adr.domain.errors import ConfigurationError, RequirementNotMet, ValidationError
from adr.domain.models.character import Character
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import Item, ItemType, QualityTier
from adr.domain.models.stats import STAT_NAMES, AbilityScores, clamp_stat
from adr.domain.repositories import ReferenceDataProvider
from adr.domain.services.dice import stat_roll
from adr.domain.services.leveling import starting_hp, starting_mp


logger = logging.getLogger(__name__)

STARTER_KIT = (
    Item(
        id=0,
        name="Rusty Sword",
        type_id=ItemType.WEAPON,
        quality_id=QualityTier.POOR,
        power=5,
        weight=4,
        price=30,
        duration=80,
        duration_max=80,
        description="A worn but serviceable blade. Better than bare fists.",
    ),
    Item(
        id=0,
        name="Padded Armor",
        type_id=ItemType.ARMOR,
        quality_id=QualityTier.POOR,
        weight=8,
        price=40,
        duration=80,
        duration_max=80,
        bonus_ac=2,
        description="Simple padded cloth that offers some protection.",
    ),
    Item(
        id=0,
        name="Small Health Potion",
        type_id=ItemType.HEALTH_POTION,
        quality_id=QualityTier.POOR,
        power=10,
        weight=1,
        price=20,
        duration=1,
        duration_max=1,
        description="Restores 10 HP",
    ),
    Item(
        id=0,
        name="Small Health Potion",
        type_id=ItemType.HEALTH_POTION,
        quality_id=QualityTier.POOR,
        power=10,
        weight=1,
        price=20,
        duration=1,
        duration_max=1,
        description="Restores 10 HP",
    ),
)


class CharacterCreationService:
    def __init__(
        self,
        reference: ReferenceDataProvider,
        config: GameConfig,
        rng: random.Random,
        allocate_item_id: Optional[Callable[[], int]] = None,
    ) -> None:
        self.reference = reference
        self.config = config
        self.rng = rng
        self.allocate_item_id = allocate_item_id

    def roll_stats(self) -> AbilityScores:
        """Six 4d6-drop-lowest rolls, clamped to the characteristic range."""
        return AbilityScores(
            **{
                name: stat_roll(self.rng, self.config.min_characteristic, self.config.max_characteristic)
                for name in STAT_NAMES
            }
        )

    def create_character(self, request: CreateCharacterRequest) -> CharacterResult:
        race = self.reference.get_race(request.race_id)
        character_class = self.reference.get_class(request.class_id)
        element = self.reference.get_element(request.element_id)
        alignment = self.reference.get_alignment(request.alignment_id)
        if race is None or character_class is None or element is None or alignment is None:
            raise ValidationError(
                "Invalid race, class, element, or alignment.",
                {
                    "race_id": request.race_id,
                    "class_id": request.class_id,
                    "element_id": request.element_id,
                    "alignment_id": request.alignment_id,
                },
            )
        if not character_class.selectable:
            raise ValidationError("That class is not selectable.", {"class_id": character_class.id})

        low, high = self.config.min_characteristic, self.config.max_characteristic
        out_of_range = request.stats.out_of_range(low, high)
        if out_of_range:
            raise ValidationError(
                f"Characteristics must be between {low} and {high}.",
                {"stats": out_of_range},
            )
        final = {
            name: clamp_stat(value + race.adjustment(name), low, high)
            for name, value in request.stats.as_dict().items()
        }
        unmet = character_class.unmet_requirements(final)
        if unmet:
            raise RequirementNotMet(
                f"You do not meet the requirements for {character_class.name}.",
                {"class_id": character_class.id, "unmet": list(unmet)},
            )
        if self.allocate_item_id is None:
            raise ConfigurationError("Character creation needs an item id allocator.")

        hp = starting_hp(final["constitution"], race.hp_bonus, character_class.base_hp)
        mp = starting_mp(final["intelligence"], race.mp_bonus, character_class.base_mp)
        character = Character(
            id=request.character_id,
            user_id=request.user_id,
            name=request.name,
            race_id=race.id,
            class_id=character_class.id,
            element_id=element.id,
            alignment_id=alignment.id,
            hp=hp,
            hp_max=hp,
            mp=mp,
            mp_max=mp,
            ac=character_class.base_ac,
            gold=self.config.starting_gold,
            **final,
        )
        character.inventory = self._starter_items(character.id)
        logger.info(
            "Character created",
            extra={"character_id": character.id, "race_id": race.id, "class_id": character_class.id},
        )
        return CharacterResult(character=character, message=f"{character.name} the {race.name} {character_class.name} is ready.")

    def _starter_items(self, owner_id: int) -> List[Item]:
        return [template.copy_for_owner(self.allocate_item_id(), owner_id) for template in STARTER_KIT]
