from abc import ABC, abstractmethod
from typing import List, Optional

from adr.domain.models.item import Item
from adr.domain.models.monster import MonsterTemplate
from adr.domain.models.reference import (
    CharacterClass,
    ForgeRecipe,
    NamedReference,
    Race,
    SkillDefinition,
)


class ReferenceDataProvider(ABC):
    """Read-only lookup of static game data by id."""

    @abstractmethod
    def get_race(self, race_id: int) -> Optional[Race]:
        raise NotImplementedError

    @abstractmethod
    def get_class(self, class_id: int) -> Optional[CharacterClass]:
        raise NotImplementedError

    @abstractmethod
    def get_element(self, element_id: int) -> Optional[NamedReference]:
        raise NotImplementedError

    @abstractmethod
    def get_alignment(self, alignment_id: int) -> Optional[NamedReference]:
        raise NotImplementedError

    @abstractmethod
    def get_skill(self, skill_id: int) -> Optional[SkillDefinition]:
        raise NotImplementedError

    @abstractmethod
    def get_monster(self, monster_id: int) -> Optional[MonsterTemplate]:
        raise NotImplementedError

    @abstractmethod
    def list_monsters(self) -> List[MonsterTemplate]:
        raise NotImplementedError

    @abstractmethod
    def get_item_template(self, item_id: int) -> Optional[Item]:
        raise NotImplementedError

    @abstractmethod
    def get_forge_recipe(self, recipe_id: int) -> Optional[ForgeRecipe]:
        raise NotImplementedError
