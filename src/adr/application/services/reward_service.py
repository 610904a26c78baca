from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from adr.application.dtos import LevelUpView, VictoryRewards
from adr.domain.errors import ConfigurationError
from adr.domain.models.battle import BattleSession
from adr.domain.models.character import Character
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import Item
from adr.domain.models.monster import MonsterTemplate
from adr.domain.repositories import ReferenceDataProvider
from adr.domain.services.combat_math import calculate_rewards
from adr.domain.services.dice import percent_roll
from adr.domain.services.leveling import hp_gain_on_level_up, mp_gain_on_level_up, should_level_up


logger = logging.getLogger(__name__)


class RewardService:
    """Turns a won battle into XP, gold, SP, an optional item drop and any level-ups.

    Works on the battle resolver's working copy of the character; it never sees
    the caller's snapshot.
    """

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

    def grant_victory(self, character: Character, session: BattleSession, monster: MonsterTemplate) -> VictoryRewards:
        exp_min, exp_max = self._band(monster.xp_reward_min, monster.xp_reward_max, "exp")
        reward_min, reward_max = self._band(monster.gold_reward_min, monster.gold_reward_max, "reward")
        roll = calculate_rewards(
            session.monster_level,
            character.level,
            session.monster_sp,
            self.rng,
            exp_min=exp_min,
            exp_max=exp_max,
            exp_modifier=self.config.base_exp_modifier,
            reward_min=reward_min,
            reward_max=reward_max,
            reward_modifier=self.config.base_reward_modifier,
            sp_modifier=self.config.base_sp_modifier,
        )
        character.xp += roll.xp
        character.gold += roll.gold
        character.sp += roll.sp
        dropped = self._roll_drop(character, monster)
        level_ups = self.apply_level_ups(character)
        return VictoryRewards(xp=roll.xp, gold=roll.gold, sp=roll.sp, level_ups=level_ups, dropped_item=dropped)

    def apply_level_ups(self, character: Character) -> List[LevelUpView]:
        """Level up as many times as the XP total allows, then restore HP and MP to the new maxima."""
        character_class = self.reference.get_class(character.class_id)
        update_hp = character_class.update_hp if character_class else 0
        update_mp = character_class.update_mp if character_class else 0
        update_ac = character_class.update_ac if character_class else 0

        level_ups: List[LevelUpView] = []
        while should_level_up(character.level, character.xp, self.config.next_level_penalty):
            hp_gain = hp_gain_on_level_up(character.constitution, update_hp, self.rng)
            mp_gain = mp_gain_on_level_up(character.intelligence, update_mp, self.rng)
            view = LevelUpView(
                from_level=character.level,
                to_level=character.level + 1,
                hp_gain=hp_gain,
                mp_gain=mp_gain,
            )
            character.level += 1
            character.hp_max += hp_gain
            character.mp_max += mp_gain
            character.ac += update_ac
            level_ups.append(view)

        if level_ups:
            character.hp = character.hp_max
            character.mp = character.mp_max
            logger.info(
                "Character levelled up",
                extra={
                    "character_id": character.id,
                    "from_level": level_ups[0].from_level,
                    "to_level": character.level,
                },
            )
        return level_ups

    def _band(self, monster_min: int, monster_max: int, kind: str) -> tuple[int, int]:
        if monster_max > 0:
            return monster_min, monster_max
        return getattr(self.config, f"base_{kind}_min"), getattr(self.config, f"base_{kind}_max")

    def _roll_drop(self, character: Character, monster: MonsterTemplate) -> Optional[Item]:
        if not monster.drop_item_id or monster.drop_rate <= 0:
            return None
        if percent_roll(self.rng) >= monster.drop_rate:
            return None
        template = self.reference.get_item_template(monster.drop_item_id)
        if template is None:
            raise ConfigurationError(
                f"{monster.name} drops unknown item {monster.drop_item_id}.",
                {"monster_id": monster.id, "item_id": monster.drop_item_id},
            )
        if self.allocate_item_id is None:
            raise ConfigurationError("Item drops need an item id allocator.")
        item = template.copy_for_owner(self.allocate_item_id(), character.id)
        character.inventory.append(item)
        return item
